"""Render a short natural-language summary of an analysis run."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader

from survey_insights.analysis.sentiment import SentimentLabel, SentimentResult

_logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).parent / "templates"

# Plain-text output; HTML escaping would mangle apostrophes in keywords.
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)

SUMMARY_STYLES = ("report", "narrative")

EMPTY_SUMMARY = "No answers found for this survey; not enough data to summarize."

MAX_SUMMARY_KEYWORDS = 5


def generate_summary(
    overall_sentiment: SentimentResult | None,
    keyword_terms: Sequence[str],
    answers_count: int,
    *,
    style: str = "report",
) -> str:
    """Return a one-paragraph summary in the requested *style*.

    Surveys without answers get :data:`EMPTY_SUMMARY` whatever the style.
    Unknown styles fall back to ``"report"``.
    """

    if answers_count == 0:
        return EMPTY_SUMMARY

    if style not in SUMMARY_STYLES:
        _logger.warning("Unknown summary style %r; using 'report'", style)
        style = "report"

    topics = list(keyword_terms)[:MAX_SUMMARY_KEYWORDS]
    label = overall_sentiment.label if overall_sentiment else SentimentLabel.NEUTRAL
    score = overall_sentiment.score if overall_sentiment else 0.0

    template = _env.get_template(f"summary_{style}.txt.j2")
    return template.render(
        label=label.value,
        score=f"{score:.2f}",
        topics=", ".join(topics) if topics else "no dominant keywords",
        answers=answers_count,
    ).strip()
