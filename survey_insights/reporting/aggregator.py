"""Aggregate raw survey answers into an :class:`AnalysisResult`."""

from __future__ import annotations

import logging
from typing import Iterable

from survey_insights import config
from survey_insights.analysis.keywords import KeywordAggregator
from survey_insights.analysis.sentiment import SentimentAccumulator
from survey_insights.analysis.summary import generate_summary
from survey_insights.analysis.text import normalize_tokens
from survey_insights.reporting.models import AnalysisDetails, AnalysisResult

logger = logging.getLogger(__name__)


def analyze_answers(
    answers: Iterable[str | None],
    *,
    top_n: int = config.DEFAULT_TOP_N,
    extra_stopwords: Iterable[str] = (),
    summary_style: str = config.DEFAULT_SUMMARY_STYLE,
) -> AnalysisResult:
    """Run keyword, sentiment and summary analysis over *answers*.

    Blank answers are skipped entirely and do not count towards
    ``answers_count``. An empty input yields a neutral result with the
    empty-state summary rather than an error.
    """

    if top_n is None or top_n <= 0:
        logger.warning("Invalid top_n %r; using %d", top_n, config.DEFAULT_TOP_N)
        top_n = config.DEFAULT_TOP_N
    stopwords = tuple(extra_stopwords)

    keywords = KeywordAggregator()
    sentiment = SentimentAccumulator()

    for answer in answers:
        if not answer or not answer.strip():
            continue
        tokens = normalize_tokens(answer, stopwords)
        sentiment.add(tokens)
        keywords.add(tokens)

    top_keywords = keywords.top(top_n)
    overall = sentiment.result()
    details = AnalysisDetails(answers_count=sentiment.answer_count, tokens=sentiment.total_tokens)

    summary = generate_summary(
        overall,
        [entry.term for entry in top_keywords],
        details.answers_count,
        style=summary_style,
    )

    return AnalysisResult(
        top_keywords=top_keywords,
        overall_sentiment=overall,
        details=details,
        summary=summary,
    )
