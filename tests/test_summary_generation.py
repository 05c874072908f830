"""Tests for generate_summary utility."""
from __future__ import annotations

import survey_insights.analysis.summary as sm
from survey_insights.analysis.sentiment import SentimentLabel, SentimentResult

POSITIVE = SentimentResult(label=SentimentLabel.POSITIVE, score=0.456)


def test_report_style():
    result = sm.generate_summary(POSITIVE, ["delivery", "support"], 12)
    assert result == (
        "Overall sentiment: positive (score 0.46). "
        "Top keywords: delivery, support. Based on 12 answers."
    )


def test_narrative_style():
    result = sm.generate_summary(POSITIVE, ["delivery"], 3, style="narrative")
    assert result.startswith("Most responses indicate a positive overall tone (score 0.46).")
    assert "Respondents most often mentioned delivery." in result
    assert result.endswith("based on 3 answers across all responses.")


def test_empty_survey_uses_empty_state():
    assert sm.generate_summary(None, [], 0) == sm.EMPTY_SUMMARY
    assert sm.generate_summary(POSITIVE, ["x"], 0, style="narrative") == sm.EMPTY_SUMMARY


def test_unknown_style_falls_back_to_report():
    assert sm.generate_summary(POSITIVE, ["a"], 1, style="haiku") == sm.generate_summary(
        POSITIVE, ["a"], 1, style="report"
    )


def test_keywords_are_capped():
    terms = [f"term{i}" for i in range(10)]
    result = sm.generate_summary(POSITIVE, terms, 10)
    assert "term4" in result
    assert "term5" not in result


def test_no_keywords_placeholder():
    result = sm.generate_summary(None, [], 2)
    assert "no dominant keywords" in result
    assert "neutral (score 0.00)" in result
