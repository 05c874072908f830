"""Unit tests for rule-based sentiment scoring."""
import math

import pytest

from survey_insights.analysis import sentiment as sa
from survey_insights.analysis.text import normalize_tokens


def test_positive_answer():
    score = sa.score_tokens(normalize_tokens("The service was great"))
    assert score > 0
    assert sa.score_to_label(score) == sa.SentimentLabel.POSITIVE


def test_negation_flips_polarity():
    positive = sa.score_tokens(normalize_tokens("good"))
    negated = sa.score_tokens(normalize_tokens("not good"))
    assert positive > 0
    assert negated < 0


def test_empty_tokens_score_zero():
    assert sa.score_tokens([]) == 0.0


@pytest.mark.parametrize(
    "score,label",
    [
        (0.21, sa.SentimentLabel.POSITIVE),
        (0.2, sa.SentimentLabel.NEUTRAL),
        (0.0, sa.SentimentLabel.NEUTRAL),
        (-0.2, sa.SentimentLabel.NEUTRAL),
        (-0.21, sa.SentimentLabel.NEGATIVE),
    ],
)
def test_score_to_label_thresholds(score, label):
    assert sa.score_to_label(score) == label


def test_accumulator_normalizes_by_sqrt_of_tokens(monkeypatch):
    monkeypatch.setattr(sa, "score_tokens", lambda tokens: 1.0)
    acc = sa.SentimentAccumulator()
    acc.add(["a1", "b2", "c3"])
    acc.add(["d4"])

    assert acc.answer_count == 2
    assert acc.total_tokens == 4
    assert acc.overall == pytest.approx(2.0 / math.sqrt(4))


def test_accumulator_counts_tokenless_answer_as_one(monkeypatch):
    monkeypatch.setattr(sa, "score_tokens", lambda tokens: 0.0)
    acc = sa.SentimentAccumulator()
    acc.add([])
    assert acc.total_tokens == 1


def test_empty_accumulator_is_neutral():
    result = sa.SentimentAccumulator().result()
    assert result == sa.NEUTRAL_RESULT


def test_result_is_rounded(monkeypatch):
    monkeypatch.setattr(sa, "score_tokens", lambda tokens: 0.123456)
    acc = sa.SentimentAccumulator()
    acc.add(["x1"])
    result = acc.result()
    assert result.score == 0.123
    assert result.to_dict() == {"label": "neutral", "score": 0.123}
