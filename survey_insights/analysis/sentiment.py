"""Rule-based sentiment scoring.

Answers are scored individually with VADER, which accounts for negation
("not good") and intensifiers ("very good"), then combined by
:class:`SentimentAccumulator` into one overall score per survey.

The overall score divides the summed per-answer scores by the square root of
the total token count. This damping is kept as-is for compatibility with
existing reports; it is not a calibrated statistic.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Sequence

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

POSITIVE_THRESHOLD = 0.2
NEGATIVE_THRESHOLD = -0.2

_analyzer = SentimentIntensityAnalyzer()


class SentimentLabel(str, Enum):
    """Enumeration of supported sentiment classes."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class SentimentResult:
    """Overall sentiment of a survey."""

    label: SentimentLabel
    score: float  # unbounded, practically within -2.0 .. 2.0

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label.value, "score": self.score}


NEUTRAL_RESULT = SentimentResult(label=SentimentLabel.NEUTRAL, score=0.0)


def score_to_label(score: float) -> SentimentLabel:
    if score > POSITIVE_THRESHOLD:
        return SentimentLabel.POSITIVE
    if score < NEGATIVE_THRESHOLD:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


def score_tokens(tokens: Sequence[str]) -> float:
    """Return the polarity of one answer's token sequence (positive = favorable)."""

    if not tokens:
        return 0.0
    return _analyzer.polarity_scores(" ".join(tokens))["compound"]


class SentimentAccumulator:
    """Running totals for the overall sentiment of many answers."""

    def __init__(self) -> None:
        self.total_score = 0.0
        self.total_tokens = 0
        self.answer_count = 0

    def add(self, tokens: Sequence[str]) -> float:
        """Score *tokens*, fold them into the totals and return the answer score.

        Answers without tokens still count with length 1.
        """
        score = score_tokens(tokens)
        self.total_score += score
        self.total_tokens += max(len(tokens), 1)
        self.answer_count += 1
        return score

    @property
    def overall(self) -> float:
        if self.answer_count == 0:
            return 0.0
        return self.total_score / math.sqrt(self.total_tokens)

    def result(self) -> SentimentResult:
        overall = self.overall
        return SentimentResult(label=score_to_label(overall), score=round(overall, 3))
