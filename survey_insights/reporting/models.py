"""Data structures returned by the analytics engine.

Every model exposes ``to_dict()`` producing the camelCase JSON shape used on
the wire; timestamps are rendered as ISO-8601 strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from survey_insights.analysis.sentiment import SentimentResult


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True, slots=True)
class KeywordEntry:
    """A stem with its most frequent surface form and total occurrences."""

    term: str
    stem: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"term": self.term, "stem": self.stem, "count": self.count}


@dataclass(frozen=True, slots=True)
class AnalysisDetails:
    answers_count: int = 0
    tokens: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"answersCount": self.answers_count, "tokens": self.tokens}


@dataclass(slots=True)
class AnalysisResult:
    """Keyword, sentiment and summary output of one analysis run."""

    top_keywords: List[KeywordEntry]
    overall_sentiment: SentimentResult
    details: AnalysisDetails
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topKeywords": [k.to_dict() for k in self.top_keywords],
            "overallSentiment": self.overall_sentiment.to_dict(),
            "details": self.details.to_dict(),
            "summary": self.summary,
        }


@dataclass(frozen=True, slots=True)
class TimePeriodBucket:
    """Response volume for one calendar period starting at ``period_start``."""

    period_start: datetime
    response_count: int
    avg_completion_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periodStart": _iso(self.period_start),
            "responseCount": self.response_count,
            "avgCompletionTime": self.avg_completion_time,
        }


@dataclass(frozen=True, slots=True)
class PollUpdate:
    """Answer to "has anything changed since T" for a survey.

    ``new_count`` is only set when a ``since`` cutoff was supplied and newer
    responses exist.
    """

    updated: bool
    last_response_at: Optional[datetime] = None
    new_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "updated": self.updated,
            "lastResponseAt": _iso(self.last_response_at),
        }
        if self.new_count is not None:
            payload["newCount"] = self.new_count
        return payload

