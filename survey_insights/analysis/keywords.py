"""Stem-based keyword frequency aggregation."""
from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List

from nltk.stem import PorterStemmer

from survey_insights.reporting.models import KeywordEntry

_stemmer = PorterStemmer()


def stem(token: str) -> str:
    return _stemmer.stem(token)


class _StemBucket:
    __slots__ = ("count", "forms")

    def __init__(self) -> None:
        self.count = 0
        # Counter keeps insertion order, so max() resolves ties to first-seen.
        self.forms: Counter[str] = Counter()


class KeywordAggregator:
    """Accumulate stem frequencies across many token sequences.

    State is local to one analysis run; create a fresh instance per run.
    """

    def __init__(self) -> None:
        self._stems: Dict[str, _StemBucket] = {}

    def add(self, tokens: Iterable[str]) -> None:
        for token in tokens:
            key = stem(token)
            bucket = self._stems.get(key)
            if bucket is None:
                bucket = self._stems[key] = _StemBucket()
            bucket.count += 1
            bucket.forms[token] += 1

    def top(self, n: int) -> List[KeywordEntry]:
        """Return the *n* most frequent stems, most frequent first.

        ``sorted`` is stable, so stems with equal counts keep the order in
        which they first appeared.
        """

        entries = [
            KeywordEntry(term=max(bucket.forms, key=bucket.forms.__getitem__), stem=key, count=bucket.count)
            for key, bucket in self._stems.items()
        ]
        entries.sort(key=lambda entry: entry.count, reverse=True)
        return entries[:n]


def top_keywords(token_lists: Iterable[List[str]], n: int = 20) -> List[KeywordEntry]:
    """Convenience wrapper aggregating *token_lists* in one call."""
    aggregator = KeywordAggregator()
    for tokens in token_lists:
        aggregator.add(tokens)
    return aggregator.top(n)
