"""Token normalization shared by the keyword and sentiment paths.

Both consumers must see the exact same token list, so there is a single
public helper, :func:`normalize_tokens`.
"""
from __future__ import annotations

import re
from typing import Iterable, List

from nltk.tokenize import RegexpTokenizer

# Words with optional embedded apostrophes ("don't", "team's")
_tokenizer = RegexpTokenizer(r"\w+(?:'\w+)*")

_STRIP_RE = re.compile(r"[^a-z0-9']")
_APOSTROPHES_RE = re.compile(r"'{2,}")

MIN_TOKEN_LENGTH = 2  # keeps short words like "ok"

# Negations ("not", "no") and sentiment carriers are intentionally absent.
DEFAULT_STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "of", "to", "in", "on", "for",
        "with", "at", "by", "from", "is", "are", "was", "were", "be", "been",
        "it", "this", "that", "these", "those", "as", "if",
        "so", "we", "you", "they", "he", "she", "i", "me", "my", "our", "your",
        "their", "do", "did", "does", "doing", "have", "has", "had", "having",
        "can", "could", "should", "would", "will", "just", "about", "into",
        "over", "under", "than", "then", "there", "here",
    }
)


def normalize_tokens(text: str | None, extra_stopwords: Iterable[str] = ()) -> List[str]:
    """Return the cleaned token sequence for *text*.

    Tokens are lowercased, stripped of anything outside ``[a-z0-9']``,
    tidied so apostrophes only join word parts, dropped when shorter than
    two characters, and filtered against
    :data:`DEFAULT_STOPWORDS` plus *extra_stopwords* (case-insensitive).
    Order is preserved.
    """

    extra = {word.lower() for word in extra_stopwords}
    tokens: List[str] = []
    for raw in _tokenizer.tokenize(text or ""):
        token = _STRIP_RE.sub("", raw.lower())
        # Stripping can leave stray apostrophes ("é's" -> "'s", "x'é'y" -> "x''y").
        token = _APOSTROPHES_RE.sub("'", token).strip("'")
        if len(token) < MIN_TOKEN_LENGTH:
            continue
        if token in DEFAULT_STOPWORDS or token in extra:
            continue
        tokens.append(token)
    return tokens
