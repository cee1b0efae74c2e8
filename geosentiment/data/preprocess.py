"""Text preprocessing utilities."""
from __future__ import annotations

import re
from typing import Iterable, List, Tuple

_WORD_PATTERN = re.compile(r"[^\W_]+(?:'[^\W_]+)*", re.UNICODE)
_EDGE_PUNCT_PATTERN = re.compile(r"^[^\w']+|[^\w']+$", re.UNICODE)


def tokenize(text: str) -> List[str]:
    """Split text into lower-case word tokens, dropping punctuation."""
    if not text:
        return []
    return _WORD_PATTERN.findall(text.lower())


def remove_stopwords(tokens: Iterable[str], stopwords: Iterable[str]) -> List[str]:
    stopword_set = stopwords if isinstance(stopwords, (set, frozenset)) else set(stopwords)
    return [token for token in tokens if token not in stopword_set]


def normalize_token(raw: str) -> str:
    """Lower-case a whitespace token and strip its leading/trailing punctuation.

    Punctuation-only tokens normalise to the empty string.
    """
    return _EDGE_PUNCT_PATTERN.sub("", raw.lower()).strip("'")


def bigrams(text: str) -> List[Tuple[str, str]]:
    """Ordered adjacent-token pairs; either element may be empty."""
    if not text:
        return []
    tokens = [normalize_token(raw) for raw in text.split()]
    return list(zip(tokens, tokens[1:]))
