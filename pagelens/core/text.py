"""
Text Utilities — Token estimation, whitespace normalisation, word-overlap similarity.
"""

from __future__ import annotations

import re

_WS_RE = re.compile(r"\s+")


def estimate_token_count(text: str) -> int:
    """Whitespace-delimited word count. A cheap proxy, not a tokenizer."""
    if not text or not text.strip():
        return 0
    return len(text.split())


def normalize_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def truncate(text: str, limit: int, suffix: str = "") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


def word_overlap(text1: str, text2: str, min_length: int = 3) -> float:
    """
    Share of words longer than ``min_length`` that ``text1`` and ``text2`` have in common.

    Common tokens are counted from the first text, divided by the longer token list.
    """
    tokens1 = [t for t in text1.lower().split() if len(t) > min_length]
    tokens2 = [t for t in text2.lower().split() if len(t) > min_length]
    longest = max(len(tokens1), len(tokens2))
    if longest == 0:
        return 0.0
    pool = set(tokens2)
    common = [t for t in tokens1 if t in pool]
    return len(common) / longest
