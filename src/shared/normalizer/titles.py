from __future__ import annotations

import re


_PUNCTUATION = re.compile(r"[^\w\s]|_", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_title(raw: str) -> str:
    """
    Comparison key for a title: lowercase, punctuation stripped, whitespace collapsed.

    Only used for comparisons, never stored as identity.
    """
    if not raw:
        return ""
    text = _PUNCTUATION.sub(" ", raw.lower())
    return _WHITESPACE.sub(" ", text).strip()
