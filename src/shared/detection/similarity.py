"""
String similarity measures used by the duplicate detectors.

Two separate families:
- multiset_similarity: shared-character count over the longer length, with a
  length gate. Used by the in-pass detector for file names.
- edit_similarity / url_similarity: Levenshtein based. Used by the cross-pass
  detector for titles and URLs.
"""

from __future__ import annotations

from collections import Counter
from urllib.parse import urlsplit


MAX_LENGTH_DIFFERENCE = 0.3

URL_HOST_WEIGHT = 0.3
URL_PATH_WEIGHT = 0.5
URL_QUERY_WEIGHT = 0.2


def multiset_similarity(a: str, b: str, *, max_length_difference: float = MAX_LENGTH_DIFFERENCE) -> float:
    """
    Character-multiset similarity in [0, 1].

    similarity = |multiset(a) & multiset(b)| / max(len(a), len(b)), and 0 when
    the lengths differ by more than ``max_length_difference`` of the longer one.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    longer = max(len(a), len(b))
    if abs(len(a) - len(b)) / longer > max_length_difference:
        return 0.0

    shared = sum((Counter(a) & Counter(b)).values())
    return shared / longer


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def edit_similarity(a: str, b: str) -> float:
    """(longer - distance) / longer; 1.0 for equal strings, 0.0 if either is empty."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    longer = max(len(a), len(b))
    return (longer - levenshtein_distance(a, b)) / longer


def url_similarity(a: str, b: str) -> float:
    """
    Weighted URL similarity: 0.3 host + 0.5 path + 0.2 query.

    Falls back to plain edit similarity when either side does not parse
    as scheme://host.
    """
    try:
        pa = urlsplit(a)
        pb = urlsplit(b)
        host_a = pa.hostname or ""
        host_b = pb.hostname or ""
    except ValueError:
        return edit_similarity(a, b)

    if not (pa.scheme and host_a and pb.scheme and host_b):
        return edit_similarity(a, b)

    return (
        URL_HOST_WEIGHT * edit_similarity(host_a, host_b)
        + URL_PATH_WEIGHT * edit_similarity(pa.path, pb.path)
        + URL_QUERY_WEIGHT * edit_similarity(pa.query, pb.query)
    )
