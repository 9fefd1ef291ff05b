"""
Cross-pass duplicate detection.

Compares a new pass's records against records kept from earlier passes
using a coarser signal set than the in-pass detector:
- exact source URL
- exact file name
- title edit-similarity > 0.8
- weighted URL similarity > 0.9
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .duplicates import DuplicateMatch, DuplicateSignal
from .models import CandidateRecord
from .similarity import edit_similarity, url_similarity


DEFAULT_TITLE_SIMILARITY = 0.8
DEFAULT_URL_SIMILARITY = 0.9


def find_cross_pass_duplicate(
    candidate: CandidateRecord,
    previous: Iterable[CandidateRecord],
    *,
    title_similarity: float = DEFAULT_TITLE_SIMILARITY,
    url_similarity_threshold: float = DEFAULT_URL_SIMILARITY,
) -> Optional[DuplicateMatch]:
    for existing in previous:
        if candidate.source_url == existing.source_url:
            return DuplicateMatch(DuplicateSignal.EXACT_URL, existing)

        if candidate.file_name and candidate.file_name == existing.file_name:
            return DuplicateMatch(DuplicateSignal.EXACT_FILE_NAME, existing)

        if candidate.title and existing.title:
            if edit_similarity(candidate.title, existing.title) > title_similarity:
                return DuplicateMatch(DuplicateSignal.TITLE_SIMILARITY, existing)

        if url_similarity(candidate.source_url, existing.source_url) > url_similarity_threshold:
            return DuplicateMatch(DuplicateSignal.URL_SIMILARITY, existing)

    return None


def is_cross_pass_duplicate(
    candidate: CandidateRecord,
    previous: Iterable[CandidateRecord],
    **thresholds,
) -> bool:
    return find_cross_pass_duplicate(candidate, previous, **thresholds) is not None


def filter_cross_pass(
    candidates: Sequence[CandidateRecord],
    previous: Sequence[CandidateRecord],
    **thresholds,
) -> tuple[list[CandidateRecord], list[DuplicateMatch]]:
    """
    Split a pass's records into (new, duplicate matches) against `previous`.

    Records of the same pass are not compared with each other here; the
    in-pass detector already did that.
    """
    fresh: list[CandidateRecord] = []
    matches: list[DuplicateMatch] = []
    for candidate in candidates:
        match = find_cross_pass_duplicate(candidate, previous, **thresholds)
        if match is None:
            fresh.append(candidate)
        else:
            matches.append(match)
    return fresh, matches
