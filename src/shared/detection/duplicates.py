"""
In-pass duplicate detection for media candidates.

Implements "first seen wins" within one detection pass: a candidate is
compared against the records already accepted in the same pass, and the
first matching signal marks it as a duplicate. Signals are evaluated in a
fixed order, most specific and cheapest first:

1. both file names are hash-like (interchangeable CDN-minted names)
2. equal normalized URL
3. equal normalized title, same media kind
4. file names equal (extension stripped) or multiset-similar >= 0.8
5. file sizes within 1024 bytes and equal normalized title
6. identical width x height and equal normalized title
7. a shared hash-like token in the URL path or hash-bearing query keys
8. equal platform video id (embedded frames only)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from src.shared.normalizer import (
    extract_hash_tokens,
    extract_platform_video_id,
    is_hash_like_token,
    strip_extension,
)

from .models import CandidateRecord, MediaKind
from .similarity import multiset_similarity


DEFAULT_SIZE_TOLERANCE_BYTES = 1024
DEFAULT_FILENAME_SIMILARITY = 0.8


class DuplicateSignal(str, Enum):
    """Which signal identified a candidate as a duplicate."""
    HASH_LIKE_FILE_NAME = "hash-like-file-name"
    NORMALIZED_URL = "normalized-url"
    NORMALIZED_TITLE = "normalized-title"
    FILE_NAME = "file-name"
    FILE_SIZE_AND_TITLE = "file-size-and-title"
    RESOLUTION_AND_TITLE = "resolution-and-title"
    SHARED_HASH_TOKEN = "shared-hash-token"
    PLATFORM_VIDEO_ID = "platform-video-id"

    # cross-pass signals
    EXACT_URL = "exact-url"
    EXACT_FILE_NAME = "exact-file-name"
    TITLE_SIMILARITY = "title-similarity"
    URL_SIMILARITY = "url-similarity"


@dataclass(frozen=True)
class DuplicateMatch:
    """A candidate matched an existing record through `signal`."""
    signal: DuplicateSignal
    existing: CandidateRecord


def _file_stem(record: CandidateRecord) -> Optional[str]:
    if not record.file_name:
        return None
    return strip_extension(record.file_name).lower()


def _hash_like_file_names(a: CandidateRecord, b: CandidateRecord) -> bool:
    stem_a = _file_stem(a)
    stem_b = _file_stem(b)
    if not stem_a or not stem_b:
        return False
    return is_hash_like_token(stem_a) and is_hash_like_token(stem_b)


def _same_normalized_url(a: CandidateRecord, b: CandidateRecord) -> bool:
    return a.normalized_url == b.normalized_url


def _same_title(a: CandidateRecord, b: CandidateRecord) -> bool:
    return bool(a.normalized_title) and a.normalized_title == b.normalized_title


def _same_title_and_kind(a: CandidateRecord, b: CandidateRecord) -> bool:
    return a.media_kind == b.media_kind and _same_title(a, b)


def _file_name_match(threshold: float) -> Callable[[CandidateRecord, CandidateRecord], bool]:
    def check(a: CandidateRecord, b: CandidateRecord) -> bool:
        stem_a = _file_stem(a)
        stem_b = _file_stem(b)
        if not stem_a or not stem_b:
            return False
        if stem_a == stem_b:
            return True
        return multiset_similarity(stem_a, stem_b) >= threshold

    return check


def _size_and_title_match(tolerance: int) -> Callable[[CandidateRecord, CandidateRecord], bool]:
    def check(a: CandidateRecord, b: CandidateRecord) -> bool:
        if a.file_size_bytes is None or b.file_size_bytes is None:
            return False
        return abs(a.file_size_bytes - b.file_size_bytes) <= tolerance and _same_title(a, b)

    return check


def _resolution_and_title_match(a: CandidateRecord, b: CandidateRecord) -> bool:
    if not a.width or not a.height or not b.width or not b.height:
        return False
    return (a.width, a.height) == (b.width, b.height) and _same_title(a, b)


def _shared_hash_token(a: CandidateRecord, b: CandidateRecord) -> bool:
    tokens = extract_hash_tokens(a.source_url)
    if not tokens:
        return False
    return not tokens.isdisjoint(extract_hash_tokens(b.source_url))


def _same_platform_video(a: CandidateRecord, b: CandidateRecord) -> bool:
    if a.media_kind != MediaKind.EMBEDDED_FRAME or b.media_kind != MediaKind.EMBEDDED_FRAME:
        return False
    found = extract_platform_video_id(a.source_url)
    return found is not None and found == extract_platform_video_id(b.source_url)


def _pipeline(
    *, size_tolerance_bytes: int, filename_similarity: float
) -> tuple[tuple[DuplicateSignal, Callable[[CandidateRecord, CandidateRecord], bool]], ...]:
    return (
        (DuplicateSignal.HASH_LIKE_FILE_NAME, _hash_like_file_names),
        (DuplicateSignal.NORMALIZED_URL, _same_normalized_url),
        (DuplicateSignal.NORMALIZED_TITLE, _same_title_and_kind),
        (DuplicateSignal.FILE_NAME, _file_name_match(filename_similarity)),
        (DuplicateSignal.FILE_SIZE_AND_TITLE, _size_and_title_match(size_tolerance_bytes)),
        (DuplicateSignal.RESOLUTION_AND_TITLE, _resolution_and_title_match),
        (DuplicateSignal.SHARED_HASH_TOKEN, _shared_hash_token),
        (DuplicateSignal.PLATFORM_VIDEO_ID, _same_platform_video),
    )


def find_duplicate(
    candidate: CandidateRecord,
    accepted: Sequence[CandidateRecord],
    *,
    size_tolerance_bytes: int = DEFAULT_SIZE_TOLERANCE_BYTES,
    filename_similarity: float = DEFAULT_FILENAME_SIMILARITY,
) -> Optional[DuplicateMatch]:
    """
    Find the first accepted record that `candidate` duplicates.

    Signals are tried in order; for each signal the accepted records are
    scanned in acceptance order, so the earliest record wins.

    Args:
        candidate: Freshly built record.
        accepted: Records accepted so far in this pass, in acceptance order.

    Returns:
        DuplicateMatch for the first hit, or None if the candidate is new.
    """
    if not accepted:
        return None

    for signal, check in _pipeline(
        size_tolerance_bytes=size_tolerance_bytes,
        filename_similarity=filename_similarity,
    ):
        for existing in accepted:
            if check(candidate, existing):
                return DuplicateMatch(signal=signal, existing=existing)
    return None


def is_duplicate(
    candidate: CandidateRecord,
    accepted: Sequence[CandidateRecord],
    **thresholds,
) -> bool:
    return find_duplicate(candidate, accepted, **thresholds) is not None


def dedupe(records: Iterable[CandidateRecord], **thresholds) -> list[CandidateRecord]:
    """Apply the in-pass detector over `records`, keeping first occurrences."""
    accepted: list[CandidateRecord] = []
    for record in records:
        if find_duplicate(record, accepted, **thresholds) is None:
            accepted.append(record)
    return accepted
