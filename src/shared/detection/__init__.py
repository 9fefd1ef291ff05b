"""
Candidate data model and duplicate detection.

Provides:
- CandidateRecord / DetectionSnapshot / ScanState (models.py)
- In-pass detector: find_duplicate / is_duplicate (duplicates.py)
- Cross-pass detector: is_cross_pass_duplicate / filter_cross_pass (history.py)
- Similarity measures (similarity.py)
- Format and naming helpers (naming.py)
"""

from .duplicates import DuplicateMatch, DuplicateSignal, dedupe, find_duplicate, is_duplicate
from .errors import DetectionError, ProbeError
from .history import filter_cross_pass, find_cross_pass_duplicate, is_cross_pass_duplicate
from .models import (
    CandidateRecord,
    DetectionSnapshot,
    MediaKind,
    ScanState,
    format_utc_z,
    utc_now,
)
from .similarity import edit_similarity, levenshtein_distance, multiset_similarity, url_similarity

__all__ = [
    "CandidateRecord",
    "DetectionError",
    "DetectionSnapshot",
    "DuplicateMatch",
    "DuplicateSignal",
    "MediaKind",
    "ProbeError",
    "ScanState",
    "dedupe",
    "edit_similarity",
    "filter_cross_pass",
    "find_cross_pass_duplicate",
    "find_duplicate",
    "format_utc_z",
    "is_cross_pass_duplicate",
    "is_duplicate",
    "levenshtein_distance",
    "multiset_similarity",
    "url_similarity",
    "utc_now",
]
