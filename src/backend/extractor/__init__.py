"""
Resource extraction: DOM query -> element descriptors -> candidate records.
"""

from .builder import (
    BuildOutcome,
    BuildResult,
    CandidateBuilder,
    build_candidate,
    quality_label,
    resolve_thumbnail,
    resolve_title,
)
from .descriptors import (
    ContainerSource,
    DirectMedia,
    DocumentView,
    DomQuery,
    ElementDescriptor,
    EmbeddedFrame,
    PageContext,
)
from .html_query import HtmlDomQuery

__all__ = [
    "BuildOutcome",
    "BuildResult",
    "CandidateBuilder",
    "ContainerSource",
    "DirectMedia",
    "DocumentView",
    "DomQuery",
    "ElementDescriptor",
    "EmbeddedFrame",
    "HtmlDomQuery",
    "PageContext",
    "build_candidate",
    "quality_label",
    "resolve_thumbnail",
    "resolve_title",
]
