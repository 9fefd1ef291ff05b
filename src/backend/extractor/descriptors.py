"""
Element descriptors handed to the candidate builder by a DOM query.

The three element kinds share one shape; the concrete class is the tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Protocol

from src.shared.detection.models import MediaKind


@dataclass(frozen=True)
class ElementDescriptor:
    """
    Attributes common to all media elements.

    Attributes:
        src: Declared source URL (absolute).
        media_type: Declared MIME type (``type`` attribute), if any.
        title / alt / aria_label: Element attributes usable as a title.
        parent_title: ``title`` / ``aria-label`` of the enclosing element.
        nearby_heading: Text of the closest heading or caption.
        poster: Declared preview image (``poster``), absolute.
        nearby_image: First image next to the element, absolute.
        width / height: Declared or intrinsic dimensions in pixels.
        duration_seconds: Media duration, when known.
    """

    kind: ClassVar[MediaKind]

    src: Optional[str] = None
    media_type: Optional[str] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    aria_label: Optional[str] = None
    parent_title: Optional[str] = None
    nearby_heading: Optional[str] = None
    poster: Optional[str] = None
    nearby_image: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration_seconds: Optional[float] = None

    @property
    def effective_url(self) -> Optional[str]:
        return self.src


@dataclass(frozen=True)
class DirectMedia(ElementDescriptor):
    """A media element (``<video>``); current_src is what is actually playing."""

    kind: ClassVar[MediaKind] = MediaKind.DIRECT_MEDIA

    current_src: Optional[str] = None

    @property
    def effective_url(self) -> Optional[str]:
        return self.current_src or self.src


@dataclass(frozen=True)
class ContainerSource(ElementDescriptor):
    """A ``<source>`` child of a media element."""

    kind: ClassVar[MediaKind] = MediaKind.CONTAINER_SOURCE


@dataclass(frozen=True)
class EmbeddedFrame(ElementDescriptor):
    """An ``<iframe>`` / ``<embed>`` pointing at a known video platform."""

    kind: ClassVar[MediaKind] = MediaKind.EMBEDDED_FRAME


@dataclass(frozen=True)
class PageContext:
    url: str = ""
    document_title: Optional[str] = None
    preview_image: Optional[str] = None


@dataclass(frozen=True)
class DocumentView:
    """Result of one DOM query: page-level context plus elements in document order."""

    page: PageContext = field(default_factory=PageContext)
    elements: tuple[ElementDescriptor, ...] = ()


class DomQuery(Protocol):
    def query(self) -> DocumentView:
        ...
