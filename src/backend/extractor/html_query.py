"""
DOM query over a static HTML document (BeautifulSoup).

Matches, in document order:
- <video> elements
- <source> elements whose URL carries a whitelisted video extension
- <iframe> / <embed> elements pointing at a known video platform

Lazy-loaded players are supported through ``data-src``.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from src.shared.detection.naming import is_supported_extension
from src.shared.normalizer import extract_extension, is_known_embed_host

from .descriptors import (
    ContainerSource,
    DirectMedia,
    DocumentView,
    ElementDescriptor,
    EmbeddedFrame,
    PageContext,
)


logger = logging.getLogger(__name__)

MEDIA_TAGS = ["video", "source", "iframe", "embed"]
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "figcaption"]
PREVIEW_META = (
    {"property": "og:image"},
    {"name": "og:image"},
    {"name": "twitter:image"},
    {"property": "twitter:image"},
)

MAX_HEADING_LENGTH = 200
ANCESTOR_DEPTH = 3


def _attr(tag: Tag, name: str) -> Optional[str]:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _int_attr(tag: Tag, name: str) -> Optional[int]:
    raw = _attr(tag, name)
    if raw is None:
        return None
    try:
        return int(float(raw.rstrip("px")))
    except (ValueError, OverflowError):
        return None


def _float_attr(tag: Tag, name: str) -> Optional[float]:
    raw = _attr(tag, name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class HtmlDomQuery:
    """
    DomQuery implementation for an HTML string.

    Args:
        html: Document markup.
        url: Page URL, used to resolve relative references (``<base href>`` wins).
        parser: BeautifulSoup tree builder.
    """

    def __init__(self, html: str, *, url: str = "", parser: str = "html.parser") -> None:
        self._html = html or ""
        self._url = url
        self._parser = parser

    def query(self) -> DocumentView:
        soup = BeautifulSoup(self._html, self._parser)
        base_url = self._base_url(soup)
        page = PageContext(
            url=self._url,
            document_title=self._document_title(soup),
            preview_image=self._preview_image(soup, base_url),
        )

        elements: list[ElementDescriptor] = []
        for index, tag in enumerate(soup.find_all(MEDIA_TAGS)):
            try:
                descriptor = self._describe(tag, base_url)
            except Exception:  # noqa: BLE001
                logger.warning("Skipping <%s> element %d", tag.name, index, exc_info=True)
                continue
            if descriptor is not None:
                elements.append(descriptor)

        logger.debug("HTML query matched %d media elements", len(elements))
        return DocumentView(page=page, elements=tuple(elements))

    # ------------------------------------------------------------------
    # Page-level context
    # ------------------------------------------------------------------

    def _base_url(self, soup: BeautifulSoup) -> str:
        base = soup.find("base", href=True)
        if base is not None:
            return urljoin(self._url, str(base["href"]))
        return self._url

    @staticmethod
    def _document_title(soup: BeautifulSoup) -> Optional[str]:
        if soup.title and soup.title.string:
            title = soup.title.string.strip()
            return title or None
        return None

    @staticmethod
    def _preview_image(soup: BeautifulSoup, base_url: str) -> Optional[str]:
        for attrs in PREVIEW_META:
            meta = soup.find("meta", attrs=attrs)
            if meta is not None:
                content = _attr(meta, "content")
                if content:
                    return urljoin(base_url, content)
        return None

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def _describe(self, tag: Tag, base_url: str) -> Optional[ElementDescriptor]:
        if tag.name == "video":
            return self._describe_video(tag, base_url)
        if tag.name == "source":
            return self._describe_source(tag, base_url)
        return self._describe_frame(tag, base_url)

    def _resolve(self, base_url: str, raw: Optional[str]) -> Optional[str]:
        if not raw:
            return None
        if raw.startswith(("data:", "blob:")):
            return raw
        return urljoin(base_url, raw)

    def _common(self, tag: Tag, base_url: str) -> dict:
        parent = tag.parent if isinstance(tag.parent, Tag) else None
        return {
            "title": _attr(tag, "title"),
            "alt": _attr(tag, "alt"),
            "aria_label": _attr(tag, "aria-label"),
            "parent_title": (_attr(parent, "title") or _attr(parent, "aria-label")) if parent else None,
            "nearby_heading": self._nearby_heading(tag),
            "nearby_image": self._nearby_image(tag, base_url),
        }

    def _describe_video(self, tag: Tag, base_url: str) -> DirectMedia:
        src = self._resolve(base_url, _attr(tag, "src") or _attr(tag, "data-src"))

        current_src = src
        if current_src is None:
            for child in tag.find_all("source"):
                child_src = self._resolve(base_url, _attr(child, "src") or _attr(child, "data-src"))
                if child_src:
                    current_src = child_src
                    break

        return DirectMedia(
            src=src,
            current_src=current_src,
            media_type=_attr(tag, "type"),
            poster=self._resolve(base_url, _attr(tag, "poster")),
            width=_int_attr(tag, "width"),
            height=_int_attr(tag, "height"),
            duration_seconds=_float_attr(tag, "data-duration"),
            **self._common(tag, base_url),
        )

    def _describe_source(self, tag: Tag, base_url: str) -> Optional[ContainerSource]:
        src = self._resolve(base_url, _attr(tag, "src") or _attr(tag, "data-src"))
        if not src or not is_supported_extension(extract_extension(src)):
            return None

        media = tag.find_parent(["video", "audio"])
        common = self._common(media if media is not None else tag, base_url)
        return ContainerSource(
            src=src,
            media_type=_attr(tag, "type"),
            poster=self._resolve(base_url, _attr(media, "poster")) if media is not None else None,
            width=_int_attr(media, "width") if media is not None else None,
            height=_int_attr(media, "height") if media is not None else None,
            **common,
        )

    def _describe_frame(self, tag: Tag, base_url: str) -> Optional[EmbeddedFrame]:
        src = self._resolve(base_url, _attr(tag, "src") or _attr(tag, "data-src"))
        if not src or not is_known_embed_host(src):
            return None
        return EmbeddedFrame(
            src=src,
            width=_int_attr(tag, "width"),
            height=_int_attr(tag, "height"),
            **self._common(tag, base_url),
        )

    @staticmethod
    def _nearby_heading(tag: Tag) -> Optional[str]:
        node = tag.parent
        depth = 0
        while isinstance(node, Tag) and node.name not in ("body", "html", "[document]") and depth < ANCESTOR_DEPTH:
            heading = node.find(HEADING_TAGS)
            if heading is not None:
                text = heading.get_text(" ", strip=True)
                if text and len(text) < MAX_HEADING_LENGTH:
                    return text
            node = node.parent
            depth += 1

        previous = tag.find_previous(HEADING_TAGS)
        if previous is not None:
            text = previous.get_text(" ", strip=True)
            if text and len(text) < MAX_HEADING_LENGTH:
                return text
        return None

    def _nearby_image(self, tag: Tag, base_url: str) -> Optional[str]:
        parent = tag.parent
        if not isinstance(parent, Tag):
            return None
        for img in parent.find_all("img"):
            src = _attr(img, "src") or _attr(img, "data-src")
            if src:
                return self._resolve(base_url, src)
        return None
