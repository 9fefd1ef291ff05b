"""
Header-only file-size probe.

HEAD request via urllib (optionally through the configured proxy), run in a
worker thread so the event loop never blocks. Any failure degrades to None.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import OpenerDirector, Request

from src.shared.detection.errors import ProbeError

from .proxy import ProxyConfig, build_probe_opener


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class ProbeConfig:
    """
    HEAD probe configuration.

    Attributes:
        timeout_s: Socket timeout per request.
        user_agent: User-Agent header sent with every probe.
    """
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "timeout_s": self.timeout_s,
            "user_agent": self.user_agent,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "ProbeConfig":
        timeout_s = data.get("timeout_s", DEFAULT_TIMEOUT_S)
        try:
            timeout_s = float(timeout_s)
        except (TypeError, ValueError):
            timeout_s = DEFAULT_TIMEOUT_S

        user_agent = str(data.get("user_agent", "") or "").strip() or DEFAULT_USER_AGENT
        return cls(timeout_s=max(0.5, min(120.0, timeout_s)), user_agent=user_agent)


def parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        size = int(str(value).strip())
    except ValueError:
        return None
    return size if size >= 0 else None


class HeadRequestProber:
    """
    Content-length lookup for a media URL.

    probe() never raises: failures (HTTP errors, network errors, missing
    header, non-http URLs) are logged at debug level and return None.
    """

    def __init__(
        self,
        *,
        config: Optional[ProbeConfig] = None,
        proxy: Optional[ProxyConfig] = None,
        opener: Optional[OpenerDirector] = None,
    ) -> None:
        self.config = config or ProbeConfig()
        self._opener = opener or build_probe_opener(proxy)

    def head_content_length(self, url: str) -> int:
        """
        Blocking HEAD request.

        Raises:
            ProbeError: when no usable content length could be obtained.
        """
        scheme = urlsplit(url).scheme.lower()
        if scheme not in ("http", "https"):
            raise ProbeError(f"cannot probe {scheme or 'relative'} URL", url=url)

        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "*/*",
        }
        req = Request(url, headers=headers, method="HEAD")

        try:
            with self._opener.open(req, timeout=self.config.timeout_s) as resp:
                length = parse_content_length(resp.headers.get("Content-Length"))
        except HTTPError as exc:
            raise ProbeError(f"HTTP {exc.code}", url=url, status_code=int(exc.code)) from exc
        except (URLError, OSError, ValueError) as exc:
            raise ProbeError(str(exc), url=url) from exc

        if length is None:
            raise ProbeError("no Content-Length header", url=url)
        return length

    async def probe(self, url: str) -> Optional[int]:
        try:
            return await asyncio.to_thread(self.head_content_length, url)
        except ProbeError as exc:
            logger.debug("Size probe failed for %s: %s", url, exc)
            return None
