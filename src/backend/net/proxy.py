"""
Proxy configuration for routing size probes through a proxy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit
from urllib.request import OpenerDirector, ProxyHandler, build_opener


VALID_PROXY_SCHEMES = frozenset({"http", "https", "socks4", "socks5"})


@dataclass
class ProxyConfig:
    """
    Proxy settings for outbound HEAD probes.

    Attributes:
        enabled: Whether probes go through the proxy.
        url: Proxy URL (e.g., "http://host:port").
    """
    enabled: bool = False
    url: str = ""

    def is_active(self) -> bool:
        return self.enabled and bool(self.url.strip())

    def get_url(self) -> Optional[str]:
        if self.is_active():
            return self.url.strip()
        return None

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "url": self.url,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "ProxyConfig":
        return cls(
            enabled=bool(data.get("enabled", False)),
            url=str(data.get("url", "") or ""),
        )

    def validate(self) -> tuple[bool, str]:
        """
        Validate the proxy settings.

        Returns:
            (is_valid, error_message) tuple.
        """
        if not self.enabled:
            return True, ""

        url = self.url.strip()
        if not url:
            return False, "Proxy is enabled but URL is empty"

        try:
            parsed = urlsplit(url)
        except ValueError as exc:
            return False, f"Invalid proxy URL: {exc}"

        if not parsed.scheme:
            return False, "Proxy URL must include scheme (e.g., http://)"

        if parsed.scheme.lower() not in VALID_PROXY_SCHEMES:
            return False, f"Unsupported proxy scheme: {parsed.scheme}. Use: {', '.join(sorted(VALID_PROXY_SCHEMES))}"

        if not parsed.netloc:
            return False, "Proxy URL must include host (and optionally port)"

        return True, ""


def get_urllib_proxy_handlers(config: Optional[ProxyConfig]) -> dict[str, str]:
    """
    Per-protocol proxy map for urllib's ProxyHandler.

    Returns:
        {"http": url, "https": url}, or an empty dict when the proxy is off
        (an empty map also disables proxies from the environment).
    """
    if config is None:
        return {}

    url = config.get_url()
    if not url:
        return {}

    return {
        "http": url,
        "https": url,
    }


def build_probe_opener(config: Optional[ProxyConfig]) -> OpenerDirector:
    return build_opener(ProxyHandler(get_urllib_proxy_handlers(config)))
