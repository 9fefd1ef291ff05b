"""
Tests for src/backend/net/proxy.py

Covers:
- active / inactive proxy settings
- validation messages
- the urllib opener used by HEAD probes
"""

import unittest
from urllib.request import ProxyHandler

from src.backend.net.proxy import ProxyConfig, build_probe_opener, get_urllib_proxy_handlers


def _proxy_handler(opener):
    for handler in opener.handlers:
        if isinstance(handler, ProxyHandler):
            return handler
    return None


class TestProxyConfig(unittest.TestCase):
    def test_active_only_when_enabled_with_url(self) -> None:
        cases = [
            (ProxyConfig(), None),
            (ProxyConfig(enabled=True, url=""), None),
            (ProxyConfig(enabled=False, url="http://proxy:8080"), None),
            (ProxyConfig(enabled=True, url="  http://proxy:8080  "), "http://proxy:8080"),
        ]
        for config, expected in cases:
            with self.subTest(config=config):
                self.assertEqual(config.get_url(), expected)
                self.assertEqual(config.is_active(), expected is not None)

    def test_persist_dict(self) -> None:
        config = ProxyConfig.from_persist_dict({"enabled": True, "url": "socks5://proxy:1080"})
        self.assertEqual(config.to_persist_dict(), {"enabled": True, "url": "socks5://proxy:1080"})
        self.assertEqual(ProxyConfig.from_persist_dict({"url": None}), ProxyConfig())


class TestProxyValidation(unittest.TestCase):
    def test_valid(self) -> None:
        for url in ("http://proxy:8080", "https://proxy:8443", "socks4://proxy:1080", "socks5://u:p@proxy:1080"):
            with self.subTest(url=url):
                self.assertEqual(ProxyConfig(enabled=True, url=url).validate(), (True, ""))
        self.assertEqual(ProxyConfig(enabled=False, url="garbage").validate(), (True, ""))

    def test_invalid(self) -> None:
        cases = [
            ("", "empty"),
            ("ftp://proxy:21", "scheme"),
            ("proxy:8080", "scheme"),
            ("http://", "host"),
        ]
        for url, fragment in cases:
            with self.subTest(url=url):
                ok, error = ProxyConfig(enabled=True, url=url).validate()
                self.assertFalse(ok)
                self.assertIn(fragment, error.lower())


class TestProbeOpener(unittest.TestCase):
    def test_handler_map(self) -> None:
        self.assertEqual(get_urllib_proxy_handlers(None), {})
        self.assertEqual(
            get_urllib_proxy_handlers(ProxyConfig(enabled=True, url="http://proxy:8080")),
            {"http": "http://proxy:8080", "https": "http://proxy:8080"},
        )

    def test_opener_routes_through_proxy(self) -> None:
        opener = build_probe_opener(ProxyConfig(enabled=True, url="http://proxy:8080"))
        handler = _proxy_handler(opener)
        self.assertIsNotNone(handler)
        self.assertEqual(handler.proxies["https"], "http://proxy:8080")

    def test_opener_without_proxy_ignores_environment(self) -> None:
        handler = _proxy_handler(build_probe_opener(ProxyConfig()))
        self.assertIsNotNone(handler)
        self.assertEqual(handler.proxies, {})


if __name__ == "__main__":
    unittest.main()
