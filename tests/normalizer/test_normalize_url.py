"""
Tests for src/shared/normalizer/urls.py

Covers:
- idempotence
- trailing segment / timestamp rotation collapsing
- identity query keys, fragments, default ports
- fail-open behaviour for non-hierarchical input
- embed platform paths are preserved
"""

import unittest

from src.shared.normalizer import (
    extract_extension,
    extract_file_name,
    extract_hash_tokens,
    normalize_url,
    strip_extension,
)


SAMPLE_URLS = [
    "https://cdn.example/stream/42/segment_001.ts",
    "https://Example.COM:443/watch?v=abc&utm_source=x#t=10",
    "https://a.example/p?ID=1&id=2",
    "http://example.com:8080/a.mp4",
    "https://cdn.example/v/deadbeef99",
    "https://cdn.example/v/12345",
    "https://www.youtube.com/embed/dQw4w9WgXcQ?autoplay=1",
    "https://example.com",
    "data:video/mp4;base64,AAAA",
    "not a url",
    "",
]


class TestNormalizeUrl(unittest.TestCase):
    def test_idempotent(self) -> None:
        for url in SAMPLE_URLS:
            with self.subTest(url=url):
                once = normalize_url(url)
                self.assertEqual(normalize_url(once), once)

    def test_trailing_numeric_segment_collapses(self) -> None:
        a = normalize_url("https://cdn.example/seg/42.ts")
        b = normalize_url("https://cdn.example/seg/43.ts")
        self.assertEqual(a, b)
        self.assertEqual(a, "https://cdn.example/seg/")

    def test_segment_rotation_collapses(self) -> None:
        self.assertEqual(
            normalize_url("https://cdn.example/stream/42/segment_001.ts"),
            "https://cdn.example/stream/42/",
        )
        self.assertEqual(
            normalize_url("https://cdn.example/stream/42/segment_002.ts"),
            "https://cdn.example/stream/42/",
        )

    def test_other_segment_shapes(self) -> None:
        self.assertEqual(normalize_url("https://cdn.example/x/12_34.ts"), "https://cdn.example/x/")
        self.assertEqual(normalize_url("https://cdn.example/x/part-3.mp4"), "https://cdn.example/x/")
        self.assertEqual(normalize_url("https://cdn.example/x/chunk_9"), "https://cdn.example/x/")
        self.assertEqual(normalize_url("https://cdn.example/v/deadbeef99"), "https://cdn.example/v/")
        self.assertEqual(normalize_url("https://cdn.example/v/Ab3dE9xYzQ"), "https://cdn.example/v/")

    def test_named_file_is_kept(self) -> None:
        self.assertEqual(
            normalize_url("https://cdn.example/v/abc123.mp4"),
            "https://cdn.example/v/abc123.mp4",
        )
        self.assertEqual(
            normalize_url("https://cdn.example/v/clip1234.mp4"),
            "https://cdn.example/v/clip1234.mp4",
        )
        # hex stem with an extension is a file name, not a segment
        self.assertEqual(
            normalize_url("https://cdn.example/v/deadbeef99.mp4"),
            "https://cdn.example/v/deadbeef99.mp4",
        )

    def test_query_whitelist_fragment_and_default_port(self) -> None:
        self.assertEqual(
            normalize_url("https://Example.COM:443/watch?v=abc&utm_source=x#t=10"),
            "https://example.com/watch?v=abc",
        )

    def test_query_keys_case_insensitive_last_value_wins(self) -> None:
        self.assertEqual(normalize_url("https://a.example/p?ID=1&id=2"), "https://a.example/p?ID=2")

    def test_non_default_port_kept(self) -> None:
        self.assertEqual(normalize_url("http://example.com:8080/a.mp4"), "http://example.com:8080/a.mp4")

    def test_root_path(self) -> None:
        self.assertEqual(normalize_url("https://example.com"), "https://example.com/")

    def test_fail_open(self) -> None:
        for raw in ("not a url", "data:video/mp4;base64,AAAA", "blob:https://a.example/x", "/relative/clip.mp4", ""):
            with self.subTest(raw=raw):
                self.assertEqual(normalize_url(raw), raw)
        self.assertIsNone(normalize_url(None))  # type: ignore[arg-type]

    def test_embed_paths_preserved(self) -> None:
        self.assertEqual(
            normalize_url("https://www.youtube.com/embed/dQw4w9WgXcQ?autoplay=1"),
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
        )
        self.assertEqual(
            normalize_url("https://player.vimeo.com/video/76979871"),
            "https://player.vimeo.com/video/76979871",
        )


class TestUrlHelpers(unittest.TestCase):
    def test_extract_file_name(self) -> None:
        self.assertEqual(extract_file_name("https://cdn.example/v/abc123.mp4?x=1#t"), "abc123.mp4")
        self.assertIsNone(extract_file_name("https://cdn.example/v/"))
        self.assertIsNone(extract_file_name("blob:https://cdn.example/v/abc"))

    def test_extract_extension(self) -> None:
        self.assertEqual(extract_extension("https://cdn.example/v/Clip.MP4"), "mp4")
        self.assertIsNone(extract_extension("https://cdn.example/v/clip"))
        self.assertIsNone(extract_extension("https://cdn.example/v/.hidden"))

    def test_strip_extension(self) -> None:
        self.assertEqual(strip_extension("clip.final.mp4"), "clip.final")
        self.assertEqual(strip_extension("clip"), "clip")
        self.assertEqual(strip_extension(".hidden"), ".hidden")

    def test_extract_hash_tokens(self) -> None:
        tokens = extract_hash_tokens(
            "https://cdn.example/v/60acff2e-c00a-4acc-bc6d-d0c303a2a85a.mp4?token=Ab12Cd34Ef&page=2"
        )
        self.assertEqual(tokens, frozenset({"60acff2e-c00a-4acc-bc6d-d0c303a2a85a", "ab12cd34ef"}))

    def test_extract_hash_tokens_ignores_plain_names(self) -> None:
        self.assertEqual(extract_hash_tokens("https://cdn.example/v/intro.mp4?t=10"), frozenset())
        self.assertEqual(extract_hash_tokens("not a url"), frozenset())


if __name__ == "__main__":
    unittest.main()
