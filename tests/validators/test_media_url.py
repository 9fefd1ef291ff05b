import unittest

from src.shared.validators.media_url import (
    MAX_URL_LENGTH,
    has_supported_extension,
    is_streaming_path,
    validate_media_url,
)


class TestValidateMediaUrl(unittest.TestCase):
    def test_http_urls_valid(self) -> None:
        result = validate_media_url("  https://cdn.example/v/clip.mp4  ")
        self.assertTrue(result)
        self.assertEqual(result.url, "https://cdn.example/v/clip.mp4")
        self.assertTrue(validate_media_url("http://cdn.example/v/clip"))

    def test_empty(self) -> None:
        for url in (None, "", "   "):
            with self.subTest(url=url):
                result = validate_media_url(url)
                self.assertFalse(result)
                self.assertEqual(result.error, "empty URL")

    def test_inline_schemes(self) -> None:
        self.assertFalse(validate_media_url("blob:https://a.example/123"))
        self.assertTrue(validate_media_url("blob:https://a.example/123", allow_inline=True))
        self.assertTrue(validate_media_url("data:video/mp4;base64,AAAA", allow_inline=True))

    def test_unsupported_schemes(self) -> None:
        self.assertFalse(validate_media_url("ftp://files.example/clip.mp4"))
        self.assertFalse(validate_media_url("javascript:void(0)"))
        self.assertFalse(validate_media_url("/relative/clip.mp4"))

    def test_length_limit(self) -> None:
        base = "https://cdn.example/"
        ok = base + "a" * (MAX_URL_LENGTH - len(base))
        too_long = ok + "a"
        self.assertTrue(validate_media_url(ok))
        self.assertFalse(validate_media_url(too_long))

    def test_missing_host(self) -> None:
        self.assertFalse(validate_media_url("https:///clip.mp4"))

    def test_streaming_paths(self) -> None:
        self.assertFalse(validate_media_url("https://cdn.example/live/master.m3u8"))
        self.assertFalse(validate_media_url("https://cdn.example/dash/manifest.mpd"))
        self.assertFalse(validate_media_url("https://cdn.example/stream/42/segment_001.ts"))
        self.assertTrue(validate_media_url("https://cdn.example/stream/42/segment_001.mp4"))

    def test_helpers(self) -> None:
        self.assertTrue(has_supported_extension("/a/b.MKV"))
        self.assertFalse(has_supported_extension("/a/b.ts"))
        self.assertTrue(is_streaming_path("/hls/Playlist/x"))
        self.assertFalse(is_streaming_path("/videos/clip.mp4"))


if __name__ == "__main__":
    unittest.main()
