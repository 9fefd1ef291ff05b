import unittest
from datetime import datetime, timezone

from src.shared.detection import (
    CandidateRecord,
    DuplicateSignal,
    MediaKind,
    filter_cross_pass,
    find_cross_pass_duplicate,
    is_cross_pass_duplicate,
)


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _rec(record_id: str, url: str, title: str = "") -> CandidateRecord:
    return CandidateRecord(
        id=record_id,
        source_url=url,
        title=title,
        media_kind=MediaKind.DIRECT_MEDIA,
        first_seen_at=T0,
    )


class TestCrossPassDetector(unittest.TestCase):
    def test_exact_url(self) -> None:
        old = _rec("old", "https://cdn.example/v/intro.mp4", "Alpha")
        new = _rec("new", "https://cdn.example/v/intro.mp4", "Zulu")
        match = find_cross_pass_duplicate(new, [old])
        self.assertEqual(match.signal, DuplicateSignal.EXACT_URL)
        self.assertIs(match.existing, old)

    def test_exact_file_name(self) -> None:
        old = _rec("old", "https://a.example/one/clip.mp4", "Alpha")
        new = _rec("new", "https://b.example/two/clip.mp4", "Zulu")
        self.assertEqual(find_cross_pass_duplicate(new, [old]).signal, DuplicateSignal.EXACT_FILE_NAME)

    def test_title_similarity(self) -> None:
        old = _rec("old", "https://a.example/x/one.mp4", "Cooking pasta at home")
        new = _rec("new", "https://b.example/y/two.mp4", "Cooking pasta at home!")
        self.assertEqual(find_cross_pass_duplicate(new, [old]).signal, DuplicateSignal.TITLE_SIMILARITY)

    def test_url_similarity(self) -> None:
        old = _rec("old", "https://cdn.example/v/clip-a.mp4", "Alpha")
        new = _rec("new", "https://cdn.example/v/clip-b.mp4", "Zulu")
        self.assertEqual(find_cross_pass_duplicate(new, [old]).signal, DuplicateSignal.URL_SIMILARITY)

    def test_not_duplicate(self) -> None:
        old = _rec("old", "https://a.example/x/one.mp4", "Alpha")
        new = _rec("new", "https://b.example/y/two.webm", "Zulu")
        self.assertIsNone(find_cross_pass_duplicate(new, [old]))
        self.assertFalse(is_cross_pass_duplicate(new, []))

    def test_thresholds_are_strict(self) -> None:
        old = _rec("old", "https://a.example/x/one.mp4", "Cooking pasta at home")
        new = _rec("new", "https://b.example/y/two.webm", "Cooking pasta at home!")
        self.assertFalse(is_cross_pass_duplicate(new, [old], title_similarity=0.99))

    def test_filter_cross_pass(self) -> None:
        previous = [_rec("old", "https://cdn.example/v/intro.mp4", "Alpha")]
        again = _rec("again", "https://cdn.example/v/intro.mp4", "Alpha")
        fresh = _rec("fresh", "https://other.example/w/finale.webm", "Zulu")

        kept, matches = filter_cross_pass([again, fresh], previous)

        self.assertEqual([r.id for r in kept], ["fresh"])
        self.assertEqual(len(matches), 1)
        self.assertEqual(matches[0].existing.id, "old")


if __name__ == "__main__":
    unittest.main()
