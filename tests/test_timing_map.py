"""Tests for the read-along timing map."""

from narration.sync import TimingMap


def _timing():
    timing = TimingMap(source="book.mp3", total_pages=2)
    timing.add(0, 1, 0.0, 1.5, "First sentence here.")
    timing.add(1, 1, 1.7, 3.0, "Second sentence here.")
    timing.add(2, 2, 3.2, 4.0, "Third sentence here.")
    return timing


class TestTimingMap:
    def test_duration(self):
        assert _timing().duration == 4.0
        assert TimingMap(source="x", total_pages=0).duration == 0.0

    def test_entry_at(self):
        timing = _timing()
        assert timing.entry_at(0.5).sentence_index == 0
        assert timing.entry_at(3.5).page_number == 2
        assert timing.entry_at(1.6) is None

    def test_page_start(self):
        timing = _timing()
        assert timing.page_start(2) == 3.2
        assert timing.page_start(3) is None

    def test_save_and_load(self, tmp_path):
        path = _timing().save(tmp_path / "maps" / "book.timing.json")
        assert path.exists()
        loaded = TimingMap.load(path)
        assert loaded.source == "book.mp3"
        assert loaded.total_pages == 2
        assert [e.text for e in loaded.entries] == [e.text for e in _timing().entries]
