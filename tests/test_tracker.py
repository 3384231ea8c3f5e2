"""Tests for the playback state tracker."""

from narration.sync import PlaybackState, PlaybackTracker, build_page_map


def _tracker(n=95, pages=10):
    sentences = [f"Sentence number {i}." for i in range(n)]
    return PlaybackTracker(build_page_map(sentences, pages))


class TestAdvance:
    def test_starts_on_first_page(self):
        state = _tracker().get_state()
        assert state.current_page == 1
        assert state.current_sentence_index == 0
        assert state.total_pages == 10
        assert state.total_sentences == 95
        assert not state.is_playing

    def test_advance_into_short_last_page(self):
        tracker = _tracker()
        tracker.advance_to(92)
        state = tracker.get_state()
        assert state.current_page == 10
        assert state.current_sentence_index == 92
        assert state.playback_position == 0.4
        assert state.current_char_index == tracker.page_map.char_offset(92)

    def test_position_stays_in_unit_range(self):
        tracker = _tracker(37, 6)
        for i in range(37):
            tracker.advance_to(i)
            state = tracker.get_state()
            assert 0.0 <= state.playback_position <= 1.0
            assert tracker.page_map.get(state.current_page).contains_sentence(i)

    def test_single_sentence_pages_stay_at_zero(self):
        tracker = _tracker(10, 10)
        for i in range(10):
            tracker.advance_to(i)
            state = tracker.get_state()
            assert state.current_page == i + 1
            assert state.playback_position == 0.0
            assert tracker.calculate_page_progress() == 0.0

    def test_out_of_range_is_ignored(self):
        tracker = _tracker()
        tracker.advance_to(5)
        seen = []
        tracker.add_listener(seen.append)
        tracker.advance_to(95)
        tracker.advance_to(-1)
        assert tracker.get_state().current_sentence_index == 5
        assert seen == []

    def test_without_document_nothing_happens(self):
        tracker = PlaybackTracker()
        tracker.advance_to(3)
        assert tracker.get_state() == PlaybackState()


class TestStateAccess:
    def test_get_state_returns_a_copy(self):
        tracker = _tracker()
        state = tracker.get_state()
        state.current_page = 7
        assert tracker.get_state().current_page == 1

    def test_jump_to_page_start(self):
        tracker = _tracker()
        tracker.advance_to(33)
        tracker.jump_to(tracker.page_map.get(6), start_playback=True)
        state = tracker.get_state()
        assert state.current_page == 6
        assert state.current_sentence_index == 50
        assert state.playback_position == 0.0
        assert state.is_playing

    def test_seek_counts_as_a_jump(self):
        tracker = _tracker()
        tracker.advance_to(12)
        assert tracker.jump_count == 0
        assert tracker.seek(47)
        state = tracker.get_state()
        assert (state.current_page, state.current_sentence_index) == (5, 47)
        assert state.playback_position == 0.7
        assert tracker.jump_count == 1
        tracker.jump_to(tracker.page_map.get(2))
        assert tracker.jump_count == 2

    def test_seek_out_of_range_is_refused(self):
        tracker = _tracker()
        assert not tracker.seek(95)
        assert not tracker.seek(-1)
        assert tracker.jump_count == 0
        assert tracker.get_state().current_sentence_index == 0

    def test_restore_keeps_document_totals(self):
        tracker = _tracker()
        tracker.restore(PlaybackState(current_page=3, current_sentence_index=21))
        state = tracker.get_state()
        assert state.current_page == 3
        assert state.current_sentence_index == 21
        assert state.total_sentences == 95

    def test_page_progress(self):
        tracker = _tracker()
        assert PlaybackTracker().calculate_page_progress() == 0.0
        tracker.advance_to(15)
        assert tracker.calculate_page_progress() == 0.5


class TestListeners:
    def test_listeners_see_every_mutation_in_order(self):
        tracker = _tracker()
        seen = []
        tracker.add_listener(lambda s: seen.append(s.current_sentence_index))
        tracker.advance_to(1)
        tracker.advance_to(2)
        tracker.set_playing(True)
        assert seen == [1, 2, 2]

    def test_failing_listener_does_not_block_others(self):
        tracker = _tracker()
        seen = []

        def broken(state):
            raise RuntimeError("boom")

        tracker.add_listener(broken)
        tracker.add_listener(seen.append)
        tracker.advance_to(4)
        assert len(seen) == 1

    def test_remove_listener(self):
        tracker = _tracker()
        seen = []
        tracker.add_listener(seen.append)
        tracker.remove_listener(seen.append)
        tracker.advance_to(4)
        assert seen == []
