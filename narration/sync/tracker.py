"""
Playback state tracker.

Holds the single mutable :class:`PlaybackState` of a session and keeps
it consistent with the page map as narration advances or the reader
jumps between pages.  Every mutation notifies the registered listeners
with a copy of the new state, in the order the mutations happen.
"""

import dataclasses
import logging
from typing import Callable, List, Optional

from .models import PageMap, PageMapping, PlaybackState

logger = logging.getLogger(__name__)

StateListener = Callable[[PlaybackState], None]


class PlaybackTracker:
    """
    Tracks the current page, sentence, and progress within the page.

    Usage::

        tracker = PlaybackTracker(page_map)
        tracker.add_listener(render_page)
        tracker.advance_to(42)
        state = tracker.get_state()
    """

    def __init__(self, page_map: Optional[PageMap] = None):
        self._page_map: Optional[PageMap] = None
        self._state = PlaybackState()
        self._listeners: List[StateListener] = []
        self._jumps = 0
        if page_map is not None:
            self.load(page_map)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, page_map: PageMap) -> None:
        """Start tracking a new document from its first page."""
        self._page_map = page_map
        self._state = PlaybackState(
            total_pages=page_map.total_pages,
            total_sentences=page_map.total_sentences,
        )
        self._notify()

    def reset(self) -> None:
        """Forget the current document."""
        self._page_map = None
        self._state = PlaybackState()

    @property
    def page_map(self) -> Optional[PageMap]:
        return self._page_map

    @property
    def jump_count(self) -> int:
        """Number of reader-initiated moves (page or sentence jumps) so far."""
        return self._jumps

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def get_state(self) -> PlaybackState:
        """Return a copy; mutating it does not affect the tracker."""
        return dataclasses.replace(self._state)

    def set_playing(self, is_playing: bool) -> None:
        self._state.is_playing = bool(is_playing)
        self._notify()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def advance_to(self, sentence_index: int) -> None:
        """
        Move to *sentence_index* as narration reaches it.

        Out-of-range indices are ignored: the narration loop calls this
        with ``total_sentences`` when the document ends.
        """
        self._move_to(sentence_index)

    def seek(self, sentence_index: int) -> bool:
        """
        Jump to *sentence_index* on the reader's request.

        Unlike :meth:`advance_to` this counts as a jump, so a running
        narration loop resumes from here.
        """
        if not self._move_to(sentence_index, notify=False):
            return False
        self._jumps += 1
        self._notify()
        return True

    def jump_to(self, mapping: PageMapping, start_playback: bool = False) -> None:
        """Place the cursor at the start of *mapping*'s page."""
        self._jumps += 1
        self._state.current_page = mapping.page_number
        self._state.current_sentence_index = mapping.start_sentence_index
        self._state.current_char_index = mapping.start_char_index
        self._state.playback_position = 0.0
        if start_playback:
            self._state.is_playing = True
        self._notify()

    def restore(self, state: PlaybackState) -> None:
        """Re-apply a previously captured position (after a map rebuild)."""
        self._state = dataclasses.replace(
            state,
            total_pages=self._state.total_pages,
            total_sentences=self._state.total_sentences,
        )
        self._notify()

    def calculate_page_progress(self) -> float:
        """Progress through the current page, 0 when it cannot be computed."""
        if self._page_map is None:
            return 0.0
        mapping = self._page_map.get(self._state.current_page)
        if mapping is None or mapping.is_empty:
            return 0.0
        return _page_progress(mapping, self._state.current_sentence_index)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _move_to(self, sentence_index: int, notify: bool = True) -> bool:
        if self._page_map is None:
            return False
        if sentence_index < 0 or sentence_index >= self._state.total_sentences:
            return False

        page_number = self._page_map.page_for_sentence(sentence_index)
        mapping = self._page_map.get(page_number) if page_number else None
        if mapping is None:
            return False

        self._state.current_page = page_number
        self._state.current_sentence_index = sentence_index
        self._state.current_char_index = self._page_map.char_offset(sentence_index)
        self._state.playback_position = _page_progress(mapping, sentence_index)
        if notify:
            self._notify()
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.get_state())
            except Exception as e:
                logger.warning("State listener %r raised: %s", listener, e)

    def __repr__(self) -> str:
        s = self._state
        return (
            f"PlaybackTracker(page={s.current_page}/{s.total_pages}, "
            f"sentence={s.current_sentence_index}/{s.total_sentences}, "
            f"pos={s.playback_position:.2f}, playing={s.is_playing})"
        )


def _page_progress(mapping: PageMapping, sentence_index: int) -> float:
    position = (sentence_index - mapping.start_sentence_index) / max(
        1, mapping.sentence_count
    )
    return max(0.0, min(1.0, position))
