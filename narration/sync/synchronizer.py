"""
Page–audio synchroniser.

Owns the page map, the playback tracker, and the navigation controller
for one open document, and exposes them behind a single object that the
narration player, the CLI, and any renderer talk to.

Usage::

    sync = PageAudioSynchronizer(ErrorHandler())
    sync.load(sentences, total_pages=10)
    await sync.navigate_to_page(3)
    sync.advance_to(42)
    print(sync.get_state())
"""

import logging
from typing import Callable, List, Optional, Sequence

from core.document.models import PageText
from narration.errors import ErrorHandler

from .models import AudioPosition, PageMap, PageMapping, PlaybackState
from .navigator import DEFAULT_DEBOUNCE_SECONDS, NavigationController
from .page_mapper import build_page_map
from .tracker import PlaybackTracker, StateListener

logger = logging.getLogger(__name__)


class PageAudioSynchronizer:
    """
    Keeps narration position and displayed page in lockstep.

    One instance per open document session; construct a new one (or
    call :meth:`load` again) when a different document is opened.
    """

    def __init__(
        self,
        error_handler: Optional[ErrorHandler] = None,
        on_state_change: Optional[StateListener] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.errors = error_handler or ErrorHandler()
        self._tracker = PlaybackTracker()
        self._navigator = NavigationController(
            self._tracker, self.errors, debounce_seconds=debounce_seconds
        )
        self._sentences: List[str] = []
        self._page_sources: Optional[List[PageText]] = None
        if on_state_change is not None:
            self._tracker.add_listener(on_state_change)

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def load(
        self,
        sentences: Sequence[str],
        total_pages: int,
        page_sources: Optional[Sequence[PageText]] = None,
    ) -> PageMap:
        """
        Index a document and reset playback to its first page.

        Any pending navigation for the previous document is cancelled.

        Raises:
            PageMapError: If the map cannot be built; the previous
                          document stays loaded in that case.
        """
        page_map = build_page_map(sentences, total_pages, page_sources)
        self._navigator.cancel()
        self._sentences = list(sentences)
        self._page_sources = list(page_sources) if page_sources is not None else None
        self._tracker.load(page_map)
        logger.info(
            "Indexed %d sentences across %d pages",
            page_map.total_sentences,
            page_map.total_pages,
        )
        return page_map

    def rebuild(self) -> bool:
        """
        Recompute the page map from the stored sentences and restore the
        current sentence.  Used as a synchronisation recovery action.
        """
        if self.page_map is None:
            return False
        previous = self._tracker.get_state()
        page_map = build_page_map(
            self._sentences, previous.total_pages, self._page_sources
        )
        self._navigator.cancel()
        self._tracker.load(page_map)
        if previous.total_sentences:
            self._tracker.advance_to(previous.current_sentence_index)
        self._tracker.set_playing(previous.is_playing)
        logger.info("Page map rebuilt at sentence %d", previous.current_sentence_index)
        return True

    def destroy(self) -> None:
        """Cancel pending navigation and drop the document index."""
        self._navigator.destroy()
        self._tracker.reset()
        self._sentences = []
        self._page_sources = None

    # ------------------------------------------------------------------
    # Navigation & playback
    # ------------------------------------------------------------------

    async def navigate_to_page(
        self, page_number: int, start_playback: bool = False
    ) -> bool:
        return await self._navigator.navigate_to_page(page_number, start_playback)

    async def next_page(self, start_playback: bool = False) -> bool:
        return await self._navigator.next_page(start_playback)

    async def previous_page(self, start_playback: bool = False) -> bool:
        return await self._navigator.previous_page(start_playback)

    def go_to_sentence(self, sentence_index: int) -> bool:
        """
        Jump straight to a sentence, clamped to the document.

        Applies immediately and supersedes any pending page request.
        Returns ``False`` only when no document is loaded.
        """
        total = self._tracker.get_state().total_sentences
        if total == 0:
            return False
        target = max(0, min(int(sentence_index), total - 1))
        self._navigator.cancel()
        self._tracker.seek(target)
        logger.debug("Moved to sentence %d", target)
        return True

    def skip_sentences(self, delta: int) -> bool:
        """Move *delta* sentences forward (or back when negative)."""
        current = self._tracker.get_state().current_sentence_index
        return self.go_to_sentence(current + delta)

    @property
    def jump_count(self) -> int:
        return self._tracker.jump_count

    def advance_to(self, sentence_index: int) -> None:
        self._tracker.advance_to(sentence_index)

    def set_playing(self, is_playing: bool) -> None:
        self._tracker.set_playing(is_playing)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_state(self) -> PlaybackState:
        return self._tracker.get_state()

    @property
    def page_map(self) -> Optional[PageMap]:
        return self._tracker.page_map

    @property
    def sentences(self) -> List[str]:
        return list(self._sentences)

    @property
    def navigator(self) -> NavigationController:
        return self._navigator

    def sentence(self, index: int) -> Optional[str]:
        if 0 <= index < len(self._sentences):
            return self._sentences[index]
        return None

    def get_page_mapping(self, page_number: int) -> Optional[PageMapping]:
        if self.page_map is None:
            return None
        return self.page_map.get(page_number)

    def get_all_page_mappings(self) -> List[PageMapping]:
        if self.page_map is None:
            return []
        return self.page_map.ordered()

    def get_audio_position_for_page(self, page_number: int) -> Optional[AudioPosition]:
        """Sentence and character offset at which *page_number* starts."""
        mapping = self.get_page_mapping(page_number)
        if mapping is None:
            return None
        return AudioPosition(
            sentence_index=mapping.start_sentence_index,
            page_number=page_number,
            character_offset=mapping.start_char_index,
        )

    def calculate_page_progress(self) -> float:
        return self._tracker.calculate_page_progress()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: StateListener) -> None:
        self._tracker.add_listener(listener)

    def remove_listener(self, listener: StateListener) -> None:
        self._tracker.remove_listener(listener)

    def add_redirect_listener(self, listener: Callable[[int, int], None]) -> None:
        self._navigator.add_redirect_listener(listener)

    def __repr__(self) -> str:
        return f"PageAudioSynchronizer({self.page_map!r}, {self._tracker!r})"
