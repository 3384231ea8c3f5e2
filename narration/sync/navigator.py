"""
Page navigation controller.

Each :meth:`NavigationController.navigate_to_page` request goes through
``VALIDATING → DEBOUNCING → RESOLVING → APPLYING``:

1. **Validating** — the page number must be an integer in
   ``[1, total_pages]``.
2. **Debouncing** — the request waits ``debounce_seconds``.  A newer
   request arriving in the meantime cancels the wait; a generation
   counter makes sure only the latest request can apply, whatever
   order the timers complete in.
3. **Resolving** — an empty page is redirected to the next page with
   content.  When none exists the request fails and state is untouched.
4. **Applying** — the tracker jumps to the start of the page.

Failures are reported through the session's :class:`ErrorHandler` as
``PAGE_NAVIGATION_ERROR`` and the request resolves to ``False``.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from narration.errors import ErrorHandler, NavigationError

from .tracker import PlaybackTracker

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

RedirectListener = Callable[[int, int], None]


class NavigationController:
    """
    Validates, debounces, and applies page-jump requests.

    Must be used from a single event loop.
    """

    def __init__(
        self,
        tracker: PlaybackTracker,
        error_handler: ErrorHandler,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self._tracker = tracker
        self._errors = error_handler
        self.debounce_seconds = debounce_seconds
        self._generation = 0
        self._pending: Optional[asyncio.Future] = None
        self._destroyed = False
        self._redirect_listeners: List[RedirectListener] = []

    def add_redirect_listener(self, listener: RedirectListener) -> None:
        """Be told ``(requested, resolved)`` when an empty page is skipped."""
        self._redirect_listeners.append(listener)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def navigate_to_page(
        self, page_number: Any, start_playback: bool = False
    ) -> bool:
        """
        Navigate to *page_number* once the debounce window has passed.

        Returns:
            ``True`` if the page (or the page it was redirected to) is
            now current.  ``False`` on failure, or when a newer request
            superseded this one.
        """
        total_pages = self._tracker.get_state().total_pages

        # -- Validating ---------------------------------------------------
        if self._destroyed:
            logger.debug("Navigation to %r ignored: controller destroyed", page_number)
            return False
        if not self._is_valid_page(page_number, total_pages):
            await self._errors.handle_page_navigation_error(
                NavigationError(
                    f"Invalid page number: {page_number}. "
                    f"Must be between 1 and {total_pages}"
                ),
                target_page=page_number,
                total_pages=total_pages,
            )
            return False

        # -- Debouncing ---------------------------------------------------
        self._generation += 1
        generation = self._generation
        self._cancel_pending()

        timer = asyncio.ensure_future(asyncio.sleep(self.debounce_seconds))
        self._pending = timer
        try:
            await timer
        except asyncio.CancelledError:
            if not self._is_current(generation):
                logger.debug("Navigation to page %d superseded", page_number)
                return False
            raise
        finally:
            if self._pending is timer:
                self._pending = None

        if not self._is_current(generation):
            logger.debug("Navigation to page %d superseded", page_number)
            return False

        # -- Resolving ----------------------------------------------------
        page_map = self._tracker.page_map
        mapping = page_map.get(page_number) if page_map is not None else None
        if mapping is None:
            await self._errors.handle_page_navigation_error(
                NavigationError(f"Page mapping not found for page {page_number}"),
                target_page=page_number,
                total_pages=total_pages,
            )
            return False

        if mapping.is_empty:
            target = page_map.next_non_empty(page_number)
            if target is None:
                await self._errors.handle_page_navigation_error(
                    NavigationError(
                        f"Page {page_number} is empty and no subsequent pages "
                        f"have content."
                    ),
                    target_page=page_number,
                    total_pages=total_pages,
                )
                return False

            logger.info(
                "Page %d is empty. Jumping to page %d with content.",
                page_number,
                target,
            )
            if not await self.navigate_to_page(target, start_playback):
                return False
            for listener in list(self._redirect_listeners):
                try:
                    listener(page_number, target)
                except Exception as e:
                    logger.warning("Redirect listener %r raised: %s", listener, e)
            return True

        # -- Applying -----------------------------------------------------
        self._tracker.jump_to(mapping, start_playback)
        logger.debug("Navigated to page %d", page_number)
        return True

    async def next_page(self, start_playback: bool = False) -> bool:
        state = self._tracker.get_state()
        return await self.navigate_to_page(state.current_page + 1, start_playback)

    async def previous_page(self, start_playback: bool = False) -> bool:
        state = self._tracker.get_state()
        return await self.navigate_to_page(state.current_page - 1, start_playback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def has_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def cancel(self) -> None:
        """Drop any pending request without applying it."""
        self._generation += 1
        self._cancel_pending()

    def destroy(self) -> None:
        """Cancel pending work and refuse further requests."""
        self._destroyed = True
        self.cancel()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _is_valid_page(page_number: Any, total_pages: int) -> bool:
        if isinstance(page_number, bool) or not isinstance(page_number, int):
            return False
        return 1 <= page_number <= total_pages

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and not self._destroyed

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def __repr__(self) -> str:
        return (
            f"NavigationController(debounce={self.debounce_seconds}s, "
            f"pending={self.has_pending})"
        )
