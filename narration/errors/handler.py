"""
Error classifier and recovery engine.

Every failure in the narration core is funnelled through
:meth:`ErrorHandler.handle`, which:

1. **Classifies** the failure using the static taxonomy
   (:data:`~narration.errors.models.ERROR_TAXONOMY`).
2. **Logs** it into a bounded ring buffer and to the ``logging``
   module at a level matching its severity.
3. **Recovers** — for recoverable types, runs the registered recovery
   actions in order until one reports success.

Usage::

    handler = ErrorHandler()
    handler.register_recovery(ErrorType.AUDIO_SYNTHESIS_ERROR, switch_voice)
    recovered = await handler.handle(ErrorType.AUDIO_SYNTHESIS_ERROR, exc)
"""

import inspect
import json
import logging
import threading
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Union

from .exceptions import NarrationError
from .models import (
    ErrorInfo,
    ErrorSeverity,
    ErrorStatistics,
    ErrorType,
    is_recoverable,
    recovery_actions_for,
    severity_of,
)

logger = logging.getLogger(__name__)

RecoveryAction = Callable[[ErrorInfo], Union[bool, Awaitable[bool]]]
ErrorListener = Callable[[ErrorInfo], None]
RecoveryListener = Callable[[bool, ErrorInfo], None]

DEFAULT_MAX_LOG_SIZE = 100
MAX_RECOVERY_ACTIONS = 3
RECENT_ERRORS = 10

_SEVERITY_LOG_LEVEL = {
    ErrorSeverity.CRITICAL: logging.ERROR,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.LOW: logging.INFO,
}


class ErrorHandler:
    """
    Classifies, logs, and attempts recovery for narration failures.

    One instance is owned by each session; components receive it
    through their constructors.
    """

    def __init__(
        self,
        max_log_size: int = DEFAULT_MAX_LOG_SIZE,
        on_error: Optional[ErrorListener] = None,
        on_recovery: Optional[RecoveryListener] = None,
    ):
        if max_log_size <= 0:
            raise ValueError(f"max_log_size must be positive, got {max_log_size}")
        self._log: Deque[ErrorInfo] = deque(maxlen=max_log_size)
        self._lock = threading.Lock()
        self._recovery: Dict[ErrorType, List[RecoveryAction]] = {}
        self._error_listeners: List[ErrorListener] = []
        self._recovery_listeners: List[RecoveryListener] = []
        if on_error is not None:
            self._error_listeners.append(on_error)
        if on_recovery is not None:
            self._recovery_listeners.append(on_recovery)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_recovery(self, error_type: ErrorType, action: RecoveryAction) -> None:
        """
        Append a recovery action for *error_type*.

        Actions receive the :class:`ErrorInfo` being handled and return
        ``True`` (or an awaitable resolving to ``True``) on success.

        Raises:
            ValueError: If the type is not recoverable or already has
                        :data:`MAX_RECOVERY_ACTIONS` actions.
        """
        if not is_recoverable(error_type):
            raise ValueError(f"{error_type.value} is not recoverable")
        actions = self._recovery.setdefault(error_type, [])
        if len(actions) >= MAX_RECOVERY_ACTIONS:
            raise ValueError(
                f"{error_type.value} already has {MAX_RECOVERY_ACTIONS} recovery actions"
            )
        actions.append(action)

    def clear_recovery(self, error_type: Optional[ErrorType] = None) -> None:
        """Drop registered recovery actions for one type, or for all."""
        if error_type is None:
            self._recovery.clear()
        else:
            self._recovery.pop(error_type, None)

    def add_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def remove_listener(self, listener: ErrorListener) -> None:
        if listener in self._error_listeners:
            self._error_listeners.remove(listener)

    def add_recovery_listener(self, listener: RecoveryListener) -> None:
        self._recovery_listeners.append(listener)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def handle(
        self,
        error_type: ErrorType,
        error: Union[BaseException, str],
        context: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Record a failure and attempt recovery.

        Args:
            error_type: Taxonomy entry for the failure.
            error:      The exception or a plain message.
            context:    Where the failure happened (free text).
            details:    Structured diagnostic data.

        Returns:
            ``True`` if a recovery action succeeded, ``False`` otherwise
            (always ``False`` for non-recoverable types).
        """
        info = self._build_info(error_type, error, context, details)
        self._log_error(info)

        for listener in list(self._error_listeners):
            _notify(listener, info)

        if not info.recoverable:
            return False

        recovered = await self._attempt_recovery(info)
        info.recovered = recovered

        for listener in list(self._recovery_listeners):
            _notify(listener, recovered, info)

        return recovered

    async def handle_exception(
        self,
        exc: BaseException,
        context: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Handle *exc*, classifying it by its ``error_type`` when it has one."""
        if isinstance(exc, NarrationError):
            error_type = exc.error_type
        else:
            error_type = ErrorType.SYNCHRONIZATION_ERROR
        return await self.handle(error_type, exc, context, details)

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def handle_pdf_load_error(
        self, error: Union[BaseException, str], file_path: Optional[str] = None
    ) -> bool:
        details = {"filePath": file_path, "errorCode": getattr(error, "errno", None)}
        return await self.handle(
            ErrorType.PDF_LOAD_ERROR, error, "PDF Document Loading", details
        )

    async def handle_text_extraction_error(
        self,
        error: Union[BaseException, str],
        page_number: Optional[int] = None,
        extraction_method: Optional[str] = None,
    ) -> bool:
        details = {
            "pageNumber": page_number,
            "extractionMethod": extraction_method,
            "fallbackAvailable": extraction_method != "ocr",
        }
        return await self.handle(
            ErrorType.TEXT_EXTRACTION_ERROR,
            error,
            f"Text Extraction - Page {page_number}",
            details,
        )

    async def handle_ocr_error(
        self, error: Union[BaseException, str], page_number: Optional[int] = None
    ) -> bool:
        details = {"pageNumber": page_number, "fallbackToTextExtraction": True}
        return await self.handle(
            ErrorType.OCR_ERROR, error, f"OCR Processing - Page {page_number}", details
        )

    async def handle_audio_synthesis_error(
        self,
        error: Union[BaseException, str],
        voice: Optional[str] = None,
        text: Optional[str] = None,
        sentence_index: Optional[int] = None,
    ) -> bool:
        details = {
            "voice": voice,
            "textLength": len(text) if text is not None else None,
            "sentenceIndex": sentence_index,
        }
        return await self.handle(
            ErrorType.AUDIO_SYNTHESIS_ERROR, error, "Audio Synthesis", details
        )

    async def handle_page_navigation_error(
        self,
        error: Union[BaseException, str],
        target_page: Any = None,
        total_pages: Optional[int] = None,
    ) -> bool:
        details = {
            "targetPage": target_page,
            "totalPages": total_pages,
            "validRange": f"1-{total_pages}" if total_pages else "unknown",
        }
        return await self.handle(
            ErrorType.PAGE_NAVIGATION_ERROR, error, "Page Navigation", details
        )

    async def handle_synchronization_error(
        self,
        error: Union[BaseException, str],
        current_page: Optional[int] = None,
        sentence_index: Optional[int] = None,
    ) -> bool:
        details = {
            "currentPage": current_page,
            "sentenceIndex": sentence_index,
            "syncState": "desynchronized",
        }
        return await self.handle(
            ErrorType.SYNCHRONIZATION_ERROR,
            error,
            "Page-Audio Synchronization",
            details,
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def statistics(self) -> ErrorStatistics:
        """Count logged errors by type and severity."""
        by_type = {t: 0 for t in ErrorType}
        by_severity = {s: 0 for s in ErrorSeverity}
        entries = self.entries()
        for info in entries:
            by_type[info.type] += 1
            by_severity[info.severity] += 1
        return ErrorStatistics(
            total_errors=len(entries),
            errors_by_type=by_type,
            errors_by_severity=by_severity,
            recent_errors=entries[-RECENT_ERRORS:],
        )

    def entries(self) -> List[ErrorInfo]:
        """Snapshot of the log, oldest first."""
        with self._lock:
            return list(self._log)

    def recent(self, n: int = RECENT_ERRORS) -> List[ErrorInfo]:
        if n <= 0:
            return []
        return self.entries()[-n:]

    def clear(self) -> None:
        with self._lock:
            self._log.clear()

    def export_log(self) -> str:
        """Serialise the log as pretty-printed JSON."""
        return json.dumps([e.to_dict() for e in self.entries()], indent=2)

    @property
    def max_log_size(self) -> int:
        return self._log.maxlen

    def __len__(self) -> int:
        with self._lock:
            return len(self._log)

    def __repr__(self) -> str:
        return f"ErrorHandler(logged={len(self)}, capacity={self.max_log_size})"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _build_info(
        error_type: ErrorType,
        error: Union[BaseException, str],
        context: Optional[str],
        details: Optional[Dict[str, Any]],
    ) -> ErrorInfo:
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
            merged: Dict[str, Any] = {"exception": type(error).__name__}
            merged.update(getattr(error, "details", None) or {})
        else:
            message = error
            merged = {}
        if details:
            merged.update(details)

        return ErrorInfo(
            type=error_type,
            severity=severity_of(error_type),
            message=message,
            context=context,
            details=merged,
            recoverable=is_recoverable(error_type),
            recovery_actions=recovery_actions_for(error_type),
        )

    def _log_error(self, info: ErrorInfo) -> None:
        with self._lock:
            self._log.append(info)
        level = _SEVERITY_LOG_LEVEL[info.severity]
        if info.context:
            logger.log(
                level,
                "[%s] %s (%s): %s",
                info.severity.value,
                info.type.value,
                info.context,
                info.message,
            )
        else:
            logger.log(
                level, "[%s] %s: %s", info.severity.value, info.type.value, info.message
            )

    async def _attempt_recovery(self, info: ErrorInfo) -> bool:
        actions = self._recovery.get(info.type, [])
        if not actions:
            logger.debug("No recovery strategy for %s", info.type.value)
            return False

        for action in list(actions):
            try:
                result = action(info)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.warning(
                    "Recovery action %s failed for %s: %s",
                    getattr(action, "__name__", repr(action)),
                    info.type.value,
                    e,
                )
                continue
            if result:
                logger.info("Recovered from %s", info.type.value)
                return True

        logger.debug("All recovery actions failed for %s", info.type.value)
        return False


def _notify(listener: Callable[..., None], *args: Any) -> None:
    try:
        listener(*args)
    except Exception as e:
        logger.warning("Error listener %r raised: %s", listener, e)
