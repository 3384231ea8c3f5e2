"""
Exception hierarchy for the narration core.

Every exception carries the :class:`ErrorType` it is classified as, so
the error handler can route it without inspecting messages.
"""

from typing import Any, Dict, Optional

from .models import ErrorType


class NarrationError(Exception):
    """Base class for classified narration failures."""

    error_type: ErrorType = ErrorType.SYNCHRONIZATION_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details: Dict[str, Any] = dict(details or {})


class PDFLoadError(NarrationError):
    error_type = ErrorType.PDF_LOAD_ERROR


class TextExtractionError(NarrationError):
    error_type = ErrorType.TEXT_EXTRACTION_ERROR


class OCRError(NarrationError):
    error_type = ErrorType.OCR_ERROR


class SynthesisError(NarrationError):
    error_type = ErrorType.AUDIO_SYNTHESIS_ERROR


class NavigationError(NarrationError):
    error_type = ErrorType.PAGE_NAVIGATION_ERROR


class PageMapError(NarrationError):
    """Raised when a page map cannot be built from the given input."""

    error_type = ErrorType.SYNCHRONIZATION_ERROR
