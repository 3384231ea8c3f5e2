"""Error classification, logging, and recovery for the narration core."""

from .exceptions import (
    NarrationError,
    NavigationError,
    OCRError,
    PageMapError,
    PDFLoadError,
    SynthesisError,
    TextExtractionError,
)
from .handler import MAX_RECOVERY_ACTIONS, ErrorHandler
from .models import (
    ERROR_TAXONOMY,
    RECOVERY_ACTIONS,
    ErrorInfo,
    ErrorSeverity,
    ErrorStatistics,
    ErrorType,
)

__all__ = [
    "ErrorHandler",
    "ErrorInfo",
    "ErrorSeverity",
    "ErrorStatistics",
    "ErrorType",
    "ERROR_TAXONOMY",
    "RECOVERY_ACTIONS",
    "MAX_RECOVERY_ACTIONS",
    "NarrationError",
    "NavigationError",
    "OCRError",
    "PageMapError",
    "PDFLoadError",
    "SynthesisError",
    "TextExtractionError",
]
