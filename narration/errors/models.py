"""
Data models for the error classification system.

The type → severity / recoverability mapping is a static table so the
taxonomy can be audited in one place.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ErrorType(Enum):
    """Closed taxonomy of failures reported by the narration core."""

    PDF_LOAD_ERROR = "PDF_LOAD_ERROR"
    TEXT_EXTRACTION_ERROR = "TEXT_EXTRACTION_ERROR"
    OCR_ERROR = "OCR_ERROR"
    AUDIO_SYNTHESIS_ERROR = "AUDIO_SYNTHESIS_ERROR"
    PAGE_NAVIGATION_ERROR = "PAGE_NAVIGATION_ERROR"
    SYNCHRONIZATION_ERROR = "SYNCHRONIZATION_ERROR"
    PERFORMANCE_ERROR = "PERFORMANCE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    BROWSER_COMPATIBILITY_ERROR = "BROWSER_COMPATIBILITY_ERROR"


class ErrorSeverity(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ErrorType → (severity, recoverable)
ERROR_TAXONOMY: Dict[ErrorType, Tuple[ErrorSeverity, bool]] = {
    ErrorType.PDF_LOAD_ERROR: (ErrorSeverity.CRITICAL, False),
    ErrorType.BROWSER_COMPATIBILITY_ERROR: (ErrorSeverity.CRITICAL, False),
    ErrorType.TEXT_EXTRACTION_ERROR: (ErrorSeverity.HIGH, True),
    ErrorType.AUDIO_SYNTHESIS_ERROR: (ErrorSeverity.HIGH, True),
    ErrorType.SYNCHRONIZATION_ERROR: (ErrorSeverity.HIGH, True),
    ErrorType.OCR_ERROR: (ErrorSeverity.MEDIUM, True),
    ErrorType.PAGE_NAVIGATION_ERROR: (ErrorSeverity.MEDIUM, True),
    ErrorType.PERFORMANCE_ERROR: (ErrorSeverity.MEDIUM, True),
    ErrorType.VALIDATION_ERROR: (ErrorSeverity.LOW, True),
    ErrorType.NETWORK_ERROR: (ErrorSeverity.LOW, True),
}

# Advisory labels shown to the user; not executed.
DEFAULT_RECOVERY_ACTIONS: List[str] = ["Retry operation", "Reset to default state"]

RECOVERY_ACTIONS: Dict[ErrorType, List[str]] = {
    ErrorType.TEXT_EXTRACTION_ERROR: [
        "Try OCR extraction",
        "Skip problematic page",
        "Use alternative text extraction method",
    ],
    ErrorType.OCR_ERROR: [
        "Fallback to standard text extraction",
        "Skip page with OCR issues",
        "Reduce image quality and retry",
    ],
    ErrorType.AUDIO_SYNTHESIS_ERROR: [
        "Try different voice",
        "Reduce text chunk size",
        "Use system default voice",
        "Skip problematic text segment",
    ],
    ErrorType.PAGE_NAVIGATION_ERROR: [
        "Validate page number",
        "Navigate to nearest valid page",
        "Reset to first page",
    ],
    ErrorType.SYNCHRONIZATION_ERROR: [
        "Recalculate page mappings",
        "Reset synchronization state",
        "Restart from current position",
    ],
}


def severity_of(error_type: ErrorType) -> ErrorSeverity:
    return ERROR_TAXONOMY[error_type][0]


def is_recoverable(error_type: ErrorType) -> bool:
    return ERROR_TAXONOMY[error_type][1]


def recovery_actions_for(error_type: ErrorType) -> List[str]:
    return list(RECOVERY_ACTIONS.get(error_type, DEFAULT_RECOVERY_ACTIONS))


@dataclass
class ErrorInfo:
    """
    One entry in the error log.

    ``recovered`` is filled in after recovery has been attempted;
    it stays ``None`` for non-recoverable types.
    """

    type: ErrorType
    severity: ErrorSeverity
    message: str
    context: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    recoverable: bool = False
    recovery_actions: List[str] = field(default_factory=list)
    recovered: Optional[bool] = None

    @property
    def is_user_visible(self) -> bool:
        """CRITICAL errors and unrecovered HIGH errors halt the operation."""
        if self.severity == ErrorSeverity.CRITICAL:
            return True
        return self.severity == ErrorSeverity.HIGH and not self.recovered

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "context": self.context,
            "details": {k: _jsonable(v) for k, v in self.details.items()},
            "timestamp": round(self.timestamp, 3),
            "recoverable": self.recoverable,
            "recoveryActions": list(self.recovery_actions),
            "recovered": self.recovered,
        }

    def __repr__(self) -> str:
        return f"ErrorInfo([{self.severity.value}] {self.type.value}: {self.message!r})"


@dataclass
class ErrorStatistics:
    """Diagnostic summary of the error log."""

    total_errors: int
    errors_by_type: Dict[ErrorType, int]
    errors_by_severity: Dict[ErrorSeverity, int]
    recent_errors: List[ErrorInfo]


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)
