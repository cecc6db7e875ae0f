"""
Custom exceptions for the EnergyTune analytics engine.

Each exception includes:
- A descriptive message
- An error code for callers that surface errors to the UI
- Optional details for debugging

Missing data is never an exception in normal operation: insights degrade to a
low-confidence variant and pattern results degrade to an empty result.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent error reporting."""

    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Entry errors
    ENTRY_VALIDATION_ERROR = "ENTRY_VALIDATION_ERROR"

    # Analysis run errors
    ANALYSIS_ABORTED = "ANALYSIS_ABORTED"
    CLUSTERING_FAILED = "CLUSTERING_FAILED"


class EnergyTuneError(Exception):
    """
    Base exception for all analytics engine errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for the UI collaborator."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class EntryValidationError(EnergyTuneError):
    """Raised when a raw journal entry cannot be normalized."""

    def __init__(
        self,
        message: str,
        entry_date: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if entry_date:
            error_details["date"] = entry_date
        super().__init__(
            message=message,
            code=ErrorCode.ENTRY_VALIDATION_ERROR,
            details=error_details,
        )


class AnalysisAbortedError(EnergyTuneError):
    """Raised by cooperative checks once the user has aborted the run."""

    def __init__(self, message: str = "Analysis aborted by user") -> None:
        super().__init__(message=message, code=ErrorCode.ANALYSIS_ABORTED)


class ClusteringError(EnergyTuneError):
    """Raised when clustering fails unexpectedly for one metric."""

    def __init__(
        self,
        metric: str,
        mode: str,
        reason: str,
    ) -> None:
        super().__init__(
            message=f"Pattern clustering failed for {metric} ({mode}): {reason}",
            code=ErrorCode.CLUSTERING_FAILED,
            details={"metric": metric, "mode": mode},
        )
        self.metric = metric
        self.mode = mode
