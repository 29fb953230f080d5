"""
Unified exception hierarchy for StudyBuddy practice generation.

All domain exceptions inherit from PracticeError and carry:
- error_code: machine-readable string (e.g. "SESSION_NOT_FOUND")
- status_code: HTTP status code
- message: human-readable description
- context: optional structured metadata dict

Extraction and generation-service failures are returned as values, not
raised; only validation of model output, missing records and storage
failures use these exceptions.
"""

from typing import Optional, Dict, Any


class PracticeError(Exception):
    """Base exception for all practice domain errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
        }


class ValidationError(PracticeError):
    """400-level validation / bad-request errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_REQUEST",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=400, context=context)


class NotFoundError(PracticeError):
    """404 resource-not-found errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "SESSION_NOT_FOUND",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=404, context=context)


class GenerationError(PracticeError):
    """500-level generation failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERATION_FAILED",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=500, context=context)


class ResponseNotJsonError(GenerationError):
    """Model output could not be parsed as a JSON array."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="RESPONSE_NOT_JSON", context=context)


class ResponseEmptyError(GenerationError):
    """Model output parsed, but no element survived validation."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="RESPONSE_EMPTY", context=context)


class StorageError(PracticeError):
    """500-level database / storage failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "STORAGE_ERROR",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=500, context=context)
