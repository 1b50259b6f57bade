"""Custom exceptions for the Keeper note store.

Provides a structured exception hierarchy with error codes and
machine-readable error information for callers that surface failures
over HTTP or to a chat tool.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001

    # Tag errors (3xxx)
    TAG_INVALID = 3002

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_SCHEMA_FAILED = 4003

    # Media errors (8xxx)
    MEDIA_UNSUPPORTED = 8001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class KeeperError(Exception):
    """Base exception for all Keeper store errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(KeeperError):
    """Raised when an operation targets a note id that does not exist."""

    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note not found: {note_id}",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class ValidationError(KeeperError):
    """Raised when an argument fails validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]  # Truncate for safety

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class StorageError(KeeperError):
    """Raised when the backing store itself fails.

    Adapters raise this from the driver exception, so the original
    sqlite3/SQLAlchemy error is kept as ``__cause__`` and in
    ``original_error``.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.original_error = original_error


class UnsupportedOperationError(KeeperError):
    """Raised by media operations when no blob store is wired up."""

    def __init__(self, operation: str):
        super().__init__(
            f"{operation}: must be provided by a storage-capable host",
            code=ErrorCode.MEDIA_UNSUPPORTED,
            details={"operation": operation}
        )
        self.operation = operation
