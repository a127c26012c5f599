"""Custom exceptions for notemerge.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001

    # Label errors (3xxx)
    LABEL_INVALID = 3002

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002

    # Import errors (45xx)
    IMPORT_FAILED = 4501

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class NoteMergeError(Exception):
    """Base exception for all notemerge errors.

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


class NoteNotFoundError(NoteMergeError):
    """Raised when a note cannot be found."""

    def __init__(self, note_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID {note_id} not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class LabelError(NoteMergeError):
    """Raised for label-related errors."""

    def __init__(
        self,
        message: str,
        label_name: Optional[str] = None,
        code: ErrorCode = ErrorCode.LABEL_INVALID
    ):
        details = {}
        if label_name:
            details["label_name"] = label_name

        super().__init__(message, code=code, details=details)
        self.label_name = label_name


class StorageError(NoteMergeError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
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


class ImportFailedError(StorageError):
    """Raised when a backup import aborts and its writes are rolled back.

    Attributes:
        total_count: Number of notes in the batch
        failed_index: Position of the note being processed when the
            failure happened, or None if it happened outside the note loop
    """

    def __init__(
        self,
        message: str,
        total_count: int = 0,
        failed_index: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation="import_backup",
            code=ErrorCode.IMPORT_FAILED,
            original_error=original_error
        )
        self.total_count = total_count
        self.failed_index = failed_index
        self.details["total_count"] = total_count
        if failed_index is not None:
            self.details["failed_index"] = failed_index


class ValidationError(NoteMergeError):
    """Raised for general validation errors."""

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
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
