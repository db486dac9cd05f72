"""Custom exceptions for the NotePlan MCP server.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_ALREADY_EXISTS = 1003
    NOTE_TITLE_REQUIRED = 1004
    NOTE_OPERATION_FORBIDDEN = 1006

    # Folder / location errors (2xxx)
    LOCATION_INVALID = 2001
    FOLDER_NOT_FOUND = 2002
    FOLDER_ALREADY_EXISTS = 2003
    FOLDER_NAME_INVALID = 2004
    FOLDER_NOT_A_DIRECTORY = 2005
    FOLDER_OPERATION_FORBIDDEN = 2006

    # Edit errors (3xxx)
    EDIT_TEXT_NOT_FOUND = 3001
    EDIT_AMBIGUOUS_MATCH = 3002

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_RENAME_FAILED = 4003

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001
    CONFIG_MISSING = 6002

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    FIELD_REQUIRED = 7002
    INVALID_DATE = 7003
    PATH_TRAVERSAL_DETECTED = 7005


class NotePlanError(Exception):
    """Base exception for all NotePlan errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
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
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class InvalidLocationError(NotePlanError):
    """Raised when a folder string is malformed or addresses the calendar."""

    def __init__(
        self,
        folder: str,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.LOCATION_INVALID,
    ):
        super().__init__(
            message or f"Invalid folder '{folder}'",
            code=code,
            details={"folder": folder[:100]},
        )
        self.folder = folder


class MissingFieldError(NotePlanError):
    """Raised when a required input field is absent or empty."""

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.FIELD_REQUIRED,
    ):
        super().__init__(
            message or f"Missing required field: {field}",
            code=code,
            details={"field": field},
        )
        self.field = field


class NoteNotFoundError(NotePlanError):
    """Raised when a note cannot be found."""

    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID '{note_id}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id},
        )
        self.note_id = note_id


class FolderNotFoundError(NotePlanError):
    """Raised when a folder does not exist."""

    def __init__(self, folder: str, message: Optional[str] = None):
        super().__init__(
            message or f"Folder '{folder}' not found",
            code=ErrorCode.FOLDER_NOT_FOUND,
            details={"folder": folder},
        )
        self.folder = folder


class NotAFolderError(NotePlanError):
    """Raised when a folder path points at something that is not a directory."""

    def __init__(self, folder: str, message: Optional[str] = None):
        super().__init__(
            message or f"'{folder}' is not a folder",
            code=ErrorCode.FOLDER_NOT_A_DIRECTORY,
            details={"folder": folder},
        )
        self.folder = folder


class AlreadyExistsError(NotePlanError):
    """Raised when a filename or folder path is already taken."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOTE_ALREADY_EXISTS,
    ):
        details = {}
        if target:
            details["target"] = target
        super().__init__(message, code=code, details=details)
        self.target = target


class ForbiddenError(NotePlanError):
    """Raised when an operation is not permitted on calendar notes or reserved paths."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOTE_OPERATION_FORBIDDEN,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        super().__init__(message, code=code, details=details)
        self.operation = operation


class InvalidNameError(NotePlanError):
    """Raised when a new folder name is empty, nested or reserved."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(
            message or f"Invalid folder name '{name}'",
            code=ErrorCode.FOLDER_NAME_INVALID,
            details={"name": name[:100]},
        )
        self.name = name


class TextNotFoundError(NotePlanError):
    """Raised when the text to replace does not occur in the note."""

    def __init__(self, note_id: str, old_text: str):
        super().__init__(
            f'Text not found in note: "{old_text[:100]}"',
            code=ErrorCode.EDIT_TEXT_NOT_FOUND,
            details={"note_id": note_id},
        )
        self.note_id = note_id
        self.old_text = old_text


class AmbiguousMatchError(NotePlanError):
    """Raised when the text to replace occurs more than once without replace_all."""

    def __init__(self, note_id: str, occurrences: int):
        super().__init__(
            f"Found {occurrences} occurrences of the text. Set replace_all=true to "
            "replace all, or provide more specific text to match exactly one occurrence.",
            code=ErrorCode.EDIT_AMBIGUOUS_MATCH,
            details={"note_id": note_id, "occurrences": occurrences},
        )
        self.note_id = note_id
        self.occurrences = occurrences


class StorageError(NotePlanError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            # Don't expose full paths in error messages for security
            details["path_hint"] = path.split("/")[-1] if "/" in path else path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class ConfigurationError(NotePlanError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key


class ValidationError(NotePlanError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
