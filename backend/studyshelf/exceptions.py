"""Custom exception hierarchy for StudyShelf."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Directory errors
    DIRECTORY_NOT_FOUND = "DIRECTORY_NOT_FOUND"
    HIERARCHY_CYCLE = "HIERARCHY_CYCLE"

    # Document errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    UNSUPPORTED_MEDIA = "UNSUPPORTED_MEDIA"

    # Physical tree errors
    PATH_NOT_FOUND = "PATH_NOT_FOUND"
    INVALID_PATH = "INVALID_PATH"
    CONTAINMENT_VIOLATION = "CONTAINMENT_VIOLATION"
    MIRROR_WRITE_FAILED = "MIRROR_WRITE_FAILED"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Auth & throttling
    UNAUTHORIZED = "UNAUTHORIZED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"

    # Sibling name collisions
    CONFLICT = "CONFLICT"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ShelfException(Exception):
    """
    Base exception for all StudyShelf errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code to return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class DirectoryNotFoundError(ShelfException):
    """Directory row missing or owned by another user."""

    def __init__(self, directory_id: int):
        super().__init__(
            f"Directory not found: {directory_id}",
            ErrorCode.DIRECTORY_NOT_FOUND,
            status_code=404,
            details={"directory_id": directory_id}
        )


class DocumentNotFoundError(ShelfException):
    """Document row missing or owned by another user."""

    def __init__(self, document_id: int):
        super().__init__(
            f"Document not found: {document_id}",
            ErrorCode.DOCUMENT_NOT_FOUND,
            status_code=404,
            details={"document_id": document_id}
        )


class PathNotFoundError(ShelfException):
    """Nothing exists at the given path below the user's sandbox root."""

    def __init__(self, relative_path: str, kind: str = "path"):
        super().__init__(
            f"{kind.capitalize()} not found: {relative_path or '/'}",
            ErrorCode.PATH_NOT_FOUND,
            status_code=404,
            details={"relative_path": relative_path, "kind": kind}
        )


class ValidationError(ShelfException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class InvalidPathError(ShelfException):
    """A user-supplied relative path contains a forbidden segment."""

    def __init__(self, raw_path: str, reason: str):
        super().__init__(
            f"Invalid path: {reason}",
            ErrorCode.INVALID_PATH,
            status_code=400,
            details={"path": raw_path}
        )


class ContainmentViolationError(ShelfException):
    """A resolved absolute path falls outside the user's sandbox root."""

    def __init__(self, user_id: int, relative_path: str):
        super().__init__(
            "Resolved path escapes the user storage root",
            ErrorCode.CONTAINMENT_VIOLATION,
            status_code=400,
            details={"user_id": user_id, "relative_path": relative_path}
        )


class MirrorWriteError(ShelfException):
    """A physical filesystem side effect failed.

    Raised only where the physical tree is the sole source of truth. In DB
    mode the same failure is logged and the request still succeeds.
    """

    def __init__(self, operation: str, path: str, original_error: Optional[Exception] = None):
        details = {"operation": operation, "path": path}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            f"Filesystem operation failed: {operation}",
            ErrorCode.MIRROR_WRITE_FAILED,
            status_code=500,
            details=details
        )


class RetryExhaustedError(ShelfException):
    """No free name could be found within the allocator's attempt budget."""

    def __init__(self, parent: str, base_name: str, attempts: int):
        super().__init__(
            f"Could not allocate a unique name for '{base_name}' after {attempts} attempts",
            ErrorCode.RETRY_EXHAUSTED,
            status_code=500,
            details={"parent": parent, "base_name": base_name, "attempts": attempts}
        )


class HierarchyCycleError(ShelfException):
    """The parent chain of a directory loops back on itself."""

    def __init__(self, directory_id: Optional[int], chain: list):
        super().__init__(
            f"Directory hierarchy contains a cycle at {directory_id}",
            ErrorCode.HIERARCHY_CYCLE,
            status_code=500,
            details={"directory_id": directory_id, "chain": chain}
        )


class ConflictError(ShelfException):
    """A sibling directory with the same name already exists."""

    def __init__(self, name: str, parent_id: Optional[int] = None,
                 message: str = "A folder with this name already exists at this level"):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details={"name": name, "parent_id": parent_id}
        )


class UnsupportedMediaError(ShelfException):
    """Uploaded content is not an accepted document type."""

    def __init__(self, mime_type: Optional[str]):
        super().__init__(
            "Only PDF files are allowed",
            ErrorCode.UNSUPPORTED_MEDIA,
            status_code=415,
            details={"mime_type": mime_type}
        )


class AuthenticationError(ShelfException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class TooManyRequestsError(ShelfException):
    """The user already has the maximum number of requests in flight."""

    def __init__(self, user_id: int, limit: int):
        super().__init__(
            "Too many concurrent requests for this user",
            ErrorCode.TOO_MANY_REQUESTS,
            status_code=429,
            details={"user_id": user_id, "limit": limit}
        )


class DatabaseError(ShelfException):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )
