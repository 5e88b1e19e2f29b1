"""
Custom exceptions for media upload operations.

This module defines the error taxonomy of the upload engine. Every
exception can be turned into a structured UploadFailure so the facade
never has to leak control flow to its callers.
"""
from typing import Optional


class UploadError(Exception):
    """Base exception for all upload-related errors."""

    code = 'UPLOAD_FAILED'
    retryable = False
    rate_limited = False

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Override for the class-level error code
        """
        if error_code:
            self.code = error_code
        self.message = message
        super().__init__(message)

    def to_failure(self):
        """Convert to a structured UploadFailure."""
        from .upload.models import UploadFailure

        return UploadFailure(
            code=self.code,
            message=self.message,
            retryable=self.retryable,
            rate_limited=self.rate_limited
        )


class FileAccessError(UploadError):
    """Raised when a source reference cannot be turned into a readable file."""

    code = 'FILE_ACCESS_ERROR'

    def __init__(self, reference: str, message: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            reference: Source reference that could not be accessed
            message: Optional detail message
        """
        self.reference = reference
        super().__init__(message or f"Failed to access file: {reference}")


class SessionCreateError(UploadError):
    """Raised when the server refuses to open an upload session."""

    code = 'SESSION_CREATE_FAILED'

    def __init__(
        self,
        message: str,
        rate_limited: bool = False,
        status: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            rate_limited: True when the server answered 429
            status: HTTP status code (if a response was received)
        """
        self.rate_limited = rate_limited
        self.retryable = rate_limited
        self.status = status
        super().__init__(message, 'RATE_LIMITED' if rate_limited else None)


class ChunkUploadError(UploadError):
    """
    Raised when a chunk could not be delivered.

    Attributes:
        kind: One of 'network', 'server' or 'offset_conflict'
        status: HTTP status of the last response, if any
    """

    code = 'CHUNK_UPLOAD_FAILED'
    retryable = True

    NETWORK = 'network'
    SERVER = 'server'
    OFFSET_CONFLICT = 'offset_conflict'

    def __init__(
        self,
        message: str,
        kind: str = SERVER,
        status: Optional[int] = None
    ) -> None:
        self.kind = kind
        self.status = status
        super().__init__(message)


class SessionExpiredError(UploadError):
    """Raised when the server no longer knows the upload session."""

    code = 'SESSION_EXPIRED'
    retryable = True


class UploadRejectedError(UploadError):
    """Raised when the backend rejects a single-request upload."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status: Optional[int] = None,
        rate_limited: bool = False
    ) -> None:
        self.status = status
        self.rate_limited = rate_limited
        self.retryable = rate_limited or (status is not None and status >= 500)
        super().__init__(message, error_code)


class ResponseParseError(UploadError):
    """Raised when a server response cannot be understood."""

    code = 'RESPONSE_PARSE_ERROR'
