"""Core modules for mediarelay."""
from .exceptions import (
    UploadError,
    FileAccessError,
    SessionCreateError,
    ChunkUploadError,
    SessionExpiredError,
    UploadRejectedError,
    ResponseParseError,
)

__all__ = [
    'UploadError',
    'FileAccessError',
    'SessionCreateError',
    'ChunkUploadError',
    'SessionExpiredError',
    'UploadRejectedError',
    'ResponseParseError',
]
