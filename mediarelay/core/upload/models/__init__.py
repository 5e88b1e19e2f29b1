"""Upload models."""
from .upload_models import (
    UploadMethod,
    UploadOptions,
    UploadSession,
    ChunkAttempt,
    UploadFailure,
    UploadResult,
    UploadProgress
)

__all__ = [
    'UploadMethod',
    'UploadOptions',
    'UploadSession',
    'ChunkAttempt',
    'UploadFailure',
    'UploadResult',
    'UploadProgress'
]
