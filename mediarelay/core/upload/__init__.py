"""
Upload module for moving media into the backend.

Small files go up in one multipart request; large files through the
resumable upload protocol, chunk by chunk, with session recovery.
"""
from .facade import UploadFacade
from .engine import ChunkedTransferEngine, TransferOutcome, TransferState
from .recovery import SessionRecoveryController
from .models import (
    UploadMethod,
    UploadOptions,
    UploadSession,
    ChunkAttempt,
    UploadFailure,
    UploadResult,
    UploadProgress
)
from .protocols import ChunkingStrategy, ProgressCallback

__all__ = [
    # Main classes
    'UploadFacade',
    'ChunkedTransferEngine',
    'SessionRecoveryController',
    'TransferOutcome',
    'TransferState',

    # Models
    'UploadMethod',
    'UploadOptions',
    'UploadSession',
    'ChunkAttempt',
    'UploadFailure',
    'UploadResult',
    'UploadProgress',

    # Protocols
    'ChunkingStrategy',
    'ProgressCallback',
]
