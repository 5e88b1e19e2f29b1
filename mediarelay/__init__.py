"""
MediaRelay - Async resumable uploads of chat media into a lecture backend.

Usage:
    >>> from mediarelay import UploadFacade, UploadOptions
    >>>
    >>> async with UploadFacade(UploaderConfig(base_url="https://api.example")) as relay:
    ...     result = await relay.upload(token, file_path, UploadOptions("talk.mp4"))
    ...     print(result.artifact_id)
"""
import logging

from .core.api import (
    UploaderConfig,
    SourceConfig,
    TimeoutConfig,
    RetryConfig,
)
from .core.upload import (
    UploadFacade,
    UploadOptions,
    UploadResult,
    UploadFailure,
    UploadProgress,
    UploadMethod,
)
from .core.source import FileSource, FileSourceResolver, Provenance
from .core.guard import MediaGroupCache, UploadStateMachine, UserStateRegistry
from .core.logging import LOGGER_NAMES

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for mediarelay modules.

    Args:
        level: Logging level (default: logging.INFO)
    """
    for logger_name in LOGGER_NAMES:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'UploadFacade',
    'UploadOptions',
    'UploadResult',
    'UploadFailure',
    'UploadProgress',
    'UploadMethod',
    'UploaderConfig',
    'SourceConfig',
    'TimeoutConfig',
    'RetryConfig',
    'FileSource',
    'FileSourceResolver',
    'Provenance',
    'MediaGroupCache',
    'UploadStateMachine',
    'UserStateRegistry',
    'setup_logging',
]
