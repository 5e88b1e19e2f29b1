"""
Protocol definitions for upload module.

Defines interfaces (protocols) for dependency injection.
"""
from typing import Callable, Protocol, Tuple

from .models import UploadProgress


ProgressCallback = Callable[[UploadProgress], None]


class ChunkingStrategy(Protocol):
    """
    Protocol for file chunking strategies.

    Allows different chunk sizes to be plugged in.
    """

    def next_chunk(self, offset: int, file_size: int) -> Tuple[int, int]:
        """
        Calculate the chunk starting at offset.

        Args:
            offset: Next byte to send
            file_size: Total file size in bytes

        Returns:
            (start, end) tuple, end exclusive
        """
        ...

    def count_chunks(self, file_size: int) -> int:
        """Number of chunks for an uninterrupted transfer."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logger objects."""

    def debug(self, msg: str) -> None: ...
    def info(self, msg: str) -> None: ...
    def warning(self, msg: str) -> None: ...
    def error(self, msg: str) -> None: ...
