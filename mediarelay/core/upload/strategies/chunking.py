"""
Chunking strategies for file uploads.

The next chunk always starts at the offset the server acknowledged, so
strategies compute one range at a time instead of a fixed plan.
"""
from abc import ABC, abstractmethod
from typing import Tuple


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""

    @abstractmethod
    def next_chunk(self, offset: int, file_size: int) -> Tuple[int, int]:
        """Return (start, end) of the chunk beginning at offset."""
        pass

    @abstractmethod
    def count_chunks(self, file_size: int) -> int:
        """Number of chunks for an uninterrupted transfer."""
        pass


class FixedSizeChunkingStrategy(BaseChunkingStrategy):
    """
    Fixed-size chunking strategy.

    Every chunk is chunk_size bytes except the last one.
    """

    DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024  # 5MB

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize with chunk size.

        Args:
            chunk_size: Size of each chunk in bytes
        """
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self.chunk_size = chunk_size

    def next_chunk(self, offset: int, file_size: int) -> Tuple[int, int]:
        """
        Calculate the chunk starting at offset.

        Args:
            offset: Next byte to send
            file_size: Total file size in bytes

        Returns:
            (start, end) tuple, end exclusive

        Raises:
            ValueError: If offset is outside [0, file_size)
        """
        if not 0 <= offset < file_size:
            raise ValueError(f"Offset {offset} outside file of {file_size} bytes")
        return offset, min(offset + self.chunk_size, file_size)

    def count_chunks(self, file_size: int) -> int:
        return -(-file_size // self.chunk_size)
