"""
File reading service.

Reads the source file one chunk at a time so a transfer never holds more
than one chunk in memory.
"""
from pathlib import Path
import logging
import aiofiles

from ...exceptions import FileAccessError


class AsyncFileReader:
    """
    Asynchronous positional reader for one file.

    Uses aiofiles for non-blocking I/O. The handle is opened read-only
    and must be used as an async context manager so it is closed on
    every exit path.

    Example:
        >>> async with AsyncFileReader(path) as reader:
        ...     data = await reader.read_exact(0, 1024)
    """

    def __init__(self, file_path: Path):
        self._path = file_path
        self._logger = logging.getLogger('mediarelay.upload.file')
        self._file_handle = None

    @property
    def is_open(self) -> bool:
        return self._file_handle is not None

    async def open(self) -> None:
        if self._file_handle is None:
            try:
                self._file_handle = await aiofiles.open(self._path, 'rb')
            except OSError as e:
                raise FileAccessError(str(self._path), f"Cannot open {self._path}: {e}") from e

    async def close(self) -> None:
        if self._file_handle is not None:
            await self._file_handle.close()
            self._file_handle = None

    async def __aenter__(self) -> 'AsyncFileReader':
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def read_exact(self, start: int, size: int) -> bytes:
        """
        Read exactly `size` bytes starting at `start`.

        Raises:
            FileAccessError: If the file is shorter than expected
        """
        if self._file_handle is None:
            raise RuntimeError("Reader is not open")
        await self._file_handle.seek(start)
        data = await self._file_handle.read(size)
        if len(data) != size:
            raise FileAccessError(
                str(self._path),
                f"Short read at {start}: wanted {size} bytes, got {len(data)}"
            )
        self._logger.debug(f"Read chunk: {start}-{start + size} ({size} bytes)")
        return data

    async def read_all(self) -> bytes:
        """Read the whole file (small-file path only)."""
        async with aiofiles.open(self._path, 'rb') as f:
            return await f.read()
