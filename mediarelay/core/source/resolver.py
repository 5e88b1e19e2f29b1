"""
File source resolver.

Turns an opaque source reference into a locally readable file, trying the
access methods in order and falling through only when one fails:

1. Direct access under the relay storage root
2. The same file through a mounted volume
3. External extraction into a temp file
4. HTTP download into a temp file (references outside the storage root)
"""
import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Union
import logging

import aiofiles
import aiohttp

from ..api.config import SourceConfig
from ..exceptions import FileAccessError
from ..logging import mask_url
from .extractors import SourceExtractor, ContainerCopyExtractor
from .models import FileSource, Provenance

logger = logging.getLogger('mediarelay.source')

_DEFAULT = object()


class FileSourceResolver:
    """
    Resolves source references into FileSource objects.

    Temp files produced by extraction or download are owned by the caller,
    who deletes them through FileSource.cleanup().
    """

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        extractor=_DEFAULT,
        temp_dir: Optional[Union[str, Path]] = None
    ):
        """
        Initialize resolver.

        Args:
            config: Source configuration
            session: Optional shared HTTP session for downloads
            extractor: External copy mechanism; defaults to `docker cp`
                against config.container, None disables extraction
            temp_dir: Directory for temp copies (system default if None)
        """
        self._config = config or SourceConfig()
        self._session = session
        if extractor is _DEFAULT:
            extractor = (
                ContainerCopyExtractor(self._config.container)
                if self._config.container else None
            )
        self._extractor: Optional[SourceExtractor] = extractor
        self._temp_dir = str(temp_dir) if temp_dir else None

    @property
    def storage_root(self) -> str:
        return self._config.storage_root.rstrip('/') + '/'

    @property
    def extractor(self) -> Optional[SourceExtractor]:
        return self._extractor

    def is_relay_reference(self, reference: str) -> bool:
        """True if reference points under the relay storage root."""
        return reference.startswith(self.storage_root)

    async def resolve(self, reference: str) -> FileSource:
        """
        Resolve a reference into a local file.

        Args:
            reference: Relay path, relay-relative path or http(s) URL

        Returns:
            FileSource with its provenance

        Raises:
            FileAccessError: If every applicable method failed
        """
        if self.is_relay_reference(reference):
            return await self._resolve_relay(reference)
        return await self._download(reference)

    async def _resolve_relay(self, reference: str) -> FileSource:
        # Method 1: same filesystem as the relay
        logger.debug(f"Trying direct file access: {reference}")
        if _is_within(Path(reference), Path(self.storage_root)):
            source = self._stat(reference, Path(reference), Provenance.DIRECT)
            if source:
                return source
        else:
            logger.warning(f"Reference escapes the storage root: {reference}")

        # Method 2: relay volume mounted on this host
        if self._config.mounted_root:
            mount = Path(self._config.mounted_root)
            host_path = mount / reference[len(self.storage_root):].lstrip('/')
            logger.debug(f"Trying mounted volume: {host_path}")
            if _is_within(host_path, mount):
                source = self._stat(reference, host_path, Provenance.MOUNTED)
                if source:
                    return source
            else:
                logger.warning(f"Mounted path escapes the mount: {host_path}")

        # Method 3: copy out of the relay
        if self._extractor is not None:
            return await self._extract(reference)

        logger.error(f"All file access methods failed for {reference}")
        raise FileAccessError(reference)

    def _stat(self, reference: str, path: Path, provenance: Provenance) -> Optional[FileSource]:
        try:
            size = _regular_file_size(path)
        except OSError as e:
            logger.debug(f"{provenance.value} access failed: {e}")
            return None
        logger.info(f"{provenance.value} access successful: {path} ({size} bytes)")
        return FileSource(reference=reference, path=path, size=size, provenance=provenance)

    def _new_temp_path(self) -> Path:
        fd, name = tempfile.mkstemp(prefix='mediarelay-', suffix='.tmp', dir=self._temp_dir)
        os.close(fd)
        return Path(name)

    async def _extract(self, reference: str) -> FileSource:
        temp_path = self._new_temp_path()
        try:
            await self._extractor.extract(reference, temp_path)
            size = _regular_file_size(temp_path)
        except (FileAccessError, OSError) as e:
            _discard(temp_path)
            logger.error(f"All file access methods failed for {reference}: {e}")
            raise FileAccessError(reference) from e

        logger.info(f"Extraction successful: {temp_path} ({size} bytes)")
        return FileSource(reference=reference, path=temp_path, size=size, provenance=Provenance.EXTRACTED)

    def _download_url(self, reference: str) -> str:
        if reference.startswith(('http://', 'https://')):
            return reference
        relay_url = self._config.relay_url.rstrip('/')
        return f"{relay_url}/file/bot{self._config.bot_token}/{reference.lstrip('/')}"

    async def _download(self, reference: str) -> FileSource:
        url = self._download_url(reference)
        logger.info(f"Downloading source: {mask_url(url)}")

        temp_path = self._new_temp_path()
        session = self._session
        owns_session = session is None
        if owns_session:
            session = aiohttp.ClientSession()
        try:
            size = await self._stream_to_file(session, url, temp_path, reference)
        except (FileAccessError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            _discard(temp_path)
            if isinstance(e, FileAccessError):
                raise
            raise FileAccessError(reference, f"Failed to download {mask_url(url)}: {e}") from e
        except BaseException:
            _discard(temp_path)
            raise
        finally:
            if owns_session:
                await session.close()

        logger.info(f"Download complete: {temp_path} ({size} bytes)")
        return FileSource(reference=reference, path=temp_path, size=size, provenance=Provenance.DOWNLOADED)

    async def _stream_to_file(
        self,
        session: aiohttp.ClientSession,
        url: str,
        destination: Path,
        reference: str
    ) -> int:
        size = 0
        timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=self._config.download_connect_timeout,
            sock_read=self._config.download_read_timeout
        )
        async with session.get(url, timeout=timeout) as response:
            if response.status != 200:
                raise FileAccessError(
                    reference,
                    f"Failed to download file: HTTP {response.status}"
                )
            async with aiofiles.open(destination, 'wb') as f:
                async for data in response.content.iter_chunked(self._config.download_chunk_size):
                    await f.write(data)
                    size += len(data)
        return size


def _is_within(path: Path, root: Path) -> bool:
    """True if path, with symlinks and .. resolved, stays under root."""
    try:
        return path.resolve().is_relative_to(root.resolve())
    except (OSError, RuntimeError):
        return False


def _regular_file_size(path: Path) -> int:
    """Size of path; raises OSError unless it is a regular file."""
    if not path.is_file():
        raise FileNotFoundError(f"Not a regular file: {path}")
    return path.stat().st_size


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
