"""
Chunk upload service.

Sends individual chunks to an open upload session.
"""
from dataclasses import dataclass
from typing import Optional
import asyncio
import logging
import time

import aiohttp

from ...api.config import UploaderConfig
from ...exceptions import ChunkUploadError
from ..models import UploadSession
from .session_service import parse_offset


@dataclass(frozen=True)
class ChunkResponse:
    """
    Server answer to one PATCH.

    Attributes:
        status: HTTP status code
        offset: Upload-Offset header, if present and valid
        artifact_id: Artifact identifier header, if present
        body: Response body (only read for error statuses)
    """
    status: int
    offset: Optional[int] = None
    artifact_id: Optional[str] = None
    body: str = ''


class ChunkUploader:
    """
    Sends chunks to an upload session.

    Reuses the HTTP session for all chunks. Classification of the
    response is left to the caller.

    Responsibilities:
    - Send a chunk with its starting offset
    - Extract offset and artifact headers
    """

    def __init__(self, config: UploaderConfig, session: aiohttp.ClientSession):
        """
        Initialize chunk uploader.

        Args:
            config: Uploader configuration
            session: Shared HTTP session
        """
        self._config = config
        self._session = session
        self._logger = logging.getLogger('mediarelay.upload.chunk')

    async def upload_chunk(
        self,
        access_token: str,
        upload_session: UploadSession,
        offset: int,
        data: bytes
    ) -> ChunkResponse:
        """
        Send a single chunk.

        Args:
            access_token: Backend bearer token
            upload_session: Target session
            offset: Offset of the first byte of data
            data: Raw chunk bytes

        Returns:
            ChunkResponse for the caller to classify

        Raises:
            ValueError: If the chunk is empty
            ChunkUploadError: On network errors or timeouts (kind 'network')
        """
        if not data:
            raise ValueError(f"Cannot upload empty chunk at offset {offset}")

        chunk_size_kb = len(data) / 1024
        headers = {
            'Authorization': f"Bearer {access_token}",
            'Tus-Resumable': self._config.protocol_version,
            'Upload-Offset': str(offset),
            'Content-Type': 'application/offset+octet-stream',
        }

        upload_start = time.time()
        self._logger.debug(f"Uploading chunk at offset {offset} ({chunk_size_kb:.1f} KB)")

        try:
            async with self._session.patch(upload_session.uri, data=data, headers=headers) as response:
                status = response.status
                new_offset = parse_offset(response.headers.get('Upload-Offset'))
                artifact_id = response.headers.get(self._config.artifact_header) or None
                body = await response.text() if status >= 400 else ''
        except asyncio.TimeoutError as e:
            upload_time = time.time() - upload_start
            self._logger.error(f"Chunk at offset {offset} timed out after {upload_time:.2f}s")
            raise ChunkUploadError(
                f"Chunk upload timed out after {upload_time:.2f}s",
                kind=ChunkUploadError.NETWORK
            ) from e
        except aiohttp.ClientError as e:
            upload_time = time.time() - upload_start
            self._logger.error(f"Chunk at offset {offset} failed after {upload_time:.2f}s: {e}")
            raise ChunkUploadError(
                f"Chunk upload network error: {e}",
                kind=ChunkUploadError.NETWORK
            ) from e

        upload_time = time.time() - upload_start
        speed_kbps = (chunk_size_kb / upload_time) if upload_time > 0 else 0
        self._logger.debug(
            f"Chunk at offset {offset} answered {status} in {upload_time:.2f}s ({speed_kbps:.1f} KB/s)"
        )
        return ChunkResponse(status=status, offset=new_offset, artifact_id=artifact_id, body=body)
