"""
Upload session service.

Opens resumable upload sessions on the backend and probes their offset.
"""
import asyncio
import base64
from typing import Dict, Mapping, Optional
from urllib.parse import urljoin
import logging

import aiohttp

from ...api.config import UploaderConfig
from ...api.errors import is_rate_limited, is_session_expired, is_success
from ...exceptions import (
    ChunkUploadError,
    ResponseParseError,
    SessionCreateError,
    SessionExpiredError,
)
from ..models import UploadOptions, UploadSession


def encode_metadata(metadata: Mapping[str, Optional[str]]) -> str:
    """
    Build an Upload-Metadata header value.

    Each pair is `key base64(value)`, pairs joined by commas. Empty values
    are dropped.

    Example:
        >>> encode_metadata({'filename': 'a.mp4', 'title': ''})
        'filename YS5tcDQ='
    """
    return ','.join(
        f"{key} {base64.b64encode(value.encode('utf-8')).decode('ascii')}"
        for key, value in metadata.items()
        if value
    )


def parse_offset(value: Optional[str]) -> Optional[int]:
    """Parse an Upload-Offset header, None if missing or malformed."""
    if value is None:
        return None
    try:
        offset = int(value.strip())
    except ValueError:
        return None
    return offset if offset >= 0 else None


class UploadSessionManager:
    """
    Creates and inspects server-side upload sessions.

    Responsibilities:
    - Create handshake (POST with declared length and metadata)
    - Offset probe (HEAD)
    """

    def __init__(self, config: UploaderConfig, session: aiohttp.ClientSession):
        """
        Initialize session manager.

        Args:
            config: Uploader configuration
            session: Shared HTTP session
        """
        self._config = config
        self._session = session
        self._logger = logging.getLogger('mediarelay.upload.session')

    def protocol_headers(self, access_token: str) -> Dict[str, str]:
        """Headers every protocol request carries."""
        return {
            'Authorization': f"Bearer {access_token}",
            'Tus-Resumable': self._config.protocol_version,
        }

    async def open(
        self,
        access_token: str,
        options: UploadOptions,
        total_size: int
    ) -> UploadSession:
        """
        Open a new upload session.

        Args:
            access_token: Backend bearer token
            options: Upload options (sent as metadata)
            total_size: Declared file length in bytes

        Returns:
            Fresh UploadSession at offset 0

        Raises:
            SessionCreateError: If the server refuses (rate_limited on 429)
            ResponseParseError: If the server answers 201 without Location
        """
        endpoint = self._config.upload_endpoint
        headers = self.protocol_headers(access_token)
        headers['Upload-Length'] = str(total_size)
        headers['Upload-Metadata'] = encode_metadata(options.metadata())

        self._logger.info(
            f"Creating upload session, size: {total_size} bytes "
            f"({total_size / (1024 * 1024):.1f} MB)"
        )
        try:
            async with self._session.post(endpoint, headers=headers) as response:
                status = response.status
                location = response.headers.get('Location')
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._logger.error(f"Session create failed: {e}")
            raise SessionCreateError(f"Failed to create upload: {e}") from e

        if status != 201:
            if is_rate_limited(status):
                self._logger.warning("Session create rate limited")
                raise SessionCreateError(
                    "Too many uploads. Please wait before uploading more files.",
                    rate_limited=True,
                    status=status
                )
            self._logger.error(f"Session create failed: {status} {body[:200]}")
            raise SessionCreateError(f"Failed to create upload: {status}", status=status)

        if not location:
            raise ResponseParseError("No upload location returned")

        uri = urljoin(endpoint, location)
        self._logger.info(f"Upload created at: {uri}")
        return UploadSession(uri=uri, length=total_size)

    async def probe(self, access_token: str, upload_session: UploadSession) -> int:
        """
        Ask the server for the authoritative offset of a session.

        Returns:
            Offset reported in Upload-Offset

        Raises:
            SessionExpiredError: If the session is gone
            ChunkUploadError: On network errors or unusable responses
        """
        headers = self.protocol_headers(access_token)
        try:
            async with self._session.head(upload_session.uri, headers=headers) as response:
                status = response.status
                offset = parse_offset(response.headers.get('Upload-Offset'))
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ChunkUploadError(
                f"Offset probe failed: {e}", kind=ChunkUploadError.NETWORK
            ) from e

        if is_session_expired(status, body):
            raise SessionExpiredError(f"Upload session expired (probe returned {status})")
        if not is_success(status) or offset is None:
            raise ChunkUploadError(
                f"Offset probe returned {status} without a usable Upload-Offset",
                status=status
            )

        self._logger.debug(f"Probe: server offset {offset} for {upload_session.uri}")
        return offset
