"""
Single-request upload service.

Small files skip the resumable protocol and go up as one multipart form.
"""
import json
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple
import logging

import aiohttp

from ...api.config import UploaderConfig
from ...api.errors import is_rate_limited, is_success
from ...exceptions import ResponseParseError, UploadRejectedError
from ..models import UploadOptions
from .file_service import AsyncFileReader

# Places the backend has put the new artifact id over time, first match wins.
ARTIFACT_KEY_PATHS: Tuple[Tuple[str, ...], ...] = (
    ('data', 'lecture', 'id'),
    ('data', 'lectureId'),
    ('data', 'id'),
    ('lectureId',),
    ('id',),
)


def _dig(payload: Any, path: Sequence[str]) -> Any:
    for key in path:
        if not isinstance(payload, dict):
            return None
        payload = payload.get(key)
    return payload


def extract_artifact_id(payload: Any) -> Optional[str]:
    """Return the first artifact id found under ARTIFACT_KEY_PATHS."""
    for path in ARTIFACT_KEY_PATHS:
        value = _dig(payload, path)
        if value not in (None, ''):
            return str(value)
    return None


def parse_error_body(status: int, text: str) -> UploadRejectedError:
    """
    Build the error for a rejected single-request upload.

    Understands `{"error": {"code", "message"}}` and `{"message"}` bodies;
    anything else keeps the status-based defaults.
    """
    message = f"Upload failed with status {status}"
    code = None
    if status == 429:
        code = 'RATE_LIMITED'
        message = "Too many uploads. Please wait before uploading more files."

    try:
        payload = json.loads(text)
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error = payload.get('error')
        if isinstance(error, dict):
            code = error.get('code') or code
            message = error.get('message') or payload.get('message') or message
        else:
            message = payload.get('message') or message

    return UploadRejectedError(
        message,
        error_code=code,
        status=status,
        rate_limited=is_rate_limited(status, code)
    )


class FormUploader:
    """
    Uploads a whole file in one multipart POST.

    Only meant for files under the simple-upload threshold: the body is
    built in memory.
    """

    def __init__(self, config: UploaderConfig, session: aiohttp.ClientSession):
        self._config = config
        self._session = session
        self._logger = logging.getLogger('mediarelay.upload.form')

    async def upload(
        self,
        access_token: str,
        path: Path,
        options: UploadOptions
    ) -> Optional[str]:
        """
        Submit a file with its options.

        Returns:
            Artifact id from the response envelope (None if absent)

        Raises:
            UploadRejectedError: If the backend answers non-2xx
            ResponseParseError: If a 2xx body is not a JSON object
        """
        data = await AsyncFileReader(path).read_all()

        form = aiohttp.FormData()
        form.add_field('file', data, filename=options.filename, content_type=options.mime_type)
        for name, value in options.form_fields().items():
            form.add_field(name, value)

        url = self._config.simple_endpoint
        self._logger.info(f"Uploading to: {url} ({len(data)} bytes)")
        async with self._session.post(
            url,
            data=form,
            headers={'Authorization': f"Bearer {access_token}"}
        ) as response:
            status = response.status
            text = await response.text()

        self._logger.debug(f"Upload response status: {status}")
        if not is_success(status):
            error = parse_error_body(status, text)
            self._logger.error(f"Upload rejected: {status} {error.code} {error.message}")
            raise error

        try:
            payload = json.loads(text)
        except ValueError as e:
            raise ResponseParseError(f"Upload response is not JSON: {text[:200]!r}") from e
        if not isinstance(payload, dict):
            raise ResponseParseError("Upload response is not a JSON object")

        artifact_id = extract_artifact_id(payload)
        if artifact_id is None:
            self._logger.warning("Upload succeeded but no artifact id in response")
        return artifact_id
