"""
Chunked transfer engine.

Streams a file into an open upload session one chunk at a time. The
server is authoritative for the offset: local progress never advances it.

State machine::

    IDLE -> UPLOADING <-> RETRYING
    UPLOADING -> OFFSET_RECONCILING -> UPLOADING
    UPLOADING -> COMPLETED          (offset == file size)
    UPLOADING -> SESSION_EXPIRED    (terminal for this engine)
    RETRYING  -> FAILED             (attempt budget spent)
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
import logging

from ..api.errors import is_offset_conflict, is_session_expired, is_success, is_transient
from ..api.retry import ExponentialBackoffStrategy, RetryStrategy
from ..exceptions import ChunkUploadError, SessionExpiredError
from .models import ChunkAttempt, UploadProgress, UploadSession
from .protocols import ChunkingStrategy, LoggerProtocol, ProgressCallback
from .services import AsyncFileReader, ChunkResponse, ChunkUploader, UploadSessionManager
from .strategies import FixedSizeChunkingStrategy


class TransferState(str, Enum):
    IDLE = 'idle'
    UPLOADING = 'uploading'
    RETRYING = 'retrying'
    OFFSET_RECONCILING = 'offset_reconciling'
    SESSION_EXPIRED = 'session_expired'
    COMPLETED = 'completed'
    FAILED = 'failed'


class _Verdict(Enum):
    ACKNOWLEDGED = 'acknowledged'
    CONFLICT = 'conflict'
    RETRY = 'retry'


@dataclass(frozen=True)
class TransferOutcome:
    """
    Result of a completed transfer.

    Attributes:
        offset: Final acknowledged offset (equals the file size)
        artifact_id: Identifier minted by the server, if any
        requests: PATCH requests issued
        sessions: Sessions used to get there
    """
    offset: int
    artifact_id: Optional[str] = None
    requests: int = 0
    sessions: int = 1


class ChunkedTransferEngine:
    """
    Sends a file to one upload session, chunk by chunk.

    Instances are single-use: one engine drives one session. At most one
    chunk of the file is held in memory at any time.

    Example:
        >>> engine = ChunkedTransferEngine(uploader, sessions)
        >>> outcome = await engine.transfer(token, upload_session, path)
        >>> outcome.offset == upload_session.length
        True
    """

    def __init__(
        self,
        chunk_uploader: ChunkUploader,
        session_manager: UploadSessionManager,
        chunking_strategy: Optional[ChunkingStrategy] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        progress_callback: Optional[ProgressCallback] = None,
        session_number: int = 1,
        logger: Optional[LoggerProtocol] = None
    ):
        """
        Initialize transfer engine.

        Args:
            chunk_uploader: Sends single chunks
            session_manager: Used for offset probes between retries
            chunking_strategy: Chunk size policy (5 MiB fixed by default)
            retry_strategy: Per-chunk retry policy
            progress_callback: Called after every acknowledged chunk
            session_number: Which session of a recovery loop this is
            logger: Logger instance
        """
        self._uploader = chunk_uploader
        self._sessions = session_manager
        self._chunking = chunking_strategy or FixedSizeChunkingStrategy()
        self._retry = retry_strategy or ExponentialBackoffStrategy()
        self._progress_callback = progress_callback
        self._session_number = session_number
        self._logger = logger or logging.getLogger('mediarelay.upload.engine')
        self._state = TransferState.IDLE
        self._requests = 0
        self._artifact_id: Optional[str] = None

    @property
    def state(self) -> TransferState:
        return self._state

    @property
    def requests(self) -> int:
        """PATCH requests issued so far."""
        return self._requests

    async def transfer(
        self,
        access_token: str,
        upload_session: UploadSession,
        file_path: Path
    ) -> TransferOutcome:
        """
        Upload the file behind file_path into upload_session.

        Args:
            access_token: Backend bearer token
            upload_session: Open session; its length is the file size
            file_path: Local file to read

        Returns:
            TransferOutcome once the server acknowledged the last byte

        Raises:
            SessionExpiredError: If the session disappeared mid-transfer
            ChunkUploadError: If a chunk exhausted its retry budget or
                the server rejected it outright
            FileAccessError: If the file cannot be read
        """
        if self._state is not TransferState.IDLE:
            raise RuntimeError("Transfer engine instances are single-use")

        file_size = upload_session.length
        self._state = TransferState.UPLOADING
        self._logger.info(
            f"Uploading {file_size} bytes in {self._chunking.count_chunks(file_size)} chunks "
            f"(session {self._session_number})"
        )

        try:
            async with AsyncFileReader(file_path) as reader:
                while upload_session.offset < file_size:
                    await self._send_next_chunk(access_token, upload_session, reader)
        except SessionExpiredError:
            self._state = TransferState.SESSION_EXPIRED
            self._logger.warning(
                f"Upload session expired at offset {upload_session.offset}/{file_size}"
            )
            raise
        except BaseException:
            self._state = TransferState.FAILED
            raise

        self._state = TransferState.COMPLETED
        if self._artifact_id is None:
            self._logger.warning("Transfer complete but no artifact id in any chunk response")
        else:
            self._logger.info(f"Transfer complete, artifact id: {self._artifact_id}")
        return TransferOutcome(
            offset=upload_session.offset,
            artifact_id=self._artifact_id,
            requests=self._requests
        )

    async def _send_next_chunk(
        self,
        access_token: str,
        upload_session: UploadSession,
        reader: AsyncFileReader
    ) -> None:
        """Drive one chunk through its retry loop until the server acknowledges it."""
        file_size = upload_session.length
        attempt = ChunkAttempt(offset=upload_session.offset, size=0)
        resend_now = False

        while True:
            attempt.count += 1
            if attempt.count > 1:
                if resend_now:
                    resend_now = False
                else:
                    self._state = TransferState.RETRYING
                    self._logger.info(
                        f"Retry {attempt.count - 1} for chunk at offset {attempt.offset}"
                    )
                    await self._retry.wait_async(attempt.count - 1)
                    await self._reconcile(access_token, upload_session)
                    if upload_session.offset >= file_size:
                        self._state = TransferState.UPLOADING
                        return
                self._state = TransferState.UPLOADING

            start, end = self._chunking.next_chunk(upload_session.offset, file_size)
            attempt.offset, attempt.size = start, end - start
            data = await reader.read_exact(start, end - start)

            self._requests += 1
            try:
                response = await self._uploader.upload_chunk(
                    access_token, upload_session, start, data
                )
            except ChunkUploadError as e:
                attempt.last_error, attempt.last_kind = e.message, e.kind
                response = None
            del data

            if response is not None:
                verdict = self._apply_response(response, upload_session, attempt)
                if verdict is _Verdict.ACKNOWLEDGED:
                    return
                resend_now = verdict is _Verdict.CONFLICT
                if resend_now and upload_session.offset >= file_size:
                    self._state = TransferState.UPLOADING
                    return

            if not self._retry.should_retry(attempt.count):
                self._state = TransferState.FAILED
                self._logger.error(
                    f"Chunk at offset {attempt.offset} failed after {attempt.count} attempts: "
                    f"{attempt.last_error}"
                )
                raise ChunkUploadError(
                    attempt.last_error or "Failed to upload chunk after retries",
                    kind=attempt.last_kind or ChunkUploadError.SERVER,
                    status=response.status if response is not None else None
                )

    def _apply_response(
        self,
        response: ChunkResponse,
        upload_session: UploadSession,
        attempt: ChunkAttempt
    ) -> _Verdict:
        status = response.status
        start = attempt.offset

        if is_success(status):
            new_offset = response.offset
            if new_offset is None:
                return self._note(attempt, f"Chunk accepted ({status}) without Upload-Offset")
            if new_offset <= start or new_offset > upload_session.length:
                return self._note(
                    attempt,
                    f"Chunk accepted ({status}) with unusable offset {new_offset} "
                    f"(sent {start}+{attempt.size}, length {upload_session.length})"
                )
            upload_session.acknowledge(new_offset)
            if response.artifact_id:
                self._artifact_id = response.artifact_id
            self._report_progress(upload_session)
            return _Verdict.ACKNOWLEDGED

        if is_session_expired(status, response.body):
            raise SessionExpiredError(
                f"Upload session expired: {status} - {response.body[:200]}"
            )

        if is_offset_conflict(status):
            attempt.last_error = f"Offset conflict at {start}: {response.body[:200]}"
            attempt.last_kind = ChunkUploadError.OFFSET_CONFLICT
            server_offset = response.offset
            if server_offset is None or server_offset > upload_session.length:
                self._logger.warning(f"Offset conflict at {start} without usable server offset")
                return _Verdict.RETRY
            self._state = TransferState.OFFSET_RECONCILING
            self._logger.warning(f"Offset conflict: local {start}, server {server_offset}")
            upload_session.correct_offset(server_offset)
            if server_offset != start:
                self._report_progress(upload_session)
            return _Verdict.CONFLICT

        if is_transient(status, response.body):
            return self._note(attempt, f"Chunk upload failed: {status} - {response.body[:200]}")

        self._state = TransferState.FAILED
        raise ChunkUploadError(
            f"Chunk upload rejected: {status} - {response.body[:200]}",
            kind=ChunkUploadError.SERVER,
            status=status
        )

    def _note(self, attempt: ChunkAttempt, message: str) -> _Verdict:
        self._logger.error(message)
        attempt.last_error = message
        attempt.last_kind = ChunkUploadError.SERVER
        return _Verdict.RETRY

    async def _reconcile(self, access_token: str, upload_session: UploadSession) -> None:
        """Learn the authoritative offset before resending."""
        try:
            server_offset = await self._sessions.probe(access_token, upload_session)
        except ChunkUploadError as e:
            self._logger.warning(f"Offset probe failed, keeping offset {upload_session.offset}: {e}")
            return

        if server_offset == upload_session.offset:
            return
        try:
            upload_session.correct_offset(server_offset)
        except ValueError as e:
            self._logger.warning(f"Ignoring probe result: {e}")
            return
        self._state = TransferState.OFFSET_RECONCILING
        self._logger.info(f"Probe moved offset to {server_offset}")
        self._report_progress(upload_session)

    def _report_progress(self, upload_session: UploadSession) -> None:
        percent = round(upload_session.offset / upload_session.length * 100) if upload_session.length else 100
        self._logger.info(f"Progress: {percent}%")
        if self._progress_callback:
            self._progress_callback(UploadProgress(
                total_bytes=upload_session.length,
                uploaded_bytes=upload_session.offset,
                session_number=self._session_number
            ))
