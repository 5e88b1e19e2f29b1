"""
Upload facade.

Provides a simplified interface for media uploads.
Follows Facade Pattern - hides resolution, path selection, session
recovery and cleanup behind a single call.
"""
import asyncio
from typing import Optional

import aiohttp

from ..api.config import UploaderConfig
from ..api.retry import ExponentialBackoffStrategy, RetryStrategy
from ..exceptions import FileAccessError, UploadError
from ..logging import get_logger
from ..source import FileSource, FileSourceResolver, Provenance
from .engine import ChunkedTransferEngine, TransferOutcome
from .models import UploadFailure, UploadMethod, UploadOptions, UploadResult
from .protocols import ChunkingStrategy, ProgressCallback
from .recovery import SessionRecoveryController
from .services import ChunkUploader, FormUploader, UploadSessionManager
from .strategies import FixedSizeChunkingStrategy


class UploadFacade:
    """
    Entry point for moving a media file into the backend.

    Small files (up to config.simple_threshold) go up as one multipart
    request; larger ones through the resumable protocol. Terminal errors
    are returned as failed UploadResults, never raised.

    Example:
        >>> async with UploadFacade(UploaderConfig.from_env()) as uploader:
        ...     result = await uploader.upload(
        ...         access_token,
        ...         "/var/lib/telegram-bot-api/123/videos/file_0.mp4",
        ...         UploadOptions("lecture.mp4", "video/mp4", "uz", "lecture")
        ...     )
        >>> result.success, result.artifact_id
        (True, 'lec_42')
    """

    def __init__(
        self,
        config: Optional[UploaderConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        resolver: Optional[FileSourceResolver] = None,
        chunking_strategy: Optional[ChunkingStrategy] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        log_level: Optional[int] = None
    ):
        """
        Initialize upload facade.

        Args:
            config: Uploader configuration
            session: Optional shared HTTP session (created on demand if None)
            resolver: Optional custom file source resolver
            chunking_strategy: Optional custom chunking strategy
            retry_strategy: Optional custom per-chunk retry strategy
            log_level: Optional level for the mediarelay.upload logger
        """
        self._config = config or UploaderConfig()
        self._session = session
        self._owns_session = False
        self._resolver = resolver
        self._chunking = chunking_strategy or FixedSizeChunkingStrategy(self._config.chunk_size)
        self._retry = retry_strategy or ExponentialBackoffStrategy(self._config.retry)
        self._logger = get_logger('mediarelay.upload')
        if log_level is not None:
            self._logger.setLevel(log_level)

    @property
    def config(self) -> UploaderConfig:
        return self._config

    async def __aenter__(self) -> 'UploadFacade':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(**self._config.get_session_kwargs())
            self._owns_session = True
        return self._session

    def _get_resolver(self, session: aiohttp.ClientSession) -> FileSourceResolver:
        if self._resolver is not None:
            return self._resolver
        return FileSourceResolver(self._config.source, session=session)

    async def upload(
        self,
        access_token: str,
        reference: str,
        options: UploadOptions,
        progress_callback: Optional[ProgressCallback] = None
    ) -> UploadResult:
        """
        Upload the media behind a source reference.

        Args:
            access_token: Backend bearer token
            reference: Relay path, relay-relative path or http(s) URL
            options: Upload options
            progress_callback: Optional callback for chunked-path progress

        Returns:
            UploadResult; success is False for every terminal error
        """
        session = await self._get_session()
        resolver = self._get_resolver(session)

        try:
            source = await resolver.resolve(reference)
        except Exception as e:
            return self._failed(e)

        size_mb = source.size / (1024 * 1024)
        self._logger.info(f"File ready, size: {source.size} bytes ({size_mb:.1f} MB)")

        method = UploadMethod.SIMPLE
        try:
            if source.size <= self._config.simple_threshold:
                self._logger.info("Using simple upload (small file)")
                artifact_id = await FormUploader(self._config, session).upload(
                    access_token, source.path, options
                )
            else:
                method = UploadMethod.CHUNKED
                self._logger.info(
                    f"Using chunked upload (file > {self._config.simple_threshold} bytes)"
                )
                outcome = await self._upload_chunked(
                    session, access_token, source, options, progress_callback
                )
                artifact_id = outcome.artifact_id
        except Exception as e:
            return self._failed(e, source.size, method)

        self._logger.info(f"Upload complete via {method.value}, artifact id: {artifact_id}")
        await self._cleanup(source, resolver)
        return UploadResult.ok(artifact_id, source.size, method)

    async def upload_url(
        self,
        access_token: str,
        url: str,
        options: UploadOptions,
        progress_callback: Optional[ProgressCallback] = None
    ) -> UploadResult:
        """Upload media fetched from a plain http(s) URL."""
        if not url.startswith(('http://', 'https://')):
            return UploadResult.failed(FileAccessError(url, f"Not an http(s) URL: {url}").to_failure())
        return await self.upload(access_token, url, options, progress_callback)

    async def _upload_chunked(
        self,
        session: aiohttp.ClientSession,
        access_token: str,
        source: FileSource,
        options: UploadOptions,
        progress_callback: Optional[ProgressCallback]
    ) -> TransferOutcome:
        session_manager = UploadSessionManager(self._config, session)
        chunk_uploader = ChunkUploader(self._config, session)

        def engine_factory(session_number: int) -> ChunkedTransferEngine:
            return ChunkedTransferEngine(
                chunk_uploader,
                session_manager,
                chunking_strategy=self._chunking,
                retry_strategy=self._retry,
                progress_callback=progress_callback,
                session_number=session_number
            )

        controller = SessionRecoveryController(
            session_manager,
            engine_factory,
            max_restarts=self._config.max_session_restarts
        )
        outcome = await controller.run(access_token, options, source.path, source.size)
        self._logger.info(
            f"Chunked upload finished: {outcome.requests} chunk requests, "
            f"{outcome.sessions} session(s)"
        )
        return outcome

    async def _cleanup(self, source: FileSource, resolver: FileSourceResolver) -> None:
        """Delete temp copies and the relay's own copy after a successful upload."""
        from_relay = resolver.is_relay_reference(source.reference)
        if source.is_temporary or (from_relay and self._config.source.delete_after_upload):
            try:
                source.cleanup()
            except OSError as e:
                self._logger.warning(f"Could not clean up {source.path}: {e}")

        extractor = resolver.extractor
        if (
            source.provenance is Provenance.EXTRACTED
            and extractor is not None
            and self._config.source.delete_after_upload
        ):
            try:
                await extractor.remove(source.reference)
                self._logger.info(f"Cleaned up relay file: {source.reference}")
            except FileAccessError as e:
                self._logger.warning(f"Could not clean up relay file {source.reference}: {e}")

    def _failed(
        self,
        error: Exception,
        file_size: int = 0,
        method: Optional[UploadMethod] = None
    ) -> UploadResult:
        """Map an exception to a failed UploadResult, re-raising programming errors."""
        if isinstance(error, UploadError):
            failure = error.to_failure()
        elif isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError)):
            failure = UploadFailure(
                code='NETWORK_ERROR',
                message=str(error) or type(error).__name__,
                retryable=True
            )
        elif isinstance(error, OSError):
            failure = UploadFailure(code=FileAccessError.code, message=str(error))
        else:
            raise error

        self._logger.error(f"Upload failed: {failure.code} {failure.message}")
        return UploadResult.failed(failure, file_size, method)
