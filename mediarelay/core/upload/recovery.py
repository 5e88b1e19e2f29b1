"""
Session recovery controller.

Wraps "open session, run transfer" in a bounded restart loop. The upload
protocol cannot resume a lost session, so every restart opens a new
session and sends the whole file again from offset 0.
"""
from dataclasses import replace
from pathlib import Path
from typing import Callable
import logging

from ..exceptions import SessionExpiredError
from .engine import ChunkedTransferEngine, TransferOutcome
from .models import UploadOptions
from .services import UploadSessionManager

EngineFactory = Callable[[int], ChunkedTransferEngine]

logger = logging.getLogger('mediarelay.upload.recovery')


class SessionRecoveryController:
    """
    Survives full session loss by restarting the transfer.

    A detected expiry triggers exactly one restart. After max_restarts
    restarts the next expiry is terminal, so at most 1 + max_restarts
    sessions are opened per upload.
    """

    DEFAULT_MAX_RESTARTS = 3

    def __init__(
        self,
        session_manager: UploadSessionManager,
        engine_factory: EngineFactory,
        max_restarts: int = DEFAULT_MAX_RESTARTS
    ):
        """
        Initialize recovery controller.

        Args:
            session_manager: Opens upload sessions
            engine_factory: Builds a fresh engine for session number n
            max_restarts: Restarts allowed after the first session
        """
        self._sessions = session_manager
        self._engine_factory = engine_factory
        self._max_restarts = max_restarts
        self.sessions_opened = 0
        self.total_requests = 0

    async def run(
        self,
        access_token: str,
        options: UploadOptions,
        file_path: Path,
        file_size: int
    ) -> TransferOutcome:
        """
        Upload a file, restarting on session expiry.

        Returns:
            TransferOutcome with requests and sessions summed over all sessions

        Raises:
            SessionExpiredError: If sessions kept expiring past the restart bound
            SessionCreateError: If a session cannot be opened (no retry)
            ChunkUploadError: If a chunk failed for any other reason
        """
        restarts = 0
        while True:
            upload_session = await self._sessions.open(access_token, options, file_size)
            self.sessions_opened += 1
            engine = self._engine_factory(self.sessions_opened)
            try:
                outcome = await engine.transfer(access_token, upload_session, file_path)
            except SessionExpiredError as e:
                if restarts >= self._max_restarts:
                    logger.error(f"Session expired {restarts + 1} times, giving up")
                    raise SessionExpiredError(
                        f"Upload session expired {restarts + 1} times: {e.message}"
                    ) from e
                restarts += 1
                logger.warning(
                    f"Session expired, restarting from offset 0 "
                    f"(restart {restarts}/{self._max_restarts})"
                )
                continue
            finally:
                self.total_requests += engine.requests

            return replace(outcome, requests=self.total_requests, sessions=self.sessions_opened)
