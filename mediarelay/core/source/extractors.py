"""
External extraction of relay files.

When the relay keeps its files inside a container that is neither shared
nor mounted, the only way in is an external copy command.
"""
import asyncio
from pathlib import Path
from typing import Protocol, Sequence
import logging

from ..exceptions import FileAccessError

logger = logging.getLogger('mediarelay.source')


class SourceExtractor(Protocol):
    """Protocol for copying a relay file into a local path."""

    async def extract(self, reference: str, destination: Path) -> None:
        """
        Copy the file behind reference into destination.

        Raises:
            FileAccessError: If the copy fails
        """
        ...

    async def remove(self, reference: str) -> None:
        """Delete the relay's copy of reference."""
        ...


class ContainerCopyExtractor:
    """
    Extracts files from the relay container with `docker cp`.

    Example:
        >>> extractor = ContainerCopyExtractor("telegram-bot-api")
        >>> await extractor.extract("/var/lib/telegram-bot-api/x.mp4", Path("/tmp/x"))
    """

    def __init__(self, container: str, executable: str = 'docker'):
        self.container = container
        self.executable = executable

    async def extract(self, reference: str, destination: Path) -> None:
        await self._run(
            reference,
            ['cp', f"{self.container}:{reference}", str(destination)]
        )

    async def remove(self, reference: str) -> None:
        await self._run(
            reference,
            ['exec', self.container, 'rm', '-f', reference]
        )

    async def _run(self, reference: str, args: Sequence[str]) -> None:
        logger.debug(f"Running: {self.executable} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise FileAccessError(reference, f"Cannot run {self.executable}: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode(errors='replace').strip()
            raise FileAccessError(
                reference,
                f"{self.executable} {args[0]} exited with {process.returncode}: {detail}"
            )
