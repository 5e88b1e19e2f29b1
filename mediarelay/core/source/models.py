"""File source models."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import logging

logger = logging.getLogger('mediarelay.source')


class Provenance(str, Enum):
    """How a FileSource was obtained."""
    DIRECT = 'direct'
    MOUNTED = 'mounted'
    EXTRACTED = 'extracted'
    DOWNLOADED = 'downloaded'


TEMPORARY_PROVENANCES = (Provenance.EXTRACTED, Provenance.DOWNLOADED)


@dataclass
class FileSource:
    """
    A locally readable file resolved from an opaque reference.

    Attributes:
        reference: The reference the caller handed in
        path: Local path to read from
        size: File size in bytes at resolution time
        provenance: Which access method produced the file
    """
    reference: str
    path: Path
    size: int
    provenance: Provenance
    _removed: bool = field(default=False, repr=False, compare=False)

    @property
    def is_temporary(self) -> bool:
        """True when the file is a private copy owned by the caller."""
        return self.provenance in TEMPORARY_PROVENANCES

    @property
    def removed(self) -> bool:
        return self._removed

    def cleanup(self) -> bool:
        """
        Delete the file at most once.

        Returns:
            True if this call deleted the file
        """
        if self._removed:
            return False
        self._removed = True
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.debug(f"File already gone: {self.path}")
            return False
        logger.info(f"Removed {self.provenance.value} file: {self.path}")
        return True
