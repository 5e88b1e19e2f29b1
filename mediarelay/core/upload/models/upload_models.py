"""
Data models for upload module.

Uses dataclasses for immutable, type-safe data structures.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class UploadMethod(str, Enum):
    """Path taken by the facade."""
    SIMPLE = 'simple'
    CHUNKED = 'chunked'


@dataclass(frozen=True)
class UploadOptions:
    """
    Caller-supplied description of a media upload.

    Attributes:
        filename: Original file name
        mime_type: MIME type of the media
        language: Language tag of the spoken content (e.g. 'uz')
        summarization_type: Content classification ('lecture' or 'custdev')
        title: Optional human title

    Example:
        >>> opts = UploadOptions("talk.mp4", "video/mp4", "uz", "lecture")
        >>> opts.metadata()['filetype']
        'video/mp4'
    """
    filename: str
    mime_type: str = 'application/octet-stream'
    language: str = 'uz'
    summarization_type: str = 'lecture'
    title: Optional[str] = None

    def metadata(self) -> Dict[str, str]:
        """Key/value pairs announced to the backend, in wire order."""
        return {
            'filename': self.filename,
            'filetype': self.mime_type,
            'language': self.language,
            'summarizationType': self.summarization_type,
            'title': self.title or '',
        }

    def form_fields(self) -> Dict[str, str]:
        """Text fields of the single-request multipart form."""
        fields = {
            'language': self.language,
            'summarizationType': self.summarization_type,
        }
        if self.title:
            fields['title'] = self.title
        return fields


@dataclass
class UploadSession:
    """
    Server-side upload session.

    Attributes:
        uri: Absolute session URI returned by the create handshake
        length: Declared total length in bytes
        offset: Last offset acknowledged by the server
    """
    uri: str
    length: int
    offset: int = 0

    @property
    def is_complete(self) -> bool:
        return self.offset == self.length

    def acknowledge(self, new_offset: int) -> None:
        """
        Record a server acknowledgement.

        Raises:
            ValueError: If the offset goes backwards or past the declared length
        """
        if new_offset < self.offset or new_offset > self.length:
            raise ValueError(
                f"Acknowledged offset {new_offset} outside [{self.offset}, {self.length}]"
            )
        self.offset = new_offset

    def correct_offset(self, server_offset: int) -> None:
        """Adopt an offset declared by the server, even if it moves backwards."""
        if server_offset < 0 or server_offset > self.length:
            raise ValueError(
                f"Server offset {server_offset} outside [0, {self.length}]"
            )
        self.offset = server_offset


@dataclass
class ChunkAttempt:
    """
    Retry bookkeeping for one chunk.

    Lives only for the duration of one chunk's retry loop.
    """
    offset: int
    size: int
    count: int = 0
    last_error: Optional[str] = None
    last_kind: Optional[str] = None


@dataclass(frozen=True)
class UploadFailure:
    """
    Structured error carried by a failed UploadResult.

    Attributes:
        code: Machine-readable error code
        message: Human-readable message
        retryable: True if retrying the whole operation may help
        rate_limited: True if the backend throttled the caller
    """
    code: str
    message: str
    retryable: bool = False
    rate_limited: bool = False


@dataclass(frozen=True)
class UploadResult:
    """
    Outcome of an upload.

    Attributes:
        success: True if the backend accepted the whole file
        artifact_id: Identifier minted by the backend (lecture id)
        file_size: Size of the uploaded file in bytes
        method: Path taken (simple or chunked)
        error: Structured error when success is False
    """
    success: bool
    artifact_id: Optional[str] = None
    file_size: int = 0
    method: Optional[UploadMethod] = None
    error: Optional[UploadFailure] = None

    @property
    def is_rate_limited(self) -> bool:
        return bool(self.error and self.error.rate_limited)

    @classmethod
    def ok(
        cls,
        artifact_id: Optional[str],
        file_size: int,
        method: UploadMethod
    ) -> 'UploadResult':
        return cls(success=True, artifact_id=artifact_id, file_size=file_size, method=method)

    @classmethod
    def failed(
        cls,
        error: UploadFailure,
        file_size: int = 0,
        method: Optional[UploadMethod] = None
    ) -> 'UploadResult':
        return cls(success=False, file_size=file_size, method=method, error=error)


@dataclass
class UploadProgress:
    """
    Upload progress information.

    Attributes:
        total_bytes: Total file size
        uploaded_bytes: Bytes acknowledged by the server so far
        session_number: 1 for the first session, 2 after the first restart...
    """
    total_bytes: int
    uploaded_bytes: int = 0
    session_number: int = 1

    @property
    def percentage(self) -> float:
        """Returns upload progress as percentage."""
        if self.total_bytes == 0:
            return 0.0
        return (self.uploaded_bytes / self.total_bytes) * 100

    @property
    def is_complete(self) -> bool:
        """Returns True if upload is complete."""
        return self.uploaded_bytes >= self.total_bytes
