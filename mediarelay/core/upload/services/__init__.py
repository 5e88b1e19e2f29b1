"""Upload services module."""
from .file_service import AsyncFileReader
from .session_service import UploadSessionManager, encode_metadata, parse_offset
from .chunk_service import ChunkUploader, ChunkResponse
from .form_service import FormUploader, extract_artifact_id, parse_error_body

__all__ = [
    'AsyncFileReader',
    'UploadSessionManager',
    'encode_metadata',
    'parse_offset',
    'ChunkUploader',
    'ChunkResponse',
    'FormUploader',
    'extract_artifact_id',
    'parse_error_body',
]
