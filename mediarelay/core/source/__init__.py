"""
File source resolution.

Turns opaque media references into local files the upload engine can read.
"""
from .models import FileSource, Provenance
from .extractors import SourceExtractor, ContainerCopyExtractor
from .resolver import FileSourceResolver

__all__ = [
    'FileSource',
    'Provenance',
    'SourceExtractor',
    'ContainerCopyExtractor',
    'FileSourceResolver',
]
