"""
Backend API support for the upload engine.

Configuration, retry policy and response classification.
"""
from .config import UploaderConfig, TimeoutConfig, RetryConfig, SourceConfig
from .retry import RetryStrategy, ExponentialBackoffStrategy
from . import errors

__all__ = [
    'UploaderConfig',
    'TimeoutConfig',
    'RetryConfig',
    'SourceConfig',
    'RetryStrategy',
    'ExponentialBackoffStrategy',
    'errors',
]
