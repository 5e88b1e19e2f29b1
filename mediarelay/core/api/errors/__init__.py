"""Upload protocol error classification."""
from .classifier import (
    EXPIRY_PHRASES,
    is_success,
    is_session_expired,
    is_rate_limited,
    is_offset_conflict,
    is_transient,
    matches_expiry_phrase,
)

__all__ = [
    'EXPIRY_PHRASES',
    'is_success',
    'is_session_expired',
    'is_rate_limited',
    'is_offset_conflict',
    'is_transient',
    'matches_expiry_phrase',
]
