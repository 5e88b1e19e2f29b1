"""
Response classification for the resumable upload protocol.

Pure predicates over (status, body). No transport code lives here so the
heuristics can be tested in isolation.
"""
from typing import Optional, Tuple


# Phrases the backend (or a proxy in front of it) uses when an upload
# session is gone. Matched case-insensitively against error bodies.
EXPIRY_PHRASES: Tuple[str, ...] = (
    'upload not found',
    'upload session not found',
    'upload expired',
    'upload has expired',
    'session expired',
    'session not found',
    'no such upload',
    'upload has been terminated',
    'upload terminated',
    'unknown upload',
)

# Statuses that always mean the session is gone. 410 is what tus servers
# answer for terminated uploads.
EXPIRY_STATUSES: Tuple[int, ...] = (404, 410)

TRANSIENT_STATUSES: Tuple[int, ...] = (408, 429)

RATE_LIMIT_STATUS = 429
CONFLICT_STATUS = 409

RATE_LIMIT_CODES: Tuple[str, ...] = ('UPLOAD_RATE_LIMIT_EXCEEDED', 'RATE_LIMIT_EXCEEDED')


def is_success(status: int) -> bool:
    """Returns True for 2xx statuses."""
    return 200 <= status < 300


def matches_expiry_phrase(body: Optional[str]) -> bool:
    """Returns True if body contains one of EXPIRY_PHRASES."""
    if not body:
        return False
    lowered = body.lower()
    return any(phrase in lowered for phrase in EXPIRY_PHRASES)


def is_session_expired(status: int, body: Optional[str] = None) -> bool:
    """
    Detect the session-expired signature.

    Args:
        status: HTTP status code
        body: Response body text (may be empty)

    Returns:
        True for 404/410, or any status >= 400 whose body matches a
        known expiry phrase
    """
    if status in EXPIRY_STATUSES:
        return True
    return status >= 400 and matches_expiry_phrase(body)


def is_rate_limited(status: int, error_code: Optional[str] = None) -> bool:
    """Returns True for 429 or a backend rate-limit error code."""
    return status == RATE_LIMIT_STATUS or error_code in RATE_LIMIT_CODES


def is_offset_conflict(status: int) -> bool:
    """Returns True when the server rejected the Upload-Offset."""
    return status == CONFLICT_STATUS


def is_transient(status: int, body: Optional[str] = None) -> bool:
    """
    Returns True for failures worth retrying locally.

    Expiry signatures are never transient.
    """
    if is_session_expired(status, body):
        return False
    return status >= 500 or status in TRANSIENT_STATUSES
