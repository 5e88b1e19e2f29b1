"""Conversation guards used by the calling layer around uploads."""
from .media_group import MediaGroupCache
from .user_state import (
    UserUploadState,
    UploadEvent,
    UploadStateMachine,
    UserStateRegistry,
    InvalidTransitionError,
)

__all__ = [
    'MediaGroupCache',
    'UserUploadState',
    'UploadEvent',
    'UploadStateMachine',
    'UserStateRegistry',
    'InvalidTransitionError',
]
