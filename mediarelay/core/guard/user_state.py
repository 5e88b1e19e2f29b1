"""
Per-user upload state machine.

A user may have at most one media file waiting for a content type and
at most one upload in flight. Events are the only way to change state.
"""
from enum import Enum
from typing import Dict, Hashable, Tuple
import logging

logger = logging.getLogger('mediarelay.guard')


class UserUploadState(str, Enum):
    IDLE = 'idle'
    AWAITING_SELECTION = 'awaiting_selection'
    UPLOADING = 'uploading'


class UploadEvent(str, Enum):
    MEDIA_RECEIVED = 'media_received'
    TYPE_SELECTED = 'type_selected'
    CANCELLED = 'cancelled'
    UPLOAD_FINISHED = 'upload_finished'


TRANSITIONS: Dict[Tuple[UserUploadState, UploadEvent], UserUploadState] = {
    (UserUploadState.IDLE, UploadEvent.MEDIA_RECEIVED): UserUploadState.AWAITING_SELECTION,
    (UserUploadState.AWAITING_SELECTION, UploadEvent.TYPE_SELECTED): UserUploadState.UPLOADING,
    (UserUploadState.AWAITING_SELECTION, UploadEvent.CANCELLED): UserUploadState.IDLE,
    (UserUploadState.UPLOADING, UploadEvent.UPLOAD_FINISHED): UserUploadState.IDLE,
}


class InvalidTransitionError(Exception):
    """Raised when an event is not allowed in the current state."""

    def __init__(self, state: UserUploadState, event: UploadEvent) -> None:
        self.state = state
        self.event = event
        super().__init__(f"Event {event.value} not allowed in state {state.value}")


class UploadStateMachine:
    """
    Upload state of one user.

    Example:
        >>> machine = UploadStateMachine()
        >>> machine.fire(UploadEvent.MEDIA_RECEIVED)
        <UserUploadState.AWAITING_SELECTION: 'awaiting_selection'>
    """

    def __init__(self, state: UserUploadState = UserUploadState.IDLE):
        self._state = state

    @property
    def state(self) -> UserUploadState:
        return self._state

    def can_fire(self, event: UploadEvent) -> bool:
        return (self._state, event) in TRANSITIONS

    def fire(self, event: UploadEvent) -> UserUploadState:
        """
        Apply an event.

        Returns:
            The new state

        Raises:
            InvalidTransitionError: If event is illegal in the current state
        """
        try:
            new_state = TRANSITIONS[(self._state, event)]
        except KeyError:
            raise InvalidTransitionError(self._state, event) from None
        logger.debug(f"{self._state.value} --{event.value}--> {new_state.value}")
        self._state = new_state
        return new_state


class UserStateRegistry:
    """Holds one UploadStateMachine per user."""

    def __init__(self):
        self._machines: Dict[Hashable, UploadStateMachine] = {}

    def get(self, user_id: Hashable) -> UploadStateMachine:
        machine = self._machines.get(user_id)
        if machine is None:
            machine = self._machines[user_id] = UploadStateMachine()
        return machine

    def fire(self, user_id: Hashable, event: UploadEvent) -> UserUploadState:
        return self.get(user_id).fire(event)

    def forget_idle(self) -> int:
        """Drop machines of idle users; returns how many were dropped."""
        idle = [uid for uid, m in self._machines.items() if m.state is UserUploadState.IDLE]
        for uid in idle:
            del self._machines[uid]
        return len(idle)
