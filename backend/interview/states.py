"""
Controller state definitions and transition rules.
"""
from typing import Dict, Set, List

from models.schemas import ControllerState


# Allowed transitions for the session controller
TRANSITIONS: Dict[ControllerState, Set[ControllerState]] = {
    ControllerState.INITIALIZING: {ControllerState.READY, ControllerState.ENDED},
    # READY -> READY when a failed question insert is retried
    ControllerState.READY: {ControllerState.READY, ControllerState.RECORDING, ControllerState.ENDED},
    ControllerState.RECORDING: {ControllerState.UPLOADING, ControllerState.ENDED},
    ControllerState.UPLOADING: {ControllerState.READY, ControllerState.ENDED},
    ControllerState.ENDED: set(),
}


class InterviewStates:
    """
    Transition queries for the session state machine.
    """

    @classmethod
    def can_transition(cls, current: ControllerState, target: ControllerState) -> bool:
        """Check whether the controller may move from current to target."""
        return target in TRANSITIONS.get(current, set())

    @classmethod
    def next_states(cls, current: ControllerState) -> List[ControllerState]:
        """Get the states reachable from the current one."""
        return sorted(TRANSITIONS.get(current, set()), key=lambda s: s.value)

    @classmethod
    def is_terminal(cls, state: ControllerState) -> bool:
        return not TRANSITIONS.get(state)

    @classmethod
    def accepts_recording(cls, state: ControllerState) -> bool:
        """Only a ready controller may start a new recording."""
        return cls.can_transition(state, ControllerState.RECORDING)
