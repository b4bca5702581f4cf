"""
Observable interface between the session controller and its view layer.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List

from models.schemas import ControllerState

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    STATE_CHANGED = "state_changed"
    QUESTION = "question"
    ANSWER_STORED = "answer_stored"
    UPLOAD_FAILED = "upload_failed"
    NOTICE = "notice"
    NAVIGATE = "navigate"


@dataclass
class SessionEvent:
    """A single state change or view request emitted by the controller."""
    kind: EventKind
    session_id: str
    state: ControllerState
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "session_id": self.session_id,
            "state": self.state.value,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


Listener = Callable[[SessionEvent], None]


class EventEmitter:
    """
    Synchronous fan-out of session events to subscribed listeners.
    A failing listener is logged and never interrupts the controller.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Event listener failed for {event.kind.value} event")

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
