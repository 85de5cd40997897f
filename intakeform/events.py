"""Event system for the client form runtime.

Every user-visible outcome of the runtime (draft saved, upload rejected,
submission failed, ...) is emitted as a typed FormEvent. A front end shows
them as notices; tests and integrations subscribe to them through an
EventEmitter.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import json
import logging

from dateutil.parser import isoparse

from .types import Actor, EventType, FormState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormEvent:
    """A single event in a form instance's lifetime.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_3f2a...")
        type: Event type from EventType enum
        token: Token of the intake form the event relates to
        ts: UTC timestamp when the event occurred
        actor: Actor who triggered this event
        state: Form state after this event
        payload: Optional event-specific data (field name, file ref, message)

    Examples:
        >>> from datetime import datetime, timezone
        >>> from intakeform.types import Actor, ActorKind, EventType, FormState
        >>>
        >>> event = FormEvent(
        ...     event_id="evt_001",
        ...     type=EventType.DRAFT_SAVED,
        ...     token="tok_001",
        ...     ts=datetime.now(timezone.utc),
        ...     actor=Actor(kind=ActorKind.CLIENT, id="tok_001"),
        ...     state=FormState.EDITING,
        ... )
    """
    event_id: str
    type: EventType
    token: str
    ts: datetime
    actor: Actor
    state: FormState
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        """Normalize string enums."""
        if isinstance(self.state, str):
            object.__setattr__(self, "state", FormState(self.state))
        if isinstance(self.type, str):
            object.__setattr__(self, "type", EventType(self.type))

    @property
    def message(self) -> Optional[str]:
        """User-visible message carried by the event, if any."""
        if self.payload:
            return self.payload.get("message")
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "token": self.token,
            "ts": self.ts.isoformat(),
            "actor": self.actor.to_dict(),
            "state": self.state.value,
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Convert event to a single JSON line."""
        return json.dumps(self.to_dict(), separators=(',', ':'))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormEvent":
        """Create FormEvent from dictionary."""
        ts = isoparse(data["ts"])
        return cls(
            event_id=data["eventId"],
            type=EventType(data["type"]),
            token=data["token"],
            ts=ts,
            actor=Actor.from_dict(data["actor"]),
            state=FormState(data["state"]),
            payload=data.get("payload"),
        )


EventListener = Callable[[FormEvent], None]
"""Listener callback. Called synchronously; exceptions are logged and isolated."""


class EventEmitter:
    """Dispatches FormEvents to subscribed listeners.

    Type-specific listeners run first, then wildcard listeners, each in
    registration order. A failing listener is logged and does not stop the
    others or the runtime.

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(EventType.UPLOAD_FAILED, seen.append)
        >>> emitter.listener_count(EventType.UPLOAD_FAILED)
        1
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe to a specific event type."""
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        """Subscribe to all event types."""
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        """Unsubscribe from a specific event type. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        """Unsubscribe a wildcard listener. Unknown listeners are ignored."""
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: FormEvent) -> None:
        """Dispatch an event to all registered listeners."""
        for listener in self._listeners.get(event.type, []) + self._any_listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s", event.type.value)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Count listeners for one type, or all listeners including wildcards."""
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(v) for v in self._listeners.values())


__all__ = [
    "FormEvent",
    "EventListener",
    "EventEmitter",
]
