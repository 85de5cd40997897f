"""Client form state machine.

Each rendered form instance moves through a small lifecycle:

    idle ──edit──> editing ──submit──> submitting ──ok──> submitted
      └──────────────submit──────────────┘   └──fail──> editing

The machine enforces valid transitions, records an event for every
transition and forwards it to an optional EventEmitter. The runtime also
records non-transition events (draft saves, upload outcomes) through
``record`` so the whole history of a form instance lives in one place.

Usage:
    >>> from intakeform.state_machine import FormStateMachine
    >>> from intakeform.types import Actor, ActorKind, FormState
    >>> sm = FormStateMachine(token="tok_123")
    >>> sm.state
    <FormState.IDLE: 'idle'>
    >>> sm.transition_to(FormState.EDITING, Actor(kind=ActorKind.CLIENT, id="tok_123"))
    >>> sm.state
    <FormState.EDITING: 'editing'>
    >>> len(sm.get_events())
    1
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple
import logging
import uuid

from intakeform.events import EventEmitter, FormEvent
from intakeform.types import Actor, EventType, FormState

logger = logging.getLogger(__name__)


class InvalidStateTransitionError(Exception):
    """Raised when attempting a transition the lifecycle does not allow.

    Attributes:
        current_state: The state before the attempted transition
        target_state: The state that was attempted
    """

    def __init__(self, current_state: FormState, target_state: FormState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


class FormLockedError(Exception):
    """Raised when a field or file is changed while the form is locked.

    The form is locked while a submission is in flight and after it has
    been submitted.
    """

    def __init__(self, state: FormState):
        self.state = state
        super().__init__(f"Form is locked while '{state.value}'")


VALID_TRANSITIONS: Dict[FormState, Set[FormState]] = {
    FormState.IDLE: {FormState.EDITING, FormState.SUBMITTING},
    FormState.EDITING: {FormState.SUBMITTING},
    FormState.SUBMITTING: {FormState.SUBMITTED, FormState.EDITING},
    # Terminal
    FormState.SUBMITTED: set(),
}

LOCKED_STATES = frozenset({FormState.SUBMITTING, FormState.SUBMITTED})

TRANSITION_EVENTS: Dict[Tuple[FormState, FormState], EventType] = {
    (FormState.IDLE, FormState.EDITING): EventType.FIELD_UPDATED,
    (FormState.IDLE, FormState.SUBMITTING): EventType.SUBMISSION_STARTED,
    (FormState.EDITING, FormState.SUBMITTING): EventType.SUBMISSION_STARTED,
    (FormState.SUBMITTING, FormState.SUBMITTED): EventType.SUBMISSION_SUCCEEDED,
    (FormState.SUBMITTING, FormState.EDITING): EventType.SUBMISSION_FAILED,
}


@dataclass
class FormStateMachine:
    """Lifecycle state of one client form instance.

    Attributes:
        token: Token of the intake form
        state: Current state
        emitter: Optional emitter that receives every recorded event

    Examples:
        >>> sm = FormStateMachine(token="tok_123")
        >>> sm.can_transition_to(FormState.SUBMITTING)
        True
        >>> sm.can_transition_to(FormState.SUBMITTED)
        False
    """

    token: str
    state: FormState = FormState.IDLE
    emitter: Optional[EventEmitter] = field(default=None, repr=False)
    _events: List[FormEvent] = field(default_factory=list, init=False, repr=False)

    def can_transition_to(self, target_state: FormState) -> bool:
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    @property
    def is_locked(self) -> bool:
        """True while submitting or after submission."""
        return self.state in LOCKED_STATES

    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS[self.state]) == 0

    def transition_to(
        self,
        target_state: FormState,
        actor: Actor,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Transition to a new state and record the matching event.

        Args:
            target_state: The state to transition to
            actor: The actor performing this transition
            payload: Optional extra event data (merged with from/to states)

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            valid = VALID_TRANSITIONS[self.state]
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Invalid state transition: cannot transition from "
                    f"'{self.state.value}' to '{target_state.value}'. "
                    f"Valid transitions from '{self.state.value}' are: "
                    f"{', '.join(sorted(s.value for s in valid))}"
                    if valid
                    else f"Invalid state transition: '{self.state.value}' is a terminal state, "
                    f"no transitions are allowed."
                ),
            )

        old_state = self.state
        self.state = target_state
        logger.info("Form %s: %s -> %s", self.token, old_state.value, target_state.value)

        event_payload = {"from_state": old_state.value, "to_state": target_state.value}
        if payload:
            event_payload.update(payload)
        self.record(TRANSITION_EVENTS[(old_state, target_state)], actor, event_payload)

    def record(
        self,
        event_type: EventType,
        actor: Actor,
        payload: Optional[Dict[str, Any]] = None,
    ) -> FormEvent:
        """Record an event at the current state and forward it to the emitter."""
        event = FormEvent(
            event_id=f"evt_{uuid.uuid4().hex[:16]}",
            type=event_type,
            token=self.token,
            ts=datetime.now(timezone.utc),
            actor=actor,
            state=self.state,
            payload=payload,
        )
        self._events.append(event)
        if self.emitter is not None:
            self.emitter.emit(event)
        return event

    def get_events(self) -> List[FormEvent]:
        """Get all recorded events in chronological order."""
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "state": self.state.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormStateMachine":
        state = data["state"]
        if isinstance(state, str):
            state = FormState(state)
        return cls(token=data["token"], state=state)


__all__ = [
    "FormStateMachine",
    "InvalidStateTransitionError",
    "FormLockedError",
    "VALID_TRANSITIONS",
]
