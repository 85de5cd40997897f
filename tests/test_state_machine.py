"""Unit tests for the client form state machine.

Tests cover:
- Initialization and defaults
- Valid transitions (edit, submit, success, failure)
- Invalid transitions and terminal state
- Locking while submitting and after submission
- Event recording and emitter forwarding
- Serialization
"""

import pytest

from intakeform.events import EventEmitter
from intakeform.state_machine import (
    FormLockedError,
    FormStateMachine,
    InvalidStateTransitionError,
    VALID_TRANSITIONS,
)
from intakeform.types import Actor, ActorKind, EventType, FormState

CLIENT = Actor(kind=ActorKind.CLIENT, id="tok_1")


class TestInitialization:
    """Test state machine defaults."""

    def test_starts_idle(self):
        """Should start idle and unlocked."""
        sm = FormStateMachine(token="tok_1")
        assert sm.state == FormState.IDLE
        assert sm.is_locked is False
        assert sm.get_events() == []

    def test_custom_state(self):
        """Should accept an initial state."""
        sm = FormStateMachine(token="tok_1", state=FormState.EDITING)
        assert sm.state == FormState.EDITING


class TestValidTransitions:
    """Test the allowed lifecycle paths."""

    def test_idle_to_editing(self):
        """Should record a field update when editing starts."""
        sm = FormStateMachine(token="tok_1")
        sm.transition_to(FormState.EDITING, CLIENT, {"field": "company"})
        event = sm.get_events()[0]
        assert sm.state == FormState.EDITING
        assert event.type == EventType.FIELD_UPDATED
        assert event.payload == {"from_state": "idle", "to_state": "editing", "field": "company"}

    def test_idle_straight_to_submitting(self):
        """Should allow submitting an untouched form."""
        sm = FormStateMachine(token="tok_1")
        sm.transition_to(FormState.SUBMITTING, CLIENT)
        assert sm.state == FormState.SUBMITTING
        assert sm.get_events()[0].type == EventType.SUBMISSION_STARTED

    def test_successful_submission(self):
        """Should end in the terminal submitted state."""
        sm = FormStateMachine(token="tok_1", state=FormState.EDITING)
        sm.transition_to(FormState.SUBMITTING, CLIENT)
        sm.transition_to(FormState.SUBMITTED, CLIENT)
        assert sm.state == FormState.SUBMITTED
        assert sm.is_terminal() is True
        assert [e.type for e in sm.get_events()] == [
            EventType.SUBMISSION_STARTED,
            EventType.SUBMISSION_SUCCEEDED,
        ]

    def test_failed_submission_returns_to_editing(self):
        """Should go back to editing after a failure."""
        sm = FormStateMachine(token="tok_1", state=FormState.SUBMITTING)
        sm.transition_to(FormState.EDITING, CLIENT, {"message": "try again"})
        assert sm.state == FormState.EDITING
        event = sm.get_events()[0]
        assert event.type == EventType.SUBMISSION_FAILED
        assert event.message == "try again"

    def test_every_transition_has_an_event(self):
        """Should map every allowed transition to an event type."""
        for source, targets in VALID_TRANSITIONS.items():
            for target in targets:
                sm = FormStateMachine(token="tok_1", state=source)
                sm.transition_to(target, CLIENT)
                assert len(sm.get_events()) == 1


class TestInvalidTransitions:
    """Test rejected transitions."""

    def test_editing_to_submitted(self):
        """Should not skip the submitting state."""
        sm = FormStateMachine(token="tok_1", state=FormState.EDITING)
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            sm.transition_to(FormState.SUBMITTED, CLIENT)
        assert exc_info.value.current_state == FormState.EDITING
        assert exc_info.value.target_state == FormState.SUBMITTED
        assert "submitting" in str(exc_info.value)
        assert sm.state == FormState.EDITING

    def test_double_submit(self):
        """Should reject a second submit while one is in flight."""
        sm = FormStateMachine(token="tok_1", state=FormState.SUBMITTING)
        with pytest.raises(InvalidStateTransitionError):
            sm.transition_to(FormState.SUBMITTING, CLIENT)

    def test_submitted_is_terminal(self):
        """Should reject every transition out of submitted."""
        sm = FormStateMachine(token="tok_1", state=FormState.SUBMITTED)
        for target in FormState:
            with pytest.raises(InvalidStateTransitionError) as exc_info:
                sm.transition_to(target, CLIENT)
            assert "terminal" in str(exc_info.value)

    def test_rejected_transition_records_nothing(self):
        """Should not record an event for a rejected transition."""
        sm = FormStateMachine(token="tok_1", state=FormState.EDITING)
        with pytest.raises(InvalidStateTransitionError):
            sm.transition_to(FormState.IDLE, CLIENT)
        assert sm.get_events() == []


class TestLocking:
    """Test which states lock the form."""

    @pytest.mark.parametrize("state,locked", [
        (FormState.IDLE, False),
        (FormState.EDITING, False),
        (FormState.SUBMITTING, True),
        (FormState.SUBMITTED, True),
    ])
    def test_is_locked(self, state, locked):
        """Should lock while submitting and after submission."""
        assert FormStateMachine(token="tok_1", state=state).is_locked is locked

    def test_locked_error_message(self):
        """Should name the state in the error."""
        assert "submitting" in str(FormLockedError(FormState.SUBMITTING))


class TestRecording:
    """Test event recording."""

    def test_record_uses_current_state(self):
        """Should stamp events with the current state and token."""
        sm = FormStateMachine(token="tok_1", state=FormState.EDITING)
        event = sm.record(EventType.DRAFT_SAVED, CLIENT)
        assert event.state == FormState.EDITING
        assert event.token == "tok_1"
        assert event.event_id.startswith("evt_")

    def test_events_forwarded_to_emitter(self):
        """Should emit every recorded event."""
        emitter = EventEmitter()
        seen = []
        emitter.on_any(seen.append)
        sm = FormStateMachine(token="tok_1", emitter=emitter)
        sm.transition_to(FormState.EDITING, CLIENT)
        sm.record(EventType.DRAFT_SAVED, CLIENT)
        assert [e.type for e in seen] == [EventType.FIELD_UPDATED, EventType.DRAFT_SAVED]

    def test_get_events_returns_copy(self):
        """Should not expose the internal list."""
        sm = FormStateMachine(token="tok_1")
        sm.record(EventType.DRAFT_SAVED, CLIENT)
        sm.get_events().clear()
        assert len(sm.get_events()) == 1


class TestSerialization:
    """Test to_dict/from_dict."""

    def test_round_trip(self):
        """Should restore token and state."""
        sm = FormStateMachine(token="tok_1", state=FormState.SUBMITTING)
        data = sm.to_dict()
        assert data == {"token": "tok_1", "state": "submitting"}
        restored = FormStateMachine.from_dict(data)
        assert restored.token == "tok_1"
        assert restored.state == FormState.SUBMITTING
