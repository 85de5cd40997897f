"""Unit tests for the event system.

Tests cover:
- FormEvent creation and enum normalization
- Event serialization (to_dict, to_jsonl) and deserialization (from_dict)
- EventEmitter subscriptions, ordering and unsubscription
- Isolation of failing listeners
"""

import json
import logging
from datetime import datetime, timezone

import pytest

from intakeform.events import EventEmitter, FormEvent
from intakeform.types import Actor, ActorKind, EventType, FormState


def make_event(event_type=EventType.DRAFT_SAVED, payload=None):
    return FormEvent(
        event_id="evt_001",
        type=event_type,
        token="tok_1",
        ts=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        actor=Actor(kind=ActorKind.CLIENT, id="tok_1"),
        state=FormState.EDITING,
        payload=payload,
    )


class TestFormEvent:
    """Test FormEvent creation and serialization."""

    def test_string_enums_normalized(self):
        """Should accept enum values as strings."""
        event = FormEvent(
            event_id="evt_1",
            type="upload.failed",
            token="tok_1",
            ts=datetime.now(timezone.utc),
            actor=Actor(kind=ActorKind.CLIENT, id="tok_1"),
            state="editing",
        )
        assert event.type is EventType.UPLOAD_FAILED
        assert event.state is FormState.EDITING

    def test_message_from_payload(self):
        """Should expose the payload message."""
        assert make_event(payload={"message": "too large"}).message == "too large"
        assert make_event().message is None

    def test_to_dict(self):
        """Should serialize with camelCase ids and ISO timestamps."""
        data = make_event(payload={"field": "logo"}).to_dict()
        assert data == {
            "eventId": "evt_001",
            "type": "draft.saved",
            "token": "tok_1",
            "ts": "2024-05-01T09:30:00+00:00",
            "actor": {"kind": "client", "id": "tok_1"},
            "state": "editing",
            "payload": {"field": "logo"},
        }

    def test_to_dict_without_payload(self):
        """Should omit an empty payload."""
        assert "payload" not in make_event().to_dict()

    def test_to_jsonl_is_single_line(self):
        """Should produce compact JSON on one line."""
        line = make_event().to_jsonl()
        assert "\n" not in line
        assert json.loads(line)["type"] == "draft.saved"

    def test_from_dict(self):
        """Should load a serialized event, including Z timestamps."""
        data = make_event(EventType.UPLOAD_COMPLETED, {"field": "logo"}).to_dict()
        data["ts"] = "2024-05-01T09:30:00Z"
        event = FormEvent.from_dict(data)
        assert event == make_event(EventType.UPLOAD_COMPLETED, {"field": "logo"})


class TestEventEmitter:
    """Test listener subscription and dispatch."""

    def test_typed_listener(self):
        """Should only call listeners for the emitted type."""
        emitter = EventEmitter()
        failed, saved = [], []
        emitter.on(EventType.UPLOAD_FAILED, failed.append)
        emitter.on(EventType.DRAFT_SAVED, saved.append)
        emitter.emit(make_event())
        assert failed == []
        assert len(saved) == 1

    def test_typed_before_wildcard(self):
        """Should call typed listeners before wildcard ones."""
        emitter = EventEmitter()
        order = []
        emitter.on_any(lambda e: order.append("any"))
        emitter.on(EventType.DRAFT_SAVED, lambda e: order.append("typed"))
        emitter.emit(make_event())
        assert order == ["typed", "any"]

    def test_off(self):
        """Should stop calling removed listeners."""
        emitter = EventEmitter()
        seen = []
        emitter.on(EventType.DRAFT_SAVED, seen.append)
        emitter.on_any(seen.append)
        emitter.off(EventType.DRAFT_SAVED, seen.append)
        emitter.off_any(seen.append)
        emitter.emit(make_event())
        assert seen == []

    def test_off_unknown_listener_ignored(self):
        """Should ignore removal of listeners never added."""
        emitter = EventEmitter()
        emitter.off(EventType.DRAFT_SAVED, print)
        emitter.off_any(print)
        assert emitter.listener_count() == 0

    def test_listener_count_and_clear(self):
        """Should count typed and wildcard listeners."""
        emitter = EventEmitter()
        emitter.on(EventType.DRAFT_SAVED, print)
        emitter.on(EventType.UPLOAD_FAILED, print)
        emitter.on_any(print)
        assert emitter.listener_count(EventType.DRAFT_SAVED) == 1
        assert emitter.listener_count() == 3
        emitter.clear()
        assert emitter.listener_count() == 0

    def test_failing_listener_isolated(self, caplog):
        """Should log a failing listener and keep dispatching."""
        emitter = EventEmitter()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        emitter.on(EventType.DRAFT_SAVED, broken)
        emitter.on_any(seen.append)
        with caplog.at_level(logging.ERROR, logger="intakeform.events"):
            emitter.emit(make_event())
        assert len(seen) == 1
        assert "draft.saved" in caplog.text
