"""Core type definitions for the intake form service.

This module defines the fundamental types shared by the renderer, the client
form runtime and the intake lifecycle service:
- FieldType: The closed set of form field kinds
- FormState: Lifecycle states of a client form instance
- IntakeStatus / Workflow / Mode / FileCategory: Intake record enums
- ErrorType: Error categories with their retry semantics
- EventType: Event types emitted by the client form runtime
- FieldErrorCode: Definition validation error codes
- Actor: Identity representation for clients, agents and the system
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class FieldType(str, Enum):
    """Kinds of fields a form definition may contain.

    The set is closed. Every dispatch over field kinds is a table keyed by
    all members (see ``renderer.FIELD_RENDERERS`` and
    ``runtime.CONTROL_KINDS``).
    """
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    CONTENT = "content"
    FILE = "file"


class FormState(str, Enum):
    """Client form instance states.

    idle -> editing -> submitting -> submitted, or submitting -> editing when
    the submission fails. Terminal state: submitted.
    """
    IDLE = "idle"
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class IntakeStatus(str, Enum):
    """Intake record status as tracked by the record store."""
    DRAFT = "draft"
    SENT = "sent"
    SUBMITTED = "submitted"
    IMPORTED = "imported"


class Workflow(str, Enum):
    MIGRATE = "migrate"
    NEWSITE = "newsite"


class Mode(str, Enum):
    FULL = "full"
    PRD = "prd"
    AUTONOMOUS = "autonomous"
    QUICKSTART = "quickstart"


class FileCategory(str, Enum):
    """Storage categories for uploaded files."""
    LOGO = "logo"
    PHOTO = "photo"
    DOCUMENT = "document"
    OTHER = "other"


class ErrorType(str, Enum):
    """Error categories for intake operations.

    not_found and expired are blocking with no retry path; the rest are
    recoverable by the user.
    """
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    VALIDATION_REJECTED = "validation_rejected"
    UPLOAD_FAILED = "upload_failed"
    SUBMISSION_FAILED = "submission_failed"
    INVALID_DEFINITION = "invalid_definition"
    API_ERROR = "api_error"


class EventType(str, Enum):
    """Event types emitted by the client form runtime."""
    DRAFT_RESTORED = "draft.restored"
    DRAFT_SAVED = "draft.saved"
    DRAFT_CLEARED = "draft.cleared"
    FIELD_UPDATED = "field.updated"
    UPLOAD_REJECTED = "upload.rejected"
    UPLOAD_STARTED = "upload.started"
    UPLOAD_COMPLETED = "upload.completed"
    UPLOAD_FAILED = "upload.failed"
    FILE_REMOVED = "file.removed"
    SUBMISSION_STARTED = "submission.started"
    SUBMISSION_SUCCEEDED = "submission.succeeded"
    SUBMISSION_FAILED = "submission.failed"


class FieldErrorCode(str, Enum):
    """Error codes for form definition validation failures."""
    REQUIRED = "required"
    INVALID_TYPE = "invalid_type"
    INVALID_VALUE = "invalid_value"
    DUPLICATE_NAME = "duplicate_name"
    MISSING_OPTIONS = "missing_options"
    CUSTOM = "custom"


class ActorKind(str, Enum):
    """Actor type classification.

    Clients fill in forms, agents create and read intakes, and the system
    resolves uploads and submissions.
    """
    CLIENT = "client"
    AGENT = "agent"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Identity of an actor recorded on runtime events.

    Attributes:
        kind: Type of actor (client, agent, or system)
        id: Identifier for this actor (the form token for clients)
        name: Optional display name
        metadata: Optional arbitrary data (e.g., {"origin": "https://..."})

    Examples:
        >>> client = Actor(kind=ActorKind.CLIENT, id="tok_abc")
        >>> system = Actor(kind=ActorKind.SYSTEM, id="uploader")
    """
    kind: ActorKind
    id: str
    name: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "kind": self.kind.value if isinstance(self.kind, ActorKind) else self.kind,
            "id": self.id,
        }
        if self.name is not None:
            result["name"] = self.name
        if self.metadata:
            result["metadata"] = self.metadata
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Actor":
        """Create Actor from dict."""
        kind = data["kind"]
        if isinstance(kind, str):
            kind = ActorKind(kind)
        return cls(
            kind=kind,
            id=data["id"],
            name=data.get("name"),
            metadata=data.get("metadata", {}),
        )


SYSTEM_ACTOR = Actor(kind=ActorKind.SYSTEM, id="intakeform")


__all__ = [
    "FieldType",
    "FormState",
    "IntakeStatus",
    "Workflow",
    "Mode",
    "FileCategory",
    "ErrorType",
    "EventType",
    "FieldErrorCode",
    "ActorKind",
    "Actor",
    "SYSTEM_ACTOR",
]
