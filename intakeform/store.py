"""Record and blob storage interfaces for intakes.

Intake metadata lives in a record store (a relational table in production);
definitions, responses and uploaded files live in a blob store. Both are
external collaborators, described here as protocols. The in-memory
implementations back the tests and local development.

Each store call is treated as atomic. There is no locking across calls:
two concurrent final submissions for one token both succeed and the later
write wins.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from typing_extensions import Protocol

from intakeform.types import FileCategory, IntakeStatus, Mode, Workflow


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def definition_key(token: str) -> str:
    return f"forms/{token}/definition.json"


def response_key(token: str) -> str:
    return f"forms/{token}/response.json"


def file_key(token: str, filename: str, category: str) -> str:
    return f"intake/{token}/{category}/{filename}"


@dataclass(frozen=True)
class IntakeRecord:
    """Metadata of one intake."""
    token: str
    project_name: str
    workflow: Workflow
    mode: Mode
    expires_at: datetime
    status: IntakeStatus = IntakeStatus.DRAFT
    password_hash: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    submitted_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at < (now or utcnow())

    @property
    def is_complete(self) -> bool:
        """Submitted or already imported by the agent."""
        return self.status in (IntakeStatus.SUBMITTED, IntakeStatus.IMPORTED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "token": self.token,
            "project_name": self.project_name,
            "workflow": self.workflow.value,
            "mode": self.mode.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "expires_at": self.expires_at.isoformat(),
        }


@dataclass(frozen=True)
class IntakeFile:
    """A file uploaded against an intake."""
    intake_id: str
    filename: str
    original_name: str
    mime_type: str
    size_bytes: int
    blob_key: str
    category: FileCategory = FileCategory.OTHER
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.original_name,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "category": self.category.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class StoredBlob:
    data: bytes
    content_type: str


class RecordStore(Protocol):
    def get_by_token(self, token: str) -> Optional[IntakeRecord]:
        ...

    def insert(self, record: IntakeRecord) -> IntakeRecord:
        ...

    def update(self, token: str, **changes: Any) -> Optional[IntakeRecord]:
        ...

    def insert_file(self, intake_file: IntakeFile) -> IntakeFile:
        ...

    def list_files(self, intake_id: str) -> List[IntakeFile]:
        ...

    def get_file(self, file_id: str) -> Optional[IntakeFile]:
        ...


class BlobStore(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> None:
        ...

    def get(self, key: str) -> Optional[StoredBlob]:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryRecordStore:
    """RecordStore kept in dicts."""

    def __init__(self):
        self._records: Dict[str, IntakeRecord] = {}
        self._files: Dict[str, IntakeFile] = {}

    def get_by_token(self, token: str) -> Optional[IntakeRecord]:
        return self._records.get(token)

    def insert(self, record: IntakeRecord) -> IntakeRecord:
        if record.token in self._records:
            raise ValueError(f"Token {record.token} already exists")
        self._records[record.token] = record
        return record

    def update(self, token: str, **changes: Any) -> Optional[IntakeRecord]:
        record = self._records.get(token)
        if record is None:
            return None
        updated = replace(record, **changes)
        self._records[token] = updated
        return updated

    def insert_file(self, intake_file: IntakeFile) -> IntakeFile:
        self._files[intake_file.id] = intake_file
        return intake_file

    def list_files(self, intake_id: str) -> List[IntakeFile]:
        return [f for f in self._files.values() if f.intake_id == intake_id]

    def get_file(self, file_id: str) -> Optional[IntakeFile]:
        return self._files.get(file_id)


class InMemoryBlobStore:
    """BlobStore kept in a dict."""

    def __init__(self):
        self._blobs: Dict[str, StoredBlob] = {}

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self._blobs[key] = StoredBlob(data=bytes(data), content_type=content_type)

    def get(self, key: str) -> Optional[StoredBlob]:
        return self._blobs.get(key)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._blobs)


__all__ = [
    "IntakeRecord",
    "IntakeFile",
    "StoredBlob",
    "RecordStore",
    "BlobStore",
    "InMemoryRecordStore",
    "InMemoryBlobStore",
    "definition_key",
    "response_key",
    "file_key",
]
