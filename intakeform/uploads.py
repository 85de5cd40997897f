"""Upload bookkeeping for file fields.

UploadState is the single authoritative record of which files belong to which
file field of a form instance. It changes only through three transitions:

    add_placeholder  file selected, upload about to start (uploading=True)
    resolve          upload succeeded, placeholder replaced by server ref
    remove           upload failed or user removed the entry

Every list shown to the user is read back from the state (``files_for``)
instead of being patched in place, so overlapping batches can never
duplicate or resurrect an entry.
"""

import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
TRANSIENT_ID_PREFIX = "uploading-"


@dataclass(frozen=True)
class UploadedFileRef:
    """A file entry in a file field's list.

    Attributes:
        id: Server-assigned id, or a transient ``uploading-...`` id while in flight
        name: Original filename
        size: Size in bytes; None while uploading
        uploading: Whether the upload is still in flight
    """
    id: str
    name: str
    size: Optional[int] = None
    uploading: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "name": self.name, "uploading": self.uploading}
        if self.size is not None:
            result["size"] = self.size
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadedFileRef":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            size=data.get("size"),
            uploading=bool(data.get("uploading", False)),
        )


@dataclass(frozen=True)
class PendingFile:
    """A file chosen by the user, not yet uploaded."""
    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "PendingFile":
        """Read a file from disk, guessing its MIME type from the name."""
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, content=path.read_bytes(), content_type=content_type)


def format_bytes(size: int) -> str:
    """Human-readable size, matching the browser file list ("1.5 KB")."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


class UploadState:
    """Per-form map of file field name to its ordered file entries.

    Examples:
        >>> state = UploadState(["logo"])
        >>> placeholder = state.add_placeholder("logo", "logo.png")
        >>> placeholder.uploading
        True
        >>> state.resolve("logo", placeholder.id, UploadedFileRef("f_1", "logo.png", 2048))
        True
        >>> state.to_payload()
        {'logo': [{'id': 'f_1', 'name': 'logo.png', 'uploading': False, 'size': 2048}]}
    """

    def __init__(self, field_names: Iterable[str] = ()):
        self._files: Dict[str, List[UploadedFileRef]] = {name: [] for name in field_names}

    @property
    def field_names(self) -> List[str]:
        return list(self._files)

    def files_for(self, field_name: str) -> List[UploadedFileRef]:
        """Current entries of one field, in insertion order."""
        return list(self._files.get(field_name, []))

    def in_flight(self) -> List[UploadedFileRef]:
        return [ref for refs in self._files.values() for ref in refs if ref.uploading]

    def add_placeholder(self, field_name: str, filename: str) -> UploadedFileRef:
        """Append an uploading entry with a fresh transient id."""
        placeholder = UploadedFileRef(
            id=f"{TRANSIENT_ID_PREFIX}{uuid.uuid4().hex[:12]}",
            name=filename,
            uploading=True,
        )
        self._files.setdefault(field_name, []).append(placeholder)
        return placeholder

    def resolve(self, field_name: str, transient_id: str, resolved: UploadedFileRef) -> bool:
        """Replace the placeholder ``transient_id`` with ``resolved`` in place.

        Returns False when the placeholder is gone (the user removed it while
        it was uploading); the resolved entry is then not added.
        """
        refs = self._files.get(field_name, [])
        for index, ref in enumerate(refs):
            if ref.id == transient_id:
                refs[index] = resolved
                return True
        return False

    def remove(self, file_id: str) -> bool:
        """Remove ``file_id`` from every field list. Ids are unique per form."""
        removed = False
        for name, refs in self._files.items():
            kept = [ref for ref in refs if ref.id != file_id]
            if len(kept) != len(refs):
                self._files[name] = kept
                removed = True
        return removed

    def to_draft(self) -> Dict[str, List[Dict[str, Any]]]:
        """All entries, including in-flight placeholders, for draft storage."""
        return {name: [ref.to_dict() for ref in refs] for name, refs in self._files.items()}

    def to_payload(self) -> Dict[str, List[Dict[str, Any]]]:
        """Resolved entries only, for the submission payload."""
        return {
            name: [ref.to_dict() for ref in refs if not ref.uploading]
            for name, refs in self._files.items()
        }

    def load_draft(self, saved: Dict[str, Any]) -> None:
        """Restore entries of known fields from a saved draft map.

        Entries saved while still uploading were abandoned when the page was
        left, so they are dropped.
        """
        for name, entries in saved.items():
            if name not in self._files or not isinstance(entries, list):
                continue
            self._files[name] = [
                ref for ref in (UploadedFileRef.from_dict(e) for e in entries if isinstance(e, dict))
                if not ref.uploading
            ]


__all__ = [
    "MAX_UPLOAD_BYTES",
    "UploadedFileRef",
    "PendingFile",
    "UploadState",
    "format_bytes",
]
