"""Local draft persistence for client forms.

A draft is what the user has typed so far, kept on the user's device so a
reload or browser restart does not lose it. There is exactly one draft per
``(origin, token)`` pair, stored as a JSON object of field name to value plus
the reserved ``_uploadedFiles`` map.

Stores hold serialized JSON text, the way browser local storage does, so a
draft can be compared byte for byte across operations. Store methods raise
on failure; callers that treat persistence as best effort catch the errors.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import quote

from typing_extensions import Protocol

logger = logging.getLogger(__name__)

UPLOADED_FILES_KEY = "_uploadedFiles"
RESERVED_PREFIX = "_"


def draft_key(token: str) -> str:
    """Storage key of the draft for ``token`` within one origin."""
    return f"intake_{token}"


class DraftStore(Protocol):
    """Persistent key-value storage scoped by origin."""

    def load_raw(self, origin: str, token: str) -> Optional[str]:
        ...

    def save_raw(self, origin: str, token: str, text: str) -> None:
        ...

    def clear(self, origin: str, token: str) -> None:
        ...


def load_draft(store: DraftStore, origin: str, token: str) -> Optional[Dict[str, Any]]:
    """Load and parse a draft. Unreadable or malformed drafts count as absent."""
    try:
        text = store.load_raw(origin, token)
    except OSError as exc:
        logger.debug("Could not read draft for %s: %s", token, exc)
        return None
    if text is None:
        return None
    try:
        data = json.loads(text)
    except ValueError:
        logger.debug("Ignoring malformed draft for %s", token)
        return None
    return data if isinstance(data, dict) else None


def save_draft(store: DraftStore, origin: str, token: str, data: Dict[str, Any]) -> bool:
    """Serialize and persist a draft. Returns False if the write failed."""
    try:
        store.save_raw(origin, token, json.dumps(data))
    except (OSError, TypeError, ValueError) as exc:
        logger.debug("Could not save draft for %s: %s", token, exc)
        return False
    return True


class InMemoryDraftStore:
    """Draft store kept in a dict; lives as long as the object."""

    def __init__(self):
        self._items: Dict[Tuple[str, str], str] = {}

    def load_raw(self, origin: str, token: str) -> Optional[str]:
        return self._items.get((origin, draft_key(token)))

    def save_raw(self, origin: str, token: str, text: str) -> None:
        self._items[(origin, draft_key(token))] = text

    def clear(self, origin: str, token: str) -> None:
        self._items.pop((origin, draft_key(token)), None)

    def __len__(self) -> int:
        return len(self._items)


class FileDraftStore:
    """Draft store backed by one JSON file per draft.

    Layout: ``<base_dir>/<quoted origin>/intake_<quoted token>.json``. Drafts survive
    process restarts and never expire.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir).expanduser()

    def path_for(self, origin: str, token: str) -> Path:
        return self.base_dir / quote(origin, safe="") / f"{quote(draft_key(token), safe='')}.json"

    def load_raw(self, origin: str, token: str) -> Optional[str]:
        path = self.path_for(origin, token)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def save_raw(self, origin: str, token: str, text: str) -> None:
        path = self.path_for(origin, token)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)

    def clear(self, origin: str, token: str) -> None:
        path = self.path_for(origin, token)
        if path.exists():
            path.unlink()


__all__ = [
    "DraftStore",
    "InMemoryDraftStore",
    "FileDraftStore",
    "load_draft",
    "save_draft",
    "draft_key",
    "UPLOADED_FILES_KEY",
    "RESERVED_PREFIX",
]
