"""Intake lifecycle operations over a record store and a blob store.

IntakeService implements the operations behind the intake API: agents create
an intake with a form definition and read back the response and files;
clients store responses and upload files. HTTP routing and bearer-token
authentication sit in front of it and are not part of this package.

Return values are the JSON bodies the API sends back, so a thin HTTP layer
can pass them through unchanged.
"""

import json
import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from dateutil.relativedelta import relativedelta

from intakeform.config import Settings, get_settings
from intakeform.errors import ExpiredError, NotFoundError, ValidationRejectedError
from intakeform.store import (
    BlobStore,
    IntakeFile,
    IntakeRecord,
    RecordStore,
    StoredBlob,
    definition_key,
    file_key,
    response_key,
    utcnow,
)
from intakeform.tokens import generate_token, hash_password
from intakeform.types import FileCategory, IntakeStatus, Mode, Workflow
from intakeform.validation import DefinitionValidator

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")

E = TypeVar("E", bound=Enum)


def safe_filename(name: str) -> str:
    """Replace everything but letters, digits, dot, underscore and dash."""
    return UNSAFE_FILENAME_CHARS.sub("_", name)


def parse_choice(enum_cls: Type[E], value: str, label: str) -> E:
    """Convert a request value to ``enum_cls``, rejecting unknown values with a 400."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationRejectedError(
            f"Invalid {label} '{value}' (expected one of: {allowed})", status_code=400
        ) from None


class IntakeService:
    """Create, read and update intakes.

    Args:
        records: Store for intake metadata and file records
        blobs: Store for definitions, responses and file contents
        settings: Limits and link base; defaults to the environment settings
    """

    def __init__(self, records: RecordStore, blobs: BlobStore, settings: Optional[Settings] = None):
        self.records = records
        self.blobs = blobs
        self.settings = settings or get_settings()
        self._validator = DefinitionValidator()

    def _get_record(self, token: str, check_expiry: bool = True) -> IntakeRecord:
        record = self.records.get_by_token(token)
        if record is None:
            raise NotFoundError("Not found")
        if check_expiry and record.is_expired():
            raise ExpiredError("Intake form has expired")
        return record

    def _get_json(self, key: str, missing: str) -> Dict[str, Any]:
        blob = self.blobs.get(key)
        if blob is None:
            raise NotFoundError(missing)
        return json.loads(blob.data.decode("utf-8"))

    def _put_json(self, key: str, data: Any) -> None:
        self.blobs.put(key, json.dumps(data).encode("utf-8"), "application/json")

    def create_intake(
        self,
        project_name: str,
        workflow: str,
        form_definition: Optional[Dict[str, Any]],
        mode: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an intake record and store its form definition.

        Raises:
            ValidationRejectedError: If no definition is given, or the workflow
                or mode is unknown
            InvalidDefinitionError: If the definition is malformed
        """
        if not form_definition:
            raise ValidationRejectedError("form_definition is required", status_code=400)
        self._validator.check(form_definition)
        workflow_value = parse_choice(Workflow, workflow, "workflow")
        mode_value = parse_choice(Mode, mode or Mode.FULL.value, "mode")

        token = generate_token()
        record = self.records.insert(IntakeRecord(
            token=token,
            project_name=project_name,
            workflow=workflow_value,
            mode=mode_value,
            expires_at=utcnow() + relativedelta(days=self.settings.intake_ttl_days),
            password_hash=hash_password(password) if password else None,
        ))
        self._put_json(definition_key(token), form_definition)
        logger.info("Created intake %s for %s", token, project_name)

        return {
            "id": record.id,
            "token": record.token,
            "url": f"{self.settings.public_base_url.rstrip('/')}/{record.token}",
            "expires_at": record.expires_at.isoformat(),
        }

    def get_intake(self, token: str) -> Dict[str, Any]:
        """Intake metadata plus the stored response, or None if there is none."""
        record = self._get_record(token)
        blob = self.blobs.get(response_key(token))
        data = record.to_dict()
        data["response"] = json.loads(blob.data.decode("utf-8")) if blob else None
        return data

    def get_definition(self, token: str) -> Dict[str, Any]:
        return self._get_json(definition_key(token), "No form definition found")

    def get_response(self, token: str) -> Dict[str, Any]:
        return self._get_json(response_key(token), "No response found")

    def put_response(self, token: str, submitted_data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """Store a response; a non-partial write marks the intake submitted.

        Concurrent writes for one token are not coordinated; the last write wins.
        """
        record = self._get_record(token)
        self._put_json(response_key(token), submitted_data)

        now = utcnow()
        if partial:
            self.records.update(token, updated_at=now)
            return {"success": True, "status": record.status.value}

        self.records.update(token, status=IntakeStatus.SUBMITTED, submitted_at=now, updated_at=now)
        logger.info("Intake %s submitted", token)
        return {"success": True, "status": IntakeStatus.SUBMITTED.value}

    def update_status(self, token: str, status: str) -> Dict[str, Any]:
        new_status = parse_choice(IntakeStatus, status, "status")
        if self.records.update(token, status=new_status, updated_at=utcnow()) is None:
            raise NotFoundError("Not found")
        return {"success": True}

    def mark_sent(self, record: IntakeRecord) -> None:
        """Move a draft intake to sent on its first view."""
        if record.status is IntakeStatus.DRAFT:
            self.records.update(record.token, status=IntakeStatus.SENT, updated_at=utcnow())

    def upload_file(
        self,
        token: str,
        filename: str,
        content: bytes,
        mime_type: str,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store an uploaded file.

        Raises:
            NotFoundError: If the token is unknown
            ValidationRejectedError: If the file exceeds the upload limit
        """
        record = self._get_record(token, check_expiry=False)
        if len(content) > self.settings.max_upload_bytes:
            raise ValidationRejectedError("File exceeds 10 MB limit", filename=filename, status_code=413)

        try:
            file_category = FileCategory(category or FileCategory.OTHER.value)
        except ValueError:
            logger.info("Unknown file category %r for %s, storing as other", category, filename)
            file_category = FileCategory.OTHER

        stored_name = f"{int(utcnow().timestamp() * 1000)}-{safe_filename(filename)}"
        key = file_key(token, stored_name, file_category.value)
        self.blobs.put(key, content, mime_type)

        intake_file = self.records.insert_file(IntakeFile(
            intake_id=record.id,
            filename=stored_name,
            original_name=filename,
            mime_type=mime_type,
            size_bytes=len(content),
            blob_key=key,
            category=file_category,
        ))
        return {
            "id": intake_file.id,
            "filename": intake_file.original_name,
            "category": intake_file.category.value,
            "size_bytes": intake_file.size_bytes,
        }

    def list_files(self, token: str) -> List[Dict[str, Any]]:
        record = self._get_record(token, check_expiry=False)
        return [f.to_dict() for f in self.records.list_files(record.id)]

    def download_file(self, token: str, file_id: str) -> Tuple[IntakeFile, StoredBlob]:
        """Look up a file of this intake and its contents.

        Raises:
            NotFoundError: If the file is unknown, belongs to another intake,
                or is missing from blob storage
        """
        record = self._get_record(token, check_expiry=False)
        intake_file = self.records.get_file(file_id)
        if intake_file is None or intake_file.intake_id != record.id:
            raise NotFoundError("File not found")
        blob = self.blobs.get(intake_file.blob_key)
        if blob is None:
            raise NotFoundError("File not found in storage")
        return intake_file, blob


__all__ = [
    "IntakeService",
    "safe_filename",
]
