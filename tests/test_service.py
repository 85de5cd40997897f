"""Unit tests for the intake lifecycle service.

Tests cover:
- Creating intakes (links, expiry, passwords, definition validation)
- Reading intakes, definitions and responses, including 404 and 410 cases
- Partial and final responses
- File upload, listing and download
- Status updates
"""

from datetime import timedelta

import pytest
from dateutil.parser import isoparse

from intakeform.config import Settings
from intakeform.errors import (
    ExpiredError,
    InvalidDefinitionError,
    NotFoundError,
    ValidationRejectedError,
)
from intakeform.service import IntakeService, safe_filename
from intakeform.store import InMemoryBlobStore, InMemoryRecordStore, definition_key, utcnow
from intakeform.tokens import hash_password
from intakeform.types import FileCategory, IntakeStatus, Mode, Workflow

DEFINITION = {
    "title": "Website brief",
    "sections": [{"heading": "About", "fields": [{"name": "company", "label": "Company", "type": "text"}]}],
}


@pytest.fixture
def service():
    settings = Settings(public_base_url="https://intake.example/", max_upload_bytes=1024)
    return IntakeService(InMemoryRecordStore(), InMemoryBlobStore(), settings)


@pytest.fixture
def token(service):
    return service.create_intake("Acme", "newsite", DEFINITION)["token"]


def expire(service, token):
    service.records.update(token, expires_at=utcnow() - timedelta(minutes=1))


class TestCreateIntake:
    """Test create_intake."""

    def test_returns_link_and_expiry(self, service):
        """Should return the token, the client link and a 30 day expiry."""
        before = utcnow()
        created = service.create_intake("Acme", "newsite", DEFINITION)
        assert created["url"] == f"https://intake.example/{created['token']}"
        expires_at = isoparse(created["expires_at"])
        assert timedelta(days=30) <= expires_at - before < timedelta(days=30, minutes=1)

    def test_stores_record_and_definition(self, service):
        """Should store a draft record and the definition as given."""
        created = service.create_intake("Acme", "migrate", DEFINITION, mode="prd")
        record = service.records.get_by_token(created["token"])
        assert record.id == created["id"]
        assert record.status is IntakeStatus.DRAFT
        assert record.workflow is Workflow.MIGRATE
        assert record.mode is Mode.PRD
        assert record.password_hash is None
        assert service.get_definition(created["token"]) == DEFINITION
        assert definition_key(created["token"]) in service.blobs.keys()

    def test_default_mode(self, service):
        """Should default to the full mode."""
        created = service.create_intake("Acme", "newsite", DEFINITION)
        assert service.records.get_by_token(created["token"]).mode is Mode.FULL

    def test_password_is_hashed(self, service):
        """Should store only the password digest."""
        created = service.create_intake("Acme", "newsite", DEFINITION, password="4821")
        assert service.records.get_by_token(created["token"]).password_hash == hash_password("4821")

    def test_tokens_unique(self, service):
        """Should give every intake its own token."""
        tokens = {service.create_intake("Acme", "newsite", DEFINITION)["token"] for _ in range(20)}
        assert len(tokens) == 20

    @pytest.mark.parametrize("definition", [None, {}])
    def test_definition_required(self, service, definition):
        """Should reject a missing definition with a 400."""
        with pytest.raises(ValidationRejectedError) as exc_info:
            service.create_intake("Acme", "newsite", definition)
        assert exc_info.value.status_code == 400

    def test_invalid_definition(self, service):
        """Should reject a malformed definition and store nothing."""
        with pytest.raises(InvalidDefinitionError):
            service.create_intake("Acme", "newsite", {"title": "No sections"})
        assert service.blobs.keys() == []

    @pytest.mark.parametrize("workflow,mode", [("redesign", None), ("newsite", "turbo")])
    def test_unknown_workflow_or_mode(self, service, workflow, mode):
        """Should reject unknown workflow and mode values with a 400 and store nothing."""
        with pytest.raises(ValidationRejectedError) as exc_info:
            service.create_intake("Acme", workflow, DEFINITION, mode=mode)
        assert exc_info.value.status_code == 400
        assert service.blobs.keys() == []


class TestReading:
    """Test get_intake, get_definition and get_response."""

    def test_get_intake_without_response(self, service, token):
        """Should return metadata with a null response."""
        data = service.get_intake(token)
        assert data["token"] == token
        assert data["project_name"] == "Acme"
        assert data["status"] == "draft"
        assert data["submitted_at"] is None
        assert data["response"] is None

    def test_get_intake_with_response(self, service, token):
        """Should include the stored response."""
        service.put_response(token, {"company": "Acme"})
        assert service.get_intake(token)["response"] == {"company": "Acme"}

    def test_unknown_token(self, service):
        """Should raise NotFoundError for unknown tokens."""
        with pytest.raises(NotFoundError):
            service.get_intake("nope")

    def test_expired(self, service, token):
        """Should raise ExpiredError once past the expiry."""
        expire(service, token)
        with pytest.raises(ExpiredError):
            service.get_intake(token)
        with pytest.raises(ExpiredError):
            service.put_response(token, {})

    def test_missing_response(self, service, token):
        """Should raise NotFoundError before anything is submitted."""
        with pytest.raises(NotFoundError):
            service.get_response(token)


class TestPutResponse:
    """Test partial and final responses."""

    def test_partial_keeps_status(self, service, token):
        """Should store the data without submitting."""
        result = service.put_response(token, {"company": "Ac"}, partial=True)
        assert result == {"success": True, "status": "draft"}
        record = service.records.get_by_token(token)
        assert record.status is IntakeStatus.DRAFT
        assert record.submitted_at is None
        assert service.get_response(token) == {"company": "Ac"}

    def test_final_submits(self, service, token):
        """Should mark the intake submitted and stamp the time."""
        result = service.put_response(token, {"company": "Acme"})
        assert result == {"success": True, "status": "submitted"}
        record = service.records.get_by_token(token)
        assert record.status is IntakeStatus.SUBMITTED
        assert record.submitted_at is not None
        assert record.is_complete

    def test_last_write_wins(self, service, token):
        """Should keep the most recent response."""
        service.put_response(token, {"company": "First"})
        service.put_response(token, {"company": "Second"})
        assert service.get_response(token) == {"company": "Second"}


class TestStatus:
    """Test update_status and mark_sent."""

    def test_update_status(self, service, token):
        """Should set the status."""
        assert service.update_status(token, "imported") == {"success": True}
        assert service.records.get_by_token(token).status is IntakeStatus.IMPORTED

    def test_update_unknown(self, service):
        """Should raise NotFoundError for unknown tokens."""
        with pytest.raises(NotFoundError):
            service.update_status("nope", "sent")

    def test_invalid_status(self, service, token):
        """Should reject values outside the status set with a 400."""
        with pytest.raises(ValidationRejectedError) as exc_info:
            service.update_status(token, "archived")
        assert exc_info.value.status_code == 400
        assert "archived" in exc_info.value.message
        assert service.records.get_by_token(token).status is IntakeStatus.DRAFT

    def test_mark_sent_only_from_draft(self, service, token):
        """Should move draft to sent and leave other statuses alone."""
        service.mark_sent(service.records.get_by_token(token))
        assert service.records.get_by_token(token).status is IntakeStatus.SENT

        service.put_response(token, {})
        service.mark_sent(service.records.get_by_token(token))
        assert service.records.get_by_token(token).status is IntakeStatus.SUBMITTED


class TestFiles:
    """Test upload_file, list_files and download_file."""

    def test_upload(self, service, token):
        """Should store the blob and a file record."""
        result = service.upload_file(token, "logo.png", b"\x89PNG", "image/png", "logo")
        assert result["filename"] == "logo.png"
        assert result["category"] == "logo"
        assert result["size_bytes"] == 4

        intake_file, blob = service.download_file(token, result["id"])
        assert blob.data == b"\x89PNG"
        assert blob.content_type == "image/png"
        assert intake_file.blob_key.startswith(f"intake/{token}/logo/")

    def test_stored_name_sanitized(self, service, token):
        """Should prefix a timestamp and replace unsafe characters."""
        result = service.upload_file(token, "my logo (1).png", b"x", "image/png", "logo")
        intake_file, _ = service.download_file(token, result["id"])
        prefix, _, rest = intake_file.filename.partition("-")
        assert prefix.isdigit()
        assert rest == "my_logo__1_.png"
        assert intake_file.original_name == "my logo (1).png"

    @pytest.mark.parametrize("category", [None, "", "banner"])
    def test_category_fallback(self, service, token, category):
        """Should store missing or unknown categories as other."""
        result = service.upload_file(token, "a.pdf", b"x", "application/pdf", category)
        assert result["category"] == FileCategory.OTHER.value

    def test_too_large(self, service, token):
        """Should reject files over the limit with a 413."""
        with pytest.raises(ValidationRejectedError) as exc_info:
            service.upload_file(token, "big.bin", b"x" * 1025, "application/octet-stream")
        assert exc_info.value.status_code == 413
        assert exc_info.value.message == "File exceeds 10 MB limit"
        assert service.list_files(token) == []

    def test_exactly_at_limit(self, service, token):
        """Should accept a file of exactly the limit."""
        service.upload_file(token, "edge.bin", b"x" * 1024, "application/octet-stream")
        assert len(service.list_files(token)) == 1

    def test_upload_unknown_token(self, service):
        """Should raise NotFoundError for unknown tokens."""
        with pytest.raises(NotFoundError):
            service.upload_file("nope", "a.png", b"x", "image/png")

    def test_list_files(self, service, token):
        """Should list files of this intake only."""
        other = service.create_intake("Other", "newsite", DEFINITION)["token"]
        service.upload_file(token, "a.png", b"x", "image/png", "photo")
        service.upload_file(other, "b.png", b"x", "image/png", "photo")
        files = service.list_files(token)
        assert [f["filename"] for f in files] == ["a.png"]
        assert files[0]["category"] == "photo"

    def test_download_other_intakes_file(self, service, token):
        """Should not serve a file through another intake's token."""
        other = service.create_intake("Other", "newsite", DEFINITION)["token"]
        file_id = service.upload_file(other, "b.png", b"x", "image/png")["id"]
        with pytest.raises(NotFoundError):
            service.download_file(token, file_id)

    def test_download_missing_blob(self, service, token):
        """Should raise NotFoundError when the blob is gone."""
        file_id = service.upload_file(token, "a.png", b"x", "image/png")["id"]
        intake_file, _ = service.download_file(token, file_id)
        service.blobs.delete(intake_file.blob_key)
        with pytest.raises(NotFoundError):
            service.download_file(token, file_id)

    def test_files_after_expiry(self, service, token):
        """Should keep accepting and listing files after expiry."""
        expire(service, token)
        service.upload_file(token, "late.png", b"x", "image/png")
        assert len(service.list_files(token)) == 1


class TestSafeFilename:
    """Test filename sanitizing."""

    @pytest.mark.parametrize("name,expected", [
        ("logo.png", "logo.png"),
        ("a b.png", "a_b.png"),
        ("../etc/passwd", ".._etc_passwd"),
        ("résumé.pdf", "r_sum_.pdf"),
    ])
    def test_safe_filename(self, name, expected):
        """Should keep only safe characters."""
        assert safe_filename(name) == expected
