"""HTTP client for the intake lifecycle API.

The form runtime consumes four contracts (definition, response, upload,
files); agents additionally create intakes, read responses and download
files. All calls go through one ``httpx.Client`` and share one status
mapping:

    404            -> NotFoundError
    410            -> ExpiredError
    400, 413       -> ValidationRejectedError
    anything else  -> the operation's failure type (UploadFailedError,
                      SubmissionFailedError or IntakeAPIError)

Transport errors (connection refused, reset, ...) map to the operation's
failure type as well, so callers only ever handle IntakeFormError.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

import httpx
from dateutil.parser import isoparse
from typing_extensions import NotRequired, TypedDict

from intakeform.errors import (
    ExpiredError,
    IntakeAPIError,
    IntakeFormError,
    NotFoundError,
    SubmissionFailedError,
    UploadFailedError,
    ValidationRejectedError,
)
from intakeform.schema import FormDefinition
from intakeform.uploads import PendingFile

logger = logging.getLogger(__name__)

CONTENT_DISPOSITION_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


class UploadResponse(TypedDict):
    id: str
    filename: str
    size_bytes: int
    category: NotRequired[str]


class SubmitResponse(TypedDict):
    success: bool
    status: str


class CreatedIntake(TypedDict):
    id: str
    token: str
    url: str
    expires_at: Optional[datetime]


@dataclass(frozen=True)
class RemoteFile:
    """A file stored for an intake, as listed by the API."""
    id: str
    filename: str
    size_bytes: int
    category: str
    mime_type: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteFile":
        return cls(
            id=str(data["id"]),
            filename=data["filename"],
            size_bytes=int(data["size_bytes"]),
            category=data.get("category", "other"),
            mime_type=data.get("mime_type"),
            created_at=_parse_timestamp(data.get("created_at")),
        )


@dataclass(frozen=True)
class DownloadedFile:
    filename: str
    mime_type: str
    content: bytes


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return isoparse(value)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase


class IntakeClient:
    """Client for the intake lifecycle API.

    Args:
        base_url: API origin, e.g. ``https://intake.example.com``
        api_key: Bearer token sent on every request when set
        timeout: Request timeout in seconds; None waits indefinitely
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)

    Examples:
        >>> client = IntakeClient("https://intake.example.com", api_key="secret")
        >>> client.base_url
        'https://intake.example.com'
        >>> client.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.BaseTransport] = None) -> "IntakeClient":
        return cls(
            settings.api_base_url,
            api_key=settings.api_key or None,
            timeout=settings.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "IntakeClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- plumbing ---------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        failure: Type[IntakeFormError] = IntakeAPIError,
        filename: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise failure(f"Request failed: {exc}", filename=filename) from exc

        if response.is_success:
            return response

        message = _error_message(response)
        status = response.status_code
        if status == 404:
            raise NotFoundError(message, filename=filename, status_code=status)
        if status == 410:
            raise ExpiredError(message, filename=filename, status_code=status)
        if status in (400, 413):
            raise ValidationRejectedError(message, filename=filename, status_code=status)
        logger.warning("%s %s returned %s: %s", method, path, status, message)
        raise failure(message, filename=filename, status_code=status)

    # -- form runtime contracts -------------------------------------------

    def get_definition(self, token: str) -> FormDefinition:
        """Fetch and normalize the form definition for ``token``."""
        response = self._request("GET", f"/api/intake/{token}/definition")
        return FormDefinition.from_dict(response.json())

    def put_response(
        self,
        token: str,
        submitted_data: Dict[str, Any],
        partial: bool = False,
    ) -> SubmitResponse:
        """Store a response. ``partial=False`` marks the final submission."""
        response = self._request(
            "PUT",
            f"/api/intake/{token}",
            failure=SubmissionFailedError,
            json={"submitted_data": submitted_data, "partial": partial},
        )
        return response.json()

    def upload_file(self, token: str, file: PendingFile, category: str) -> UploadResponse:
        """Upload one file as multipart form data."""
        response = self._request(
            "POST",
            f"/api/intake/{token}/upload",
            failure=UploadFailedError,
            filename=file.name,
            files={"file": (file.name, file.content, file.content_type)},
            data={"category": category},
        )
        try:
            data = response.json()
        except ValueError as exc:
            raise UploadFailedError("Malformed upload response", filename=file.name) from exc
        if not isinstance(data, dict) or "id" not in data:
            raise UploadFailedError("Upload response has no file id", filename=file.name)
        return data

    def list_files(self, token: str) -> List[RemoteFile]:
        response = self._request("GET", f"/api/intake/{token}/files")
        return [RemoteFile.from_dict(item) for item in response.json()]

    # -- agent operations -------------------------------------------------

    def create_intake(
        self,
        project_name: str,
        workflow: str,
        form_definition: Dict[str, Any],
        mode: Optional[str] = None,
        password: Optional[str] = None,
    ) -> CreatedIntake:
        body: Dict[str, Any] = {
            "project_name": project_name,
            "workflow": workflow,
            "form_definition": form_definition,
        }
        if mode is not None:
            body["mode"] = mode
        if password:
            body["password"] = password
        data = self._request("POST", "/api/intake", json=body).json()
        data["expires_at"] = _parse_timestamp(data.get("expires_at"))
        return data

    def get_intake(self, token: str) -> Dict[str, Any]:
        """Intake metadata and stored response, with timestamps parsed."""
        data = self._request("GET", f"/api/intake/{token}").json()
        for key in ("created_at", "updated_at", "submitted_at", "expires_at"):
            data[key] = _parse_timestamp(data.get(key))
        return data

    def get_response(self, token: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/intake/{token}/response").json()

    def update_status(self, token: str, status: str) -> None:
        self._request("PATCH", f"/api/intake/{token}/status", json={"status": status})

    def download_file(self, token: str, file_id: str) -> DownloadedFile:
        response = self._request("GET", f"/api/intake/{token}/files/{file_id}")
        match = CONTENT_DISPOSITION_FILENAME_RE.search(response.headers.get("content-disposition", ""))
        return DownloadedFile(
            filename=match.group(1) if match else file_id,
            mime_type=response.headers.get("content-type", "application/octet-stream"),
            content=response.content,
        )


__all__ = [
    "IntakeClient",
    "RemoteFile",
    "DownloadedFile",
    "UploadResponse",
    "SubmitResponse",
    "CreatedIntake",
]
