"""FormRuntime: the client side of an intake form.

The runtime holds the state of one open form on one device and drives the
intake API on the user's behalf. It mirrors what the browser script emitted
by the renderer does, and is the implementation the test suite exercises:

- Restores the local draft on open (scalars, checkbox groups, uploads)
- Saves the draft after every field change and every upload resolution
- Uploads files one at a time per batch, with a placeholder entry per file
- Assembles and sends the final submission, clearing the draft on success

Every user-visible outcome is recorded as a FormEvent and forwarded to the
runtime's EventEmitter.

Usage:
    >>> from intakeform.client import IntakeClient
    >>> from intakeform.drafts import InMemoryDraftStore
    >>> from intakeform.schema import FormDefinition
    >>> definition = FormDefinition.from_dict({
    ...     "title": "Brief",
    ...     "sections": [{"fields": [{"name": "company", "label": "Company", "type": "text"}]}],
    ... })
    >>> runtime = FormRuntime(definition, "tok_1", IntakeClient("http://api"), InMemoryDraftStore())
    >>> runtime.set_value("company", "Acme")
    >>> runtime.state.value
    'editing'
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from intakeform.client import IntakeClient
from intakeform.drafts import (
    RESERVED_PREFIX,
    UPLOADED_FILES_KEY,
    DraftStore,
    load_draft,
    save_draft,
)
from intakeform.errors import (
    ErrorDetail,
    ExpiredError,
    IntakeFormError,
    NotFoundError,
    SubmissionFailedError,
    UploadFailedError,
    ValidationRejectedError,
)
from intakeform.events import EventEmitter, FormEvent
from intakeform.schema import FormDefinition, FormField
from intakeform.state_machine import FormLockedError, FormStateMachine
from intakeform.types import Actor, ActorKind, EventType, FieldType, FormState
from intakeform.uploads import (
    MAX_UPLOAD_BYTES,
    PendingFile,
    UploadedFileRef,
    UploadState,
    format_bytes,
)

logger = logging.getLogger(__name__)

SCALAR = "scalar"
GROUP = "group"

# How each field kind is held as form control state; None means no control value
CONTROL_KINDS: Dict[FieldType, Optional[str]] = {
    FieldType.TEXT: SCALAR,
    FieldType.TEXTAREA: SCALAR,
    FieldType.SELECT: SCALAR,
    FieldType.CHECKBOX: GROUP,
    FieldType.CONTENT: None,
    FieldType.FILE: None,
}

PAYLOAD_FILES_KEY = "_uploaded_files"
SUBMIT_LABEL = "Submit"
SUBMITTING_LABEL = "Submitting..."
UPLOAD_FAILED_MESSAGE = "Failed to upload {name}. Please try again."
SUBMIT_FAILED_MESSAGE = "There was a problem submitting the form. Please try again."


@dataclass
class UploadBatchResult:
    """Outcome of one file selection or drop.

    Attributes:
        uploaded: Resolved entries, in selection order
        errors: One ErrorDetail per rejected or failed file
    """
    uploaded: List[UploadedFileRef] = field(default_factory=list)
    errors: List[ErrorDetail] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a submit attempt.

    Attributes:
        ok: Whether the response was stored
        status: Intake status reported by the API on success
        redirect_to: Confirmation page path on success
        error: What went wrong on failure
    """
    ok: bool
    status: Optional[str] = None
    redirect_to: Optional[str] = None
    error: Optional[ErrorDetail] = None


class FormRuntime:
    """State and behaviour of one open intake form.

    Attributes:
        definition: The normalized form definition
        token: Token of the intake
        origin: Origin the draft is scoped to
        uploads: Authoritative upload state for the file fields
        emitter: Receives every FormEvent
        submit_label: Current label of the submit control
    """

    def __init__(
        self,
        definition: FormDefinition,
        token: str,
        client: IntakeClient,
        drafts: DraftStore,
        origin: str = "",
        emitter: Optional[EventEmitter] = None,
        actor: Optional[Actor] = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ):
        self.definition = definition
        self.token = token
        self.origin = origin
        self.emitter = emitter or EventEmitter()
        self.max_upload_bytes = max_upload_bytes
        self.submit_label = SUBMIT_LABEL
        self.redirect_to: Optional[str] = None

        self._client = client
        self._drafts = drafts
        self._actor = actor or Actor(kind=ActorKind.CLIENT, id=token)
        self._state_machine = FormStateMachine(token=token, emitter=self.emitter)

        self._fields: Dict[str, FormField] = {}
        self._scalars: Dict[str, str] = {}
        self._groups: Dict[str, List[str]] = {}
        for form_field in definition.iter_fields():
            kind = CONTROL_KINDS[form_field.type]
            if kind is None:
                continue
            self._fields[form_field.name] = form_field
            if kind == SCALAR:
                self._scalars[form_field.name] = self._initial_scalar(form_field)
            else:
                self._groups[form_field.name] = [o for o in form_field.options if o == form_field.value]

        self._file_fields = {f.name: f for f in definition.file_fields()}
        self.uploads = UploadState(self._file_fields)

        self._restore_draft()

    @classmethod
    def open(
        cls,
        token: str,
        client: IntakeClient,
        drafts: DraftStore,
        origin: str = "",
        **kwargs: Any,
    ) -> "FormRuntime":
        """Fetch the definition for ``token`` and open the form.

        Raises:
            NotFoundError: If the token has no form definition
        """
        return cls(client.get_definition(token), token, client, drafts, origin=origin, **kwargs)

    @staticmethod
    def _initial_scalar(form_field: FormField) -> str:
        if form_field.type is FieldType.SELECT and form_field.value not in form_field.options:
            return ""
        return form_field.value

    # -- state ------------------------------------------------------------

    @property
    def state(self) -> FormState:
        return self._state_machine.state

    @property
    def submit_disabled(self) -> bool:
        return self._state_machine.is_locked

    def get_events(self) -> List[FormEvent]:
        return self._state_machine.get_events()

    def value(self, name: str) -> str:
        return self._scalars[name]

    def checked(self, name: str) -> List[str]:
        return list(self._groups[name])

    def files(self, name: str) -> List[UploadedFileRef]:
        return self.uploads.files_for(name)

    def values(self) -> Dict[str, Any]:
        """Current control values in document order.

        Scalars are always present; checkbox groups only when something is
        checked, matching what a browser puts into form data.
        """
        data: Dict[str, Any] = {}
        for name in self._fields:
            if name in self._scalars:
                data[name] = self._scalars[name]
            elif self._groups[name]:
                data[name] = list(self._groups[name])
        return data

    def build_draft(self) -> Dict[str, Any]:
        draft = self.values()
        draft[UPLOADED_FILES_KEY] = self.uploads.to_draft()
        return draft

    def build_payload(self) -> Dict[str, Any]:
        """The submission body: control values plus resolved uploads."""
        payload = self.values()
        if self._file_fields:
            payload[PAYLOAD_FILES_KEY] = self.uploads.to_payload()
        return payload

    # -- drafts -----------------------------------------------------------

    def _restore_draft(self) -> None:
        data = load_draft(self._drafts, self.origin, self.token)
        if not data:
            return

        restored = []
        for key, saved in data.items():
            if key.startswith(RESERVED_PREFIX) or key not in self._fields:
                continue
            form_field = self._fields[key]
            if key in self._groups:
                saved_values = saved if isinstance(saved, list) else [saved]
                self._groups[key] = [o for o in form_field.options if o in saved_values]
            else:
                text = "" if saved is None else str(saved)
                if form_field.type is FieldType.SELECT and text not in form_field.options:
                    text = ""
                self._scalars[key] = text
            restored.append(key)

        saved_files = data.get(UPLOADED_FILES_KEY)
        if self._file_fields and isinstance(saved_files, dict):
            self.uploads.load_draft(saved_files)

        self._state_machine.record(EventType.DRAFT_RESTORED, self._actor, {"fields": restored})

    def save_draft(self) -> bool:
        """Persist the current state. Failures are tolerated; returns success."""
        ok = save_draft(self._drafts, self.origin, self.token, self.build_draft())
        if ok:
            self._state_machine.record(EventType.DRAFT_SAVED, self._actor)
        return ok

    # -- editing ----------------------------------------------------------

    def _ensure_editable(self) -> None:
        if self._state_machine.is_locked:
            raise FormLockedError(self.state)

    def _enter_editing(self, payload: Dict[str, Any]) -> bool:
        """Leave idle on the first interaction. Returns True if it transitioned."""
        if self.state is FormState.IDLE:
            self._state_machine.transition_to(FormState.EDITING, self._actor, payload)
            return True
        return False

    def _mark_edited(self, name: str) -> None:
        if not self._enter_editing({"field": name}):
            self._state_machine.record(EventType.FIELD_UPDATED, self._actor, {"field": name})

    def _control(self, name: str, kind: str) -> FormField:
        form_field = self._fields.get(name)
        if form_field is None or CONTROL_KINDS[form_field.type] != kind:
            raise ValueError(f"'{name}' is not a {kind} field of this form")
        return form_field

    def set_value(self, name: str, value: str) -> None:
        """Change a text, textarea or select control.

        Raises:
            ValueError: If ``name`` is not a scalar field
            FormLockedError: While submitting or after submission
        """
        self._ensure_editable()
        self._control(name, SCALAR)
        self._scalars[name] = value
        self._mark_edited(name)
        self.save_draft()

    def set_checked(self, name: str, option: str, checked: bool = True) -> None:
        """Check or uncheck one box of a checkbox group."""
        self._ensure_editable()
        form_field = self._control(name, GROUP)
        if option not in form_field.options:
            raise ValueError(f"'{option}' is not an option of '{name}'")
        selected = set(self._groups[name])
        if checked:
            selected.add(option)
        else:
            selected.discard(option)
        self._groups[name] = [o for o in form_field.options if o in selected]
        self._mark_edited(name)
        self.save_draft()

    # -- uploads ----------------------------------------------------------

    def add_files(self, name: str, files: Iterable[PendingFile]) -> UploadBatchResult:
        """Upload a batch of files into file field ``name``, one at a time.

        Oversized files are rejected without a request. A failed upload drops
        only its own entry; the rest of the batch continues.

        Raises:
            ValueError: If ``name`` is not a file field
            FormLockedError: While submitting or after submission
        """
        self._ensure_editable()
        form_field = self._file_fields.get(name)
        if form_field is None:
            raise ValueError(f"'{name}' is not a file field of this form")

        result = UploadBatchResult()
        batch = list(files)
        if batch:
            self._enter_editing({"field": name})

        for pending in batch:
            if pending.size > self.max_upload_bytes:
                limit = format_bytes(self.max_upload_bytes)
                error = ValidationRejectedError(
                    f"{pending.name} is too large (max {limit}).",
                    field=name,
                    filename=pending.name,
                )
                logger.info("Rejected %s for %s: %s", pending.name, name, format_bytes(pending.size))
                result.errors.append(error.to_detail())
                self._state_machine.record(EventType.UPLOAD_REJECTED, self._actor, error.to_detail().to_dict())
                continue

            placeholder = self.uploads.add_placeholder(name, pending.name)
            self._state_machine.record(
                EventType.UPLOAD_STARTED, self._actor, {"field": name, "file": placeholder.to_dict()}
            )

            try:
                response = self._client.upload_file(self.token, pending, form_field.category)
            except IntakeFormError as exc:
                self.uploads.remove(placeholder.id)
                logger.warning("Upload of %s to %s failed: %s", pending.name, self.token, exc)
                error = UploadFailedError(
                    UPLOAD_FAILED_MESSAGE.format(name=pending.name),
                    field=name,
                    filename=pending.name,
                    status_code=exc.status_code,
                )
                result.errors.append(error.to_detail())
                self._state_machine.record(EventType.UPLOAD_FAILED, self._actor, error.to_detail().to_dict())
            else:
                resolved = UploadedFileRef(
                    id=str(response["id"]),
                    name=response.get("filename") or pending.name,
                    size=response.get("size_bytes"),
                    uploading=False,
                )
                if self.uploads.resolve(name, placeholder.id, resolved):
                    result.uploaded.append(resolved)
                    self._state_machine.record(
                        EventType.UPLOAD_COMPLETED, self._actor, {"field": name, "file": resolved.to_dict()}
                    )
                else:
                    logger.info("Upload of %s finished after its entry was removed", pending.name)

            self.save_draft()

        return result

    def remove_file(self, file_id: str) -> bool:
        """Remove an entry, resolved or in flight, from every file field."""
        self._ensure_editable()
        removed = self.uploads.remove(file_id)
        if removed:
            self._enter_editing({"file_id": file_id})
            self._state_machine.record(EventType.FILE_REMOVED, self._actor, {"id": file_id})
        self.save_draft()
        return removed

    # -- submission -------------------------------------------------------

    def submit(self) -> SubmissionResult:
        """Send the final submission.

        On success the draft is cleared and the form is submitted. On failure
        the form returns to editing with its draft untouched, so the user can
        retry without re-entering data or re-uploading files.

        Raises:
            InvalidStateTransitionError: If a submission is in flight or done
        """
        self._state_machine.transition_to(FormState.SUBMITTING, self._actor)
        self.submit_label = SUBMITTING_LABEL
        payload = self.build_payload()

        try:
            response = self._client.put_response(self.token, payload, partial=False)
        except IntakeFormError as exc:
            logger.warning("Submission of %s failed: %s", self.token, exc)
            if isinstance(exc, (NotFoundError, ExpiredError)):
                error = exc.to_detail()
            else:
                error = SubmissionFailedError(SUBMIT_FAILED_MESSAGE, status_code=exc.status_code).to_detail()
            self.submit_label = SUBMIT_LABEL
            self._state_machine.transition_to(FormState.EDITING, self._actor, error.to_dict())
            return SubmissionResult(ok=False, error=error)

        try:
            self._drafts.clear(self.origin, self.token)
        except OSError as exc:
            logger.debug("Could not clear draft for %s: %s", self.token, exc)
        else:
            self._state_machine.record(EventType.DRAFT_CLEARED, self._actor)

        self.redirect_to = f"/{self.token}/thanks"
        self._state_machine.transition_to(FormState.SUBMITTED, self._actor, {"redirect_to": self.redirect_to})
        return SubmissionResult(ok=True, status=response.get("status"), redirect_to=self.redirect_to)


__all__ = [
    "FormRuntime",
    "UploadBatchResult",
    "SubmissionResult",
    "CONTROL_KINDS",
    "PAYLOAD_FILES_KEY",
]
