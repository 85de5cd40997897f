"""Structured error types for the intake form service.

Two layers live here:

* Frozen dataclasses (FieldError, ErrorDetail) form the serializable error
  envelope shown to clients and returned by the runtime. They follow a
  ``to_dict`` / ``from_dict`` convention so they can travel through JSON.
* An exception hierarchy rooted at IntakeFormError, raised at the API client
  and lifecycle service boundaries. Every exception knows its ErrorType and
  whether the user can retry, and converts itself into an ErrorDetail.

Retry semantics:
    not_found, expired, invalid_definition  -> blocking, no retry
    validation_rejected                     -> user corrects the item, retries
    upload_failed                           -> user retries that file only
    submission_failed                       -> user resubmits, draft intact
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from intakeform.types import ErrorType, FieldErrorCode


@dataclass(frozen=True)
class FieldError:
    """Validation error for a single location in a form definition.

    Attributes:
        path: Dot-notation path into the definition (e.g., "sections.0.fields.2.name")
        code: Specific validation error code
        message: Human-readable error description
        expected: Optional - what was expected
        received: Optional - what was actually received

    Examples:
        >>> err = FieldError(
        ...     path="sections.0.fields.1.name",
        ...     code=FieldErrorCode.DUPLICATE_NAME,
        ...     message="Field name 'email' is used more than once",
        ...     received="email",
        ... )
        >>> err.path
        'sections.0.fields.1.name'
    """
    path: str
    code: FieldErrorCode
    message: str
    expected: Optional[Any] = None
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "path": self.path,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }
        if self.expected is not None:
            result["expected"] = self.expected
        if self.received is not None:
            result["received"] = self.received
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        """Create FieldError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = FieldErrorCode(code)
        return cls(
            path=data["path"],
            code=code,
            message=data["message"],
            expected=data.get("expected"),
            received=data.get("received"),
        )


@dataclass(frozen=True)
class ErrorDetail:
    """User-facing error information.

    Attributes:
        type: Category of error
        retryable: Whether the user can retry the operation
        message: Human-readable message, suitable for display
        field: Optional - form field the error relates to
        filename: Optional - file the error relates to (uploads)
        fields: Optional - definition validation errors
        status_code: Optional - HTTP status that produced the error

    Examples:
        >>> detail = ErrorDetail(
        ...     type=ErrorType.VALIDATION_REJECTED,
        ...     retryable=True,
        ...     message="logo.png is too large (max 10 MB).",
        ...     field="logo",
        ...     filename="logo.png",
        ... )
        >>> detail.to_dict()["type"]
        'validation_rejected'
    """
    type: ErrorType
    retryable: bool
    message: Optional[str] = None
    field: Optional[str] = None
    filename: Optional[str] = None
    fields: Optional[List[FieldError]] = None
    status_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "type": self.type.value if isinstance(self.type, ErrorType) else self.type,
            "retryable": self.retryable,
        }
        if self.message is not None:
            result["message"] = self.message
        if self.field is not None:
            result["field"] = self.field
        if self.filename is not None:
            result["filename"] = self.filename
        if self.fields is not None:
            result["fields"] = [f.to_dict() for f in self.fields]
        if self.status_code is not None:
            result["statusCode"] = self.status_code
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorDetail":
        """Create ErrorDetail from dict."""
        error_type = data["type"]
        if isinstance(error_type, str):
            error_type = ErrorType(error_type)

        fields = None
        if data.get("fields") is not None:
            fields = [FieldError.from_dict(f) for f in data["fields"]]

        return cls(
            type=error_type,
            retryable=data["retryable"],
            message=data.get("message"),
            field=data.get("field"),
            filename=data.get("filename"),
            fields=fields,
            status_code=data.get("statusCode"),
        )


class IntakeFormError(Exception):
    """Base class for all intake form service errors.

    Subclasses set ``error_type`` and ``retryable``; instances carry an
    optional field, filename and HTTP status for context.
    """

    error_type: ErrorType = ErrorType.API_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        filename: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.field = field
        self.filename = filename
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> ErrorDetail:
        """Convert the exception into a serializable ErrorDetail."""
        return ErrorDetail(
            type=self.error_type,
            retryable=self.retryable,
            message=self.message,
            field=self.field,
            filename=self.filename,
            status_code=self.status_code,
        )


class NotFoundError(IntakeFormError):
    """Unknown token, definition, response or file."""
    error_type = ErrorType.NOT_FOUND
    retryable = False


class ExpiredError(IntakeFormError):
    """The intake form is past its expiry date."""
    error_type = ErrorType.EXPIRED
    retryable = False


class ValidationRejectedError(IntakeFormError):
    """An item was rejected before or by the server (e.g., oversized file)."""
    error_type = ErrorType.VALIDATION_REJECTED
    retryable = True


class UploadFailedError(IntakeFormError):
    """Network or server failure while uploading a single file."""
    error_type = ErrorType.UPLOAD_FAILED
    retryable = True


class SubmissionFailedError(IntakeFormError):
    """The final submission could not be stored."""
    error_type = ErrorType.SUBMISSION_FAILED
    retryable = True


class IntakeAPIError(IntakeFormError):
    """Any other non-success response from the intake API."""
    error_type = ErrorType.API_ERROR
    retryable = True


class InvalidDefinitionError(IntakeFormError):
    """A form definition failed structural or semantic validation.

    Attributes:
        errors: The individual FieldErrors, in document order
    """
    error_type = ErrorType.INVALID_DEFINITION
    retryable = False

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        summary = "; ".join(f"{e.path or '<root>'}: {e.message}" for e in errors[:3])
        if len(errors) > 3:
            summary += f" (+{len(errors) - 3} more)"
        super().__init__(f"Invalid form definition: {summary}")

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(
            type=self.error_type,
            retryable=self.retryable,
            message=self.message,
            fields=list(self.errors),
        )


__all__ = [
    "FieldError",
    "ErrorDetail",
    "IntakeFormError",
    "NotFoundError",
    "ExpiredError",
    "ValidationRejectedError",
    "UploadFailedError",
    "SubmissionFailedError",
    "IntakeAPIError",
    "InvalidDefinitionError",
]
