"""Form definition validation.

Definitions arrive as JSON from agents. The DefinitionValidator checks them in
two passes:

1. Structure, with a JSON Schema (Draft 7) describing the definition format.
   jsonschema errors are translated into FieldErrors with dotted paths such
   as ``sections.0.fields.2.type``.
2. Semantics the schema cannot express: every non-content field has a name
   (under either alias), names are unique across the whole definition, and
   select/checkbox fields carry options.

Missing options are reported as warnings; the form still renders, just
without choices. Everything else is an error.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator, ValidationError

from intakeform.errors import FieldError, InvalidDefinitionError
from intakeform.types import FieldErrorCode, FieldType

logger = logging.getLogger(__name__)

FIELD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["label", "type"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "label": {"type": "string"},
        "type": {"enum": [t.value for t in FieldType]},
        "value": {"type": ["string", "number", "boolean", "null"]},
        "default": {"type": ["string", "number", "boolean", "null"]},
        "placeholder": {"type": "string"},
        "required": {"type": "boolean"},
        "options": {"type": "array", "items": {"type": "string"}},
        "accept": {"type": "string"},
        "category": {"type": "string"},
    },
}

SECTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["fields"],
    "properties": {
        "heading": {"type": "string"},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "fields": {"type": "array", "items": FIELD_SCHEMA},
    },
}

DEFINITION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["title", "sections"],
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "sections": {"type": "array", "items": SECTION_SCHEMA},
    },
}

OPTION_FIELD_TYPES = {FieldType.SELECT.value, FieldType.CHECKBOX.value}


def first_present(data: Dict[str, Any], *keys: str) -> Optional[Any]:
    """Return the first value among ``keys`` that is present and not None.

    This is the alias rule for definitions: an empty string under the first
    key wins over the alias.
    """
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a form definition.

    Attributes:
        is_valid: Whether the definition has no errors
        errors: Problems that prevent the definition from being used
        warnings: Problems that degrade rendering but are tolerated
    """
    is_valid: bool
    errors: List[FieldError]
    warnings: List[FieldError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


class DefinitionValidator:
    """Validates raw form definitions.

    Examples:
        >>> validator = DefinitionValidator()
        >>> result = validator.validate({"title": "T", "sections": []})
        >>> result.is_valid
        True
        >>> result = validator.validate({"sections": []})
        >>> result.errors[0].code
        <FieldErrorCode.REQUIRED: 'required'>
    """

    def __init__(self, schema: Dict[str, Any] = DEFINITION_SCHEMA) -> None:
        Draft7Validator.check_schema(schema)
        self.schema = schema
        self.validator = Draft7Validator(schema)

    def validate(self, data: Any) -> ValidationResult:
        """Validate a definition without raising.

        Semantic checks only run when the structure is valid, so their paths
        can assume well-formed sections and fields.
        """
        structural = sorted(
            self.validator.iter_errors(data),
            key=lambda e: [str(p) for p in e.absolute_path],
        )
        if structural:
            return ValidationResult(
                is_valid=False,
                errors=[self._translate_error(e) for e in structural],
            )

        errors: List[FieldError] = []
        warnings: List[FieldError] = []
        seen: Dict[str, str] = {}

        for s_idx, section in enumerate(data["sections"]):
            for f_idx, raw in enumerate(section["fields"]):
                path = f"sections.{s_idx}.fields.{f_idx}"
                field_type = raw["type"]
                name = first_present(raw, "name", "id") or ""

                if field_type != FieldType.CONTENT.value:
                    if not name:
                        errors.append(FieldError(
                            path=f"{path}.name",
                            code=FieldErrorCode.REQUIRED,
                            message=f"Field '{raw.get('label', '')}' needs a name or id",
                            expected="non-empty name",
                        ))
                    elif name in seen:
                        errors.append(FieldError(
                            path=f"{path}.name",
                            code=FieldErrorCode.DUPLICATE_NAME,
                            message=f"Field name '{name}' is already used at {seen[name]}",
                            received=name,
                        ))
                    else:
                        seen[name] = path

                if field_type in OPTION_FIELD_TYPES and not raw.get("options"):
                    warnings.append(FieldError(
                        path=f"{path}.options",
                        code=FieldErrorCode.MISSING_OPTIONS,
                        message=f"{field_type} field '{name}' has no options",
                    ))

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def check(self, data: Any) -> ValidationResult:
        """Validate a definition, raising on errors and logging warnings.

        Raises:
            InvalidDefinitionError: If the definition has any errors
        """
        result = self.validate(data)
        for warning in result.warnings:
            logger.warning("Form definition warning at %s: %s", warning.path, warning.message)
        if not result.is_valid:
            raise InvalidDefinitionError(result.errors)
        return result

    def _translate_error(self, error: ValidationError) -> FieldError:
        """Translate a jsonschema ValidationError into a FieldError."""
        path = ".".join(str(p) for p in error.absolute_path)

        if error.validator == "required":
            missing = error.message.split("'")[1] if "'" in error.message else "field"
            full_path = f"{path}.{missing}" if path else missing
            return FieldError(
                path=full_path,
                code=FieldErrorCode.REQUIRED,
                message=f"'{full_path}' is required but was not provided",
                expected="required property",
            )

        if error.validator == "type":
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_TYPE,
                message=f"'{path or '<root>'}' has invalid type. Expected {error.validator_value}, "
                        f"got {type(error.instance).__name__}",
                expected=error.validator_value,
                received=type(error.instance).__name__,
            )

        if error.validator == "enum":
            return FieldError(
                path=path,
                code=FieldErrorCode.INVALID_VALUE,
                message=f"'{path}' must be one of: {', '.join(map(str, error.validator_value))}",
                expected=error.validator_value,
                received=error.instance,
            )

        return FieldError(
            path=path,
            code=FieldErrorCode.CUSTOM,
            message=f"'{path}' validation failed: {error.message}",
            expected=error.validator_value,
            received=error.instance,
        )


__all__ = [
    "DefinitionValidator",
    "ValidationResult",
    "DEFINITION_SCHEMA",
    "first_present",
]
