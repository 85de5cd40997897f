"""Form schema model.

A form definition is JSON supplied by the agent when the intake is created.
``FormDefinition.from_dict`` validates it (see ``intakeform.validation``) and
normalizes it into frozen dataclasses. Alias spellings are resolved here,
once, so nothing downstream ever checks both:

    Field.name     <- "name", else "id"
    Field.value    <- "value", else "default"
    Section.heading <- "heading", else "title"

Usage:
    >>> definition = FormDefinition.from_dict({
    ...     "title": "Website brief",
    ...     "sections": [{
    ...         "title": "About you",
    ...         "fields": [{"id": "business_name", "label": "Business name", "type": "text"}],
    ...     }],
    ... })
    >>> definition.sections[0].heading
    'About you'
    >>> definition.sections[0].fields[0].name
    'business_name'
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from intakeform.types import FieldType
from intakeform.validation import DefinitionValidator, first_present

DEFAULT_FILE_ACCEPT = "image/*"
DEFAULT_FILE_CATEGORY = "photo"


@dataclass(frozen=True)
class FormField:
    """A single field of a form definition.

    Attributes:
        label: Label shown above the control
        type: Field kind
        name: Key of the field in submitted data ("" only for content fields)
        value: Initial value; markdown source for content fields
        placeholder: Placeholder text for text-like controls
        required: Whether the control carries the HTML required attribute
        options: Choices for select and checkbox fields
        accept: MIME pattern for file fields
        category: Storage category tag for file fields
    """
    label: str
    type: FieldType
    name: str = ""
    value: str = ""
    placeholder: str = ""
    required: bool = False
    options: Tuple[str, ...] = ()
    accept: str = DEFAULT_FILE_ACCEPT
    category: str = DEFAULT_FILE_CATEGORY

    @property
    def is_file(self) -> bool:
        return self.type is FieldType.FILE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormField":
        """Create a FormField from its JSON form, resolving aliases."""
        value = first_present(data, "value", "default")
        return cls(
            label=data.get("label") or "",
            type=FieldType(data["type"]),
            name=first_present(data, "name", "id") or "",
            value="" if value is None else str(value),
            placeholder=data.get("placeholder") or "",
            required=bool(data.get("required", False)),
            options=tuple(str(option) for option in data.get("options") or ()),
            accept=data.get("accept") or DEFAULT_FILE_ACCEPT,
            category=data.get("category") or DEFAULT_FILE_CATEGORY,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the canonical JSON form (no alias spellings)."""
        result: Dict[str, Any] = {"label": self.label, "type": self.type.value}
        if self.name:
            result["name"] = self.name
        if self.value:
            result["value"] = self.value
        if self.placeholder:
            result["placeholder"] = self.placeholder
        if self.required:
            result["required"] = True
        if self.options:
            result["options"] = list(self.options)
        if self.is_file:
            result["accept"] = self.accept
            result["category"] = self.category
        return result


@dataclass(frozen=True)
class FormSection:
    """An ordered group of fields with an optional heading."""
    heading: str = ""
    description: str = ""
    fields: Tuple[FormField, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormSection":
        return cls(
            heading=first_present(data, "heading", "title") or "",
            description=data.get("description") or "",
            fields=tuple(FormField.from_dict(f) for f in data.get("fields") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"fields": [f.to_dict() for f in self.fields]}
        if self.heading:
            result["heading"] = self.heading
        if self.description:
            result["description"] = self.description
        return result


@dataclass(frozen=True)
class FormDefinition:
    """A complete form: title, optional description and ordered sections."""
    title: str
    description: str = ""
    sections: Tuple[FormSection, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], validate: bool = True) -> "FormDefinition":
        """Create a FormDefinition from its JSON form.

        Args:
            data: The raw definition as stored by the agent
            validate: Run structural and semantic validation first

        Raises:
            InvalidDefinitionError: If validation is enabled and fails
        """
        if validate:
            DefinitionValidator().check(data)
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or "",
            sections=tuple(FormSection.from_dict(s) for s in data.get("sections") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "title": self.title,
            "sections": [s.to_dict() for s in self.sections],
        }
        if self.description:
            result["description"] = self.description
        return result

    def iter_fields(self) -> Iterator[FormField]:
        """Yield every field in document order."""
        for section in self.sections:
            yield from section.fields

    @property
    def has_file_fields(self) -> bool:
        return any(f.is_file for f in self.iter_fields())

    def file_fields(self) -> List[FormField]:
        return [f for f in self.iter_fields() if f.is_file]

    def get_field(self, name: str) -> Optional[FormField]:
        for form_field in self.iter_fields():
            if form_field.name == name:
                return form_field
        return None


__all__ = [
    "FormField",
    "FormSection",
    "FormDefinition",
    "DEFAULT_FILE_ACCEPT",
    "DEFAULT_FILE_CATEGORY",
]
