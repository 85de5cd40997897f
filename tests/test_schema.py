"""Unit tests for the form schema model.

Tests cover:
- Alias normalization (name/id, heading/title, value/default)
- Field defaults for file fields
- Validation on load
- Lookup helpers and serialization
"""

import pytest

from intakeform.errors import InvalidDefinitionError
from intakeform.schema import FormDefinition, FormField, FormSection
from intakeform.types import FieldType

BRIEF = {
    "title": "Website brief",
    "description": "Tell us about your business.",
    "sections": [
        {
            "title": "About you",
            "fields": [
                {"id": "company", "label": "Company", "type": "text", "default": "Acme"},
                {"name": "size", "label": "Team size", "type": "select", "options": ["1-5", "6-20"]},
                {"label": "Note", "type": "content", "value": "**Read me**"},
            ],
        },
        {
            "heading": "Assets",
            "fields": [{"name": "logo", "label": "Logo", "type": "file", "category": "logo"}],
        },
    ],
}


class TestAliases:
    """Test that aliases are resolved once at load time."""

    def test_id_becomes_name(self):
        """Should use id when name is absent."""
        form_field = FormField.from_dict({"id": "company", "label": "Company", "type": "text"})
        assert form_field.name == "company"

    def test_name_wins_over_id(self):
        """Should prefer name when both are given."""
        form_field = FormField.from_dict({"name": "a", "id": "b", "label": "A", "type": "text"})
        assert form_field.name == "a"

    def test_default_becomes_value(self):
        """Should use default when value is absent."""
        form_field = FormField.from_dict({"name": "a", "label": "A", "type": "text", "default": "x"})
        assert form_field.value == "x"

    def test_empty_value_wins_over_default(self):
        """Should keep an explicit empty value."""
        form_field = FormField.from_dict({"name": "a", "label": "A", "type": "text", "value": "", "default": "x"})
        assert form_field.value == ""

    def test_null_value_falls_back(self):
        """Should skip a null value and use default."""
        form_field = FormField.from_dict({"name": "a", "label": "A", "type": "text", "value": None, "default": "x"})
        assert form_field.value == "x"

    def test_numeric_value_stringified(self):
        """Should hold values as strings."""
        form_field = FormField.from_dict({"name": "n", "label": "N", "type": "text", "value": 3})
        assert form_field.value == "3"

    def test_title_becomes_heading(self):
        """Should use a section title when heading is absent."""
        assert FormSection.from_dict({"title": "About", "fields": []}).heading == "About"


class TestFieldDefaults:
    """Test field defaults."""

    def test_file_defaults(self):
        """Should default file fields to images in the photo category."""
        form_field = FormField.from_dict({"name": "pics", "label": "Pics", "type": "file"})
        assert form_field.type is FieldType.FILE
        assert form_field.accept == "image/*"
        assert form_field.category == "photo"
        assert form_field.is_file is True

    def test_plain_defaults(self):
        """Should default to optional with no options."""
        form_field = FormField.from_dict({"name": "a", "label": "A", "type": "textarea"})
        assert form_field.required is False
        assert form_field.options == ()
        assert form_field.placeholder == ""


class TestFormDefinition:
    """Test loading complete definitions."""

    def test_from_dict(self):
        """Should normalize the whole definition."""
        definition = FormDefinition.from_dict(BRIEF)
        assert definition.title == "Website brief"
        assert [s.heading for s in definition.sections] == ["About you", "Assets"]
        assert [f.name for f in definition.iter_fields()] == ["company", "size", "", "logo"]
        assert definition.get_field("company").value == "Acme"

    def test_invalid_definition_raises(self):
        """Should validate before loading."""
        with pytest.raises(InvalidDefinitionError):
            FormDefinition.from_dict({"title": "T", "sections": [{"fields": [{"label": "x", "type": "text"}]}]})

    def test_blank_name_with_id_rejected(self):
        """Should not load a field whose name is blank even when id is set."""
        data = {"title": "T", "sections": [{"fields": [{"name": "", "id": "company", "label": "Company", "type": "text"}]}]}
        with pytest.raises(InvalidDefinitionError):
            FormDefinition.from_dict(data)
        assert FormDefinition.from_dict(data, validate=False).sections[0].fields[0].name == ""

    def test_validation_can_be_skipped(self):
        """Should load without validation when asked."""
        definition = FormDefinition.from_dict({"sections": []}, validate=False)
        assert definition.title == ""

    def test_file_field_helpers(self):
        """Should find file fields."""
        definition = FormDefinition.from_dict(BRIEF)
        assert definition.has_file_fields is True
        assert [f.name for f in definition.file_fields()] == ["logo"]

    def test_no_file_fields(self):
        """Should report forms without file fields."""
        definition = FormDefinition.from_dict({"title": "T", "sections": []})
        assert definition.has_file_fields is False

    def test_get_field_missing(self):
        """Should return None for unknown names."""
        assert FormDefinition.from_dict(BRIEF).get_field("nope") is None

    def test_to_dict_uses_canonical_keys(self):
        """Should serialize without alias spellings."""
        data = FormDefinition.from_dict(BRIEF).to_dict()
        first = data["sections"][0]
        assert first["heading"] == "About you"
        assert "title" not in first
        assert first["fields"][0] == {"label": "Company", "type": "text", "name": "company", "value": "Acme"}
        assert data["sections"][1]["fields"][0]["category"] == "logo"

    def test_to_dict_loads_back(self):
        """Should produce a definition that loads to an equal object."""
        definition = FormDefinition.from_dict(BRIEF)
        assert FormDefinition.from_dict(definition.to_dict()) == definition
