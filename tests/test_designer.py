"""Tests for designer JSON conversion."""

import pytest

from schema_forms.compiler import SchemaCompiler
from schema_forms.designer import (
    convert_designer_field,
    convert_designer_json,
    convert_form_metadata_to_designer_json,
    validate_designer_json,
)
from schema_forms.models import Breakpoint, FieldType


@pytest.fixture
def designer_fields() -> list[dict]:
    return [
        {
            "type": "input",
            "field": "name",
            "name": "name",
            "title": "Name",
            "info": "Your full name",
            "$required": True,
            "props": {"placeholder": "Jane Doe", "maxlength": 50},
            "col": {"span": 12},
        },
        {
            "type": "select",
            "field": "gender",
            "name": "gender",
            "title": "Gender",
            "$required": True,
            "props": {"options": [
                {"label": "Male", "value": "male"},
                {"label": "Female", "value": "female"},
            ]},
            "col": {"span": 12},
        },
        {
            "type": "switch",
            "field": "terms",
            "name": "terms",
            "title": "Accept terms",
            "props": {"defaultValue": False, "activeText": "Yes"},
            "col": {"span": 24},
        },
    ]


class TestConvertDesignerJson:
    """Tests for designer JSON to FormMetadata."""

    def test_convert(self, designer_fields):
        """Test the converted form."""
        metadata = convert_designer_json(designer_fields, title="Signup")
        assert metadata.version == "1.0.0"
        assert metadata.title == "Signup"
        assert [f.id for f in metadata.fields] == ["name", "gender", "terms"]

        name = metadata.field_by_id("name")
        assert name.type == FieldType.TEXT.value
        assert name.label == "Name"
        assert name.required
        assert name.placeholder == "Jane Doe"
        assert name.description == "Your full name"
        assert name.validation.max_length == 50
        assert name.layout.span == 12

        gender = metadata.field_by_id("gender")
        assert gender.type == FieldType.SELECT.value
        assert [o.value for o in gender.options] == ["male", "female"]

        terms = metadata.field_by_id("terms")
        assert terms.type == FieldType.CHECKBOX.value
        assert terms.default_value is False
        assert terms.ui == {"designerType": "switch", "props": {"activeText": "Yes"}}

    def test_converted_form_compiles(self, designer_fields):
        """Test that the converted form validates data."""
        compiler = SchemaCompiler(enable_cache=False)
        schema = compiler.compile(convert_designer_json(designer_fields))
        assert compiler.validate(schema, {"name": "Li", "gender": "male"}).success
        result = compiler.validate(schema, {"name": "Li", "gender": "other"})
        assert [e.code for e in result.errors] == ["invalid_option"]

    def test_unknown_type_becomes_text(self):
        """Test the fallback for unmapped widgets."""
        field = convert_designer_field({
            "type": "colorPicker", "field": "c", "name": "c", "title": "Color",
        })
        assert field.type == FieldType.TEXT.value
        assert field.ui["designerType"] == "colorPicker"

    def test_typed_input(self):
        """Test input widgets carrying an email or password type."""
        field = convert_designer_field({
            "type": "input", "field": "mail", "name": "mail", "title": "Mail",
            "props": {"type": "email", "minlength": 5},
        })
        assert field.type == FieldType.EMAIL.value
        assert field.validation.min_length == 5
        assert "props" not in field.ui

    def test_number_bounds_and_responsive_layout(self):
        """Test number props and responsive columns."""
        field = convert_designer_field({
            "type": "inputNumber", "field": "age", "name": "age", "title": "Age",
            "props": {"min": 0, "max": 120, "maxlength": 3},
            "col": {"span": 24, "responsive": {"lg": {"span": 8}}},
        })
        assert field.type == FieldType.NUMBER.value
        assert field.validation.minimum == 0
        assert field.validation.maximum == 120
        assert field.validation.max_length is None
        assert field.layout.responsive[Breakpoint.LG].span == 8

    def test_hidden_flags_kept_as_hints(self):
        """Test that display and hidden flags end up in ui."""
        field = convert_designer_field({
            "type": "input", "field": "x", "name": "x", "title": "X",
            "display": False, "hidden": True,
        })
        assert field.ui["display"] is False
        assert field.ui["hidden"] is True


class TestConvertToDesignerJson:
    """Tests for FormMetadata to designer JSON."""

    def test_round_trip(self, designer_fields):
        """Test converting back keeps widgets, props and columns."""
        result = convert_form_metadata_to_designer_json(convert_designer_json(designer_fields))
        assert [f["type"] for f in result] == ["input", "select", "switch"]
        name = result[0]
        assert name["$required"] is True
        assert name["info"] == "Your full name"
        assert name["col"] == {"span": 12}
        assert name["props"]["maxlength"] == 50
        assert result[1]["props"]["options"][0] == {"label": "Male", "value": "male", "disabled": False}
        assert result[2]["props"] == {"activeText": "Yes", "defaultValue": False}

    def test_from_plain_metadata(self, contact_form):
        """Test widgets chosen from field types."""
        result = convert_form_metadata_to_designer_json(contact_form)
        assert [f["type"] for f in result] == ["input", "input", "select", "textarea", "checkbox"]
        assert result[0]["col"] == {"span": 24, "responsive": {"md": {"span": 12}}}
        assert "col" not in result[2]


class TestValidateDesignerJson:
    """Tests for validate_designer_json."""

    def test_valid(self, designer_fields):
        """Test a well-formed widget list."""
        assert validate_designer_json(designer_fields) == (True, [])

    def test_not_a_list(self):
        """Test a non-list document."""
        assert validate_designer_json({"type": "input"}) == (False, ["Designer JSON must be a list"])

    def test_collects_all_problems(self):
        """Test that every problem is reported."""
        valid, errors = validate_designer_json([
            {"field": "a", "name": "a", "title": "A"},
            {"type": "magic", "field": "b", "name": "b", "title": "B", "col": {"span": 30}},
        ])
        assert not valid
        assert errors == [
            "Field[0]: missing 'type'",
            "Field[1]: col.span must be a number between 1 and 24",
            "Field[1]: unsupported type 'magic'",
        ]
