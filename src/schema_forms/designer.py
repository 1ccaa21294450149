"""
Designer JSON conversion.

The visual form designer stores forms as a flat list of widget
descriptions (``type``, ``field``, ``name``, ``title``, ``props``,
``col``). These helpers convert that list to FormMetadata and back.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from schema_forms.models.field_definitions import (
    BreakpointLayout,
    FieldDefinition,
    FieldLayout,
    FieldType,
    FieldValidation,
    FormMetadata,
    SelectOption,
)

logger = logging.getLogger(__name__)

DESIGNER_TYPE_MAPPING: dict[str, FieldType] = {
    "input": FieldType.TEXT,
    "inputNumber": FieldType.NUMBER,
    "select": FieldType.SELECT,
    "checkbox": FieldType.CHECKBOX,
    "radio": FieldType.RADIO,
    "date": FieldType.DATE,
    "datetime": FieldType.DATETIME,
    "time": FieldType.TEXT,
    "textarea": FieldType.TEXTAREA,
    "switch": FieldType.CHECKBOX,
    "slider": FieldType.NUMBER,
    "rate": FieldType.NUMBER,
    "cascader": FieldType.SELECT,
    "treeSelect": FieldType.SELECT,
    "upload": FieldType.FILE,
}

FIELD_TYPE_TO_DESIGNER: dict[FieldType, str] = {
    FieldType.TEXT: "input",
    FieldType.EMAIL: "input",
    FieldType.PASSWORD: "input",
    FieldType.NUMBER: "inputNumber",
    FieldType.TEXTAREA: "textarea",
    FieldType.SELECT: "select",
    FieldType.CHECKBOX: "checkbox",
    FieldType.RADIO: "radio",
    FieldType.DATE: "date",
    FieldType.DATETIME: "datetime",
    FieldType.FILE: "upload",
}

# Props consumed by the conversion; everything else is kept as a rendering hint
_CONSUMED_PROPS = {
    "options", "defaultValue", "maxlength", "minlength", "pattern", "min", "max", "placeholder", "type",
}


class DesignerColumn(BaseModel):
    span: int | None = None
    offset: int | None = None
    push: int | None = None
    pull: int | None = None
    responsive: dict[str, dict[str, int]] | None = None


class DesignerField(BaseModel):
    """One widget as stored by the form designer."""

    type: str
    field: str = Field(..., description="Field id")
    name: str
    title: str = ""
    info: str | None = Field(default=None, description="Help text")
    required: bool = Field(default=False, alias="$required")
    col: DesignerColumn | None = None
    props: dict[str, Any] = Field(default_factory=dict)
    display: bool = True
    hidden: bool = False

    model_config = {"populate_by_name": True}


def _convert_options(raw: Any) -> list[SelectOption]:
    if not isinstance(raw, list):
        return []
    options = []
    for index, option in enumerate(raw):
        if isinstance(option, dict):
            value = option.get("value", option.get("key", index))
            label = option.get("label") or option.get("text") or value
            options.append(SelectOption(
                value=str(value), label=str(label), disabled=bool(option.get("disabled", False))
            ))
        else:
            options.append(SelectOption(value=str(option), label=str(option)))
    return options


def _convert_validation(props: dict[str, Any], field_type: FieldType) -> FieldValidation | None:
    values: dict[str, Any] = {}
    if field_type in (FieldType.TEXT, FieldType.TEXTAREA, FieldType.EMAIL, FieldType.PASSWORD):
        if props.get("minlength") is not None:
            values["min_length"] = props["minlength"]
        if props.get("maxlength") is not None:
            values["max_length"] = props["maxlength"]
        if props.get("pattern"):
            values["pattern"] = props["pattern"]
    elif field_type == FieldType.NUMBER:
        if props.get("min") is not None:
            values["minimum"] = props["min"]
        if props.get("max") is not None:
            values["maximum"] = props["max"]
    return FieldValidation(**values) if values else None


def _convert_layout(col: DesignerColumn | None) -> FieldLayout | None:
    if col is None:
        return None
    responsive = {
        bp: BreakpointLayout(**override) for bp, override in (col.responsive or {}).items()
    }
    return FieldLayout(span=col.span or 24, offset=col.offset or 0, responsive=responsive)


def convert_designer_field(raw: DesignerField | dict[str, Any]) -> FieldDefinition:
    """Convert one designer widget; unknown widget types become text fields."""
    designer = raw if isinstance(raw, DesignerField) else DesignerField.model_validate(raw)
    field_type = DESIGNER_TYPE_MAPPING.get(designer.type)
    if field_type is None:
        logger.warning(f"Unknown designer type '{designer.type}' on '{designer.field}', using text")
        field_type = FieldType.TEXT

    props = designer.props
    if designer.type == "input" and props.get("type") in (FieldType.EMAIL.value, FieldType.PASSWORD.value):
        field_type = FieldType(props["type"])
    ui: dict[str, Any] = {"designerType": designer.type}
    extra_props = {k: v for k, v in props.items() if k not in _CONSUMED_PROPS}
    if extra_props:
        ui["props"] = extra_props
    if not designer.display:
        ui["display"] = False
    if designer.hidden:
        ui["hidden"] = True

    return FieldDefinition(
        id=designer.field,
        name=designer.name,
        type=field_type.value,
        label=designer.title,
        placeholder=props.get("placeholder") or designer.info,
        description=designer.info,
        required=designer.required,
        default_value=props.get("defaultValue"),
        options=_convert_options(props.get("options")),
        validation=_convert_validation(props, field_type),
        layout=_convert_layout(designer.col),
        ui=ui,
    )


def convert_designer_json(
    fields: list[DesignerField | dict[str, Any]],
    title: str | None = None,
    version: str = "1.0.0",
) -> FormMetadata:
    """Convert a designer widget list to FormMetadata."""
    return FormMetadata(
        version=version,
        title=title or "Designer form",
        fields=[convert_designer_field(f) for f in fields],
    )


def convert_form_metadata_to_designer_json(metadata: FormMetadata) -> list[dict[str, Any]]:
    """Convert FormMetadata back to the designer widget list."""
    result = []
    for field in metadata.fields:
        ui = field.ui or {}
        try:
            designer_type = FIELD_TYPE_TO_DESIGNER[FieldType(field.type)]
        except ValueError:
            designer_type = "input"
        designer_type = ui.get("designerType", designer_type)

        props: dict[str, Any] = dict(ui.get("props") or {})
        if field.type in (FieldType.EMAIL.value, FieldType.PASSWORD.value):
            props.setdefault("type", field.type)
        if field.placeholder:
            props["placeholder"] = field.placeholder
        if field.default_value is not None:
            props["defaultValue"] = field.default_value
        if field.options:
            props["options"] = [
                {"label": o.label, "value": o.value, "disabled": o.disabled} for o in field.options
            ]
        if field.validation is not None:
            validation = field.validation
            for key, value in (
                ("minlength", validation.min_length),
                ("maxlength", validation.max_length),
                ("pattern", validation.pattern),
                ("min", validation.minimum),
                ("max", validation.maximum),
            ):
                if value is not None:
                    props[key] = value

        entry: dict[str, Any] = {
            "type": designer_type,
            "field": field.id,
            "name": field.name,
            "title": field.label,
            "$required": field.required,
            "display": ui.get("display", True),
            "hidden": ui.get("hidden", False),
        }
        if field.description:
            entry["info"] = field.description
        if field.layout is not None:
            col: dict[str, Any] = {"span": field.layout.span}
            if field.layout.offset:
                col["offset"] = field.layout.offset
            if field.layout.responsive:
                col["responsive"] = {
                    bp.value: override.model_dump(exclude_none=True)
                    for bp, override in field.layout.responsive.items()
                }
            entry["col"] = col
        if props:
            entry["props"] = props
        result.append(entry)
    return result


def validate_designer_json(fields: Any) -> tuple[bool, list[str]]:
    """
    Check a designer widget list before conversion.

    Returns:
        (valid, errors) where errors lists every problem found.
    """
    if not isinstance(fields, list):
        return False, ["Designer JSON must be a list"]

    errors: list[str] = []
    for index, field in enumerate(fields):
        prefix = f"Field[{index}]"
        if not isinstance(field, dict):
            errors.append(f"{prefix}: must be an object")
            continue
        for key in ("type", "field", "name", "title"):
            if not field.get(key):
                errors.append(f"{prefix}: missing '{key}'")

        span = (field.get("col") or {}).get("span")
        if span is not None:
            if isinstance(span, bool) or not isinstance(span, int) or not 1 <= span <= 24:
                errors.append(f"{prefix}: col.span must be a number between 1 and 24")

        if field.get("type") and field["type"] not in DESIGNER_TYPE_MAPPING:
            errors.append(f"{prefix}: unsupported type '{field['type']}'")

    return not errors, errors
