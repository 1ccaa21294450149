"""
Field Type Registry.

Maps every FieldType to its RuleTemplate: the coercion applied to raw
input, which constraints are meaningful for the type, the default widget,
and the JSON Schema type used for export. The registry also holds named
custom rules so that JSON-persisted forms can reference validators by name.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Callable

from pydantic import EmailStr, TypeAdapter, ValidationError

from schema_forms.errors import FieldTypeError, UnknownRuleError
from schema_forms.models.field_definitions import FieldType

# Numeric bounds applied when a number field declares none
MAX_SAFE_INTEGER = 2**53 - 1
MIN_SAFE_INTEGER = -MAX_SAFE_INTEGER

EMAIL_ADAPTER = TypeAdapter(EmailStr)

# Plain decimal notation only: no digit separators, no non-ASCII digits
NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

TRUE_STRINGS = frozenset({"true", "1", "yes"})
FALSE_STRINGS = frozenset({"false", "0", "no"})


class CoercionError(ValueError):
    """Raw input cannot be converted to the field's value type."""

    def __init__(self, code: str, **params: Any):
        super().__init__(code)
        self.code = code
        self.params = params


def coerce_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    raise CoercionError("invalid_type")


def coerce_email(value: Any) -> str:
    """Validate an address with pydantic's EmailStr; the domain part is normalized."""
    text = coerce_string(value).strip()
    try:
        return EMAIL_ADAPTER.validate_python(text)
    except ValidationError:
        raise CoercionError("invalid_email") from None


def coerce_number(value: Any) -> int | float:
    """Accept ints, finite floats and plain decimal strings; booleans are not numbers."""
    if isinstance(value, bool):
        raise CoercionError("invalid_number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CoercionError("invalid_number")
        return value
    if isinstance(value, str):
        text = value.strip()
        if not NUMBER_PATTERN.fullmatch(text):
            raise CoercionError("invalid_number")
        try:
            return int(text)
        except ValueError:
            pass
        number = float(text)
        if not math.isfinite(number):
            raise CoercionError("invalid_number")
        return number
    raise CoercionError("invalid_number")


def coerce_boolean(value: Any) -> bool:
    """
    Coerce checkbox input.

    Native booleans pass through. 1/0 and the strings "true", "false",
    "1", "0", "yes", "no" (any case) are converted. Anything else fails
    instead of silently defaulting.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return value == 1
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise CoercionError("invalid_boolean")


def coerce_option(value: Any) -> str:
    if isinstance(value, bool):
        raise CoercionError("invalid_option")
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise CoercionError("invalid_option")


def _parse_datetime(text: str) -> datetime:
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return _parse_datetime(text).date()
        except ValueError:
            raise CoercionError("invalid_date") from None
    raise CoercionError("invalid_date")


def coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        try:
            return _parse_datetime(value.strip())
        except ValueError:
            raise CoercionError("invalid_datetime") from None
    raise CoercionError("invalid_datetime")


def coerce_file(value: Any) -> Any:
    """A file reference is a non-empty string or a mapping with a name, or a list of those."""
    items = value if isinstance(value, list) else [value]
    for item in items:
        if isinstance(item, str) and item.strip():
            continue
        if isinstance(item, Mapping) and item.get("name"):
            continue
        raise CoercionError("invalid_file")
    return value


@dataclass(frozen=True)
class RuleTemplate:
    """
    Validation template for one field type.

    Attributes:
        field_type: The type this template describes.
        widget: Default widget kind for the rendering layer.
        json_type: JSON Schema ``type`` keyword.
        coerce: Converts raw input, raising CoercionError on failure.
        json_format: JSON Schema ``format`` keyword, if any.
        string_constraints: minLength/maxLength/pattern apply.
        numeric_bounds: min/max apply.
        uses_options: Value must be one of the field options.
    """

    field_type: FieldType
    widget: str
    json_type: str
    coerce: Callable[[Any], Any]
    json_format: str | None = None
    string_constraints: bool = False
    numeric_bounds: bool = False
    uses_options: bool = False


def _text_template(field_type: FieldType, widget: str) -> RuleTemplate:
    return RuleTemplate(
        field_type=field_type,
        widget=widget,
        json_type="string",
        coerce=coerce_string,
        string_constraints=True,
    )


def _option_template(field_type: FieldType, widget: str) -> RuleTemplate:
    return RuleTemplate(
        field_type=field_type,
        widget=widget,
        json_type="string",
        coerce=coerce_option,
        uses_options=True,
    )


BUILTIN_TEMPLATES: dict[FieldType, RuleTemplate] = {
    FieldType.TEXT: _text_template(FieldType.TEXT, "input"),
    FieldType.TEXTAREA: _text_template(FieldType.TEXTAREA, "textarea"),
    FieldType.PASSWORD: _text_template(FieldType.PASSWORD, "password"),
    FieldType.EMAIL: RuleTemplate(
        field_type=FieldType.EMAIL,
        widget="email",
        json_type="string",
        json_format="email",
        coerce=coerce_email,
        string_constraints=True,
    ),
    FieldType.NUMBER: RuleTemplate(
        field_type=FieldType.NUMBER,
        widget="number",
        json_type="number",
        coerce=coerce_number,
        numeric_bounds=True,
    ),
    FieldType.CHECKBOX: RuleTemplate(
        field_type=FieldType.CHECKBOX,
        widget="checkbox",
        json_type="boolean",
        coerce=coerce_boolean,
    ),
    FieldType.SELECT: _option_template(FieldType.SELECT, "select"),
    FieldType.RADIO: _option_template(FieldType.RADIO, "radio"),
    FieldType.DATE: RuleTemplate(
        field_type=FieldType.DATE,
        widget="date-picker",
        json_type="string",
        json_format="date-time",
        coerce=coerce_date,
    ),
    FieldType.DATETIME: RuleTemplate(
        field_type=FieldType.DATETIME,
        widget="datetime-picker",
        json_type="string",
        json_format="date-time",
        coerce=coerce_datetime,
    ),
    FieldType.FILE: RuleTemplate(
        field_type=FieldType.FILE,
        widget="file-upload",
        json_type="string",
        coerce=coerce_file,
    ),
}


PHONE_PATTERN = re.compile(r"^[+]?[\d\s\-()]+$")
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)

BUILTIN_RULES: dict[str, Callable[[Any], bool]] = {
    "phone": lambda value: bool(PHONE_PATTERN.match(str(value))),
    "url": lambda value: bool(URL_PATTERN.match(str(value))),
    "alphanumeric": lambda value: str(value).isalnum(),
    "no_whitespace": lambda value: not any(ch.isspace() for ch in str(value)),
}


class FieldTypeRegistry:
    """
    Lookup of rule templates and named custom rules.

    Every FieldType must have a template; a registry missing one is
    rejected at construction.
    """

    def __init__(
        self,
        templates: dict[FieldType, RuleTemplate] | None = None,
        rules: dict[str, Callable[[Any], bool]] | None = None,
    ):
        self._templates = dict(BUILTIN_TEMPLATES if templates is None else templates)
        self._rules = dict(BUILTIN_RULES if rules is None else rules)

        missing = [t.value for t in FieldType if t not in self._templates]
        if missing:
            raise ValueError(f"No rule template for field types: {', '.join(missing)}")

    def get_template(self, field_type: str | FieldType, field_id: str | None = None) -> RuleTemplate:
        """
        Get the rule template for a field type.

        Raises:
            FieldTypeError: If the type is not one of the supported types.
        """
        try:
            resolved = FieldType(field_type)
        except ValueError:
            raise FieldTypeError(
                f"Unknown field type '{field_type}'"
                + (f" on field '{field_id}'" if field_id else ""),
                field_id=field_id,
            ) from None
        return self._templates[resolved]

    def widget_for(self, field_type: str | FieldType) -> str:
        return self.get_template(field_type).widget

    def register_rule(self, name: str, validator: Callable[[Any], bool]) -> None:
        """Register a named custom rule usable from JSON documents."""
        self._rules[name] = validator

    def get_rule(self, name: str, field_id: str | None = None) -> Callable[[Any], bool]:
        if name not in self._rules:
            raise UnknownRuleError(
                f"Unknown custom rule '{name}'" + (f" on field '{field_id}'" if field_id else ""),
                field_id=field_id,
            )
        return self._rules[name]

    @property
    def rule_names(self) -> list[str]:
        return sorted(self._rules)


default_registry = FieldTypeRegistry()


def get_template(field_type: str | FieldType) -> RuleTemplate:
    """Get a rule template from the default registry."""
    return default_registry.get_template(field_type)
