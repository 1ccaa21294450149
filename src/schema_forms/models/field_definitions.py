"""
Form definition models.

A FormMetadata document is authored by the form builder, persisted by the
surrounding application and handed to the compiler read-only. Every model
accepts the camelCase keys used in persisted documents as well as the
snake_case attribute names.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel, Field, model_validator


class FieldType(str, Enum):
    """Closed set of supported field types."""

    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    DATETIME = "datetime"
    FILE = "file"
    PASSWORD = "password"


class ConditionOperator(str, Enum):
    """Operators available in field conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"
    EMPTY = "empty"
    NOT_EMPTY = "not_empty"


class ConditionLogic(str, Enum):
    AND = "AND"
    OR = "OR"


class Breakpoint(str, Enum):
    """Responsive width tiers, smallest first."""

    XS = "xs"
    SM = "sm"
    MD = "md"
    LG = "lg"
    XL = "xl"
    XXL = "2xl"


# JSON primitives (and lists of them) allowed as condition comparison values
ConditionScalar = bool | int | float | str
ConditionValue = ConditionScalar | list[ConditionScalar] | None


class SelectOption(BaseModel):
    """One choice of a select or radio field."""

    value: str = Field(..., description="Submitted value")
    label: str = Field(default="", description="Display text")
    disabled: bool = Field(default=False, description="Whether the option can be chosen")
    description: str | None = Field(default=None)


class FieldCondition(BaseModel):
    """
    Visibility/requiredness condition of a field.

    The primary clause (field_id + operator + value) is evaluated first,
    followed by the nested conditions, all joined by ``logic``. A pure
    group may omit the primary clause.
    """

    field_id: str | None = Field(default=None, alias="fieldId", description="Referenced field id")
    operator: ConditionOperator | None = Field(default=None)
    value: ConditionValue = Field(default=None, description="Comparison value")
    logic: ConditionLogic = Field(default=ConditionLogic.AND)
    conditions: list["FieldCondition"] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def has_clause(self) -> bool:
        return self.field_id is not None and self.operator is not None


FieldCondition.model_rebuild()


class CustomRule(BaseModel):
    """
    Synchronous custom rule.

    ``validator`` receives the coerced value and returns True when valid.
    When omitted, ``name`` is resolved against the registry's named rules,
    which keeps JSON-persisted documents usable.
    """

    name: str
    message: str = Field(default="Invalid value")
    validator: Callable[[Any], bool] | None = Field(default=None, exclude=True)


class AsyncRule(BaseModel):
    """Asynchronous custom rule; runs only once every synchronous rule passed."""

    name: str
    message: str = Field(default="Invalid value")
    validator: Callable[[Any], Awaitable[bool]] = Field(..., exclude=True)


class FieldValidation(BaseModel):
    """Structured constraints; their meaning depends on the field type."""

    min_length: int | None = Field(default=None, ge=0, alias="minLength")
    max_length: int | None = Field(default=None, ge=0, alias="maxLength")
    minimum: float | None = Field(default=None, alias="min")
    maximum: float | None = Field(default=None, alias="max")
    pattern: str | None = Field(default=None, description="Regular expression")
    custom: list[CustomRule] = Field(default_factory=list)
    async_rules: list[AsyncRule] = Field(default_factory=list, alias="async")

    model_config = {"populate_by_name": True}


class BreakpointLayout(BaseModel):
    """Per-breakpoint override; unset values fall back to smaller breakpoints."""

    span: int | None = Field(default=None, ge=1, le=24)
    offset: int | None = Field(default=None, ge=0, le=23)


class FieldLayout(BaseModel):
    """
    Grid placement on the 24-column grid.

    Breakpoint keys may be given at the top level as a shorthand,
    e.g. ``{"lg": {"span": 8}}``.
    """

    span: int = Field(default=24, ge=1, le=24)
    offset: int = Field(default=0, ge=0, le=23)
    order: int | None = Field(default=None, description="Rendering order override")
    responsive: dict[Breakpoint, BreakpointLayout] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _lift_breakpoint_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        keys = [k for k in data if k in {bp.value for bp in Breakpoint}]
        if not keys:
            return data
        data = dict(data)
        responsive = dict(data.get("responsive") or {})
        for key in keys:
            responsive.setdefault(key, data.pop(key))
        data["responsive"] = responsive
        return data


class FieldDefinition(BaseModel):
    """One form field."""

    id: str = Field(..., description="Stable identifier within the form")
    name: str = Field(..., description="Key used in submitted payloads")
    type: str = Field(..., description="One of the FieldType values")
    label: str = Field(default="", description="Human-readable label")
    placeholder: str | None = Field(default=None)
    description: str | None = Field(default=None)
    required: bool = Field(default=False)
    default_value: Any = Field(default=None, alias="defaultValue")
    options: list[SelectOption] = Field(default_factory=list)
    validation: FieldValidation | None = Field(default=None)
    condition: FieldCondition | None = Field(default=None)
    layout: FieldLayout | None = Field(default=None)
    ui: dict[str, Any] | None = Field(default=None, description="Free-form rendering hints")

    model_config = {"populate_by_name": True}


class FormValidationSettings(BaseModel):
    """Form-level validation behaviour for the rendering layer."""

    mode: Literal["onChange", "onBlur", "onSubmit"] = Field(default="onChange")
    revalidate_mode: Literal["onChange", "onBlur"] | None = Field(
        default=None, alias="revalidateMode"
    )

    model_config = {"populate_by_name": True}


class FormUIConfig(BaseModel):
    """Theme and layout hints."""

    layout: Literal["vertical", "horizontal", "inline"] | None = None
    theme: Literal["light", "dark", "auto"] | None = None
    size: Literal["sm", "md", "lg"] | None = None
    show_labels: bool = Field(default=True, alias="showLabels")
    show_descriptions: bool = Field(default=True, alias="showDescriptions")

    model_config = {"populate_by_name": True}


class FormMetadata(BaseModel):
    """
    Declarative description of one form.

    ``version`` is the version of the metadata shape, not the business
    version of the form.
    """

    version: str = Field(..., description="Metadata schema version")
    title: str | None = Field(default=None)
    description: str | None = Field(default=None)
    fields: list[FieldDefinition] = Field(default_factory=list)
    validation: FormValidationSettings | None = Field(default=None)
    ui: FormUIConfig | None = Field(default=None)

    def field_by_id(self, field_id: str) -> FieldDefinition | None:
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def field_by_name(self, name: str) -> FieldDefinition | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    @property
    def validation_mode(self) -> str:
        return self.validation.mode if self.validation else "onChange"
