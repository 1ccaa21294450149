"""
Data models for schema-forms.

This module contains:
- Form definition models (FormMetadata and its fields)
- Validation results
- The compiled schema artifact
- Resolved layout plans
"""

from schema_forms.models.field_definitions import (
    AsyncRule,
    Breakpoint,
    BreakpointLayout,
    ConditionLogic,
    ConditionOperator,
    CustomRule,
    FieldCondition,
    FieldDefinition,
    FieldLayout,
    FieldType,
    FieldValidation,
    FormMetadata,
    FormUIConfig,
    FormValidationSettings,
    SelectOption,
)
from schema_forms.models.validation_result import (
    FieldError,
    ValidationResult,
)
from schema_forms.models.compiled_schema import (
    CompiledField,
    CompiledSchema,
)
from schema_forms.models.layout_plan import (
    GRID_COLUMNS,
    GridPlacement,
    LayoutPlan,
)

__all__ = [
    # Form definition
    "AsyncRule",
    "Breakpoint",
    "BreakpointLayout",
    "ConditionLogic",
    "ConditionOperator",
    "CustomRule",
    "FieldCondition",
    "FieldDefinition",
    "FieldLayout",
    "FieldType",
    "FieldValidation",
    "FormMetadata",
    "FormUIConfig",
    "FormValidationSettings",
    "SelectOption",
    # Validation
    "FieldError",
    "ValidationResult",
    # Compiled artifact
    "CompiledField",
    "CompiledSchema",
    # Layout
    "GRID_COLUMNS",
    "GridPlacement",
    "LayoutPlan",
]
