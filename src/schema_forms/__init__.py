"""
schema-forms: schema-driven form compilation and validation.

Compile a declarative form description once, then validate submissions,
resolve conditional visibility and grid layout, and export JSON Schema.

Simple Usage:
    from schema_forms import FormMetadata, validate_form_data

    metadata = FormMetadata.model_validate(form_document)
    result = validate_form_data(metadata, {"name": "Zhang"})
    if not result.success:
        print(result.to_error_dict())

Advanced Usage:
    from schema_forms import SchemaCompiler, JsonSchemaBridge, FormRuntimeContext

    compiler = SchemaCompiler(cache_max_size=50, locale="zh-CN")
    schema = compiler.compile(metadata)
    result = await compiler.validate_async(schema, data)

    document = JsonSchemaBridge().from_form_metadata(metadata)

    context = FormRuntimeContext(metadata, on_submit=save, compiler=compiler)
    context.update_field_value("subject", "support")
    submit_result = await context.submit_form()

Tracing:
    from schema_forms.tracing import setup_tracing

    # Print compile/validate timings
    setup_tracing(console=True, verbose=True)

    # Or write to file
    setup_tracing(file_path="traces.jsonl")
"""

from schema_forms.compiler import (
    SchemaCache,
    SchemaCompiler,
    clear_schema_cache,
    compile_form_metadata,
    compute_field_visibility,
    content_hash,
    validate_form_data,
)
from schema_forms.conditions import compute_visibility, detect_cycles, evaluate
from schema_forms.config import SchemaFormsConfig, get_config, update_config
from schema_forms.designer import (
    convert_designer_json,
    convert_form_metadata_to_designer_json,
    validate_designer_json,
)
from schema_forms.errors import (
    AsyncRulesPresentError,
    CircularConditionError,
    ConfigurationError,
    DuplicateFieldError,
    FieldTypeError,
    FormStateError,
    InvalidConditionError,
    InvalidDefaultError,
    InvalidPatternError,
    MissingOptionsError,
    SchemaFormsError,
    UnknownConditionFieldError,
    UnknownRuleError,
)
from schema_forms.json_schema import JsonSchemaBridge, JsonSchemaOptions, SchemaShapeReport
from schema_forms.layout import BREAKPOINT_WIDTHS, LayoutResolver, breakpoint_for_width
from schema_forms.models import (
    Breakpoint,
    CompiledSchema,
    FieldCondition,
    FieldDefinition,
    FieldError,
    FieldLayout,
    FieldType,
    FieldValidation,
    FormMetadata,
    LayoutPlan,
    SelectOption,
    ValidationResult,
)
from schema_forms.registry import FieldTypeRegistry, RuleTemplate, get_template
from schema_forms.rules import FieldRule, synthesize
from schema_forms.runtime import (
    FormRuntimeContext,
    SubmissionRecord,
    SubmissionState,
    SubmissionStatus,
    SubmitResult,
    ValidationState,
)
from schema_forms.tracing import (
    OperationMetrics,
    disable_tracing,
    enable_tracing,
    setup_tracing,
    traced_operation,
)

__all__ = [
    # Compiler
    "SchemaCompiler",
    "SchemaCache",
    "content_hash",
    "compile_form_metadata",
    "validate_form_data",
    "compute_field_visibility",
    "clear_schema_cache",
    # Registry and rules
    "FieldTypeRegistry",
    "RuleTemplate",
    "get_template",
    "FieldRule",
    "synthesize",
    # Conditions
    "evaluate",
    "detect_cycles",
    "compute_visibility",
    # JSON Schema
    "JsonSchemaBridge",
    "JsonSchemaOptions",
    "SchemaShapeReport",
    # Layout
    "LayoutResolver",
    "LayoutPlan",
    "BREAKPOINT_WIDTHS",
    "breakpoint_for_width",
    # Runtime
    "FormRuntimeContext",
    "ValidationState",
    "SubmissionState",
    "SubmissionStatus",
    "SubmitResult",
    "SubmissionRecord",
    # Designer
    "convert_designer_json",
    "convert_form_metadata_to_designer_json",
    "validate_designer_json",
    # Models
    "Breakpoint",
    "CompiledSchema",
    "FieldCondition",
    "FieldDefinition",
    "FieldError",
    "FieldLayout",
    "FieldType",
    "FieldValidation",
    "FormMetadata",
    "SelectOption",
    "ValidationResult",
    # Errors
    "SchemaFormsError",
    "ConfigurationError",
    "FieldTypeError",
    "DuplicateFieldError",
    "UnknownConditionFieldError",
    "InvalidConditionError",
    "CircularConditionError",
    "MissingOptionsError",
    "UnknownRuleError",
    "InvalidPatternError",
    "InvalidDefaultError",
    "AsyncRulesPresentError",
    "FormStateError",
    # Configuration and tracing
    "SchemaFormsConfig",
    "get_config",
    "update_config",
    "setup_tracing",
    "disable_tracing",
    "enable_tracing",
    "traced_operation",
    "OperationMetrics",
]

__version__ = "0.1.0"
