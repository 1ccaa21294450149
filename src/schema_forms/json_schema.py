"""
JSON Schema Bridge.

Converts forms to and from draft-07 JSON Schema documents for external
interoperability. Conditionally required fields are never listed in the
``required`` array: the exported subset has no conditional-required
construct, so those fields are exported as optional.
"""

import json
import logging
from typing import Any

from jsonschema import Draft7Validator
from pydantic import BaseModel, Field

from schema_forms.config import get_config
from schema_forms.models.compiled_schema import CompiledSchema
from schema_forms.models.field_definitions import (
    FieldDefinition,
    FieldType,
    FieldValidation,
    FormMetadata,
    SelectOption,
)
from schema_forms.registry import (
    MAX_SAFE_INTEGER,
    MIN_SAFE_INTEGER,
    FieldTypeRegistry,
    default_registry,
)
from schema_forms.rules import FieldRule, is_empty, synthesize

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"
SCHEMA_ID_PREFIX = "#/schemas/form/"


class JsonSchemaOptions(BaseModel):
    """Export options; unset values fall back to the configuration."""

    title: str | None = Field(default=None, description="Document title")
    description: str | None = Field(default=None, description="Document description")
    include_examples: bool | None = Field(default=None, alias="includeExamples")
    strict_mode: bool | None = Field(
        default=None, alias="strictMode", description="Reject unknown properties"
    )

    model_config = {"populate_by_name": True}


class SchemaShapeReport(BaseModel):
    """Result of checking a JSON Schema document for self-consistency."""

    valid: bool = Field(..., description="Whether no problem was found")
    errors: list[str] = Field(default_factory=list)


def _explicit_bounds(rule: FieldRule) -> tuple[float | None, float | None]:
    """Numeric bounds that were configured, hiding the implicit safe-integer range."""
    minimum = rule.minimum if rule.minimum not in (None, MIN_SAFE_INTEGER) else None
    maximum = rule.maximum if rule.maximum not in (None, MAX_SAFE_INTEGER) else None
    return minimum, maximum


def _example_value(rule: FieldRule) -> Any:
    """A value the field accepts, or None when none can be derived."""
    field_type = rule.template.field_type

    if field_type in (FieldType.TEXT, FieldType.TEXTAREA, FieldType.PASSWORD):
        if rule.pattern is not None:
            return None
        text = "example"
        if rule.min_length and len(text) < rule.min_length:
            text = text.ljust(rule.min_length, "x")
        if rule.max_length is not None:
            text = text[: rule.max_length]
        return text or None
    if field_type == FieldType.EMAIL:
        return "user@example.com"
    if field_type == FieldType.NUMBER:
        minimum, maximum = _explicit_bounds(rule)
        value = 0
        if minimum is not None and value < minimum:
            value = minimum
        if maximum is not None and value > maximum:
            value = maximum
        return value
    if field_type == FieldType.CHECKBOX:
        return True
    if field_type in (FieldType.SELECT, FieldType.RADIO):
        enabled = [o for o in rule.options if o not in rule.disabled_options]
        return enabled[0] if enabled else None
    if field_type in (FieldType.DATE, FieldType.DATETIME):
        return "2024-01-01T00:00:00Z"
    if field_type == FieldType.FILE:
        return "document.pdf"
    return None


def _json_default(value: Any) -> Any:
    # Dates and datetimes are exported in ISO form
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class JsonSchemaBridge:
    """
    Converter between forms and JSON Schema documents.

    Usage:
        bridge = JsonSchemaBridge()
        document = bridge.from_form_metadata(metadata, JsonSchemaOptions(strict_mode=True))
        report = bridge.validate_json_schema_shape(document)
    """

    def __init__(self, registry: FieldTypeRegistry | None = None, draft: str | None = None):
        self.registry = registry or default_registry
        self.draft = draft or get_config().json_schema_draft

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _property(
        self,
        rule: FieldRule,
        include_examples: bool,
        default: Any = None,
    ) -> dict[str, Any]:
        template = rule.template
        prop: dict[str, Any] = {"type": template.json_type}
        if template.json_format:
            prop["format"] = template.json_format
        if rule.min_length is not None:
            prop["minLength"] = rule.min_length
        if rule.max_length is not None:
            prop["maxLength"] = rule.max_length
        if rule.pattern is not None:
            prop["pattern"] = rule.pattern.pattern

        minimum, maximum = _explicit_bounds(rule)
        if minimum is not None:
            prop["minimum"] = minimum
        if maximum is not None:
            prop["maximum"] = maximum

        if template.uses_options and rule.options:
            prop["enum"] = list(rule.options)

        if not is_empty(default):
            prop["default"] = _json_default(default)

        if include_examples:
            example = _example_value(rule)
            if example is not None:
                prop["examples"] = [example]
        return prop

    def _document(
        self,
        version: str,
        properties: dict[str, Any],
        required: list[str],
        examples: list[dict[str, Any]],
        options: JsonSchemaOptions,
        title: str | None,
        description: str | None,
    ) -> dict[str, Any]:
        config = get_config()
        strict = config.default_strict_mode if options.strict_mode is None else options.strict_mode

        document: dict[str, Any] = {
            "$schema": self.draft,
            "$id": SCHEMA_ID_PREFIX + version.replace(".", "-"),
            "title": options.title or title or f"Form Schema - {version}",
        }
        description = options.description or description
        if description:
            document["description"] = description
        document["type"] = "object"
        document["properties"] = properties
        if required:
            document["required"] = required
        document["additionalProperties"] = not strict
        if examples:
            document["examples"] = examples
        return document

    @staticmethod
    def _examples(
        properties: dict[str, Any],
        required: list[str],
    ) -> list[dict[str, Any]]:
        full: dict[str, Any] = {}
        minimal: dict[str, Any] = {}
        for name, prop in properties.items():
            value = prop.get("default", (prop.get("examples") or [None])[0])
            if value is None:
                continue
            full[name] = value
            if name in required:
                minimal[name] = value
        return [full, minimal] if full else []

    def _include_examples(self, options: JsonSchemaOptions) -> bool:
        if options.include_examples is None:
            return get_config().include_examples
        return options.include_examples

    def to_json_schema(
        self,
        compiled: CompiledSchema,
        options: JsonSchemaOptions | None = None,
    ) -> dict[str, Any]:
        """
        Export a compiled schema.

        Compiled schemas carry no labels, so property titles are field names.
        """
        options = options or JsonSchemaOptions()
        include_examples = self._include_examples(options)
        properties: dict[str, Any] = {}
        required: list[str] = []

        for field in compiled.fields:
            prop = self._property(
                field.rule, include_examples, field.default if field.has_default else None
            )
            properties[field.name] = {"title": field.name, **prop}
            if field.required and not field.is_conditional:
                required.append(field.name)

        examples = self._examples(properties, required) if include_examples else []
        return self._document(
            compiled.version, properties, required, examples, options, None, None
        )

    def from_form_metadata(
        self,
        metadata: FormMetadata,
        options: JsonSchemaOptions | None = None,
    ) -> dict[str, Any]:
        """
        Export FormMetadata, with labels and descriptions as titles and descriptions.

        Raises:
            ConfigurationError: A field cannot be synthesized (unknown type,
                missing options, invalid pattern).
        """
        options = options or JsonSchemaOptions()
        include_examples = self._include_examples(options)
        properties: dict[str, Any] = {}
        required: list[str] = []

        for field in metadata.fields:
            rule = synthesize(field, self.registry)
            prop: dict[str, Any] = {"title": field.label or field.name}
            if field.description:
                prop["description"] = field.description
            prop.update(self._property(rule, include_examples, field.default_value))
            properties[field.name] = prop
            if field.required and field.condition is None:
                required.append(field.name)

        examples = self._examples(properties, required) if include_examples else []
        document = self._document(
            metadata.version,
            properties,
            required,
            examples,
            options,
            metadata.title,
            metadata.description,
        )
        logger.debug(f"Exported {len(properties)} properties to JSON Schema")
        return document

    def to_ui_schema(self, metadata: FormMetadata) -> dict[str, Any]:
        """Export widget and placeholder hints per field name."""
        ui_schema: dict[str, Any] = {}

        for field in metadata.fields:
            field_ui: dict[str, Any] = {"ui:widget": self.registry.widget_for(field.type)}
            if field.placeholder:
                field_ui["ui:placeholder"] = field.placeholder
            if field.description:
                field_ui["ui:help"] = field.description
            ui_schema[field.name] = field_ui

        return ui_schema

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def validate_json_schema_shape(self, document: dict[str, Any]) -> SchemaShapeReport:
        """
        Check a document for structural self-consistency.

        Every problem is reported; nothing is silently ignored.
        """
        errors: list[str] = []

        meta_validator = Draft7Validator(Draft7Validator.META_SCHEMA)
        for error in meta_validator.iter_errors(document):
            location = "/".join(str(p) for p in error.absolute_path) or "<root>"
            errors.append(f"Meta-schema violation at {location}: {error.message}")

        if document.get("type") != "object":
            errors.append("Root type must be 'object'")

        properties = document.get("properties")
        if not isinstance(properties, dict):
            errors.append("Missing 'properties' object")
            properties = {}

        for name in document.get("required") or []:
            if name not in properties:
                errors.append(f"Required field '{name}' is not defined in properties")

        for name, prop in properties.items():
            if not isinstance(prop, dict):
                continue
            if "enum" in prop and not prop["enum"]:
                errors.append(f"Property '{name}' has an empty enum")
            minimum, maximum = prop.get("minimum"), prop.get("maximum")
            if minimum is not None and maximum is not None and minimum > maximum:
                errors.append(f"Property '{name}' has minimum greater than maximum")
            min_length, max_length = prop.get("minLength"), prop.get("maxLength")
            if min_length is not None and max_length is not None and min_length > max_length:
                errors.append(f"Property '{name}' has minLength greater than maxLength")

        return SchemaShapeReport(valid=not errors, errors=errors)

    def validate_instance(self, document: dict[str, Any], data: dict[str, Any]) -> list[str]:
        """Validate a payload against an exported document with the draft-07 validator."""
        Draft7Validator.check_schema(document)
        validator = Draft7Validator(document)
        return [
            f"{'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
            for error in validator.iter_errors(data)
        ]

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def to_form_metadata(self, document: dict[str, Any]) -> FormMetadata:
        """
        Build FormMetadata from a JSON Schema object document.

        Only the subset produced by the exporter is understood; unknown
        keywords are ignored.
        """
        required = set(document.get("required") or [])
        fields: list[FieldDefinition] = []

        for name, prop in (document.get("properties") or {}).items():
            field_type = self._import_type(prop)
            options = [SelectOption(value=str(v), label=str(v)) for v in prop.get("enum") or []]
            validation = FieldValidation(
                min_length=prop.get("minLength"),
                max_length=prop.get("maxLength"),
                pattern=prop.get("pattern"),
                minimum=prop.get("minimum"),
                maximum=prop.get("maximum"),
            )
            has_validation = any(
                v is not None for v in validation.model_dump(exclude={"custom", "async_rules"}).values()
            )
            fields.append(FieldDefinition(
                id=name,
                name=name,
                type=field_type.value,
                label=prop.get("title") or name,
                description=prop.get("description"),
                required=name in required,
                default_value=prop.get("default"),
                options=options,
                validation=validation if has_validation else None,
            ))

        schema_id = document.get("$id") or ""
        version = DEFAULT_VERSION
        if schema_id.startswith(SCHEMA_ID_PREFIX):
            version = schema_id[len(SCHEMA_ID_PREFIX):].replace("-", ".") or DEFAULT_VERSION

        return FormMetadata(
            version=version,
            title=document.get("title"),
            description=document.get("description"),
            fields=fields,
        )

    @staticmethod
    def _import_type(prop: dict[str, Any]) -> FieldType:
        json_type = prop.get("type")
        if isinstance(json_type, list):
            json_type = next((t for t in json_type if t != "null"), "string")
        fmt = prop.get("format")

        if json_type in ("number", "integer"):
            return FieldType.NUMBER
        if json_type == "boolean":
            return FieldType.CHECKBOX
        if prop.get("enum"):
            return FieldType.SELECT
        if fmt == "email":
            return FieldType.EMAIL
        if fmt == "date-time":
            return FieldType.DATETIME
        if fmt == "date":
            return FieldType.DATE
        if fmt == "password":
            return FieldType.PASSWORD
        return FieldType.TEXT

    # ------------------------------------------------------------------
    # Documentation
    # ------------------------------------------------------------------

    def generate_schema_documentation(self, document: dict[str, Any]) -> str:
        """Render a JSON Schema document as Markdown."""
        lines = ["# JSON Schema Documentation", ""]

        if document.get("title"):
            lines += [f"## {document['title']}", ""]
        if document.get("description"):
            lines += [document["description"], ""]

        lines += [f"**Type**: {document.get('type', 'object')}", ""]

        required = document.get("required") or []
        if required:
            lines += [f"**Required Fields**: {', '.join(required)}", ""]

        properties = document.get("properties") or {}
        if properties:
            lines += ["### Properties", ""]
            for name, prop in properties.items():
                lines += [f"#### {name}", ""]
                lines.append(f"- **Type**: {prop.get('type')}")
                for key, label in (("title", "Title"), ("description", "Description"), ("format", "Format")):
                    if prop.get(key):
                        lines.append(f"- **{label}**: {prop[key]}")
                if prop.get("enum"):
                    lines.append(f"- **Enum**: {', '.join(str(v) for v in prop['enum'])}")
                if prop.get("examples"):
                    lines.append(f"- **Examples**: {', '.join(str(v) for v in prop['examples'])}")
                lines.append("")

        examples = document.get("examples") or []
        if examples:
            lines += ["### Examples", ""]
            for index, example in enumerate(examples, start=1):
                lines += [
                    f"#### Example {index}",
                    "```json",
                    json.dumps(example, indent=2, ensure_ascii=False),
                    "```",
                    "",
                ]

        return "\n".join(lines)
