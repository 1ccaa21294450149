"""
Schema Compiler.

Turns FormMetadata into an immutable CompiledSchema, cached by a content
hash of the structural parts of the metadata, and validates value-sets
against it.

Usage:
    compiler = SchemaCompiler()
    schema = compiler.compile(metadata)
    result = compiler.validate(schema, {"name": "Zhang"})
    if not result.success:
        print(result.to_error_dict())
"""

import asyncio
import hashlib
import json
import logging
from collections import OrderedDict
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable

from schema_forms.conditions import (
    build_dependents,
    compute_visibility,
    detect_cycles,
    evaluate,
)
from schema_forms.config import get_config
from schema_forms.errors import (
    AsyncRulesPresentError,
    ConfigurationError,
    DuplicateFieldError,
    InvalidConditionError,
    InvalidDefaultError,
    UnknownConditionFieldError,
)
from schema_forms.messages import MessageCatalog, get_catalog
from schema_forms.models.compiled_schema import CompiledField, CompiledSchema
from schema_forms.models.field_definitions import (
    ConditionOperator,
    FieldCondition,
    FieldDefinition,
    FieldType,
    FormMetadata,
)
from schema_forms.models.validation_result import FieldError, ValidationResult
from schema_forms.registry import CoercionError, FieldTypeRegistry, default_registry
from schema_forms.rules import FieldRule, RuleOutcome, is_empty, synthesize
from schema_forms.tracing import OperationMetrics, setup_tracing_from_config, traced_operation

logger = logging.getLogger(__name__)


class SchemaCache:
    """
    Bounded LRU cache of compiled schemas keyed by content hash.

    Entries are immutable once stored, so concurrent compilations of the
    same shape may overwrite each other harmlessly.
    """

    def __init__(self, max_size: int = 100):
        if max_size < 1:
            raise ValueError("Cache max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[str, CompiledSchema] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> CompiledSchema | None:
        schema = self._entries.get(key)
        if schema is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return schema

    def put(self, key: str, schema: CompiledSchema) -> None:
        self._entries[key] = schema
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted compiled schema {evicted[:12]}")

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def stats(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }


def _callable_token(fn: Callable | None) -> str | None:
    # Identity is part of the token: two lambdas with one qualname are different rules
    if fn is None:
        return None
    module = getattr(fn, "__module__", None) or ""
    qualname = getattr(fn, "__qualname__", None) or type(fn).__qualname__
    return f"{module}.{qualname}#{id(fn)}"


def _field_fingerprint(field: FieldDefinition) -> dict[str, Any]:
    validation = None
    if field.validation is not None:
        validation = field.validation.model_dump(
            by_alias=True, exclude={"custom", "async_rules"}, exclude_none=True
        )
        validation["custom"] = [
            {"name": r.name, "message": r.message, "validator": _callable_token(r.validator)}
            for r in field.validation.custom
        ]
        validation["async"] = [
            {"name": r.name, "message": r.message, "validator": _callable_token(r.validator)}
            for r in field.validation.async_rules
        ]
    return {
        "id": field.id,
        "name": field.name,
        "type": field.type,
        "required": field.required,
        "defaultValue": field.default_value,
        "options": [[o.value, o.disabled] for o in field.options],
        "validation": validation,
        "condition": (
            field.condition.model_dump(mode="json", by_alias=True)
            if field.condition is not None
            else None
        ),
    }


def content_hash(metadata: FormMetadata) -> str:
    """
    SHA-256 over the structural parts of the metadata.

    Labels, placeholders, descriptions, option labels, layout and form-level
    presentation settings are excluded, so editing them keeps the key.
    """
    payload = {
        "version": metadata.version,
        "fields": [_field_fingerprint(f) for f in metadata.fields],
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _check_condition(
    field: FieldDefinition,
    condition: FieldCondition,
    known_ids: set[str],
) -> list[ConfigurationError]:
    problems: list[ConfigurationError] = []
    has_reference = condition.field_id is not None
    has_operator = condition.operator is not None

    if not condition.has_clause and not condition.conditions:
        problems.append(InvalidConditionError(
            f"Condition on field '{field.id}' has neither a clause nor nested conditions",
            field_id=field.id,
        ))
    if has_reference != has_operator:
        problems.append(InvalidConditionError(
            f"Condition on field '{field.id}' needs both fieldId and operator",
            field_id=field.id,
        ))
    if has_reference and condition.field_id not in known_ids:
        problems.append(UnknownConditionFieldError(
            f"Condition on field '{field.id}' references unknown field '{condition.field_id}'",
            field_id=field.id,
        ))
    if condition.operator in (ConditionOperator.IN, ConditionOperator.NOT_IN):
        if not isinstance(condition.value, list):
            problems.append(InvalidConditionError(
                f"Operator '{condition.operator.value}' on field '{field.id}' needs a list value",
                field_id=field.id,
            ))

    for nested in condition.conditions:
        problems.extend(_check_condition(field, nested, known_ids))
    return problems


class SchemaCompiler:
    """
    Compiles FormMetadata and validates data against the result.

    One compiler owns one cache. Locale only affects the messages produced
    at validation time, so compiled schemas are shared across locales.
    """

    def __init__(
        self,
        registry: FieldTypeRegistry | None = None,
        enable_cache: bool | None = None,
        cache_max_size: int | None = None,
        locale: str | None = None,
        metrics: OperationMetrics | None = None,
    ):
        """
        Initialize the compiler.

        Args:
            registry: Field type registry (defaults to the built-in one).
            enable_cache: Cache compiled schemas by content hash.
            cache_max_size: Maximum number of cached schemas.
            locale: Locale of validation messages.
            metrics: Collector for compile/validate timings.

        Tracing is set up from the configuration when it enables tracing.
        """
        config = get_config()
        self.registry = registry or default_registry
        self.enable_cache = config.enable_cache if enable_cache is None else enable_cache
        self.cache = SchemaCache(cache_max_size or config.cache_max_size)
        self.metrics = metrics or OperationMetrics()
        self._catalog = get_catalog(locale or config.locale)
        setup_tracing_from_config(config)

    # ------------------------------------------------------------------
    # Locale
    # ------------------------------------------------------------------

    @property
    def locale(self) -> str:
        return self._catalog.locale

    @property
    def catalog(self) -> MessageCatalog:
        return self._catalog

    def set_locale(self, locale: str) -> None:
        """Switch the language of validation messages."""
        self._catalog = get_catalog(locale)

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def compile(self, metadata: FormMetadata) -> CompiledSchema:
        """
        Compile metadata into a CompiledSchema, reusing a cached one when the
        structural content is unchanged.

        Raises:
            ConfigurationError: The metadata is invalid. When several problems
                are found, ``errors`` lists all of them.
        """
        key = content_hash(metadata)
        if self.enable_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Compiled schema cache hit {key[:12]}")
                return cached
            logger.debug(f"Compiled schema cache miss {key[:12]}")

        with traced_operation("compile", self.metrics, fields=len(metadata.fields)):
            try:
                schema = self._build(key, metadata)
            except ConfigurationError as exc:
                logger.warning(f"Rejected form metadata: {exc}")
                raise

        if self.enable_cache:
            self.cache.put(key, schema)
        logger.info(f"Compiled form schema {key[:12]} with {len(schema.fields)} fields")
        return schema

    def _build(self, key: str, metadata: FormMetadata) -> CompiledSchema:
        problems: list[ConfigurationError] = []
        seen_ids: set[str] = set()
        seen_names: set[str] = set()
        known_ids = {f.id for f in metadata.fields}
        compiled: list[CompiledField] = []

        for field in metadata.fields:
            if field.id in seen_ids:
                problems.append(DuplicateFieldError(
                    f"Duplicate field id '{field.id}'", field_id=field.id
                ))
            if field.name in seen_names:
                problems.append(DuplicateFieldError(
                    f"Duplicate field name '{field.name}'", field_id=field.id
                ))
            seen_ids.add(field.id)
            seen_names.add(field.name)

            if field.condition is not None:
                problems.extend(_check_condition(field, field.condition, known_ids))

            try:
                rule = synthesize(field, self.registry)
                compiled.append(self._compile_field(field, rule))
            except ConfigurationError as exc:
                problems.append(exc)

        if len(problems) == 1:
            raise problems[0]
        if problems:
            raise ConfigurationError(
                f"Form metadata has {len(problems)} problems", errors=problems
            )

        detect_cycles(metadata.fields)

        dependents = {
            field_id: tuple(ids) for field_id, ids in build_dependents(metadata.fields).items()
        }
        return CompiledSchema(
            cache_key=key,
            version=metadata.version,
            fields=tuple(compiled),
            dependents=MappingProxyType(dependents),
        )

    def _compile_field(self, field: FieldDefinition, rule: FieldRule) -> CompiledField:
        has_default = not is_empty(field.default_value)
        default = None
        if has_default:
            try:
                default = rule.template.coerce(field.default_value)
            except CoercionError:
                raise InvalidDefaultError(
                    f"Default value of field '{field.id}' is not a valid {field.type}",
                    field_id=field.id,
                ) from None
        elif rule.template.field_type == FieldType.CHECKBOX:
            has_default, default = True, False

        return CompiledField(
            field_id=field.id,
            name=field.name,
            field_type=rule.template.field_type,
            rule=rule,
            required=field.required,
            condition=field.condition,
            has_default=has_default,
            default=default,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def values_by_id(schema: CompiledSchema, data: Mapping[str, Any]) -> dict[str, Any]:
        """Re-key a payload (keyed by field name) by field id for condition evaluation."""
        return {f.field_id: data[f.name] for f in schema.fields if f.name in data}

    @staticmethod
    def is_visible(compiled: CompiledField, values: Mapping[str, Any]) -> bool:
        """Whether the field's condition holds; unconditional fields are always visible."""
        return compiled.condition is None or evaluate(compiled.condition, values)

    def check_field(
        self,
        schema: CompiledSchema,
        field_id: str,
        data: Mapping[str, Any],
    ) -> RuleOutcome:
        """
        Apply one field's synchronous rule against a payload.

        A hidden field always passes as empty.

        Raises:
            KeyError: Unknown field id.
        """
        compiled = schema.field_by_id(field_id)
        if compiled is None:
            raise KeyError(field_id)
        if not self.is_visible(compiled, self.values_by_id(schema, data)):
            return RuleOutcome(empty=True)
        return compiled.rule.check(
            data.get(compiled.name), required=compiled.required, catalog=self._catalog
        )

    async def check_field_async(
        self,
        schema: CompiledSchema,
        field_id: str,
        value: Any,
    ) -> list[FieldError]:
        """Run one field's async rules against its coerced, synchronously valid value."""
        compiled = schema.field_by_id(field_id)
        if compiled is None:
            raise KeyError(field_id)
        return await compiled.rule.check_async(value, catalog=self._catalog)

    def _run_sync(
        self,
        schema: CompiledSchema,
        data: Mapping[str, Any],
    ) -> tuple[dict[str, Any], dict[str, list[FieldError]], list[tuple[CompiledField, Any]]]:
        values = self.values_by_id(schema, data)
        clean: dict[str, Any] = {}
        errors: dict[str, list[FieldError]] = {}
        pending: list[tuple[CompiledField, Any]] = []

        for compiled in schema.fields:
            if not self.is_visible(compiled, values):
                continue
            outcome = compiled.rule.check(
                data.get(compiled.name), required=compiled.required, catalog=self._catalog
            )
            if outcome.errors:
                errors[compiled.field_id] = list(outcome.errors)
            elif outcome.empty:
                if compiled.has_default:
                    clean[compiled.name] = compiled.default
            else:
                clean[compiled.name] = outcome.value
                if compiled.rule.async_rules:
                    pending.append((compiled, outcome.value))
        return clean, errors, pending

    @staticmethod
    def _result(
        schema: CompiledSchema,
        clean: dict[str, Any],
        errors: dict[str, list[FieldError]],
    ) -> ValidationResult:
        if not errors:
            return ValidationResult.ok(clean)
        ordered = [e for f in schema.fields for e in errors.get(f.field_id, ())]
        return ValidationResult.failed(ordered)

    def validate(self, schema: CompiledSchema, data: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a payload (keyed by field name) synchronously.

        Every field is checked; errors come back in field declaration order.

        Raises:
            AsyncRulesPresentError: The schema has async rules; use
                :meth:`validate_async` instead.
        """
        if schema.has_async_rules:
            raise AsyncRulesPresentError(
                "Schema has async validation rules; use validate_async()"
            )
        with traced_operation("validate", self.metrics, fields=len(schema.fields)):
            clean, errors, _ = self._run_sync(schema, data)
            return self._result(schema, clean, errors)

    async def validate_async(
        self,
        schema: CompiledSchema,
        data: Mapping[str, Any],
    ) -> ValidationResult:
        """
        Validate a payload including async rules.

        Async rules run concurrently across fields, only for fields that
        passed every synchronous check. Their errors are merged in field
        declaration order regardless of completion order.
        """
        with traced_operation("validate_async", self.metrics, fields=len(schema.fields)):
            clean, errors, pending = self._run_sync(schema, data)
            if pending:
                results = await asyncio.gather(*(
                    compiled.rule.check_async(value, catalog=self._catalog)
                    for compiled, value in pending
                ))
                for (compiled, _), field_errors in zip(pending, results):
                    if field_errors:
                        errors[compiled.field_id] = field_errors
                        clean.pop(compiled.name, None)
            return self._result(schema, clean, errors)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get_defaults(self, metadata: FormMetadata) -> dict[str, Any]:
        """Initial value-set: every declared default, and False for checkboxes without one."""
        defaults: dict[str, Any] = {}
        for field in metadata.fields:
            if not is_empty(field.default_value):
                defaults[field.name] = field.default_value
            elif field.type == FieldType.CHECKBOX.value:
                defaults[field.name] = False
        return defaults

    def compute_visibility(
        self,
        metadata: FormMetadata,
        data: Mapping[str, Any],
    ) -> dict[str, bool]:
        """Visibility per field id for a payload keyed by field name."""
        values = {f.id: data[f.name] for f in metadata.fields if f.name in data}
        return compute_visibility(metadata.fields, values)

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.debug("Compiled schema cache cleared")

    def get_cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()

    def get_performance_metrics(self) -> dict[str, Any]:
        """Timing statistics per operation plus cache statistics."""
        return {
            "operations": self.metrics.snapshot(),
            "cache": self.cache.stats(),
        }


# Default compiler for the module-level convenience functions
default_compiler = SchemaCompiler()


def compile_form_metadata(metadata: FormMetadata) -> CompiledSchema:
    return default_compiler.compile(metadata)


def validate_form_data(metadata: FormMetadata, data: Mapping[str, Any]) -> ValidationResult:
    """Compile (cached) and validate in one call."""
    return default_compiler.validate(default_compiler.compile(metadata), data)


def compute_field_visibility(metadata: FormMetadata, data: Mapping[str, Any]) -> dict[str, bool]:
    return default_compiler.compute_visibility(metadata, data)


def clear_schema_cache() -> None:
    default_compiler.clear_cache()
