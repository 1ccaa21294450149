"""
Validation Rule Synthesizer.

Combines a field's type template with its declared constraints into one
FieldRule. Checks run in a fixed order: requiredness, type coercion,
minLength, maxLength, min, max, pattern, custom rules; async rules run
only when every synchronous check passed.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from schema_forms.errors import InvalidPatternError, MissingOptionsError
from schema_forms.messages import MessageCatalog, get_catalog
from schema_forms.models.field_definitions import AsyncRule, FieldDefinition, FieldValidation
from schema_forms.models.validation_result import FieldError
from schema_forms.registry import (
    MAX_SAFE_INTEGER,
    MIN_SAFE_INTEGER,
    CoercionError,
    FieldTypeRegistry,
    RuleTemplate,
    default_registry,
)

logger = logging.getLogger(__name__)


def is_empty(value: Any) -> bool:
    """Missing, None, blank strings and empty lists count as empty; False and 0 do not."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


@dataclass(frozen=True)
class BoundRule:
    """A custom rule with its validator resolved."""

    name: str
    message: str
    check: Callable[[Any], bool]


@dataclass(frozen=True)
class RuleOutcome:
    """Result of applying the synchronous part of a FieldRule."""

    value: Any = None
    errors: tuple[FieldError, ...] = ()
    empty: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class FieldRule:
    """Composed validation rule for one field."""

    field_id: str
    name: str
    template: RuleTemplate
    min_length: int | None = None
    max_length: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    pattern: re.Pattern | None = None
    options: tuple[str, ...] = ()
    disabled_options: frozenset[str] = frozenset()
    custom_rules: tuple[BoundRule, ...] = ()
    async_rules: tuple[AsyncRule, ...] = ()

    def _error(
        self,
        code: str,
        catalog: MessageCatalog,
        message: str | None = None,
        **params: Any,
    ) -> FieldError:
        return FieldError(
            field_id=self.field_id,
            code=code,
            message=message or catalog.format(code, **params),
            path=[self.name],
        )

    def check(
        self,
        value: Any,
        *,
        required: bool,
        catalog: MessageCatalog | None = None,
    ) -> RuleOutcome:
        """
        Apply the synchronous checks to a raw value.

        An empty value short-circuits: a required field gets exactly one
        "required" error, an optional one is accepted as empty. A coercion
        failure likewise yields a single type error.
        """
        catalog = catalog or get_catalog()

        if is_empty(value):
            if required:
                return RuleOutcome(errors=(self._error("required", catalog),), empty=True)
            return RuleOutcome(empty=True)

        try:
            coerced = self.template.coerce(value)
        except CoercionError as exc:
            return RuleOutcome(errors=(self._error(exc.code, catalog, **exc.params),))

        errors: list[FieldError] = []

        if self.template.uses_options:
            if coerced not in self.options:
                errors.append(self._error("invalid_option", catalog))
            elif coerced in self.disabled_options:
                errors.append(self._error("option_disabled", catalog))

        if isinstance(coerced, str):
            if self.min_length is not None and len(coerced) < self.min_length:
                errors.append(self._error("min_length", catalog, min_length=self.min_length))
            if self.max_length is not None and len(coerced) > self.max_length:
                errors.append(self._error("max_length", catalog, max_length=self.max_length))

        if self.template.numeric_bounds:
            if self.minimum is not None and coerced < self.minimum:
                errors.append(self._error("min", catalog, min=_format_number(self.minimum)))
            if self.maximum is not None and coerced > self.maximum:
                errors.append(self._error("max", catalog, max=_format_number(self.maximum)))

        if self.pattern is not None and isinstance(coerced, str):
            if not self.pattern.search(coerced):
                errors.append(self._error("pattern", catalog))

        for rule in self.custom_rules:
            try:
                valid = rule.check(coerced)
            except Exception as exc:
                logger.warning(f"Custom rule '{rule.name}' raised on field '{self.field_id}': {exc}")
                errors.append(self._error("custom_validation_error", catalog, rule=rule.name))
                continue
            if not valid:
                errors.append(self._error("custom", catalog, message=rule.message))

        return RuleOutcome(value=coerced, errors=tuple(errors))

    async def check_async(
        self,
        value: Any,
        *,
        catalog: MessageCatalog | None = None,
    ) -> list[FieldError]:
        """
        Run the async rules against an already-coerced, synchronously valid value.

        A rule that raises is reported as ``async_validation_error``,
        distinct from a rule that reports the value invalid.
        """
        catalog = catalog or get_catalog()
        errors: list[FieldError] = []
        for rule in self.async_rules:
            try:
                valid = await rule.validator(value)
            except Exception as exc:
                logger.warning(f"Async rule '{rule.name}' raised on field '{self.field_id}': {exc}")
                errors.append(self._error("async_validation_error", catalog))
                continue
            if not valid:
                errors.append(self._error("async_validation", catalog, message=rule.message))
        return errors


def synthesize(field: FieldDefinition, registry: FieldTypeRegistry | None = None) -> FieldRule:
    """
    Build the composed rule for a field.

    Constraints that are meaningless for the field type are ignored.
    Number fields without explicit bounds are limited to the safe-integer
    range.

    Raises:
        FieldTypeError: Unknown field type.
        MissingOptionsError: select/radio field without options.
        InvalidPatternError: ``pattern`` is not a valid regular expression.
        UnknownRuleError: A custom rule has no validator and no registered name.
    """
    registry = registry or default_registry
    template = registry.get_template(field.type, field_id=field.id)
    validation = field.validation or FieldValidation()

    min_length = max_length = None
    pattern = None
    if template.string_constraints:
        min_length = validation.min_length
        max_length = validation.max_length
        if validation.pattern:
            try:
                pattern = re.compile(validation.pattern)
            except re.error as exc:
                raise InvalidPatternError(
                    f"Invalid pattern on field '{field.id}': {exc}", field_id=field.id
                ) from exc

    minimum = maximum = None
    if template.numeric_bounds:
        minimum = validation.minimum if validation.minimum is not None else MIN_SAFE_INTEGER
        maximum = validation.maximum if validation.maximum is not None else MAX_SAFE_INTEGER

    options: tuple[str, ...] = ()
    disabled: frozenset[str] = frozenset()
    if template.uses_options:
        if not field.options:
            raise MissingOptionsError(
                f"Field '{field.id}' of type '{field.type}' must define options",
                field_id=field.id,
            )
        options = tuple(option.value for option in field.options)
        disabled = frozenset(option.value for option in field.options if option.disabled)

    custom_rules = tuple(
        BoundRule(
            name=rule.name,
            message=rule.message,
            check=rule.validator or registry.get_rule(rule.name, field_id=field.id),
        )
        for rule in validation.custom
    )

    return FieldRule(
        field_id=field.id,
        name=field.name,
        template=template,
        min_length=min_length,
        max_length=max_length,
        minimum=minimum,
        maximum=maximum,
        pattern=pattern,
        options=options,
        disabled_options=disabled,
        custom_rules=custom_rules,
        async_rules=tuple(validation.async_rules),
    )
