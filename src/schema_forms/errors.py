"""
Exception hierarchy for schema-forms.

Configuration errors describe a broken FormMetadata document and are
raised at compile time. Validation failures are never raised; they are
returned as ValidationResult data.
"""


class SchemaFormsError(Exception):
    """Base class for every error raised by schema-forms."""


class ConfigurationError(SchemaFormsError):
    """
    The form definition itself is invalid.

    Attributes:
        field_id: Field the problem is attached to, if any.
        code: Machine-readable problem code.
        errors: Every problem found in the same compile pass. A single
            error carries itself.
    """

    code = "configuration_error"

    def __init__(
        self,
        message: str,
        field_id: str | None = None,
        code: str | None = None,
        errors: list["ConfigurationError"] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.field_id = field_id
        if code is not None:
            self.code = code
        self.errors: list[ConfigurationError] = errors if errors else [self]

    def __str__(self) -> str:
        if len(self.errors) <= 1:
            return self.message
        lines = "\n".join(f"  - {e.message}" for e in self.errors)
        return f"{self.message}:\n{lines}"


class FieldTypeError(ConfigurationError):
    code = "unknown_type"


class DuplicateFieldError(ConfigurationError):
    code = "duplicate_field"


class UnknownConditionFieldError(ConfigurationError):
    code = "unknown_condition_field"


class InvalidConditionError(ConfigurationError):
    code = "invalid_condition"


class CircularConditionError(ConfigurationError):
    """Conditions form a dependency cycle (self-reference included)."""

    code = "circular_reference"

    def __init__(self, message: str, cycle: list[str]):
        super().__init__(message, field_id=cycle[0] if cycle else None)
        self.cycle = cycle


class MissingOptionsError(ConfigurationError):
    code = "missing_options"


class UnknownRuleError(ConfigurationError):
    code = "unknown_rule"


class InvalidPatternError(ConfigurationError):
    code = "invalid_pattern"


class InvalidDefaultError(ConfigurationError):
    code = "invalid_default"


class AsyncRulesPresentError(ConfigurationError):
    """Synchronous validation was requested for a schema with async rules."""

    code = "async_rules_present"


class FormStateError(SchemaFormsError):
    """A runtime form operation is not allowed in the current state."""
