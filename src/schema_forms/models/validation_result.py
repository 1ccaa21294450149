"""
Validation result models.

Validation never raises for bad input; the outcome is always one of
these values, and two validations of the same input against the same
schema compare equal.
"""

from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """Validation error for a specific field."""

    field_id: str = Field(..., alias="fieldId", description="Id of the field with the error")
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    path: list[str] = Field(default_factory=list, description="Payload path of the value")

    model_config = {"populate_by_name": True}


class ValidationResult(BaseModel):
    """Result of validating a value-set against a compiled schema."""

    success: bool = Field(..., description="Whether the data is valid")
    data: dict[str, Any] | None = Field(
        default=None, description="Validated/coerced data when successful"
    )
    errors: list[FieldError] = Field(
        default_factory=list, description="Errors in field declaration order"
    )

    @classmethod
    def ok(cls, data: dict[str, Any]) -> "ValidationResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, errors: list[FieldError]) -> "ValidationResult":
        return cls(success=False, errors=errors)

    @property
    def error_count(self) -> int:
        """Get the number of validation errors."""
        return len(self.errors)

    def get_field_errors(self, field_id: str) -> list[FieldError]:
        """Get all errors for a specific field."""
        return [e for e in self.errors if e.field_id == field_id]

    def group_errors_by_field(self) -> dict[str, list[FieldError]]:
        result: dict[str, list[FieldError]] = {}
        for error in self.errors:
            result.setdefault(error.field_id, []).append(error)
        return result

    def to_error_dict(self) -> dict[str, list[str]]:
        """Convert errors to a dict mapping field ids to error messages."""
        result: dict[str, list[str]] = {}
        for error in self.errors:
            if error.field_id not in result:
                result[error.field_id] = []
            result[error.field_id].append(error.message)
        return result
