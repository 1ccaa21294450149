"""
Compiled schema artifact.

A CompiledSchema is published into the compiler cache and shared between
every caller compiling a structurally identical form, so it is immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from schema_forms.models.field_definitions import FieldCondition, FieldType

if TYPE_CHECKING:
    from schema_forms.rules import FieldRule


@dataclass(frozen=True)
class CompiledField:
    """One field's composed rule plus its required-if predicate."""

    field_id: str
    name: str
    field_type: FieldType
    rule: FieldRule
    required: bool
    condition: FieldCondition | None = None
    has_default: bool = False
    default: Any = None

    @property
    def is_conditional(self) -> bool:
        return self.condition is not None


@dataclass(frozen=True)
class CompiledSchema:
    """
    Validation artifact for one FormMetadata shape.

    Attributes:
        cache_key: Content hash of the structural parts of the metadata.
        version: Metadata shape version.
        fields: Compiled fields in declaration order.
        dependents: Field id -> ids of fields whose condition references it.
    """

    cache_key: str
    version: str
    fields: tuple[CompiledField, ...]
    dependents: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def field_by_id(self, field_id: str) -> CompiledField | None:
        for compiled in self.fields:
            if compiled.field_id == field_id:
                return compiled
        return None

    def field_by_name(self, name: str) -> CompiledField | None:
        for compiled in self.fields:
            if compiled.name == name:
                return compiled
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def conditional_field_ids(self) -> list[str]:
        """Ids of fields whose requiredness is resolved per validation call."""
        return [f.field_id for f in self.fields if f.is_conditional]

    @property
    def has_async_rules(self) -> bool:
        return any(f.rule.async_rules for f in self.fields)

    def dependents_of(self, field_id: str) -> tuple[str, ...]:
        return self.dependents.get(field_id, ())
