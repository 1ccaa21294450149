"""
Condition Evaluator.

Evaluates field conditions against the current value-set (keyed by field
id) and analyses the dependency graph they form. A referenced field that
is missing or None counts as empty: every operator returns False for it
except ``empty``.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from schema_forms.errors import CircularConditionError
from schema_forms.models.field_definitions import (
    ConditionLogic,
    ConditionOperator,
    FieldCondition,
    FieldDefinition,
)
from schema_forms.registry import CoercionError, coerce_boolean, coerce_number
from schema_forms.rules import is_empty


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value: Any) -> float | None:
    try:
        return coerce_number(value)
    except CoercionError:
        return None


def _loose_equals(actual: Any, expected: Any) -> bool:
    """
    Compare with the actual value coerced toward the expected value's type.

    bool: boolean coercion ("yes", "1", 1 ...); number: numeric parse;
    string: ``str()`` of scalars; list: element-wise.
    """
    if isinstance(expected, bool):
        try:
            return coerce_boolean(actual) is expected
        except CoercionError:
            return False
    if _is_number(expected):
        number = _as_number(actual)
        return number is not None and number == expected
    if isinstance(expected, str):
        if isinstance(actual, (str, int, float)):
            if isinstance(actual, bool):
                return str(actual).lower() == expected.lower()
            return str(actual) == expected
        return False
    if isinstance(expected, list):
        if not isinstance(actual, Sequence) or isinstance(actual, str):
            return False
        return len(actual) == len(expected) and all(
            _loose_equals(a, e) for a, e in zip(actual, expected)
        )
    return actual == expected


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return expected is not None and str(expected) in actual
    if isinstance(actual, Sequence):
        return any(_loose_equals(item, expected) for item in actual)
    return False


def _compare(actual: Any, expected: Any) -> int | None:
    """Three-way comparison, numeric first, then lexical for two strings."""
    if _is_number(expected) or _is_number(actual):
        left, right = _as_number(actual), _as_number(expected)
        if left is None or right is None:
            return None
        return (left > right) - (left < right)
    if isinstance(actual, str) and isinstance(expected, str):
        return (actual > expected) - (actual < expected)
    return None


def _member_of(actual: Any, expected: Any) -> bool | None:
    if not isinstance(expected, list):
        return None
    return any(_loose_equals(actual, candidate) for candidate in expected)


def evaluate_clause(
    operator: ConditionOperator,
    actual: Any,
    expected: Any,
    present: bool = True,
) -> bool:
    """Evaluate one ``actual <operator> expected`` clause."""
    if operator == ConditionOperator.EMPTY:
        return not present or is_empty(actual)
    if operator == ConditionOperator.NOT_EMPTY:
        return present and not is_empty(actual)
    if not present or actual is None:
        return False

    if operator == ConditionOperator.EQUALS:
        return _loose_equals(actual, expected)
    if operator == ConditionOperator.NOT_EQUALS:
        return not _loose_equals(actual, expected)
    if operator == ConditionOperator.CONTAINS:
        return _contains(actual, expected)
    if operator == ConditionOperator.NOT_CONTAINS:
        return not _contains(actual, expected)
    if operator == ConditionOperator.STARTS_WITH:
        return isinstance(actual, str) and isinstance(expected, str) and actual.startswith(expected)
    if operator == ConditionOperator.ENDS_WITH:
        return isinstance(actual, str) and isinstance(expected, str) and actual.endswith(expected)
    if operator == ConditionOperator.GREATER_THAN:
        result = _compare(actual, expected)
        return result is not None and result > 0
    if operator == ConditionOperator.LESS_THAN:
        result = _compare(actual, expected)
        return result is not None and result < 0
    if operator == ConditionOperator.IN:
        return _member_of(actual, expected) is True
    if operator == ConditionOperator.NOT_IN:
        return _member_of(actual, expected) is False
    raise ValueError(f"Unsupported condition operator: {operator}")


def evaluate(condition: FieldCondition, values: Mapping[str, Any]) -> bool:
    """
    Evaluate a (possibly composite) condition.

    The primary clause comes first, then nested conditions left to right.
    AND stops at the first False, OR at the first True.

    Args:
        condition: The condition to evaluate.
        values: Current values keyed by field id.

    Returns:
        bool: Whether the condition holds.
    """
    use_or = condition.logic == ConditionLogic.OR

    def parts():
        if condition.has_clause:
            present = condition.field_id in values
            yield lambda: evaluate_clause(
                condition.operator,
                values.get(condition.field_id),
                condition.value,
                present=present,
            )
        for nested in condition.conditions:
            yield lambda nested=nested: evaluate(nested, values)

    seen_any = False
    for part in parts():
        seen_any = True
        result = part()
        if use_or and result:
            return True
        if not use_or and not result:
            return False
    if not seen_any:
        return True
    return not use_or


def referenced_field_ids(condition: FieldCondition) -> list[str]:
    """All field ids a condition reads, nested ones included, without duplicates."""
    found: list[str] = []

    def _walk(node: FieldCondition) -> None:
        if node.field_id is not None and node.field_id not in found:
            found.append(node.field_id)
        for nested in node.conditions:
            _walk(nested)

    _walk(condition)
    return found


def build_dependency_graph(fields: Sequence[FieldDefinition]) -> dict[str, list[str]]:
    """Map each conditional field id to the ids its condition references."""
    graph: dict[str, list[str]] = {}
    for field in fields:
        if field.condition is not None:
            graph[field.id] = referenced_field_ids(field.condition)
    return graph


def build_dependents(fields: Sequence[FieldDefinition]) -> dict[str, list[str]]:
    """Reverse of the dependency graph: field id -> fields whose condition reads it."""
    dependents: dict[str, list[str]] = {}
    for field_id, references in build_dependency_graph(fields).items():
        for reference in references:
            dependents.setdefault(reference, []).append(field_id)
    return dependents


def find_cycle(graph: Mapping[str, Sequence[str]]) -> list[str] | None:
    """
    Depth-first search for a cycle.

    Uses an explicit stack, so long dependency chains do not hit the
    recursion limit.

    Returns:
        The cycle as a list of ids starting and ending with the same id,
        or None when the graph is acyclic.
    """
    visited: set[str] = set()

    for start in graph:
        if start in visited:
            continue
        visited.add(start)
        path = [start]
        on_path = {start}
        pending = [iter(graph.get(start, ()))]
        while pending:
            neighbour = next(pending[-1], None)
            if neighbour is None:
                pending.pop()
                on_path.discard(path.pop())
                continue
            if neighbour in on_path:
                return path[path.index(neighbour):] + [neighbour]
            if neighbour in visited:
                continue
            visited.add(neighbour)
            path.append(neighbour)
            on_path.add(neighbour)
            pending.append(iter(graph.get(neighbour, ())))
    return None


def detect_cycles(fields: Sequence[FieldDefinition]) -> None:
    """
    Reject forms whose conditions depend on each other in a loop.

    Raises:
        CircularConditionError: With the offending cycle.
    """
    cycle = find_cycle(build_dependency_graph(fields))
    if cycle:
        path = " -> ".join(cycle)
        raise CircularConditionError(f"Circular condition dependency: {path}", cycle=cycle)


def compute_visibility(
    fields: Sequence[FieldDefinition],
    values: Mapping[str, Any],
) -> dict[str, bool]:
    """Visibility of every field for the given values (keyed by field id)."""
    return {
        field.id: field.condition is None or evaluate(field.condition, values)
        for field in fields
    }
