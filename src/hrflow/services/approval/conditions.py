"""Workflow condition evaluation.

Conditions are a conjunction of ``{field, operator, value}`` predicates over
the request attributes. ``field`` is a dotted path into nested mappings.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from hrflow.services.approval.schemas import ConditionOperator, WorkflowCondition

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def resolve_path(attributes: Mapping[str, Any], path: str) -> Any:
    """Look up a dotted path, returning ``MISSING`` when any segment is absent."""
    current: Any = attributes
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return MISSING
        current = current[part]
    return current


def _as_number(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            return None
    return None


def _coerce_pair(actual: Any, expected: Any) -> tuple[Any, Any]:
    """Compare numerically when both sides read as numbers."""
    left, right = _as_number(actual), _as_number(expected)
    if left is not None and right is not None:
        return left, right
    return actual, expected


def _equals(actual: Any, expected: Any) -> bool:
    left, right = _coerce_pair(actual, expected)
    return left == right


def _member(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple, set, frozenset)):
        return False
    return any(_equals(actual, item) for item in expected)


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return isinstance(expected, str) and expected in actual
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(_equals(item, expected) for item in actual)
    if isinstance(actual, Mapping):
        return expected in actual
    return False


def evaluate_condition(
    condition: WorkflowCondition, attributes: Mapping[str, Any]
) -> bool:
    """Evaluate one condition against the request attributes.

    A missing field fails every operator except ``not_equals`` (holds unless
    the expected value is null) and ``not_in`` (holds for a list operand).
    Incomparable operands make the condition false.
    """
    actual = resolve_path(attributes, condition.field)
    operator = condition.operator
    expected = condition.value

    if actual is MISSING:
        if operator == ConditionOperator.NOT_EQUALS:
            return expected is not None
        if operator == ConditionOperator.NOT_IN:
            return isinstance(expected, list)
        return False

    try:
        if operator == ConditionOperator.EQUALS:
            return _equals(actual, expected)
        if operator == ConditionOperator.NOT_EQUALS:
            return not _equals(actual, expected)
        if operator == ConditionOperator.IN:
            return _member(actual, expected)
        if operator == ConditionOperator.NOT_IN:
            return isinstance(expected, list) and not _member(actual, expected)
        if operator == ConditionOperator.CONTAINS:
            return _contains(actual, expected)
        if operator == ConditionOperator.NOT_CONTAINS:
            return not _contains(actual, expected)

        left, right = _coerce_pair(actual, expected)
        if operator == ConditionOperator.GREATER_THAN:
            return left > right
        if operator == ConditionOperator.LESS_THAN:
            return left < right
        if operator == ConditionOperator.GREATER_THAN_OR_EQUAL:
            return left >= right
        if operator == ConditionOperator.LESS_THAN_OR_EQUAL:
            return left <= right
    except TypeError:
        logger.debug(
            f"Incomparable operands for {condition.field} {operator.value}: "
            f"{actual!r} vs {expected!r}"
        )
        return False

    return False


def evaluate_conditions(
    conditions: Iterable[WorkflowCondition], attributes: Mapping[str, Any]
) -> bool:
    """All conditions must hold; an empty set always matches."""
    return all(evaluate_condition(c, attributes) for c in conditions)
