"""Conditional field visibility.

Visibility is a pure function of the current value map and a field's own
``visible_when`` list: every condition must hold (logical AND) and an empty
list means always visible. Evaluation never raises on mismatched kinds; a
clause that cannot be evaluated is false.

Hidden fields keep their values; hiding is presentation only.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from forms.lib.values import as_number, as_text, is_empty, values_equal
from forms.models.descriptors import Condition, ConditionOperator, FieldDescriptor

__all__ = ["evaluate_condition", "is_visible", "visible_fields"]


def evaluate_condition(condition: Condition, values: Mapping[str, Any]) -> bool:
    """Evaluate one condition against the current values."""
    actual = values.get(condition.field_name)
    expected = condition.value
    op = condition.operator

    if op == ConditionOperator.EQUALS:
        return values_equal(actual, expected)
    if op == ConditionOperator.NOT_EQUALS:
        return not values_equal(actual, expected)
    if op == ConditionOperator.CONTAINS:
        text = as_text(actual)
        if text is None or expected is None:
            return False
        return str(expected) in text
    if op in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
        left = as_number(actual)
        right = as_number(expected)
        if left is None or right is None:
            return False
        return left > right if op == ConditionOperator.GREATER_THAN else left < right
    if op == ConditionOperator.IS_EMPTY:
        return is_empty(actual)
    if op == ConditionOperator.IS_NOT_EMPTY:
        return not is_empty(actual)
    return False


def is_visible(field: FieldDescriptor, values: Mapping[str, Any]) -> bool:
    """True when every ``visible_when`` condition holds (or there are none)."""
    return all(evaluate_condition(c, values) for c in field.visible_when)


def visible_fields(
    fields: Iterable[FieldDescriptor], values: Mapping[str, Any]
) -> List[FieldDescriptor]:
    return [f for f in fields if is_visible(f, values)]
