"""Kind-aware accessors for untyped field values.

Every accessor fails closed: a value of the wrong kind yields ``None`` (or
``False`` for predicates) instead of raising. No cross-kind coercion is
performed anywhere: ``"1"`` is text, not a number, and ``True`` is a
boolean, not the integer 1.
"""

from __future__ import annotations

from datetime import date, datetime
from numbers import Real
from typing import Any, Optional, Union

from forms.models.descriptors import FieldKind

__all__ = [
    "values_equal",
    "is_number",
    "as_number",
    "as_text",
    "as_date",
    "as_bool",
    "is_empty",
    "matches_kind",
]

Number = Union[int, float]


def values_equal(left: Any, right: Any) -> bool:
    """Exact equality: same type and equal value (identity short-circuits)."""
    if left is right:
        return True
    if type(left) is not type(right):
        return False
    try:
        return bool(left == right)
    except Exception:
        # Exotic __eq__ implementations (e.g. array-likes) compare unequal
        return False


def is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def as_number(value: Any) -> Optional[Number]:
    return value if is_number(value) else None


def as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def as_date(value: Any) -> Optional[date]:
    """Return ``date``/``datetime`` values as-is; anything else is no match."""
    return value if isinstance(value, (date, datetime)) else None


def as_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def is_empty(value: Any) -> bool:
    """None, empty string, or an empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def matches_kind(kind: FieldKind, value: Any) -> bool:
    """Whether ``value`` is an acceptable payload for a field of ``kind``.

    ``None`` is acceptable for every kind; custom fields accept anything.
    """
    if value is None or kind in (FieldKind.CUSTOM, FieldKind.CHOICE):
        return True
    if kind == FieldKind.TEXT:
        return isinstance(value, str)
    if kind == FieldKind.DATE:
        return as_date(value) is not None
    if kind == FieldKind.BOOLEAN:
        return isinstance(value, bool)
    return False
