"""Data models for form descriptors and live form state."""

from forms.models.descriptors import (
    ComputeFn,
    Condition,
    ConditionOperator,
    FieldDescriptor,
    FieldKind,
    FieldOption,
    FormDescriptor,
    Validator,
)
from forms.models.field_value import FieldSource, FieldValue
from forms.models.state import FormState, ValidationMode

__all__ = [
    "ComputeFn",
    "Condition",
    "ConditionOperator",
    "FieldDescriptor",
    "FieldKind",
    "FieldOption",
    "FieldSource",
    "FieldValue",
    "FormDescriptor",
    "FormState",
    "ValidationMode",
    "Validator",
]
