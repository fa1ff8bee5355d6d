"""Form lifecycle and validation timing enums."""

from __future__ import annotations

from enum import Enum


class FormState(str, Enum):
    """Single authoritative lifecycle state of a form controller."""

    PRISTINE = "pristine"  # Values equal the installed snapshot
    DIRTY = "dirty"  # Changed since install/reset/submit
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


class ValidationMode(str, Enum):
    """When validators run automatically."""

    ON_NEXT = "on_next"
    ON_CHANGE = "on_change"
    DEBOUNCE = "debounce"
    ON_EXIT = "on_exit"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: "str | ValidationMode") -> "ValidationMode":
        """Accept enum members, values, names, or camelCase aliases."""
        if isinstance(value, cls):
            return value
        # "onChange", "on-change" and "ON_CHANGE" all collapse to "onchange"
        compact = str(value).strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value.replace("_", "") == compact:
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid validation mode '{value}'. Must be one of: {valid}")
