"""Field value with source tracking."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class FieldSource(str, Enum):
    """Where a field's current value came from."""

    DEFAULT = "default"  # Declared default (install/reset)
    LOCAL = "local"  # Written by the caller
    COMPUTED = "computed"  # Derived through compute_fn
    DRAFT = "draft"  # Restored from a persisted draft
    CLEARED = "cleared"  # Nulled by clear()


@dataclass
class FieldValue:
    """A single field's value with provenance and last validation result.

    Attributes:
        name: The field name
        value: The current value (any kind; may be None)
        source: Where this value came from
        validation_error: Message from the last validation pass, if any
    """

    name: str
    value: Any = None
    source: FieldSource = FieldSource.DEFAULT
    validation_error: Optional[str] = None

    def is_default(self) -> bool:
        return self.source == FieldSource.DEFAULT

    def is_computed(self) -> bool:
        return self.source == FieldSource.COMPUTED

    def assign(self, value: Any, source: FieldSource) -> None:
        self.value = value
        self.source = source

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "value": self.value,
            "source": self.source.value,
            "validation_error": self.validation_error,
        }

    def __str__(self) -> str:
        marker = "" if self.source == FieldSource.LOCAL else f"({self.source.value})"
        return f"{self.name}={self.value!r} {marker}".strip()
