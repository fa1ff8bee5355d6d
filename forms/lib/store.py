"""Field value store.

Holds one ``FieldValue`` record per declared field (in declaration order)
plus the initial snapshot recorded at install time. The store knows nothing
about computed fields, validation timing or listeners; the controller
drives those and uses the store as its single source of truth.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from forms.lib.errors import FieldError
from forms.lib.values import values_equal
from forms.models.descriptors import FieldDescriptor
from forms.models.field_value import FieldSource, FieldValue

__all__ = ["FieldStore"]


class FieldStore:
    """Current values and initial snapshot for one installed descriptor."""

    def __init__(self, fields: Iterable[FieldDescriptor] = ()):
        self._records: Dict[str, FieldValue] = {}
        self._initial: Dict[str, Any] = {}
        self.install(fields)

    def install(self, fields: Iterable[FieldDescriptor]) -> None:
        """Wipe prior state and seed every field with its default."""
        self._records = {}
        self._initial = {}
        for f in fields:
            self._initial[f.name] = copy.deepcopy(f.default)
            self._records[f.name] = FieldValue(name=f.name, value=copy.deepcopy(f.default))

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def names(self) -> List[str]:
        return list(self._records)

    @property
    def initial(self) -> Dict[str, Any]:
        """Copy of the snapshot captured at install time."""
        return copy.deepcopy(self._initial)

    def record(self, name: str) -> FieldValue:
        try:
            return self._records[name]
        except KeyError:
            raise FieldError(f"Unknown field '{name}'", field=name) from None

    def get(self, name: str) -> Any:
        return self.record(name).value

    def get_all(self) -> Dict[str, Any]:
        """Snapshot copy of the value map; mutating it never touches the store."""
        return {name: r.value for name, r in self._records.items()}

    def write(self, name: str, value: Any, source: FieldSource = FieldSource.LOCAL) -> bool:
        """Store ``value``; returns False (and stores nothing) when unchanged."""
        record = self.record(name)
        if values_equal(record.value, value):
            return False
        record.assign(value, source)
        return True

    def snapshot(self) -> Dict[str, Tuple[Any, FieldSource, Optional[str]]]:
        """Value, source and validation error of every field, for ``restore``."""
        return {name: (r.value, r.source, r.validation_error) for name, r in self._records.items()}

    def restore(self, snapshot: Dict[str, Tuple[Any, FieldSource, Optional[str]]]) -> None:
        """Put back the records captured by ``snapshot``."""
        for name, (value, source, error) in snapshot.items():
            record = self.record(name)
            record.assign(value, source)
            record.validation_error = error

    def reset(self) -> List[str]:
        """Restore the initial snapshot; returns the names whose value changed."""
        changed = []
        for name, record in self._records.items():
            initial = copy.deepcopy(self._initial[name])
            if not values_equal(record.value, initial):
                changed.append(name)
            record.assign(initial, FieldSource.DEFAULT)
            record.validation_error = None
        return changed

    def clear(self) -> List[str]:
        """Set every field to None; returns the names whose value changed."""
        changed = []
        for name, record in self._records.items():
            if record.value is not None:
                changed.append(name)
            record.assign(None, FieldSource.CLEARED)
            record.validation_error = None
        return changed

    # Validation results

    def set_error(self, name: str, error: Optional[str]) -> None:
        self.record(name).validation_error = error

    def get_error(self, name: str) -> Optional[str]:
        return self.record(name).validation_error

    def errors(self) -> Dict[str, str]:
        """Current field -> message map (fields without an error omitted)."""
        return {
            name: r.validation_error
            for name, r in self._records.items()
            if r.validation_error is not None
        }

    def clear_errors(self) -> None:
        for record in self._records.values():
            record.validation_error = None

    def __repr__(self) -> str:
        return f"FieldStore({', '.join(str(r) for r in self._records.values())})"
