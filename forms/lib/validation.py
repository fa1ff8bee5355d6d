"""Validation orchestration.

Runs per-field validator chains (first failure wins), skips hidden fields,
records results on the store, and decides when automatic passes happen
according to the active ``ValidationMode``.

Mode behavior:
    on_change  validate each written field (plus the computed fields the
               write changed) as part of the write
    debounce   collect touched fields; validate them once after the window
               closes, restarting the window on every new write
    on_next / on_exit / manual
               no automatic pass on write; callers (the wizard or the host)
               run ``validate_fields``/``validate_section`` explicitly
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from forms.lib.store import FieldStore
from forms.lib.timers import DebounceTimer, Scheduler
from forms.lib.validators import run_validators
from forms.lib.visibility import is_visible
from forms.models.descriptors import FieldDescriptor, FormDescriptor
from forms.models.state import ValidationMode

logger = logging.getLogger(__name__)

__all__ = ["ValidationEngine"]

ResultsCallback = Callable[[Mapping[str, Optional[str]]], None]


class ValidationEngine:
    """Validation for one installed descriptor.

    Args:
        descriptor: The installed form
        store: Value store the results are recorded on
        mode: Active timing mode
        scheduler: Used by ``debounce`` mode
        debounce_seconds: Debounce window
        on_results: Called with ``{field: error or None}`` after every pass
    """

    def __init__(
        self,
        descriptor: FormDescriptor,
        store: FieldStore,
        mode: ValidationMode = ValidationMode.ON_NEXT,
        scheduler: Optional[Scheduler] = None,
        debounce_seconds: float = 0.3,
        on_results: Optional[ResultsCallback] = None,
    ):
        self._descriptor = descriptor
        self._store = store
        self._fields: Dict[str, FieldDescriptor] = {f.name: f for f in descriptor.iter_fields()}
        self._mode = mode
        self._on_results = on_results
        self._touched: Dict[str, None] = {}
        self._debounce: Optional[DebounceTimer] = None
        if mode == ValidationMode.DEBOUNCE:
            self._debounce = DebounceTimer(debounce_seconds, self._run_debounced, scheduler)

    @property
    def mode(self) -> ValidationMode:
        return self._mode

    @property
    def pending(self) -> bool:
        """True while a debounced pass is waiting for its window to close."""
        return self._debounce is not None and self._debounce.pending

    # Explicit passes

    def validate_field(self, name: str, values: Optional[Mapping[str, object]] = None) -> Optional[str]:
        """Validate one field and record the result; hidden fields pass."""
        f = self._fields[name]
        current = values if values is not None else self._store.get_all()
        if is_visible(f, current):
            error = run_validators(f.validators, self._store.get(name))
        else:
            error = None
        self._store.set_error(name, error)
        return error

    def validate_fields(self, names: Iterable[str]) -> Dict[str, Optional[str]]:
        """Validate the named fields against one snapshot of values."""
        values = self._store.get_all()
        results = {name: self.validate_field(name, values) for name in names}
        failed = [n for n, e in results.items() if e is not None]
        logger.debug(
            "Validated %d field(s), %d failed%s",
            len(results),
            len(failed),
            f": {', '.join(failed)}" if failed else "",
        )
        if results and self._on_results is not None:
            self._on_results(results)
        return results

    def validate_all(self) -> bool:
        """Validate every field; True when all visible fields pass."""
        results = self.validate_fields(self._fields)
        return all(e is None for e in results.values())

    def validate_section(self, index: int) -> bool:
        """Validate one top-level section (a flat form is section 0).

        Fields waiting on a debounced pass are folded into this one, so
        they are validated exactly once.
        """
        names = self.section_fields(index)
        extra = [n for n in self._touched if n not in names and n in self._fields]
        self.cancel()
        results = self.validate_fields(names + extra)
        return all(results[n] is None for n in names)

    def section_fields(self, index: int) -> List[str]:
        return self._descriptor.section(index).field_names()

    def is_valid(self, names: Optional[Iterable[str]] = None) -> bool:
        """Gate on recorded results without running validators.

        Hidden fields never block, even if an old error is still recorded.
        """
        values = self._store.get_all()
        for name in names if names is not None else self._fields:
            if self._store.get_error(name) is None:
                continue
            if is_visible(self._fields[name], values):
                return False
        return True

    # Automatic passes

    def on_change(self, changed: Iterable[str]) -> None:
        """Hook called by the controller after every effective write."""
        changed = list(changed)
        if not changed:
            return
        if self._mode == ValidationMode.ON_CHANGE:
            self.validate_fields(changed)
        elif self._mode == ValidationMode.DEBOUNCE and self._debounce is not None:
            self._touched.update(dict.fromkeys(changed))
            self._debounce.trigger()

    def flush(self) -> bool:
        """Run a pending debounced pass now; True if one ran."""
        return self._debounce is not None and self._debounce.flush()

    def cancel(self) -> None:
        """Drop a pending debounced pass."""
        if self._debounce is not None:
            self._debounce.cancel()
        self._touched.clear()

    def _run_debounced(self) -> None:
        touched = [n for n in self._touched if n in self._fields]
        self._touched.clear()
        if touched:
            self.validate_fields(touched)
