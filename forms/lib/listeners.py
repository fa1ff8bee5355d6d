"""Subscriber lists for field, form and state changes.

Dispatch iterates a copy of the subscriber list taken when the dispatch
starts. A listener may subscribe or unsubscribe anyone (itself included)
while it runs; the change applies from the next dispatch on. A listener
that raises is logged and the remaining listeners still run.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from forms.models.state import FormState

logger = logging.getLogger(__name__)

__all__ = [
    "FieldListener",
    "FormListener",
    "StateListener",
    "ValidationListener",
    "Watcher",
    "ListenerRegistry",
]

FieldListener = Callable[[str, Any], None]
FormListener = Callable[[Dict[str, Any]], None]
StateListener = Callable[[FormState], None]
ValidationListener = Callable[[Dict[str, Optional[str]]], None]
Watcher = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class ListenerRegistry:
    """Per-controller subscriber lists; never shared between controllers."""

    def __init__(self) -> None:
        self._field: List[FieldListener] = []
        self._form: List[FormListener] = []
        self._state: List[StateListener] = []
        self._validation: List[ValidationListener] = []
        self._watchers: Dict[str, List[Watcher]] = {}

    # Subscription

    def add_field_listener(self, callback: FieldListener) -> Unsubscribe:
        return self._add(self._field, callback)

    def remove_field_listener(self, callback: FieldListener) -> None:
        self._remove(self._field, callback)

    def add_form_listener(self, callback: FormListener) -> Unsubscribe:
        return self._add(self._form, callback)

    def remove_form_listener(self, callback: FormListener) -> None:
        self._remove(self._form, callback)

    def add_state_listener(self, callback: StateListener) -> Unsubscribe:
        return self._add(self._state, callback)

    def remove_state_listener(self, callback: StateListener) -> None:
        self._remove(self._state, callback)

    def add_validation_listener(self, callback: ValidationListener) -> Unsubscribe:
        """Called with {field: error or None} after each automatic or explicit pass."""
        return self._add(self._validation, callback)

    def remove_validation_listener(self, callback: ValidationListener) -> None:
        self._remove(self._validation, callback)

    def watch(self, name: str, callback: Watcher) -> Unsubscribe:
        """Subscribe to one field's value; returns an unsubscribe callable."""
        return self._add(self._watchers.setdefault(name, []), callback)

    def clear(self) -> None:
        """Drop every subscriber."""
        self._field.clear()
        self._form.clear()
        self._state.clear()
        self._validation.clear()
        self._watchers.clear()

    def counts(self) -> Dict[str, int]:
        return {
            "field": len(self._field),
            "form": len(self._form),
            "state": len(self._state),
            "validation": len(self._validation),
            "watchers": sum(len(w) for w in self._watchers.values()),
        }

    # Dispatch

    def notify_field(self, name: str, value: Any) -> None:
        for callback in list(self._field):
            self._call(callback, "field", name, value)
        for watcher in list(self._watchers.get(name, ())):
            self._call(watcher, f"watcher[{name}]", value)

    def notify_form(self, values: Mapping[str, Any]) -> None:
        for callback in list(self._form):
            # Each listener gets its own copy
            self._call(callback, "form", dict(values))

    def notify_state(self, state: FormState) -> None:
        for callback in list(self._state):
            self._call(callback, "state", state)

    def notify_validation(self, results: Mapping[str, Optional[str]]) -> None:
        for callback in list(self._validation):
            self._call(callback, "validation", dict(results))

    # Internals

    @staticmethod
    def _add(listeners: List[Callable[..., None]], callback: Callable[..., None]) -> Unsubscribe:
        if callback not in listeners:
            listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    @staticmethod
    def _remove(listeners: List[Callable[..., None]], callback: Callable[..., None]) -> None:
        if callback in listeners:
            listeners.remove(callback)

    @staticmethod
    def _call(callback: Callable[..., None], kind: str, *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.warning("%s listener %r failed: %s", kind, callback, e, exc_info=True)
