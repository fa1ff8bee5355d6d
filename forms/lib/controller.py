"""Single-form controller.

``FormController`` owns one installed ``FormDescriptor`` and everything
derived from it: the value store, the dependency graph, the validation
engine, the listener registry and the autosave timer. Nothing is shared
between controllers.

A write runs to completion before ``set`` returns:

    1. mask text input, then check the value against the field's kind
    2. stop if the value is unchanged (exact equality)
    3. store the value
    4. re-derive dependent computed fields in topological order
       (a failing compute_fn rolls the whole write back)
    5. run validation the active mode asks for
    6. pristine/submitted -> dirty (state listeners)
    7. field listeners and watchers for every changed field
    8. form listeners
    9. restart the autosave window

Example:
    >>> controller = FormController(signup_form, validation_mode="on_change")
    >>> controller.set("first_name", "Ada")
    >>> controller.get("full_name")
    'Ada'
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from forms.lib.drafts import DraftStore, create_draft_store
from forms.lib.errors import ConfigError, DisposedError, FieldError, SubmissionError, ValidationError
from forms.lib.graph import DependencyGraph
from forms.lib.listeners import (
    FieldListener,
    FormListener,
    ListenerRegistry,
    StateListener,
    ValidationListener,
    Watcher,
)
from forms.lib.logging import get_form_logger
from forms.lib.masks import apply_mask
from forms.lib.settings import EngineSettings
from forms.lib.store import FieldStore
from forms.lib.timers import AsyncioScheduler, DebounceTimer, Scheduler
from forms.lib.validate import validate_and_raise
from forms.lib.validation import ValidationEngine
from forms.lib.values import matches_kind, values_equal
from forms.lib.visibility import is_visible
from forms.models.descriptors import FieldDescriptor, FieldKind, FormDescriptor
from forms.models.field_value import FieldSource
from forms.models.state import FormState, ValidationMode

logger = logging.getLogger(__name__)

__all__ = ["FormController", "SubmitResult", "SubmitFn", "INVALID_FORM_MESSAGE"]

INVALID_FORM_MESSAGE = "Please fix the errors in the form"

SubmitFn = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]


@dataclass
class SubmitResult:
    """Outcome of ``FormController.submit``.

    ``data`` is what the submit callable returned, or the submitted form
    data when it returned nothing (or there was no callable).
    """

    success: bool
    data: Any = None
    errors: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "errors": self.errors,
            "error": self.error,
        }


class FormController:
    """Reactive state engine for one form.

    Args:
        descriptor: Form to install immediately (or call ``set_config`` later)
        settings: Engine settings; defaults come from ``EngineSettings()``
        draft_store: Draft backend; built from settings on first use
        scheduler: Timer source for debounce and autosave
        validation_mode: Overrides ``settings.validation_mode``
    """

    def __init__(
        self,
        descriptor: Optional[FormDescriptor] = None,
        *,
        settings: Optional[EngineSettings] = None,
        draft_store: Optional[DraftStore] = None,
        scheduler: Optional[Scheduler] = None,
        validation_mode: Union[ValidationMode, str, None] = None,
    ):
        self.settings = settings or EngineSettings()
        self._draft_store = draft_store
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._mode = (
            ValidationMode.parse(validation_mode)
            if validation_mode is not None
            else self.settings.validation_mode
        )
        self._listeners = ListenerRegistry()
        self._log = get_form_logger(__name__)

        self._descriptor: Optional[FormDescriptor] = None
        self._fields: Dict[str, FieldDescriptor] = {}
        self._store = FieldStore()
        self._graph: Optional[DependencyGraph] = None
        self._validation: Optional[ValidationEngine] = None

        self._state = FormState.PRISTINE
        self._form_error: Optional[str] = None
        self._disposed = False

        self._autosave: Optional[DebounceTimer] = None
        self._autosave_task: Optional["asyncio.Task[Any]"] = None
        self._autosave_generation = 0
        self._autosave_lock: Optional[asyncio.Lock] = None

        if descriptor is not None:
            self.set_config(descriptor)

    # Configuration

    def set_config(self, descriptor: FormDescriptor) -> None:
        """Install a descriptor, wiping all prior values and caches.

        Everything is checked before any state changes, so a rejected
        descriptor leaves the controller exactly as it was.

        Raises:
            ConfigError: If the descriptor is structurally invalid or its
                computed fields form a cycle
        """
        self._check_alive()
        validate_and_raise(descriptor)
        graph = DependencyGraph(descriptor.iter_fields())

        if self._validation is not None:
            self._validation.cancel()
        self._cancel_autosave()

        self._descriptor = descriptor
        self._fields = {f.name: f for f in descriptor.iter_fields()}
        self._store = FieldStore(self._fields.values())
        self._graph = graph
        self._validation = ValidationEngine(
            descriptor,
            self._store,
            mode=self._mode,
            scheduler=self._scheduler,
            debounce_seconds=self.settings.debounce_seconds,
            on_results=self._listeners.notify_validation,
        )
        self._autosave = (
            DebounceTimer(
                self.settings.autosave_delay_seconds, self._fire_autosave, self._scheduler
            )
            if descriptor.autosave
            else None
        )
        self._form_error = None
        self._log.set_context(form_id=descriptor.form_id)
        self._set_state(FormState.PRISTINE)

        self._log.info(
            "Installed form %s: %d fields, %d computed, mode=%s, autosave=%s",
            descriptor.form_id or "<anonymous>",
            len(self._fields),
            len(graph),
            self._mode.value,
            descriptor.autosave,
        )

    @property
    def descriptor(self) -> FormDescriptor:
        return self._require_config()

    @property
    def form_id(self) -> Optional[str]:
        return self._descriptor.form_id if self._descriptor else None

    @property
    def validation_mode(self) -> ValidationMode:
        return self._mode

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def draft_store(self) -> DraftStore:
        if self._draft_store is None:
            self._draft_store = create_draft_store(self.settings)
        return self._draft_store

    # State

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def is_dirty(self) -> bool:
        return self._state == FormState.DIRTY

    @property
    def is_submitting(self) -> bool:
        return self._state == FormState.SUBMITTING

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def form_error(self) -> Optional[str]:
        return self._form_error

    @property
    def errors(self) -> Dict[str, str]:
        """Current field -> message map from the last validation results."""
        return self._store.errors()

    # Reads

    def get(self, name: str) -> Any:
        self._require_config()
        return self._store.get(name)

    def get_all(self) -> Dict[str, Any]:
        """Snapshot copy of every field's value, in declaration order."""
        self._require_config()
        return self._store.get_all()

    def field_names(self) -> List[str]:
        self._require_config()
        return list(self._fields)

    def get_field(self, name: str) -> FieldDescriptor:
        self._require_config()
        return self._field(name)

    def is_visible(self, name: str) -> bool:
        """Visibility from current values; unknown fields are not visible."""
        self._require_config()
        f = self._fields.get(name)
        if f is None:
            return False
        return is_visible(f, self._store.get_all())

    def visible_fields(self, section: Optional[int] = None) -> List[str]:
        descriptor = self._require_config()
        node = descriptor if section is None else descriptor.section(section)
        values = self._store.get_all()
        return [f.name for f in node.iter_fields() if is_visible(f, values)]

    def transform(self, fn: Callable[[Dict[str, Any]], Any]) -> Any:
        """Apply ``fn`` to a snapshot copy of the values."""
        return fn(self.get_all())

    # Writes

    def set(self, name: str, value: Any) -> bool:
        """Write one field.

        Returns:
            False when the value was unchanged (no propagation, no
            notification)

        Raises:
            FieldError: Unknown field, a computed field, a value that does
                not fit the field's kind, or a failing compute_fn (nothing
                is written)
        """
        self._require_config()
        self._writable(name)
        return bool(self._apply({name: value}))

    def batch_update(self, values: Mapping[str, Any]) -> List[str]:
        """Write several fields with one propagation and one form notification.

        Every name and value is checked before anything is written.

        Returns:
            Names whose value changed, computed fields included
        """
        self._require_config()
        for name in values:
            self._writable(name)
        return self._apply(values)

    def reset(self) -> None:
        """Restore the install-time snapshot and return to pristine."""
        self._require_config()
        self._validation_engine().cancel()
        self._cancel_autosave()
        changed = self._store.reset()
        self._form_error = None
        self._set_state(FormState.PRISTINE)
        self._notify_changes(changed)
        self._log.debug("Reset form (%d field(s) changed)", len(changed))

    def clear(self) -> None:
        """Set every field to None and mark the form dirty.

        Computed fields are then re-derived from the nulled inputs, so a
        ``compute_fn`` that has a value for empty input keeps showing it.

        Raises:
            FieldError: A compute_fn failed on the nulled inputs (the form
                is left as it was)
        """
        self._require_config()
        self._validation_engine().cancel()
        before = self._store.snapshot()
        self._store.clear()
        inputs = [name for name, f in self._fields.items() if not f.is_computed]
        try:
            self._propagate(inputs)
        except FieldError:
            self._store.restore(before)
            raise
        changed = [
            name for name, (value, _, _) in before.items() if not values_equal(value, self._store.get(name))
        ]
        self._set_state(FormState.DIRTY)
        self._notify_changes(changed)
        self._schedule_autosave()
        self._log.debug("Cleared form (%d field(s) changed)", len(changed))

    # Validation

    def validate(self, raise_on_invalid: bool = False) -> bool:
        """Validate every visible field now; True when all pass.

        Raises:
            ValidationError: With ``raise_on_invalid``, when any field fails
                (``errors`` carries the field -> message map)
        """
        engine = self._validation_engine()
        # A full pass supersedes a pending debounced one
        engine.cancel()
        valid = engine.validate_all()
        if not valid and raise_on_invalid:
            raise ValidationError(INVALID_FORM_MESSAGE, form_id=self.form_id, errors=self.errors)
        return valid

    def validate_field(self, name: str) -> Optional[str]:
        self._require_config()
        self._field(name)
        return self._validation_engine().validate_fields([name])[name]

    def validate_section(self, index: int) -> bool:
        """Validate one top-level section (a flat form is section 0)."""
        engine = self._validation_engine()
        try:
            return engine.validate_section(index)
        except IndexError:
            return False

    def is_valid(self, names: Optional[List[str]] = None) -> bool:
        """Gate on recorded results without re-running validators."""
        return self._validation_engine().is_valid(names)

    def flush_validation(self) -> bool:
        """Run a pending debounced validation pass now."""
        return self._validation_engine().flush()

    # Submission

    async def submit(
        self,
        on_submit: Optional[SubmitFn] = None,
        validate_first: bool = True,
        raise_on_invalid: bool = False,
    ) -> SubmitResult:
        """Validate, then hand a snapshot of the values to ``on_submit``.

        ``on_submit`` may be a plain function or a coroutine function.

        Raises:
            ValidationError: With ``raise_on_invalid``, instead of returning
                an unsuccessful result; the form is left failed either way
            SubmissionError: ``on_submit`` raised; the form is left failed
        """
        descriptor = self._require_config()

        if validate_first and not self.validate():
            self._form_error = INVALID_FORM_MESSAGE
            self._set_state(FormState.FAILED)
            self._log.info("Submission blocked: %d invalid field(s)", len(self.errors))
            if raise_on_invalid:
                raise ValidationError(
                    INVALID_FORM_MESSAGE, form_id=descriptor.form_id, errors=self.errors
                )
            return SubmitResult(success=False, errors=self.errors, error=self._form_error)

        self._form_error = None
        self._set_state(FormState.SUBMITTING)
        data = self._store.get_all()

        try:
            result: Any = None
            if on_submit is not None:
                result = on_submit(dict(data))
                if inspect.isawaitable(result):
                    result = await result
        except Exception as e:
            self._form_error = str(e)
            self._set_state(FormState.FAILED)
            self._log.error("Submission failed: %s", e)
            raise SubmissionError(
                f"Submission failed: {e}", form_id=descriptor.form_id, cause=e
            ) from e

        self._set_state(FormState.SUBMITTED)
        self._log.info("Submitted form %s", descriptor.form_id or "<anonymous>")

        if descriptor.autosave and descriptor.form_id:
            self._cancel_autosave()
            await self.draft_store.delete(descriptor.form_id)

        return SubmitResult(success=True, data=data if result is None else result)

    # Drafts

    async def save_draft(self, form_id: Optional[str] = None) -> bool:
        """Persist the current values; False if the backend failed."""
        fid = self._draft_id(form_id)
        return await self.draft_store.save(fid, self._store.get_all())

    async def load_draft(self, form_id: Optional[str] = None) -> bool:
        """Overlay a stored draft onto the current values.

        Unknown keys are ignored. Computed fields are re-derived from the
        restored inputs, and the restored fields go through the same
        validation hook as a write.

        Returns:
            True if a draft was found and applied

        Raises:
            FieldError: A stored value does not fit its field's kind, or a
                compute_fn failed; nothing is applied
        """
        fid = self._draft_id(form_id)
        data = await self.draft_store.load(fid)
        if data is None:
            return False
        # The controller may have been disposed or reconfigured while awaiting
        self._check_alive()

        unknown = [k for k in data if k not in self._fields]
        if unknown:
            self._log.debug("Ignoring unknown draft keys: %s", ", ".join(unknown))

        restored = {name: value for name, value in data.items() if name in self._fields}
        for name, value in restored.items():
            f = self._fields[name]
            if not f.is_computed:
                self._check_kind(f, value)
        changed = self._write_all(restored, FieldSource.DRAFT)

        if changed:
            self._validation_engine().on_change(changed)
            if self._state in (FormState.PRISTINE, FormState.SUBMITTED):
                self._set_state(FormState.DIRTY)
            self._notify_changes(changed)
        self._log.info("Loaded draft %s (%d field(s) changed)", fid, len(changed))
        return True

    async def has_draft(self, form_id: Optional[str] = None) -> bool:
        return await self.draft_store.has(self._draft_id(form_id))

    async def delete_draft(self, form_id: Optional[str] = None) -> bool:
        fid = self._draft_id(form_id)
        # A pending autosave would recreate the draft
        self._cancel_autosave()
        return await self.draft_store.delete(fid)

    async def flush_autosave(self) -> bool:
        """Write a pending autosave now and wait for any in-flight write.

        Returns:
            True if a pending autosave was written by this call
        """
        self._check_alive()
        task = self._autosave_task
        if task is not None and not task.done():
            await asyncio.wait([task])

        if self._autosave is None or not self._autosave.pending:
            return False
        self._autosave.cancel()
        self._autosave_generation += 1
        return await self.save_draft()

    @property
    def autosave_pending(self) -> bool:
        return self._autosave is not None and self._autosave.pending

    # Listeners

    def add_field_listener(self, callback: FieldListener) -> Callable[[], None]:
        self._check_alive()
        return self._listeners.add_field_listener(callback)

    def remove_field_listener(self, callback: FieldListener) -> None:
        self._listeners.remove_field_listener(callback)

    def add_form_listener(self, callback: FormListener) -> Callable[[], None]:
        self._check_alive()
        return self._listeners.add_form_listener(callback)

    def remove_form_listener(self, callback: FormListener) -> None:
        self._listeners.remove_form_listener(callback)

    def add_state_listener(self, callback: StateListener) -> Callable[[], None]:
        self._check_alive()
        return self._listeners.add_state_listener(callback)

    def remove_state_listener(self, callback: StateListener) -> None:
        self._listeners.remove_state_listener(callback)

    def add_validation_listener(self, callback: ValidationListener) -> Callable[[], None]:
        self._check_alive()
        return self._listeners.add_validation_listener(callback)

    def remove_validation_listener(self, callback: ValidationListener) -> None:
        self._listeners.remove_validation_listener(callback)

    def watch(self, name: str, callback: Watcher) -> Callable[[], None]:
        """Call ``callback(value)`` whenever ``name`` changes."""
        self._require_config()
        self._field(name)
        return self._listeners.watch(name, callback)

    # Lifecycle

    def dispose(self) -> None:
        """Cancel timers, drop listeners; the controller is unusable after."""
        if self._disposed:
            return
        if self._validation is not None:
            self._validation.cancel()
        self._cancel_autosave()
        self._listeners.clear()
        self._disposed = True
        self._log.debug("Disposed controller")

    # Internals

    def _check_alive(self) -> None:
        if self._disposed:
            raise DisposedError(form_id=self.form_id)

    def _require_config(self) -> FormDescriptor:
        self._check_alive()
        if self._descriptor is None:
            raise ConfigError(
                "No form configured", suggestion="Call set_config(descriptor) first."
            )
        return self._descriptor

    def _validation_engine(self) -> ValidationEngine:
        self._require_config()
        assert self._validation is not None
        return self._validation

    def _field(self, name: str) -> FieldDescriptor:
        try:
            return self._fields[name]
        except KeyError:
            raise FieldError(f"Unknown field '{name}'", form_id=self.form_id, field=name) from None

    def _writable(self, name: str) -> FieldDescriptor:
        f = self._field(name)
        if f.is_computed:
            raise FieldError(
                f"Field '{name}' is computed and cannot be set directly",
                form_id=self.form_id,
                field=name,
                suggestion=f"Set one of its inputs instead: {', '.join(f.compute_from)}",
            )
        return f

    def _check_kind(self, f: FieldDescriptor, value: Any) -> None:
        if not matches_kind(f.kind, value):
            raise FieldError(
                f"Field '{f.name}' expects a {f.kind.value} value, got {type(value).__name__}",
                form_id=self.form_id,
                field=f.name,
            )

    def _apply(self, updates: Mapping[str, Any]) -> List[str]:
        staged: Dict[str, Any] = {}
        for name, value in updates.items():
            f = self._fields[name]
            if f.mask and f.kind == FieldKind.TEXT and isinstance(value, str):
                value = apply_mask(f.mask, value)
            self._check_kind(f, value)
            staged[name] = value

        changed = self._write_all(staged, FieldSource.LOCAL)
        if not changed:
            return []

        self._validation_engine().on_change(changed)
        if self._state in (FormState.PRISTINE, FormState.SUBMITTED):
            self._set_state(FormState.DIRTY)
        self._notify_changes(changed)
        self._schedule_autosave()
        return changed

    def _write_all(self, values: Mapping[str, Any], source: FieldSource) -> List[str]:
        """Store ``values`` and re-derive dependents, all or nothing.

        A failing compute_fn puts every record back as it was before
        re-raising.

        Returns:
            Written names followed by the computed fields that changed
        """
        before = self._store.snapshot()
        written = [name for name, value in values.items() if self._store.write(name, value, source)]
        if not written:
            return []
        try:
            recomputed = self._propagate(written)
        except FieldError:
            self._store.restore(before)
            raise
        return written + [n for n in recomputed if n not in written]

    def _propagate(self, changed: List[str]) -> List[str]:
        """Re-derive computed dependents of ``changed``; returns those that changed."""
        assert self._graph is not None
        recomputed = []
        for name in self._graph.affected(changed):
            f = self._fields[name]
            assert f.compute_fn is not None
            try:
                value = f.compute_fn(self._store.get_all())
            except Exception as e:
                raise FieldError(
                    f"compute_fn for '{name}' failed: {e}",
                    form_id=self.form_id,
                    field=name,
                ) from e
            if self._store.write(name, value, FieldSource.COMPUTED):
                recomputed.append(name)
        if recomputed:
            self._log.debug("Recomputed %s", ", ".join(recomputed))
        return recomputed

    def _notify_changes(self, changed: List[str]) -> None:
        for name in changed:
            self._listeners.notify_field(name, self._store.get(name))
        self._listeners.notify_form(self._store.get_all())

    def _set_state(self, state: FormState) -> None:
        if state == self._state:
            return
        previous, self._state = self._state, state
        self._log.debug("State %s -> %s", previous.value, state.value)
        self._listeners.notify_state(state)

    def _draft_id(self, form_id: Optional[str]) -> str:
        self._require_config()
        fid = form_id or self.form_id
        if not fid:
            raise ConfigError(
                "Draft operations need a form_id",
                suggestion="Set form_id on the FormDescriptor or pass one explicitly.",
            )
        return fid

    # Autosave

    def _schedule_autosave(self) -> None:
        if self._autosave is not None:
            self._autosave.trigger()

    def cancel_autosave(self) -> None:
        """Drop a pending autosave and abandon any queued write."""
        self._cancel_autosave()

    def _cancel_autosave(self) -> None:
        if self._autosave is not None:
            self._autosave.cancel()
        # Queued writes see the bump and skip themselves
        self._autosave_generation += 1
        task = self._autosave_task
        if task is not None and not task.done():
            task.cancel()
        self._autosave_task = None

    def _fire_autosave(self) -> None:
        if self._disposed or self._descriptor is None:
            return
        self._autosave_generation += 1
        generation = self._autosave_generation
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous host: write now
            asyncio.run(self.save_draft())
            return
        self._autosave_task = loop.create_task(self._autosave_write(generation))

    async def _autosave_write(self, generation: int) -> None:
        if self._autosave_lock is None:
            self._autosave_lock = asyncio.Lock()
        async with self._autosave_lock:
            if generation != self._autosave_generation or self._disposed:
                # Superseded by a newer write, a reset or dispose
                return
            await self.save_draft()
