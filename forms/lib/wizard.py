"""Multi-step (wizard) sessions.

A ``SessionController`` drives one ``FormController`` whose descriptor is
the list of steps installed as top-level sections, so every step shares a
single value map. Navigation is a small state machine over the step index
with an implicit terminal "completed" transition:

    next()      validate the current step, ask the guard, then advance (or
                complete on the last step)
    previous()  step back (the current step is validated first in on_exit
                mode)
    go_to(i)    revisit an already-visited step at or before the current one

Every successful transition persists a draft when autosave is on; the
draft is removed after a successful completion.
"""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from forms.lib.controller import FormController, SubmitFn, SubmitResult
from forms.lib.drafts import DraftStore
from forms.lib.errors import ConfigError, DisposedError
from forms.lib.logging import get_form_logger
from forms.lib.settings import EngineSettings
from forms.lib.timers import Scheduler
from forms.models.descriptors import FormDescriptor
from forms.models.state import ValidationMode

logger = logging.getLogger(__name__)

__all__ = ["SessionController", "StepOutcome", "StepGuard"]

StepGuard = Callable[[int, Dict[str, Any]], Union[bool, Awaitable[bool]]]


class StepOutcome(str, Enum):
    """Result of ``SessionController.next``."""

    ADVANCED = "advanced"
    COMPLETED = "completed"
    INVALID = "invalid"  # Step (or, on the last step, the form) failed validation
    GUARDED = "guarded"  # Guard predicate refused

    @property
    def moved(self) -> bool:
        return self in (StepOutcome.ADVANCED, StepOutcome.COMPLETED)


class SessionController:
    """Wizard over a sequence of step descriptors.

    Args:
        steps: One FormDescriptor per step; field names are unique across all
        form_id: Draft id for the session
        autosave: Persist a draft on every transition (requires form_id)
        validation_mode: Timing mode; defaults to ``settings.validation_mode``
        guard: Optional ``(step_index, values) -> bool`` (may be async),
            consulted after the step validates
        on_complete: Submit callable run when the last step completes
        draft_store: Draft backend (see ``FormController``)
        settings: Engine settings
        scheduler: Timer source for debounce and autosave
        step_titles: Display titles; falls back to each step's ``title``

    Raises:
        ConfigError: If there are no steps, or the combined descriptor is
            invalid
    """

    def __init__(
        self,
        steps: Sequence[FormDescriptor],
        *,
        form_id: Optional[str] = None,
        autosave: bool = False,
        validation_mode: Union[ValidationMode, str, None] = None,
        guard: Optional[StepGuard] = None,
        on_complete: Optional[SubmitFn] = None,
        draft_store: Optional[DraftStore] = None,
        settings: Optional[EngineSettings] = None,
        scheduler: Optional[Scheduler] = None,
        step_titles: Optional[Sequence[str]] = None,
    ):
        if not steps:
            raise ConfigError("A wizard session needs at least one step", form_id=form_id)

        self._steps: Tuple[FormDescriptor, ...] = tuple(steps)
        self._guard = guard
        self._on_complete = on_complete
        self._titles = list(step_titles or [])
        self._controller = FormController(
            FormDescriptor(sections=self._steps, form_id=form_id, autosave=autosave),
            settings=settings,
            draft_store=draft_store,
            scheduler=scheduler,
            validation_mode=validation_mode,
        )

        self._current = 0
        self._visited: List[bool] = [i == 0 for i in range(len(self._steps))]
        self._completed = False
        self._disposed = False
        self._log = get_form_logger(__name__, form_id=form_id, step=0)

    # Introspection

    @property
    def controller(self) -> FormController:
        """The controller holding the shared value map."""
        return self._controller

    @property
    def form_id(self) -> Optional[str]:
        return self._controller.form_id

    @property
    def autosave(self) -> bool:
        return self._controller.descriptor.autosave

    @property
    def validation_mode(self) -> ValidationMode:
        return self._controller.validation_mode

    @property
    def steps(self) -> Tuple[FormDescriptor, ...]:
        return self._steps

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def current_index(self) -> int:
        return self._current

    @property
    def current_step(self) -> FormDescriptor:
        return self._steps[self._current]

    @property
    def visited(self) -> Tuple[bool, ...]:
        return tuple(self._visited)

    @property
    def is_first(self) -> bool:
        return self._current == 0

    @property
    def is_last(self) -> bool:
        return self._current == len(self._steps) - 1

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def progress(self) -> float:
        """Fraction of steps visited so far."""
        return sum(self._visited) / len(self._steps)

    @property
    def step_titles(self) -> List[str]:
        return [self.title_for(i) for i in range(len(self._steps))]

    def title_for(self, index: int) -> str:
        if index < len(self._titles):
            return self._titles[index]
        return self._steps[index].title or f"Step {index + 1}"

    def step_fields(self, index: Optional[int] = None) -> List[str]:
        return self._steps[self._current if index is None else index].field_names()

    def step_errors(self, index: Optional[int] = None) -> Dict[str, str]:
        """Recorded errors for one step's fields."""
        names = set(self.step_fields(index))
        return {n: e for n, e in self._controller.errors.items() if n in names}

    # Navigation

    async def next(self) -> StepOutcome:
        """Advance past the current step, or complete on the last step.

        Raises:
            SubmissionError: ``on_complete`` raised (the session stays on
                the last step and can retry)
        """
        self._check_alive()
        if self._completed:
            return StepOutcome.COMPLETED

        if not self._step_passes():
            self._log.info("Step %d blocked: invalid fields %s", self._current, list(self.step_errors()))
            return StepOutcome.INVALID

        if not await self._guard_allows():
            self._log.info("Step %d blocked by guard", self._current)
            return StepOutcome.GUARDED

        if self.is_last:
            return await self._complete()

        self._move_to(self._current + 1)
        await self._persist()
        return StepOutcome.ADVANCED

    async def previous(self) -> bool:
        """Step back one step; False at the first step or when blocked."""
        self._check_alive()
        if self._completed or self._current == 0:
            return False
        if not self._exit_allowed():
            return False
        self._move_to(self._current - 1)
        await self._persist()
        return True

    async def go_to(self, index: int) -> bool:
        """Jump to a visited step at or before the current one."""
        self._check_alive()
        if self._completed or not 0 <= index < len(self._steps):
            return False
        if index == self._current:
            return True
        if index > self._current or not self._visited[index]:
            self._log.debug("Refusing jump from step %d to %d", self._current, index)
            return False
        if not self._exit_allowed():
            return False
        self._move_to(index)
        await self._persist()
        return True

    # Session lifecycle

    async def resume(self) -> bool:
        """Load the session's draft into the shared value map."""
        self._check_alive()
        return await self._controller.load_draft()

    def reset(self) -> None:
        """Back to step 0 with install-time values; pending autosave dropped."""
        self._check_alive()
        self._controller.reset()
        self._current = 0
        self._visited = [i == 0 for i in range(len(self._steps))]
        self._completed = False
        self._log.set_context(step=0)
        self._log.debug("Session reset")

    def dispose(self) -> None:
        if self._disposed:
            return
        self._controller.dispose()
        self._disposed = True

    # Internals

    def _check_alive(self) -> None:
        if self._disposed:
            raise DisposedError("Session has been disposed", form_id=self.form_id)

    def _step_passes(self) -> bool:
        if self.validation_mode == ValidationMode.MANUAL:
            return self._controller.is_valid(self.step_fields())
        return self._controller.validate_section(self._current)

    def _exit_allowed(self) -> bool:
        if self.validation_mode != ValidationMode.ON_EXIT:
            return True
        if self._controller.validate_section(self._current):
            return True
        self._log.info("Leaving step %d blocked: invalid fields", self._current)
        return False

    async def _guard_allows(self) -> bool:
        if self._guard is None:
            return True
        allowed = self._guard(self._current, self._controller.get_all())
        if inspect.isawaitable(allowed):
            allowed = await allowed
        return bool(allowed)

    def _move_to(self, index: int) -> None:
        previous, self._current = self._current, index
        self._visited[index] = True
        self._log.set_context(step=index)
        self._log.info("Step %d -> %d", previous, index)

    async def _persist(self) -> None:
        if not self.autosave:
            return
        # The transition write supersedes any pending debounced one
        self._controller.cancel_autosave()
        await self._controller.save_draft()

    async def _complete(self) -> StepOutcome:
        manual = self.validation_mode == ValidationMode.MANUAL
        if manual and not self._controller.is_valid():
            return StepOutcome.INVALID

        result: SubmitResult = await self._controller.submit(
            self._on_complete, validate_first=not manual
        )
        if not result.success:
            self._log.info("Completion blocked: invalid fields %s", list(result.errors))
            return StepOutcome.INVALID

        self._completed = True
        self._log.info("Session completed")
        return StepOutcome.COMPLETED
