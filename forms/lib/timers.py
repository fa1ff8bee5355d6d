"""Schedulers and a reusable trailing debounce timer.

Controllers never sleep or spawn threads; deferred work (debounced
validation, autosave) goes through a ``Scheduler``. ``AsyncioScheduler``
rides the running event loop. ``ManualScheduler`` is a virtual clock for
hosts without a loop and for tests.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

__all__ = [
    "TimerHandle",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "DebounceTimer",
]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class _FiredHandle:
    """Handle for a callback that already ran."""

    def cancel(self) -> None:
        pass


class AsyncioScheduler:
    """Schedule on the running asyncio loop.

    With no running loop there is nothing to defer onto, so the callback
    runs immediately (coalescing is lost, nothing is dropped).
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; running deferred callback now")
            callback()
            return _FiredHandle()
        return loop.call_later(delay, callback)


class _ManualHandle:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock: callbacks fire only when ``advance`` moves time past them.

    Example:
        scheduler = ManualScheduler()
        timer = DebounceTimer(0.3, handler, scheduler)
        timer.trigger()
        scheduler.advance(0.3)  # handler runs here
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[_ManualHandle] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        self._seq += 1
        handle = _ManualHandle(self.now + max(delay, 0.0), self._seq, callback)
        self._queue.append(handle)
        return handle

    @property
    def pending(self) -> int:
        """Number of scheduled, uncancelled callbacks."""
        return sum(1 for h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in time order.

        Callbacks scheduled by a firing callback run in the same call if
        they fall due before the target time.

        Returns:
            Number of callbacks fired
        """
        target = self.now + seconds
        fired = 0
        while True:
            self._queue = [h for h in self._queue if not h.cancelled]
            due = [h for h in self._queue if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._queue.remove(handle)
            self.now = handle.when
            handle.callback()
            fired += 1
        self.now = target
        return fired


class DebounceTimer:
    """Reusable trailing debounce timer.

    Restarts the window on each ``trigger``. The handler fires only after
    ``delay`` seconds without another trigger.

    Usage:
        self._debounce = DebounceTimer(0.3, self._validate_touched, scheduler)

        def on_change(self):
            self._debounce.trigger()  # Restarts window
    """

    def __init__(
        self,
        delay: float,
        handler: Callable[[], None],
        scheduler: Optional[Scheduler] = None,
    ):
        self._delay = delay
        self._handler = handler
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._handle: Optional[TimerHandle] = None
        self._token: Optional[object] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._token is not None

    def trigger(self) -> None:
        """Trigger debounce, restarting the window."""
        self.cancel()
        token = object()
        self._token = token
        handle = self._scheduler.call_later(self._delay, partial(self._fire, token))
        # The scheduler may have run the callback synchronously
        if self._token is token:
            self._handle = handle

    def cancel(self) -> None:
        """Cancel pending trigger."""
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._token = None

    def flush(self) -> bool:
        """Fire now if a trigger is pending.

        Returns:
            True if the handler ran
        """
        if not self.pending:
            return False
        self.cancel()
        self._handler()
        return True

    def _fire(self, token: object) -> None:
        if self._token is not token:
            # Superseded or cancelled after the scheduler queued it
            return
        self._handle = None
        self._token = None
        self._handler()
