# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Single-shot delayed alert timer.

``AlertScheduler`` counts fixed-period ticks after ``start()`` and calls
``on_threshold`` once the configured tick count is reached.  Timer
expiry happens on a ``threading.Timer`` thread, but tick processing is
handed to a ``post`` callable so that it runs on the owner's serialized
execution context (see ``SerialDispatcher``).

Every ``start()`` and ``stop()`` bumps a generation counter.  A tick
that was already queued when the scheduler was restarted or stopped
carries the old generation and is dropped, so the scheduler never fires
after ``stop()`` and a restart never inherits ticks from the previous
arm.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol


logger = logging.getLogger(__name__)


class _Timer(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


#: Factory with the ``threading.Timer(interval, function, args)`` signature.
TimerFactory = Callable[..., _Timer]


def _run_inline(fn: Callable[[], None]) -> None:
    fn()


class AlertScheduler:
    """Fixed-period tick counter with a threshold callback.

    The scheduler itself is not thread-safe: ``start()``, ``stop()`` and
    tick processing must all happen on the same serialized context.
    Only the timer expiry crosses threads, and it does nothing but call
    ``post``.
    """

    def __init__(
        self,
        interval: float,
        max_ticks: int,
        *,
        on_tick: Callable[[int], None] | None = None,
        on_threshold: Callable[[], None] | None = None,
        post: Callable[[Callable[[], None]], None] | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Initialize the scheduler (not running).

        Args:
            interval: Seconds between ticks.
            max_ticks: Tick count at which ``on_threshold`` fires.
            on_tick: Called with the new tick count on every tick.
            on_threshold: Called once when ``max_ticks`` is reached,
                after the scheduler has stopped itself.
            post: Hands tick processing to the owner's execution
                context.  Defaults to running inline on the timer thread.
            timer_factory: Creates the one-shot timers.

        Raises:
            ValueError: If interval or max_ticks is out of range.
        """
        if interval <= 0:
            raise ValueError(f"Interval must be > 0: {interval}")
        if max_ticks < 1:
            raise ValueError(f"Max ticks must be >= 1: {max_ticks}")
        self._interval = interval
        self._max_ticks = max_ticks
        self._on_tick = on_tick
        self._on_threshold = on_threshold
        self._post = post or _run_inline
        self._timer_factory = timer_factory
        self._timer: _Timer | None = None
        self._generation = 0
        self._running = False
        self._ticks_elapsed = 0

    @property
    def interval(self) -> float:
        """Seconds between ticks."""
        return self._interval

    @property
    def max_ticks(self) -> int:
        """Tick count at which the threshold callback fires."""
        return self._max_ticks

    @property
    def is_running(self) -> bool:
        """Whether the scheduler is armed."""
        return self._running

    @property
    def ticks_elapsed(self) -> int:
        """Ticks counted since the last ``start()``."""
        return self._ticks_elapsed

    def start(self) -> None:
        """Start counting from zero, restarting if already running."""
        self._cancel_timer()
        self._generation += 1
        self._ticks_elapsed = 0
        self._running = True
        self._schedule()
        logger.debug(
            "Alert timer armed (generation %d, %d x %.1fs)",
            self._generation,
            self._max_ticks,
            self._interval,
        )

    def stop(self) -> None:
        """Cancel future ticks.  Safe to call when not running."""
        if self._running:
            logger.debug(
                "Alert timer stopped (generation %d)", self._generation
            )
        self._cancel_timer()
        self._generation += 1
        self._running = False

    def _schedule(self) -> None:
        timer = self._timer_factory(
            self._interval, self._expire, args=(self._generation,)
        )
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _expire(self, generation: int) -> None:
        """Timer thread entry point: hand the tick to the owner."""
        self._post(lambda: self._tick(generation))

    def _tick(self, generation: int) -> None:
        if not self._running or generation != self._generation:
            logger.debug("Dropping stale alert timer tick")
            return

        self._ticks_elapsed += 1
        threshold_reached = self._ticks_elapsed >= self._max_ticks
        if threshold_reached:
            self.stop()
        else:
            self._schedule()

        if self._on_tick is not None:
            self._on_tick(self._ticks_elapsed)
        if threshold_reached and self._on_threshold is not None:
            self._on_threshold()
