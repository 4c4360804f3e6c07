# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Door state machine.

Tracks the door state, keeps the event history, drives the display and
owns the open-door alert timer.  When the door stays open for the alert
threshold an "OPEN" alert is sent; the next close then sends one
"CLOSED" confirmation, so every long-open episode produces exactly two
emails.

The machine is single-threaded by contract.  All entry points
(``on_edge``, the timer tick callbacks, ``clear_history`` and ``close``)
must be called from one serialized context, normally a
``SerialDispatcher`` worker.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from garagewatch.collaborators import AlertNotifier, Display
from garagewatch.door.scheduler import AlertScheduler, TimerFactory
from garagewatch.door.state import (
    DEFAULT_HISTORY_SIZE,
    DoorState,
    EventHistory,
    TransitionEvent,
    format_duration,
    format_timestamp,
)


logger = logging.getLogger(__name__)

#: Subject tag of the alert sent when the door stays open too long.
ALERT_OPEN = "OPEN"

#: Subject tag of the confirmation sent when the door finally closes.
ALERT_CLOSED = "CLOSED"


class DoorStateMachine:
    """OPEN/CLOSED state machine with an open-too-long alert."""

    def __init__(
        self,
        initial_state: DoorState,
        display: Display,
        notifier: AlertNotifier,
        *,
        alert_interval: float,
        alert_max_ticks: int = 1,
        history_size: int = DEFAULT_HISTORY_SIZE,
        post: Callable[[Callable[[], None]], None] | None = None,
        timer_factory: TimerFactory | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize from the state read at startup.

        If the door is already open the alert timer is armed right away,
        counting from now.

        Args:
            initial_state: State read from the sensor; OPEN or CLOSED.
            display: Receives indicator, status and history updates.
            notifier: Sends the alert emails.
            alert_interval: Seconds between alert timer ticks.
            alert_max_ticks: Ticks while open before alerting.
            history_size: Number of history entries kept.
            post: Hands timer ticks to the serialized context.
            timer_factory: Overrides ``threading.Timer`` (tests).
            clock: Returns the current local time.

        Raises:
            ValueError: If initial_state is UNKNOWN.
        """
        if initial_state is DoorState.UNKNOWN:
            raise ValueError("Initial door state must be OPEN or CLOSED")

        self._display = display
        self._notifier = notifier
        self._clock = clock
        self._history = EventHistory(history_size)

        scheduler_kwargs = {}
        if timer_factory is not None:
            scheduler_kwargs["timer_factory"] = timer_factory
        self._timer = AlertScheduler(
            alert_interval,
            alert_max_ticks,
            on_tick=self.handle_tick,
            on_threshold=self._handle_open_too_long,
            post=post,
            **scheduler_kwargs,
        )

        self._send_closed_alert = False
        self._start_time: datetime | None = None
        self._last_time: datetime | None = None
        self._stop_time: datetime | None = None

        now = self._clock()
        self._state = initial_state
        self._last_event = TransitionEvent(timestamp=now, state=initial_state)
        self._status_text = (
            f"Door monitor initialized.\n"
            f"Door is currently {initial_state.name}."
        )
        self._history.append(
            f"{format_timestamp(now)} - Program started with door "
            f"{initial_state.name}."
        )
        self._display.set_indicator(initial_state)
        self._display.set_status_text(self._status_text)
        self._display.set_history_text(self._history.render())

        if initial_state is DoorState.OPEN:
            self._arm(now)

        logger.info("Door monitor started with door %s", initial_state.name)

    # -- read-only views ----------------------------------------------------

    @property
    def state(self) -> DoorState:
        return self._state

    @property
    def last_event(self) -> TransitionEvent:
        """The most recently applied transition (or the startup read)."""
        return self._last_event

    @property
    def status_text(self) -> str:
        return self._status_text

    @property
    def history(self) -> list[str]:
        return list(self._history)

    @property
    def history_text(self) -> str:
        return self._history.render()

    @property
    def send_closed_alert(self) -> bool:
        """Whether the next close sends a "CLOSED" confirmation."""
        return self._send_closed_alert

    @property
    def timer_armed(self) -> bool:
        return self._timer.is_running

    @property
    def ticks_elapsed(self) -> int:
        return self._timer.ticks_elapsed

    @property
    def start_time(self) -> datetime | None:
        return self._start_time

    @property
    def last_time(self) -> datetime | None:
        return self._last_time

    @property
    def stop_time(self) -> datetime | None:
        return self._stop_time

    # -- entry points -------------------------------------------------------

    def on_edge(self, is_closing: bool) -> None:
        """Apply a debounced sensor edge.

        Args:
            is_closing: True for a falling (closing) edge, False for a
                rising (opening) edge.
        """
        if is_closing:
            self._handle_close()
        else:
            self._handle_open()

    def handle_tick(self, ticks_elapsed: int) -> None:
        """Alert timer tick while the door is open."""
        self._last_time = self._clock()
        logger.debug(
            "Door open tick %d/%d", ticks_elapsed, self._timer.max_ticks
        )

    def clear_history(self) -> None:
        """Empty the history without touching the door state."""
        self._history.clear()
        self._display.set_history_text(self._history.render())
        logger.info("History cleared")

    def close(self) -> None:
        """Stop the alert timer.  The machine accepts no further ticks."""
        self._timer.stop()

    # -- transitions --------------------------------------------------------

    def _handle_open(self) -> None:
        now = self._clock()
        if self._state is DoorState.OPEN:
            # Only a still-counting timer restarts; after the OPEN alert
            # the episode waits for the close.
            if self._timer.is_running:
                logger.info("Duplicate OPEN edge; re-arming alert timer")
                self._arm(now)
            else:
                logger.info("Duplicate OPEN edge ignored; alert already sent")
            return

        self._state = DoorState.OPEN
        self._last_event = TransitionEvent(timestamp=now, state=DoorState.OPEN)
        self._status_text = (
            f"Door is OPEN\nDoor was opened at {format_timestamp(now)}."
        )
        self._history.append(f"{format_timestamp(now)} - Door is OPEN.")
        self._display.set_indicator(DoorState.OPEN)
        self._display.set_status_text(self._status_text)
        self._display.set_history_text(self._history.render())
        self._arm(now)
        logger.info("Door OPEN")

    def _handle_close(self) -> None:
        if self._state is DoorState.CLOSED:
            logger.info("Duplicate CLOSED edge ignored")
            return

        now = self._clock()
        if self._start_time is not None:
            duration = format_duration(now - self._start_time)
        else:
            duration = "unknown"

        self._state = DoorState.CLOSED
        self._last_event = TransitionEvent(
            timestamp=now, state=DoorState.CLOSED
        )
        self._status_text = (
            f"Door is CLOSED\nDoor was closed at {format_timestamp(now)}."
        )
        self._history.append(
            f"{format_timestamp(now)} - Door is CLOSED "
            f"(open duration: {duration})"
        )
        self._display.set_indicator(DoorState.CLOSED)
        self._display.set_status_text(self._status_text)
        self._display.set_history_text(self._history.render())

        if self._timer.is_running:
            self._timer.stop()
            self._stop_time = now

        logger.info("Door CLOSED after %s", duration)

        if self._send_closed_alert:
            self._send_closed_alert = False
            self._send_alert(ALERT_CLOSED)

    def _arm(self, now: datetime) -> None:
        self._start_time = now
        self._last_time = now
        self._timer.start()

    def _handle_open_too_long(self) -> None:
        # The scheduler has already stopped itself.
        self._stop_time = self._clock()
        logger.warning(
            "Door open since %s; sending alert",
            format_timestamp(self._start_time)
            if self._start_time is not None
            else "startup",
        )
        self._send_alert(ALERT_OPEN)
        self._send_closed_alert = True

    def _send_alert(self, subject_tag: str) -> None:
        body = f"{self._status_text}\n\n{self._history.render()}"
        try:
            self._notifier.send_alert(subject_tag, body)
        except Exception as e:
            logger.exception("Could not queue %s alert: %s", subject_tag, e)
