# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Collaborator protocols for the door monitor core.

Defines the interfaces between the state machine and the things around
it: the sensor input, the door opener output, the status display and
the alert channel.  Concrete implementations live in
``garagewatch.hardware``, ``garagewatch.display`` and
``garagewatch.mail``; tests substitute simple fakes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol


if TYPE_CHECKING:
    from garagewatch.door.state import DoorState


class InputWatcher(Protocol):
    """Debounced binary door sensor.

    Edge callbacks may be invoked on a driver thread; callers must
    marshal them onto their own execution context before touching
    shared state.
    """

    def read_current_state(self) -> DoorState:
        """Read the current door state (``OPEN`` or ``CLOSED``)."""
        ...

    def on_edge_detected(self, callback: Callable[[bool], None]) -> None:
        """Register *callback* for edges; the argument is True when closing."""
        ...

    def close(self) -> None:
        """Release the sensor line."""
        ...


class OutputActuator(Protocol):
    """Binary output that simulates a physical button press."""

    def pulse(self, duration_ms: int) -> None:
        """Drive the output high, then low after *duration_ms*."""
        ...

    def close(self) -> None:
        """Release the output line."""
        ...


class Display(Protocol):
    """Fire-and-forget status display."""

    def set_indicator(self, state: DoorState) -> None:
        """Show the OPEN/CLOSED indicator."""
        ...

    def set_status_text(self, text: str) -> None:
        """Replace the status text."""
        ...

    def set_history_text(self, text: str) -> None:
        """Replace the rendered event history."""
        ...


class AlertNotifier(Protocol):
    """Delivers door alerts, typically by email."""

    def send_alert(self, subject_tag: str, body: str) -> Any:
        """Send an alert about the door being *subject_tag*.

        Must not block on network I/O; delivery failures are handled
        by the notifier.
        """
        ...
