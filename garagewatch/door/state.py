# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Door state types and the bounded event history."""

from __future__ import annotations

import collections
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


#: Timestamp format used in history entries and status text.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

#: Default number of history entries kept.
DEFAULT_HISTORY_SIZE = 10


class DoorState(Enum):
    """Door state as read from the sensor.

    Attributes:
        UNKNOWN: Not read yet.  Never held by a constructed state machine.
        OPEN: Magnetic contact broken.
        CLOSED: Magnetic contact made.
    """

    UNKNOWN = "unknown"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class TransitionEvent:
    """A recorded door transition."""

    timestamp: datetime
    state: DoorState


def format_timestamp(moment: datetime) -> str:
    """Format *moment* for history entries and status text."""
    return moment.strftime(TIMESTAMP_FORMAT)


def format_duration(duration: timedelta) -> str:
    """Format *duration* as ``hh:mm:ss``.

    Hours are not wrapped at a day, so a door left open for 26 hours
    shows as ``26:00:00``.  Negative durations (clock stepped back)
    clamp to zero.

    >>> format_duration(timedelta(minutes=3, seconds=5))
    '00:03:05'
    """
    total = max(int(duration.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class EventHistory:
    """Bounded FIFO of formatted event strings.

    Appending beyond capacity evicts the oldest entry.  The history is
    only emptied by an explicit ``clear()``.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be >= 1: {capacity}")
        self._entries: collections.deque[str] = collections.deque(
            maxlen=capacity
        )

    @property
    def capacity(self) -> int:
        """Maximum number of entries kept."""
        assert self._entries.maxlen is not None
        return self._entries.maxlen

    def append(self, entry: str) -> None:
        """Append *entry*, evicting the oldest one when full."""
        self._entries.append(entry)

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()

    def render(self) -> str:
        """Render entries oldest first, one per line."""
        return "".join(f"{entry}\n" for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
