# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Door state tracking.

- state: DoorState, TransitionEvent and the bounded EventHistory
- scheduler: AlertScheduler, the open-too-long tick counter
- dispatch: SerialDispatcher, the single-consumer work queue
- machine: DoorStateMachine tying the above together
"""

from garagewatch.door.dispatch import DispatcherStoppedError, SerialDispatcher
from garagewatch.door.machine import ALERT_CLOSED, ALERT_OPEN, DoorStateMachine
from garagewatch.door.scheduler import AlertScheduler
from garagewatch.door.state import (
    DoorState,
    EventHistory,
    TransitionEvent,
    format_duration,
    format_timestamp,
)


__all__ = [
    # dispatch
    "DispatcherStoppedError",
    "SerialDispatcher",
    # machine
    "ALERT_CLOSED",
    "ALERT_OPEN",
    "DoorStateMachine",
    # scheduler
    "AlertScheduler",
    # state
    "DoorState",
    "EventHistory",
    "TransitionEvent",
    "format_duration",
    "format_timestamp",
]
