# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Headless display that reports status updates through logging."""

from __future__ import annotations

import logging

from garagewatch.door.state import DoorState


logger = logging.getLogger(__name__)


class LogDisplay:
    """Display that logs every push and remembers the latest values."""

    def __init__(self) -> None:
        self.indicator = DoorState.UNKNOWN
        self.status_text = ""
        self.history_text = ""

    def set_indicator(self, state: DoorState) -> None:
        self.indicator = state
        logger.info("Indicator: %s", state.name)

    def set_status_text(self, text: str) -> None:
        self.status_text = text
        logger.info("Status: %s", text.replace("\n", " | "))

    def set_history_text(self, text: str) -> None:
        self.history_text = text
        logger.debug("History:\n%s", text.rstrip() or "(empty)")
