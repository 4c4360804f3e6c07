# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""GPIO door sensor and door opener output.

The reed switch is wired between the input pin and ground with the
internal pull-up enabled, so a LOW input means the magnet is against the
switch and the door is closed.  The opener output drives a transistor
across the wall button contacts; it is active high and starts low.

gpiozero picks its pin factory from the environment
(``GPIOZERO_PIN_FACTORY``), so the same code runs on a Raspberry Pi and
against ``gpiozero.pins.mock.MockFactory`` on a development machine.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from gpiozero import Button, DigitalOutputDevice
from gpiozero.exc import GPIOZeroError
from gpiozero.pins import Factory

from garagewatch.config import GpioConfig
from garagewatch.door.state import DoorState


logger = logging.getLogger(__name__)


class HardwareUnavailableError(Exception):
    """Raised when the GPIO controller or a pin cannot be opened."""


class GpioInputWatcher:
    """InputWatcher backed by a gpiozero ``Button`` on the reed switch."""

    def __init__(
        self, config: GpioConfig, *, pin_factory: Factory | None = None
    ) -> None:
        """Open the input pin with pull-up and debounce.

        Raises:
            HardwareUnavailableError: If there is no usable GPIO controller.
        """
        bounce_time = config.debounce_ms / 1000 if config.debounce_ms else None
        try:
            self._button = Button(
                config.input_pin,
                pull_up=True,
                bounce_time=bounce_time,
                pin_factory=pin_factory,
            )
        except GPIOZeroError as e:
            raise HardwareUnavailableError(
                f"Cannot open door sensor on GPIO{config.input_pin}: {e}"
            ) from e
        logger.info(
            "Door sensor on GPIO%d (debounce %dms)",
            config.input_pin,
            config.debounce_ms,
        )

    def read_current_state(self) -> DoorState:
        return DoorState.CLOSED if self._button.is_pressed else DoorState.OPEN

    def on_edge_detected(self, callback: Callable[[bool], None]) -> None:
        """Register *callback*; it runs on gpiozero's event thread."""
        self._button.when_pressed = lambda: callback(True)
        self._button.when_released = lambda: callback(False)

    def close(self) -> None:
        self._button.when_pressed = None
        self._button.when_released = None
        self._button.close()


class GpioOutputActuator:
    """OutputActuator that pulses the door opener line."""

    def __init__(
        self, config: GpioConfig, *, pin_factory: Factory | None = None
    ) -> None:
        """Open the output pin, initially low.

        Raises:
            HardwareUnavailableError: If there is no usable GPIO controller.
        """
        try:
            self._device = DigitalOutputDevice(
                config.output_pin,
                active_high=True,
                initial_value=False,
                pin_factory=pin_factory,
            )
        except GPIOZeroError as e:
            raise HardwareUnavailableError(
                f"Cannot open door opener on GPIO{config.output_pin}: {e}"
            ) from e
        logger.info("Door opener on GPIO%d", config.output_pin)

    def pulse(self, duration_ms: int) -> None:
        """Hold the output high for *duration_ms*, then drive it low."""
        logger.info("Pushing door button for %dms", duration_ms)
        self._device.on()
        try:
            time.sleep(duration_ms / 1000)
        finally:
            self._device.off()

    def close(self) -> None:
        self._device.close()
