# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Garage door monitor service.

This module contains:
- MonitorService: wires sensor, state machine, display and mail alerts
- main: CLI entry point

Signals:
- SIGINT / SIGTERM: shut down
- SIGUSR1: clear the event history
- SIGUSR2: push the door opener button
"""

from __future__ import annotations

import argparse
import logging
import signal
import threading
from collections.abc import Callable
from pathlib import Path

from garagewatch.collaborators import (
    AlertNotifier,
    Display,
    InputWatcher,
    OutputActuator,
)
from garagewatch.config import ConfigError, MonitorConfig
from garagewatch.display import LogDisplay
from garagewatch.door.dispatch import DispatcherStoppedError, SerialDispatcher
from garagewatch.door.machine import DoorStateMachine
from garagewatch.door.state import DoorState
from garagewatch.hardware import (
    GpioInputWatcher,
    GpioOutputActuator,
    HardwareUnavailableError,
)
from garagewatch.logging import configure_logging
from garagewatch.mail.notifier import MailNotifier


logger = logging.getLogger(__name__)


class MonitorService:
    """Owns the door monitor and everything it talks to.

    Collaborators default to the GPIO hardware, a logging display and
    email alerts; tests pass fakes.
    """

    def __init__(
        self,
        config: MonitorConfig,
        *,
        watcher: InputWatcher | None = None,
        actuator: OutputActuator | None = None,
        display: Display | None = None,
        notifier: AlertNotifier | None = None,
    ) -> None:
        """Open the hardware and build the collaborators.

        Raises:
            HardwareUnavailableError: If GPIO cannot be opened.
        """
        self.config = config
        self.watcher = watcher or GpioInputWatcher(config.gpio)
        try:
            self.actuator = actuator or GpioOutputActuator(config.gpio)
        except Exception:
            self.watcher.close()
            raise
        self.display = display or LogDisplay()
        self.notifier = notifier or MailNotifier(config.mail)
        self.dispatcher = SerialDispatcher()
        self.machine: DoorStateMachine | None = None
        self._stop_event = threading.Event()
        self._stopped = False
        # Reentrant: a signal handler may call stop() while stop() runs.
        self._lock = threading.RLock()

    def start(self) -> None:
        """Read the door, build the state machine and hook up the sensor."""
        self.dispatcher.start()
        initial_state = self.watcher.read_current_state()
        self.machine = self.dispatcher.call(self._build_machine, initial_state)
        self.watcher.on_edge_detected(self._on_edge)
        logger.info("Garage door monitor running")

    def run(self) -> None:
        """Start and block until ``stop()`` is called."""
        self.start()
        self._stop_event.wait()

    def stop(self) -> None:
        """Stop timers, finish queued alerts and release the hardware.

        Idempotent; safe to call from a signal handler.
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self._stop_event.set()

        logger.info("Stopping garage door monitor...")
        machine = self.machine
        if machine is not None and self.dispatcher.is_running:
            self._post(machine.close)
        self.dispatcher.stop()
        self.watcher.close()
        self.actuator.close()
        close = getattr(self.notifier, "close", None)
        if close is not None:
            close()
        logger.info("Garage door monitor stopped")

    def clear_history(self) -> None:
        """Operator action: empty the history."""
        if self.machine is not None:
            self._post(self.machine.clear_history)

    def push_button(self) -> threading.Thread:
        """Operator action: pulse the opener output in the background."""
        thread = threading.Thread(
            target=self.actuator.pulse,
            args=(self.config.gpio.pulse_ms,),
            daemon=True,
            name="ButtonPush",
        )
        thread.start()
        return thread

    def _build_machine(self, initial_state: DoorState) -> DoorStateMachine:
        alert = self.config.alert
        return DoorStateMachine(
            initial_state,
            self.display,
            self.notifier,
            alert_interval=alert.delay_seconds,
            alert_max_ticks=alert.max_ticks,
            history_size=alert.history_size,
            post=self._post,
        )

    def _on_edge(self, is_closing: bool) -> None:
        """Sensor callback; runs on the GPIO event thread."""
        machine = self.machine
        if machine is not None:
            self._post(machine.on_edge, is_closing)

    def _post(self, fn: Callable[..., None], *args: object) -> None:
        try:
            self.dispatcher.post(fn, *args)
        except DispatcherStoppedError:
            logger.debug("Dispatcher stopped; dropping %r", fn)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0=success, 1=config error, 2=startup, 3=runtime error).
    """
    parser = argparse.ArgumentParser(
        description="Garage door monitor",
        epilog=(
            "Watches the door sensor and emails an alert when the door "
            "stays open too long."
        ),
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help=(
            "Path to garagewatch.yaml config file"
            " (default: ~/.config/garagewatch/garagewatch.yaml)"
        ),
    )
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.INFO)

    logger.info("Garage door monitor starting...")

    try:
        config = MonitorConfig.from_yaml(config_path=args.config)
    except (ConfigError, ValueError) as e:
        logger.critical("Configuration error: %s", e)
        return 1

    try:
        service = MonitorService(config)
    except HardwareUnavailableError as e:
        logger.critical("Hardware unavailable: %s", e)
        return 2
    except Exception as e:
        logger.exception("Failed to initialize service: %s", e)
        return 2

    def shutdown_handler(signum: int, frame: object) -> None:
        logger.info("Received signal %d, initiating shutdown...", signum)
        service.stop()

    def clear_history_handler(signum: int, frame: object) -> None:
        service.clear_history()

    def push_button_handler(signum: int, frame: object) -> None:
        service.push_button()

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGUSR1, clear_history_handler)
    signal.signal(signal.SIGUSR2, push_button_handler)

    try:
        service.run()
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal runtime error: %s", e)
        return 3
    finally:
        service.stop()
