# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures and fakes used across test packages."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import pytest

from garagewatch.config import (
    AlertConfig,
    GpioConfig,
    MailConfig,
    MonitorConfig,
)
from garagewatch.door.state import DoorState
from garagewatch.logging import AddressFilter


class FakeTimer:
    """Stand-in for ``threading.Timer`` that only fires when told to."""

    def __init__(
        self,
        interval: float,
        function: Callable[..., None],
        args: tuple[Any, ...] = (),
    ) -> None:
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Expire the timer, even if it was cancelled (simulates a race)."""
        self.function(*self.args)


class FakeTimerFactory:
    """Records every timer the scheduler creates."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(
        self,
        interval: float,
        function: Callable[..., None],
        args: tuple[Any, ...] = (),
    ) -> FakeTimer:
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    @property
    def latest(self) -> FakeTimer:
        return self.timers[-1]

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 10, 19, 7, 30, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingDisplay:
    """Display that records every push in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.indicator = DoorState.UNKNOWN
        self.status_text = ""
        self.history_text = ""

    def set_indicator(self, state: DoorState) -> None:
        self.indicator = state
        self.calls.append(("indicator", state))

    def set_status_text(self, text: str) -> None:
        self.status_text = text
        self.calls.append(("status", text))

    def set_history_text(self, text: str) -> None:
        self.history_text = text
        self.calls.append(("history", text))


class RecordingNotifier:
    """AlertNotifier that records alerts instead of sending them."""

    def __init__(self) -> None:
        self.alerts: list[tuple[str, str]] = []

    def send_alert(self, subject_tag: str, body: str) -> None:
        self.alerts.append((subject_tag, body))

    @property
    def tags(self) -> list[str]:
        return [tag for tag, _ in self.alerts]


class ScriptedStream:
    """Socket stand-in that replays scripted server replies.

    Records every ``sendall`` payload and every ``recv`` so tests can
    check the read/write pairing.
    """

    def __init__(self, replies: list[bytes | Exception]) -> None:
        self.replies = list(replies)
        self.sent: list[bytes] = []
        self.events: list[str] = []
        self.closed = False
        self.recv_sizes: list[int] = []

    def sendall(self, data: bytes) -> None:
        self.events.append("write")
        self.sent.append(data)

    def recv(self, bufsize: int) -> bytes:
        self.events.append("read")
        self.recv_sizes.append(bufsize)
        if not self.replies:
            return b""
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self) -> None:
        self.closed = True

    @property
    def sent_text(self) -> list[str]:
        return [chunk.decode("utf-8") for chunk in self.sent]


#: Replies of a relay that accepts the whole exchange.
HAPPY_REPLIES = [
    b"220 relay.example.org ESMTP ready\r\n",
    b"250 relay.example.org\r\n",
    b"250 2.1.0 Ok\r\n",
    b"250 2.1.5 Ok\r\n",
    b"354 End data with <CR><LF>.<CR><LF>\r\n",
    b"250 2.0.0 Ok: queued as 12345\r\n",
    b"221 2.0.0 Bye\r\n",
]


@pytest.fixture(autouse=True)
def _reset_address_filter():
    """Keep registered addresses from leaking between tests."""
    AddressFilter.clear_addresses()
    yield
    AddressFilter.clear_addresses()


@pytest.fixture
def mail_config() -> MailConfig:
    """Mail config pointing at a relay on the local network."""
    return MailConfig(
        host="10.0.0.2",
        port=25,
        helo_domain="example.org",
        from_address="alerts@example.org",
        to_address="owner@example.org",
        header_from="Raspberry Pi <admin@example.org>",
        timeout_seconds=5.0,
    )


@pytest.fixture
def gpio_config() -> GpioConfig:
    return GpioConfig(input_pin=5, output_pin=6, debounce_ms=50, pulse_ms=100)


@pytest.fixture
def alert_config() -> AlertConfig:
    return AlertConfig(delay_seconds=185.0, max_ticks=1, history_size=10)


@pytest.fixture
def monitor_config(
    mail_config: MailConfig,
    gpio_config: GpioConfig,
    alert_config: AlertConfig,
) -> MonitorConfig:
    return MonitorConfig(mail=mail_config, gpio=gpio_config, alert=alert_config)


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def happy_replies() -> list[bytes | Exception]:
    """Relay replies for a fully successful exchange."""
    return list(HAPPY_REPLIES)


@pytest.fixture
def make_stream() -> Callable[[list[bytes | Exception]], ScriptedStream]:
    """Factory for scripted relay streams."""
    return ScriptedStream
