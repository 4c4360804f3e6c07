# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Minimal SMTP client over a raw TCP stream.

``SmtpSession`` speaks just enough SMTP to hand one plain-text alert to
a trusted relay on the local network: greeting, ``HELO``, ``MAIL FROM``,
``RCPT TO``, ``DATA``, the message, ``QUIT``.  Each command is written
and its reply read synchronously; a reply whose status code does not
match the step aborts the exchange.

There is no TLS, no AUTH and no MIME: the relay is expected to accept
unauthenticated plain-text mail from the monitor.

Failures are split in two.  Transient network errors (refused, reset,
timed out, unresolvable host, or any other ``OSError`` whose errno the
platform knows) leave the session disconnected without raising, so the
caller can simply try again with the next alert.  Anything else is
treated as fatal and raised.
"""

from __future__ import annotations

import errno
import logging
import re
import socket
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from email.utils import format_datetime
from types import TracebackType
from typing import Protocol

from garagewatch.config import MailConfig


logger = logging.getLogger(__name__)

#: SMTP line terminator.
CRLF = "\r\n"

#: Subject prefix; the door state tag is appended.
SUBJECT_PREFIX = "Garage door is "

# Body line breaks: CRLF, bare CR or bare LF.  Nothing else.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class SmtpError(Exception):
    """Base class for SMTP session failures."""


class SmtpTransportError(SmtpError):
    """Fatal transport failure; the original error is the ``__cause__``."""


class SmtpProtocolError(SmtpError):
    """Server reply did not carry the status code required for a step.

    Attributes:
        step: Name of the protocol step that failed.
        expected: Required three-digit status code.
        response: Reply text actually received (may be empty).
    """

    def __init__(self, step: str, expected: str, response: str) -> None:
        self.step = step
        self.expected = expected
        self.response = response
        super().__init__(
            f"Unexpected reply to {step}: expected {expected}, "
            f"got {response.strip()!r}"
        )


class _Stream(Protocol):
    def sendall(self, data: bytes, /) -> None: ...

    def recv(self, bufsize: int, /) -> bytes: ...

    def close(self) -> None: ...


#: Opens a stream: ``(address, timeout) -> socket``.
StreamFactory = Callable[[tuple[str, int], float], _Stream]


def _default_connect(address: tuple[str, int], timeout: float) -> _Stream:
    return socket.create_connection(address, timeout=timeout)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def is_transient(exc: BaseException) -> bool:
    """Classify a transport failure.

    Returns True when the error has a known cause and a later attempt
    may succeed; False when its cause is unknown and the error should
    be surfaced.
    """
    if isinstance(exc, (TimeoutError, socket.gaierror)):
        return True
    if isinstance(exc, OSError):
        return exc.errno is not None and exc.errno in errno.errorcode
    return False


def build_envelope(
    *,
    header_from: str,
    to_address: str,
    subject_tag: str,
    body: str,
    date: datetime,
) -> str:
    """Build the DATA payload for one alert.

    Headers, a blank line, the body and a line holding only ``.``.
    Body lines that start with ``.`` are dot-stuffed so they cannot end
    the message early.

    Args:
        header_from: ``From:`` header value.
        to_address: ``To:`` header value.
        subject_tag: Door state appended to the subject.
        body: Plain-text body; any newline convention is accepted.
        date: Timestamp for the ``Date:`` header (timezone-aware).

    Returns:
        CRLF-separated payload without a trailing terminator.
    """
    lines = [
        f"From: {header_from}",
        f"To: {to_address}",
        f"Date: {format_datetime(date)}",
        f"Subject: {SUBJECT_PREFIX}{subject_tag}",
        "",
    ]
    for line in _body_lines(body):
        lines.append(f".{line}" if line.startswith(".") else line)
    lines.append(".")
    return CRLF.join(lines)


def _body_lines(body: str) -> list[str]:
    if not body:
        return []
    lines = _LINE_BREAK.split(body)
    if lines[-1] == "":
        # Trailing newline
        lines.pop()
    return lines


class SmtpSession:
    """One SMTP conversation with the configured relay.

    Use as a context manager so the socket is closed on every exit path::

        with SmtpSession(config) as session:
            session.connect()
            session.send_message("OPEN", body)
    """

    def __init__(
        self,
        config: MailConfig,
        *,
        connect: StreamFactory = _default_connect,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._config = config
        self._connect = connect
        self._clock = clock
        self._stream: _Stream | None = None

    @property
    def connected(self) -> bool:
        return self._stream is not None

    def connect(self) -> None:
        """Open the stream to the relay.  No-op if already connected.

        Raises:
            SmtpTransportError: If the failure is not transient.
        """
        if self._stream is not None:
            return

        address = (self._config.host, self._config.port)
        try:
            self._stream = self._connect(address, self._config.timeout_seconds)
        except Exception as e:
            if is_transient(e):
                logger.warning(
                    "Could not connect to SMTP relay %s:%d: %s",
                    self._config.host,
                    self._config.port,
                    e,
                )
                return
            raise SmtpTransportError(
                f"Fatal error connecting to {self._config.host}:"
                f"{self._config.port}: {e}"
            ) from e

        logger.debug(
            "Connected to SMTP relay %s:%d",
            self._config.host,
            self._config.port,
        )

    def send_message(self, subject_tag: str, body: str) -> None:
        """Send one alert.  No-op if not connected.

        The stream is released afterwards whatever the outcome, so a
        further send needs a fresh ``connect()``.

        Args:
            subject_tag: Door state for the subject line.
            body: Plain-text message body.

        Raises:
            SmtpProtocolError: If the relay answers a step unexpectedly.
            SmtpTransportError: If the transport fails for an unknown
                reason.
        """
        stream = self._stream
        if stream is None:
            logger.debug("Not connected; dropping %s alert", subject_tag)
            return

        try:
            self._exchange(stream, subject_tag, body)
        except SmtpProtocolError as e:
            logger.error("SMTP relay rejected %s alert: %s", subject_tag, e)
            raise
        except Exception as e:
            if is_transient(e):
                logger.warning(
                    "Transport error sending %s alert: %s", subject_tag, e
                )
                return
            raise SmtpTransportError(
                f"Fatal error sending {subject_tag} alert: {e}"
            ) from e
        finally:
            self.close()

        logger.info("Sent %s alert via %s", subject_tag, self._config.host)

    def close(self) -> None:
        """Release the stream.  Safe to call repeatedly."""
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.close()
            except OSError as e:
                logger.debug("Error closing SMTP stream: %s", e)

    def __enter__(self) -> SmtpSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- protocol -----------------------------------------------------------

    def _exchange(self, stream: _Stream, subject_tag: str, body: str) -> None:
        config = self._config
        envelope = build_envelope(
            header_from=config.header_from,
            to_address=config.to_address,
            subject_tag=subject_tag,
            body=body,
            date=self._clock(),
        )

        self._expect(stream, "greeting", "220")
        self._command(stream, "HELO", f"HELO {config.helo_domain}", "250")
        self._command(
            stream, "MAIL FROM", f"MAIL FROM:<{config.from_address}>", "250"
        )
        self._command(
            stream, "RCPT TO", f"RCPT TO:<{config.to_address}>", "250"
        )
        self._command(stream, "DATA", "DATA", "354")
        self._command(stream, "message", envelope, "250")
        self._command(stream, "QUIT", "QUIT", "221")

    def _command(
        self, stream: _Stream, step: str, line: str, expected: str
    ) -> None:
        self._write(stream, line)
        self._expect(stream, step, expected)

    def _expect(self, stream: _Stream, step: str, expected: str) -> None:
        response = self._read(stream)
        logger.debug("S: %s", response.rstrip())
        if not response.startswith(expected):
            raise SmtpProtocolError(step, expected, response)

    def _read(self, stream: _Stream) -> str:
        data = stream.recv(self._config.read_size)
        return data.decode("utf-8", errors="replace")

    def _write(self, stream: _Stream, text: str) -> None:
        if not text.endswith(CRLF):
            text += CRLF
        logger.debug("C: %s", text.splitlines()[0] if text.strip() else "")
        stream.sendall(text.encode("utf-8"))
