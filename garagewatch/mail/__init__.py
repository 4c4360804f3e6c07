# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Email alerts.

- session: SmtpSession, a minimal SMTP client over a raw socket
- notifier: MailNotifier, background delivery with one session per alert
"""

from garagewatch.mail.notifier import MailNotifier
from garagewatch.mail.session import (
    SmtpError,
    SmtpProtocolError,
    SmtpSession,
    SmtpTransportError,
    build_envelope,
    is_transient,
)


__all__ = [
    "MailNotifier",
    "SmtpError",
    "SmtpProtocolError",
    "SmtpSession",
    "SmtpTransportError",
    "build_envelope",
    "is_transient",
]
