# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Email alert delivery off the door state thread.

The SMTP exchange is blocking, so ``MailNotifier`` runs it on its own
single worker thread.  Each alert gets a fresh ``SmtpSession`` that is
closed when the alert is done, whether it was delivered or not.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from garagewatch.config import MailConfig
from garagewatch.mail.session import SmtpError, SmtpSession


logger = logging.getLogger(__name__)


class MailNotifier:
    """AlertNotifier that emails alerts through the configured relay."""

    def __init__(
        self,
        config: MailConfig,
        *,
        session_factory: Callable[[MailConfig], SmtpSession] = SmtpSession,
    ) -> None:
        self._config = config
        self._session_factory = session_factory
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="AlertMailer"
        )

    def send_alert(self, subject_tag: str, body: str) -> Future[None]:
        """Queue an alert email.

        Returns:
            Future resolved when the attempt finishes.  It carries the
            exception if the attempt failed fatally; failures are also
            logged, never raised on the caller's thread.
        """
        logger.info("Queueing %s alert email", subject_tag)
        return self._executor.submit(self._deliver, subject_tag, body)

    def close(self, wait: bool = True) -> None:
        """Stop accepting alerts; optionally wait for queued ones."""
        self._executor.shutdown(wait=wait)

    def _deliver(self, subject_tag: str, body: str) -> None:
        try:
            with self._session_factory(self._config) as session:
                session.connect()
                if not session.connected:
                    logger.warning(
                        "SMTP relay unavailable; %s alert not sent", subject_tag
                    )
                    return
                session.send_message(subject_tag, body)
        except SmtpError as e:
            logger.error("Failed to send %s alert: %s", subject_tag, e)
            raise
        except Exception as e:
            logger.exception(
                "Unexpected error sending %s alert: %s", subject_tag, e
            )
            raise
