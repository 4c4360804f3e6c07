# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Root logger setup for the monitor.

Mail addresses are personal, so ``MailConfig`` registers the sender and
recipient with ``AddressFilter``.  The stream handler installed by
``configure_logging`` carries that filter and prints them as
``[REDACTED]``.  Modules log through ``logging.getLogger(__name__)``.
"""

import logging
import re
from typing import ClassVar


#: Replacement text for a registered address.
REDACTED = "[REDACTED]"


class AddressFilter(logging.Filter):
    """Hide alert recipients and the sender in log output.

    ``MailConfig`` registers its addresses when it is built; every handler
    carrying this filter then rewrites them in the message and its
    string arguments.
    """

    _addresses: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        pattern = self._pattern
        if pattern is not None:
            record.msg = pattern.sub(REDACTED, str(record.msg))
            if record.args:
                record.args = tuple(
                    pattern.sub(REDACTED, arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        # Records pass through; only their text changes.
        return True

    @classmethod
    def register_address(cls, address: str) -> None:
        """Add a mail address to hide.  Empty strings are skipped."""
        if address:
            cls._addresses.add(address)
            cls._rebuild_pattern()

    @classmethod
    def clear_addresses(cls) -> None:
        cls._addresses.clear()
        cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls) -> None:
        if cls._addresses:
            # Longest first so "a@b.org" does not shadow "ba@b.org"
            ordered = sorted(cls._addresses, key=len, reverse=True)
            cls._pattern = re.compile("|".join(re.escape(a) for a in ordered))
        else:
            cls._pattern = None


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    add_address_filter: bool = True,
) -> None:
    """Configure the root logger for the monitor.

    Existing root handlers are removed so repeated calls do not
    duplicate output.

    Args:
        level: The logging level (e.g., logging.INFO, logging.DEBUG).
        format_string: Custom format string. If None, uses default format.
        add_address_filter: Whether to redact registered mail addresses.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string))

    if add_address_filter:
        handler.addFilter(AddressFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)
