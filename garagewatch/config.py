# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Configuration for the garage door monitor.

Configuration is loaded from a YAML file.  The default location follows
the XDG Base Directory Specification:

    ``$XDG_CONFIG_HOME/garagewatch/garagewatch.yaml``
    (typically ``~/.config/garagewatch/garagewatch.yaml``)

``!env`` tags resolve values from environment variables, e.g.::

    mail:
      host: !env GARAGEWATCH_SMTP_HOST
      from: alerts@example.org
      to: !env GARAGEWATCH_ALERT_TO

Three sections are recognized: ``mail`` (relay and envelope addresses),
``gpio`` (sensor and opener pins) and ``alert`` (open-door alert timing
and history size).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar, overload

import yaml
from platformdirs import user_config_path

from garagewatch.dotenv_loader import load_dotenv_once
from garagewatch.logging import AddressFilter


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "garagewatch"


def get_config_path() -> Path:
    """Return the default config file path (XDG config directory)."""
    return user_config_path(_APP_NAME) / "garagewatch.yaml"


def get_dotenv_path() -> Path:
    """Return the default ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


class ConfigError(Exception):
    """Base exception for configuration errors."""


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` to its string value, or stringify literals.

    Returns None if the value is None or the env var is unset or empty.
    """
    if isinstance(value, _EnvVar):
        return os.environ.get(value.var_name) or None
    if value is None:
        return None
    return str(value)


_MISSING = object()

T = TypeVar("T")


@overload
def _resolve(value: object, coerce: type[T], *, default: T) -> T: ...


@overload
def _resolve(
    value: object,
    coerce: type[T],
    *,
    required: str,
) -> T: ...


@overload
def _resolve(value: object, coerce: type[T]) -> T | None: ...


def _resolve(
    value: object,
    coerce: type[Any],
    *,
    default: object = _MISSING,
    required: str = "",
) -> Any:
    """Resolve a YAML value, handling ``!env`` tags and type coercion.

    Args:
        value: Raw value from YAML (may be ``_EnvVar``, None, or a
            literal already parsed by PyYAML).
        coerce: Target type (``str``, ``int``, ``float``).
        default: Default when value is absent.  Not allowed together
            with *required*.
        required: Human-readable field name.  When set, raises
            ``ConfigError`` if the value is absent.

    Returns:
        The resolved, coerced value, or None when optional and absent.

    Raises:
        ConfigError: If a required value is missing or coercion fails.
    """
    if not isinstance(value, _EnvVar) and value is not None:
        if isinstance(value, coerce) and not isinstance(value, bool):
            return value

    resolved = _raw_resolve(value)

    if resolved is None:
        if required:
            if isinstance(value, _EnvVar):
                raise ConfigError(
                    f"Required config '{required}': environment variable "
                    f"'{value.var_name}' is not set"
                )
            raise ConfigError(f"Required config '{required}' is missing")
        if default is not _MISSING:
            return default
        return None

    try:
        return coerce(resolved)
    except ValueError as e:
        raise ConfigError(
            f"Cannot convert {resolved!r} to {coerce.__name__}"
        ) from e


def _section(raw: dict, name: str) -> dict:
    """Return a top-level mapping section, empty if absent."""
    section = raw.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a YAML mapping")
    return section


# ---------------------------------------------------------------------------
# Configuration sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MailConfig:
    """Mail relay and envelope settings.

    Attributes:
        host: SMTP relay hostname or address.
        port: SMTP relay port.
        helo_domain: Domain announced in the ``HELO`` command.
        from_address: Envelope sender (``MAIL FROM``).
        to_address: Envelope recipient (``RCPT TO``) and ``To:`` header.
        header_from: Value of the ``From:`` header.  Defaults to
            ``from_address`` when not configured.
        timeout_seconds: Socket connect/read timeout.
        read_size: Maximum bytes read per server response.
    """

    host: str
    from_address: str
    to_address: str
    port: int = 25
    helo_domain: str = "localhost"
    header_from: str = ""
    timeout_seconds: float = 30.0
    read_size: int = 1024

    def __post_init__(self) -> None:
        """Validate configuration and register addresses for redaction.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.header_from:
            object.__setattr__(self, "header_from", self.from_address)

        AddressFilter.register_address(self.to_address)
        AddressFilter.register_address(self.from_address)

        if not self.host:
            raise ValueError("mail.host cannot be empty")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Invalid SMTP port: {self.port}")
        if "@" not in self.from_address:
            raise ValueError(f"Invalid from address: {self.from_address!r}")
        if "@" not in self.to_address:
            raise ValueError("Invalid to address")
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"SMTP timeout must be > 0s: {self.timeout_seconds}"
            )
        if self.read_size < 64:
            raise ValueError(f"Read size must be >= 64: {self.read_size}")


@dataclass(frozen=True)
class GpioConfig:
    """GPIO pin assignment (BCM numbering, not physical header pins).

    Attributes:
        input_pin: Reed switch input, pulled up; LOW means closed.
        output_pin: Door opener relay/transistor output, active high.
        debounce_ms: Bounce suppression applied before an edge is reported.
        pulse_ms: How long the output is held high for a button push.
    """

    input_pin: int = 5
    output_pin: int = 6
    debounce_ms: int = 50
    pulse_ms: int = 100

    def __post_init__(self) -> None:
        """Validate configuration.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.input_pin == self.output_pin:
            raise ValueError(
                f"Input and output pins must differ: {self.input_pin}"
            )
        if self.debounce_ms < 0:
            raise ValueError(f"Debounce must be >= 0ms: {self.debounce_ms}")
        if self.pulse_ms < 1:
            raise ValueError(f"Pulse must be >= 1ms: {self.pulse_ms}")


@dataclass(frozen=True)
class AlertConfig:
    """Open-door alert timing and history size.

    Attributes:
        delay_seconds: Interval between alert timer ticks.
        max_ticks: Ticks while open before the alert email is sent.
        history_size: Number of events kept in the history.
    """

    delay_seconds: float = 185.0
    max_ticks: int = 1
    history_size: int = 10

    def __post_init__(self) -> None:
        """Validate configuration.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.delay_seconds <= 0:
            raise ValueError(
                f"Alert delay must be > 0s: {self.delay_seconds}"
            )
        if self.max_ticks < 1:
            raise ValueError(f"Max ticks must be >= 1: {self.max_ticks}")
        if self.history_size < 1:
            raise ValueError(
                f"History size must be >= 1: {self.history_size}"
            )

    @property
    def threshold_seconds(self) -> float:
        """Total open time before the alert fires."""
        return self.delay_seconds * self.max_ticks


@dataclass(frozen=True)
class MonitorConfig:
    """Complete monitor configuration.

    Attributes:
        mail: Mail relay settings.
        gpio: Pin assignment.
        alert: Alert timing.
    """

    mail: MailConfig
    gpio: GpioConfig
    alert: AlertConfig

    def __post_init__(self) -> None:
        logger.info(
            "Config loaded: smtp=%s:%d, input_pin=%d, alert after %.0fs",
            self.mail.host,
            self.mail.port,
            self.gpio.input_pin,
            self.alert.threshold_seconds,
        )

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> "MonitorConfig":
        """Load configuration from a YAML file.

        A ``.env`` file is loaded first if present, then values tagged
        with ``!env VAR_NAME`` are resolved from the environment.

        Args:
            config_path: Path to YAML config file.  Defaults to
                ``~/.config/garagewatch/garagewatch.yaml`` (XDG).

        Returns:
            MonitorConfig instance.

        Raises:
            ConfigError: If the file is missing or values are invalid.
        """
        load_dotenv_once()

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            try:
                raw = yaml.load(f, Loader=_make_loader())
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        return cls._from_raw(raw)

    @classmethod
    def _from_raw(cls, raw: dict) -> "MonitorConfig":
        """Build config from parsed (but unresolved) YAML dict."""
        mail = _section(raw, "mail")
        gpio = _section(raw, "gpio")
        alert = _section(raw, "alert")

        try:
            return cls(
                mail=MailConfig(
                    host=_resolve(mail.get("host"), str, required="mail.host"),
                    port=_resolve(mail.get("port"), int, default=25),
                    helo_domain=_resolve(
                        mail.get("helo_domain"), str, default="localhost"
                    ),
                    from_address=_resolve(
                        mail.get("from"), str, required="mail.from"
                    ),
                    to_address=_resolve(
                        mail.get("to"), str, required="mail.to"
                    ),
                    header_from=_resolve(
                        mail.get("header_from"), str, default=""
                    ),
                    timeout_seconds=_resolve(
                        mail.get("timeout"), float, default=30.0
                    ),
                    read_size=_resolve(
                        mail.get("read_size"), int, default=1024
                    ),
                ),
                gpio=GpioConfig(
                    input_pin=_resolve(gpio.get("input_pin"), int, default=5),
                    output_pin=_resolve(gpio.get("output_pin"), int, default=6),
                    debounce_ms=_resolve(
                        gpio.get("debounce_ms"), int, default=50
                    ),
                    pulse_ms=_resolve(gpio.get("pulse_ms"), int, default=100),
                ),
                alert=AlertConfig(
                    delay_seconds=_resolve(
                        alert.get("delay"), float, default=185.0
                    ),
                    max_ticks=_resolve(alert.get("max_ticks"), int, default=1),
                    history_size=_resolve(
                        alert.get("history_size"), int, default=10
                    ),
                ),
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e
