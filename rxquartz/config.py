"""Router connection configuration.

:class:`QuartzConfig` is the static settings struct handed to
:class:`~rxquartz.router.QuartzRouter`. It is applied by calling
``configure`` (or ``connect``) again; nothing watches it for changes.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping

from .protocol.messages import LEVELS

DEFAULT_PORT = 23
MAX_ROUTER_SIZE = 4096
MIN_POLL_INTERVAL = 1.0
MAX_POLL_INTERVAL = 60.0


@dataclass(frozen=True)
class QuartzConfig:
    """Typed router connection configuration.

    Attributes:
        host: Router address. Empty means "not configured"; connecting is
            refused with a bad-configuration status rather than attempted.
        port: TCP port. Quartz commonly listens on 23, but routers may be
            configured otherwise.
        max_destinations: Highest destination id queried on refresh.
        max_sources: Highest source id queried on refresh.
        poll_interval: Seconds between full refreshes while connected.
        verbose: Log raw traffic and unparsed records at DEBUG.
        poll_levels: Levels interrogated on each refresh, e.g. ``"VA"``.
        connect_timeout: Seconds to wait for the TCP dial.
    """

    host: str = ""
    port: int = DEFAULT_PORT
    max_destinations: int = 16
    max_sources: int = 16
    poll_interval: float = 5.0
    verbose: bool = False
    poll_levels: str = "V"
    connect_timeout: float = 5.0

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        for name in ("max_destinations", "max_sources"):
            value = getattr(self, name)
            if not 1 <= value <= MAX_ROUTER_SIZE:
                raise ValueError(f"{name} must be within 1..{MAX_ROUTER_SIZE}, got {value}")
        if not MIN_POLL_INTERVAL <= self.poll_interval <= MAX_POLL_INTERVAL:
            raise ValueError(
                f"poll_interval must be within {MIN_POLL_INTERVAL:g}..{MAX_POLL_INTERVAL:g}s,"
                f" got {self.poll_interval}"
            )
        if not self.poll_levels or any(c not in LEVELS for c in self.poll_levels):
            raise ValueError(f"poll_levels must be drawn from {LEVELS!r}, got {self.poll_levels!r}")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")

    @property
    def endpoint(self) -> tuple[str, int]:
        return self.host, self.port

    @property
    def is_configured(self) -> bool:
        return bool(self.host.strip())

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "QuartzConfig":
        """Build a config from integration-layer form values.

        Accepts the form's camel-case key names (``pollInterval``,
        ``maxDestinations``, ``verboseLogging`` and so on) as well as the
        field names, and coerces the string values such forms produce
        (``"23"`` for the port). Unknown keys are ignored.
        """
        aliases = {
            "pollInterval": "poll_interval",
            "pollIntervalSeconds": "poll_interval",
            "maxDestinations": "max_destinations",
            "maxSources": "max_sources",
            "verboseLogging": "verbose",
        }
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = aliases.get(key, key)
            if name not in known or value is None:
                continue
            kwargs[name] = _coerce(name, value)
        return cls(**kwargs)


def _coerce(name: str, value: Any) -> Any:
    if name == "host":
        return str(value).strip()
    if name == "poll_levels":
        return str(value).strip().upper()
    if name in ("port", "max_destinations", "max_sources"):
        return int(value)
    if name in ("poll_interval", "connect_timeout"):
        return float(value)
    if name == "verbose":
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    return value
