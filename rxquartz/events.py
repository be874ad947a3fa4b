"""Typed events published by the router engine.

Subscribers receive these through :attr:`QuartzRouter.events` (or one of
its per-type views). The set is closed; each event is an immutable
dataclass.
"""

from dataclasses import dataclass
from enum import Enum

from .protocol.messages import LockState, describe_lock


class DirectoryKind(Enum):
    """Which name directory an entry belongs to."""

    DESTINATION = "destination"
    SOURCE = "source"

    @property
    def placeholder(self) -> str:
        """Label of the sentinel entry shown before any name has arrived."""
        if self is DirectoryKind.DESTINATION:
            return "No Destinations Loaded"
        return "No Sources Loaded"

    @property
    def fallback_prefix(self) -> str:
        if self is DirectoryKind.DESTINATION:
            return "Dest"
        return "Src"


class ConnectionState(Enum):
    """Connection lifecycle states.

    State transitions:
        DISCONNECTED → CONNECTING: connect() called with a usable host
        CONNECTING → CONNECTED: socket opened
        CONNECTING → FAULTED: dial failed or timed out
        CONNECTED → FAULTED: socket error
        CONNECTED → DISCONNECTED: closed by peer or by disconnect()
        any → CONNECTING: connect() called again
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAULTED = "faulted"


@dataclass(frozen=True)
class DirectoryChanged:
    kind: DirectoryKind
    id: int
    name: str


@dataclass(frozen=True)
class CrosspointChanged:
    level: str
    destination: int
    source: int


@dataclass(frozen=True)
class LockChanged:
    destination: int
    status: int

    @property
    def state(self) -> LockState:
        return describe_lock(self.status)


@dataclass(frozen=True)
class ConnectionStatusChanged:
    """Connection state plus a human-readable reason, if any."""

    state: ConnectionState
    detail: str = ""


@dataclass(frozen=True)
class ProtocolError:
    """The router answered with ``.E``; the session stays open."""

    raw: str


@dataclass(frozen=True)
class RouterPoweredUp:
    """The router reset and may have lost session state."""


RouterEvent = (
    DirectoryChanged
    | CrosspointChanged
    | LockChanged
    | ConnectionStatusChanged
    | ProtocolError
    | RouterPoweredUp
)
