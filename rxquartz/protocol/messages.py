"""Typed message model for the Quartz protocol.

Every framed record coming from the router is interpreted into exactly one
of the variants below. The set is closed: anything the interpreter cannot
classify becomes :class:`Unknown`, so downstream code can dispatch with a
plain ``isinstance`` chain.

Record shapes (leading ``.`` included, terminator excluded):
    .RAD{id},{name}              DestinationName
    .RAS{id},{name}              SourceName
    .U{levels}{dest},{src}       CrosspointUpdate
    .BA{dest},{status}           LockStatus
    .A[{data}]                   Acknowledge
    .E...                        Error
    .P...                        PowerUp
"""

from dataclasses import dataclass, field
from enum import Enum

# Independent signal planes, in the canonical order the router reports them.
LEVELS = "VABCDEFGHIJKLMNO"

DELIMITER = "."


def is_level(char: str) -> bool:
    """Return True if ``char`` is a single Level tag."""
    return len(char) == 1 and char in LEVELS


class ResponsePrefix(str, Enum):
    """Record prefixes sent by the router, most specific first."""

    DESTINATION_NAME = ".RAD"
    SOURCE_NAME = ".RAS"
    UPDATE = ".U"
    LOCK_STATUS = ".BA"
    ACKNOWLEDGE = ".A"
    ERROR = ".E"
    POWER_UP = ".P"


class LockState(Enum):
    """Decoded meaning of a ``.BA`` status value."""

    UNLOCKED = "unlocked"
    PANEL = "panel"  # protected lock held by a panel
    UNPROTECTED = "unprotected"


def describe_lock(status: int) -> LockState:
    """Classify a raw lock status (0, 1-254 or 255)."""
    if status == 0:
        return LockState.UNLOCKED
    if status == 255:
        return LockState.UNPROTECTED
    return LockState.PANEL


@dataclass(frozen=True)
class CrosspointGroup:
    """One ``{level}{dest},{src}`` group from an interrogate or list reply."""

    level: str
    destination: int
    source: int


@dataclass(frozen=True)
class DestinationName:
    id: int
    name: str
    raw: str = ""


@dataclass(frozen=True)
class SourceName:
    id: int
    name: str
    raw: str = ""


@dataclass(frozen=True)
class CrosspointUpdate:
    """Route change notification, possibly covering several levels."""

    levels: tuple[str, ...]
    destination: int
    source: int
    raw: str = ""


@dataclass(frozen=True)
class LockStatus:
    destination: int
    status: int
    raw: str = ""

    @property
    def state(self) -> LockState:
        return describe_lock(self.status)

    @property
    def panel_address(self) -> int | None:
        """Q-link address of the locking panel, for protected locks only."""
        if self.state is LockState.PANEL:
            return self.status - 1
        return None


@dataclass(frozen=True)
class Acknowledge:
    """``.A`` reply; ``data`` is None for a bare acknowledgement.

    Interrogate and list replies carry their crosspoints in ``data``;
    the parsed groups are exposed as ``crosspoints``.
    """

    data: str | None
    raw: str = ""
    crosspoints: tuple[CrosspointGroup, ...] = field(default=(), compare=False)


@dataclass(frozen=True)
class Error:
    raw: str


@dataclass(frozen=True)
class PowerUp:
    raw: str = DELIMITER + "P"


@dataclass(frozen=True)
class Unknown:
    raw: str


QuartzMessage = (
    DestinationName
    | SourceName
    | CrosspointUpdate
    | LockStatus
    | Acknowledge
    | Error
    | PowerUp
    | Unknown
)
