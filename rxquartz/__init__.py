"""Convenience exports for the :mod:`rxquartz` package."""

from .cli import ConsoleRequest, execute_console_action, from_cli, parse_console_line  # noqa: F401
from .config import DEFAULT_PORT, QuartzConfig  # noqa: F401
from .connection import QuartzConnection  # noqa: F401
from .events import (  # noqa: F401
    ConnectionState,
    ConnectionStatusChanged,
    CrosspointChanged,
    DirectoryChanged,
    DirectoryKind,
    LockChanged,
    ProtocolError,
    RouterEvent,
    RouterPoweredUp,
)
from .mechanism import QuartzException  # noqa: F401
from .protocol import (  # noqa: F401
    LEVELS,
    FireSalvo,
    Interrogate,
    InterrogateLock,
    ListRoutes,
    LockDestination,
    ReadDestinationName,
    ReadSourceName,
    Route,
    StreamFramer,
    TakeState,
    UnlockDestination,
    frame_records,
    interpret,
    parse_crosspoint_groups,
    render_command,
)
from .router import QuartzRouter  # noqa: F401
from .state import RouterSnapshot, RouterState  # noqa: F401

__all__ = [
    "QuartzException",
    "QuartzConfig",
    "DEFAULT_PORT",

    # engine
    "QuartzRouter",
    "QuartzConnection",
    "RouterState",
    "RouterSnapshot",

    # protocol
    "LEVELS",
    "StreamFramer",
    "frame_records",
    "interpret",
    "parse_crosspoint_groups",
    "render_command",
    "TakeState",
    "ReadDestinationName",
    "ReadSourceName",
    "Route",
    "FireSalvo",
    "LockDestination",
    "UnlockDestination",
    "InterrogateLock",
    "Interrogate",
    "ListRoutes",

    # events
    "RouterEvent",
    "DirectoryKind",
    "DirectoryChanged",
    "CrosspointChanged",
    "LockChanged",
    "ConnectionState",
    "ConnectionStatusChanged",
    "ProtocolError",
    "RouterPoweredUp",

    # CLI
    "from_cli",
    "parse_console_line",
    "execute_console_action",
    "ConsoleRequest",
]
