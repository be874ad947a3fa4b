"""Quartz wire protocol: framing, message model, interpretation, commands."""

from .commands import (
    CommandIntent,
    CommandPrefix,
    FireSalvo,
    Interrogate,
    InterrogateLock,
    ListRoutes,
    LockDestination,
    ReadDestinationName,
    ReadSourceName,
    Route,
    TakeState,
    UnlockDestination,
    build_interrogate_all_command,
    build_interrogate_command,
    build_list_routes_command,
    build_lock_command,
    build_lock_interrogate_command,
    build_read_destination_command,
    build_read_destinations_command,
    build_read_names_command,
    build_read_source_command,
    build_read_sources_command,
    build_route_command,
    build_route_to_selected_command,
    build_salvo_command,
    build_take_command,
    build_unlock_command,
    render_command,
)
from .framing import StreamFramer, frame_records
from .messages import (
    LEVELS,
    Acknowledge,
    CrosspointGroup,
    CrosspointUpdate,
    DestinationName,
    Error,
    LockState,
    LockStatus,
    PowerUp,
    QuartzMessage,
    ResponsePrefix,
    SourceName,
    Unknown,
    describe_lock,
    is_level,
)
from .parser import interpret, parse_crosspoint_groups

__all__ = [
    # framing
    "StreamFramer",
    "frame_records",
    # messages
    "LEVELS",
    "is_level",
    "ResponsePrefix",
    "LockState",
    "describe_lock",
    "CrosspointGroup",
    "DestinationName",
    "SourceName",
    "CrosspointUpdate",
    "LockStatus",
    "Acknowledge",
    "Error",
    "PowerUp",
    "Unknown",
    "QuartzMessage",
    # parser
    "interpret",
    "parse_crosspoint_groups",
    # commands
    "CommandPrefix",
    "build_read_destination_command",
    "build_read_source_command",
    "build_read_destinations_command",
    "build_read_sources_command",
    "build_read_names_command",
    "build_route_command",
    "build_salvo_command",
    "build_lock_command",
    "build_unlock_command",
    "build_lock_interrogate_command",
    "build_interrogate_command",
    "build_interrogate_all_command",
    "build_list_routes_command",
    "ReadDestinationName",
    "ReadSourceName",
    "Route",
    "FireSalvo",
    "LockDestination",
    "UnlockDestination",
    "InterrogateLock",
    "Interrogate",
    "ListRoutes",
    "CommandIntent",
    "render_command",
    "TakeState",
    "build_route_to_selected_command",
    "build_take_command",
]
