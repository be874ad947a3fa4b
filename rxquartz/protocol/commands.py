"""Command builders for the Quartz protocol.

Single-command builders return the command without its ``\\r``
terminator; the connection appends it when sending. Bulk builders
(``build_read_*_command``, ``build_interrogate_all_command``) return
several commands, each already terminated, ready to go out in one write.

None of the builders bound-check ids against the router size; that is the
caller's concern. The command intents further down validate their fields
on construction and render through the same builders.
"""

from dataclasses import dataclass

from ..utils import TERMINATOR
from .messages import LEVELS, is_level


class CommandPrefix:
    """Command prefixes understood by the router."""

    READ_DESTINATION = ".RD"
    READ_SOURCE = ".RS"
    INTERROGATE = ".I"
    LIST_ROUTES = ".L"
    SET_CROSSPOINT = ".S"
    FIRE_SALVO = ".F"
    LOCK = ".B"


# =============================================================================
# Builders
# =============================================================================


def build_read_destination_command(destination: int) -> str:
    """``.RD{id}``: ask for one destination name."""
    return f"{CommandPrefix.READ_DESTINATION}{destination}"


def build_read_source_command(source: int) -> str:
    """``.RS{id}``: ask for one source name."""
    return f"{CommandPrefix.READ_SOURCE}{source}"


def build_read_destinations_command(max_destinations: int) -> str:
    return "".join(
        build_read_destination_command(i) + TERMINATOR
        for i in range(1, max_destinations + 1)
    )


def build_read_sources_command(max_sources: int) -> str:
    return "".join(
        build_read_source_command(i) + TERMINATOR for i in range(1, max_sources + 1)
    )


def build_read_names_command(max_destinations: int, max_sources: int) -> str:
    """Read every destination name, then every source name.

    Example:
        >>> build_read_names_command(2, 1)
        '.RD1\\r.RD2\\r.RS1\\r'
    """
    return build_read_destinations_command(max_destinations) + build_read_sources_command(
        max_sources
    )


def build_route_command(levels: str, destination: int, source: int) -> str:
    """``.S{levels}{dest},{src}``, e.g. ``.SV1,5`` or ``.SVA1,5``."""
    return f"{CommandPrefix.SET_CROSSPOINT}{levels}{destination},{source}"


def build_salvo_command(salvo: int) -> str:
    return f"{CommandPrefix.FIRE_SALVO}{salvo}"


def build_lock_command(destination: int) -> str:
    return f"{CommandPrefix.LOCK}L{destination}"


def build_unlock_command(destination: int) -> str:
    return f"{CommandPrefix.LOCK}U{destination}"


def build_lock_interrogate_command(destination: int) -> str:
    """``.BI{dest}``; the router answers with ``.BA{dest},{status}``."""
    return f"{CommandPrefix.LOCK}I{destination}"


def build_interrogate_command(level: str, destination: int) -> str:
    """``.I{level}{dest}``; the router answers with ``.A{level}{dest},{src}``."""
    return f"{CommandPrefix.INTERROGATE}{level}{destination}"


def build_interrogate_all_command(level: str, max_destinations: int) -> str:
    return "".join(
        build_interrogate_command(level, i) + TERMINATOR
        for i in range(1, max_destinations + 1)
    )


def build_list_routes_command(level: str, start_destination: int) -> str:
    """``.L{level}{start},-``: list up to 8 routes from ``start_destination``."""
    return f"{CommandPrefix.LIST_ROUTES}{level}{start_destination},-"


# =============================================================================
# Validation
# =============================================================================


def validate_levels(levels: str) -> str:
    """Check a level string such as ``"VA"``; returns it unchanged."""
    if not levels:
        raise ValueError("levels must not be empty")
    bad = [c for c in levels if c not in LEVELS]
    if bad:
        raise ValueError(f"invalid level(s) {''.join(bad)!r}, expected from {LEVELS!r}")
    return levels


def validate_level(level: str) -> str:
    if not is_level(level):
        raise ValueError(f"invalid level {level!r}, expected one of {LEVELS!r}")
    return level


def validate_id(value: int, what: str = "id") -> int:
    # bool is an int subclass; True is never a meaningful id.
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{what} must be a positive integer, got {value!r}")
    return value


# =============================================================================
# Command intents
# =============================================================================


@dataclass(frozen=True)
class ReadDestinationName:
    destination: int

    def __post_init__(self):
        validate_id(self.destination, "destination")

    def render(self) -> str:
        return build_read_destination_command(self.destination)


@dataclass(frozen=True)
class ReadSourceName:
    source: int

    def __post_init__(self):
        validate_id(self.source, "source")

    def render(self) -> str:
        return build_read_source_command(self.source)


@dataclass(frozen=True)
class Route:
    """Route ``source`` to ``destination`` on every level in ``levels``."""

    levels: str
    destination: int
    source: int

    def __post_init__(self):
        validate_levels(self.levels)
        validate_id(self.destination, "destination")
        validate_id(self.source, "source")

    def render(self) -> str:
        return build_route_command(self.levels, self.destination, self.source)


@dataclass(frozen=True)
class FireSalvo:
    salvo: int

    def __post_init__(self):
        validate_id(self.salvo, "salvo")

    def render(self) -> str:
        return build_salvo_command(self.salvo)


@dataclass(frozen=True)
class LockDestination:
    destination: int

    def __post_init__(self):
        validate_id(self.destination, "destination")

    def render(self) -> str:
        return build_lock_command(self.destination)


@dataclass(frozen=True)
class UnlockDestination:
    destination: int

    def __post_init__(self):
        validate_id(self.destination, "destination")

    def render(self) -> str:
        return build_unlock_command(self.destination)


@dataclass(frozen=True)
class InterrogateLock:
    destination: int

    def __post_init__(self):
        validate_id(self.destination, "destination")

    def render(self) -> str:
        return build_lock_interrogate_command(self.destination)


@dataclass(frozen=True)
class Interrogate:
    level: str
    destination: int

    def __post_init__(self):
        validate_level(self.level)
        validate_id(self.destination, "destination")

    def render(self) -> str:
        return build_interrogate_command(self.level, self.destination)


@dataclass(frozen=True)
class ListRoutes:
    level: str
    start_destination: int = 1

    def __post_init__(self):
        validate_level(self.level)
        validate_id(self.start_destination, "start_destination")

    def render(self) -> str:
        return build_list_routes_command(self.level, self.start_destination)


CommandIntent = (
    ReadDestinationName
    | ReadSourceName
    | Route
    | FireSalvo
    | LockDestination
    | UnlockDestination
    | InterrogateLock
    | Interrogate
    | ListRoutes
)


def render_command(command: CommandIntent | str) -> str:
    """Render an intent, or pass a pre-built command string through."""
    if isinstance(command, str):
        return command
    return command.render()


# =============================================================================
# Take workflow
# =============================================================================


@dataclass
class TakeState:
    """Two-step "arm then fire" routing state.

    Owned by the integration layer. ``selected_destination`` backs the
    route-to-selected pattern; ``pending_destination`` and
    ``pending_source`` back arm/take.
    """

    selected_destination: int | None = None
    pending_destination: int | None = None
    pending_source: int | None = None

    def clear_pending(self) -> None:
        self.pending_destination = None
        self.pending_source = None


def build_route_to_selected_command(
    take: TakeState, source: int, levels: str = "V"
) -> str | None:
    """Route ``source`` to the selected destination, or None if none is selected."""
    if take.selected_destination is None:
        return None
    return Route(levels, take.selected_destination, source).render()


def build_take_command(take: TakeState, levels: str = "V") -> str | None:
    """Route the armed source to the armed destination, or None if either is unset."""
    if take.pending_destination is None or take.pending_source is None:
        return None
    return Route(levels, take.pending_destination, take.pending_source).render()
