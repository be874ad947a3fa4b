"""In-memory model of a router's addressable state.

:class:`RouterState` holds the destination and source name directories,
the crosspoint table and the lock table, and applies interpreted
messages to them. Every mutation goes through :meth:`RouterState.apply`
(or the reset helpers); readers get copies or immutable snapshots.

Crosspoint table layout::

    {level: {destination: source}}
    {"V": {1: 5, 2: 3}, "A": {1: 5}}

An absent (level, destination) pair means "not observed yet", never
"source 0". The table only reflects what the router confirmed; sending a
route command does not touch it.

State is not thread-safe on its own. The router engine applies messages
one at a time under its own lock.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .events import (
    CrosspointChanged,
    DirectoryChanged,
    DirectoryKind,
    LockChanged,
    ProtocolError,
    RouterEvent,
    RouterPoweredUp,
)
from .protocol.messages import (
    Acknowledge,
    CrosspointGroup,
    CrosspointUpdate,
    DestinationName,
    Error,
    LockStatus,
    PowerUp,
    QuartzMessage,
    SourceName,
)

# Directory id reserved for the "nothing loaded yet" placeholder.
SENTINEL_ID = 0


def _fresh_directory(kind: DirectoryKind) -> dict[int, str]:
    return {SENTINEL_ID: kind.placeholder}


@dataclass(frozen=True)
class RouterSnapshot:
    """Immutable copy of the router state at one point in time."""

    destinations: Mapping[int, str]
    sources: Mapping[int, str]
    crosspoints: Mapping[str, Mapping[int, int]]
    locks: Mapping[int, int] = field(default_factory=dict)

    def diff(self, newer: "RouterSnapshot") -> list[RouterEvent]:
        """Events that would turn this snapshot into ``newer``.

        Only additions and changes are reported; entries missing from
        ``newer`` are ignored since the state never forgets a confirmed
        value outside of a reset.
        """
        events: list[RouterEvent] = []
        for kind, old, new in (
            (DirectoryKind.DESTINATION, self.destinations, newer.destinations),
            (DirectoryKind.SOURCE, self.sources, newer.sources),
        ):
            for entry_id, name in new.items():
                if entry_id != SENTINEL_ID and old.get(entry_id) != name:
                    events.append(DirectoryChanged(kind, entry_id, name))

        for level, routes in newer.crosspoints.items():
            previous = self.crosspoints.get(level, {})
            for destination, source in routes.items():
                if previous.get(destination) != source:
                    events.append(CrosspointChanged(level, destination, source))

        for destination, status in newer.locks.items():
            if self.locks.get(destination) != status:
                events.append(LockChanged(destination, status))

        return events


class RouterState:
    """Authoritative store for names, routes and locks of one router."""

    def __init__(self):
        self._directories: dict[DirectoryKind, dict[int, str]] = {
            kind: _fresh_directory(kind) for kind in DirectoryKind
        }
        self._crosspoints: dict[str, dict[int, int]] = {}
        self._locks: dict[int, int] = {}

    # ------------------------------------------------------------------ #
    # Read accessors
    # ------------------------------------------------------------------ #

    @property
    def destinations(self) -> dict[int, str]:
        return dict(self._directories[DirectoryKind.DESTINATION])

    @property
    def sources(self) -> dict[int, str]:
        return dict(self._directories[DirectoryKind.SOURCE])

    def directory(self, kind: DirectoryKind) -> dict[int, str]:
        return dict(self._directories[kind])

    @property
    def crosspoints(self) -> dict[str, dict[int, int]]:
        return {level: dict(routes) for level, routes in self._crosspoints.items()}

    @property
    def locks(self) -> dict[int, int]:
        return dict(self._locks)

    def is_loaded(self, kind: DirectoryKind) -> bool:
        """True once at least one real entry of ``kind`` has arrived."""
        return SENTINEL_ID not in self._directories[kind]

    def routed_source(self, level: str, destination: int) -> int | None:
        """Source currently routed to ``destination`` on ``level``, if known."""
        return self._crosspoints.get(level, {}).get(destination)

    def lock_status(self, destination: int) -> int | None:
        return self._locks.get(destination)

    def directory_name(self, kind: DirectoryKind, entry_id: int) -> str:
        """Display name for an id, falling back to ``"Dest {id}"`` / ``"Src {id}"``."""
        if entry_id != SENTINEL_ID:
            name = self._directories[kind].get(entry_id)
            if name is not None:
                return name
        return f"{kind.fallback_prefix} {entry_id}"

    def describe(self, kind: DirectoryKind, entry_id: int) -> str:
        """Label for log lines: ``"Cam A (1)"`` when named, else ``"Dest 1"``."""
        if entry_id != SENTINEL_ID and entry_id in self._directories[kind]:
            return f"{self._directories[kind][entry_id]} ({entry_id})"
        return f"{kind.fallback_prefix} {entry_id}"

    def snapshot(self) -> RouterSnapshot:
        return RouterSnapshot(
            destinations=MappingProxyType(self.destinations),
            sources=MappingProxyType(self.sources),
            crosspoints=MappingProxyType(
                {
                    level: MappingProxyType(routes)
                    for level, routes in self.crosspoints.items()
                }
            ),
            locks=MappingProxyType(self.locks),
        )

    # ------------------------------------------------------------------ #
    # Mutation
    # ------------------------------------------------------------------ #

    def apply(self, message: QuartzMessage) -> list[RouterEvent]:
        """Apply one interpreted message and return the resulting events.

        Unknown records and acknowledgements without crosspoint data
        produce no events.
        """
        if isinstance(message, DestinationName):
            return self._upsert_name(DirectoryKind.DESTINATION, message.id, message.name)

        if isinstance(message, SourceName):
            return self._upsert_name(DirectoryKind.SOURCE, message.id, message.name)

        if isinstance(message, CrosspointUpdate):
            return [
                self.set_crosspoint(level, message.destination, message.source)
                for level in message.levels
            ]

        if isinstance(message, Acknowledge):
            return self.apply_groups(message.crosspoints)

        if isinstance(message, LockStatus):
            return self._set_lock(message.destination, message.status)

        if isinstance(message, Error):
            return [ProtocolError(message.raw)]

        if isinstance(message, PowerUp):
            return [RouterPoweredUp()]

        return []

    def apply_groups(self, groups: tuple[CrosspointGroup, ...] | list[CrosspointGroup]) -> list[RouterEvent]:
        """Apply crosspoints parsed from an interrogate or list reply."""
        return [
            self.set_crosspoint(group.level, group.destination, group.source)
            for group in groups
        ]

    def set_crosspoint(self, level: str, destination: int, source: int) -> CrosspointChanged:
        # Never deduplicated: every confirmed route is reported.
        self._crosspoints.setdefault(level, {})[destination] = source
        return CrosspointChanged(level, destination, source)

    def _upsert_name(self, kind: DirectoryKind, entry_id: int, name: str) -> list[RouterEvent]:
        directory = self._directories[kind]
        directory.pop(SENTINEL_ID, None)

        if directory.get(entry_id) == name:
            return []
        directory[entry_id] = name
        return [DirectoryChanged(kind, entry_id, name)]

    def _set_lock(self, destination: int, status: int) -> list[RouterEvent]:
        if self._locks.get(destination) == status:
            return []
        self._locks[destination] = status
        return [LockChanged(destination, status)]

    # ------------------------------------------------------------------ #
    # Resets
    # ------------------------------------------------------------------ #

    def reset_crosspoints(self) -> None:
        """Forget per-session router state: routes and locks."""
        self._crosspoints.clear()
        self._locks.clear()

    def reset_directories(self) -> None:
        for kind in DirectoryKind:
            self._directories[kind] = _fresh_directory(kind)

    def reset(self) -> None:
        self.reset_crosspoints()
        self.reset_directories()
