"""Message interpreter for framed Quartz records.

:func:`interpret` classifies one record (leading ``.`` kept, ``\\r``
stripped) into a typed message by fixed-prefix matching. Malformed field
content never raises; the record is reclassified as
:class:`~rxquartz.protocol.messages.Unknown` instead, because a noisy
router must not stop the pipeline.

Example:
    >>> interpret(".UVA1,5")
    CrosspointUpdate(levels=('V', 'A'), destination=1, source=5, raw='.UVA1,5')
    >>> parse_crosspoint_groups("V001,005V002,003")
    [CrosspointGroup(level='V', destination=1, source=5), CrosspointGroup(level='V', destination=2, source=3)]

Note:
    Level runs are not checked for canonical order. ``.UAV1,5`` is read
    as levels ``A`` and ``V``; a run broken by a non-level character is cut
    at that character.
"""

from .messages import (
    Acknowledge,
    CrosspointGroup,
    CrosspointUpdate,
    DestinationName,
    Error,
    LockStatus,
    PowerUp,
    QuartzMessage,
    ResponsePrefix,
    SourceName,
    Unknown,
    is_level,
)


def _to_int(text: str) -> int | None:
    """Parse a decimal field, returning None when it is not one."""
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def _split_pair(payload: str) -> tuple[int, int] | None:
    """Parse ``{a},{b}`` into two integers."""
    head, comma, tail = payload.partition(",")
    if not comma:
        return None
    a = _to_int(head)
    b = _to_int(tail)
    if a is None or b is None:
        return None
    return a, b


def _parse_name(record: str, prefix: ResponsePrefix) -> QuartzMessage:
    payload = record[len(prefix.value):]
    head, comma, name = payload.partition(",")
    entry_id = _to_int(head)
    if not comma or entry_id is None:
        return Unknown(record)

    if prefix is ResponsePrefix.DESTINATION_NAME:
        return DestinationName(entry_id, name, raw=record)
    return SourceName(entry_id, name, raw=record)


def _parse_update(record: str) -> QuartzMessage:
    payload = record[len(ResponsePrefix.UPDATE.value):]

    level_end = 0
    while level_end < len(payload) and is_level(payload[level_end]):
        level_end += 1
    if level_end == 0:
        return Unknown(record)

    pair = _split_pair(payload[level_end:])
    if pair is None:
        return Unknown(record)

    destination, source = pair
    return CrosspointUpdate(
        tuple(payload[:level_end]), destination, source, raw=record
    )


def _parse_lock_status(record: str) -> QuartzMessage:
    pair = _split_pair(record[len(ResponsePrefix.LOCK_STATUS.value):])
    if pair is None:
        return Unknown(record)

    destination, status = pair
    return LockStatus(destination, status, raw=record)


def _parse_acknowledge(record: str) -> QuartzMessage:
    data = record[len(ResponsePrefix.ACKNOWLEDGE.value):]
    if not data:
        return Acknowledge(None, raw=record)
    return Acknowledge(data, raw=record, crosspoints=tuple(parse_crosspoint_groups(data)))


def parse_crosspoint_groups(data: str) -> list[CrosspointGroup]:
    """Parse concatenated ``{level}{dest},{src}`` groups from ``.A`` data.

    Groups carry no separator; the next group's level tag ends the
    previous source. Parsing runs greedily left to right and stops when
    the remainder does not start with a level tag or lacks a comma. A
    group whose numbers do not parse aborts the rest of the data, but the
    groups parsed before it are kept.

    Args:
        data: Acknowledge payload, without the ``.A`` prefix.

    Returns:
        The parsed groups, in order. Empty when ``data`` is not a
        crosspoint reply at all.
    """
    groups: list[CrosspointGroup] = []
    remaining = data

    while remaining and is_level(remaining[0]):
        level = remaining[0]
        remaining = remaining[1:]

        dest_text, comma, remaining = remaining.partition(",")
        if not comma:
            break

        src_end = 0
        while src_end < len(remaining) and not is_level(remaining[src_end]):
            src_end += 1
        src_text = remaining[:src_end]
        remaining = remaining[src_end:]

        destination = _to_int(dest_text)
        source = _to_int(src_text)
        if destination is None or source is None:
            break

        groups.append(CrosspointGroup(level, destination, source))

    return groups


def interpret(record: str) -> QuartzMessage:
    """Classify one framed record into a typed message.

    Prefixes are tried most specific first: ``.RAD``, ``.RAS``, ``.U``,
    ``.BA``, ``.A``, ``.E``, ``.P``. Anything else is ``Unknown``.
    """
    if record.startswith(ResponsePrefix.DESTINATION_NAME.value):
        return _parse_name(record, ResponsePrefix.DESTINATION_NAME)

    if record.startswith(ResponsePrefix.SOURCE_NAME.value):
        return _parse_name(record, ResponsePrefix.SOURCE_NAME)

    # Sent whenever a route changes, whoever changed it.
    if record.startswith(ResponsePrefix.UPDATE.value):
        return _parse_update(record)

    if record.startswith(ResponsePrefix.LOCK_STATUS.value):
        return _parse_lock_status(record)

    if record.startswith(ResponsePrefix.ACKNOWLEDGE.value):
        return _parse_acknowledge(record)

    if record.startswith(ResponsePrefix.ERROR.value):
        return Error(record)

    if record.startswith(ResponsePrefix.POWER_UP.value):
        return PowerUp(record)

    return Unknown(record)
