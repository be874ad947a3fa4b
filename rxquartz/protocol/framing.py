"""Stream framing for the Quartz line protocol.

Every record starts with ``.`` and ends with ``\\r``. TCP delivers the
stream in arbitrary chunks, so a record may be split anywhere (including
mid-field) and one chunk may hold zero, one or many terminators.

:class:`StreamFramer` keeps the unterminated tail between chunks and
yields complete records in arrival order. :func:`frame_records` lifts the
same logic into a ReactiveX operator.

Example:
    >>> framer = StreamFramer()
    >>> list(framer.feed(b".RAD1,Ca"))
    []
    >>> list(framer.feed(b"m A\\r.UV1,5\\r"))
    ['.RAD1,Cam A', '.UV1,5']
"""

from collections.abc import Iterator
from typing import Callable

from reactivex import Observable

from ..utils import TERMINATOR, wire_decode
from .messages import DELIMITER


class StreamFramer:
    """Reassembles ``\\r``-terminated records from raw chunks.

    Chunks are decoded as Latin-1 so byte values 0x80-0xFF pass through
    unchanged. Within each candidate record everything before the last
    ``.`` is discarded, which drops stray bytes left in front of a real
    record. Empty candidates and candidates without a ``.`` are dropped
    silently.

    One framer serves one session; call :meth:`reset` whenever a new
    connection attempt starts so a stale fragment cannot corrupt the next
    session's first record.
    """

    def __init__(self):
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last terminator."""
        return self._buffer

    def feed(self, chunk: bytes | bytearray | str) -> Iterator[str]:
        """Append a chunk and return an iterator over the completed records.

        The chunk is buffered immediately; records are cut from the buffer
        as the iterator is consumed. Leaving an iterator unconsumed is
        harmless, the next iteration picks the records up.
        """
        self._buffer += wire_decode(chunk)
        return self._drain()

    def _drain(self) -> Iterator[str]:
        while True:
            end = self._buffer.find(TERMINATOR)
            if end == -1:
                return

            candidate = self._buffer[:end]
            self._buffer = self._buffer[end + 1:]

            start = candidate.rfind(DELIMITER)
            if start == -1:
                continue
            yield candidate[start:]

    def reset(self) -> None:
        """Drop any buffered partial record."""
        self._buffer = ""


def frame_records(
    framer: StreamFramer,
) -> Callable[[Observable[bytes]], Observable[str]]:
    """Return an operator that turns raw chunks into framed records.

    Records are emitted synchronously, in arrival order, on the thread
    that delivered the chunk. The framer's buffer is shared with the
    caller, so resetting it between sessions also resets the operator.
    """

    def _frame_records(source):
        def subscribe(observer, scheduler=None):
            def on_next(chunk) -> None:
                for record in framer.feed(chunk):
                    observer.on_next(record)

            return source.subscribe(
                on_next=on_next,
                on_error=observer.on_error,
                on_completed=observer.on_completed,
                scheduler=scheduler,
            )

        return Observable(subscribe)

    return _frame_records
