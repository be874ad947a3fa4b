"""TCP session to a Quartz router as a ReactiveX subject.

Provides QuartzConnection, which dials the router on a background asyncio
loop, emits raw byte chunks as they arrive, and drives the periodic
refresh timer while the session is open.
"""

import asyncio
import threading

import reactivex as rx
from opentelemetry._logs import LoggerProvider, SeverityNumber
from opentelemetry.trace import Tracer, TracerProvider
from reactivex import Observable, Subject
from reactivex.abc import DisposableBase
from reactivex.scheduler.eventloop import AsyncIOThreadSafeScheduler
from reactivex.subject import BehaviorSubject

from ._otel_mixin import OTelLoggingMixin
from .events import ConnectionState, ConnectionStatusChanged
from .mechanism import QuartzException
from .utils import get_full_error_info, get_short_error_info, terminate, wire_encode

BAD_CONFIGURATION = "bad configuration: no host"
CLOSED_BY_PEER = "closed by peer"


class QuartzConnection(Subject, OTelLoggingMixin):
    """A ReactiveX-compatible client for one router TCP session.

    This subject behaves as both an *Observable*, emitting the raw byte
    chunks read from the router socket, and an *Observer*, accepting
    command texts to write to it.

    Key Features
    ------------
    * **Single loop thread** -- socket reads, status transitions and poll
      ticks are all delivered on the connection's own asyncio loop, so
      downstream consumers see them in arrival order.
    * **Poll timer** -- while connected, :attr:`refresh_requests` emits once
      on open and then every ``poll_interval`` seconds.
    * **No queueing** -- commands sent while not connected are refused.
    * **No auto-reconnect** -- a failed or dropped session stays down until
      :meth:`connect` is called again.

    Parameters
    ----------
    connect_timeout : float
        Seconds to wait for the TCP dial before reporting ``FAULTED``.
    read_size : int
        Maximum bytes per socket read.
    name : str
        Log source identification.
    min_severity : SeverityNumber
        Log records below this severity are dropped.
    """

    def __init__(
        self,
        connect_timeout: float = 5.0,
        read_size: int = 4096,
        name: str = "QuartzConnection",
        min_severity: SeverityNumber = SeverityNumber.DEBUG,
        tracer_provider: TracerProvider | None = None,
        logger_provider: LoggerProvider | None = None,
    ):
        super().__init__()
        self.connect_timeout = connect_timeout
        self._read_size = read_size
        self._name = name
        self._min_severity = min_severity

        # OTel instrumentation
        self._tracer: Tracer | None = (
            tracer_provider.get_tracer(f"rxquartz.{self._name}")
            if tracer_provider
            else None
        )
        self._logger = (
            logger_provider.get_logger(f"rxquartz.{self._name}")
            if logger_provider
            else None
        )

        # Private asyncio loop running in a background thread
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._loop_ready = threading.Event()

        # Session resources; only touched on the loop thread
        self._session_task: asyncio.Task | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._poll_timer: DisposableBase | None = None

        self._state = ConnectionState.DISCONNECTED
        self._status_subject: BehaviorSubject[ConnectionStatusChanged] = (
            BehaviorSubject(ConnectionStatusChanged(ConnectionState.DISCONNECTED))
        )
        self._refresh_subject: Subject[str] = Subject()

        self._closed = False

        self._start_loop_thread()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def min_severity(self) -> SeverityNumber:
        return self._min_severity

    @min_severity.setter
    def min_severity(self, value: SeverityNumber) -> None:
        self._min_severity = value

    @property
    def status(self) -> Observable[ConnectionStatusChanged]:
        """Stream of connection status changes.

        New subscribers immediately receive the current status.
        """
        return self._status_subject

    @property
    def refresh_requests(self) -> Observable[str]:
        """Emits ``"connected"`` when a session opens, then ``"poll"`` per tick."""
        return self._refresh_subject

    # ---------------- public operations ---------------- #

    def connect(self, host: str, port: int, poll_interval: float = 5.0) -> bool:
        """Start a new session, replacing any previous one.

        Returns False (and reports a bad-configuration status) when no host
        is given; the dial itself happens asynchronously on the loop.
        """
        if self._closed:
            self._log("Connect requested after close; ignored.", "WARN")
            return False

        host = (host or "").strip()
        if not host:
            self._log("Cannot connect: no host configured.", "WARN")
            self._call_on_loop(
                self._end_session, ConnectionState.DISCONNECTED, BAD_CONFIGURATION
            )
            return False

        self._call_on_loop(self._begin_session, host, port, poll_interval)
        return True

    def disconnect(self) -> None:
        """Tear down the current session. Safe to call repeatedly."""
        if self._closed:
            return
        self._call_on_loop(self._end_session, ConnectionState.DISCONNECTED, "disconnected")

    def send(self, text: str) -> bool:
        """Write one command to the router.

        The text is terminated with ``\\r`` if needed and encoded as
        Latin-1. Returns False without writing unless the session is
        ``CONNECTED``.

        Raises:
            ValueError: If the text cannot be encoded as Latin-1.
        """
        payload = wire_encode(terminate(text))
        if self._state is not ConnectionState.CONNECTED or self._loop is None:
            self._log(f"Dropped command while {self._state.value}.", "DEBUG")
            return False
        self._loop.call_soon_threadsafe(self._write, payload)
        return True

    def on_next(self, value: str) -> None:
        """Send a command text to the router."""
        self.send(value)

    def on_error(self, error: Exception) -> None:
        """Log errors pushed into the connection; the session stays up."""
        rx_exception = QuartzException(error, source=self._name, note="Upstream error")
        self._log(str(rx_exception), "ERROR")

    def on_completed(self) -> None:
        self.close()

    def close(self) -> None:
        """Final shutdown: end the session, stop the loop, complete streams."""
        if self._closed:
            return
        self._closed = True
        self._log("Closing...", "INFO")

        self._loop_ready.wait(timeout=5.0)
        loop = self._loop
        if loop is not None and not loop.is_closed():

            async def _async_close() -> None:
                try:
                    task = self._session_task
                    self._end_session(ConnectionState.DISCONNECTED, "closed")
                    if task is not None:
                        await asyncio.gather(task, return_exceptions=True)
                finally:
                    asyncio.get_running_loop().stop()

            loop.call_soon_threadsafe(lambda: loop.create_task(_async_close()))

        if self._thread is not None:
            self._thread.join(timeout=3.0)

        self._log("Closed.", "INFO")
        self._status_subject.on_completed()
        self._refresh_subject.on_completed()
        super().on_completed()

    # ---------------- session handling (loop thread) ---------------- #

    def _set_status(self, state: ConnectionState, detail: str = "") -> None:
        self._state = state
        self._log(
            f"Connection state: {state.value}" + (f" ({detail})" if detail else ""),
            "DEBUG",
        )
        self._status_subject.on_next(ConnectionStatusChanged(state, detail))

    def _begin_session(self, host: str, port: int, poll_interval: float) -> None:
        self._release_session()
        remote = f"{host}:{port}"
        self._set_status(ConnectionState.CONNECTING, remote)
        assert self._loop is not None
        self._session_task = self._loop.create_task(
            self._run_session(host, port, poll_interval)
        )

    def _end_session(self, state: ConnectionState, detail: str) -> None:
        self._release_session()
        if self._state is not state or detail == BAD_CONFIGURATION:
            self._set_status(state, detail)

    def _release_session(self) -> None:
        """Cancel the session task, dispose the poll timer, close the socket."""
        task = self._session_task
        self._session_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._dispose_poll_timer()
        self._close_writer()

    def _dispose_poll_timer(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.dispose()
            self._poll_timer = None

    def _close_writer(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None

    def _start_poll_timer(self, poll_interval: float) -> None:
        assert self._loop is not None
        self._dispose_poll_timer()
        self._poll_timer = rx.interval(
            poll_interval, scheduler=AsyncIOThreadSafeScheduler(self._loop)
        ).subscribe(on_next=lambda _: self._refresh_subject.on_next("poll"))

    async def _run_session(self, host: str, port: int, poll_interval: float) -> None:
        remote = f"{host}:{port}"
        self._log(f"Connecting to router [{remote}]", "INFO")

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), self.connect_timeout
            )
        except TimeoutError:
            self._log(f"Connection to [{remote}] timed out.", "WARN")
            self._fail_session(ConnectionState.FAULTED, f"timed out connecting to {remote}")
            return
        except OSError as e:
            self._log(
                f"Network error (OSError): {get_short_error_info(e)}", "WARN"
            )
            self._fail_session(ConnectionState.FAULTED, get_short_error_info(e))
            return

        self._writer = writer
        self._log(f"Router [{remote}] connected.", "INFO")
        self._set_status(ConnectionState.CONNECTED, remote)
        self._refresh_subject.on_next("connected")
        self._start_poll_timer(poll_interval)

        try:
            while True:
                data = await reader.read(self._read_size)
                if not data:
                    self._log(f"Router [{remote}] closed the connection.", "INFO")
                    self._fail_session(ConnectionState.DISCONNECTED, CLOSED_BY_PEER)
                    return
                try:
                    super().on_next(data)
                except Exception as e:
                    self._log(
                        f"Subscriber failed on inbound data:\n{get_full_error_info(e)}",
                        "ERROR",
                    )
        except asyncio.CancelledError:
            raise
        except OSError as e:
            self._log(
                f"Network error (OSError): {get_short_error_info(e)}", "WARN"
            )
            self._fail_session(ConnectionState.FAULTED, get_short_error_info(e))

    def _fail_session(self, state: ConnectionState, detail: str) -> None:
        """End the running session from inside its own task."""
        self._session_task = None
        self._dispose_poll_timer()
        self._close_writer()
        self._set_status(state, detail)

    def _write(self, payload: bytes) -> None:
        writer = self._writer
        if writer is None or writer.is_closing():
            self._log("Dropped command: socket is closed.", "WARN")
            return
        writer.write(payload)

    # ---------------- threaded event loop plumbing ---------------- #

    def _call_on_loop(self, callback, *args) -> None:
        if not self._loop_ready.wait(timeout=5.0) or self._loop is None:
            raise QuartzException(
                RuntimeError("Connection event loop failed to start"),
                source=self._name,
                note="QuartzConnection",
            )
        self._loop.call_soon_threadsafe(callback, *args)

    def _run_loop(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        asyncio.set_event_loop(loop)
        self._loop_ready.set()
        try:
            loop.run_forever()
        finally:
            loop.close()

    def _start_loop_thread(self) -> None:
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
