"""Quartz router engine.

:class:`QuartzRouter` ties the pieces together: raw chunks from a
:class:`~rxquartz.connection.QuartzConnection` are framed into records,
interpreted into typed messages and applied to a
:class:`~rxquartz.state.RouterState`; the resulting typed events are
published on :attr:`QuartzRouter.events`.

Example:
    >>> from rxquartz import QuartzConfig, QuartzRouter
    >>>
    >>> router = QuartzRouter(QuartzConfig(host="10.0.0.5"))
    >>> router.crosspoint_changes.subscribe(
    ...     on_next=lambda ev: print(f"{ev.level}: {ev.source} -> {ev.destination}")
    ... )
    >>> router.connect()
    >>> router.submit(Route("V", destination=1, source=5))
"""

import threading

import reactivex as rx
from opentelemetry._logs import SeverityNumber
from opentelemetry.metrics import MeterProvider
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk.trace import TracerProvider
from reactivex import Observable
from reactivex import operators as ops
from reactivex.disposable import CompositeDisposable
from reactivex.subject import Subject

from .config import QuartzConfig
from .connection import QuartzConnection
from .events import (
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
from .protocol.commands import (
    CommandIntent,
    TakeState,
    build_interrogate_all_command,
    build_read_names_command,
    build_route_to_selected_command,
    build_take_command,
    render_command,
)
from .protocol.framing import StreamFramer, frame_records
from .protocol.messages import (
    Acknowledge,
    CrosspointUpdate,
    Error,
    QuartzMessage,
    Unknown,
)
from .protocol.parser import interpret
from .state import RouterSnapshot, RouterState
from .telemetry import LogContext, OTelLogger, RouterMetrics, get_default_providers
from .utils import get_full_error_info, printable

CAPACITY_HINT = (
    "Received error from router. Are max_destinations or max_sources too high?"
)


class QuartzRouter:
    """Control-plane client for one Quartz router.

    The router owns its framer, state store and take-workflow state, and
    one connection (injectable for testing). Each framed record is applied
    to the state store under a lock, so readers never see a half-applied
    message. Framing itself is not locked: call :meth:`feed` from the
    thread that delivers socket data, or while no session is open.

    Args:
        config: Connection and polling settings. Defaults to an
            unconfigured :class:`QuartzConfig` (no host).
        tracer_provider: Optional OTel TracerProvider.
        logger_provider: Optional OTel LoggerProvider. If None, the
            default console providers are used.
        meter_provider: Optional OTel MeterProvider for the engine counters.
        name: Log source name; defaults to ``"QuartzRouter"``.
        connection: Connection to use instead of a new
            :class:`QuartzConnection`.
    """

    def __init__(
        self,
        config: QuartzConfig | None = None,
        *,
        tracer_provider: TracerProvider | None = None,
        logger_provider: LoggerProvider | None = None,
        meter_provider: MeterProvider | None = None,
        name: str | None = None,
        connection: QuartzConnection | None = None,
    ):
        self._config = config or QuartzConfig()
        self._name = name or "QuartzRouter"

        if logger_provider is None:
            tracer_provider, logger_provider = get_default_providers()

        self._tracer_provider = tracer_provider
        self._logger_provider = logger_provider
        self._otel_logger = OTelLogger(
            logger_provider.get_logger(f"rxquartz.{self._name}"),
            source=self._name,
            context=LogContext(component="router"),
            min_severity=self._severity_for(self._config),
        )
        self._metrics = RouterMetrics(meter_provider) if meter_provider else None

        self._framer = StreamFramer()
        self._state = RouterState()
        self.take_state = TakeState()
        self._lock = threading.RLock()
        self._active_endpoint: tuple[str, int] | None = None
        self._reset_directories_on_connect = False

        self._events: Subject[RouterEvent] = Subject()
        self._inbound: Subject[bytes | str] = Subject()

        if connection is None:
            connection = QuartzConnection(
                connect_timeout=self._config.connect_timeout,
                name=f"{self._name}:connection",
                tracer_provider=tracer_provider,
                logger_provider=logger_provider,
            )
        self._connection = connection
        self._connection.min_severity = self._severity_for(self._config)

        self._disposables = CompositeDisposable()
        self._closed = False
        self._setup_pipeline()

    @staticmethod
    def _severity_for(config: QuartzConfig) -> SeverityNumber:
        return SeverityNumber.DEBUG if config.verbose else SeverityNumber.INFO

    def _setup_pipeline(self) -> None:
        """Wire connection and fed chunks through framing into the state store."""
        self._disposables.add(
            rx.merge(self._connection, self._inbound)
            .pipe(
                ops.do_action(on_next=self._log_traffic),
                frame_records(self._framer),
                ops.map(interpret),
            )
            .subscribe(
                on_next=self._handle_message,
                on_error=lambda e: self._otel_logger.error(
                    f"Inbound pipeline error: {e}"
                ),
            )
        )
        self._disposables.add(
            self._connection.status.subscribe(on_next=self._handle_status)
        )
        self._disposables.add(
            self._connection.refresh_requests.subscribe(
                on_next=self._handle_refresh_request
            )
        )

    # =========================================================================
    # Observables
    # =========================================================================

    @property
    def events(self) -> Observable[RouterEvent]:
        """All typed events, in the order they were produced."""
        return self._events

    @property
    def directory_changes(self) -> Observable[DirectoryChanged]:
        return self._events.pipe(ops.filter(lambda ev: isinstance(ev, DirectoryChanged)))

    @property
    def crosspoint_changes(self) -> Observable[CrosspointChanged]:
        return self._events.pipe(ops.filter(lambda ev: isinstance(ev, CrosspointChanged)))

    @property
    def lock_changes(self) -> Observable[LockChanged]:
        return self._events.pipe(ops.filter(lambda ev: isinstance(ev, LockChanged)))

    @property
    def status_changes(self) -> Observable[ConnectionStatusChanged]:
        return self._events.pipe(
            ops.filter(lambda ev: isinstance(ev, ConnectionStatusChanged))
        )

    @property
    def protocol_errors(self) -> Observable[ProtocolError]:
        return self._events.pipe(ops.filter(lambda ev: isinstance(ev, ProtocolError)))

    # =========================================================================
    # Read accessors
    # =========================================================================

    @property
    def config(self) -> QuartzConfig:
        return self._config

    @property
    def connection(self) -> QuartzConnection:
        return self._connection

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def destinations(self) -> dict[int, str]:
        with self._lock:
            return self._state.destinations

    @property
    def sources(self) -> dict[int, str]:
        with self._lock:
            return self._state.sources

    @property
    def crosspoints(self) -> dict[str, dict[int, int]]:
        with self._lock:
            return self._state.crosspoints

    @property
    def locks(self) -> dict[int, int]:
        with self._lock:
            return self._state.locks

    def snapshot(self) -> RouterSnapshot:
        with self._lock:
            return self._state.snapshot()

    def routed_source(self, level: str, destination: int) -> int | None:
        with self._lock:
            return self._state.routed_source(level, destination)

    def lock_status(self, destination: int) -> int | None:
        with self._lock:
            return self._state.lock_status(destination)

    def directory_name(self, kind: DirectoryKind, entry_id: int) -> str:
        with self._lock:
            return self._state.directory_name(kind, entry_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def configure(self, config: QuartzConfig) -> None:
        """Replace the configuration; call :meth:`connect` to apply it.

        Directories are dropped when the endpoint changes, since names from
        another router no longer apply.
        """
        if config.endpoint != self._config.endpoint:
            with self._lock:
                self._state.reset_directories()
            self._active_endpoint = None
            # the old session may still deliver names before it is torn down
            self._reset_directories_on_connect = True
        self._config = config
        self._connection.connect_timeout = config.connect_timeout
        self._connection.min_severity = self._severity_for(config)
        self._otel_logger = self._otel_logger.with_context(
            min_severity=self._severity_for(config)
        )

    def connect(self) -> bool:
        """Open (or reopen) the session using the current configuration.

        Returns False when no host is configured.
        """
        config = self._config
        if not config.is_configured:
            self._otel_logger.warning("No host configured")
            return self._connection.connect(config.host, config.port, config.poll_interval)

        endpoint = config.endpoint
        if self._active_endpoint is not None and self._active_endpoint != endpoint:
            self._reset_directories_on_connect = True
        self._active_endpoint = endpoint
        self._otel_logger = self._otel_logger.with_context(
            router=f"{endpoint[0]}:{endpoint[1]}"
        )
        return self._connection.connect(config.host, config.port, config.poll_interval)

    def disconnect(self) -> None:
        """Close the session and drop everything learned from the router."""
        self._connection.disconnect()
        with self._lock:
            self._framer.reset()
            self._state.reset()
        self._active_endpoint = None
        self._reset_directories_on_connect = True

    def close(self) -> None:
        """Shut down the connection and complete the event streams."""
        if self._closed:
            return
        self._closed = True
        self._connection.close()
        self._disposables.dispose()
        with self._lock:
            self._framer.reset()
            self._state.reset()
        self._inbound.on_completed()
        self._events.on_completed()

    def feed(self, chunk: bytes | str) -> None:
        """Push raw router output into the engine, as if read from the socket."""
        self._inbound.on_next(chunk)

    # =========================================================================
    # Commands
    # =========================================================================

    def send_command(self, text: str) -> bool:
        """Send a raw command; returns False when not connected."""
        sent = self._connection.send(text)
        if sent:
            self._otel_logger.debug(f"Sending command: {printable(text)}")
            if self._metrics is not None:
                self._metrics.commands_outbound.add(1, {"router": self._router_label()})
        else:
            self._otel_logger.warning("Cannot send command: not connected")
        return sent

    def submit(self, command: CommandIntent | str) -> bool:
        """Render a command intent (or pass text through) and send it."""
        return self.send_command(render_command(command))

    def request_names(self) -> bool:
        config = self._config
        return self.send_command(
            build_read_names_command(config.max_destinations, config.max_sources)
        )

    def request_crosspoints(self) -> bool:
        config = self._config
        sent = True
        for level in config.poll_levels:
            sent = (
                self.send_command(
                    build_interrogate_all_command(level, config.max_destinations)
                )
                and sent
            )
        return sent

    def refresh(self) -> bool:
        """Re-read names and crosspoints from the router."""
        names_sent = self.request_names()
        crosspoints_sent = self.request_crosspoints()
        return names_sent and crosspoints_sent

    # ---------------- take workflow ---------------- #

    def select_destination(self, destination: int | None) -> None:
        self.take_state.selected_destination = destination

    def route_to_selected(self, source: int, levels: str = "V") -> bool:
        """Route ``source`` to the selected destination, if one is selected."""
        command = build_route_to_selected_command(self.take_state, source, levels)
        if command is None:
            self._otel_logger.warning("No destination selected")
            return False
        return self.send_command(command)

    def arm_destination(self, destination: int | None) -> None:
        self.take_state.pending_destination = destination

    def arm_source(self, source: int | None) -> None:
        self.take_state.pending_source = source

    def take(self, levels: str = "V") -> bool:
        """Fire the armed route. The armed pair is cleared once sent."""
        command = build_take_command(self.take_state, levels)
        if command is None:
            self._otel_logger.warning("Take requires both a destination and a source")
            return False
        sent = self.send_command(command)
        if sent:
            self.take_state.clear_pending()
        return sent

    # =========================================================================
    # Inbound handling
    # =========================================================================

    def _router_label(self) -> str:
        host, port = self._config.endpoint
        return f"{host}:{port}"

    def _log_traffic(self, chunk: bytes | str) -> None:
        if self._otel_logger.is_enabled(SeverityNumber.DEBUG):
            text = chunk.decode("latin-1") if isinstance(chunk, bytes | bytearray) else chunk
            self._otel_logger.debug(f"Received raw data: {printable(text)}")

    def _handle_message(self, message: QuartzMessage) -> None:
        with self._lock:
            events = self._state.apply(message)
            self._log_message(message)

        if self._metrics is not None:
            label = {"router": self._router_label()}
            self._metrics.records_inbound.add(1, label)
            changes = sum(isinstance(ev, CrosspointChanged) for ev in events)
            if changes:
                self._metrics.crosspoint_changes.add(changes, label)
            if isinstance(message, Error):
                self._metrics.protocol_errors.add(1, label)

        for event in events:
            self._publish(event)
            if isinstance(event, RouterPoweredUp):
                self._otel_logger.info("Router power up or reset detected")
                self.refresh()

    def _log_message(self, message: QuartzMessage) -> None:
        if isinstance(message, CrosspointUpdate):
            # Route changes are always logged, whoever made them
            src_name = self._state.describe(DirectoryKind.SOURCE, message.source)
            dest_name = self._state.describe(
                DirectoryKind.DESTINATION, message.destination
            )
            self._otel_logger.info(
                f"Route: {src_name} -> {dest_name} (Level {''.join(message.levels)})"
            )
        elif isinstance(message, Acknowledge) and message.data:
            self._otel_logger.debug(f"Acknowledge with data: {message.data}")
            for group in message.crosspoints:
                self._otel_logger.debug(
                    f"Interrogate: Dest {group.destination}"
                    f" = Source {group.source} (Level {group.level})"
                )
        elif isinstance(message, Error):
            self._otel_logger.error(CAPACITY_HINT)
        elif isinstance(message, Unknown):
            self._otel_logger.debug(f"Unknown message: {printable(message.raw)}")

    def _handle_status(self, status: ConnectionStatusChanged) -> None:
        if status.state is ConnectionState.CONNECTING:
            with self._lock:
                self._framer.reset()
                self._state.reset_crosspoints()
                if self._reset_directories_on_connect:
                    self._state.reset_directories()
                    self._reset_directories_on_connect = False
        elif status.state is ConnectionState.CONNECTED:
            self._otel_logger.info(f"Connected to {status.detail}")
        elif status.state is ConnectionState.FAULTED:
            self._otel_logger.error(f"Connection error: {status.detail}")
        elif status.detail:
            self._otel_logger.warning(f"Connection closed: {status.detail}")
        self._publish(status)

    def _handle_refresh_request(self, reason: str) -> None:
        if reason == "connected":
            self._otel_logger.info("Refreshing data from router")
        self.refresh()

    def _publish(self, event: RouterEvent) -> None:
        try:
            self._events.on_next(event)
        except Exception as e:
            self._otel_logger.error(
                f"Event subscriber failed on {type(event).__name__}:\n"
                f"{get_full_error_info(e)}"
            )
