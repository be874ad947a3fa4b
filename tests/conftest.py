"""Shared test fixtures for rxquartz tests."""

import socket
import threading
import time
from unittest.mock import MagicMock

import pytest
from reactivex.subject import BehaviorSubject, Subject

from rxquartz import ConnectionState, ConnectionStatusChanged, QuartzConfig, QuartzRouter
from rxquartz.utils import terminate


class FakeConnection(Subject):
    """In-memory stand-in for QuartzConnection.

    Nothing happens on its own: tests drive the session with ``open()``,
    ``receive()`` and ``drop()``, and read what the router wrote from
    ``sent``.
    """

    def __init__(self):
        super().__init__()
        self.connect_timeout = 5.0
        self.sent: list[str] = []
        self.connects: list[tuple[str, int, float]] = []
        self.disconnects = 0
        self.closed = False
        self.min_severity = None
        self._state = ConnectionState.DISCONNECTED
        self._status = BehaviorSubject(ConnectionStatusChanged(ConnectionState.DISCONNECTED))
        self._refresh = Subject()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self):
        return self._status

    @property
    def refresh_requests(self):
        return self._refresh

    def _emit(self, state: ConnectionState, detail: str = "") -> None:
        self._state = state
        self._status.on_next(ConnectionStatusChanged(state, detail))

    def connect(self, host: str, port: int, poll_interval: float = 5.0) -> bool:
        self.connects.append((host, port, poll_interval))
        if not host.strip():
            self._emit(ConnectionState.DISCONNECTED, "bad configuration: no host")
            return False
        self._emit(ConnectionState.CONNECTING, f"{host}:{port}")
        return True

    def open(self) -> None:
        """Simulate the socket opening."""
        self._emit(ConnectionState.CONNECTED, "fake")
        self._refresh.on_next("connected")

    def poll(self) -> None:
        self._refresh.on_next("poll")

    def receive(self, chunk: bytes | str) -> None:
        self.on_next(chunk)

    def drop(self, state=ConnectionState.DISCONNECTED, detail="closed by peer") -> None:
        self._emit(state, detail)

    def send(self, text: str) -> bool:
        if self._state is not ConnectionState.CONNECTED:
            return False
        self.sent.append(terminate(text))
        return True

    def disconnect(self) -> None:
        self.disconnects += 1
        if self._state is not ConnectionState.DISCONNECTED:
            self._emit(ConnectionState.DISCONNECTED, "disconnected")

    def close(self) -> None:
        self.closed = True
        self._status.on_completed()
        self._refresh.on_completed()
        self.on_completed()


class FakeRouterServer:
    """Loopback TCP server playing the router side of a session.

    Accepts any number of sequential clients; the most recent one is the
    peer for ``send`` and ``drop_client``. Everything received from any
    client is appended to ``received``.
    """

    def __init__(self):
        self._sock = socket.create_server(("127.0.0.1", 0))
        self.port = self._sock.getsockname()[1]
        self.received = bytearray()
        self.accepted = 0
        self._client: socket.socket | None = None
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()

    def _accept_loop(self) -> None:
        while True:
            try:
                client, _ = self._sock.accept()
            except OSError:
                return
            with self._lock:
                self._client = client
                self.accepted += 1
            threading.Thread(target=self._read_loop, args=(client,), daemon=True).start()

    def _read_loop(self, client: socket.socket) -> None:
        while True:
            try:
                data = client.recv(4096)
            except OSError:
                return
            if not data:
                return
            with self._lock:
                self.received += data

    def received_text(self) -> str:
        with self._lock:
            return self.received.decode("latin-1")

    def send(self, data: bytes) -> None:
        assert self._client is not None
        self._client.sendall(data)

    def drop_client(self) -> None:
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.shutdown(socket.SHUT_RDWR)
            client.close()

    def close(self) -> None:
        self.drop_client()
        self._sock.close()


def _wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""
    return _wait_until


@pytest.fixture
def fake_router_server():
    server = FakeRouterServer()
    yield server
    server.close()


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    sock = socket.create_server(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def mock_logger_provider():
    """LoggerProvider mock; returns (provider, logger)."""
    mock_logger = MagicMock()
    provider = MagicMock()
    provider.get_logger.return_value = mock_logger
    return provider, mock_logger


def _log_bodies(mock_logger) -> list[str]:
    return [c.args[0].body for c in mock_logger.emit.call_args_list]


@pytest.fixture
def log_bodies():
    """Bodies of the records emitted to a mock OTel logger."""
    return _log_bodies


@pytest.fixture
def fake_connection():
    return FakeConnection()


@pytest.fixture
def router_config():
    return QuartzConfig(host="10.0.0.5", max_destinations=2, max_sources=1)


@pytest.fixture
def router(router_config, fake_connection, mock_logger_provider):
    provider, _ = mock_logger_provider
    r = QuartzRouter(router_config, logger_provider=provider, connection=fake_connection)
    yield r
    r.close()


@pytest.fixture
def live_router(router, fake_connection):
    """Router whose fake session is connected, with the initial refresh cleared."""
    router.connect()
    fake_connection.open()
    fake_connection.sent.clear()
    return router
