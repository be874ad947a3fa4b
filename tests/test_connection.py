"""Tests for QuartzConnection against a loopback fake router."""

import pytest
from opentelemetry._logs import SeverityNumber

from rxquartz import (
    ConnectionState,
    ConnectionStatusChanged,
    QuartzConfig,
    QuartzConnection,
    QuartzRouter,
)
from rxquartz.mechanism import QuartzException


@pytest.fixture
def connection(mock_logger_provider):
    provider, _ = mock_logger_provider
    conn = QuartzConnection(connect_timeout=2.0, logger_provider=provider)
    yield conn
    conn.close()


def record_statuses(conn: QuartzConnection) -> list[ConnectionStatusChanged]:
    statuses: list[ConnectionStatusChanged] = []
    conn.status.subscribe(on_next=statuses.append)
    return statuses


def states(statuses) -> list[ConnectionState]:
    return [s.state for s in statuses]


class TestConnect:
    def test_initial_state(self, connection):
        statuses = record_statuses(connection)
        assert connection.state is ConnectionState.DISCONNECTED
        assert statuses == [ConnectionStatusChanged(ConnectionState.DISCONNECTED)]

    def test_empty_host_is_bad_configuration(self, connection, wait_until):
        statuses = record_statuses(connection)
        assert connection.connect("  ", 23) is False
        assert wait_until(lambda: len(statuses) == 2)
        assert statuses[-1] == ConnectionStatusChanged(
            ConnectionState.DISCONNECTED, "bad configuration: no host"
        )

    def test_connects_and_requests_refresh(self, connection, fake_router_server, wait_until):
        statuses = record_statuses(connection)
        refreshes = []
        connection.refresh_requests.subscribe(on_next=refreshes.append)

        assert connection.connect("127.0.0.1", fake_router_server.port, 30.0) is True
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)

        assert wait_until(lambda: len(statuses) == 3)
        assert states(statuses)[1:] == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]
        assert statuses[1].detail == f"127.0.0.1:{fake_router_server.port}"
        assert wait_until(lambda: refreshes == ["connected"])

    def test_refused_connection_faults(self, connection, closed_port, wait_until):
        statuses = record_statuses(connection)
        connection.connect("127.0.0.1", closed_port)
        assert wait_until(lambda: states(statuses)[-1:] == [ConnectionState.FAULTED])
        assert states(statuses)[-2:] == [ConnectionState.CONNECTING, ConnectionState.FAULTED]
        assert statuses[-1].detail


class TestTraffic:
    def test_send_writes_terminated_latin1(self, connection, fake_router_server, wait_until):
        connection.connect("127.0.0.1", fake_router_server.port, 30.0)
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)

        assert connection.send(".SV1,5") is True
        assert connection.send(".RD1\r.RD2\r") is True
        assert wait_until(lambda: fake_router_server.received_text() == ".SV1,5\r.RD1\r.RD2\r")

    def test_on_next_sends(self, connection, fake_router_server, wait_until):
        connection.connect("127.0.0.1", fake_router_server.port, 30.0)
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)
        connection.on_next(".F1")
        assert wait_until(lambda: fake_router_server.received_text() == ".F1\r")

    def test_send_refused_when_not_connected(self, connection):
        assert connection.send(".SV1,5") is False

    def test_send_rejects_non_latin1_text(self, connection):
        with pytest.raises(ValueError):
            connection.send(".RAD1,☃")

    def test_inbound_bytes_are_emitted_unchanged(self, connection, fake_router_server, wait_until):
        chunks = []
        connection.subscribe(on_next=chunks.append)
        connection.connect("127.0.0.1", fake_router_server.port, 30.0)
        assert wait_until(lambda: fake_router_server.accepted == 1)
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)

        payload = b".RAS1,Cam\xe9ra\r.UV1,5\r"
        fake_router_server.send(payload)
        assert wait_until(lambda: b"".join(chunks) == payload)

    def test_upstream_error_does_not_end_stream(self, connection, mock_logger_provider):
        _, mock_logger = mock_logger_provider
        errors = []
        connection.subscribe(on_error=errors.append)
        connection.on_error(RuntimeError("boom"))
        assert errors == []
        body = mock_logger.emit.call_args[0][0].body
        assert body == str(QuartzException(RuntimeError("boom"), "QuartzConnection", "Upstream error"))


class TestTeardown:
    def test_peer_close_disconnects(self, connection, fake_router_server, wait_until):
        statuses = record_statuses(connection)
        connection.connect("127.0.0.1", fake_router_server.port, 30.0)
        assert wait_until(lambda: fake_router_server.accepted == 1)
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)

        fake_router_server.drop_client()

        assert wait_until(lambda: states(statuses)[-1] is not ConnectionState.CONNECTED)
        assert statuses[-1].state in (ConnectionState.DISCONNECTED, ConnectionState.FAULTED)
        assert connection.send(".A") is False

    def test_disconnect_is_idempotent(self, connection, fake_router_server, wait_until):
        statuses = record_statuses(connection)
        connection.connect("127.0.0.1", fake_router_server.port, 30.0)
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)

        connection.disconnect()
        connection.disconnect()
        assert wait_until(lambda: connection.state is ConnectionState.DISCONNECTED)
        connection.disconnect()

        # let any queued teardown run before counting
        assert not wait_until(
            lambda: states(statuses).count(ConnectionState.DISCONNECTED) > 2, timeout=0.3
        )
        assert states(statuses).count(ConnectionState.DISCONNECTED) == 2

    def test_poll_timer_ticks_and_stops(self, connection, fake_router_server, wait_until):
        refreshes = []
        connection.refresh_requests.subscribe(on_next=refreshes.append)
        connection.connect("127.0.0.1", fake_router_server.port, 0.05)

        assert wait_until(lambda: refreshes.count("poll") >= 3)
        assert refreshes[0] == "connected"

        connection.disconnect()
        assert wait_until(lambda: connection.state is ConnectionState.DISCONNECTED)
        ticks = len(refreshes)
        assert not wait_until(lambda: len(refreshes) > ticks, timeout=0.3)

    def test_reconnect_replaces_session(self, connection, fake_router_server, wait_until):
        connection.connect("127.0.0.1", fake_router_server.port, 30.0)
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)
        connection.connect("127.0.0.1", fake_router_server.port, 30.0)
        assert wait_until(lambda: fake_router_server.accepted == 2)
        assert wait_until(lambda: connection.state is ConnectionState.CONNECTED)

    def test_close_completes_streams(self, mock_logger_provider):
        provider, _ = mock_logger_provider
        conn = QuartzConnection(logger_provider=provider)
        completed = []
        conn.subscribe(on_completed=lambda: completed.append("data"))
        conn.status.subscribe(on_completed=lambda: completed.append("status"))
        conn.close()
        conn.close()
        assert sorted(completed) == ["data", "status"]
        assert conn.connect("127.0.0.1", 23) is False


def test_router_end_to_end(fake_router_server, mock_logger_provider, wait_until):
    """Names and routes flow from a socket peer into the router state."""
    provider, _ = mock_logger_provider
    router = QuartzRouter(
        QuartzConfig(host="127.0.0.1", port=fake_router_server.port, max_destinations=2, max_sources=1),
        logger_provider=provider,
    )
    try:
        router.connect()
        assert wait_until(
            lambda: fake_router_server.received_text() == ".RD1\r.RD2\r.RS1\r.IV1\r.IV2\r"
        )

        fake_router_server.send(b".RAD1,Cam A\r.RAD2,Cam B\r.RA")
        fake_router_server.send(b"S1,Mic 1\r.AV001,001V002,001\r")

        assert wait_until(lambda: router.sources == {1: "Mic 1"})
        assert router.destinations == {1: "Cam A", 2: "Cam B"}
        assert wait_until(lambda: router.crosspoints == {"V": {1: 1, 2: 1}})
    finally:
        router.close()


def test_connection_debug_records_follow_router_verbosity(mock_logger_provider, wait_until):
    provider, mock_logger = mock_logger_provider
    router = QuartzRouter(QuartzConfig(host="", verbose=False), logger_provider=provider)
    statuses = []
    router.status_changes.subscribe(on_next=statuses.append)

    def debug_bodies():
        return [
            c.args[0].body
            for c in mock_logger.emit.call_args_list
            if c.args[0].severity_number == SeverityNumber.DEBUG
        ]

    try:
        assert router.send_command(".SV1,5") is False
        router.connect()
        assert wait_until(lambda: len(statuses) == 1)
        assert debug_bodies() == []

        router.configure(QuartzConfig(host="", verbose=True))
        router.connect()
        assert wait_until(lambda: len(statuses) == 2)
        assert any(b.startswith("Connection state: disconnected") for b in debug_bodies())
    finally:
        router.close()
