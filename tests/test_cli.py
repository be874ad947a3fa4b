"""Tests for console line parsing."""

from unittest.mock import MagicMock

import pytest

from rxquartz.cli import (
    ConsoleRequest,
    execute_console_action,
    from_cli,
    parse_console_line,
)
from rxquartz.protocol.commands import (
    FireSalvo,
    Interrogate,
    InterrogateLock,
    ListRoutes,
    LockDestination,
    Route,
    UnlockDestination,
)


class TestParseConsoleLine:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("route VA 1 5", Route("VA", 1, 5)),
            ("ROUTE va 1 5", Route("VA", 1, 5)),
            ("salvo 3", FireSalvo(3)),
            ("lock 4", LockDestination(4)),
            ("unlock 4", UnlockDestination(4)),
            ("lockstatus 4", InterrogateLock(4)),
            ("interrogate V 2", Interrogate("V", 2)),
            ("list V", ListRoutes("V", 1)),
            ("list a 9", ListRoutes("A", 9)),
            ("names", ConsoleRequest.NAMES),
            ("refresh", ConsoleRequest.REFRESH),
        ],
    )
    def test_verbs(self, line, expected):
        assert parse_console_line(line) == expected

    def test_raw_command_passes_through(self):
        assert parse_console_line("  .SV1,5  ") == ".SV1,5"

    def test_blank_line(self):
        assert parse_console_line("") is None
        assert parse_console_line("   ") is None

    @pytest.mark.parametrize(
        "line",
        [
            "teleport 1",
            "route V 1",
            "route V one 5",
            "route X 1 5",
            "salvo",
            "lock 0",
            "interrogate VA 1",
            "list",
            "names now",
        ],
    )
    def test_invalid_lines_raise(self, line):
        with pytest.raises(ValueError):
            parse_console_line(line)


class TestExecuteConsoleAction:
    def test_dispatch(self):
        router = MagicMock()
        execute_console_action(router, ConsoleRequest.NAMES)
        router.request_names.assert_called_once_with()

        execute_console_action(router, ConsoleRequest.REFRESH)
        router.refresh.assert_called_once_with()

        execute_console_action(router, FireSalvo(1))
        router.submit.assert_called_once_with(FireSalvo(1))


def test_from_cli_rejects_unknown_mode():
    with pytest.raises(ValueError):
        from_cli(mode="update")
