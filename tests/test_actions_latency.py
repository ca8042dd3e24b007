import csv
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from coreason_bulk_admin.actions import LatencyConfig, LatencyProbeAction
from coreason_bulk_admin.actions.latency import parse_loss, parse_ping
from coreason_bulk_admin.domain.results import Outcome
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.shell import CommandResult

WINDOWS_OUTPUT = """
Ping statistics for 10.0.0.1:
    Packets: Sent = 4, Received = 4, Lost = 0 (0% loss),
Approximate round trip times in milli-seconds:
    Minimum = 11ms, Maximum = 15ms, Average = 12ms
"""

LINUX_OUTPUT = """
--- 10.0.0.1 ping statistics ---
4 packets transmitted, 3 received, 25% packet loss, time 3004ms
rtt min/avg/max/mdev = 10.101/20.512/30.333/4.000 ms
"""

UNREACHABLE = """
Ping statistics for 10.0.0.9:
    Packets: Sent = 4, Received = 0, Lost = 4 (100% loss),
"""


@pytest.fixture
def shell() -> MagicMock:
    return MagicMock()


def test_parse_windows_output() -> None:
    assert parse_ping(WINDOWS_OUTPUT) == 12.0
    assert parse_loss(WINDOWS_OUTPUT) == 0.0


def test_parse_posix_output() -> None:
    assert parse_ping(LINUX_OUTPUT) == 20.512
    assert parse_loss(LINUX_OUTPUT) == 25.0


def test_parse_unreachable() -> None:
    assert parse_ping(UNREACHABLE) is None
    assert parse_loss(UNREACHABLE) == 100.0


@pytest.mark.parametrize("platform,flag", [("win32", "-n"), ("linux", "-c")])
def test_command_per_platform(shell: MagicMock, platform: str, flag: str) -> None:
    action = LatencyProbeAction(LatencyConfig(count=2), shell=shell, platform=platform)
    assert action.build_command("10.0.0.1") == ["ping", flag, "2", "10.0.0.1"]


def test_probe_success(shell: MagicMock) -> None:
    shell.run.return_value = CommandResult(0, WINDOWS_OUTPUT, "")
    result = LatencyProbeAction(shell=shell, platform="win32").apply("10.0.0.1")
    assert result.outcome == Outcome.APPLIED
    assert result.details == {"average_ms": 12.0, "loss_percent": 0.0}


@pytest.mark.parametrize("identity", ["-f", "--help", "-w 1 10.0.0.1"])
def test_probe_rejects_option_like_host(shell: MagicMock, identity: str) -> None:
    with pytest.raises(ActionError, match="not a host name"):
        LatencyProbeAction(shell=shell, platform="win32").apply(identity)
    shell.run.assert_not_called()


def test_probe_above_threshold(shell: MagicMock) -> None:
    shell.run.return_value = CommandResult(0, LINUX_OUTPUT, "")
    action = LatencyProbeAction(LatencyConfig(threshold_ms=15), shell=shell, platform="linux")
    with pytest.raises(ActionError, match="exceeds 15.0 ms"):
        action.apply("10.0.0.1")


def test_probe_unreachable_is_logged(shell: MagicMock, tmp_path: Path) -> None:
    log = tmp_path / "logs" / "latency.csv"
    shell.run.side_effect = [CommandResult(1, UNREACHABLE, ""), CommandResult(0, WINDOWS_OUTPUT, "")]
    action = LatencyProbeAction(LatencyConfig(log_path=str(log)), shell=shell, platform="win32")

    with pytest.raises(ActionError, match="unreachable"):
        action.apply("10.0.0.9")
    action.apply("10.0.0.1")

    with log.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == ["timestamp", "host", "average_ms", "loss_percent"]
    assert rows[1][1:] == ["10.0.0.9", "", "100"]
    assert rows[2][1:] == ["10.0.0.1", "12.0", "0"]
