import subprocess
from unittest.mock import MagicMock, patch

import pytest

from coreason_bulk_admin.utils import shell as shell_module
from coreason_bulk_admin.utils.shell import POWERSHELL, CommandResult, ShellExecutor, ps_quote


@pytest.fixture
def shell() -> ShellExecutor:
    return ShellExecutor(timeout=10)


def test_run_success(shell: ShellExecutor) -> None:
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="RUNNING", stderr="")
        result = shell.run(["sc.exe", "query", "Spooler"])

    assert result == CommandResult(exit_code=0, stdout="RUNNING", stderr="")
    args, kwargs = mock_run.call_args
    assert args[0] == ["sc.exe", "query", "Spooler"]
    assert kwargs["timeout"] == 10
    assert kwargs["capture_output"] is True
    assert kwargs["check"] is False


def test_run_stringifies_arguments(shell: ShellExecutor) -> None:
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        shell.run(["ping", "-n", 4, "host"], timeout=3)
    assert mock_run.call_args[0][0] == ["ping", "-n", "4", "host"]
    assert mock_run.call_args[1]["timeout"] == 3


def test_run_failure_returns_result(shell: ShellExecutor) -> None:
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=5, stdout="", stderr="Access is denied.")
        result = shell.run(["sc.exe", "start", "Spooler"])

    assert result.exit_code == 5
    assert result.output() == "Access is denied."


def test_output_falls_back_to_stdout(shell: ShellExecutor) -> None:
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=1, stdout="partial\n", stderr="")
        result = shell.run(["cmd"])
    assert result.exit_code == 1
    assert result.output() == "partial"


def test_run_timeout(shell: ShellExecutor) -> None:
    with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="ping", timeout=10, output=b"Pinging")):
        with patch.object(shell_module, "logger") as mock_logger:
            result = shell.run(["ping", "host"])

    assert result.exit_code == -1
    assert result.stdout == "Pinging"
    assert "timed out after 10s" in result.stderr
    mock_logger.warning.assert_called_once()


def test_run_missing_executable(shell: ShellExecutor) -> None:
    with patch("subprocess.run", side_effect=FileNotFoundError("No such file: winget")):
        result = shell.run(["winget", "list"])

    assert result.exit_code == -1
    assert "winget" in result.stderr


def test_run_powershell(shell: ShellExecutor) -> None:
    with patch.object(shell, "run") as mock_run:
        shell.run_powershell("Get-Service", timeout=5)
    mock_run.assert_called_once_with([*POWERSHELL, "Get-Service"], timeout=5)


def test_ps_quote() -> None:
    assert ps_quote("Kiosk") == "'Kiosk'"
    assert ps_quote("O'Brien's GPO") == "'O''Brien''s GPO'"
