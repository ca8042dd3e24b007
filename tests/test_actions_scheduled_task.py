from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from coreason_bulk_admin.actions import ScheduledTaskAction, ScheduledTaskConfig
from coreason_bulk_admin.domain.results import Outcome
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.shell import CommandResult


@pytest.fixture
def config() -> ScheduledTaskConfig:
    return ScheduledTaskConfig(task_name="\\Corp\\Inventory", command="C:\\Tools\\inv.exe", start_time="02:00")


@pytest.fixture
def shell() -> MagicMock:
    return MagicMock()


def test_create_command_for_remote_host(config: ScheduledTaskConfig, shell: MagicMock) -> None:
    command = ScheduledTaskAction(config, shell=shell).build_create("WS01")
    assert command == [
        "schtasks.exe",
        "/Create",
        "/S",
        "WS01",
        "/TN",
        "\\Corp\\Inventory",
        "/TR",
        "C:\\Tools\\inv.exe",
        "/SC",
        "DAILY",
        "/RU",
        "SYSTEM",
        "/ST",
        "02:00",
        "/RL",
        "HIGHEST",
    ]


@pytest.mark.parametrize("host", [".", "localhost", "LOCALHOST", "127.0.0.1"])
def test_local_host_has_no_server_argument(config: ScheduledTaskConfig, shell: MagicMock, host: str) -> None:
    assert "/S" not in ScheduledTaskAction(config, shell=shell).build_create(host)


def test_existing_task_is_skipped(config: ScheduledTaskConfig, shell: MagicMock) -> None:
    shell.run.return_value = CommandResult(0, "TaskName  Next Run Time  Status", "")
    result = ScheduledTaskAction(config, shell=shell).apply("WS01")

    assert result.outcome == Outcome.SKIPPED
    assert result.reason == "already registered"
    shell.run.assert_called_once_with(["schtasks.exe", "/Query", "/S", "WS01", "/TN", "\\Corp\\Inventory"])


def test_missing_task_is_created(config: ScheduledTaskConfig, shell: MagicMock) -> None:
    shell.run.side_effect = [
        CommandResult(1, "", "ERROR: The system cannot find the file specified."),
        CommandResult(0, "SUCCESS", ""),
    ]
    result = ScheduledTaskAction(config, shell=shell).apply("WS01")

    assert result.outcome == Outcome.APPLIED
    assert result.details == {"task": "\\Corp\\Inventory"}
    assert shell.run.call_args_list[1][0][0][1] == "/Create"


def test_create_failure(config: ScheduledTaskConfig, shell: MagicMock) -> None:
    shell.run.side_effect = [CommandResult(1, "", ""), CommandResult(1, "", "ERROR: Access is denied.")]
    with pytest.raises(ActionError, match="Access is denied"):
        ScheduledTaskAction(config, shell=shell).apply("WS01")


def test_blank_task_name_rejected() -> None:
    with pytest.raises(ValidationError):
        ScheduledTaskConfig(task_name="  ", command="x.exe")
