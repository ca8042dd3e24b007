import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

from coreason_bulk_admin.actions import ProfileCleanupAction, ProfileCleanupConfig
from coreason_bulk_admin.domain.results import Outcome
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.shell import CommandResult

SID = "S-1-5-21-1004336348-1177238915-682003330-1104"
NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def profile(**overrides: Any) -> CommandResult:
    data: Dict[str, Optional[Any]] = {
        "LocalPath": "C:\\Users\\jdoe",
        "Loaded": False,
        "Special": False,
        "LastUseTime": "2026-01-01T00:00:00",
    }
    data.update(overrides)
    return CommandResult(0, json.dumps(data), "")


@pytest.fixture
def shell() -> MagicMock:
    return MagicMock()


def make_action(shell: MagicMock, **config: Any) -> ProfileCleanupAction:
    return ProfileCleanupAction(ProfileCleanupConfig(**config), shell=shell, now=lambda: NOW)


def test_stale_profile_is_removed(shell: MagicMock) -> None:
    shell.run_powershell.side_effect = [profile(), CommandResult(0, "", "")]
    result = make_action(shell).apply(SID)

    assert result.outcome == Outcome.APPLIED
    assert result.details == {"path": "C:\\Users\\jdoe", "last_use": "2026-01-01T00:00:00"}
    remove_script = shell.run_powershell.call_args_list[1][0][0]
    assert "Remove-CimInstance" in remove_script
    assert SID in remove_script


def test_recent_profile_is_kept(shell: MagicMock) -> None:
    shell.run_powershell.return_value = profile(LastUseTime="2026-05-20T09:30:00")
    result = make_action(shell, max_age_days=30).apply(SID)
    assert result.reason == "recently used"
    assert shell.run_powershell.call_count == 1


@pytest.mark.parametrize(
    "overrides,reason",
    [
        ({"Loaded": True}, "profile loaded"),
        ({"Special": True}, "system profile"),
    ],
)
def test_protected_profiles_are_kept(shell: MagicMock, overrides: dict, reason: str) -> None:
    shell.run_powershell.return_value = profile(**overrides)
    assert make_action(shell).apply(SID).reason == reason


def test_excluded_folder(shell: MagicMock) -> None:
    shell.run_powershell.return_value = profile(LocalPath="C:\\Users\\Administrator")
    assert make_action(shell, excluded_paths=["administrator"]).apply(SID).reason == "excluded"


@pytest.mark.parametrize("sid", ["S-1-5-18", SID.lower()])
def test_excluded_sids_never_queried(shell: MagicMock, sid: str) -> None:
    result = make_action(shell, excluded_sids=[SID]).apply(sid)
    assert result.outcome == Outcome.SKIPPED
    assert result.reason == "excluded"
    shell.run_powershell.assert_not_called()


def test_unknown_profile_is_skipped(shell: MagicMock) -> None:
    shell.run_powershell.return_value = CommandResult(0, "null\r\n", "")
    assert make_action(shell).apply(SID).reason == "profile not found"


def test_identity_must_be_a_sid(shell: MagicMock) -> None:
    with pytest.raises(ActionError, match="not a SID"):
        make_action(shell).apply("jdoe")


def test_query_failure(shell: MagicMock) -> None:
    shell.run_powershell.return_value = CommandResult(1, "", "Access denied")
    with pytest.raises(ActionError, match="Access denied"):
        make_action(shell).apply(SID)


def test_garbled_query_output(shell: MagicMock) -> None:
    shell.run_powershell.return_value = CommandResult(0, "<xml/>", "")
    with pytest.raises(ActionError, match="Unexpected profile data"):
        make_action(shell).apply(SID)


def test_remove_failure(shell: MagicMock) -> None:
    shell.run_powershell.side_effect = [profile(), CommandResult(1, "", "The process cannot access the file")]
    with pytest.raises(ActionError, match="cannot access"):
        make_action(shell).apply(SID)


def test_profile_without_last_use_is_removed(shell: MagicMock) -> None:
    shell.run_powershell.side_effect = [profile(LastUseTime=None), CommandResult(0, "", "")]
    assert make_action(shell).apply(SID).outcome == Outcome.APPLIED
