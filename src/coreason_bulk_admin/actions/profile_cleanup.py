# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from coreason_bulk_admin.actions.base import ShellAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.shell import ShellExecutor

SID_PATTERN = re.compile(r"^S-1-\d+(-\d+)+$", re.IGNORECASE)
# LocalSystem, LocalService, NetworkService
WELL_KNOWN_SIDS = {"S-1-5-18", "S-1-5-19", "S-1-5-20"}

QUERY_SCRIPT = (
    "$p = Get-CimInstance -ClassName Win32_UserProfile -Filter \"SID='{sid}'\"; "
    "if ($null -eq $p) {{ 'null' }} else {{ "
    "@{{LocalPath=$p.LocalPath; Loaded=$p.Loaded; Special=$p.Special; "
    "LastUseTime=$(if ($p.LastUseTime) {{ $p.LastUseTime.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ss') }} "
    "else {{ $null }})}} | ConvertTo-Json -Compress }}"
)
REMOVE_SCRIPT = (
    "Get-CimInstance -ClassName Win32_UserProfile -Filter \"SID='{sid}'\" | "
    "Remove-CimInstance -ErrorAction Stop"
)


class ProfileCleanupConfig(BaseModel):
    """Which local user profiles count as stale."""

    max_age_days: int = Field(default=90, ge=0, description="Profiles used more recently are kept.")
    excluded_sids: List[str] = Field(default_factory=list)
    excluded_paths: List[str] = Field(
        default_factory=list, description="Profile folder names to keep, e.g. Administrator."
    )

    model_config = {"frozen": True}


class ProfileCleanupAction(ShellAction):
    """
    Removes a stale local user profile. The identity is the profile SID.
    """

    name = "clean-profiles"

    def __init__(
        self,
        config: ProfileCleanupConfig,
        shell: Optional[ShellExecutor] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        super().__init__(shell)
        self.config = config
        self._now = now
        self._excluded_sids = {sid.upper() for sid in config.excluded_sids} | WELL_KNOWN_SIDS
        self._excluded_paths = {name.lower() for name in config.excluded_paths}

    def describe(self, identity: str) -> str:
        return f"remove profile {identity} if unused for {self.config.max_age_days} day(s)"

    def lookup(self, sid: str) -> Optional[Dict[str, Any]]:
        result = self.shell.run_powershell(QUERY_SCRIPT.format(sid=sid))
        if result.exit_code != 0:
            raise ActionError(f"Cannot query profile {sid}: {result.output()}")
        text = result.stdout.strip()
        if not text or text == "null":
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ActionError(f"Unexpected profile data for {sid}: {text[:200]}") from e

    def apply(self, identity: str) -> ActionResult:
        sid = identity.upper()
        if not SID_PATTERN.match(sid):
            raise ActionError(f"'{identity}' is not a SID.")
        if sid in self._excluded_sids:
            return ActionResult.skipped(identity, "excluded")

        profile = self.lookup(sid)
        if profile is None:
            return ActionResult.skipped(identity, "profile not found")

        local_path = str(profile.get("LocalPath") or "")
        folder = local_path.replace("/", "\\").rstrip("\\").split("\\")[-1].lower()
        if folder and folder in self._excluded_paths:
            return ActionResult.skipped(identity, "excluded", path=local_path)
        if profile.get("Special"):
            return ActionResult.skipped(identity, "system profile", path=local_path)
        if profile.get("Loaded"):
            return ActionResult.skipped(identity, "profile loaded", path=local_path)

        last_use = profile.get("LastUseTime")
        if last_use:
            used = datetime.strptime(last_use, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)
            if self._now() - used < timedelta(days=self.config.max_age_days):
                return ActionResult.skipped(identity, "recently used", path=local_path, last_use=last_use)

        removed = self.shell.run_powershell(REMOVE_SCRIPT.format(sid=sid))
        if removed.exit_code != 0:
            raise ActionError(f"Failed to remove profile {sid} ({local_path}): {removed.output()}")
        return ActionResult.applied(identity, path=local_path, last_use=last_use)
