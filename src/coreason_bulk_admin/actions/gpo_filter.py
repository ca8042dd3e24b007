# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import Literal, Optional

from pydantic import BaseModel, Field

from coreason_bulk_admin.actions.base import ShellAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.logger import logger
from coreason_bulk_admin.utils.shell import ShellExecutor, ps_quote

AUTHENTICATED_USERS = "Authenticated Users"


class GpoFilterConfig(BaseModel):
    """Security filtering applied to one GPO."""

    gpo_name: str = Field(..., description="Display name of the Group Policy Object.")
    target_type: Literal["Group", "User", "Computer"] = Field(default="Group")
    restrict_authenticated_users: bool = Field(
        default=False, description="Downgrade Authenticated Users from GpoApply to GpoRead."
    )

    model_config = {"frozen": True}


class GpoSecurityFilterAction(ShellAction):
    """
    Grants GpoApply on a GPO to one security principal (the identity).
    """

    name = "gpo-filter"

    def __init__(self, config: GpoFilterConfig, shell: Optional[ShellExecutor] = None) -> None:
        super().__init__(shell)
        self.config = config
        self._restricted = False

    def _principal_args(self, identity: str, target_type: Optional[str] = None) -> str:
        return (
            f"-Name {ps_quote(self.config.gpo_name)} -TargetName {ps_quote(identity)} "
            f"-TargetType {target_type or self.config.target_type}"
        )

    def current_permission(self, identity: str) -> str:
        script = (
            "Import-Module GroupPolicy -ErrorAction Stop; "
            f"(Get-GPPermission {self._principal_args(identity)} -ErrorAction SilentlyContinue).Permission"
        )
        result = self.shell.run_powershell(script)
        if result.exit_code != 0:
            raise ActionError(f"Cannot read permissions of '{self.config.gpo_name}': {result.output()}")
        return result.stdout.strip()

    def restrict_authenticated_users(self) -> None:
        script = (
            "Import-Module GroupPolicy -ErrorAction Stop; "
            f"Set-GPPermission {self._principal_args(AUTHENTICATED_USERS, 'Group')} "
            "-PermissionLevel GpoRead -Replace -ErrorAction Stop | Out-Null"
        )
        result = self.shell.run_powershell(script)
        if result.exit_code != 0:
            raise ActionError(f"Cannot restrict {AUTHENTICATED_USERS} on '{self.config.gpo_name}': {result.output()}")
        self._restricted = True
        logger.info(f"{AUTHENTICATED_USERS} set to GpoRead on '{self.config.gpo_name}'")

    def describe(self, identity: str) -> str:
        return f"grant GpoApply on '{self.config.gpo_name}' to {self.config.target_type} {identity}"

    def apply(self, identity: str) -> ActionResult:
        if self.current_permission(identity) == "GpoApply":
            result = ActionResult.skipped(identity, "already filtered")
        else:
            script = (
                "Import-Module GroupPolicy -ErrorAction Stop; "
                f"Set-GPPermission {self._principal_args(identity)} -PermissionLevel GpoApply "
                "-ErrorAction Stop | Out-Null"
            )
            granted = self.shell.run_powershell(script)
            if granted.exit_code != 0:
                raise ActionError(f"Cannot grant GpoApply to {identity}: {granted.output()}")
            result = ActionResult.applied(identity, gpo=self.config.gpo_name)

        # Only after a principal holds GpoApply, otherwise the GPO would apply to nobody
        if self.config.restrict_authenticated_users and not self._restricted:
            self.restrict_authenticated_users()
        return result
