# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from coreason_bulk_admin.actions.base import ShellAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.logger import logger
from coreason_bulk_admin.utils.shell import ShellExecutor

SUCCESS = 0
# Windows Installer: success, restart required / restart initiated
REBOOT_REQUIRED = 3010
REBOOT_INITIATED = 1641

# winget HRESULTs meaning the package is already in the requested state
WINGET_NO_APPLICATIONS_FOUND = 0x8A150014
WINGET_UPDATE_NOT_APPLICABLE = 0x8A15002B
WINGET_PACKAGE_ALREADY_INSTALLED = 0x8A150061

DWORD_MASK = 0xFFFFFFFF

ALREADY_IN_STATE: Dict[str, List[int]] = {
    "install": [WINGET_PACKAGE_ALREADY_INSTALLED],
    "upgrade": [WINGET_UPDATE_NOT_APPLICABLE],
    "uninstall": [WINGET_NO_APPLICATIONS_FOUND],
}


class InstallerConfig(BaseModel):
    """How packages are installed or removed."""

    tool: Literal["winget", "msiexec"] = Field(default="winget")
    mode: Literal["install", "upgrade", "uninstall"] = Field(default="install")
    extra_args: List[str] = Field(default_factory=list, description="Appended to every invocation.")
    log_dir: Optional[str] = Field(default=None, description="msiexec verbose log directory.")
    timeout: Optional[float] = Field(default=None, description="Per-package timeout in seconds.")

    model_config = {"frozen": True}


class PackageInstallAction(ShellAction):
    """
    Installs, upgrades or removes one package per identity.
    The identity is a winget package id, or an MSI path / product code for msiexec.
    """

    def __init__(self, config: InstallerConfig, shell: Optional[ShellExecutor] = None) -> None:
        super().__init__(shell)
        self.config = config
        self.name = f"package-{config.mode}"

    def build_command(self, identity: str) -> List[str]:
        if self.config.tool == "msiexec":
            if self.config.mode == "uninstall":
                command = ["msiexec.exe", "/x", identity, "/qn", "/norestart"]
            else:
                command = ["msiexec.exe", "/i", identity, "/qn", "/norestart"]
            if self.config.log_dir:
                safe_name = "".join(c if c.isalnum() else "_" for c in identity)[-60:]
                command += ["/l*v", f"{self.config.log_dir}\\{safe_name}.log"]
        else:
            command = ["winget", self.config.mode, "--id", identity, "--exact", "--silent"]
            if self.config.mode != "uninstall":
                command += ["--accept-package-agreements", "--accept-source-agreements"]
        return command + list(self.config.extra_args)

    def describe(self, identity: str) -> str:
        return " ".join(self.build_command(identity))

    def apply(self, identity: str) -> ActionResult:
        command = self.build_command(identity)
        result = self.shell.run(command, timeout=self.config.timeout)
        code = result.exit_code
        # Windows reports exit codes as unsigned DWORDs
        status = code & DWORD_MASK

        if status == SUCCESS:
            return ActionResult.applied(identity, exit_code=code, reboot_required=False)
        if status in (REBOOT_REQUIRED, REBOOT_INITIATED):
            logger.warning(f"{identity}: {self.config.mode} succeeded, reboot pending (exit code {code})")
            return ActionResult.applied(identity, exit_code=code, reboot_required=True)
        if self.config.tool == "winget" and status in ALREADY_IN_STATE[self.config.mode]:
            return ActionResult.skipped(identity, f"already {self._desired_state()}", exit_code=code)

        detail = result.output()
        message = f"{self.config.tool} {self.config.mode} of {identity} failed with exit code {code}"
        if detail:
            message += f": {detail.splitlines()[-1]}"
        raise ActionError(message)

    def _desired_state(self) -> str:
        return {"install": "installed", "upgrade": "up to date", "uninstall": "absent"}[self.config.mode]
