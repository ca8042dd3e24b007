# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import Optional

from coreason_bulk_admin.actions.base import ShellAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.shell import ShellExecutor, ps_quote


class PrintQueueClearAction(ShellAction):
    """Removes every queued job of a printer. The identity is the printer name."""

    name = "clear-print-queue"

    def __init__(self, shell: Optional[ShellExecutor] = None, computer: Optional[str] = None) -> None:
        super().__init__(shell)
        self.computer = computer

    def _target(self, identity: str) -> str:
        target = f"-PrinterName {ps_quote(identity)}"
        if self.computer:
            target += f" -ComputerName {ps_quote(self.computer)}"
        return target

    def describe(self, identity: str) -> str:
        return f"remove all print jobs queued on '{identity}'"

    def apply(self, identity: str) -> ActionResult:
        script = (
            f"$jobs = @(Get-PrintJob {self._target(identity)} -ErrorAction Stop); "
            "$jobs | Remove-PrintJob -ErrorAction Stop; "
            "$jobs.Count"
        )
        result = self.shell.run_powershell(script)
        if result.exit_code != 0:
            raise ActionError(f"Cannot clear queue of '{identity}': {result.output()}")

        lines = result.stdout.strip().splitlines()
        try:
            removed = int(lines[-1]) if lines else 0
        except ValueError:
            removed = 0
        if removed == 0:
            return ActionResult.skipped(identity, "queue already empty")
        return ActionResult.applied(identity, jobs_removed=removed)
