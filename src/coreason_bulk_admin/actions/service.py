# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import re
import time
from typing import Callable, Optional

from coreason_bulk_admin.actions.base import ShellAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.logger import logger
from coreason_bulk_admin.utils.shell import ShellExecutor

STATE_PATTERN = re.compile(r"STATE\s*:\s*\d+\s+(\w+)")
ERROR_SERVICE_DOES_NOT_EXIST = 1060
ERROR_SERVICE_ALREADY_RUNNING = 1056


class ServiceStartAction(ShellAction):
    """
    Ensures a Windows service is running. The identity is the service name.
    After a start request the service state is polled until RUNNING or the wait expires.
    """

    name = "ensure-service"

    def __init__(
        self,
        shell: Optional[ShellExecutor] = None,
        wait_seconds: float = 30,
        poll_interval: float = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(shell)
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval
        self._sleep = sleep

    def describe(self, identity: str) -> str:
        return f"sc.exe start {identity} (if not running)"

    def query_state(self, identity: str) -> str:
        result = self.shell.run(["sc.exe", "query", identity])
        if result.exit_code == ERROR_SERVICE_DOES_NOT_EXIST:
            raise ActionError(f"Service '{identity}' does not exist.")
        match = STATE_PATTERN.search(result.stdout)
        if result.exit_code != 0 or not match:
            raise ActionError(f"Cannot query service '{identity}': {result.output() or result.exit_code}")
        return match.group(1).upper()

    def apply(self, identity: str) -> ActionResult:
        state = self.query_state(identity)
        if state == "RUNNING":
            return ActionResult.skipped(identity, "already running")

        previous = state
        logger.info(f"Service '{identity}' is {state}. Starting it.")
        started = self.shell.run(["sc.exe", "start", identity])
        if started.exit_code not in (0, ERROR_SERVICE_ALREADY_RUNNING):
            raise ActionError(f"Failed to start '{identity}' (exit code {started.exit_code}): {started.output()}")

        waited = 0.0
        while True:
            state = self.query_state(identity)
            if state == "RUNNING":
                return ActionResult.applied(identity, previous_state=previous, waited_seconds=waited)
            if waited >= self.wait_seconds:
                raise ActionError(f"Service '{identity}' still {state} after {self.wait_seconds}s.")
            self._sleep(self.poll_interval)
            waited += self.poll_interval
