# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from coreason_bulk_admin.actions.base import ShellAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.shell import ShellExecutor

LOCAL_HOSTS = {".", "localhost", "127.0.0.1"}


class ScheduledTaskConfig(BaseModel):
    """Definition of the task registered on every target host."""

    task_name: str = Field(..., description="Task path, e.g. \\Corp\\Inventory.")
    command: str = Field(..., description="Program and arguments the task runs.")
    schedule: Literal["MINUTE", "HOURLY", "DAILY", "WEEKLY", "ONSTART", "ONLOGON"] = Field(default="DAILY")
    start_time: Optional[str] = Field(default=None, description="HH:MM for time based schedules.")
    run_as: str = Field(default="SYSTEM")
    highest_privileges: bool = Field(default=True)

    model_config = {"frozen": True}

    @field_validator("task_name", "command")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class ScheduledTaskAction(ShellAction):
    """
    Registers a scheduled task on a host unless a task with the same name exists.
    The identity is the host name; '.' or 'localhost' targets the local machine.
    """

    name = "register-task"

    def __init__(self, config: ScheduledTaskConfig, shell: Optional[ShellExecutor] = None) -> None:
        super().__init__(shell)
        self.config = config

    def _host_args(self, identity: str) -> List[str]:
        if identity.lower() in LOCAL_HOSTS:
            return []
        return ["/S", identity]

    def exists(self, identity: str) -> bool:
        result = self.shell.run(["schtasks.exe", "/Query", *self._host_args(identity), "/TN", self.config.task_name])
        return result.exit_code == 0

    def build_create(self, identity: str) -> List[str]:
        command = [
            "schtasks.exe",
            "/Create",
            *self._host_args(identity),
            "/TN",
            self.config.task_name,
            "/TR",
            self.config.command,
            "/SC",
            self.config.schedule,
            "/RU",
            self.config.run_as,
        ]
        if self.config.start_time:
            command += ["/ST", self.config.start_time]
        if self.config.highest_privileges:
            command += ["/RL", "HIGHEST"]
        return command

    def describe(self, identity: str) -> str:
        return f"register task '{self.config.task_name}' on {identity}"

    def apply(self, identity: str) -> ActionResult:
        if self.exists(identity):
            return ActionResult.skipped(identity, "already registered")
        result = self.shell.run(self.build_create(identity))
        if result.exit_code != 0:
            raise ActionError(
                f"schtasks /Create failed on {identity} (exit code {result.exit_code}): {result.output()}"
            )
        return ActionResult.applied(identity, task=self.config.task_name)
