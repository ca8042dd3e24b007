# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

from coreason_bulk_admin.utils.logger import logger

POWERSHELL = ["powershell.exe", "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command"]


@dataclass
class CommandResult:
    """Result of a shell command execution."""

    exit_code: int
    stdout: str
    stderr: str

    def output(self) -> str:
        """Best available diagnostic text."""
        return (self.stderr or self.stdout).strip()


class ShellExecutor:
    """Executes shell commands."""

    def __init__(self, timeout: float = 300) -> None:
        self.timeout = timeout

    def run(self, command: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        """
        Executes a shell command.

        Timeouts and missing executables are reported as exit code -1 with the
        reason in stderr; callers inspect the exit code themselves.

        Args:
            command: The command to execute as a list of arguments.
            timeout: Timeout in seconds. Defaults to the executor timeout.

        Returns:
            CommandResult containing exit code, stdout, and stderr.
        """
        command_list: List[str] = [str(part) for part in command]
        effective_timeout = timeout if timeout is not None else self.timeout
        logger.debug(f"Executing: {' '.join(command_list)}")

        try:
            process = subprocess.run(
                command_list,
                capture_output=True,
                text=True,
                check=False,
                timeout=effective_timeout,
            )
        except subprocess.TimeoutExpired as e:
            stdout = e.stdout.decode() if isinstance(e.stdout, bytes) else (e.stdout or "")
            stderr = e.stderr.decode() if isinstance(e.stderr, bytes) else ""
            stderr = stderr or f"Command timed out after {effective_timeout}s"
            logger.warning(f"Command timed out: {' '.join(command_list)}")
            return CommandResult(exit_code=-1, stdout=stdout, stderr=stderr)
        except OSError as e:
            # e.g. executable not found
            logger.warning(f"Failed to execute command: {e}")
            return CommandResult(exit_code=-1, stdout="", stderr=str(e))

        return CommandResult(exit_code=process.returncode, stdout=process.stdout, stderr=process.stderr)

    def run_powershell(self, script: str, timeout: Optional[float] = None) -> CommandResult:
        """
        Executes a PowerShell script block non-interactively.
        """
        return self.run([*POWERSHELL, script], timeout=timeout)


def ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted literal."""
    return "'" + value.replace("'", "''") + "'"
