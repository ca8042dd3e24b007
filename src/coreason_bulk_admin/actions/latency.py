# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import csv
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from coreason_bulk_admin.actions.base import ShellAction
from coreason_bulk_admin.domain.results import ActionResult
from coreason_bulk_admin.exceptions import ActionError
from coreason_bulk_admin.utils.logger import logger
from coreason_bulk_admin.utils.shell import ShellExecutor

# Windows: "Minimum = 1ms, Maximum = 3ms, Average = 2ms"
WINDOWS_AVERAGE = re.compile(r"Average\s*=\s*(\d+)\s*ms", re.IGNORECASE)
# Linux/macOS: "rtt min/avg/max/mdev = 0.045/0.052/0.061/0.007 ms"
POSIX_AVERAGE = re.compile(r"=\s*[\d.]+/([\d.]+)/[\d.]+")
LOSS = re.compile(r"(\d+(?:\.\d+)?)%\s*(?:packet\s*)?loss", re.IGNORECASE)


class LatencyConfig(BaseModel):
    count: int = Field(default=4, ge=1, le=100)
    threshold_ms: Optional[float] = Field(default=None, description="Fail hosts slower than this.")
    log_path: Optional[str] = Field(default=None, description="CSV file the measurements are appended to.")

    model_config = {"frozen": True}


def parse_ping(output: str) -> Optional[float]:
    """Returns the average round trip in milliseconds, or None when nothing answered."""
    match = WINDOWS_AVERAGE.search(output) or POSIX_AVERAGE.search(output)
    return float(match.group(1)) if match else None


def parse_loss(output: str) -> Optional[float]:
    match = LOSS.search(output)
    return float(match.group(1)) if match else None


class LatencyProbeAction(ShellAction):
    """
    Measures round-trip latency to a host with ping and logs the result.
    The action changes nothing remotely, so repeating it is always safe.
    """

    name = "latency"

    def __init__(
        self,
        config: Optional[LatencyConfig] = None,
        shell: Optional[ShellExecutor] = None,
        platform: str = sys.platform,
    ) -> None:
        super().__init__(shell)
        self.config = config or LatencyConfig()
        self.platform = platform

    def build_command(self, identity: str) -> List[str]:
        flag = "-n" if self.platform.startswith("win") else "-c"
        return ["ping", flag, str(self.config.count), identity]

    def describe(self, identity: str) -> str:
        return " ".join(self.build_command(identity))

    def apply(self, identity: str) -> ActionResult:
        if identity.startswith("-"):
            raise ActionError(f"'{identity}' is not a host name.")
        result = self.shell.run(self.build_command(identity))
        average = parse_ping(result.stdout)
        loss = parse_loss(result.stdout)
        self._write_log(identity, average, loss)

        if average is None:
            raise ActionError(f"{identity} unreachable (exit code {result.exit_code})")

        logger.info(f"{identity}: avg {average:.1f} ms, loss {loss if loss is not None else '?'}%")
        if self.config.threshold_ms is not None and average > self.config.threshold_ms:
            raise ActionError(f"{identity} latency {average:.1f} ms exceeds {self.config.threshold_ms:.1f} ms")
        return ActionResult.applied(identity, average_ms=average, loss_percent=loss)

    def _write_log(self, identity: str, average: Optional[float], loss: Optional[float]) -> None:
        if not self.config.log_path:
            return
        path = Path(self.config.log_path)
        new_file = not path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            if new_file:
                writer.writerow(["timestamp", "host", "average_ms", "loss_percent"])
            writer.writerow(
                [
                    datetime.now(timezone.utc).isoformat(timespec="seconds"),
                    identity,
                    "" if average is None else f"{average:.1f}",
                    "" if loss is None else f"{loss:g}",
                ]
            )
