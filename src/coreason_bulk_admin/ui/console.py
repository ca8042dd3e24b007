# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import Dict, Optional

from rich.console import Console
from rich.live import Live
from rich.table import Table

from coreason_bulk_admin.domain.results import RunSummary
from coreason_bulk_admin.events import AutomationEvent, EventType

STYLES = {
    "running": ("⏳", "yellow"),
    "applied": ("✅", "green"),
    "skipped": ("⏭️", "dim"),
    "failed": ("❌", "red"),
}


class RichConsoleEmitter:
    """
    Renders per-identity progress to a rich terminal UI.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self.rows: Dict[str, Dict[str, str]] = {}  # row key -> {identity, status, message}
        self.live: Optional[Live] = None
        self.title = "Bulk Run"

    def start(self) -> None:
        self.live = Live(self.generate_table(), console=self.console, refresh_per_second=4)
        self.live.start()

    def stop(self) -> None:
        if self.live:
            self.live.stop()

    def generate_table(self) -> Table:
        table = Table(title=self.title, expand=True)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Target", style="cyan")
        table.add_column("Status", justify="center")
        table.add_column("Details", style="dim")

        for key, data in self.rows.items():
            status = data.get("status", "running")
            icon, style = STYLES.get(status, ("•", "white"))
            table.add_row(key, data.get("identity", ""), icon, data.get("message", ""), style=style)

        return table

    def emit(self, event: AutomationEvent) -> None:
        if not self.live:
            return

        if event.type == EventType.RUN_START:
            self.title = event.message
            self.rows = {}

        elif event.type == EventType.ITEM_START:
            key = str(event.payload.get("position", len(self.rows) + 1))
            self.rows[key] = {
                "identity": str(event.payload.get("identity", "")),
                "status": "running",
                "message": event.message,
            }

        elif event.type == EventType.ITEM_RESULT:
            key = str(event.payload.get("position", len(self.rows) + 1))
            outcome = event.payload.get("outcome", "applied")
            note = event.payload.get("error") or event.payload.get("reason") or ""
            self.rows[key] = {
                "identity": str(event.payload.get("identity", "")),
                "status": outcome,
                "message": note,
            }

        elif event.type == EventType.ERROR:
            self.rows["!"] = {"identity": "", "status": "failed", "message": event.message}

        elif event.type == EventType.RUN_END:
            self.title = event.message

        self.live.update(self.generate_table())


class RichSummarySink:
    """Prints the final summary as a table."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def build_table(self, summary: RunSummary) -> Table:
        table = Table(title=f"Summary: {summary.action_name}")
        table.add_column("Applied", justify="right", style="green")
        table.add_column("Skipped", justify="right", style="dim")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Aborted", justify="center")
        table.add_row(
            str(summary.applied),
            str(summary.skipped),
            str(summary.failed),
            "yes" if summary.aborted else "no",
        )
        return table

    def report(self, summary: RunSummary) -> None:
        self.console.print(self.build_table(summary))
        if summary.failures:
            failures = Table(title="Failures", show_header=True)
            failures.add_column("Target", style="cyan")
            failures.add_column("Error", style="red")
            for identity, error in summary.failures:
                failures.add_row(identity, error)
            self.console.print(failures)
