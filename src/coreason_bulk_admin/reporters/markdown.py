# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import datetime
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from coreason_bulk_admin.domain.results import RunSummary
from coreason_bulk_admin.utils.logger import logger

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


class MarkdownReporter:
    def __init__(self, template_dir: str | Path = DEFAULT_TEMPLATE_DIR) -> None:
        self.env = Environment(loader=FileSystemLoader(str(template_dir)), autoescape=False)
        self.template = self.env.get_template("summary.md.j2")

    def generate_report(self, summary: RunSummary, title: Optional[str] = None) -> str:
        if summary.aborted:
            final_status = "ABORTED"
        elif summary.failed:
            final_status = "COMPLETED WITH FAILURES"
        else:
            final_status = "SUCCESS"

        results = [
            {
                "identity": r.identity or "(empty)",
                "outcome": r.outcome.value,
                "note": r.error or r.reason or "",
            }
            for r in summary.results
        ]

        context = {
            "title": title or summary.action_name,
            "action": summary.action_name,
            "timestamp": datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            "final_status": final_status,
            "processed": summary.processed,
            "applied": summary.applied,
            "skipped": summary.skipped,
            "failed": summary.failed,
            "aborted": summary.aborted,
            "failures": [{"identity": i, "error": e} for i, e in summary.failures],
            "results": results,
        }

        return self.template.render(context)


class MarkdownReportSink:
    """Renders the summary to a markdown file."""

    def __init__(self, path: str | Path, reporter: Optional[MarkdownReporter] = None) -> None:
        self.path = Path(path)
        self.reporter = reporter or MarkdownReporter()

    def report(self, summary: RunSummary) -> None:
        content = self.reporter.generate_report(summary)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(content, encoding="utf-8")
        logger.info(f"Run report written to {self.path}")
