# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import Protocol

from coreason_bulk_admin.domain.results import RunSummary
from coreason_bulk_admin.utils.logger import logger


class ReportSink(Protocol):
    def report(self, summary: RunSummary) -> None:
        """Receives the final summary of a run, exactly once."""
        ...  # pragma: no cover


class LoguruReportSink:
    """Writes the summary to the log."""

    def report(self, summary: RunSummary) -> None:
        for identity, error in summary.failures:
            logger.error(f"FAILED {identity}: {error}")
        line = (
            f"Summary for '{summary.action_name}': {summary.applied} applied, "
            f"{summary.skipped} skipped, {summary.failed} failed ({summary.processed} processed)"
        )
        if summary.aborted:
            logger.warning(f"{line}. Batch aborted before completion.")
        elif summary.failed:
            logger.warning(line)
        else:
            logger.info(line)
