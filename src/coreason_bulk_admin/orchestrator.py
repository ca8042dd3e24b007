# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import List, Optional

from coreason_bulk_admin.actions.base import RemoteAction
from coreason_bulk_admin.domain.context import Batch, RunOptions
from coreason_bulk_admin.domain.results import RunSummary
from coreason_bulk_admin.driver import BulkDriver
from coreason_bulk_admin.exceptions import BatchAbortedError, NoTargetsError
from coreason_bulk_admin.reporters.base import LoguruReportSink, ReportSink
from coreason_bulk_admin.sessions.base import SessionManager, session_scope
from coreason_bulk_admin.sources.base import IdentitySource
from coreason_bulk_admin.utils.logger import logger


class BatchRunner:
    """
    Wires one run together:
    Load identities -> Open session -> Drive batch -> Report -> Close session.
    The session is closed exactly once on every exit path.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        driver: Optional[BulkDriver] = None,
        sinks: Optional[List[ReportSink]] = None,
    ) -> None:
        self.session_manager = session_manager
        self.driver = driver or BulkDriver()
        self.sinks: List[ReportSink] = sinks if sinks is not None else [LoguruReportSink()]

    def run(self, source: IdentitySource, action: RemoteAction, options: Optional[RunOptions] = None) -> RunSummary:
        """
        Executes the action against every identity of the source.

        Raises:
            SourceFormatError / SourceLookupError: The source could not be read.
            NoTargetsError: The source produced no identities.
            SessionError: The session could not be opened.
            BatchAbortedError: A non-isolated action error stopped the batch.
        """
        options = options or RunOptions()

        if getattr(source, "requires_session", False):
            # Directory lookups need the connection before the batch exists
            with session_scope(self.session_manager):
                batch = self.load(source, action)
                return self._drive(batch, action, options)

        batch = self.load(source, action)
        with session_scope(self.session_manager):
            return self._drive(batch, action, options)

    def load(self, source: IdentitySource, action: RemoteAction) -> Batch:
        batch = Batch.from_identities(source.load())
        if len(batch) == 0:
            raise NoTargetsError(f"Identity source for '{action.name}' returned no targets.")
        logger.info(f"Loaded batch of {len(batch)} target(s) for '{action.name}'")
        return batch

    def _drive(self, batch: Batch, action: RemoteAction, options: RunOptions) -> RunSummary:
        summary: Optional[RunSummary] = None
        try:
            summary = self.driver.run_batch(batch, action, options)
            return summary
        except BatchAbortedError as e:
            summary = e.summary
            raise
        finally:
            if summary is not None:
                self._report(summary)

    def _report(self, summary: RunSummary) -> None:
        for sink in self.sinks:
            try:
                sink.report(summary)
            except Exception as e:
                logger.error(f"Report sink {sink.__class__.__name__} failed: {e}")
