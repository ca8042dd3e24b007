# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from coreason_bulk_admin.domain.results import RunSummary


class BulkAdminError(Exception):
    """Base exception for Coreason Bulk Admin."""

    pass


class NoTargetsError(BulkAdminError):
    """Raised when a batch contains no identities."""

    pass


class SourceError(BulkAdminError):
    """Base exception for identity source failures."""

    pass


class SourceFormatError(SourceError):
    """Raised when a delimited file cannot be read or lacks the expected column."""

    pass


class SourceLookupError(SourceError):
    """Raised when a directory group cannot be resolved."""

    pass


class ActionError(BulkAdminError):
    """Raised when a remote action fails for a single identity."""

    pass


class SessionError(BulkAdminError):
    """Raised when a backend session cannot be opened or closed."""

    pass


class BatchAbortedError(BulkAdminError):
    """Raised when a non-isolated failure stops the batch. Carries the partial summary."""

    def __init__(self, message: str, summary: "RunSummary") -> None:
        super().__init__(message)
        self.summary = summary


class SummaryFinalizedError(BulkAdminError):
    """Raised when a result is recorded into an already finalized summary."""

    pass
