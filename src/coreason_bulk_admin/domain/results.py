# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from coreason_bulk_admin.domain.context import Batch
from coreason_bulk_admin.exceptions import SummaryFinalizedError

EMPTY_IDENTITY = "empty identity"
DRY_RUN = "dry-run"
DECLINED = "declined"


class Outcome(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class ActionResult(BaseModel):
    """
    Outcome of applying an action to one identity.
    """

    identity: str = Field(..., description="The identity the action was applied to.")
    outcome: Outcome = Field(..., description="Applied, skipped or failed.")
    reason: Optional[str] = Field(default=None, description="Why the identity was skipped.")
    error: Optional[str] = Field(default=None, description="Error message when the action failed.")
    details: Dict[str, Any] = Field(default_factory=dict, description="Action specific details.")

    model_config = {"frozen": True}

    @classmethod
    def applied(cls, identity: str, **details: Any) -> "ActionResult":
        return cls(identity=identity, outcome=Outcome.APPLIED, details=details)

    @classmethod
    def skipped(cls, identity: str, reason: str, **details: Any) -> "ActionResult":
        return cls(identity=identity, outcome=Outcome.SKIPPED, reason=reason, details=details)

    @classmethod
    def failed(cls, identity: str, error: str, **details: Any) -> "ActionResult":
        return cls(identity=identity, outcome=Outcome.FAILED, error=error, details=details)

    @property
    def ok(self) -> bool:
        return self.outcome != Outcome.FAILED

    def describe(self) -> str:
        if self.outcome == Outcome.SKIPPED:
            return f"{self.identity}: skipped ({self.reason})"
        if self.outcome == Outcome.FAILED:
            return f"{self.identity}: failed ({self.error})"
        return f"{self.identity}: applied"


class RunSummary:
    """
    Aggregate outcome of one batch run.
    Updated once per processed identity, then finalized and read-only.
    """

    def __init__(self, action_name: str = "") -> None:
        self.action_name = action_name
        self._results: List[ActionResult] = []
        self._finalized = False
        self.aborted = False

    def record(self, result: ActionResult) -> None:
        if self._finalized:
            raise SummaryFinalizedError(f"Cannot record {result.identity!r}: summary is finalized.")
        self._results.append(result)

    def mark_aborted(self) -> None:
        if self._finalized:
            raise SummaryFinalizedError("Cannot abort a finalized summary.")
        self.aborted = True

    def finalize(self) -> "RunSummary":
        self._finalized = True
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def results(self) -> Tuple[ActionResult, ...]:
        return tuple(self._results)

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self._results if r.outcome == outcome)

    @property
    def applied(self) -> int:
        return self._count(Outcome.APPLIED)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def processed(self) -> int:
        return len(self._results)

    @property
    def failures(self) -> List[Tuple[str, str]]:
        """(identity, error) pairs in batch order."""
        return [(r.identity, r.error or "") for r in self._results if r.outcome == Outcome.FAILED]

    @property
    def success(self) -> bool:
        return self.failed == 0 and not self.aborted

    def failed_identities(self) -> Batch:
        """A new batch containing only the failed identities, for a caller-driven retry."""
        return Batch(identity for identity, _ in self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action_name,
            "applied": self.applied,
            "skipped": self.skipped,
            "failed": self.failed,
            "processed": self.processed,
            "aborted": self.aborted,
            "failures": [{"identity": i, "error": e} for i, e in self.failures],
            "results": [r.model_dump(mode="json") for r in self._results],
        }

    def __repr__(self) -> str:
        return (
            f"RunSummary(action={self.action_name!r}, applied={self.applied}, "
            f"skipped={self.skipped}, failed={self.failed}, aborted={self.aborted})"
        )
