# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

from typing import Optional

from coreason_bulk_admin.actions.base import RemoteAction
from coreason_bulk_admin.confirm import ConfirmCallback
from coreason_bulk_admin.domain.context import Batch, ConfirmMode, RunOptions
from coreason_bulk_admin.domain.results import (
    DECLINED,
    DRY_RUN,
    EMPTY_IDENTITY,
    ActionResult,
    Outcome,
    RunSummary,
)
from coreason_bulk_admin.events import AutomationEvent, EventEmitter, EventType, LoguruEmitter
from coreason_bulk_admin.exceptions import BatchAbortedError, BulkAdminError, NoTargetsError
from coreason_bulk_admin.utils.logger import logger


def _error_message(error: BaseException) -> str:
    message = str(error).strip()
    return message or error.__class__.__name__


class BulkDriver:
    """
    Applies one action to every identity of a batch, strictly in order.
    Failures are isolated per identity and collected into a RunSummary.
    The driver never retries; use RunSummary.failed_identities() to build a retry batch.
    """

    def __init__(
        self,
        event_emitter: Optional[EventEmitter] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> None:
        self.event_emitter = event_emitter or LoguruEmitter()
        self.confirm = confirm

    def run_batch(self, batch: Batch, action: RemoteAction, options: Optional[RunOptions] = None) -> RunSummary:
        """
        Executes the action once per identity.

        Raises:
            NoTargetsError: The batch is empty.
            BatchAbortedError: isolate_exceptions is off and the action raised.
                The partial summary is attached to the error.
        """
        options = options or RunOptions()
        if len(batch) == 0:
            raise NoTargetsError(f"No targets supplied for '{action.name}'.")
        if options.confirm == ConfirmMode.ALWAYS and self.confirm is None:
            raise BulkAdminError("confirm=always requires a confirmation callback.")

        summary = RunSummary(action_name=action.name)
        self.event_emitter.emit(
            AutomationEvent(
                type=EventType.RUN_START,
                message=f"Starting '{action.name}' for {len(batch)} target(s)",
                payload={"action": action.name, "total": len(batch), "confirm": options.confirm.value},
            )
        )

        total = len(batch)
        for position, raw_identity in enumerate(batch, start=1):
            identity = (raw_identity or "").strip()
            if not identity:
                logger.warning(f"Skipping empty identity at position {position}.")
                self._record(summary, ActionResult.skipped(raw_identity or "", EMPTY_IDENTITY), position, total)
                continue

            try:
                result = self._process(action, identity, options, position, total)
            except Exception as e:
                failure = ActionResult.failed(identity, _error_message(e))
                self._record(summary, failure, position, total)
                if not options.isolate_exceptions:
                    self._abort(summary, f"Aborting batch: {identity} raised {e.__class__.__name__}")
                    raise BatchAbortedError(f"'{action.name}' aborted at {identity}: {failure.error}", summary) from e
                result = failure
            else:
                self._record(summary, result, position, total)

            if result.outcome == Outcome.FAILED and not options.continue_on_error:
                remaining = total - position
                self._abort(summary, f"Stopping after failure of {identity}; {remaining} target(s) not processed")
                break

        summary.finalize()
        self.event_emitter.emit(
            AutomationEvent(
                type=EventType.RUN_END,
                message=(
                    f"'{action.name}' finished: {summary.applied} applied, "
                    f"{summary.skipped} skipped, {summary.failed} failed"
                ),
                payload={
                    "applied": summary.applied,
                    "skipped": summary.skipped,
                    "failed": summary.failed,
                    "aborted": summary.aborted,
                },
            )
        )
        return summary

    def _process(
        self, action: RemoteAction, identity: str, options: RunOptions, position: int, total: int
    ) -> ActionResult:
        """Dry-run, confirmation and apply for one non-blank identity."""
        if options.confirm == ConfirmMode.DRY_RUN:
            return ActionResult.skipped(identity, DRY_RUN, plan=action.describe(identity))

        if options.confirm == ConfirmMode.ALWAYS and self.confirm is not None:
            if not self.confirm(action.name, identity):
                return ActionResult.skipped(identity, DECLINED)

        self.event_emitter.emit(
            AutomationEvent(
                type=EventType.ITEM_START,
                message=f"[{position}/{total}] {action.describe(identity)}",
                payload={"identity": identity, "position": position},
            )
        )
        result = action.apply(identity)
        if not isinstance(result, ActionResult):
            raise TypeError(f"{action.name} returned {type(result).__name__}, expected ActionResult")
        return result

    def _record(self, summary: RunSummary, result: ActionResult, position: int, total: int) -> None:
        summary.record(result)
        self.event_emitter.emit(
            AutomationEvent(
                type=EventType.ITEM_RESULT,
                message=f"[{position}/{total}] {result.describe()}",
                payload={
                    "identity": result.identity,
                    "position": position,
                    "outcome": result.outcome.value,
                    "reason": result.reason,
                    "error": result.error,
                },
            )
        )

    def _abort(self, summary: RunSummary, message: str) -> None:
        summary.mark_aborted()
        summary.finalize()
        self.event_emitter.emit(
            AutomationEvent(type=EventType.ERROR, message=message, payload={"processed": summary.processed})
        )
