from typing import Dict
from unittest.mock import MagicMock

import pytest

from coreason_bulk_admin.confirm import AutoConfirmer
from coreason_bulk_admin.domain.context import Batch, ConfirmMode, RunOptions
from coreason_bulk_admin.domain.results import ActionResult, Outcome
from coreason_bulk_admin.driver import BulkDriver
from coreason_bulk_admin.events import EventCollector, EventType
from coreason_bulk_admin.exceptions import BatchAbortedError, BulkAdminError, NoTargetsError

from .conftest import RecordingAction, StatefulAction

FIVE = ["u1@corp.com", "u2@corp.com", "u3@corp.com", "u4@corp.com", "u5@corp.com"]


@pytest.fixture
def collector() -> EventCollector:
    return EventCollector()


@pytest.fixture
def driver(collector: EventCollector) -> BulkDriver:
    return BulkDriver(event_emitter=collector)


@pytest.mark.parametrize("identities", [["a"], ["a", "b"], FIVE, ["dup", "dup", "dup"]])
def test_all_applied_in_order(driver: BulkDriver, identities: list) -> None:
    action = RecordingAction()
    summary = driver.run_batch(Batch(identities), action)

    assert summary.applied == len(identities)
    assert summary.failed == 0
    assert summary.skipped == 0
    assert [r.identity for r in summary.results] == identities
    assert action.calls == identities
    assert summary.finalized
    assert summary.success


def test_empty_batch_raises_no_targets(driver: BulkDriver) -> None:
    action = RecordingAction()
    with pytest.raises(NoTargetsError):
        driver.run_batch(Batch([]), action)
    assert action.calls == []


def test_blank_identities_are_skipped(driver: BulkDriver) -> None:
    action = RecordingAction()
    summary = driver.run_batch(Batch(["a", "", "   ", "b", "\t"]), action)

    empty = [r for r in summary.results if r.reason == "empty identity"]
    assert len(empty) == 3
    assert all(r.outcome == Outcome.SKIPPED for r in empty)
    assert summary.applied == 2
    assert action.calls == ["a", "b"]


def test_identities_are_trimmed_before_apply(driver: BulkDriver) -> None:
    action = RecordingAction()
    driver.run_batch(Batch(["  alice@corp.com "]), action)
    assert action.calls == ["alice@corp.com"]


def test_partial_failure_isolation(driver: BulkDriver) -> None:
    action = RecordingAction(raise_on={FIVE[1], FIVE[3]})
    summary = driver.run_batch(Batch(FIVE), action, RunOptions(isolate_exceptions=True))

    assert summary.applied == 3
    assert summary.failed == 2
    assert [identity for identity, _ in summary.failures] == [FIVE[1], FIVE[3]]
    assert action.calls == FIVE
    assert "boom" in summary.failures[0][1]
    assert not summary.aborted


def test_failed_result_counts_as_failure(driver: BulkDriver) -> None:
    action = RecordingAction(fail_on={FIVE[0]})
    summary = driver.run_batch(Batch(FIVE), action)
    assert summary.failed == 1
    assert summary.applied == 4
    assert summary.failures == [(FIVE[0], f"refused {FIVE[0]}")]


def test_abort_on_error_stops_after_first_failure(driver: BulkDriver) -> None:
    action = RecordingAction(raise_on={FIVE[1], FIVE[3]})
    summary = driver.run_batch(Batch(FIVE), action, RunOptions(continue_on_error=False))

    assert summary.processed == 2
    assert summary.applied == 1
    assert summary.failed == 1
    assert summary.aborted
    assert action.calls == FIVE[:2]
    # Unprocessed identities are absent, not skipped
    assert {r.identity for r in summary.results} == set(FIVE[:2])
    assert summary.skipped == 0


def test_no_isolation_propagates_with_partial_summary(driver: BulkDriver) -> None:
    error = RuntimeError("cancelled by operator")
    action = RecordingAction(raise_on={FIVE[2]}, error=error)

    with pytest.raises(BatchAbortedError) as excinfo:
        driver.run_batch(Batch(FIVE), action, RunOptions(isolate_exceptions=False))

    summary = excinfo.value.summary
    assert excinfo.value.__cause__ is error
    assert summary.processed == 3
    assert summary.applied == 2
    assert summary.failed == 1
    assert summary.aborted
    assert summary.finalized
    assert action.calls == FIVE[:3]


def test_dry_run_never_calls_apply(driver: BulkDriver) -> None:
    action = MagicMock(spec=RecordingAction)
    action.name = "mock"
    action.describe.side_effect = lambda identity: f"would touch {identity}"

    summary = driver.run_batch(Batch(FIVE), action, RunOptions(confirm=ConfirmMode.DRY_RUN))

    action.apply.assert_not_called()
    assert summary.skipped == len(FIVE)
    assert all(r.reason == "dry-run" for r in summary.results)
    assert summary.results[0].details["plan"] == f"would touch {FIVE[0]}"


def test_confirm_always_declined(collector: EventCollector) -> None:
    confirmer = AutoConfirmer(answer=False)
    driver = BulkDriver(event_emitter=collector, confirm=confirmer)
    action = RecordingAction()

    summary = driver.run_batch(Batch(["a", "b"]), action, RunOptions(confirm=ConfirmMode.ALWAYS))

    assert action.calls == []
    assert [r.reason for r in summary.results] == ["declined", "declined"]
    assert confirmer.asked == ["a", "b"]


def test_confirm_always_accepted_selectively(collector: EventCollector) -> None:
    driver = BulkDriver(event_emitter=collector, confirm=lambda name, identity: identity != "b")
    action = RecordingAction()

    summary = driver.run_batch(Batch(["a", "b", "c"]), action, RunOptions(confirm=ConfirmMode.ALWAYS))

    assert action.calls == ["a", "c"]
    assert summary.applied == 2
    assert summary.results[1].reason == "declined"


def test_confirm_always_without_callback_is_rejected(driver: BulkDriver) -> None:
    with pytest.raises(BulkAdminError):
        driver.run_batch(Batch(["a"]), RecordingAction(), RunOptions(confirm=ConfirmMode.ALWAYS))


def test_non_result_return_is_a_failure(driver: BulkDriver) -> None:
    action = MagicMock()
    action.name = "broken"
    action.describe.return_value = "broken"
    action.apply.return_value = None

    summary = driver.run_batch(Batch(["a"]), action)
    assert summary.failed == 1
    assert "expected ActionResult" in summary.failures[0][1]


def test_error_without_message_uses_class_name(driver: BulkDriver) -> None:
    action = RecordingAction(raise_on={"a"}, error=TimeoutError())
    summary = driver.run_batch(Batch(["a"]), action)
    assert summary.failures == [("a", "TimeoutError")]


def test_idempotent_reruns_converge(driver: BulkDriver) -> None:
    store: Dict[str, str] = {}
    batch = Batch(["a", "b", "c"])

    first = driver.run_batch(batch, StatefulAction(store, "on"))
    state_after_first = dict(store)
    second = driver.run_batch(batch, StatefulAction(store, "on"))

    assert store == state_after_first
    assert first.applied == 3
    assert second.applied == 0
    assert second.skipped == 3


def test_failed_identities_builds_retry_batch(driver: BulkDriver) -> None:
    action = RecordingAction(raise_on={FIVE[1], FIVE[3]})
    summary = driver.run_batch(Batch(FIVE), action)

    retry = summary.failed_identities()
    assert list(retry) == [FIVE[1], FIVE[3]]

    retry_summary = driver.run_batch(retry, RecordingAction())
    assert retry_summary.applied == 2


def test_events_are_streamed(driver: BulkDriver, collector: EventCollector) -> None:
    driver.run_batch(Batch(["a", "", "b"]), RecordingAction(raise_on={"b"}))

    types = [e.type for e in collector.get_events()]
    assert types[0] == EventType.RUN_START
    assert types[-1] == EventType.RUN_END
    results = [e for e in collector.get_events() if e.type == EventType.ITEM_RESULT]
    assert [e.payload["outcome"] for e in results] == ["applied", "skipped", "failed"]
    assert [e.payload["position"] for e in results] == [1, 2, 3]


def test_custom_result_is_recorded_as_is(driver: BulkDriver) -> None:
    action = MagicMock()
    action.name = "custom"
    action.describe.return_value = "custom"
    action.apply.return_value = ActionResult.skipped("a", "already running")

    summary = driver.run_batch(Batch(["a"]), action)
    assert summary.results[0].reason == "already running"


class UndescribableAction(RecordingAction):
    def describe(self, identity: str) -> str:
        if identity == "b":
            raise ValueError(f"cannot describe {identity}")
        return super().describe(identity)


def test_describe_error_is_isolated(driver: BulkDriver) -> None:
    action = UndescribableAction()
    summary = driver.run_batch(Batch(["a", "b", "c"]), action)

    assert summary.applied == 2
    assert summary.failures == [("b", "cannot describe b")]
    assert action.calls == ["a", "c"]
    assert summary.finalized


def test_describe_error_in_dry_run_is_isolated(driver: BulkDriver) -> None:
    summary = driver.run_batch(Batch(["a", "b", "c"]), UndescribableAction(), RunOptions(confirm=ConfirmMode.DRY_RUN))

    assert [r.outcome for r in summary.results] == [Outcome.SKIPPED, Outcome.FAILED, Outcome.SKIPPED]


def test_describe_error_without_isolation_aborts(driver: BulkDriver) -> None:
    action = UndescribableAction()
    with pytest.raises(BatchAbortedError) as excinfo:
        driver.run_batch(Batch(["a", "b", "c"]), action, RunOptions(isolate_exceptions=False))

    assert isinstance(excinfo.value.__cause__, ValueError)
    assert excinfo.value.summary.processed == 2
    assert excinfo.value.summary.aborted
    assert action.calls == ["a"]


def test_confirm_callback_error_is_a_failure(collector: EventCollector) -> None:
    def confirm(name: str, identity: str) -> bool:
        if identity == "b":
            raise EOFError("console closed")
        return True

    driver = BulkDriver(event_emitter=collector, confirm=confirm)
    action = RecordingAction()
    summary = driver.run_batch(Batch(["a", "b", "c"]), action, RunOptions(confirm=ConfirmMode.ALWAYS))

    assert action.calls == ["a", "c"]
    assert summary.failures == [("b", "console closed")]
