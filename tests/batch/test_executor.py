"""
Tests for JobExecutor: SAVEPOINT-per-item isolation, run status
aggregation, job log recording and failure handling.
"""

from typing import Any

import pytest

from tanda_kernel.domain.results import BestEffort
from tanda_kernel.exceptions import (
    CandidateFetchError,
    StaleTransitionError,
    TaskNotRegisteredError,
    WalletNotFoundError,
)
from tanda_kernel.models import JobLogEntry, JobRunStatus, Wallet

from tanda_batch.domain.types import ItemStatus
from tanda_batch.services.executor import JobExecutor
from tanda_batch.tasks.base import BatchItemInput, BatchTaskResult, TaskRegistry


class ScriptedTask:
    """Task whose per-item behaviour is given up front.

    Each outcome is ``"ok"``, ``"skip"``, ``"domain_error"``,
    ``"crash"``, ``"stale"`` or ``"ok_side_effect_failed"``.  Successful
    items add 100 cents to the wallet passed in, so rollback is visible.
    """

    task_type = "scripted"
    description = "test task"

    def __init__(self, outcomes: list[str], wallet_id=None):
        self.outcomes = outcomes
        self.wallet_id = wallet_id
        self.failure_markers: list[str] = []

    def prepare_items(self, parameters, session, as_of):
        return tuple(
            BatchItemInput(item_index=i, item_key=f"item-{i}", payload={"outcome": o})
            for i, o in enumerate(self.outcomes)
        )

    def execute_item(self, item, parameters, session, as_of):
        if self.wallet_id is not None:
            wallet = session.get(Wallet, self.wallet_id)
            wallet.main_balance += 100
            session.flush()

        outcome = item.payload["outcome"]
        if outcome == "ok":
            return BatchTaskResult.succeeded({"amount": 100})
        if outcome == "ok_side_effect_failed":
            return BatchTaskResult.succeeded(
                {"amount": 100}, BestEffort.failed("audit", "insert failed"),
            )
        if outcome == "skip":
            return BatchTaskResult.skipped("nothing_to_do")
        if outcome == "domain_error":
            raise WalletNotFoundError("w-404")
        if outcome == "stale":
            raise StaleTransitionError("Wallet", "w-1", "status=reserved")
        raise RuntimeError("unexpected")

    def summarize(self, results) -> dict[str, Any]:
        return {"custom_counter": len(results)}


class MarkingTask(ScriptedTask):
    task_type = "marking"

    def __init__(self, outcomes, raise_in_marker=False):
        super().__init__(outcomes)
        self.raise_in_marker = raise_in_marker

    def record_failure(self, item, error_message, session, as_of):
        if self.raise_in_marker:
            raise RuntimeError("marker store down")
        self.failure_markers.append(error_message)
        return BestEffort.ok("marker")


class BrokenFetchTask(ScriptedTask):
    task_type = "broken_fetch"

    def prepare_items(self, parameters, session, as_of):
        raise RuntimeError("connection reset")


def _executor(session, clock, *tasks) -> JobExecutor:
    registry = TaskRegistry()
    for task in tasks:
        registry.register(task)
    return JobExecutor(session, registry, clock=clock)


class TestRunStatus:
    def test_all_succeed_is_completed(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["ok", "ok"])).run("scripted")

        assert result.status == JobRunStatus.COMPLETED
        assert (result.processed, result.succeeded, result.failed) == (2, 2, 0)
        assert result.stats["custom_counter"] == 2

    def test_empty_run_is_completed(self, session, clock):
        result = _executor(session, clock, ScriptedTask([])).run("scripted")

        assert result.status == JobRunStatus.COMPLETED
        assert result.processed == 0
        assert result.message == "scripted: nothing to process"

    def test_mixed_is_partially_completed(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["ok", "domain_error", "ok"])).run("scripted")

        assert result.status == JobRunStatus.PARTIALLY_COMPLETED
        assert (result.succeeded, result.failed) == (2, 1)
        assert result.message == "scripted: 2 succeeded, 1 failed, 0 skipped of 3"

    def test_all_fail_is_failed(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["domain_error", "crash"])).run("scripted")

        assert result.status == JobRunStatus.FAILED
        assert result.failed == 2

    def test_failures_with_skips_are_partial(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["skip", "crash"])).run("scripted")

        assert result.status == JobRunStatus.PARTIALLY_COMPLETED


class TestItemIsolation:
    def test_failed_item_rolled_back_neighbours_kept(self, session, clock, seed):
        wallet = seed.wallet(main=0)
        task = ScriptedTask(["ok", "domain_error", "crash", "ok"], wallet_id=wallet.id)

        _executor(session, clock, task).run("scripted")

        session.expire_all()
        assert session.get(Wallet, wallet.id).main_balance == 200

    def test_error_codes_recorded(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["domain_error", "crash"])).run("scripted")

        codes = [r.error_code for r in result.item_results]
        assert codes == ["WALLET_NOT_FOUND", "UNHANDLED_EXCEPTION"]

    def test_stale_transition_is_skip(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["stale"])).run("scripted")

        item = result.item_results[0]
        assert item.status == ItemStatus.SKIPPED
        assert item.result_data == {"reason": "concurrent_transition"}
        assert result.failed == 0
        assert result.status == JobRunStatus.COMPLETED

    def test_skipped_item_changes_rolled_back(self, session, clock, seed):
        wallet = seed.wallet(main=0)

        _executor(session, clock, ScriptedTask(["skip"], wallet_id=wallet.id)).run("scripted")

        session.expire_all()
        assert session.get(Wallet, wallet.id).main_balance == 0


class TestSideEffects:
    def test_side_effect_failure_never_counts_as_failed(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["ok_side_effect_failed", "ok"])).run("scripted")

        assert result.failed == 0
        assert result.succeeded == 2
        assert result.side_effect_failures == 1
        assert result.stats["side_effect_failures"] == 1
        assert result.status == JobRunStatus.COMPLETED

    def test_failure_marker_hook_called(self, session, clock):
        task = MarkingTask(["ok", "domain_error"])

        result = _executor(session, clock, task).run("marking")

        assert task.failure_markers == ["Wallet not found: w-404"]
        assert result.side_effect_failures == 0

    def test_failure_marker_error_is_side_effect_failure(self, session, clock):
        task = MarkingTask(["domain_error"], raise_in_marker=True)

        result = _executor(session, clock, task).run("marking")

        assert result.failed == 1
        assert result.side_effect_failures == 1
        labels = [s.label for s in result.item_results[0].failed_side_effects]
        assert labels == ["failure_marker"]


class TestJobLog:
    def test_one_entry_per_run(self, session, clock):
        result = _executor(session, clock, ScriptedTask(["ok", "domain_error"])).run("scripted")

        entry = session.query(JobLogEntry).one()
        assert result.job_log.succeeded
        assert entry.job_name == "scripted"
        assert entry.status == "partially_completed"
        assert (entry.records_processed, entry.records_succeeded, entry.records_failed) == (2, 1, 1)
        assert entry.details["run_id"] == result.run_id
        assert entry.details["errors"][0]["error_code"] == "WALLET_NOT_FOUND"

    def test_candidate_fetch_failure(self, session, clock, captured_logs):
        with pytest.raises(CandidateFetchError) as exc_info:
            _executor(session, clock, BrokenFetchTask([])).run("broken_fetch")

        assert "connection reset" in str(exc_info.value)
        entry = session.query(JobLogEntry).one()
        assert entry.status == "failed"
        assert any(r["message"] == "candidate_fetch_failed" for r in captured_logs())

    def test_unknown_task(self, session, clock):
        with pytest.raises(TaskNotRegisteredError):
            _executor(session, clock).run("nope")


class TestLogging:
    def test_run_context_bound(self, session, clock, captured_logs):
        result = _executor(session, clock, ScriptedTask(["domain_error"])).run("scripted")

        logs = captured_logs()
        failed = next(r for r in logs if r["message"] == "item_failed")
        assert failed["job_name"] == "scripted"
        assert failed["job_run_id"] == result.run_id
        assert failed["item_key"] == "item-0"
        completed = next(r for r in logs if r["message"] == "job_completed")
        assert completed["status"] == "failed"
