"""
JobExecutor -- SAVEPOINT-per-item execution engine for reconciliation jobs.

Contract:
    ``run(task_type, parameters)`` selects the task's candidates, processes
    them strictly sequentially (one SAVEPOINT each), aggregates the
    outcome, appends one Job Log entry and returns a ``JobRunResult``.

Invariants enforced:
    - One failing item never aborts the batch or corrupts its neighbours.
    - A stale compare-and-set (another run got there first) is a skip,
      not a failure.
    - Best-effort side-effect failures are counted in
      ``side_effect_failures`` and never in ``failed``.
    - All timestamps come from the injected Clock.

Failure modes:
    - TaskNotRegisteredError: unknown ``task_type``.
    - CandidateFetchError: candidate selection raised; a ``failed`` Job
      Log entry is written before the error propagates.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from tanda_kernel.domain.clock import Clock, SystemClock
from tanda_kernel.domain.results import BestEffort
from tanda_kernel.exceptions import (
    CandidateFetchError,
    StaleTransitionError,
    TandaError,
)
from tanda_kernel.logging_config import LogContext, get_logger
from tanda_kernel.models.job_log import JobRunStatus
from tanda_kernel.services.job_log import JobLogRecorder

from tanda_batch.domain.types import ItemResult, ItemStatus, JobRunResult
from tanda_batch.tasks.base import (
    BatchItemInput,
    BatchTaskResult,
    ReconciliationTask,
    TaskRegistry,
)

logger = get_logger("batch.executor")

# Failed items echoed into the Job Log details.
_MAX_LOGGED_ERRORS = 50


class JobExecutor:
    """Runs one reconciliation job with SAVEPOINT-per-item isolation.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT schedule; each call is one externally triggered run.
    """

    def __init__(
        self,
        session: Session,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
        job_log: JobLogRecorder | None = None,
    ):
        self._session = session
        self._task_registry = task_registry
        self._clock = clock or SystemClock()
        self._job_log = job_log or JobLogRecorder(session)

    def run(
        self,
        task_type: str,
        parameters: dict[str, Any] | None = None,
    ) -> JobRunResult:
        """Execute one job invocation.

        Raises:
            TaskNotRegisteredError: If task_type is not in the registry.
            CandidateFetchError: If candidate selection fails.
        """
        task = self._task_registry.get(task_type)
        params = parameters or {}
        run_id = str(uuid4())

        with LogContext.bind(job_name=task_type, job_run_id=run_id):
            return self._run(task, params, run_id)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _run(
        self,
        task: ReconciliationTask,
        parameters: dict[str, Any],
        run_id: str,
    ) -> JobRunResult:
        start_time = time.monotonic()
        started_at = self._clock.now()

        logger.info("job_started", extra={"task_type": task.task_type})

        try:
            with self._session.begin_nested():
                items = task.prepare_items(
                    parameters=parameters,
                    session=self._session,
                    as_of=started_at,
                )
        except Exception as exc:
            duration = int((time.monotonic() - start_time) * 1000)
            logger.error(
                "candidate_fetch_failed",
                extra={"task_type": task.task_type, "error": str(exc)},
                exc_info=True,
            )
            self._job_log.record(
                task.task_type,
                JobRunStatus.FAILED,
                execution_time_ms=duration,
                details={"run_id": run_id, "error": str(exc)},
                created_at=self._clock.now(),
            )
            raise CandidateFetchError(task.task_type, str(exc)) from exc

        logger.info("candidates_selected", extra={"candidate_count": len(items)})

        item_results: list[ItemResult] = []
        for item in items:
            with LogContext.bind(item_key=item.item_key):
                item_results.append(
                    self._execute_item(task, item, parameters, started_at)
                )

        results = tuple(item_results)
        succeeded = sum(1 for r in results if r.status == ItemStatus.SUCCEEDED)
        failed = sum(1 for r in results if r.status == ItemStatus.FAILED)
        skipped = sum(1 for r in results if r.status == ItemStatus.SKIPPED)
        side_effect_failures = sum(len(r.failed_side_effects) for r in results)

        if failed == 0:
            status = JobRunStatus.COMPLETED
        elif succeeded == 0 and skipped == 0:
            status = JobRunStatus.FAILED
        else:
            status = JobRunStatus.PARTIALLY_COMPLETED

        stats: dict[str, Any] = {
            "processed": len(results),
            "succeeded": succeeded,
            "failed": failed,
            "skipped": skipped,
            "side_effect_failures": side_effect_failures,
        }
        stats.update(task.summarize(results))

        completed_at = self._clock.now()
        duration = int((time.monotonic() - start_time) * 1000)

        job_log = self._job_log.record(
            task.task_type,
            status,
            processed=len(results),
            succeeded=succeeded,
            failed=failed,
            execution_time_ms=duration,
            details={
                "run_id": run_id,
                "stats": stats,
                "errors": [
                    r.as_dict() for r in results if r.status == ItemStatus.FAILED
                ][:_MAX_LOGGED_ERRORS],
            },
            created_at=completed_at,
        )

        logger.info(
            "job_completed",
            extra={
                "status": status.value,
                "processed": len(results),
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "side_effect_failures": side_effect_failures,
                "duration_ms": duration,
            },
        )

        return JobRunResult(
            job_name=task.task_type,
            run_id=run_id,
            status=status,
            processed=len(results),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            side_effect_failures=side_effect_failures,
            stats=stats,
            item_results=results,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=duration,
            job_log=job_log,
        )

    def _execute_item(
        self,
        task: ReconciliationTask,
        item: BatchItemInput,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> ItemResult:
        item_start = time.monotonic()

        savepoint = self._session.begin_nested()
        try:
            result = task.execute_item(
                item=item,
                parameters=parameters,
                session=self._session,
                as_of=as_of,
            )
        except StaleTransitionError as exc:
            savepoint.rollback()
            logger.info("item_concurrent_transition", extra={"error": str(exc)})
            result = BatchTaskResult(
                status=ItemStatus.SKIPPED,
                result_data={"reason": "concurrent_transition"},
                error_code=exc.code,
                error_message=str(exc),
            )
        except TandaError as exc:
            savepoint.rollback()
            logger.warning(
                "item_failed",
                extra={"error_code": exc.code, "error": str(exc)},
            )
            result = BatchTaskResult(
                status=ItemStatus.FAILED,
                error_code=exc.code,
                error_message=str(exc),
            )
        except Exception as exc:
            savepoint.rollback()
            logger.error(
                "item_unhandled_exception",
                extra={"error": str(exc)},
                exc_info=True,
            )
            result = BatchTaskResult(
                status=ItemStatus.FAILED,
                error_code="UNHANDLED_EXCEPTION",
                error_message=str(exc),
            )
        else:
            if result.status == ItemStatus.SUCCEEDED:
                savepoint.commit()
            else:
                savepoint.rollback()
                if result.status == ItemStatus.FAILED:
                    logger.warning(
                        "item_failed",
                        extra={
                            "error_code": result.error_code,
                            "error": result.error_message,
                        },
                    )

        side_effects = result.side_effects
        if result.status == ItemStatus.FAILED:
            side_effects = side_effects + self._record_failure(
                task, item, result.error_message or "", as_of,
            )

        return ItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=result.status,
            error_code=result.error_code,
            error_message=result.error_message,
            result_data=result.result_data,
            side_effects=side_effects,
            duration_ms=int((time.monotonic() - item_start) * 1000),
        )

    def _record_failure(
        self,
        task: ReconciliationTask,
        item: BatchItemInput,
        error_message: str,
        as_of: datetime,
    ) -> tuple[BestEffort, ...]:
        """Run the task's optional failure-marker hook in its own SAVEPOINT."""
        hook = getattr(task, "record_failure", None)
        if hook is None:
            return ()
        try:
            with self._session.begin_nested():
                outcome = hook(
                    item=item,
                    error_message=error_message,
                    session=self._session,
                    as_of=as_of,
                )
        except Exception as exc:
            logger.warning(
                "failure_marker_write_failed",
                extra={"error": str(exc)},
                exc_info=True,
            )
            return (BestEffort.failed("failure_marker", str(exc)),)
        return (outcome,) if outcome is not None else ()
