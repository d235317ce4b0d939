"""
JobLogRecorder -- append-only recorder of per-run job statistics.

Contract:
    ``record()`` inserts one ``JobLogEntry`` per job invocation inside its
    own SAVEPOINT and reports the outcome as a ``BestEffort``.  A failed
    write is logged locally and swallowed; it never changes the outcome of
    the job that produced it.

Queries:
    ``recent()`` returns the newest rows (optionally for one job) and
    ``last_run_by_job()`` the newest ``created_at`` per job name, used by
    the health endpoint.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tanda_kernel.domain.clock import as_utc
from tanda_kernel.domain.results import BestEffort
from tanda_kernel.logging_config import get_logger
from tanda_kernel.models.job_log import JobLogEntry, JobRunStatus

logger = get_logger("services.job_log")


class JobLogRecorder:
    """Writes and reads the job run log."""

    def __init__(self, session: Session):
        self._session = session

    def record(
        self,
        job_name: str,
        status: JobRunStatus,
        *,
        processed: int = 0,
        succeeded: int = 0,
        failed: int = 0,
        execution_time_ms: int = 0,
        details: dict[str, Any] | None = None,
        created_at: datetime | None = None,
    ) -> BestEffort:
        entry = JobLogEntry(
            job_name=job_name,
            status=status.value,
            records_processed=processed,
            records_succeeded=succeeded,
            records_failed=failed,
            execution_time_ms=execution_time_ms,
            details=details or {},
        )
        if created_at is not None:
            entry.created_at = created_at

        try:
            with self._session.begin_nested():
                self._session.add(entry)
                self._session.flush()
        except Exception as exc:
            logger.warning(
                "job_log_write_failed",
                extra={"job_name": job_name, "status": status.value, "error": str(exc)},
                exc_info=True,
            )
            return BestEffort.failed("job_log", str(exc))

        logger.info(
            "job_log_recorded",
            extra={
                "job_name": job_name,
                "status": status.value,
                "records_processed": processed,
                "records_failed": failed,
            },
        )
        return BestEffort.ok("job_log")

    def recent(self, job_name: str | None = None, limit: int = 20) -> list[JobLogEntry]:
        stmt = select(JobLogEntry)
        if job_name is not None:
            stmt = stmt.where(JobLogEntry.job_name == job_name)
        stmt = stmt.order_by(JobLogEntry.created_at.desc()).limit(limit)
        return list(self._session.execute(stmt).scalars().all())

    def last_run_by_job(self) -> dict[str, datetime]:
        rows = self._session.execute(
            select(JobLogEntry.job_name, func.max(JobLogEntry.created_at))
            .group_by(JobLogEntry.job_name)
        ).all()
        return {name: as_utc(last) for name, last in rows if last is not None}
