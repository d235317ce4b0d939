"""
Module: tanda_kernel.models.job_log
Responsibility: ORM persistence for the append-only job run log.

One row per job invocation, never updated.  Operational tooling polls
this table (and the /health endpoint built on it) to alert on degraded
runs.
"""

from enum import Enum

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tanda_kernel.db.base import TrackedBase


class JobRunStatus(str, Enum):
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"


class JobLogEntry(TrackedBase):
    """Statistics of one job invocation."""

    __tablename__ = "job_logs"

    __table_args__ = (Index("idx_job_logs_name_created", "job_name", "created_at"),)

    job_name: Mapped[str] = mapped_column(String(60), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    records_processed: Mapped[int] = mapped_column(default=0, nullable=False)
    records_succeeded: Mapped[int] = mapped_column(default=0, nullable=False)
    records_failed: Mapped[int] = mapped_column(default=0, nullable=False)
    execution_time_ms: Mapped[int] = mapped_column(default=0, nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "job_name": self.job_name,
            "status": self.status,
            "records_processed": self.records_processed,
            "records_succeeded": self.records_succeeded,
            "records_failed": self.records_failed,
            "execution_time_ms": self.execution_time_ms,
            "details": self.details or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
