"""
tanda_batch.domain.types -- Pure frozen dataclasses for job runs.  ZERO I/O.

Invariants enforced:
    - All DTOs are frozen dataclasses (immutable once returned).
    - ``side_effect_failures`` is tracked apart from ``failed``: a failed
      audit or notification write never turns an item into a failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from tanda_kernel.domain.results import BestEffort
from tanda_kernel.models.job_log import JobRunStatus


class ItemStatus(str, Enum):
    """Per-item outcome within a job run."""

    SUCCEEDED = "succeeded"  # Savepoint committed
    FAILED = "failed"  # Domain or unexpected error; savepoint rolled back
    SKIPPED = "skipped"  # No-op or already handled by another run


@dataclass(frozen=True)
class ItemResult:
    """Immutable result of processing a single candidate."""

    item_index: int
    item_key: str  # Business identifier (reservation id, loan id, ...)
    status: ItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    side_effects: tuple[BestEffort, ...] = ()
    duration_ms: int = 0

    @property
    def failed_side_effects(self) -> tuple[BestEffort, ...]:
        return tuple(s for s in self.side_effects if not s.succeeded)

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.item_key,
            "success": self.status == ItemStatus.SUCCEEDED,
            "status": self.status.value,
        }
        if self.error_message is not None:
            data["error"] = self.error_message
            data["error_code"] = self.error_code
        if self.result_data:
            data.update(self.result_data)
        failures = self.failed_side_effects
        if failures:
            data["side_effect_failures"] = [f.as_dict() for f in failures]
        return data


@dataclass(frozen=True)
class JobRunResult:
    """Immutable result of one job invocation.

    Returned by ``JobExecutor.run()``.  ``stats`` holds the generic
    counters plus the task's own summary (``released``,
    ``total_interest_cents``, ...).
    """

    job_name: str
    run_id: str
    status: JobRunStatus
    processed: int
    succeeded: int
    failed: int
    skipped: int
    side_effect_failures: int
    stats: dict[str, Any] = field(default_factory=dict)
    item_results: tuple[ItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    job_log: BestEffort | None = None

    @property
    def message(self) -> str:
        if self.processed == 0:
            return f"{self.job_name}: nothing to process"
        return (
            f"{self.job_name}: {self.succeeded} succeeded, {self.failed} failed, "
            f"{self.skipped} skipped of {self.processed}"
        )
