"""
ReconciliationTask protocol, supporting types, and TaskRegistry.

Contract:
    ``ReconciliationTask`` defines the interface every scheduled job must
    implement.  ``TaskRegistry`` stores registered tasks keyed by
    ``task_type``.

Invariants enforced:
    - One task per ``task_type`` string.
    - Tasks never commit or open their own top-level transaction; the
      executor owns the per-item SAVEPOINT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from tanda_kernel.domain.results import BestEffort
from tanda_kernel.exceptions import TaskNotRegisteredError

from tanda_batch.domain.types import ItemResult, ItemStatus


# =============================================================================
# Supporting DTOs
# =============================================================================


@dataclass(frozen=True)
class BatchItemInput:
    """Input for a single candidate.

    Created by ``ReconciliationTask.prepare_items()``.
    """

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    """Result returned by ``ReconciliationTask.execute_item()``."""

    status: ItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None
    side_effects: tuple[BestEffort, ...] = ()

    @classmethod
    def succeeded(
        cls, result_data: dict[str, Any] | None = None, *side_effects: BestEffort,
    ) -> BatchTaskResult:
        return cls(
            status=ItemStatus.SUCCEEDED,
            result_data=result_data,
            side_effects=tuple(side_effects),
        )

    @classmethod
    def skipped(cls, reason: str, **result_data: Any) -> BatchTaskResult:
        return cls(
            status=ItemStatus.SKIPPED,
            result_data={"reason": reason, **result_data},
        )


# =============================================================================
# ReconciliationTask Protocol
# =============================================================================


@runtime_checkable
class ReconciliationTask(Protocol):
    """Protocol for a scheduled reconciliation job.

    Contract:
        - ``task_type``: unique job name registered in TaskRegistry.
        - ``description``: human-readable label for logs and the API.
        - ``prepare_items()``: selects candidates, returns an immutable tuple.
        - ``execute_item()``: processes ONE candidate within a SAVEPOINT.
          Domain errors (``TandaError``) may be raised; the executor
          records them as item failures.
        - ``summarize()``: job-specific counters for the response stats.

    Optional:
        ``record_failure(item, error_message, session, as_of)`` -- called
        in a fresh SAVEPOINT after a failed item was rolled back, so the
        task can persist a failure marker.

    Non-goals:
        - Does NOT manage transactions.
        - Does NOT retry; the next scheduled run re-selects what is left.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        """Query the candidate set for this run.

        Args:
            parameters: Per-invocation overrides.
            session: Database session for querying candidates.
            as_of: Clock-injected timestamp for determinism.
        """
        ...

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        """Apply the job's transformation to a single candidate."""
        ...

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        """Job-specific counters merged into the run stats."""
        ...


# =============================================================================
# TaskRegistry
# =============================================================================


class TaskRegistry:
    """Registry mapping task_type strings to ReconciliationTask implementations.

    Contract:
        - ``register()`` adds a task; raises ValueError on duplicate.
        - ``get()`` retrieves by task_type; raises TaskNotRegisteredError.
        - ``list_tasks()`` returns all registered task_type strings.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, ReconciliationTask] = {}

    def register(self, task: ReconciliationTask) -> None:
        """Register a task implementation.

        Raises:
            ValueError: If a task with the same task_type is already registered.
        """
        if task.task_type in self._tasks:
            raise ValueError(
                f"Task type '{task.task_type}' is already registered"
            )
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> ReconciliationTask:
        """Retrieve a registered task by task_type.

        Raises:
            TaskNotRegisteredError: If nothing is registered under task_type.
        """
        try:
            return self._tasks[task_type]
        except KeyError:
            raise TaskNotRegisteredError(task_type, self.list_tasks()) from None

    def list_tasks(self) -> tuple[str, ...]:
        """Return all registered task_type strings, sorted."""
        return tuple(sorted(self._tasks.keys()))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks


def count_succeeded(results: tuple[ItemResult, ...]) -> int:
    return sum(1 for r in results if r.status == ItemStatus.SUCCEEDED)


def sum_result_field(results: tuple[ItemResult, ...], key: str) -> int:
    """Sum an integer ``result_data`` field over succeeded items."""
    return sum(
        int((r.result_data or {}).get(key, 0))
        for r in results
        if r.status == ItemStatus.SUCCEEDED
    )
