"""
JobOrchestrator -- DI container for the reconciliation jobs.

Contract:
    Wires the TaskRegistry with every job, injects the Clock, channel
    senders and job settings, and creates the JobExecutor.  Single place
    where all job dependencies are composed.

Invariants enforced:
    - Clock injection: the executor and every task share one Clock.
    - The store handle is a constructor parameter, never module state.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from tanda_kernel.domain.clock import Clock, SystemClock

from tanda_batch.channels import NotificationDispatcher
from tanda_batch.domain.types import JobRunResult
from tanda_batch.services.executor import JobExecutor
from tanda_batch.tasks.base import TaskRegistry
from tanda_batch.tasks.interest_accrual import InterestAccrualTask
from tanda_batch.tasks.reminder_cleanup import ReminderCleanupTask
from tanda_batch.tasks.reminder_dispatch import ReminderDispatchTask
from tanda_batch.tasks.reservation_release import ReservationReleaseTask
from tanda_batch.tasks.score_decay import ScoreDecayTask
from tanda_batch.tasks.swap_expiration import SwapExpirationTask
from tanda_batch.tasks.tenure_bonus import TenureBonusTask
from tanda_config.schema import JobSettings


def default_task_registry(
    settings: JobSettings | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> TaskRegistry:
    """Create a TaskRegistry pre-loaded with all seven jobs."""
    jobs = settings or JobSettings()
    registry = TaskRegistry()
    registry.register(
        ReservationReleaseTask(grace_days=jobs.reservation_release.grace_days)
    )
    registry.register(InterestAccrualTask())
    registry.register(SwapExpirationTask())
    registry.register(
        ReminderDispatchTask(
            dispatcher=dispatcher,
            batch_size=jobs.reminder_dispatch.batch_size,
        )
    )
    registry.register(
        ScoreDecayTask(
            inactivity_days=jobs.score_decay.inactivity_days,
            floor=jobs.score.floor,
        )
    )
    registry.register(TenureBonusTask(ceiling=jobs.score.ceiling))
    registry.register(
        ReminderCleanupTask(
            retention_days=jobs.reminder_cleanup.retention_days,
            notification_retention_days=jobs.reminder_cleanup.notification_retention_days,
        )
    )
    return registry


class JobOrchestrator:
    """DI container for the job runners.

    Contract:
        - ``from_session()`` factory creates a fully wired orchestrator.
        - ``run()`` executes one job through a fresh JobExecutor.
        - ``task_registry`` provides access to registered jobs.

    Non-goals:
        - Does NOT manage session lifecycle -- caller controls commits.
    """

    def __init__(
        self,
        session: Session,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._task_registry = task_registry
        self._clock = clock or SystemClock()

    @classmethod
    def from_session(
        cls,
        session: Session,
        clock: Clock | None = None,
        settings: JobSettings | None = None,
        dispatcher: NotificationDispatcher | None = None,
        task_registry: TaskRegistry | None = None,
    ) -> JobOrchestrator:
        """Create a fully wired JobOrchestrator from a session.

        Args:
            session: SQLAlchemy session for persistence.
            clock: Optional clock for deterministic testing.
            settings: Job settings; defaults apply when omitted.
            dispatcher: Channel dispatcher; logging senders when omitted.
            task_registry: Optional pre-configured registry. If None,
                uses the default registry with all jobs.
        """
        registry = (
            task_registry
            if task_registry is not None
            else default_task_registry(settings, dispatcher)
        )
        return cls(session=session, task_registry=registry, clock=clock)

    def create_executor(self) -> JobExecutor:
        return JobExecutor(
            session=self._session,
            task_registry=self._task_registry,
            clock=self._clock,
        )

    def run(
        self, job_name: str, parameters: dict[str, Any] | None = None,
    ) -> JobRunResult:
        return self.create_executor().run(job_name, parameters)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry
