"""
tanda_batch.tasks -- Task protocol, registry, and the reconciliation jobs.
"""

from tanda_batch.tasks.base import (
    BatchItemInput,
    BatchTaskResult,
    ReconciliationTask,
    TaskRegistry,
)
from tanda_batch.tasks.interest_accrual import InterestAccrualTask
from tanda_batch.tasks.reminder_cleanup import ReminderCleanupTask
from tanda_batch.tasks.reminder_dispatch import ReminderDispatchTask
from tanda_batch.tasks.reservation_release import ReservationReleaseTask
from tanda_batch.tasks.score_decay import ScoreDecayTask
from tanda_batch.tasks.swap_expiration import SwapExpirationTask
from tanda_batch.tasks.tenure_bonus import TenureBonusTask

__all__ = [
    "BatchItemInput",
    "BatchTaskResult",
    "InterestAccrualTask",
    "ReconciliationTask",
    "ReminderCleanupTask",
    "ReminderDispatchTask",
    "ReservationReleaseTask",
    "ScoreDecayTask",
    "SwapExpirationTask",
    "TaskRegistry",
    "TenureBonusTask",
]
