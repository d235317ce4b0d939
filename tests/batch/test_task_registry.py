"""Tests for TaskRegistry and the default job wiring."""

import pytest

from tanda_kernel.exceptions import TaskNotRegisteredError

from tanda_batch.orchestrator import default_task_registry
from tanda_batch.tasks import InterestAccrualTask
from tanda_batch.tasks.base import ReconciliationTask, TaskRegistry

ALL_JOBS = (
    "interest_accrual",
    "reminder_cleanup",
    "reminder_dispatch",
    "reservation_release",
    "score_decay",
    "swap_expiration",
    "tenure_bonus",
)


class TestTaskRegistry:
    def test_register_and_get(self):
        registry = TaskRegistry()
        task = InterestAccrualTask()
        registry.register(task)

        assert registry.get("interest_accrual") is task
        assert "interest_accrual" in registry
        assert len(registry) == 1

    def test_duplicate_rejected(self):
        registry = TaskRegistry()
        registry.register(InterestAccrualTask())
        with pytest.raises(ValueError):
            registry.register(InterestAccrualTask())

    def test_missing_lists_available(self):
        registry = TaskRegistry()
        registry.register(InterestAccrualTask())
        with pytest.raises(TaskNotRegisteredError) as exc_info:
            registry.get("score_decay")
        assert exc_info.value.available == ("interest_accrual",)


class TestDefaultRegistry:
    def test_all_seven_jobs(self):
        assert default_task_registry().list_tasks() == ALL_JOBS

    @pytest.mark.parametrize("job_name", ALL_JOBS)
    def test_tasks_satisfy_protocol(self, job_name):
        task = default_task_registry().get(job_name)
        assert isinstance(task, ReconciliationTask)
        assert task.task_type == job_name
        assert task.description
