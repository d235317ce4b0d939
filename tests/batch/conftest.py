"""Fixtures shared by the job tests."""

from typing import Any

import pytest

from tanda_batch.channels import Channel, NotificationDispatcher
from tanda_batch.services.executor import JobExecutor
from tanda_batch.tasks.base import TaskRegistry


@pytest.fixture
def run_job(session, clock):
    """Run one task through a JobExecutor sharing the test session and clock."""

    def _run(task, **parameters: Any):
        registry = TaskRegistry()
        registry.register(task)
        executor = JobExecutor(session, registry, clock=clock)
        return executor.run(task.task_type, parameters)

    return _run


class RecordingSender:
    """Channel sender that remembers every delivery."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[tuple[str, str, dict]] = []

    def send(self, recipient, message, data=None):
        self.sent.append((recipient, message, dict(data or {})))
        return self.succeed


@pytest.fixture
def senders() -> dict[Channel, RecordingSender]:
    return {channel: RecordingSender() for channel in Channel}


@pytest.fixture
def dispatcher(senders) -> NotificationDispatcher:
    return NotificationDispatcher(senders)
