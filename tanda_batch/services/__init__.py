"""Job execution services."""

from tanda_batch.services.executor import JobExecutor

__all__ = ["JobExecutor"]
