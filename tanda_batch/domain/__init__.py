"""Frozen DTOs for job runs."""

from tanda_batch.domain.types import ItemResult, ItemStatus, JobRunResult

__all__ = ["ItemResult", "ItemStatus", "JobRunResult"]
