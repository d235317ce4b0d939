"""
Reminder cleanup job: prune stale reminders and read inbox notifications.

Two candidate sets are selected per run, both by row age (``created_at``):

* reminders in a terminal status older than ``retention_days``;
* inbox notifications with status ``read`` older than
  ``notification_retention_days``.

Each row is deleted in its own SAVEPOINT.  A row whose status changed
between selection and deletion is skipped.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from tanda_kernel.exceptions import StaleTransitionError
from tanda_kernel.models.notification import (
    TERMINAL_REMINDER_STATUSES,
    Notification,
    NotificationStatus,
    Reminder,
)

from tanda_batch.domain.types import ItemResult, ItemStatus
from tanda_batch.tasks.base import BatchItemInput, BatchTaskResult, count_succeeded

DEFAULT_RETENTION_DAYS = 30
DEFAULT_NOTIFICATION_RETENTION_DAYS = 60

REMINDER = "reminder"
READ_NOTIFICATION = "read_notification"

_TERMINAL = sorted(s.value for s in TERMINAL_REMINDER_STATUSES)


class ReminderCleanupTask:
    """Remove terminal reminders and read notifications once stale."""

    def __init__(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        notification_retention_days: int = DEFAULT_NOTIFICATION_RETENTION_DAYS,
    ):
        self._retention_days = retention_days
        self._notification_retention_days = notification_retention_days

    @property
    def task_type(self) -> str:
        return "reminder_cleanup"

    @property
    def description(self) -> str:
        return "Delete stale terminal reminders and read inbox notifications"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        reminder_cutoff = as_of - timedelta(
            days=int(parameters.get("retention_days", self._retention_days))
        )
        notification_cutoff = as_of - timedelta(
            days=int(parameters.get(
                "notification_retention_days", self._notification_retention_days,
            ))
        )

        reminders = session.execute(
            select(Reminder.id, Reminder.status)
            .where(Reminder.status.in_(_TERMINAL), Reminder.created_at < reminder_cutoff)
            .order_by(Reminder.created_at)
        ).all()
        notifications = session.execute(
            select(Notification.id)
            .where(
                Notification.status == NotificationStatus.READ.value,
                Notification.created_at < notification_cutoff,
            )
            .order_by(Notification.created_at)
        ).all()

        rows = [(REMINDER, r.id, r.status) for r in reminders]
        rows += [(READ_NOTIFICATION, n.id, NotificationStatus.READ.value) for n in notifications]

        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=f"{kind}:{row_id}",
                payload={"kind": kind, "row_id": str(row_id), "status": status},
            )
            for i, (kind, row_id, status) in enumerate(rows)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        row_id = UUID(item.payload["row_id"])
        if item.payload["kind"] == REMINDER:
            entity, expected = "Reminder", "terminal"
            stmt = delete(Reminder).where(
                Reminder.id == row_id, Reminder.status.in_(_TERMINAL),
            )
        else:
            entity, expected = "Notification", NotificationStatus.READ.value
            stmt = delete(Notification).where(
                Notification.id == row_id,
                Notification.status == NotificationStatus.READ.value,
            )

        result = session.execute(stmt.execution_options(synchronize_session="fetch"))
        if result.rowcount != 1:
            raise StaleTransitionError(entity, str(row_id), expected)
        return BatchTaskResult.succeeded(
            {"kind": item.payload["kind"], "status": item.payload["status"]}
        )

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        deleted = [
            r for r in results
            if r.status == ItemStatus.SUCCEEDED and r.result_data
        ]
        return {
            "deleted": count_succeeded(results),
            "deleted_reminders": sum(
                1 for r in deleted if r.result_data.get("kind") == REMINDER
            ),
            "deleted_read_notifications": sum(
                1 for r in deleted if r.result_data.get("kind") == READ_NOTIFICATION
            ),
        }
