"""
Reminder dispatch job: deliver due payment reminders.

At most ``batch_size`` scheduled reminders with ``scheduled_for <= now``
are taken per run, earliest first.  Each reminder is claimed with a
compare-and-set (``scheduled -> sent``) before its sender is invoked, so
two overlapping runs cannot deliver it twice.  A delivery failure rolls
the claim back and ``record_failure`` marks the reminder ``failed`` with
the captured reason.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tanda_kernel.domain.results import BestEffort
from tanda_kernel.domain.values import Cents
from tanda_kernel.exceptions import MissingContactError
from tanda_kernel.models.notification import (
    RecipientProfile,
    Reminder,
    ReminderStatus,
)
from tanda_kernel.services.transitions import compare_and_set

from tanda_batch.channels import Channel, NotificationDispatcher, title_for
from tanda_batch.domain.types import ItemResult
from tanda_batch.tasks.base import BatchItemInput, BatchTaskResult, count_succeeded

DEFAULT_BATCH_SIZE = 100

_PLACEHOLDER = re.compile(r"\{(name|amount|due_date)\}")


def render_template(
    template: str,
    name: str,
    amount: int | None,
    due_date: Any,
) -> str:
    """Substitute ``{name}``, ``{amount}`` and ``{due_date}``.

    Other braces are left alone, and substituted values are not scanned
    again.  ``amount`` is in cents and rendered in currency units.
    """
    values = {
        "name": name,
        "amount": str(Cents(amount)) if amount is not None else "",
        "due_date": due_date.isoformat() if due_date is not None else "",
    }
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)


class ReminderDispatchTask:
    """Send scheduled reminders through their channel."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self._dispatcher = dispatcher or NotificationDispatcher.logging_only()
        self._batch_size = batch_size

    @property
    def task_type(self) -> str:
        return "reminder_dispatch"

    @property
    def description(self) -> str:
        return "Deliver due payment reminders over push, email or SMS"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        batch_size = int(parameters.get("batch_size", self._batch_size))
        reminders = session.execute(
            select(Reminder.id, Reminder.channel)
            .where(
                Reminder.status == ReminderStatus.SCHEDULED.value,
                Reminder.scheduled_for <= as_of,
            )
            .order_by(Reminder.scheduled_for)
            .limit(batch_size)
        ).all()

        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(r.id),
                payload={"reminder_id": str(r.id), "channel": r.channel},
            )
            for i, r in enumerate(reminders)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        reminder_id = UUID(item.payload["reminder_id"])
        reminder = session.get(Reminder, reminder_id)
        if reminder is None:
            return BatchTaskResult.skipped("reminder_deleted")
        channel = Channel.parse(reminder.channel)

        compare_and_set(
            session,
            Reminder,
            reminder_id,
            "status",
            ReminderStatus.SCHEDULED.value,
            {"status": ReminderStatus.SENT.value, "sent_at": as_of},
        )

        profile = session.execute(
            select(RecipientProfile).where(RecipientProfile.user_id == reminder.user_id)
        ).scalar_one_or_none()
        if profile is None:
            raise MissingContactError(str(reminder.user_id), channel.value, "profile")

        message = render_template(
            reminder.template, profile.full_name, reminder.amount, reminder.due_date,
        )
        data: dict[str, Any] = dict(reminder.payload or {})
        data.update({
            "reminder_id": str(reminder_id),
            "notification_type": reminder.notification_type,
        })
        if channel == Channel.PUSH:
            data["title"] = title_for(reminder.notification_type)

        delivery = self._dispatcher.dispatch(channel, profile, message, data)

        return BatchTaskResult.succeeded(
            {"channel": channel.value, "recipient": delivery.recipient}
        )

    def record_failure(
        self,
        item: BatchItemInput,
        error_message: str,
        session: Session,
        as_of: datetime,
    ) -> BestEffort:
        compare_and_set(
            session,
            Reminder,
            UUID(item.payload["reminder_id"]),
            "status",
            ReminderStatus.SCHEDULED.value,
            {"status": ReminderStatus.FAILED.value, "failure_reason": error_message},
        )
        return BestEffort.ok("reminder_failure_marker")

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        by_channel = {channel.value: 0 for channel in Channel}
        for r in results:
            if r.result_data and "channel" in r.result_data:
                by_channel[r.result_data["channel"]] += 1
        return {"sent": count_succeeded(results), "sent_by_channel": by_channel}
