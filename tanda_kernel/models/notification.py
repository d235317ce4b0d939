"""
Module: tanda_kernel.models.notification
Responsibility: ORM persistence for recipient contact profiles, scheduled
    payment reminders and the in-app notification inbox.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tanda_kernel.db.base import TrackedBase


class ReminderStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


TERMINAL_REMINDER_STATUSES = frozenset({
    ReminderStatus.SENT,
    ReminderStatus.FAILED,
    ReminderStatus.SKIPPED,
    ReminderStatus.CANCELLED,
})


class NotificationStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"


class RecipientProfile(TrackedBase):
    """Contact details used to address a reminder."""

    __tablename__ = "profiles"

    __table_args__ = (Index("idx_profiles_user_id", "user_id", unique=True),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)


class Reminder(TrackedBase):
    """A payment reminder scheduled for delivery on one channel."""

    __tablename__ = "payment_reminders"

    __table_args__ = (
        Index("idx_payment_reminders_status_scheduled", "status", "scheduled_for"),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    notification_type: Mapped[str] = mapped_column(
        String(60), default="contribution_reminder", nullable=False,
    )
    template: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int | None] = mapped_column(nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    scheduled_for: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ReminderStatus.SCHEDULED.value, nullable=False,
    )
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class Notification(TrackedBase):
    """In-app inbox notification."""

    __tablename__ = "notifications"

    __table_args__ = (Index("idx_notifications_user_status", "user_id", "status"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    type: Mapped[str] = mapped_column(String(60), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=NotificationStatus.UNREAD.value, nullable=False,
    )
