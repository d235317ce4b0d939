"""
Module: tanda_kernel.models.xnscore
Responsibility: ORM persistence for XnScore rows, recovery periods and the
    three append-only scoring histories.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``total_score`` stays within [10, 100] under automated mutation.
    - ``score_frozen`` rows are never touched by the decay or tenure jobs.
    - TenureHistory has one row per ``(user_id, award_month)``
      (uq_tenure_history_user_month) as a storage backstop to the tenure
      job's application-level lookup.
    - History rows are append-only (db/immutability.py).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tanda_kernel.db.base import TrackedBase


class ScoreTrigger(str, Enum):
    INACTIVITY_DECAY = "inactivity_decay"
    TENURE_BONUS = "tenure_bonus"


class XnScore(TrackedBase):
    """Bounded per-user trust score."""

    __tablename__ = "xn_scores"

    __table_args__ = (
        Index("idx_xn_scores_user_id", "user_id", unique=True),
        Index("idx_xn_scores_last_activity", "last_activity_at"),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    total_score: Mapped[Decimal] = mapped_column(nullable=False)
    previous_score: Mapped[Decimal | None] = mapped_column(nullable=True)
    last_activity_at: Mapped[datetime | None] = mapped_column(nullable=True)
    active_months: Mapped[int] = mapped_column(default=0, nullable=False)
    financial_inactive_days: Mapped[int] = mapped_column(default=0, nullable=False)
    total_inactivity_penalty: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), default=Decimal("0"), nullable=False,
    )
    decay_floor_reached: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )
    score_frozen: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )


class RecoveryPeriod(TrackedBase):
    """Window after renewed activity during which decay is suspended."""

    __tablename__ = "xnscore_recovery_periods"

    __table_args__ = (Index("idx_recovery_periods_active", "is_active", "ends_at"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    trigger_type: Mapped[str] = mapped_column(String(60), nullable=False)
    started_at: Mapped[datetime] = mapped_column(nullable=False)
    ends_at: Mapped[datetime] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class ScoreHistoryEntry(TrackedBase):
    """Generic append-only row for every automated score mutation."""

    __tablename__ = "xn_score_history"

    __table_args__ = (Index("idx_xn_score_history_user", "user_id"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    previous_score: Mapped[Decimal] = mapped_column(nullable=False)
    new_score: Mapped[Decimal] = mapped_column(nullable=False)
    score_change: Mapped[Decimal] = mapped_column(nullable=False)
    trigger_event: Mapped[str] = mapped_column(String(40), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class DecayHistoryEntry(TrackedBase):
    """Append-only row for one applied inactivity decay."""

    __tablename__ = "xnscore_decay_history"

    __table_args__ = (Index("idx_decay_history_user", "user_id"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    decay_reason: Mapped[str] = mapped_column(String(40), nullable=False)
    decay_amount: Mapped[Decimal] = mapped_column(nullable=False)
    score_before: Mapped[Decimal] = mapped_column(nullable=False)
    score_after: Mapped[Decimal] = mapped_column(nullable=False)
    days_inactive: Mapped[int] = mapped_column(nullable=False)
    last_activity_at: Mapped[datetime | None] = mapped_column(nullable=True)
    floor_reached: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class TenureHistoryEntry(TrackedBase):
    """Append-only row for one monthly tenure award."""

    __tablename__ = "xnscore_tenure_history"

    __table_args__ = (
        UniqueConstraint(
            "user_id", "award_month", name="uq_tenure_history_user_month",
        ),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    award_month: Mapped[str] = mapped_column(String(7), nullable=False)
    tenure_month: Mapped[int] = mapped_column(nullable=False)
    bonus_amount: Mapped[Decimal] = mapped_column(nullable=False)
    score_before: Mapped[Decimal] = mapped_column(nullable=False)
    score_after: Mapped[Decimal] = mapped_column(nullable=False)
