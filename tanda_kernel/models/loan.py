"""
Module: tanda_kernel.models.loan
Responsibility: ORM persistence for loans and their daily interest accrual
    records.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One InterestAccrualRecord per ``(loan_id, accrual_date)``
      (uq_interest_accruals_loan_date).  This unique key is the interest
      accrual job's idempotency guard.
    - InterestAccrualRecord is append-only (db/immutability.py).
    - ``outstanding_principal`` is non-decreasing while the loan is active
      and only the accrual job increments it.
    - Interest is simple: it accrues on ``outstanding_principal -
      capitalized_interest``, never on interest already capitalized.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tanda_kernel.db.base import TrackedBase


class LoanStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    DEFAULTED = "defaulted"


class Loan(TrackedBase):
    """A loan; interest is simple, non-compounding, capitalized daily."""

    __tablename__ = "loans"

    __table_args__ = (Index("idx_loans_status", "status"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    outstanding_principal: Mapped[int] = mapped_column(nullable=False)
    capitalized_interest: Mapped[int] = mapped_column(default=0, nullable=False)
    apr: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=LoanStatus.ACTIVE.value, nullable=False,
    )


class InterestAccrualRecord(TrackedBase):
    """Immutable record of one day's interest accrued on one loan."""

    __tablename__ = "interest_accruals"

    __table_args__ = (
        UniqueConstraint(
            "loan_id", "accrual_date", name="uq_interest_accruals_loan_date",
        ),
    )

    loan_id: Mapped[UUID] = mapped_column(ForeignKey("loans.id"), nullable=False)
    accrual_date: Mapped[date] = mapped_column(Date, nullable=False)
    principal_before: Mapped[int] = mapped_column(nullable=False)
    interest_cents: Mapped[int] = mapped_column(nullable=False)
    apr: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    triggered_by: Mapped[str] = mapped_column(
        String(30), default="daily_cron", nullable=False,
    )
