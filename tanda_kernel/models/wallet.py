"""
Module: tanda_kernel.models.wallet
Responsibility: ORM persistence for wallets, fund reservations and the
    wallet ledger audit trail.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``main_balance + reserved_balance`` is unchanged by a reservation
      release (enforced by LedgerService, recorded per release in
      WalletLedgerEntry).
    - Reservation status is terminal once ``released`` or ``consumed``.
    - WalletLedgerEntry is append-only (db/immutability.py).
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tanda_kernel.db.base import TrackedBase


class ReservationStatus(str, Enum):
    RESERVED = "reserved"
    RELEASED = "released"
    CONSUMED = "consumed"


class LedgerEntryType(str, Enum):
    RESERVATION_RELEASE = "reservation_release"


class Wallet(TrackedBase):
    """A user's wallet; balances are integer minor-currency units."""

    __tablename__ = "wallets"

    __table_args__ = (Index("idx_wallets_user_id", "user_id"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    main_balance: Mapped[int] = mapped_column(default=0, nullable=False)
    reserved_balance: Mapped[int] = mapped_column(default=0, nullable=False)


class Reservation(TrackedBase):
    """
    Funds earmarked from a wallet against a scheduled circle contribution.

    Created by the contribution flow; the reservation release job moves
    ``reserved -> released`` once ``due_date`` is past the grace window.
    """

    __tablename__ = "wallet_reservations"

    __table_args__ = (
        Index("idx_wallet_reservations_status_due", "status", "due_date"),
        Index("idx_wallet_reservations_wallet_id", "wallet_id"),
    )

    wallet_id: Mapped[UUID] = mapped_column(nullable=False)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    circle_id: Mapped[UUID | None] = mapped_column(nullable=True)
    amount: Mapped[int] = mapped_column(nullable=False)
    due_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ReservationStatus.RESERVED.value, nullable=False,
    )
    released_at: Mapped[datetime | None] = mapped_column(nullable=True)
    release_reason: Mapped[str | None] = mapped_column(String(100), nullable=True)


class WalletLedgerEntry(TrackedBase):
    """Append-only audit row for one wallet balance mutation."""

    __tablename__ = "wallet_ledger_entries"

    __table_args__ = (
        Index("idx_wallet_ledger_wallet_id", "wallet_id"),
        Index("idx_wallet_ledger_reference", "reference_id"),
    )

    wallet_id: Mapped[UUID] = mapped_column(
        ForeignKey("wallets.id"), nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    entry_type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    reference_id: Mapped[UUID | None] = mapped_column(nullable=True)
    main_balance_before: Mapped[int] = mapped_column(nullable=False)
    main_balance_after: Mapped[int] = mapped_column(nullable=False)
    reserved_balance_before: Mapped[int] = mapped_column(nullable=False)
    reserved_balance_after: Mapped[int] = mapped_column(nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
