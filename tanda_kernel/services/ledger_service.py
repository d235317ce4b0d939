"""
LedgerService -- wallet balance mutations for reservations.

Responsibility:
    Moves reserved funds back into a wallet's spendable balance and records
    the movement in the wallet ledger.

Invariants enforced:
    - Conservation: ``main_balance + reserved_balance`` is unchanged by a
      release whenever the wallet still holds the reserved amount.
    - ``reserved_balance`` is floored at zero.  When the wallet holds less
      than the reservation (drift), the shortfall is reported as
      ``drift_cents`` and logged; the full amount is still credited.
    - The reservation transition is conditional on ``status = 'reserved'``.

Failure modes:
    - WalletNotFoundError: the reservation's wallet does not exist.
    - ReservationStateError: the reservation is already terminal.
    - StaleTransitionError: another run released it first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tanda_kernel.domain.results import BestEffort
from tanda_kernel.domain.values import Cents
from tanda_kernel.exceptions import ReservationStateError, WalletNotFoundError
from tanda_kernel.logging_config import get_logger
from tanda_kernel.models.wallet import (
    LedgerEntryType,
    Reservation,
    ReservationStatus,
    Wallet,
    WalletLedgerEntry,
)
from tanda_kernel.services.audit_trail import AuditTrailWriter
from tanda_kernel.services.transitions import compare_and_set

logger = get_logger("services.ledger")


@dataclass(frozen=True)
class ReleaseOutcome:
    """Balances around one reservation release."""

    reservation_id: UUID
    wallet_id: UUID
    amount: Cents
    main_before: Cents
    main_after: Cents
    reserved_before: Cents
    reserved_after: Cents
    drift: Cents
    audit: BestEffort

    @property
    def total_before(self) -> Cents:
        return self.main_before + self.reserved_before

    @property
    def total_after(self) -> Cents:
        return self.main_after + self.reserved_after


class LedgerService:
    """Wallet mutation helpers plus the wallet ledger audit writer."""

    def __init__(self, session: Session, audit_writer: AuditTrailWriter | None = None):
        self._session = session
        self._audit = audit_writer or AuditTrailWriter(session)

    def release_reservation(
        self,
        reservation: Reservation,
        as_of: datetime,
        reason: str = "expired_unused",
    ) -> ReleaseOutcome:
        """Move ``reservation.amount`` from reserved to main balance."""
        if reservation.status != ReservationStatus.RESERVED.value:
            raise ReservationStateError(
                str(reservation.id),
                reservation.status,
                ReservationStatus.RESERVED.value,
            )

        wallet = self._session.execute(
            select(Wallet).where(Wallet.id == reservation.wallet_id).with_for_update()
        ).scalar_one_or_none()
        if wallet is None:
            raise WalletNotFoundError(str(reservation.wallet_id))

        amount = Cents(reservation.amount)
        main_before = Cents(wallet.main_balance)
        reserved_before = Cents(wallet.reserved_balance)

        compare_and_set(
            self._session,
            Reservation,
            reservation.id,
            "status",
            ReservationStatus.RESERVED.value,
            {
                "status": ReservationStatus.RELEASED.value,
                "released_at": as_of,
                "release_reason": reason,
            },
        )

        reserved_after = (reserved_before - amount).floor_at_zero()
        main_after = main_before + amount
        drift = amount - (reserved_before - reserved_after)

        wallet.main_balance = main_after.value
        wallet.reserved_balance = reserved_after.value
        self._session.flush()

        if drift.is_positive:
            logger.warning(
                "reserved_balance_drift",
                extra={
                    "wallet_id": str(wallet.id),
                    "reservation_id": str(reservation.id),
                    "drift_cents": drift.value,
                },
            )

        audit = self._audit.write(
            LedgerEntryType.RESERVATION_RELEASE.value,
            WalletLedgerEntry(
                wallet_id=wallet.id,
                user_id=reservation.user_id,
                entry_type=LedgerEntryType.RESERVATION_RELEASE.value,
                amount=amount.value,
                reference_id=reservation.id,
                main_balance_before=main_before.value,
                main_balance_after=main_after.value,
                reserved_balance_before=reserved_before.value,
                reserved_balance_after=reserved_after.value,
                details={
                    "circle_id": str(reservation.circle_id) if reservation.circle_id else None,
                    "reason": reason,
                    "drift_cents": drift.value,
                },
                created_at=as_of,
            ),
        )

        return ReleaseOutcome(
            reservation_id=reservation.id,
            wallet_id=wallet.id,
            amount=amount,
            main_before=main_before,
            main_after=main_after,
            reserved_before=reserved_before,
            reserved_after=reserved_after,
            drift=drift,
            audit=audit,
        )
