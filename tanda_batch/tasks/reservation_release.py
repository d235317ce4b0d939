"""
Reservation release job: return expired, unused reservations to the
owning wallet's spendable balance.

Candidates are ``reserved`` reservations whose ``due_date`` is older than
``now - grace_days``.  Each release moves the amount from
``reserved_balance`` to ``main_balance`` through ``LedgerService`` and
flips the reservation to ``released`` with a compare-and-set.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tanda_kernel.models.wallet import Reservation, ReservationStatus
from tanda_kernel.services.ledger_service import LedgerService

from tanda_batch.domain.types import ItemResult
from tanda_batch.tasks.base import (
    BatchItemInput,
    BatchTaskResult,
    count_succeeded,
    sum_result_field,
)

DEFAULT_GRACE_DAYS = 7


class ReservationReleaseTask:
    """Release reservations past their expiry window."""

    def __init__(self, grace_days: int = DEFAULT_GRACE_DAYS):
        self._grace_days = grace_days

    @property
    def task_type(self) -> str:
        return "reservation_release"

    @property
    def description(self) -> str:
        return "Release expired wallet reservations back to main balance"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        grace_days = int(parameters.get("grace_days", self._grace_days))
        cutoff = as_of - timedelta(days=grace_days)

        reservations = session.execute(
            select(Reservation.id, Reservation.wallet_id, Reservation.amount)
            .where(
                Reservation.status == ReservationStatus.RESERVED.value,
                Reservation.due_date < cutoff,
            )
            .order_by(Reservation.due_date)
        ).all()

        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(r.id),
                payload={
                    "reservation_id": str(r.id),
                    "wallet_id": str(r.wallet_id),
                    "amount": r.amount,
                },
            )
            for i, r in enumerate(reservations)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        reservation = session.get(Reservation, UUID(item.payload["reservation_id"]))
        if reservation is None or reservation.status != ReservationStatus.RESERVED.value:
            return BatchTaskResult.skipped("no_longer_reserved")

        outcome = LedgerService(session).release_reservation(reservation, as_of)

        return BatchTaskResult.succeeded(
            {
                "wallet_id": str(outcome.wallet_id),
                "amount": outcome.amount.value,
                "main_balance_after": outcome.main_after.value,
                "reserved_balance_after": outcome.reserved_after.value,
                "drift_cents": outcome.drift.value,
            },
            outcome.audit,
        )

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        return {
            "released": count_succeeded(results),
            "total_released_cents": sum_result_field(results, "amount"),
        }
