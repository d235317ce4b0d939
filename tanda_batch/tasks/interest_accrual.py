"""
Interest accrual job: capitalize one day of simple interest into every
active loan's outstanding principal.

Interest is simple (non-compounding): the base is the outstanding principal
minus interest already capitalized into it.

Idempotency rests on the ``(loan_id, accrual_date)`` unique key: the
accrual record is inserted first, in its own SAVEPOINT, and a uniqueness
violation means the loan was already accrued today.  Only after a
successful insert is the principal incremented, with a single atomic
``UPDATE loans SET outstanding_principal = outstanding_principal + :cents``
(``capitalized_interest`` grows by the same amount).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tanda_kernel.domain.values import Cents, daily_interest
from tanda_kernel.exceptions import StaleTransitionError
from tanda_kernel.logging_config import get_logger
from tanda_kernel.models.loan import InterestAccrualRecord, Loan, LoanStatus

from tanda_batch.domain.types import ItemResult
from tanda_batch.tasks.base import (
    BatchItemInput,
    BatchTaskResult,
    count_succeeded,
    sum_result_field,
)

logger = get_logger("batch.tasks.interest_accrual")


class InterestAccrualTask:
    """Accrue daily interest on active loans."""

    @property
    def task_type(self) -> str:
        return "interest_accrual"

    @property
    def description(self) -> str:
        return "Accrue one day of simple interest on active loans"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        loans = session.execute(
            select(Loan.id, Loan.outstanding_principal, Loan.apr)
            .where(
                Loan.status == LoanStatus.ACTIVE.value,
                Loan.outstanding_principal > 0,
            )
            .order_by(Loan.created_at)
        ).all()

        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(loan.id),
                payload={"loan_id": str(loan.id)},
            )
            for i, loan in enumerate(loans)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        loan_id = UUID(item.payload["loan_id"])
        loan = session.get(Loan, loan_id)
        if loan is None or loan.status != LoanStatus.ACTIVE.value:
            return BatchTaskResult.skipped("loan_not_active")

        principal = Cents(loan.outstanding_principal)
        base = (principal - Cents(loan.capitalized_interest)).floor_at_zero()
        apr = Decimal(loan.apr)
        interest = daily_interest(base, apr)
        if interest.is_zero:
            return BatchTaskResult.skipped("zero_interest")

        accrual_date = as_of.date()
        try:
            with session.begin_nested():
                session.add(
                    InterestAccrualRecord(
                        loan_id=loan_id,
                        accrual_date=accrual_date,
                        principal_before=principal.value,
                        interest_cents=interest.value,
                        apr=apr,
                        created_at=as_of,
                    )
                )
                session.flush()
        except IntegrityError:
            logger.info(
                "interest_already_accrued",
                extra={"loan_id": str(loan_id), "accrual_date": accrual_date},
            )
            return BatchTaskResult.skipped(
                "already_accrued", accrual_date=accrual_date.isoformat(),
            )

        result = session.execute(
            update(Loan)
            .where(Loan.id == loan_id, Loan.status == LoanStatus.ACTIVE.value)
            .values(
                outstanding_principal=Loan.outstanding_principal + interest.value,
                capitalized_interest=Loan.capitalized_interest + interest.value,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise StaleTransitionError("Loan", str(loan_id), "status=active")

        return BatchTaskResult.succeeded(
            {
                "interest_cents": interest.value,
                "interest_base": base.value,
                "principal_before": principal.value,
                "principal_after": principal.value + interest.value,
                "accrual_date": accrual_date.isoformat(),
            }
        )

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        return {
            "accrued": count_succeeded(results),
            "total_interest_cents": sum_result_field(results, "interest_cents"),
        }
