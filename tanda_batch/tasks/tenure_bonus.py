"""
Tenure bonus job: award the monthly XnScore bonus for sustained activity.

A user is awarded at most once per calendar month.  The candidate query
excludes users with a tenure history row for the current ``YYYY-MM``;
the history row is written inside the item's own transaction (not
best-effort) and ``uq_tenure_history_user_month`` rejects a second award
from an overlapping run.  The bonus is tiered by ``active_months`` and
the score is capped at the ceiling; ``active_months`` grows by one on
every award, including awards that the cap reduces to zero.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tanda_kernel.domain.scoring import SCORE_CEILING, TenureTier, apply_bonus
from tanda_kernel.models.xnscore import (
    ScoreHistoryEntry,
    ScoreTrigger,
    TenureHistoryEntry,
    XnScore,
)
from tanda_kernel.services.audit_trail import AuditTrailWriter
from tanda_kernel.services.transitions import compare_and_set

from tanda_batch.domain.types import ItemResult
from tanda_batch.tasks.base import BatchItemInput, BatchTaskResult, count_succeeded


def award_month(as_of: datetime) -> str:
    return as_of.strftime("%Y-%m")


class TenureBonusTask:
    """Award the monthly tenure bonus."""

    def __init__(self, ceiling: Decimal = SCORE_CEILING):
        self._ceiling = Decimal(ceiling)

    @property
    def task_type(self) -> str:
        return "tenure_bonus"

    @property
    def description(self) -> str:
        return "Award the monthly XnScore tenure bonus"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        month = award_month(as_of)
        already_awarded = (
            select(TenureHistoryEntry.user_id)
            .where(TenureHistoryEntry.award_month == month)
        )

        scores = session.execute(
            select(XnScore.id, XnScore.user_id)
            .where(
                XnScore.score_frozen.is_(False),
                XnScore.active_months > 0,
                XnScore.user_id.not_in(already_awarded),
            )
            .order_by(XnScore.user_id)
        ).all()

        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(s.user_id),
                payload={"score_id": str(s.id), "award_month": month},
            )
            for i, s in enumerate(scores)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        score = session.get(XnScore, UUID(item.payload["score_id"]))
        if score is None or score.score_frozen:
            return BatchTaskResult.skipped("score_frozen")

        month = item.payload["award_month"]
        tier = TenureTier.for_months(score.active_months)
        previous = Decimal(score.total_score)
        new_score = apply_bonus(previous, tier.monthly_bonus, self._ceiling)
        awarded = new_score - previous

        try:
            with session.begin_nested():
                session.add(
                    TenureHistoryEntry(
                        user_id=score.user_id,
                        award_month=month,
                        tenure_month=score.active_months,
                        bonus_amount=awarded,
                        score_before=previous,
                        score_after=new_score,
                        created_at=as_of,
                    )
                )
                session.flush()
        except IntegrityError:
            return BatchTaskResult.skipped("already_awarded", award_month=month)

        compare_and_set(
            session,
            XnScore,
            score.id,
            "total_score",
            previous,
            {
                "previous_score": previous,
                "total_score": new_score,
                "active_months": XnScore.active_months + 1,
            },
        )

        score_history = AuditTrailWriter(session).write(
            "score_history",
            ScoreHistoryEntry(
                user_id=score.user_id,
                previous_score=previous,
                new_score=new_score,
                score_change=awarded,
                trigger_event=ScoreTrigger.TENURE_BONUS.value,
                details={"award_month": month, "tier_bonus": str(tier.monthly_bonus)},
                created_at=as_of,
            ),
        )

        return BatchTaskResult.succeeded(
            {
                "previous_score": str(previous),
                "new_score": str(new_score),
                "bonus": str(awarded),
                "award_month": month,
                "capped": awarded < tier.monthly_bonus,
            },
            score_history,
        )

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        awarded = [r.result_data for r in results if r.result_data and "bonus" in r.result_data]
        total = sum((Decimal(d["bonus"]) for d in awarded), Decimal("0"))
        return {
            "awarded": count_succeeded(results),
            "total_bonus": str(total),
            "capped": sum(1 for d in awarded if d["capped"]),
        }
