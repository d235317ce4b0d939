"""
Score decay job: lower the XnScore of users without recent financial
activity.

The weekly decay rate comes from ``DecayTier`` (days since last
activity) and the new score is ``max(floor, previous - rate)``.  Frozen
scores, scores already at the floor and users inside an active recovery
period are never selected.  A run that would not move the score is a
skip, so no history row is written for it.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tanda_kernel.domain.clock import as_utc
from tanda_kernel.domain.scoring import SCORE_FLOOR, DecayTier, apply_decay
from tanda_kernel.models.xnscore import (
    DecayHistoryEntry,
    RecoveryPeriod,
    ScoreHistoryEntry,
    ScoreTrigger,
    XnScore,
)
from tanda_kernel.services.audit_trail import AuditTrailWriter
from tanda_kernel.services.transitions import compare_and_set

from tanda_batch.domain.types import ItemResult
from tanda_batch.tasks.base import BatchItemInput, BatchTaskResult, count_succeeded

DEFAULT_INACTIVITY_DAYS = 30


def active_recovery_users(session: Session, as_of: datetime) -> frozenset[UUID]:
    """Users whose recovery period is active at ``as_of``."""
    rows = session.execute(
        select(RecoveryPeriod.user_id).where(
            RecoveryPeriod.is_active.is_(True),
            RecoveryPeriod.ends_at > as_of,
        )
    ).scalars()
    return frozenset(rows)


class ScoreDecayTask:
    """Apply tiered inactivity decay to XnScores."""

    def __init__(
        self,
        inactivity_days: int = DEFAULT_INACTIVITY_DAYS,
        floor: Decimal = SCORE_FLOOR,
    ):
        self._inactivity_days = inactivity_days
        self._floor = Decimal(floor)

    @property
    def task_type(self) -> str:
        return "score_decay"

    @property
    def description(self) -> str:
        return "Decay XnScores of inactive users toward the floor"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        cutoff = as_of - timedelta(days=self._inactivity_days)
        recovering = active_recovery_users(session, as_of)

        scores = session.execute(
            select(XnScore.id, XnScore.user_id)
            .where(
                XnScore.score_frozen.is_(False),
                XnScore.last_activity_at < cutoff,
                XnScore.total_score > self._floor,
            )
            .order_by(XnScore.last_activity_at)
        ).all()

        eligible = [s for s in scores if s.user_id not in recovering]
        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(s.user_id),
                payload={"score_id": str(s.id)},
            )
            for i, s in enumerate(eligible)
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

        last_activity = as_utc(score.last_activity_at)
        days_inactive = (as_of - last_activity).days
        tier = DecayTier.for_days(days_inactive)

        previous = Decimal(score.total_score)
        new_score = apply_decay(previous, tier.weekly_rate, self._floor)
        decay = previous - new_score
        if decay <= 0:
            return BatchTaskResult.skipped("no_decay", tier=tier.reason)

        floor_reached = new_score <= self._floor

        compare_and_set(
            session,
            XnScore,
            score.id,
            "total_score",
            previous,
            {
                "previous_score": previous,
                "total_score": new_score,
                "financial_inactive_days": days_inactive,
                "total_inactivity_penalty": XnScore.total_inactivity_penalty + decay,
                "decay_floor_reached": floor_reached,
            },
        )

        writer = AuditTrailWriter(session)
        decay_history = writer.write(
            "decay_history",
            DecayHistoryEntry(
                user_id=score.user_id,
                decay_reason=tier.reason,
                decay_amount=decay,
                score_before=previous,
                score_after=new_score,
                days_inactive=days_inactive,
                last_activity_at=last_activity,
                floor_reached=floor_reached,
                created_at=as_of,
            ),
        )
        score_history = writer.write(
            "score_history",
            ScoreHistoryEntry(
                user_id=score.user_id,
                previous_score=previous,
                new_score=new_score,
                score_change=-decay,
                trigger_event=ScoreTrigger.INACTIVITY_DECAY.value,
                details={"days_inactive": days_inactive, "tier": tier.reason},
                created_at=as_of,
            ),
        )

        return BatchTaskResult.succeeded(
            {
                "previous_score": str(previous),
                "new_score": str(new_score),
                "decay": str(decay),
                "days_inactive": days_inactive,
                "floor_reached": floor_reached,
            },
            decay_history,
            score_history,
        )

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        decayed = [r.result_data for r in results if r.result_data and "decay" in r.result_data]
        total = sum((Decimal(d["decay"]) for d in decayed), Decimal("0"))
        return {
            "decayed": count_succeeded(results),
            "total_decay": str(total),
            "floor_reached": sum(1 for d in decayed if d["floor_reached"]),
        }
