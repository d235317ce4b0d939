"""
Swap expiration job: expire position-swap requests left pending past
their ``expires_at``.

Only the three pending states are selected; ``accepted``, ``rejected``
and ``expired`` are never re-selected, and the transition itself is a
compare-and-set on the status the candidate query saw.  The
``swap_expired`` event and the requester's inbox notification are
best-effort.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tanda_kernel.models.notification import Notification
from tanda_kernel.models.swap import (
    PENDING_SWAP_STATUSES,
    SwapEvent,
    SwapRequest,
    SwapStatus,
)
from tanda_kernel.services.audit_trail import AuditTrailWriter
from tanda_kernel.services.transitions import compare_and_set

from tanda_batch.domain.types import ItemResult
from tanda_batch.tasks.base import BatchItemInput, BatchTaskResult, count_succeeded

SWAP_EXPIRED_EVENT = "swap_expired"


class SwapExpirationTask:
    """Expire pending swap requests whose deadline has passed."""

    @property
    def task_type(self) -> str:
        return "swap_expiration"

    @property
    def description(self) -> str:
        return "Expire pending position swap requests past their deadline"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        requests = session.execute(
            select(SwapRequest.id, SwapRequest.status)
            .where(
                SwapRequest.status.in_([s.value for s in PENDING_SWAP_STATUSES]),
                SwapRequest.expires_at < as_of,
            )
            .order_by(SwapRequest.expires_at)
        ).all()

        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(r.id),
                payload={"swap_request_id": str(r.id), "status": r.status},
            )
            for i, r in enumerate(requests)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        swap_id = UUID(item.payload["swap_request_id"])
        previous_status = SwapStatus(item.payload["status"])

        compare_and_set(
            session,
            SwapRequest,
            swap_id,
            "status",
            previous_status.value,
            {"status": SwapStatus.EXPIRED.value, "resolved_at": as_of},
        )

        swap = session.get(SwapRequest, swap_id)
        writer = AuditTrailWriter(session)

        event = writer.write(
            SWAP_EXPIRED_EVENT,
            SwapEvent(
                swap_request_id=swap_id,
                circle_id=swap.circle_id,
                event_type=SWAP_EXPIRED_EVENT,
                previous_status=previous_status.value,
                new_status=SwapStatus.EXPIRED.value,
                details={"expires_at": swap.expires_at.isoformat()},
                created_at=as_of,
            ),
        )
        notification = writer.write(
            "swap_expired_notification",
            Notification(
                user_id=swap.requester_id,
                type=SWAP_EXPIRED_EVENT,
                title="Swap Request Expired",
                body="Your position swap request expired before it was approved.",
                data={
                    "swap_request_id": str(swap_id),
                    "circle_id": str(swap.circle_id),
                    "previous_status": previous_status.value,
                },
                created_at=as_of,
            ),
        )

        return BatchTaskResult.succeeded(
            {"previous_status": previous_status.value},
            event,
            notification,
        )

    def summarize(self, results: tuple[ItemResult, ...]) -> dict[str, Any]:
        return {"expired": count_succeeded(results)}
