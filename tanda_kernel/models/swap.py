"""
Module: tanda_kernel.models.swap
Responsibility: ORM persistence for circle payout-position swap requests
    and their event trail.

State machine for ``SwapRequest.status``::

    pending_target -> pending_confirmation -> pending_elder_approval
        -> accepted | rejected
    any pending state --(expires_at < now)--> expired

``accepted``, ``rejected`` and ``expired`` are terminal.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tanda_kernel.db.base import TrackedBase


class SwapStatus(str, Enum):
    PENDING_TARGET = "pending_target"
    PENDING_CONFIRMATION = "pending_confirmation"
    PENDING_ELDER_APPROVAL = "pending_elder_approval"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


PENDING_SWAP_STATUSES = frozenset({
    SwapStatus.PENDING_TARGET,
    SwapStatus.PENDING_CONFIRMATION,
    SwapStatus.PENDING_ELDER_APPROVAL,
})


class SwapRequest(TrackedBase):
    """A proposal to exchange two members' payout positions in a circle."""

    __tablename__ = "position_swap_requests"

    __table_args__ = (
        Index("idx_swap_requests_status_expires", "status", "expires_at"),
    )

    circle_id: Mapped[UUID] = mapped_column(nullable=False)
    requester_id: Mapped[UUID] = mapped_column(nullable=False)
    target_id: Mapped[UUID] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), default=SwapStatus.PENDING_TARGET.value, nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)


class SwapEvent(TrackedBase):
    """Append-only event row for a swap request transition."""

    __tablename__ = "position_swap_events"

    __table_args__ = (Index("idx_swap_events_request", "swap_request_id"),)

    swap_request_id: Mapped[UUID] = mapped_column(
        ForeignKey("position_swap_requests.id"), nullable=False,
    )
    circle_id: Mapped[UUID] = mapped_column(nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    previous_status: Mapped[str] = mapped_column(String(30), nullable=False)
    new_status: Mapped[str] = mapped_column(String(30), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
