"""
ORM-level append-only enforcement.

Audit rows are written once and never modified: the wallet ledger, interest
accrual records, swap events, the three scoring histories and the job log.
SQLAlchemy fires ``before_update`` / ``before_delete`` mapper events before
SQL reaches the database; the listeners registered here raise
``ImmutabilityViolationError`` for any of those models, aborting the flush.

    session.flush()
         |
         v
    [before_update] --> _reject_update() --> ImmutabilityViolationError
    [before_delete] --> _reject_delete() --> ImmutabilityViolationError

Bulk ``update()``/``delete()`` statements bypass mapper events; jobs never
issue them against these tables.

Usage::

    from tanda_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup
"""

from sqlalchemy import event

from tanda_kernel.exceptions import ImmutabilityViolationError
from tanda_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_registered: list[type] = []


def _append_only_models() -> tuple[type, ...]:
    from tanda_kernel.models.job_log import JobLogEntry
    from tanda_kernel.models.loan import InterestAccrualRecord
    from tanda_kernel.models.swap import SwapEvent
    from tanda_kernel.models.wallet import WalletLedgerEntry
    from tanda_kernel.models.xnscore import (
        DecayHistoryEntry,
        ScoreHistoryEntry,
        TenureHistoryEntry,
    )

    return (
        WalletLedgerEntry,
        InterestAccrualRecord,
        SwapEvent,
        ScoreHistoryEntry,
        DecayHistoryEntry,
        TenureHistoryEntry,
        JobLogEntry,
    )


def _reject(operation: str, target) -> None:
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} rows are append-only ({operation} rejected)",
    )


def _reject_update(mapper, connection, target):
    _reject("UPDATE", target)


def _reject_delete(mapper, connection, target):
    _reject("DELETE", target)


def register_immutability_listeners() -> None:
    """Register append-only listeners (idempotent)."""
    if _registered:
        return
    for model in _append_only_models():
        event.listen(model, "before_update", _reject_update)
        event.listen(model, "before_delete", _reject_delete)
        _registered.append(model)


def unregister_immutability_listeners() -> None:
    """Remove the listeners. FOR TESTING ONLY."""
    while _registered:
        model = _registered.pop()
        event.remove(model, "before_update", _reject_update)
        event.remove(model, "before_delete", _reject_delete)
