"""
AuditTrailWriter -- best-effort writer for audit and side-effect rows.

Responsibility:
    Persists audit rows (wallet ledger entries, swap events, score
    histories) and notification enqueues that accompany a primary state
    mutation.

Failure modes:
    - Any error while inserting is logged and returned as
      ``BestEffort.failed``; it never propagates and never rolls back the
      primary mutation.  The insert runs in its own SAVEPOINT so a failed
      audit write leaves the surrounding item transaction usable.

Known consistency gap:
    Because audit writes are best-effort, a primary record can exist
    without its audit row.  Callers surface these failures as
    ``side_effect_failures`` so operational tooling can reconcile them.
"""

from typing import Any

from sqlalchemy.orm import Session

from tanda_kernel.domain.results import BestEffort
from tanda_kernel.logging_config import get_logger

logger = get_logger("services.audit_trail")


class AuditTrailWriter:
    """Insert side-effect rows without letting them fail the caller."""

    def __init__(self, session: Session):
        self._session = session

    def write(self, label: str, *rows: Any) -> BestEffort:
        """Insert ``rows`` in a SAVEPOINT; report the outcome."""
        try:
            with self._session.begin_nested():
                self._session.add_all(rows)
                self._session.flush()
        except Exception as exc:
            logger.warning(
                "audit_write_failed",
                extra={"label": label, "row_count": len(rows), "error": str(exc)},
                exc_info=True,
            )
            return BestEffort.failed(label, str(exc))
        return BestEffort.ok(label)
