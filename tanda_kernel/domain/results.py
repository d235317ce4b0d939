"""
BestEffort -- outcome of a side effect that must not affect its primary.

Audit-trail inserts, notification enqueues and job-log writes are allowed
to fail independently of the state mutation they accompany.  Their
outcome is returned as a ``BestEffort`` instead of raised, so callers can
count these failures separately from item failures and tests can assert
that the two are never conflated.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BestEffort:
    """Immutable result of a best-effort side effect."""

    label: str
    succeeded: bool
    error: str | None = None

    @classmethod
    def ok(cls, label: str) -> BestEffort:
        return cls(label=label, succeeded=True)

    @classmethod
    def failed(cls, label: str, error: str) -> BestEffort:
        return cls(label=label, succeeded=False, error=error)

    def as_dict(self) -> dict[str, str | None]:
        return {"label": self.label, "error": self.error}


def failed_side_effects(*outcomes: BestEffort) -> list[dict[str, str | None]]:
    """Serializable list of the failed outcomes, for item result data."""
    return [o.as_dict() for o in outcomes if not o.succeeded]
