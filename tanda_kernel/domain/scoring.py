"""
XnScore tier tables and bounded score arithmetic.

Decay and tenure tiers are closed enumerations: each member carries its
lower bound and its rate, and lookups walk every member, so adding a tier
is a single enum entry and no caller carries its own string switch.

Invariants enforced:
    - ``apply_decay`` never returns less than the floor.
    - ``apply_bonus`` never returns more than the ceiling.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

SCORE_FLOOR = Decimal("10")
SCORE_CEILING = Decimal("100")

_SCORE_PLACES = Decimal("0.01")


class DecayTier(Enum):
    """Weekly inactivity decay, keyed by days since last financial activity."""

    ACTIVE = (0, Decimal("0"))
    INACTIVE_30 = (30, Decimal("1"))
    INACTIVE_60 = (60, Decimal("2"))
    INACTIVE_90 = (90, Decimal("3"))

    def __init__(self, min_days: int, weekly_rate: Decimal):
        self.min_days = min_days
        self.weekly_rate = weekly_rate

    @property
    def reason(self) -> str:
        """Machine-readable decay reason written to decay history."""
        return f"inactivity_{self.min_days}d" if self.min_days else "active"

    @classmethod
    def for_days(cls, days_inactive: int) -> DecayTier:
        if days_inactive < 0:
            raise ValueError(f"days_inactive must be >= 0, got {days_inactive}")
        tier = cls.ACTIVE
        for candidate in cls:
            if days_inactive >= candidate.min_days:
                tier = candidate
        return tier


class TenureTier(Enum):
    """Monthly tenure bonus, keyed by the user's count of active months."""

    MONTHS_1_6 = (1, Decimal("0.5"))
    MONTHS_7_12 = (7, Decimal("1.0"))
    MONTHS_13_24 = (13, Decimal("1.5"))
    MONTHS_25_PLUS = (25, Decimal("2.0"))

    def __init__(self, min_months: int, monthly_bonus: Decimal):
        self.min_months = min_months
        self.monthly_bonus = monthly_bonus

    @classmethod
    def for_months(cls, active_months: int) -> TenureTier:
        if active_months < 1:
            raise ValueError(f"active_months must be >= 1, got {active_months}")
        tier = cls.MONTHS_1_6
        for candidate in cls:
            if active_months >= candidate.min_months:
                tier = candidate
        return tier


def _quantize(score: Decimal) -> Decimal:
    return Decimal(score).quantize(_SCORE_PLACES)


def apply_decay(
    previous: Decimal, rate: Decimal, floor: Decimal = SCORE_FLOOR,
) -> Decimal:
    """``max(floor, previous - rate)``."""
    return _quantize(max(floor, Decimal(previous) - rate))


def apply_bonus(
    previous: Decimal, bonus: Decimal, ceiling: Decimal = SCORE_CEILING,
) -> Decimal:
    """``min(previous + bonus, ceiling)``."""
    return _quantize(min(Decimal(previous) + bonus, ceiling))
