"""Pure domain primitives: clock, money, best-effort results, scoring tiers."""

from tanda_kernel.domain.clock import Clock, DeterministicClock, SystemClock, as_utc
from tanda_kernel.domain.results import BestEffort
from tanda_kernel.domain.values import Cents, daily_interest

__all__ = [
    "BestEffort",
    "Cents",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "as_utc",
    "daily_interest",
]
