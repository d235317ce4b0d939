"""
Value objects for the reconciliation ledger.

``Cents`` is the canonical money representation: an integer count of
minor currency units.  Balances, reservation amounts, loan principal and
accrued interest are all ``Cents``; floats never touch a stored amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True, slots=True, order=True)
class Cents:
    """
    Integer minor-currency amount.

    Guarantees:
        - ``value`` is always an ``int`` (bools and floats are rejected).
        - Arithmetic returns new instances; the object is immutable.

    Non-goals:
        - No currency code: the store holds a single settlement currency.
        - No implicit rounding: use ``from_fractional()`` to convert a
          fractional cent amount, which rounds half-up to the nearest cent.
    """

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(
                f"Cents requires an int, got {type(self.value).__name__}"
            )

    @classmethod
    def zero(cls) -> Cents:
        return cls(0)

    @classmethod
    def from_fractional(cls, cents: Decimal) -> Cents:
        """Round a fractional cent amount to the nearest whole cent."""
        return cls(int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

    @property
    def is_zero(self) -> bool:
        return self.value == 0

    @property
    def is_positive(self) -> bool:
        return self.value > 0

    def floor_at_zero(self) -> Cents:
        """Clamp negative drift to zero."""
        return self if self.value >= 0 else Cents(0)

    def to_units(self) -> Decimal:
        return (Decimal(self.value) / 100).quantize(Decimal("0.01"))

    def __add__(self, other: Cents) -> Cents:
        if not isinstance(other, Cents):
            return NotImplemented
        return Cents(self.value + other.value)

    def __sub__(self, other: Cents) -> Cents:
        if not isinstance(other, Cents):
            return NotImplemented
        return Cents(self.value - other.value)

    def __neg__(self) -> Cents:
        return Cents(-self.value)

    def __str__(self) -> str:
        return str(self.to_units())


def daily_interest(principal: Cents, apr: Decimal) -> Cents:
    """Simple daily interest on ``principal`` at ``apr`` percent per year.

    ``principal * (apr / 100 / 365)``, rounded half-up to a whole cent.
    100000 cents at 24% APR accrues 66 cents.
    """
    fractional = Decimal(principal.value) * Decimal(apr) / Decimal(100) / Decimal(365)
    return Cents.from_fractional(fractional)
