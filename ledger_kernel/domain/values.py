"""
Values -- Immutable monetary value object.

Responsibility:
    ``Money`` pairs an exact ``Decimal`` amount with its ISO 4217 currency
    so the two are never separated inside engines and reports.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Depends only on ``currency``.

Invariants enforced:
    - Amounts are ``Decimal``; floats are rejected outright.
    - Arithmetic and comparison never mix currencies.

Failure modes:
    - TypeError for float amounts.
    - InvalidCurrencyError for unknown currency codes.
    - CurrencyMismatchError when combining different currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.domain.currency import CurrencyRegistry, round_money
from ledger_kernel.exceptions import CurrencyMismatchError


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount in a single currency.

    Contract:
        Construct via ``Money.of``.  ``amount`` is always a Decimal and
        ``currency`` an upper-case ISO 4217 code.

    Guarantees:
        - Immutable and hashable.
        - No silent currency mixing.

    Non-goals:
        - No conversion between currencies.
        - No implicit rounding; call ``round()``.
    """

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        if isinstance(self.amount, float):
            raise TypeError("Money amounts must be Decimal, not float")
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        object.__setattr__(self, "currency", CurrencyRegistry.validate(self.currency))

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str) -> Money:
        if isinstance(amount, (str, int)):
            amount = Decimal(str(amount))
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    def round(self) -> Money:
        """Round to the currency's minor units (half-up)."""
        return Money(round_money(self.amount, self.currency), self.currency)

    def _check(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check(other)
        return self.amount <= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
