from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class Money:
    amount_cents: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise ValueError("amount_cents must be >= 0")
        if len(self.currency) != 3 or not self.currency.isalpha() or not self.currency.isupper():
            raise ValueError("currency must be a 3-letter uppercase code")

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(amount_cents=0, currency=currency)

    @classmethod
    def from_decimal(cls, amount: Decimal | str, currency: str = DEFAULT_CURRENCY) -> Money:
        cents = (Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(amount_cents=int(cents), currency=currency)

    def __add__(self, other: Money) -> Money:
        self._ensure_same_currency(other)
        return Money(amount_cents=self.amount_cents + other.amount_cents, currency=self.currency)

    def times(self, quantity: int) -> Money:
        return Money(amount_cents=self.amount_cents * quantity, currency=self.currency)

    def percent(self, rate: Decimal) -> Money:
        """Return ``rate`` percent of this amount, rounded half-up to the cent."""
        cents = (Decimal(self.amount_cents) * rate / 100).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return Money(amount_cents=int(cents), currency=self.currency)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.amount_cents) / 100).quantize(Decimal("0.01"))

    def _ensure_same_currency(self, other: Money) -> None:
        if other.currency != self.currency:
            raise ValueError(f"currency mismatch: {self.currency} != {other.currency}")


def sum_money(values: list[Money], currency: str = DEFAULT_CURRENCY) -> Money:
    total = Money.zero(currency)
    for value in values:
        total = total + value
    return total
