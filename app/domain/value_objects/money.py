"""
Money value object for handling monetary amounts with currency.

Iraqi dinar amounts have no minor units, so every amount is normalized to
whole dinars. Amounts are signed: price differences on exchanges and refunds
on return orders are legitimately negative.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_CURRENCY = "IQD"

CURRENCY_SYMBOLS = {"IQD": "د.ع"}


@dataclass(frozen=True, order=False)
class Money:
    """
    Immutable value object representing a monetary amount with currency.

    Attributes:
        amount: The monetary amount as Decimal, always whole dinars
        currency: ISO currency code (default "IQD")

    Example:
        >>> price = Money(Decimal("15000"))
        >>> delivery = Money(Decimal("5000"))
        >>> (price + delivery).format()
        '20,000 د.ع'
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))

        normalized_amount = self.amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        object.__setattr__(self, "amount", normalized_amount)

        if not self.currency or len(self.currency) != 3:
            raise ValueError(f"Invalid currency code: {self.currency}")

    def _check_currency(self, other: "Money", operation: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot {operation} Money with {type(other)}")
        if self.currency != other.currency:
            raise ValueError(f"Cannot {operation} different currencies: {self.currency} and {other.currency}")

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other, "add")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other, "subtract")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __mul__(self, multiplier: int | float | Decimal) -> "Money":
        if isinstance(multiplier, bool) or not isinstance(multiplier, (int, float, Decimal)):
            raise TypeError(f"Cannot multiply Money by {type(multiplier)}")
        return Money(amount=self.amount * Decimal(str(multiplier)), currency=self.currency)

    __rmul__ = __mul__

    def __neg__(self) -> "Money":
        return Money(amount=-self.amount, currency=self.currency)

    def __abs__(self) -> "Money":
        return Money(amount=abs(self.amount), currency=self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:.0f}"

    def __repr__(self) -> str:
        return f"Money(amount=Decimal('{self.amount}'), currency='{self.currency}')"

    def __int__(self) -> int:
        return int(self.amount)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    @property
    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    def max_zero(self) -> "Money":
        """Clamp negative amounts to zero."""
        return self if self.amount >= 0 else Money.zero(self.currency)

    def round_to_step(self, step: int) -> "Money":
        """
        Round to the nearest multiple of ``step`` (half up, away from zero).

        Discounts are handed out in 500-dinar notes, so a 7,300 discount
        becomes 7,500 and a 7,200 discount becomes 7,000.
        """
        if step <= 0:
            raise ValueError(f"Rounding step must be positive: {step}")
        step_dec = Decimal(step)
        units = (self.amount / step_dec).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return Money(amount=units * step_dec, currency=self.currency)

    def format(self) -> str:
        """Human readable amount with thousands separator and currency symbol."""
        symbol = CURRENCY_SYMBOLS.get(self.currency, self.currency)
        return f"{int(self.amount):,} {symbol}"

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(amount=Decimal("0"), currency=currency)

    @classmethod
    def from_value(
        cls, value: "Money | int | float | str | Decimal | None", currency: str = DEFAULT_CURRENCY
    ) -> "Money":
        """Create Money from a raw database/API value; ``None`` becomes zero."""
        if isinstance(value, Money):
            return value
        if value is None or value == "":
            return cls.zero(currency)
        return cls(amount=Decimal(str(value)), currency=currency)
