"""
Money and Currency Module

ISO 4217 currencies with their minor-unit precision and an immutable Money
value. Monetary values are always Decimal, never float.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from enum import Enum
from typing import Union

getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 currency codes with decimal precision"""
    USD = ("USD", 2)
    EUR = ("EUR", 2)
    GBP = ("GBP", 2)
    JPY = ("JPY", 0)
    CAD = ("CAD", 2)
    CHF = ("CHF", 2)

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @classmethod
    def from_code(cls, code: str) -> "Currency":
        try:
            return cls[code.strip().upper()]
        except KeyError:
            raise ValueError(f"Unsupported currency: {code}")


@dataclass(frozen=True)
class Money:
    """
    Immutable amount of a single currency, quantized to the currency's
    precision with ROUND_HALF_UP.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        amount = self.amount
        if not isinstance(amount, Decimal):
            amount = to_decimal(amount)
        object.__setattr__(self, "amount", quantize(amount, self.currency))

    @classmethod
    def zero(cls, currency: Currency) -> "Money":
        return cls(Decimal("0"), currency)

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Currency mismatch: {self.currency.code} and {other.currency.code}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    def to_string(self) -> str:
        """Format for display"""
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"


def to_decimal(value: Union[str, int, Decimal]) -> Decimal:
    """
    Convert a string or integer to Decimal.

    Floats are refused because their binary representation cannot hold
    most decimal amounts exactly.

    Raises:
        ValueError: If the value is a float or is not a finite number
    """
    if isinstance(value, float):
        raise ValueError("Monetary amounts must not be floats")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to Decimal")
    if not result.is_finite():
        raise ValueError(f"Amount must be a finite number: {value}")
    return result


def quantize(value: Decimal, currency: Currency) -> Decimal:
    """
    Round a Decimal to the currency's precision

    Raises:
        ValueError: If the rounded value needs more digits than the decimal
            context holds
    """
    try:
        return value.quantize(Decimal("0.1") ** currency.precision, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(
            f"Amount {value} exceeds the supported precision for {currency.code}"
        ) from e
