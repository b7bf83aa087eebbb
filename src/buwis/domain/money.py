"""Currency-aware monetary value with exact decimal arithmetic."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Union

from buwis.domain.errors import (
    CurrencyMismatchError,
    MalformedInputError,
    ValidationError,
    currency_mismatch,
)

HOME_CURRENCY = "PHP"

CENTS = Decimal("0.01")

DecimalLike = Union[Decimal, int, float, str]


def to_decimal(value: DecimalLike) -> Decimal:
    """Convert a decimal-compatible value to Decimal.

    Floats go through their shortest string form so that 1.005 stays 1.005
    instead of its binary expansion.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValidationError(f"Invalid amount: {value!r}") from e
    else:
        raise ValidationError(f"Invalid amount: {value!r}")

    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return result


def round_half_up(value: Decimal) -> Decimal:
    """Round a Decimal to 2 decimal places, half away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """Immutable monetary amount tagged with an ISO-4217 currency code.

    Every arithmetic operation returns a new instance. Addition and
    subtraction require both operands to share a currency.
    """

    amount: Decimal
    currency: str = HOME_CURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if not isinstance(self.currency, str) or not self.currency.strip():
            raise ValidationError("Currency must be a valid non-empty string.")
        object.__setattr__(self, "currency", self.currency.strip().upper())

    @classmethod
    def zero(cls, currency: str = HOME_CURRENCY) -> "Money":
        """Create a zero amount in the given currency."""
        return cls(Decimal("0"), currency)

    @classmethod
    def from_centavos(cls, centavos: Union[int, str], currency: str = HOME_CURRENCY) -> "Money":
        """Build from an integer count of centavos (12345 -> 123.45)."""
        return cls(to_decimal(centavos) / 100, currency)

    @classmethod
    def from_pesos(cls, pesos: DecimalLike, currency: str = HOME_CURRENCY) -> "Money":
        """Build directly from a peso value."""
        return cls(to_decimal(pesos), currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def to_pesos(self) -> Decimal:
        """Return the exact peso amount."""
        return self.amount

    def to_centavos(self) -> int:
        """Return the amount in centavos, rounded half away from zero."""
        return int((self.amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def add(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor: DecimalLike) -> "Money":
        return Money(self.amount * to_decimal(factor), self.currency)

    def divide(self, divisor: DecimalLike) -> "Money":
        divisor = to_decimal(divisor)
        if divisor == 0:
            raise ValidationError("Cannot divide an amount by zero.")
        return Money(self.amount / divisor, self.currency)

    def equals(self, other: "Money") -> bool:
        """Return True when currency and exact amount both match."""
        return self.currency == other.currency and self.amount == other.amount

    def round(self) -> "Money":
        """Round to centavos using half-up rounding."""
        return Money(round_half_up(self.amount), self.currency)

    def format(self) -> str:
        """Human readable form, e.g. 'PHP 1,234.56'."""
        return f"{self.currency} {round_half_up(self.amount):,.2f}"

    def to_dict(self) -> dict[str, str]:
        """Plain-data projection with exactly two fractional digits."""
        return {"amount": f"{round_half_up(self.amount):.2f}", "currency": self.currency}

    @classmethod
    def from_dict(cls, data: Any) -> "Money":
        """Parse the projection produced by to_dict.

        Raises:
            MalformedInputError: If the data is not a mapping, the amount is
                missing or not numeric, or the currency is not a string
        """
        if not isinstance(data, dict):
            raise MalformedInputError(f"Invalid money value: {data!r}")
        currency = data.get("currency")
        if not isinstance(currency, str):
            raise MalformedInputError("Invalid currency type. Expected string.")
        amount = data.get("amount")
        if isinstance(amount, bool) or not isinstance(amount, (int, float, str, Decimal)):
            raise MalformedInputError("Invalid amount type. Expected string or number.")
        try:
            return cls(to_decimal(amount), currency)
        except ValidationError as e:
            raise MalformedInputError(str(e)) from e

    def _assert_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(currency_mismatch(self.currency, other.currency))
