"""Income tax schedule (BIR graduated table and the 8% flat option)."""

from decimal import Decimal
from typing import Union

from buwis.domain.entities import IncomeTaxType
from buwis.domain.errors import ValidationError
from buwis.domain.money import Money, to_decimal

FLAT_TAX_THRESHOLD = Decimal("250000")
FLAT_TAX_RATE = Decimal("0.08")

# (upper bound inclusive, tax on lower brackets, marginal rate, bracket floor)
GRADUATED_BRACKETS: tuple[tuple[Decimal, Decimal, Decimal, Decimal], ...] = (
    (Decimal("250000"), Decimal("0"), Decimal("0"), Decimal("0")),
    (Decimal("400000"), Decimal("0"), Decimal("0.15"), Decimal("250000")),
    (Decimal("800000"), Decimal("22500"), Decimal("0.20"), Decimal("400000")),
    (Decimal("2000000"), Decimal("102500"), Decimal("0.25"), Decimal("800000")),
    (Decimal("8000000"), Decimal("402500"), Decimal("0.30"), Decimal("2000000")),
)
TOP_BRACKET = (Decimal("2202500"), Decimal("0.35"), Decimal("8000000"))


def compute_income_tax(
    income: Union[Decimal, int, str, Money], tax_type: IncomeTaxType
) -> Decimal:
    """Compute income tax due on annual net taxable income.

    Args:
        income: Net taxable income (a Money is read by its amount)
        tax_type: GRADUATED for the bracket table, FLAT for the 8% option

    Returns:
        Tax due as an unrounded Decimal
    """
    amount = income.to_pesos() if isinstance(income, Money) else to_decimal(income)

    if tax_type == IncomeTaxType.FLAT:
        if amount > FLAT_TAX_THRESHOLD:
            return (amount - FLAT_TAX_THRESHOLD) * FLAT_TAX_RATE
        return Decimal("0")

    if tax_type == IncomeTaxType.GRADUATED:
        for upper, base_tax, rate, floor in GRADUATED_BRACKETS:
            if amount <= upper:
                return base_tax + (amount - floor) * rate if rate else Decimal("0")
        base_tax, rate, floor = TOP_BRACKET
        return base_tax + (amount - floor) * rate

    raise ValidationError(f"Unsupported income tax type: {tax_type!r}")
