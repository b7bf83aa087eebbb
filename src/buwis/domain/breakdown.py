"""Tax breakdown computation for a single invoice.

The breakdown is a pure function of the order lines and the invoice's tax
settings. Intermediate values keep full Decimal precision; every monetary
output is rounded half-up to centavos only once, when the result is built.
"""

from decimal import Decimal
from typing import Sequence

from buwis.domain.entities import (
    DEFAULT_VAT_RATE,
    SC_PWD_DISCOUNT_RATE,
    Discount,
    InvoiceVATType,
    OrderLine,
    PercentageTaxBlock,
    TaxBreakdown,
    TaxSettings,
    VATBlock,
    VATSubType,
    WithholdingTaxBlock,
)
from buwis.domain.errors import ValidationError
from buwis.domain.money import HOME_CURRENCY, Money, round_half_up, to_decimal

ZERO = Decimal("0")


def validate_rate(rate, label: str) -> Decimal:
    """Return ``rate`` as a Decimal fraction, rejecting values outside [0, 1].

    Raises:
        ValidationError: If the rate is not numeric or out of range
    """
    value = to_decimal(rate)
    if value < 0 or value > 1:
        raise ValidationError(f"{label} must be between 0 and 1 (got {value}).")
    return value


def validate_settings(settings: TaxSettings) -> None:
    """Reject settings that cannot produce a breakdown."""
    validate_rate(settings.vat_rate, "VAT rate")
    validate_rate(settings.percentage_tax_rate, "Percentage tax rate")
    validate_rate(settings.withholding_tax_rate, "Withholding tax rate")
    if settings.other_discount < 0:
        raise ValidationError("Other discount cannot be negative.")


def compute_breakdown(
    lines: Sequence[OrderLine],
    settings: TaxSettings,
    vat_type: InvoiceVATType,
    sc_pwd_eligible: bool,
    currency: str = HOME_CURRENCY,
) -> TaxBreakdown:
    """Compute the reconciled tax breakdown of an invoice.

    Args:
        lines: Order lines; only their ``amount`` is used
        settings: Rates, VAT subtype, VAT-inclusive flag and other discount
        vat_type: VAT registration of the issuer
        sc_pwd_eligible: Whether the customer holds an OSCA/PWD identifier
        currency: Currency of every monetary output

    Returns:
        A new TaxBreakdown. With no order lines every amount is zero.

    Raises:
        ValidationError: If a rate or the other discount is out of range
    """
    validate_settings(settings)

    def money(value: Decimal) -> Money:
        return Money(round_half_up(value), currency)

    is_vat = vat_type == InvoiceVATType.VAT
    wht_rate = settings.withholding_tax_rate

    if not lines:
        return _empty_breakdown(settings, is_vat, currency)

    total_sales = sum((line.amount for line in lines), ZERO)
    other_discount = settings.other_discount
    net_sales = total_sales - other_discount
    vat_rate = settings.vat_rate if is_vat else ZERO

    sc_pwd_discount = ZERO
    if sc_pwd_eligible:
        if is_vat and settings.vat_inclusive:
            sc_pwd_discount = net_sales / (1 + vat_rate) * SC_PWD_DISCOUNT_RATE
        else:
            sc_pwd_discount = net_sales * SC_PWD_DISCOUNT_RATE

    sc_pwd = money(sc_pwd_discount)
    other = money(other_discount)
    discount = Discount(sc_pwd=sc_pwd, other=other, total=sc_pwd.add(other))

    if not is_vat:
        pt_rate = settings.percentage_tax_rate
        sales_less_sc_pwd = net_sales - sc_pwd_discount
        withholding_tax = net_sales * wht_rate
        percentage_tax = sales_less_sc_pwd * pt_rate
        return TaxBreakdown(
            total_sales=money(total_sales),
            discount=discount,
            net_receivable=money(net_sales - withholding_tax - percentage_tax),
            total_amount_due=money(net_sales - withholding_tax),
            sales_pt=money(sales_less_sc_pwd if sc_pwd_discount > 0 else net_sales),
            exempt_sales=money(ZERO),
            vat=_inactive_vat_block(settings, currency),
            percentage_tax=PercentageTaxBlock(rate=pt_rate, total=money(percentage_tax)),
            withholding_tax=WithholdingTaxBlock(rate=wht_rate, total=money(withholding_tax)),
        )

    sales_vatable = ZERO
    vat_exempt_sales = ZERO
    vat_zero_rated_sales = ZERO
    total_vat = ZERO
    # Exempt and zero-rated sales have no VAT base
    base = ZERO
    subtype = settings.vat_subtype

    if subtype == VATSubType.STANDARD:
        if settings.vat_inclusive:
            base = net_sales / (1 + vat_rate)
            vat_exempt_sales = sc_pwd_discount
            sales_vatable = base - vat_exempt_sales
        else:
            base = net_sales - sc_pwd_discount
            sales_vatable = base
        total_vat = sales_vatable * vat_rate
    elif subtype == VATSubType.EXEMPT:
        vat_exempt_sales = net_sales
    elif subtype == VATSubType.ZERO_RATED:
        vat_zero_rated_sales = net_sales
    else:
        raise ValidationError(f"Unsupported VAT subtype: {subtype!r}")

    total_sales_vat_inclusive = net_sales if settings.vat_inclusive else sales_vatable + total_vat
    withholding_tax = base * wht_rate
    return TaxBreakdown(
        total_sales=money(total_sales),
        discount=discount,
        net_receivable=money(base - withholding_tax),
        total_amount_due=money(total_sales_vat_inclusive - withholding_tax),
        sales_pt=money(ZERO),
        exempt_sales=money(ZERO),
        vat=VATBlock(
            rate=vat_rate,
            subtype=subtype,
            inclusive=settings.vat_inclusive,
            total_vat=money(total_vat),
            sales_vatable=money(sales_vatable),
            vat_exempt_sales=money(vat_exempt_sales),
            vat_zero_rated_sales=money(vat_zero_rated_sales),
            total_sales_vat_inclusive=money(total_sales_vat_inclusive),
        ),
        percentage_tax=PercentageTaxBlock(rate=ZERO, total=money(ZERO)),
        withholding_tax=WithholdingTaxBlock(rate=wht_rate, total=money(withholding_tax)),
    )


def _inactive_vat_block(settings: TaxSettings, currency: str) -> VATBlock:
    zero = Money.zero(currency)
    return VATBlock(
        rate=ZERO,
        subtype=VATSubType.STANDARD,
        inclusive=settings.vat_inclusive,
        total_vat=zero,
        sales_vatable=zero,
        vat_exempt_sales=zero,
        vat_zero_rated_sales=zero,
        total_sales_vat_inclusive=zero,
    )


def _empty_breakdown(settings: TaxSettings, is_vat: bool, currency: str) -> TaxBreakdown:
    zero = Money.zero(currency)
    if is_vat:
        vat = VATBlock(
            rate=DEFAULT_VAT_RATE,
            subtype=VATSubType.STANDARD,
            inclusive=settings.vat_inclusive,
            total_vat=zero,
            sales_vatable=zero,
            vat_exempt_sales=zero,
            vat_zero_rated_sales=zero,
            total_sales_vat_inclusive=zero,
        )
    else:
        vat = _inactive_vat_block(settings, currency)
    return TaxBreakdown(
        total_sales=zero,
        discount=Discount(sc_pwd=zero, other=zero, total=zero),
        net_receivable=zero,
        total_amount_due=zero,
        sales_pt=zero,
        exempt_sales=zero,
        vat=vat,
        percentage_tax=PercentageTaxBlock(
            rate=ZERO if is_vat else settings.percentage_tax_rate, total=zero
        ),
        withholding_tax=WithholdingTaxBlock(rate=settings.withholding_tax_rate, total=zero),
    )
