"""Quarterly sales summary aggregation."""

import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from buwis.domain.codec import (
    legal_entity_from_dict,
    legal_entity_to_dict,
    parse_enum,
    require,
)
from buwis.domain.entities import (
    Discount,
    IncomeTaxType,
    LegalEntity,
    QuarterPeriod,
    SummaryMetadata,
)
from buwis.domain.errors import MalformedInputError, ValidationError
from buwis.domain.income_tax import compute_income_tax
from buwis.domain.invoice import DigitalInvoice
from buwis.domain.money import HOME_CURRENCY, Money
from buwis.utils.date_parser import format_timestamp, parse_timestamp, quarter_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VATSummary:
    sales_vatable: Money
    vat_exempt_sales: Money
    vat_zero_rated_sales: Money
    total_vat: Money
    total_sales_vat_inclusive: Money


@dataclass(frozen=True)
class PercentageTaxSummary:
    sales_pt: Money
    total: Money


@dataclass(frozen=True)
class IncomeSummary:
    """Income tax position derived from the pooled net receivable."""

    taxable_income: Money
    income_tax_due: Money
    net_income_after_tax: Money


@dataclass(frozen=True)
class SalesSummaryReport:
    """Pooled tax figures of every invoice in a filing period."""

    metadata: SummaryMetadata
    invoice_numbers: tuple[str, ...]
    total_sales: Money
    net_sales: Money
    discount: Discount
    vat: VATSummary
    percentage_tax: PercentageTaxSummary
    withholding_tax: Money
    net_receivable: Money
    total_amount_due: Money
    income: IncomeSummary

    @property
    def invoice_count(self) -> int:
        return len(self.invoice_numbers)

    def to_dict(self) -> dict[str, Any]:
        meta = self.metadata
        return {
            "metadata": {
                "taxpayer": legal_entity_to_dict(meta.taxpayer),
                "user_id": meta.user_id,
                "year": meta.year,
                "quarter": meta.quarter.value,
                "income_tax_type": meta.income_tax_type.value,
                "period_start": format_timestamp(meta.period_start),
                "period_end": format_timestamp(meta.period_end),
                "currency": meta.currency,
            },
            "invoice_numbers": list(self.invoice_numbers),
            "total_sales": self.total_sales.to_dict(),
            "net_sales": self.net_sales.to_dict(),
            "discount": {
                "sc_pwd": self.discount.sc_pwd.to_dict(),
                "other": self.discount.other.to_dict(),
                "total": self.discount.total.to_dict(),
            },
            "vat": {
                "sales_vatable": self.vat.sales_vatable.to_dict(),
                "vat_exempt_sales": self.vat.vat_exempt_sales.to_dict(),
                "vat_zero_rated_sales": self.vat.vat_zero_rated_sales.to_dict(),
                "total_vat": self.vat.total_vat.to_dict(),
                "total_sales_vat_inclusive": self.vat.total_sales_vat_inclusive.to_dict(),
            },
            "percentage_tax": {
                "sales_pt": self.percentage_tax.sales_pt.to_dict(),
                "total": self.percentage_tax.total.to_dict(),
            },
            "withholding_tax": self.withholding_tax.to_dict(),
            "net_receivable": self.net_receivable.to_dict(),
            "total_amount_due": self.total_amount_due.to_dict(),
            "income": {
                "taxable_income": self.income.taxable_income.to_dict(),
                "income_tax_due": self.income.income_tax_due.to_dict(),
                "net_income_after_tax": self.income.net_income_after_tax.to_dict(),
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SalesSummaryReport":
        """Parse a summary projection.

        Raises:
            MalformedInputError: If a required property is missing or invalid
        """
        meta = require(data, "metadata")
        year = require(meta, "year")
        if isinstance(year, bool) or not isinstance(year, int):
            raise MalformedInputError(f"Invalid summary year: {year!r}")
        try:
            metadata = SummaryMetadata(
                taxpayer=legal_entity_from_dict(require(meta, "taxpayer")),
                user_id=str(require(meta, "user_id")),
                year=year,
                quarter=parse_enum(QuarterPeriod, require(meta, "quarter"), "quarter"),
                income_tax_type=parse_enum(
                    IncomeTaxType, require(meta, "income_tax_type"), "income_tax_type"
                ),
                period_start=parse_timestamp(require(meta, "period_start")),
                period_end=parse_timestamp(require(meta, "period_end")),
                currency=str(meta.get("currency") or HOME_CURRENCY),
            )
        except ValidationError as e:
            raise MalformedInputError(str(e)) from e

        numbers = data.get("invoice_numbers") or []
        if not isinstance(numbers, list):
            raise MalformedInputError("Summary invoice_numbers must be a list")
        discount = require(data, "discount")
        vat = require(data, "vat")
        percentage_tax = require(data, "percentage_tax")
        income = require(data, "income")

        def money(source: Any, key: str) -> Money:
            return Money.from_dict(require(source, key))

        return cls(
            metadata=metadata,
            invoice_numbers=tuple(str(n) for n in numbers),
            total_sales=money(data, "total_sales"),
            net_sales=money(data, "net_sales"),
            discount=Discount(
                sc_pwd=money(discount, "sc_pwd"),
                other=money(discount, "other"),
                total=money(discount, "total"),
            ),
            vat=VATSummary(
                sales_vatable=money(vat, "sales_vatable"),
                vat_exempt_sales=money(vat, "vat_exempt_sales"),
                vat_zero_rated_sales=money(vat, "vat_zero_rated_sales"),
                total_vat=money(vat, "total_vat"),
                total_sales_vat_inclusive=money(vat, "total_sales_vat_inclusive"),
            ),
            percentage_tax=PercentageTaxSummary(
                sales_pt=money(percentage_tax, "sales_pt"),
                total=money(percentage_tax, "total"),
            ),
            withholding_tax=money(data, "withholding_tax"),
            net_receivable=money(data, "net_receivable"),
            total_amount_due=money(data, "total_amount_due"),
            income=IncomeSummary(
                taxable_income=money(income, "taxable_income"),
                income_tax_due=money(income, "income_tax_due"),
                net_income_after_tax=money(income, "net_income_after_tax"),
            ),
        )


def summary_metadata(
    taxpayer: LegalEntity,
    user_id: str,
    quarter: QuarterPeriod,
    year: int,
    income_tax_type: IncomeTaxType = IncomeTaxType.GRADUATED,
    currency: str = HOME_CURRENCY,
) -> SummaryMetadata:
    """Build the identity snapshot of a summary, resolving the period bounds."""
    start, end = quarter_range(quarter, year)
    return SummaryMetadata(
        taxpayer=copy.deepcopy(taxpayer),
        user_id=user_id,
        year=year,
        quarter=quarter,
        income_tax_type=income_tax_type,
        period_start=start,
        period_end=end,
        currency=currency,
    )


def in_period(invoice: DigitalInvoice, metadata: SummaryMetadata) -> bool:
    return metadata.period_start <= invoice.timestamp <= metadata.period_end


def build_summary(
    metadata: SummaryMetadata, invoices: Optional[Iterable[DigitalInvoice]] = None
) -> SalesSummaryReport:
    """Fold the breakdowns of in-period invoices into a summary.

    The result depends only on the set of invoices: pools are sums, and the
    listed invoice numbers are ordered by issue timestamp.

    Args:
        metadata: Identity and period of the summary
        invoices: Invoices to aggregate; those outside the period are skipped

    Returns:
        A new SalesSummaryReport; all pools are zero when nothing qualifies

    Raises:
        CurrencyMismatchError: If an invoice is not in the summary currency
    """
    eligible = sorted(
        (inv for inv in invoices or () if in_period(inv, metadata)),
        key=lambda inv: (inv.timestamp, inv.invoice_number),
    )

    zero = Money.zero(metadata.currency)
    pools = {name: zero for name in _POOLS}
    for invoice in eligible:
        breakdown = invoice.breakdown
        values = {
            "total_sales": breakdown.total_sales,
            "net_sales": breakdown.total_sales.subtract(breakdown.discount.other),
            "sc_pwd": breakdown.discount.sc_pwd,
            "other": breakdown.discount.other,
            "total_discount": breakdown.discount.total,
            "sales_vatable": breakdown.vat.sales_vatable,
            "vat_exempt_sales": breakdown.vat.vat_exempt_sales,
            "vat_zero_rated_sales": breakdown.vat.vat_zero_rated_sales,
            "total_vat": breakdown.vat.total_vat,
            "total_sales_vat_inclusive": breakdown.vat.total_sales_vat_inclusive,
            "sales_pt": breakdown.sales_pt,
            "percentage_tax": breakdown.percentage_tax.total,
            "withholding_tax": breakdown.withholding_tax.total,
            "net_receivable": breakdown.net_receivable,
            "total_amount_due": breakdown.total_amount_due,
        }
        for name, amount in values.items():
            pools[name] = pools[name].add(amount)

    taxable_income = pools["net_receivable"]
    income_tax_due = Money(
        compute_income_tax(taxable_income, metadata.income_tax_type), metadata.currency
    ).round()

    logger.debug(
        "Built %s %s summary for %s from %d invoice(s)",
        metadata.quarter.value,
        metadata.year,
        metadata.user_id,
        len(eligible),
    )

    return SalesSummaryReport(
        metadata=metadata,
        invoice_numbers=tuple(inv.invoice_number for inv in eligible),
        total_sales=pools["total_sales"],
        net_sales=pools["net_sales"],
        discount=Discount(
            sc_pwd=pools["sc_pwd"], other=pools["other"], total=pools["total_discount"]
        ),
        vat=VATSummary(
            sales_vatable=pools["sales_vatable"],
            vat_exempt_sales=pools["vat_exempt_sales"],
            vat_zero_rated_sales=pools["vat_zero_rated_sales"],
            total_vat=pools["total_vat"],
            total_sales_vat_inclusive=pools["total_sales_vat_inclusive"],
        ),
        percentage_tax=PercentageTaxSummary(
            sales_pt=pools["sales_pt"], total=pools["percentage_tax"]
        ),
        withholding_tax=pools["withholding_tax"],
        net_receivable=pools["net_receivable"],
        total_amount_due=pools["total_amount_due"],
        income=IncomeSummary(
            taxable_income=taxable_income,
            income_tax_due=income_tax_due,
            net_income_after_tax=taxable_income.subtract(income_tax_due),
        ),
    )


_POOLS = (
    "total_sales",
    "net_sales",
    "sc_pwd",
    "other",
    "total_discount",
    "sales_vatable",
    "vat_exempt_sales",
    "vat_zero_rated_sales",
    "total_vat",
    "total_sales_vat_inclusive",
    "sales_pt",
    "percentage_tax",
    "withholding_tax",
    "net_receivable",
    "total_amount_due",
)
