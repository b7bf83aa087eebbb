"""Plain-text rendering of breakdowns and summaries."""

import json
from typing import Any

import click

from buwis.domain.entities import TaxBreakdown
from buwis.domain.money import Money
from buwis.domain.summary import SalesSummaryReport

LABEL_WIDTH = 32


def _row(label: str, amount: Money, indent: int = 0) -> str:
    return f"{' ' * indent}{label:<{LABEL_WIDTH - indent}s} {amount.format():>20s}"


def _percent(rate) -> str:
    return f"{(rate * 100).normalize():f}%"


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def echo_breakdown(breakdown: TaxBreakdown, is_vat: bool) -> None:
    """Print the figures of one invoice breakdown."""
    click.echo(_row("Total sales", breakdown.total_sales))
    click.echo(_row("Less: SC/PWD discount", breakdown.discount.sc_pwd, indent=2))
    click.echo(_row("Less: Other discount", breakdown.discount.other, indent=2))
    if is_vat:
        vat = breakdown.vat
        inclusive = "inclusive" if vat.inclusive else "exclusive"
        click.echo(f"VAT ({_percent(vat.rate)}, {vat.subtype.value}, {inclusive})")
        click.echo(_row("VATable sales", vat.sales_vatable, indent=2))
        click.echo(_row("VAT-exempt sales", vat.vat_exempt_sales, indent=2))
        click.echo(_row("Zero-rated sales", vat.vat_zero_rated_sales, indent=2))
        click.echo(_row("VAT", vat.total_vat, indent=2))
        click.echo(_row("Total sales (VAT inclusive)", vat.total_sales_vat_inclusive, indent=2))
    else:
        click.echo(f"Percentage tax ({_percent(breakdown.percentage_tax.rate)})")
        click.echo(_row("Sales subject to PT", breakdown.sales_pt, indent=2))
        click.echo(_row("Percentage tax", breakdown.percentage_tax.total, indent=2))
    click.echo(
        _row(f"Withholding tax ({_percent(breakdown.withholding_tax.rate)})", breakdown.withholding_tax.total)
    )
    click.echo("-" * (LABEL_WIDTH + 21))
    click.echo(_row("Total amount due", breakdown.total_amount_due))
    click.echo(_row("Net receivable", breakdown.net_receivable))


def echo_summary(report: SalesSummaryReport) -> None:
    """Print a quarterly sales summary."""
    meta = report.metadata
    click.echo(
        f"\n{meta.taxpayer.business_name} (TIN {meta.taxpayer.tin}) - {meta.year} {meta.quarter.value}"
    )
    click.echo(
        f"Period: {meta.period_start.date().isoformat()} to {meta.period_end.date().isoformat()}"
        f" | Invoices: {report.invoice_count} | Income tax: {meta.income_tax_type.value}"
    )
    click.echo("-" * (LABEL_WIDTH + 21))
    click.echo(_row("Gross sales", report.total_sales))
    click.echo(_row("Net sales", report.net_sales))
    click.echo(_row("SC/PWD discount", report.discount.sc_pwd, indent=2))
    click.echo(_row("Other discount", report.discount.other, indent=2))
    click.echo(_row("VATable sales", report.vat.sales_vatable))
    click.echo(_row("VAT-exempt sales", report.vat.vat_exempt_sales))
    click.echo(_row("Zero-rated sales", report.vat.vat_zero_rated_sales))
    click.echo(_row("Output VAT", report.vat.total_vat))
    click.echo(_row("Sales subject to PT", report.percentage_tax.sales_pt))
    click.echo(_row("Percentage tax", report.percentage_tax.total))
    click.echo(_row("Withholding tax", report.withholding_tax))
    click.echo(_row("Total amount due", report.total_amount_due))
    click.echo(_row("Net receivable", report.net_receivable))
    click.echo("-" * (LABEL_WIDTH + 21))
    click.echo(_row("Taxable income", report.income.taxable_income))
    click.echo(_row("Income tax due", report.income.income_tax_due))
    click.echo(_row("Net income after tax", report.income.net_income_after_tax))
