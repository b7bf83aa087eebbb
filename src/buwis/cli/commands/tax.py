"""Stand-alone tax calculation commands."""

import click
from buwis.cli.error_handling import handle_domain_error
from buwis.domain.entities import IncomeTaxType, QuarterPeriod
from buwis.domain.income_tax import compute_income_tax
from buwis.domain.money import Money
from buwis.utils.amount_parser import parse_amount
from buwis.utils.deadlines import (
    quarter_deadlines,
    withholding_tax_annual_deadline,
    withholding_tax_monthly_deadline,
)


@click.group()
def tax_group():
    """Income tax and filing deadline calculators."""
    pass


@tax_group.command("income")
@click.argument("taxable_income")
@click.option(
    "--regime",
    type=click.Choice([t.value for t in IncomeTaxType], case_sensitive=False),
    default=IncomeTaxType.GRADUATED.value,
    show_default=True,
    help="Graduated brackets or the 8% flat option",
)
@click.pass_context
def income_tax(ctx, taxable_income: str, regime: str):
    """Compute income tax due on a net taxable income.

    Examples:
        buwis tax income 500000
        buwis tax income "PHP 1,200,000" --regime FLAT
    """
    try:
        income = Money.from_pesos(parse_amount(taxable_income))
        due = Money(compute_income_tax(income, IncomeTaxType(regime))).round()
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Taxable income: {income.format()}")
    click.echo(f"Income tax due ({regime}): {due.format()}")
    click.echo(f"Net income after tax: {income.subtract(due).format()}")


@tax_group.command("deadlines")
@click.option(
    "--quarter",
    type=click.Choice([q.value for q in QuarterPeriod], case_sensitive=False),
    required=True,
    help="Filing quarter",
)
@click.option("--year", type=int, help="Filing year (defaults to the current year)")
@click.pass_context
def deadlines(ctx, quarter: str, year: int | None):
    """Show BIR filing deadlines for a quarter."""
    try:
        quarterly = quarter_deadlines(QuarterPeriod(quarter), year)
        first_month = (QuarterPeriod(quarter).number - 1) * 3 + 1
        monthly = [
            (month, withholding_tax_monthly_deadline(month, year))
            for month in range(first_month, first_month + 3)
        ]
        annual = withholding_tax_annual_deadline(year)
    except ValueError as e:
        handle_domain_error(ctx, e)

    income_label = "Annual income tax" if quarter == QuarterPeriod.Q4.value else "Quarterly income tax"
    click.echo(f"VAT return:                {quarterly['vat']}")
    click.echo(f"Percentage tax return:     {quarterly['percentage_tax']}")
    click.echo(f"{income_label + ':':27s}{quarterly['income_tax']}")
    for month, due in monthly:
        click.echo(f"Withholding (month {month:2d}):    {due}")
    click.echo(f"Annual withholding return: {annual}")


def register_commands(cli):
    """Register tax commands with main CLI."""
    cli.add_command(tax_group, name="tax")
