"""Invoice commands."""

import click
from buwis.cli.error_handling import handle_domain_error, load_json_file
from buwis.cli.formatting import echo_breakdown, echo_json
from buwis.domain.entities import InvoiceVATType
from buwis.domain.errors import DomainError
from buwis.domain.filing import FilingService
from buwis.domain.invoice import DigitalInvoice


@click.group()
def invoice_group():
    """Manage the invoices of a filing session."""
    pass


@invoice_group.command("import")
@click.argument("session_id")
@click.argument("json_files", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--replace", is_flag=True, help="Replace the invoices held by the session")
@click.pass_context
def import_invoices(ctx, session_id: str, json_files: tuple[str, ...], replace: bool):
    """Add invoices from JSON files to a session.

    Each file holds one invoice object or a list of them. The whole batch is
    rejected if any invoice is malformed, duplicated or outside the session
    period.

    Examples:
        buwis invoice import buwisfriend-juan-1735689600 jan.json feb.json
        buwis invoice import buwisfriend-juan-1735689600 q1.json --replace
    """
    payloads = []
    for path in json_files:
        data = load_json_file(ctx, path)
        payloads.extend(data if isinstance(data, list) else [data])

    try:
        session = FilingService(ctx.obj["db"]).import_invoices(session_id, payloads, replace=replace)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    click.echo(f"  Imported: {len(payloads)} invoice(s)")
    click.echo(f"  Held: {len(session.invoices)} invoice(s)")
    click.echo(f"  Net receivable: {session.summary.net_receivable.format()}")


@invoice_group.command("list")
@click.argument("session_id")
@click.pass_context
def list_invoices(ctx, session_id: str):
    """List the invoices held by a session."""
    try:
        session = FilingService(ctx.obj["db"]).get_session(session_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not session.invoices:
        click.echo("No invoices found.")
        return

    click.echo("\nInvoices:")
    click.echo("-" * 80)
    for invoice in session.invoices:
        click.echo(
            f"{invoice.timestamp.date().isoformat()} | {invoice.invoice_number:14s} | "
            f"{invoice.customer.name[:24]:24s} | {invoice.breakdown.total_amount_due.format():>18s}"
        )


@invoice_group.command("remove")
@click.argument("session_id")
@click.argument("invoice_number")
@click.pass_context
def remove_invoice(ctx, session_id: str, invoice_number: str):
    """Remove an invoice from a session."""
    try:
        session = FilingService(ctx.obj["db"]).remove_invoice(session_id, invoice_number.upper())
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed invoice {invoice_number.upper()} ({len(session.invoices)} remaining)")


@invoice_group.command("clear")
@click.argument("session_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def clear_invoices(ctx, session_id: str, yes: bool):
    """Remove every invoice from a session."""
    if not yes and not click.confirm(f"Remove all invoices from session {session_id}?"):
        click.echo("Cancelled.")
        return

    try:
        FilingService(ctx.obj["db"]).clear_invoices(session_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Cleared invoices of session {session_id}")


@invoice_group.command("breakdown")
@click.argument("json_file", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print the breakdown as JSON")
@click.pass_context
def show_breakdown(ctx, json_file: str, as_json: bool):
    """Compute the tax breakdown of an invoice file."""
    data = load_json_file(ctx, json_file)
    try:
        invoice = DigitalInvoice.from_dict(data)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if as_json:
        echo_json(invoice.to_dict()["order"]["breakdown"])
        return
    click.echo(f"\nInvoice {invoice.invoice_number} ({invoice.vat_type.value})")
    echo_breakdown(invoice.breakdown, invoice.is_vat)


@invoice_group.command("template")
@click.option(
    "--vat-type",
    type=click.Choice([t.value for t in InvoiceVATType], case_sensitive=False),
    default=InvoiceVATType.NON_VAT.value,
    show_default=True,
)
def invoice_template(vat_type: str):
    """Print a blank invoice to fill in and import."""
    echo_json(DigitalInvoice.initialize(InvoiceVATType(vat_type)).to_dict())


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
