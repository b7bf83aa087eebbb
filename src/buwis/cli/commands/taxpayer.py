"""Taxpayer profile commands."""

import click
from buwis.cli.error_handling import handle_domain_error, load_json_file
from buwis.cli.formatting import echo_json
from buwis.domain.entities import InvoiceType, InvoiceVATType
from buwis.domain.errors import DomainError
from buwis.domain.invoice import DigitalInvoice
from buwis.domain.taxpayer import TaxpayerService
from buwis.utils.amount_parser import parse_rate


@click.group()
def taxpayer_group():
    """Manage taxpayer profiles."""
    pass


@taxpayer_group.command("register")
@click.option("--name", required=True, help="Registered name")
@click.option("--tin", required=True, help="Taxpayer identification number")
@click.option("--address", required=True, help="Registered address")
@click.option("--business-name", required=True, help="Business name/style")
@click.option(
    "--vat-type",
    type=click.Choice([t.value for t in InvoiceVATType], case_sensitive=False),
    default=InvoiceVATType.NON_VAT.value,
    show_default=True,
    help="VAT registration",
)
@click.option(
    "--category",
    type=click.Choice([t.value for t in InvoiceType], case_sensitive=False),
    default=InvoiceType.SALES.value,
    show_default=True,
    help="Default invoice category",
)
@click.option("--rdo", default="000", show_default=True, help="Revenue District Office code")
@click.option("--vat-rate", help="VAT rate, e.g. 0.12 or 12%")
@click.option("--pt-rate", help="Percentage tax rate, e.g. 0.03 or 3%")
@click.option("--contact-number", help="Contact number")
@click.option("--email", help="E-mail address")
@click.option("--website", help="Website")
@click.pass_context
def register_taxpayer(
    ctx,
    name: str,
    tin: str,
    address: str,
    business_name: str,
    vat_type: str,
    category: str,
    rdo: str,
    vat_rate: str | None,
    pt_rate: str | None,
    contact_number: str | None,
    email: str | None,
    website: str | None,
):
    """Create or replace a taxpayer profile.

    Examples:
        buwis taxpayer register --name "Juan Dela Cruz" --tin 123456789000 \\
            --address "Makati City" --business-name "JDC Consulting"
        buwis taxpayer register ... --vat-type VAT --vat-rate 12%
    """
    service = TaxpayerService(ctx.obj["db"])

    try:
        info = service.register(
            name=name,
            tin=tin,
            address=address,
            business_name=business_name,
            vat_type=vat_type,
            category=category,
            rdo=rdo,
            vat_rate=parse_rate(vat_rate) if vat_rate else None,
            percentage_tax_rate=parse_rate(pt_rate) if pt_rate else None,
            contact_number=contact_number,
            email_address=email,
            website=website,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Saved taxpayer '{info.issuer.business_name}' (TIN: {info.issuer.tin})")


@taxpayer_group.command("list")
@click.pass_context
def list_taxpayers(ctx):
    """List all taxpayer profiles."""
    profiles = TaxpayerService(ctx.obj["db"]).list_profiles()
    if not profiles:
        click.echo("No taxpayer profiles found.")
        return

    click.echo("\nTaxpayers:")
    click.echo("-" * 72)
    for info in profiles:
        click.echo(
            f"TIN: {info.issuer.tin:15s} | {info.issuer.business_name:30s} | {info.vat_type.value}"
        )


@taxpayer_group.command("show")
@click.argument("tin")
@click.pass_context
def show_taxpayer(ctx, tin: str):
    """Print a taxpayer profile as JSON."""
    try:
        echo_json(TaxpayerService(ctx.obj["db"]).export_profile(tin))
    except DomainError as e:
        handle_domain_error(ctx, e)


@taxpayer_group.command("import")
@click.argument("json_file", type=click.Path(exists=True))
@click.option(
    "--from-invoice",
    is_flag=True,
    help="Treat the file as an invoice and store its issuer and tax settings",
)
@click.pass_context
def import_taxpayer(ctx, json_file: str, from_invoice: bool):
    """Store a taxpayer profile from a JSON file."""
    service = TaxpayerService(ctx.obj["db"])
    data = load_json_file(ctx, json_file)

    try:
        if from_invoice:
            info = service.save_from_invoice(DigitalInvoice.from_dict(data))
        else:
            info = service.import_profile(data)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Saved taxpayer '{info.issuer.business_name}' (TIN: {info.issuer.tin})")


@taxpayer_group.command("delete")
@click.argument("tin")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_taxpayer(ctx, tin: str, yes: bool):
    """Delete a taxpayer profile."""
    service = TaxpayerService(ctx.obj["db"])

    if not yes and not click.confirm(f"Are you sure you want to delete taxpayer {tin}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_profile(tin)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted taxpayer {tin}")


def register_commands(cli):
    """Register taxpayer commands with main CLI."""
    cli.add_command(taxpayer_group, name="taxpayer")
