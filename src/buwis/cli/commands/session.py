"""Filing session commands."""

import click
from buwis.cli.error_handling import handle_domain_error, load_json_file
from buwis.cli.formatting import echo_json, echo_summary
from buwis.domain.entities import IncomeTaxType, QuarterPeriod
from buwis.domain.errors import DomainError
from buwis.domain.filing import FilingService

QUARTER_CHOICE = click.Choice([q.value for q in QuarterPeriod], case_sensitive=False)


@click.group()
def session_group():
    """Manage quarterly filing sessions."""
    pass


@session_group.command("create")
@click.option("--user", "user_id", required=True, help="Owner of the session")
@click.option("--quarter", type=QUARTER_CHOICE, required=True, help="Filing quarter")
@click.option("--year", type=int, help="Filing year (defaults to the current year)")
@click.option("--tin", help="Apply a stored taxpayer profile")
@click.pass_context
def create_session(ctx, user_id: str, quarter: str, year: int | None, tin: str | None):
    """Create an empty filing session.

    Examples:
        buwis session create --user juan --quarter Q1 --year 2025
        buwis session create --user juan --quarter Q2 --tin 123456789000
    """
    service = FilingService(ctx.obj["db"])

    try:
        session = service.create_session(user_id=user_id, quarter=quarter, year=year, taxpayer_tin=tin)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created session {session.id}")


@session_group.command("list")
@click.option("--user", "user_id", help="Only sessions of this user")
@click.option("--year", type=int, help="Only sessions of this year")
@click.option("--quarter", type=QUARTER_CHOICE, help="Only sessions of this quarter")
@click.pass_context
def list_sessions(ctx, user_id: str | None, year: int | None, quarter: str | None):
    """List stored filing sessions."""
    records = FilingService(ctx.obj["db"]).list_sessions(user_id=user_id, year=year, quarter=quarter)
    if not records:
        click.echo("No sessions found.")
        return

    click.echo("\nSessions:")
    click.echo("-" * 80)
    for record in records:
        click.echo(
            f"{record.id:40s} | {record.year} {record.quarter.value} | "
            f"{record.user_id:12s} | {record.invoice_count:4d} invoice(s)"
        )


@session_group.command("show")
@click.argument("session_id")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
@click.pass_context
def show_session(ctx, session_id: str, as_json: bool):
    """Show the sales summary of a session."""
    try:
        report = FilingService(ctx.obj["db"]).get_summary(session_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if as_json:
        echo_json(report.to_dict())
    else:
        echo_summary(report)


@session_group.command("regime")
@click.argument("session_id")
@click.argument(
    "income_tax_type",
    type=click.Choice([t.value for t in IncomeTaxType], case_sensitive=False),
)
@click.pass_context
def set_regime(ctx, session_id: str, income_tax_type: str):
    """Choose graduated or 8% flat income tax for a session."""
    try:
        session = FilingService(ctx.obj["db"]).set_income_tax_type(session_id, income_tax_type)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Income tax regime set to {session.metadata.tax_settings.income_tax_type.value}; "
        f"tax due {session.summary.income.income_tax_due.format()}"
    )


@session_group.command("period")
@click.argument("session_id")
@click.option("--quarter", type=QUARTER_CHOICE, help="New quarter")
@click.option("--year", type=int, help="New year")
@click.pass_context
def set_period(ctx, session_id: str, quarter: str | None, year: int | None):
    """Move a session to another filing period."""
    if quarter is None and year is None:
        click.echo("Error: Specify --quarter and/or --year.", err=True)
        ctx.exit(1)

    try:
        session = FilingService(ctx.obj["db"]).set_period(session_id, quarter=quarter, year=year)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Session {session.id} is now {session.metadata.year} {session.metadata.quarter.value}")


@session_group.command("export")
@click.argument("session_id")
@click.option("--output", "-o", type=click.Path(), help="Write to a file instead of stdout")
@click.pass_context
def export_session(ctx, session_id: str, output: str | None):
    """Export a session (invoices and summary) as JSON."""
    try:
        session = FilingService(ctx.obj["db"]).get_session(session_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if output is None:
        echo_json(session.to_dict())
        return
    with open(output, "w", encoding="utf-8") as f:
        f.write(session.to_json())
    click.echo(f"Exported session {session.id} to {output}")


@session_group.command("import")
@click.argument("json_file", type=click.Path(exists=True))
@click.option("--overwrite", is_flag=True, help="Replace a stored session with the same ID")
@click.pass_context
def import_session(ctx, json_file: str, overwrite: bool):
    """Import a session exported with 'session export'."""
    data = load_json_file(ctx, json_file)
    try:
        session = FilingService(ctx.obj["db"]).import_session(data, overwrite=overwrite)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Imported session {session.id} ({len(session.invoices)} invoice(s))")


@session_group.command("delete")
@click.argument("session_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_session(ctx, session_id: str, yes: bool):
    """Delete a filing session."""
    if not yes and not click.confirm(f"Are you sure you want to delete session {session_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        FilingService(ctx.obj["db"]).delete_session(session_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted session {session_id}")


def register_commands(cli):
    """Register session commands with main CLI."""
    cli.add_command(session_group, name="session")
