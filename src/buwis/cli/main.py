"""Main CLI entry point."""

import logging

import click
from buwis.database.factories import create_sqlite_database

# Import and register all commands at module level
from buwis.cli.commands import invoice, session, tax, taxpayer


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BUWIS_DB_PATH environment variable)",
    envvar="BUWIS_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Buwis - Philippine invoice tax computation.

    Compute VAT, percentage, withholding and income tax from digital
    invoices and build quarterly sales summaries for filing.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
taxpayer.register_commands(cli)
session.register_commands(cli)
invoice.register_commands(cli)
tax.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
