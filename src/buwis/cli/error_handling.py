"""CLI error handling helpers."""

import json
from typing import Any

import click

from buwis.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def load_json_file(ctx: click.Context, path: str) -> Any:
    """Read a JSON document, exiting with an error message if it is unreadable."""
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        click.echo(f"Error: {path} is not valid JSON: {e}", err=True)
        ctx.exit(1)
    except OSError as e:
        click.echo(f"Error: Cannot read {path}: {e}", err=True)
        ctx.exit(1)
