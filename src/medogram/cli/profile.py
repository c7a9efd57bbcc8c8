"""CLI: medogram profile show|update"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from medogram.errors import MedogramError

console = Console()


def _get_client():
    from medogram.cli.main import _get_client
    return _get_client()


async def _require_login(client):
    from medogram.cli.main import _require_login
    await _require_login(client)


def _run(coro):
    from medogram.cli.main import _run
    return _run(coro)


@click.group()
def profile():
    """Profile commands."""


@profile.command("show")
@click.option("--json-output", "--json", is_flag=True)
def profile_show(json_output):
    """Show the logged-in user's profile."""

    async def _show():
        client = _get_client()
        await _require_login(client)
        user = client.auth.user
        await client.close()
        if json_output:
            click.echo(json.dumps(user.model_dump(), indent=2))
            return
        table = Table(title="Profile")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key, value in user.model_dump().items():
            table.add_row(key, "" if value is None else str(value))
        console.print(table)

    _run(_show())


@profile.command("update")
@click.option("--name", default=None)
@click.option("-f", "--field", "fields", multiple=True, help="Extra field as key=value")
def profile_update(name: Optional[str], fields):
    """Update profile fields."""
    data = {}
    for field in fields:
        if "=" not in field:
            raise click.BadParameter(f"expected key=value, got {field!r}", param_hint="--field")
        key, value = field.split("=", 1)
        data[key] = value
    if name:
        data["name"] = name
    if not data:
        raise click.UsageError("Nothing to update")

    async def _update():
        client = _get_client()
        await _require_login(client)
        try:
            with console.status("Updating..."):
                user = await client.auth.update_profile(data)
            console.print(f"[green]Profile updated for {user.phone_number}.[/green]")
        except MedogramError:
            console.print(f"[red]{client.auth.last_error}[/red]")
            raise SystemExit(1)
        finally:
            await client.close()

    _run(_update())
