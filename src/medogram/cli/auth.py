"""CLI: medogram auth login|status|logout"""

from typing import Optional

import click
from rich.console import Console

from medogram.errors import MedogramError
from medogram.storage import FileTokenStore

console = Console()


def _load_config() -> dict:
    from medogram.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from medogram.cli.main import _save_config
    _save_config(cfg)


def _get_client():
    from medogram.cli.main import _get_client
    return _get_client()


def _config_file():
    from medogram.cli.main import CONFIG_FILE
    return CONFIG_FILE


def _run(coro):
    from medogram.cli.main import _run
    return _run(coro)


@click.group()
def auth():
    """Authentication commands."""


@auth.command("login")
@click.option("--phone", default=None, help="Mobile number, e.g. 09123456789")
@click.option("--base-url", default=None, help="Primary API base URL")
@click.option("--local-url", default=None, help="Chat API base URL")
def auth_login(phone: Optional[str], base_url: Optional[str], local_url: Optional[str]):
    """Log in with a one-time code sent by SMS."""
    if base_url or local_url:
        cfg = _load_config()
        cfg.update({k: v for k, v in (("base_url", base_url), ("local_url", local_url)) if v})
        _save_config(cfg)

    async def _login():
        client = _get_client()
        try:
            phone_number = phone or click.prompt("Mobile number")
            with console.status("Sending verification code..."):
                await client.auth.register(phone_number)
            console.print("[green]Code sent![/green]")

            while True:
                code = click.prompt("Verification code")
                try:
                    with console.status("Verifying..."):
                        session = await client.auth.verify(phone_number, code)
                    break
                except MedogramError:
                    console.print(f"[red]{client.auth.last_error}[/red]")
                    if not click.confirm("Try another code?", default=True):
                        client.auth.cancel_verification()
                        raise SystemExit(1)
            console.print(f"[green]Logged in as {session.user.phone_number}[/green]")
            console.print(f"[dim]Token saved to {_config_file()}[/dim]")
        except MedogramError:
            console.print(f"[red]{client.auth.last_error}[/red]")
            raise SystemExit(1)
        finally:
            await client.close()

    _run(_login())


@auth.command("status")
def auth_status():
    """Show current auth status."""
    if FileTokenStore(_config_file()).get():
        console.print("[green]Logged in[/green] (token saved)")
    else:
        console.print("[yellow]Not logged in. Run `medogram auth login`.[/yellow]")


@auth.command("logout")
def auth_logout():
    """Clear saved credentials."""
    client = _get_client()
    client.auth.logout()
    _run(client.close())
    console.print("[green]Logged out.[/green]")
