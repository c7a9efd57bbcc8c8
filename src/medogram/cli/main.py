"""
Medogram CLI — `medogram` command.

Commands:
  medogram auth login          Phone number + one-time code login
  medogram auth status         Show the saved login
  medogram auth logout         Forget the saved login
  medogram profile show        Show the profile
  medogram profile update      Update profile fields
  medogram chat                Interactive REPL chat
  medogram send <message>      One-shot message
"""

import asyncio
import json
from pathlib import Path

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install medogram[cli]")

from medogram.client import AsyncMedogram
from medogram.config import ClientConfig
from medogram.storage import FileTokenStore

console = Console()
CONFIG_FILE = Path.home() / ".medogram" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _login_required() -> None:
    console.print("[red]Session expired. Run `medogram auth login` again.[/red]")


def _get_client() -> AsyncMedogram:
    cfg = _load_config()
    config = ClientConfig.from_env(base_url=cfg.get("base_url"), local_url=cfg.get("local_url"))
    return AsyncMedogram(
        config=config,
        token_store=FileTokenStore(CONFIG_FILE),
        on_login_required=_login_required,
    )


async def _require_login(client: AsyncMedogram) -> None:
    await client.initialize()
    if not client.is_authenticated:
        await client.close()
        console.print("[red]Not logged in. Run `medogram auth login` first.[/red]")
        raise SystemExit(1)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
def main():
    """Medogram CLI — medical consultation from the terminal."""


# Register subcommands from separate modules
from medogram.cli.auth import auth
from medogram.cli.chat import chat_cmd, send_cmd
from medogram.cli.profile import profile

main.add_command(auth)
main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(profile)


if __name__ == "__main__":
    main()
