"""CLI: medogram chat, medogram send"""

import json

import click
from rich.console import Console

from medogram.errors import MedogramError
from medogram.models.chat import ChatMode, Message

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


def _parse_settings(options) -> dict:
    settings = {}
    for option in options:
        key, sep, value = option.partition("=")
        if not sep:
            raise click.BadParameter(f"expected key=value, got {option!r}", param_hint="--setting")
        settings[key] = value
    return settings


def _print_reply(message: Message) -> None:
    if message.is_error:
        console.print(f"[red]Medogram:[/red] {message.text}")
    else:
        console.print(f"[green]Medogram:[/green] {message.text}")


@click.command("chat")
@click.option("--extended", is_flag=True, help="Use the custom chatbot")
@click.option("-o", "--setting", "settings", multiple=True, help="Custom chatbot setting as key=value")
def chat_cmd(extended: bool, settings):
    """Interactive chat with Medogram."""
    chat_settings = _parse_settings(settings)

    async def _chat():
        client = _get_client()
        await _require_login(client)
        conversation = client.conversation(ChatMode.EXTENDED if extended else ChatMode.STANDARD)
        if chat_settings and not await conversation.save_settings(chat_settings):
            console.print(f"[yellow]{conversation.last_error}[/yellow]")
        console.print(f"[dim]Mode: {conversation.mode.value}[/dim]")
        console.print("[cyan]Type your message (/mode, /clear, /quit; Ctrl+C to exit)[/cyan]\n")
        try:
            while client.is_authenticated:
                msg = click.prompt("You", prompt_suffix=": ")
                command = msg.strip().lower()
                if command in ("/quit", "/exit"):
                    break
                if command == "/mode":
                    new_mode = ChatMode.STANDARD if conversation.mode is ChatMode.EXTENDED else ChatMode.EXTENDED
                    conversation.set_mode(new_mode)
                    console.print(f"[dim]Mode: {new_mode.value}[/dim]")
                    continue
                if command == "/clear":
                    conversation.clear()
                    console.print("[dim]Conversation cleared.[/dim]")
                    continue
                try:
                    with console.status("Thinking..."):
                        reply = await conversation.send(msg)
                except MedogramError as e:
                    console.print(f"[yellow]{e}[/yellow]")
                    continue
                _print_reply(reply)
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await client.close()

    _run(_chat())


@click.command("send")
@click.argument("message")
@click.option("--extended", is_flag=True, help="Use the custom chatbot")
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(message: str, extended: bool, json_output: bool):
    """Send a one-shot message."""

    async def _send():
        client = _get_client()
        await _require_login(client)
        conversation = client.conversation(ChatMode.EXTENDED if extended else ChatMode.STANDARD)
        try:
            reply = await conversation.send(message)
        except MedogramError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps([m.model_dump(mode="json") for m in conversation.messages]))
        else:
            _print_reply(reply)
        if reply.is_error:
            raise SystemExit(1)

    _run(_send())
