"""strand chat -- interactive streaming conversation."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import click
from rich.live import Live
from rich.markdown import Markdown

from strand.models.capabilities import PRESETS, Provider
from strand.models.config import ReplyOptions
from strand.session import Session
from strand.transport.chat_completions import ChatCompletionsTransport
from strand.transport.responses import ResponsesTransport

if TYPE_CHECKING:
    from rich.console import Console

    from strand.transport.protocols import Transport

_EXIT_COMMANDS = {"exit", "quit", ":q"}


def build_transport(
    provider: str, model: str, base_url: str | None, api_key: str | None
) -> Transport:
    """Transport for a provider choice: ``openai`` uses the Responses API,
    presets and ``custom`` use Chat Completions."""
    if provider == "openai":
        return ResponsesTransport(model, api_key=api_key, base_url=base_url)
    if provider == "custom":
        if not base_url:
            raise click.UsageError("--base-url is required with --provider custom")
        return ChatCompletionsTransport(Provider.custom(base_url, api_key=api_key), model)
    return ChatCompletionsTransport(PRESETS[provider](api_key=api_key), model)


async def _repl(session: Session, console: Console, options: ReplyOptions) -> None:
    try:
        while True:
            try:
                text = await asyncio.to_thread(click.prompt, "you", prompt_suffix="> ")
            except (EOFError, click.Abort):
                break
            if text.strip().lower() in _EXIT_COMMANDS:
                break
            if not text.strip():
                continue

            with Live(console=console, refresh_per_second=12) as live:
                async with session.submit(text, options=options) as stream:
                    async for partial in stream:
                        live.update(Markdown(partial))
    finally:
        aclose = getattr(session.transport, "aclose", None)
        if aclose is not None:
            await aclose()


@click.command()
@click.option(
    "--provider",
    type=click.Choice(["openai", "custom", *PRESETS]),
    default="openai",
    show_default=True,
    help="Backend to talk to.",
)
@click.option("--model", required=True, help="Model identifier.")
@click.option("--base-url", default=None, help="Endpoint override (required for custom).")
@click.option("--api-key", default=None, help="API key (defaults to the provider's env var).")
@click.option("--system", "instructions", default=None, help="System instructions.")
@click.option("--temperature", type=click.FloatRange(0.0, 1.0), default=None,
              help="Normalized temperature in [0, 1].")
@click.option("--max-tokens", type=click.IntRange(min=1), default=None,
              help="Maximum tokens per reply.")
def chat(
    provider: str,
    model: str,
    base_url: str | None,
    api_key: str | None,
    instructions: str | None,
    temperature: float | None,
    max_tokens: int | None,
) -> None:
    """Chat with a model, streaming each reply as it arrives.

    Type 'exit' or press Ctrl-D to leave.
    """
    from strand.cli import get_console
    from strand.formatting import format_error

    console = get_console()
    try:
        transport = build_transport(provider, model, base_url, api_key)
        session = Session(transport, instructions=instructions)
        options = ReplyOptions(temperature=temperature, maximum_tokens=max_tokens)
        asyncio.run(_repl(session, console, options))
    except (SystemExit, click.UsageError):
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None
