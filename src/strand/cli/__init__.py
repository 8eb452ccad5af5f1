"""Strand CLI -- terminal interface for streaming conversations.

This module is NEVER imported from strand/__init__.py.
It is only loaded via the ``strand`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging

import click
from dotenv import find_dotenv, load_dotenv

from strand.formatting import make_console


def get_console():
    """Console for CLI output; rich degrades gracefully when piped."""
    return make_console()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log rounds, retries and tool calls.")
@click.option(
    "--env-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Load environment variables from this file (default: ./.env).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, env_file: str | None) -> None:
    """Strand: streaming LLM conversations with tools and structured output."""
    load_dotenv(env_file or find_dotenv(usecwd=True))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# Register subcommands after cli group is defined
from strand.cli.commands.chat import chat  # noqa: E402
from strand.cli.commands.providers import providers  # noqa: E402

cli.add_command(chat)
cli.add_command(providers)
