"""strand providers -- show provider presets and their capabilities."""

from __future__ import annotations

import click

from strand.formatting import format_error, format_providers
from strand.models.capabilities import PRESETS


@click.command()
@click.option("--name", "names", multiple=True, help="Only show these presets.")
def providers(names: tuple[str, ...]) -> None:
    """Show known providers, their endpoints and what they reliably support."""
    from strand.cli import get_console

    console = get_console()
    unknown = [n for n in names if n not in PRESETS]
    if unknown:
        format_error(f"Unknown provider(s): {', '.join(unknown)}", console)
        raise SystemExit(1)
    selected = names or tuple(PRESETS)
    format_providers([PRESETS[n]() for n in selected], console)
