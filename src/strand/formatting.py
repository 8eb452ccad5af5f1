"""Pretty-print support for Strand conversations.

Uses rich library for formatted terminal output.
All functions accept their target object and print to a rich Console.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal

from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from strand.models.capabilities import Provider
from strand.models.messages import AssistantMessage, Message, ToolCall

_ROLE_COLORS: dict[str, str] = {
    "system": "yellow",
    "user": "blue",
    "assistant": "green",
    "tool": "magenta",
}

_ROLE_STYLES: dict[str, tuple[str, str]] = {
    "system": ("System", "yellow"),
    "user": ("User", "blue"),
    "assistant": ("Assistant", "green"),
    "tool": ("Tool Output", "magenta"),
}


def make_console(file: Any = None) -> Console:
    """Create a Console, optionally writing to a file-like object."""
    if file is not None:
        return Console(file=file, force_terminal=True, width=100)
    return Console()


def _abbreviate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def format_tool_call(call: ToolCall) -> Text:
    """Render a call as ``name(key=value, ...)``."""
    call_text = Text()
    call_text.append(call.name, style="bold cyan")
    call_text.append("(", style="dim")
    if isinstance(call.arguments, dict):
        args = ", ".join(f"{k}={v!r}" for k, v in call.arguments.items())
    else:
        args = call.arguments_json
    call_text.append(args, style="white")
    call_text.append(")", style="dim")
    return call_text


def pprint_history(
    messages: Sequence[Message],
    *,
    abbreviate: bool = False,
    style: Literal["table", "chat"] = "table",
    file: Any = None,
) -> None:
    """Pretty-print a conversation history.

    Args:
        messages: History, e.g. ``session.current_history()``.
        abbreviate: If True, truncate long content. Default False (show full).
        style: ``"table"`` for one row per message, ``"chat"`` for a
            transcript with a panel per message.
        file: Optional file-like object for output (used in tests).
    """
    console = make_console(file)
    if style == "chat":
        for msg in messages:
            console.print(_message_panel(msg, abbreviate=abbreviate))
        console.print(Text(f"  {len(messages)} messages", style="bold"))
        return

    table = Table(title="Conversation", show_lines=False)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Role", width=10)
    table.add_column("Content", no_wrap=False)

    for i, msg in enumerate(messages):
        if isinstance(msg, AssistantMessage) and msg.tool_calls:
            display = "; ".join(str(format_tool_call(tc)) for tc in msg.tool_calls)
            if msg.chunks:
                display = f"{msg.text} | {display}"
            role_label = Text("tool call", style="bold magenta")
            cell = Text(_abbreviate(display, 80) if abbreviate else display, style="magenta")
        else:
            content = _abbreviate(msg.text, 80) if abbreviate else msg.text
            color = _ROLE_COLORS.get(msg.role, "white")
            role_label = Text(msg.role, style=f"bold {color}")
            cell = Text(content, style="italic white" if msg.role == "system" else "white")
        table.add_row(str(i), role_label, cell)

    console.print(table)


def _message_panel(msg: Message, *, abbreviate: bool) -> Panel:
    title, border = _ROLE_STYLES.get(msg.role, (msg.role.title(), "white"))
    content = _abbreviate(msg.text, 200) if abbreviate else msg.text

    if isinstance(msg, AssistantMessage) and msg.tool_calls:
        parts: list[Any] = []
        if content:
            parts.append(Markdown(content))
            parts.append(Text(""))
        parts.extend(format_tool_call(tc) for tc in msg.tool_calls)
        body: Any = Group(*parts) if len(parts) > 1 else parts[0]
        title, border = "Tool Call", "magenta"
    elif isinstance(msg, AssistantMessage):
        body = Markdown(content) if content else Text("(empty)")
    else:
        body = content
    if msg.role == "tool":
        title = f"{title}: {msg.tool_name}"  # type: ignore[union-attr]
    return Panel(body, title=f"[bold]{title}[/bold]", border_style=border)


def format_providers(providers: Sequence[Provider], console: Console) -> None:
    """Display provider presets and their capabilities as a table."""
    table = Table(title="Providers", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Base URL", style="dim")
    table.add_column("Key env")
    table.add_column("Tools+JSON", justify="center")
    table.add_column("Tool history", justify="center")
    table.add_column("Multi-turn tools", justify="center")
    table.add_column("Tool selection", justify="center")
    table.add_column("Constraints", justify="center")
    table.add_column("JSON schema", justify="center")
    table.add_column("Min tokens", justify="right", style="green")

    def mark(flag: bool) -> str:
        return "[green]yes[/green]" if flag else "[red]no[/red]"

    for provider in providers:
        caps = provider.capabilities
        table.add_row(
            provider.name,
            provider.base_url,
            provider.api_key_env or "-",
            mark(caps.supports_tools_with_structured_output),
            mark(caps.supports_preseeded_tool_history),
            mark(caps.supports_multi_turn_tool_loops),
            mark(caps.supports_multi_tool_selection),
            mark(caps.supports_guide_constraints),
            mark(provider.supports_json_schema),
            str(caps.minimum_tokens),
        )
    console.print(table)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
