"""Name-indexed set of tools available to one session."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from strand.exceptions import DuplicateToolError, ToolNotFound
from strand.toolkit.models import Tool


class ToolRegistry:
    """Fixed, ordered collection of tools with unique names.

    Usage::

        registry = ToolRegistry([weather_tool, calc_tool])
        tool = registry.resolve("calc")
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise DuplicateToolError(tool.name)
            self._tools[tool.name] = tool

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def resolve(self, name: str) -> Tool:
        """Look a tool up by exact name.

        Raises:
            ToolNotFound: If no tool has that name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFound(name) from None
