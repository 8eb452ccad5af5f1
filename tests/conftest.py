"""Shared test fixtures for Strand.

Provides a scripted in-memory transport and a few ready-made tools.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import pytest

from strand.toolkit.models import ToolDefinition
from strand.transport.events import Completed, TextDelta, ToolCallDelta


@dataclass
class RecordedRequest:
    """What the loop passed to ``open_stream`` for one round."""

    history: tuple
    tools: list
    request: object


class ScriptedTransport:
    """Transport that replays pre-recorded rounds of events.

    Each round is a list of events. An exception instance in the list is
    raised at that point and a callable is called there instead of being
    yielded. With ``repeat_last`` the final round is replayed forever,
    otherwise running out of rounds fails the test.
    """

    def __init__(self, *rounds: Sequence[object], repeat_last: bool = False) -> None:
        self.rounds = [list(r) for r in rounds]
        self.repeat_last = repeat_last
        self.requests: list[RecordedRequest] = []
        self.closed = 0

    @property
    def opened(self) -> int:
        return len(self.requests)

    async def open_stream(self, history, tools, request):
        self.requests.append(RecordedRequest(tuple(history), list(tools), request))
        index = len(self.requests) - 1
        if index >= len(self.rounds):
            if not self.repeat_last:
                raise AssertionError(f"Unexpected round {index + 1}")
            index = len(self.rounds) - 1
        try:
            for event in self.rounds[index]:
                if isinstance(event, BaseException):
                    raise event
                if callable(event):
                    event()
                    continue
                yield event
        finally:
            self.closed += 1


def text_round(*pieces: str) -> list[object]:
    """A round that streams ``pieces`` as text and completes."""
    return [TextDelta(p) for p in pieces] + [Completed()]


def tool_round(*calls: tuple[str, str, str]) -> list[object]:
    """A round that requests ``(id, name, arguments_json)`` tool calls.

    Each call arrives as a header delta followed by its arguments split in two.
    """
    events: list[object] = []
    for index, (call_id, name, arguments) in enumerate(calls):
        half = len(arguments) // 2
        events.append(ToolCallDelta(index=index, id=call_id, name=name))
        events.append(ToolCallDelta(index=index, arguments=arguments[:half]))
        events.append(ToolCallDelta(index=index, arguments=arguments[half:]))
    events.append(Completed())
    return events


def calc(expression: str) -> str:
    """Add the integers in an expression like '2+2'."""
    return str(sum(int(part) for part in expression.split("+")))


@pytest.fixture
def calc_tool() -> ToolDefinition:
    return ToolDefinition.from_function(calc)


@pytest.fixture
def failing_tool() -> ToolDefinition:
    def explode() -> str:
        """Always fails."""
        raise RuntimeError("boom")

    return ToolDefinition.from_function(explode)
