"""Merge streamed tool-call fragments into complete tool calls."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from strand.models.messages import ToolCall
from strand.transport.events import ToolCallDelta

logger = logging.getLogger(__name__)


@dataclass
class PartialToolCall:
    """A tool call still being streamed.

    Mutable: fields fill in as deltas for its slot arrive.
    """

    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.id) and bool(self.name)

    def to_tool_call(self) -> ToolCall | None:
        """Return the finished call, or None if it never fully materialized."""
        if not self.is_complete:
            return None
        try:
            arguments = json.loads(self.arguments) if self.arguments.strip() else {}
        except ValueError:
            logger.debug(
                "Dropping tool call %s (%s): unparseable arguments %r",
                self.id, self.name, self.arguments,
            )
            return None
        return ToolCall(id=self.id, name=self.name, arguments=arguments)


class ToolCallAccumulator:
    """Collects ``ToolCallDelta`` events for one round, keyed by slot index.

    Slots may arrive sparse or out of order; the slot list grows to cover
    the highest index seen.
    """

    def __init__(self) -> None:
        self._slots: list[PartialToolCall] = []

    @property
    def slots(self) -> list[PartialToolCall]:
        return list(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def add(self, delta: ToolCallDelta) -> None:
        idx = delta.index or 0
        while len(self._slots) <= idx:
            self._slots.append(PartialToolCall(index=len(self._slots)))
        slot = self._slots[idx]
        if delta.id:
            slot.id = delta.id
        if delta.name:
            slot.name = delta.name
        if delta.arguments:
            slot.arguments += delta.arguments

    def finalize(self) -> list[ToolCall]:
        """Complete tool calls in slot order. Incomplete slots are skipped."""
        calls: list[ToolCall] = []
        for slot in self._slots:
            call = slot.to_tool_call()
            if call is None:
                if not slot.is_complete:
                    logger.debug("Dropping incomplete tool call slot %d", slot.index)
                continue
            calls.append(call)
        return calls
