"""Normalized stream events.

Every transport translates its backend's wire events into these five
types. The generation loop only ever sees these.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class TextDelta:
    """A fragment of assistant text output."""

    text: str


@dataclass(frozen=True)
class ToolCallDelta:
    """A fragment of a tool call.

    Fragments for the same call share ``index``. ``id`` and ``name``
    usually arrive once; ``arguments`` arrives in pieces to be concatenated.
    """

    index: int | None = None
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass(frozen=True)
class Completed:
    """The backend finished the round normally.

    ``raw`` is the backend's final payload, kept for transports that need
    it (e.g. to remember a response id). The loop does not inspect it.
    """

    raw: Any = field(default=None, compare=False)


@dataclass(frozen=True)
class Incomplete:
    """The backend stopped early (token limit, content filter) but the round stands."""

    raw: Any = field(default=None, compare=False)
    reason: str | None = None


@dataclass(frozen=True)
class StreamError:
    """The backend reported an error mid-stream."""

    message: str


StreamEvent = Union[TextDelta, ToolCallDelta, Completed, Incomplete, StreamError]
