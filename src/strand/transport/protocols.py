"""Transport protocol.

Defines the pluggable boundary between the generation loop and a backend.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from strand.models.config import ReplyOptions

if TYPE_CHECKING:
    from strand.models.messages import Message
    from strand.toolkit.models import Tool
    from strand.transport.events import StreamEvent


@dataclass(frozen=True)
class GenerationRequest:
    """Everything about one round that is not history or tools.

    Attributes:
        output_schema: JSON schema the output must follow, or None for text.
        output_name: Name of the output type, used as the schema name.
        options: Caller's reply options.
    """

    output_schema: dict | None = None
    output_name: str = "output"
    options: ReplyOptions = field(default_factory=ReplyOptions)


@runtime_checkable
class Transport(Protocol):
    """Protocol for pluggable backends.

    Any object with an ``open_stream`` method matching this signature works.
    The transport owns request encoding, HTTP, retries and response decoding;
    it yields normalized events and ends the stream after a terminal event
    (``Completed``, ``Incomplete`` or ``StreamError``).
    """

    def open_stream(
        self,
        history: Sequence[Message],
        tools: Sequence[Tool],
        request: GenerationRequest,
    ) -> AsyncIterator[StreamEvent]:
        """Open one round's event stream for the given history."""
        ...
