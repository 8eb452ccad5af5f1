"""Transport layer: the pluggable backend boundary and reference transports."""

from strand.transport.chat_completions import ChatCompletionsTransport
from strand.transport.errors import (
    TransportAuthError,
    TransportConfigError,
    TransportHTTPError,
    TransportRateLimitError,
    TransportResponseError,
)
from strand.transport.events import (
    Completed,
    Incomplete,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallDelta,
)
from strand.transport.protocols import GenerationRequest, Transport
from strand.transport.responses import ResponsesTransport

__all__ = [
    "ChatCompletionsTransport",
    "Completed",
    "GenerationRequest",
    "Incomplete",
    "ResponsesTransport",
    "StreamError",
    "StreamEvent",
    "TextDelta",
    "ToolCallDelta",
    "Transport",
    "TransportAuthError",
    "TransportConfigError",
    "TransportHTTPError",
    "TransportRateLimitError",
    "TransportResponseError",
]
