"""Strand: streaming LLM conversations with tools and structured output.

A Session owns one conversation. Submitting a prompt returns a stream of
partial values that grow as the model's reply arrives; tool calls are run
between rounds and structured output is parsed as it streams.
"""

from strand._version import __version__

# Core entry point
from strand.session import GenerationStream, Reply, Session

# Messages and configuration
from strand.models.capabilities import Provider, ProviderCapabilities
from strand.models.config import (
    DEFAULT_MAX_TOOL_ROUNDS,
    BackendOptions,
    ReplyOptions,
    SamplingMode,
    SessionConfig,
    ToolExecutionPolicy,
)
from strand.models.messages import (
    AssistantMessage,
    ContentChunk,
    Message,
    StructuredChunk,
    SystemMessage,
    TextChunk,
    ToolCall,
    ToolOutputMessage,
    UserMessage,
)

# Engine
from strand.engine.loop import GenerationState

# Parsing
from strand.parsing import PartialParser, partial_type, repair_json

# Tools
from strand.toolkit import Tool, ToolDefinition, ToolRegistry

# Transports
from strand.transport import (
    ChatCompletionsTransport,
    Completed,
    GenerationRequest,
    Incomplete,
    ResponsesTransport,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallDelta,
    Transport,
)

# Exceptions
from strand.exceptions import (
    DuplicateToolError,
    HistoryMutationError,
    MinimumTokensRequired,
    NoResponseProduced,
    OutputParseError,
    SessionBusyError,
    StrandError,
    ToolExecutionFailed,
    ToolLoopExceeded,
    ToolNotFound,
    TransportError,
    UnsupportedConfiguration,
)

# Pretty-printing
from strand.formatting import pprint_history

__all__ = [
    "__version__",
    "AssistantMessage",
    "BackendOptions",
    "ChatCompletionsTransport",
    "Completed",
    "ContentChunk",
    "DEFAULT_MAX_TOOL_ROUNDS",
    "DuplicateToolError",
    "GenerationRequest",
    "GenerationState",
    "GenerationStream",
    "HistoryMutationError",
    "Incomplete",
    "Message",
    "MinimumTokensRequired",
    "NoResponseProduced",
    "OutputParseError",
    "PartialParser",
    "Provider",
    "ProviderCapabilities",
    "Reply",
    "ReplyOptions",
    "ResponsesTransport",
    "SamplingMode",
    "Session",
    "SessionBusyError",
    "SessionConfig",
    "StrandError",
    "StreamError",
    "StreamEvent",
    "StructuredChunk",
    "SystemMessage",
    "TextChunk",
    "TextDelta",
    "Tool",
    "ToolCall",
    "ToolCallDelta",
    "ToolDefinition",
    "ToolExecutionFailed",
    "ToolExecutionPolicy",
    "ToolLoopExceeded",
    "ToolNotFound",
    "ToolOutputMessage",
    "ToolRegistry",
    "Transport",
    "TransportError",
    "UnsupportedConfiguration",
    "UserMessage",
    "partial_type",
    "pprint_history",
    "repair_json",
]
