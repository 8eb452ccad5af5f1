"""Data models: messages, configuration, and provider capabilities."""

from strand.models.capabilities import Provider, ProviderCapabilities
from strand.models.config import (
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

__all__ = [
    "AssistantMessage",
    "BackendOptions",
    "ContentChunk",
    "Message",
    "Provider",
    "ProviderCapabilities",
    "ReplyOptions",
    "SamplingMode",
    "SessionConfig",
    "StructuredChunk",
    "SystemMessage",
    "TextChunk",
    "ToolCall",
    "ToolExecutionPolicy",
    "ToolOutputMessage",
    "UserMessage",
]
