"""Conversation message models.

Frozen dataclasses for content chunks, tool calls, and the four message
kinds that make up a conversation history. Messages are immutable; the
conversation store replaces the in-progress assistant draft wholesale
instead of mutating it.
"""

from __future__ import annotations

import json as _json
from dataclasses import dataclass, field
from typing import Any, Literal, Union


@dataclass(frozen=True)
class TextChunk:
    """Plain text content."""

    text: str


@dataclass(frozen=True)
class StructuredChunk:
    """JSON-like structured content (dict, list, or scalar)."""

    value: Any

    @property
    def json(self) -> str:
        return _json.dumps(self.value, separators=(",", ":"), ensure_ascii=False)


ContentChunk = Union[TextChunk, StructuredChunk]


def chunks_text(chunks: tuple[ContentChunk, ...]) -> str:
    """Join chunks into a single string; structured chunks render as compact JSON."""
    parts: list[str] = []
    for chunk in chunks:
        if isinstance(chunk, TextChunk):
            parts.append(chunk.text)
        else:
            parts.append(chunk.json)
    return "".join(parts)


def to_chunks(content: str | ContentChunk | list[ContentChunk] | tuple[ContentChunk, ...]) -> tuple[ContentChunk, ...]:
    """Normalize a prompt-ish value into a tuple of chunks."""
    if isinstance(content, str):
        return (TextChunk(content),)
    if isinstance(content, (TextChunk, StructuredChunk)):
        return (content,)
    return tuple(content)


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model.

    Provider-agnostic: ``arguments`` is always a parsed JSON value, never
    the raw wire string.
    """

    id: str
    name: str
    arguments: Any = field(default_factory=dict)

    @property
    def arguments_json(self) -> str:
        return _json.dumps(self.arguments, separators=(",", ":"), ensure_ascii=False)

    def to_openai(self) -> dict:
        """Serialize to the Chat Completions wire format."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments_json},
        }


@dataclass(frozen=True)
class SystemMessage:
    """Instructions that frame the conversation."""

    chunks: tuple[ContentChunk, ...] = ()
    role: Literal["system"] = field(default="system", init=False)

    @classmethod
    def of(cls, text: str) -> SystemMessage:
        return cls(chunks=(TextChunk(text),))

    @property
    def text(self) -> str:
        return chunks_text(self.chunks)

    def to_openai(self) -> dict:
        return {"role": "system", "content": self.text}


@dataclass(frozen=True)
class UserMessage:
    """A prompt submitted by the caller."""

    chunks: tuple[ContentChunk, ...] = ()
    role: Literal["user"] = field(default="user", init=False)

    @classmethod
    def of(cls, text: str) -> UserMessage:
        return cls(chunks=(TextChunk(text),))

    @property
    def text(self) -> str:
        return chunks_text(self.chunks)

    def to_openai(self) -> dict:
        parts = [
            {"type": "text", "text": c.text if isinstance(c, TextChunk) else c.json}
            for c in self.chunks
        ]
        if len(parts) == 1:
            return {"role": "user", "content": parts[0]["text"]}
        return {"role": "user", "content": parts}


@dataclass(frozen=True)
class AssistantMessage:
    """A model reply, possibly carrying tool calls."""

    chunks: tuple[ContentChunk, ...] = ()
    tool_calls: tuple[ToolCall, ...] = ()
    role: Literal["assistant"] = field(default="assistant", init=False)

    @property
    def text(self) -> str:
        return chunks_text(self.chunks)

    def to_openai(self) -> dict:
        d: dict = {"role": "assistant", "content": self.text if self.chunks else None}
        if self.tool_calls:
            d["tool_calls"] = [tc.to_openai() for tc in self.tool_calls]
        return d


@dataclass(frozen=True)
class ToolOutputMessage:
    """The result of executing one tool call.

    ``id`` matches the ``ToolCall.id`` that produced it.
    """

    id: str
    tool_name: str
    chunks: tuple[ContentChunk, ...] = ()
    role: Literal["tool"] = field(default="tool", init=False)

    @property
    def text(self) -> str:
        return chunks_text(self.chunks)

    def to_openai(self) -> dict:
        return {"role": "tool", "tool_call_id": self.id, "content": self.text}


Message = Union[SystemMessage, UserMessage, AssistantMessage, ToolOutputMessage]
