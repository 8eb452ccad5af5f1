"""OpenAI Responses API transport.

Streams ``POST /responses`` and keeps server-side conversation linkage:
after a completed round the response id is remembered, and the next round
sends only the messages the server has not seen, chained through
``previous_response_id``.

One instance follows one conversation. Sharing it between sessions breaks
the linkage; the transport falls back to sending the full history whenever
the history it is given is shorter than what it has already sent.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from typing import TYPE_CHECKING, Any

import httpx

from strand.models.messages import (
    AssistantMessage,
    SystemMessage,
    TextChunk,
    ToolOutputMessage,
    UserMessage,
)
from strand.transport.errors import TransportConfigError
from strand.transport.events import (
    Completed,
    Incomplete,
    StreamError,
    TextDelta,
    ToolCallDelta,
)
from strand.transport.sse import SSEClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from strand.models.messages import Message
    from strand.toolkit.models import Tool
    from strand.transport.events import StreamEvent
    from strand.transport.protocols import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
API_KEY_ENV = "STRAND_OPENAI_API_KEY"
BASE_URL_ENV = "STRAND_OPENAI_BASE_URL"


def input_items(message: Message) -> list[dict]:
    """Encode one history message as Responses API input items."""
    if isinstance(message, SystemMessage):
        return [{"role": "system", "content": message.text}]
    if isinstance(message, UserMessage):
        return [{
            "role": "user",
            "content": [
                {"type": "input_text", "text": c.text if isinstance(c, TextChunk) else c.json}
                for c in message.chunks
            ],
        }]
    if isinstance(message, AssistantMessage):
        items: list[dict] = []
        if message.chunks:
            items.append({
                "role": "assistant",
                "content": [{"type": "output_text", "text": message.text}],
            })
        for call in message.tool_calls:
            items.append({
                "type": "function_call",
                "call_id": call.id,
                "name": call.name,
                "arguments": call.arguments_json,
            })
        return items
    if isinstance(message, ToolOutputMessage):
        return [{"type": "function_call_output", "call_id": message.id, "output": message.text}]
    raise TypeError(f"Unknown message type: {type(message).__name__}")


def function_tool_schema(tool: Tool) -> dict:
    """Responses API function tool format for any Tool."""
    return {
        "type": "function",
        "name": tool.name,
        "description": tool.description,
        "parameters": tool.parameters or {"type": "object", "properties": {}},
        "strict": False,
    }


class ResponsesTransport:
    """Transport for the OpenAI Responses API.

    Credentials and endpoint fall back to ``STRAND_OPENAI_API_KEY`` and
    ``STRAND_OPENAI_BASE_URL``.

    Raises:
        TransportConfigError: If no API key is available.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 3,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        key = api_key or os.environ.get(API_KEY_ENV)
        if not key:
            raise TransportConfigError(
                f"No API key provided. Pass api_key= or set the {API_KEY_ENV} "
                "environment variable."
            )
        self._model = model
        self._client = SSEClient(
            base_url or os.environ.get(BASE_URL_ENV) or DEFAULT_BASE_URL,
            api_key=key,
            timeout=timeout,
            max_retries=max_retries,
            http_client=http_client,
        )
        self._previous_response_id: str | None = None
        # Length of the history the linked response was generated from.
        self._synced = 0

    @property
    def model(self) -> str:
        return self._model

    @property
    def previous_response_id(self) -> str | None:
        """Id of the last finished response, used to chain the next round."""
        return self._previous_response_id

    def reset(self) -> None:
        """Forget the server-side linkage; the next round sends the full history."""
        self._previous_response_id = None
        self._synced = 0

    def _continues(self, history: Sequence[Message]) -> bool:
        # The server holds history[:_synced] plus its own reply, which the
        # loop must have finalized at index _synced.
        return len(history) > self._synced and isinstance(
            history[self._synced], AssistantMessage
        )

    def build_payload(
        self,
        history: Sequence[Message],
        tools: Sequence[Tool],
        request: GenerationRequest,
    ) -> dict[str, Any]:
        """Encode one round as a Responses API request body."""
        options = request.options
        backend = options.backend
        linked = (
            self._previous_response_id is not None
            and backend.store is not False
            and self._continues(history)
        )
        pending = history[self._synced + 1:] if linked else history

        payload: dict[str, Any] = {
            "model": self._model,
            "input": [item for message in pending for item in input_items(message)],
            "stream": True,
        }
        if linked:
            payload["previous_response_id"] = self._previous_response_id
        if tools:
            payload["tools"] = [function_tool_schema(tool) for tool in tools]
        if request.output_schema is not None:
            payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": request.output_name,
                    "schema": request.output_schema,
                    "strict": False,
                }
            }

        if options.temperature is not None:
            payload["temperature"] = options.temperature * 2
        if options.sampling is not None:
            payload["top_p"] = options.sampling.top_p_value
        if options.maximum_tokens is not None:
            payload["max_output_tokens"] = options.maximum_tokens

        if backend.reasoning_effort is not None:
            payload["reasoning"] = {"effort": backend.reasoning_effort}
        for key in ("parallel_tool_calls", "service_tier", "truncation", "store", "user", "metadata"):
            value = getattr(backend, key)
            if value is not None:
                payload[key] = value
        return payload

    async def open_stream(
        self,
        history: Sequence[Message],
        tools: Sequence[Tool],
        request: GenerationRequest,
    ) -> AsyncIterator[StreamEvent]:
        payload = self.build_payload(history, tools, request)
        logger.debug(
            "POST %s/responses (model=%s, %d input items, previous=%s)",
            self._client.base_url, self._model, len(payload["input"]),
            payload.get("previous_response_id"),
        )

        events = self._client.events("/responses", payload)
        async with contextlib.aclosing(events):
            async for sse in events:
                try:
                    data = json.loads(sse.data)
                except json.JSONDecodeError:
                    logger.warning("Unparseable SSE data: %s", sse.data[:200])
                    continue
                event = self._translate(data)
                if event is None:
                    continue
                finished = isinstance(event, (Completed, Incomplete))
                if finished and request.options.backend.store is not False:
                    self._previous_response_id = (event.raw or {}).get("id")
                    self._synced = len(history)
                yield event
                if isinstance(event, (Completed, Incomplete, StreamError)):
                    return

    def _translate(self, data: dict) -> StreamEvent | None:
        kind = data.get("type", "")
        if kind == "response.output_text.delta":
            delta = data.get("delta")
            return TextDelta(delta) if delta else None
        if kind == "response.output_item.added":
            item = data.get("item") or {}
            if item.get("type") != "function_call":
                return None
            return ToolCallDelta(
                index=data.get("output_index"),
                id=item.get("call_id"),
                name=item.get("name"),
                arguments=item.get("arguments") or None,
            )
        if kind == "response.function_call_arguments.delta":
            return ToolCallDelta(index=data.get("output_index"), arguments=data.get("delta"))
        if kind == "response.completed":
            return Completed(raw=data.get("response"))
        if kind == "response.incomplete":
            response = data.get("response") or {}
            details = response.get("incomplete_details") or {}
            return Incomplete(raw=response, reason=details.get("reason"))
        if kind == "response.failed":
            error = (data.get("response") or {}).get("error") or {}
            return StreamError(error.get("message") or "Response failed")
        if kind == "response.refusal.done":
            return StreamError(f"Model refused: {data.get('refusal', '')}")
        if kind == "error":
            error = data.get("error") if isinstance(data.get("error"), dict) else data
            return StreamError(error.get("message") or "Unknown streaming error")
        return None

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ResponsesTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
