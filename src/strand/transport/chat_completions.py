"""Chat Completions transport for OpenAI-compatible providers.

Streams ``POST /chat/completions`` over server-sent events and translates
each chunk into normalized stream events. Requests are checked against the
provider's known capabilities before anything is sent.
"""

from __future__ import annotations

import contextlib
import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from strand.transport.errors import TransportConfigError, TransportResponseError
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

    from strand.models.capabilities import Provider
    from strand.models.messages import Message
    from strand.toolkit.models import Tool
    from strand.transport.events import StreamEvent
    from strand.transport.protocols import GenerationRequest

logger = logging.getLogger(__name__)

# finish_reason values that end a round early without invalidating it.
_INCOMPLETE_REASONS = {"length", "content_filter"}


def chat_tool_schema(tool: Tool) -> dict:
    """Chat Completions function-calling format for any Tool."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters or {"type": "object", "properties": {}},
        },
    }


class ChatCompletionsTransport:
    """Transport for any OpenAI-compatible ``/chat/completions`` endpoint.

    Usage::

        transport = ChatCompletionsTransport(Provider.gemini(), "gemini-2.0-flash")
        session = Session(transport)
        reply = await session.reply("Hello")

    Args:
        provider: Endpoint, credentials and capabilities.
        model: Model identifier sent with each request.
        api_key: Overrides the provider's key.
        timeout: Request timeout in seconds.
        max_retries: Attempts for opening a stream on transient failures.
        http_client: Pre-built ``httpx.AsyncClient`` (tests inject a
            ``MockTransport`` this way).

    Raises:
        TransportConfigError: If the provider needs an API key and none is
            available.
    """

    def __init__(
        self,
        provider: Provider,
        model: str,
        *,
        api_key: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 3,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        key = api_key or provider.api_key
        if key is None and provider.api_key_env is not None:
            raise TransportConfigError(
                f"No API key for {provider.name}. "
                f"Pass api_key= or set the {provider.api_key_env} environment variable."
            )
        self._provider = provider
        self._model = model
        self._client = SSEClient(
            provider.base_url,
            api_key=key,
            headers=provider.headers,
            timeout=timeout,
            max_retries=max_retries,
            http_client=http_client,
        )

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    def build_payload(
        self,
        history: Sequence[Message],
        tools: Sequence[Tool],
        request: GenerationRequest,
    ) -> dict[str, Any]:
        """Encode one round as a Chat Completions request body.

        Raises:
            UnsupportedConfiguration: Tools with structured output on a
                provider that cannot do both.
            MinimumTokensRequired: Token limit below the provider floor.
        """
        options = request.options
        self._provider.validate(tools, request.output_schema, options)

        messages = [message.to_openai() for message in history]
        payload: dict[str, Any] = {"model": self._model, "messages": messages, "stream": True}

        if tools:
            payload["tools"] = [chat_tool_schema(tool) for tool in tools]

        schema = request.output_schema
        if schema is not None:
            if self._provider.supports_json_schema:
                payload["response_format"] = {
                    "type": "json_schema",
                    "json_schema": {"name": request.output_name, "schema": schema},
                }
            else:
                payload["response_format"] = {"type": "json_object"}
                messages.insert(0, {
                    "role": "system",
                    "content": (
                        "Respond only with valid JSON matching this schema: "
                        + json.dumps(schema)
                    ),
                })

        if options.temperature is not None:
            payload["temperature"] = options.temperature * 2
        if options.sampling is not None:
            payload["top_p"] = options.sampling.top_p_value
        if options.maximum_tokens is not None:
            payload["max_completion_tokens"] = options.maximum_tokens

        backend = options.backend
        for key in (
            "reasoning_effort",
            "frequency_penalty",
            "presence_penalty",
            "seed",
            "user",
            "metadata",
        ):
            value = getattr(backend, key)
            if value is not None:
                payload[key] = value
        if tools and backend.parallel_tool_calls is not None:
            payload["parallel_tool_calls"] = backend.parallel_tool_calls
        return payload

    async def open_stream(
        self,
        history: Sequence[Message],
        tools: Sequence[Tool],
        request: GenerationRequest,
    ) -> AsyncIterator[StreamEvent]:
        payload = self.build_payload(history, tools, request)
        logger.debug(
            "POST %s/chat/completions (model=%s, %d messages, %d tools)",
            self._client.base_url, self._model, len(history), len(tools),
        )

        finish_reason: str | None = None
        last_chunk: dict | None = None
        done = False
        events = self._client.events("/chat/completions", payload)
        async with contextlib.aclosing(events):
            async for sse in events:
                if sse.data == "[DONE]":
                    done = True
                    break
                try:
                    chunk = json.loads(sse.data)
                except json.JSONDecodeError:
                    logger.warning("Unparseable SSE data: %s", sse.data[:200])
                    continue
                if not isinstance(chunk, dict):
                    raise TransportResponseError(f"Unexpected stream chunk: {sse.data[:200]}")

                error = chunk.get("error")
                if error:
                    message = error.get("message") if isinstance(error, dict) else str(error)
                    yield StreamError(message or "Unknown streaming error")
                    return

                last_chunk = chunk
                for event in self._translate(chunk):
                    yield event
                choices = chunk.get("choices") or []
                if choices and choices[0].get("finish_reason"):
                    finish_reason = choices[0]["finish_reason"]

        if finish_reason in _INCOMPLETE_REASONS:
            yield Incomplete(raw=last_chunk, reason=finish_reason)
        elif done or finish_reason is not None:
            yield Completed(raw=last_chunk)
        # Neither [DONE] nor a finish_reason: the stream was cut off.

    def _translate(self, chunk: dict) -> list[StreamEvent]:
        choices = chunk.get("choices") or []
        if not choices:
            return []
        delta = choices[0].get("delta") or {}
        events: list[StreamEvent] = []
        content = delta.get("content")
        if content:
            events.append(TextDelta(content))
        for call in delta.get("tool_calls") or []:
            function = call.get("function") or {}
            events.append(ToolCallDelta(
                index=call.get("index"),
                id=call.get("id"),
                name=function.get("name"),
                arguments=function.get("arguments"),
            ))
        return events

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ChatCompletionsTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
