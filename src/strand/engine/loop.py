"""Generation loop: the per-run state machine.

Drives one or more request/stream rounds against a transport for a single
submitted prompt. Text deltas are parsed into partial values and yielded
as they arrive; tool-call deltas are accumulated and, when a round ends
with complete calls, executed before the next round starts. The run ends
when a round finishes without tool calls.

The loop only sees normalized transport events, so it behaves the same
for every backend.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter

from strand.engine.accumulator import ToolCallAccumulator
from strand.exceptions import (
    NoResponseProduced,
    StrandError,
    ToolLoopExceeded,
    TransportError,
)
from strand.models.config import ReplyOptions, SessionConfig
from strand.models.messages import (
    AssistantMessage,
    ContentChunk,
    StructuredChunk,
    TextChunk,
)
from strand.toolkit.executor import ToolDispatcher
from strand.transport.events import (
    Completed,
    Incomplete,
    StreamError,
    TextDelta,
    ToolCallDelta,
)
from strand.transport.protocols import GenerationRequest

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from strand.engine.history import ConversationStore
    from strand.models.messages import UserMessage
    from strand.parsing.partial import PartialParser
    from strand.toolkit.registry import ToolRegistry
    from strand.transport.protocols import Transport

logger = logging.getLogger(__name__)

_NOTHING = object()
_ANY = TypeAdapter(Any)


class GenerationState(str, enum.Enum):
    """States of one generation run."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


def content_chunks(text: str) -> tuple[ContentChunk, ...]:
    """Chunks for a finished assistant message.

    Empty text has no chunks; a JSON object or array becomes one structured
    chunk; anything else stays text.
    """
    if not text:
        return ()
    try:
        value = json.loads(text)
    except ValueError:
        return (TextChunk(text),)
    if isinstance(value, (dict, list)):
        return (StructuredChunk(value),)
    return (TextChunk(text),)


class GenerationLoop:
    """Runs the request → stream → tools cycle for one submitted prompt.

    A loop instance is single-use. The session that creates it guarantees
    nothing else writes to the store while it runs.

    Usage::

        loop = GenerationLoop(store, transport, registry, PartialParser(str))
        async for partial in loop.run(UserMessage.of("Hi")):
            print(partial)
    """

    def __init__(
        self,
        store: ConversationStore,
        transport: Transport,
        registry: ToolRegistry,
        parser: PartialParser,
        *,
        config: SessionConfig | None = None,
        options: ReplyOptions | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._registry = registry
        self._parser = parser
        self._config = config or SessionConfig()
        self._options = options or ReplyOptions()
        self._dispatcher = ToolDispatcher(registry, policy=self._config.tool_execution)
        self._state = GenerationState.IDLE
        self._rounds = 0
        self._cancel_event = asyncio.Event()
        self._last_partial: Any = _NOTHING

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def tool_rounds(self) -> int:
        """Number of rounds so far that ended in tool calls."""
        return self._rounds

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def last_partial(self) -> Any | None:
        """The most recently emitted partial, or None."""
        return None if self._last_partial is _NOTHING else self._last_partial

    def cancel(self) -> None:
        """Stop at the next suspension point without raising.

        Messages already finalized stay in history; the in-progress draft
        is discarded. A round whose response already finished is still
        recorded.
        """
        self._cancel_event.set()

    async def run(self, prompt: UserMessage) -> AsyncIterator[Any]:
        """Append ``prompt`` and yield partial values until the exchange ends.

        Raises:
            TransportError: The transport failed or reported an error.
            NoResponseProduced: A stream ended without a terminal event.
            ToolNotFound: The model called an unknown tool.
            ToolExecutionFailed: A tool raised.
            ToolLoopExceeded: Tool rounds exceeded ``max_tool_rounds``.
        """
        if self._state != GenerationState.IDLE:
            raise RuntimeError("GenerationLoop instances are single-use")

        self._store.append(prompt)
        self._rounds = 0
        request = GenerationRequest(
            output_schema=self._parser.output_schema(),
            output_name=getattr(self._parser.target, "__name__", "output"),
            options=self._options,
        )

        try:
            while True:
                self._state = GenerationState.REQUESTING
                logger.info("Starting round %d", self._rounds + 1)
                stream = self._open_stream(request)

                self._state = GenerationState.STREAMING
                text = ""
                accumulator = ToolCallAccumulator()
                terminal: Completed | Incomplete | None = None
                try:
                    while terminal is None:
                        if self.cancelled:
                            return
                        try:
                            event = await stream.__anext__()
                        except StopAsyncIteration:
                            break
                        except (StrandError, asyncio.CancelledError):
                            raise
                        except Exception as exc:
                            raise TransportError(f"Transport failed: {exc}", cause=exc) from exc

                        if isinstance(event, (Completed, Incomplete)):
                            if isinstance(event, Incomplete):
                                logger.warning("Round ended incomplete: %s", event.reason)
                            terminal = event
                        elif self.cancelled:
                            return
                        elif isinstance(event, TextDelta):
                            text += event.text
                            partial = self._parser.parse(text)
                            if partial is not None:
                                self._publish_draft(text, partial)
                                self._last_partial = partial
                                yield partial
                        elif isinstance(event, ToolCallDelta):
                            accumulator.add(event)
                        elif isinstance(event, StreamError):
                            raise TransportError(f"Backend streaming error: {event.message}")
                finally:
                    aclose = getattr(stream, "aclose", None)
                    if aclose is not None:
                        await aclose()

                if terminal is None:
                    raise NoResponseProduced("Stream ended without a completed response")

                tool_calls = accumulator.finalize()
                self._store.finalize_draft(
                    AssistantMessage(chunks=content_chunks(text), tool_calls=tuple(tool_calls))
                )

                if not tool_calls:
                    if self.cancelled:
                        return
                    self._state = GenerationState.DONE
                    logger.info("Generation done after %d tool round(s)", self._rounds)
                    final = self._parser.parse(text) if text else None
                    if final is not None and (
                        self._last_partial is _NOTHING or final != self._last_partial
                    ):
                        self._last_partial = final
                        yield final
                    return

                self._rounds += 1
                if self._rounds > self._config.max_tool_rounds:
                    raise ToolLoopExceeded(self._config.max_tool_rounds)

                self._state = GenerationState.EXECUTING_TOOLS
                logger.info(
                    "Executing %d tool call(s): %s",
                    len(tool_calls), ", ".join(c.name for c in tool_calls),
                )
                await self._dispatcher.execute_all(tool_calls, on_output=self._store.append)
                if self.cancelled:
                    return
        except (GeneratorExit, asyncio.CancelledError):
            raise
        except Exception:
            self._state = GenerationState.FAILED
            raise
        finally:
            self._store.discard_draft()
            if self._state not in (GenerationState.DONE, GenerationState.FAILED):
                logger.info("Generation cancelled in state %s", self._state.value)
                self._state = GenerationState.CANCELLED

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _open_stream(self, request: GenerationRequest) -> AsyncIterator[Any]:
        try:
            stream = self._transport.open_stream(
                self._store.snapshot(), list(self._registry), request
            )
        except StrandError:
            raise
        except Exception as exc:
            raise TransportError(f"Cannot open stream: {exc}", cause=exc) from exc
        return stream.__aiter__()

    def _publish_draft(self, text: str, partial: Any) -> None:
        if self._parser.is_text:
            chunk: ContentChunk = TextChunk(text)
        else:
            chunk = StructuredChunk(_ANY.dump_python(partial, mode="json"))
        draft = AssistantMessage(chunks=(chunk,))
        if self._store.has_draft:
            self._store.replace_last(draft)
        else:
            self._store.open_draft(draft)
