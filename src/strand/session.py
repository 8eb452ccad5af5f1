"""Session: the caller-facing owner of one conversation.

A Session holds the conversation history, the tool registry, and the
transport for one conversation, and runs at most one generation at a time.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import weakref
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from strand.engine.history import ConversationStore
from strand.engine.loop import GenerationLoop, GenerationState
from strand.exceptions import NoResponseProduced, SessionBusyError
from strand.models.config import ReplyOptions, SessionConfig
from strand.models.messages import (
    AssistantMessage,
    ContentChunk,
    Message,
    SystemMessage,
    UserMessage,
    to_chunks,
)
from strand.parsing.partial import PartialParser
from strand.toolkit.models import Tool
from strand.toolkit.registry import ToolRegistry
from strand.transport.protocols import Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Reply(Generic[T]):
    """Final result of a drained generation.

    Attributes:
        content: The output, validated against the requested type.
        history: The full conversation history after the reply.
    """

    content: T
    history: tuple[Message, ...]


class GenerationStream:
    """Lazy, single-pass sequence of partial values for one prompt.

    Iterate with ``async for``. The session is reserved on the first
    iteration and released when the stream finishes, is closed, or is
    garbage collected. Call ``cancel()`` to stop quietly at the next
    suspension point, or ``aclose()`` to stop immediately. Either way,
    messages finalized before the stop stay in history.
    """

    def __init__(self, session: Session, loop: GenerationLoop, prompt: UserMessage) -> None:
        self._session = session
        self._loop = loop
        self._prompt = prompt
        self._agen: AsyncIterator[Any] | None = None

    @property
    def state(self) -> GenerationState:
        return self._loop.state

    @property
    def last_partial(self) -> Any | None:
        return self._loop.last_partial

    def cancel(self) -> None:
        self._loop.cancel()

    def __aiter__(self) -> GenerationStream:
        return self

    async def __anext__(self) -> Any:
        if self._agen is None:
            self._session._reserve(self)
            self._agen = self._session._run_exclusive(self._loop, self._prompt)
        return await self._agen.__anext__()

    async def aclose(self) -> None:
        if self._agen is not None:
            await self._agen.aclose()  # type: ignore[attr-defined]

    async def __aenter__(self) -> GenerationStream:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


class Session:
    """One conversation with a model.

    Usage::

        session = Session(transport, tools=[calc], instructions="Be terse.")
        async for partial in session.submit("2+2?"):
            print(partial)
        print(session.current_history())
    """

    def __init__(
        self,
        transport: Transport,
        *,
        tools: Iterable[Tool] = (),
        messages: Iterable[Message] = (),
        instructions: str | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        seed = list(messages)
        if instructions is not None:
            seed.insert(0, SystemMessage.of(instructions))
        self._transport = transport
        self._registry = ToolRegistry(tools)
        self._store = ConversationStore(seed)
        self._config = config or SessionConfig()
        self._lock = asyncio.Lock()
        self._active: weakref.ref[GenerationStream] | None = None
        self._current: GenerationLoop | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def tools(self) -> ToolRegistry:
        return self._registry

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def state(self) -> GenerationState:
        """State of the most recent generation, or IDLE before the first."""
        if self._current is None:
            return GenerationState.IDLE
        return self._current.state

    @property
    def is_busy(self) -> bool:
        return self._active_stream() is not None or self._lock.locked()

    def current_history(self) -> tuple[Message, ...]:
        """Ordered history, including the in-progress draft while streaming."""
        return self._store.snapshot()

    def submit(
        self,
        prompt: str | ContentChunk | list[ContentChunk],
        *,
        returning: type[T] | Any = str,
        options: ReplyOptions | None = None,
    ) -> GenerationStream:
        """Start a generation for ``prompt``.

        Nothing happens, and the session is not reserved, until the returned
        stream is iterated.

        Args:
            prompt: Text or content chunks for the user message.
            returning: Target type of the output: ``str`` or any type
                pydantic can validate (typically a ``BaseModel`` subclass).
            options: Generation parameters.

        Raises:
            SessionBusyError: If another generation on this session is
                running. Iterating the returned stream raises it too when
                another stream started first.
        """
        if self._active_stream() is not None:
            raise SessionBusyError()
        loop = GenerationLoop(
            self._store,
            self._transport,
            self._registry,
            PartialParser(returning),
            config=self._config,
            options=options,
        )
        stream = GenerationStream(self, loop, UserMessage(chunks=to_chunks(prompt)))
        self._current = loop
        return stream

    async def reply(
        self,
        prompt: str | ContentChunk | list[ContentChunk],
        *,
        returning: type[T] | Any = str,
        options: ReplyOptions | None = None,
    ) -> Reply[T]:
        """Run a generation to completion and return the validated output.

        Raises:
            NoResponseProduced: If the model produced no output.
            OutputParseError: If the output does not match ``returning``.
        """
        stream = self.submit(prompt, returning=returning, options=options)
        parser = PartialParser(returning)
        async with stream:
            async for _ in stream:
                pass
        history = self._store.snapshot()
        last = history[-1] if history else None
        if not isinstance(last, AssistantMessage) or not last.chunks:
            raise NoResponseProduced("No response received from streaming API")
        return Reply(content=parser.complete(last.text), history=history)

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _active_stream(self) -> GenerationStream | None:
        return self._active() if self._active is not None else None

    def _reserve(self, stream: GenerationStream) -> None:
        if self._active_stream() is not None:
            raise SessionBusyError()
        self._active = weakref.ref(stream)
        self._current = stream._loop

    def _release(self, loop: GenerationLoop) -> None:
        stream = self._active_stream()
        if stream is None or stream._loop is loop:
            self._active = None

    async def _run_exclusive(
        self, loop: GenerationLoop, prompt: UserMessage
    ) -> AsyncIterator[Any]:
        # No reference to the stream is held here: a stream dropped
        # mid-iteration is collected and the event loop closes this generator.
        # The lock stays held until that close finishes.
        try:
            async with self._lock:
                async with contextlib.aclosing(loop.run(prompt)) as partials:
                    async for partial in partials:
                        yield partial
        finally:
            self._release(loop)
