"""Tests for GenerationLoop: the request -> stream -> tools state machine.

Drives the loop directly against a ScriptedTransport so every round's
history, partials, and final state can be checked.
"""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from strand.engine.history import ConversationStore
from strand.engine.loop import GenerationLoop, GenerationState, content_chunks
from strand.exceptions import (
    MinimumTokensRequired,
    NoResponseProduced,
    ToolExecutionFailed,
    ToolLoopExceeded,
    ToolNotFound,
    TransportError,
)
from strand.models.config import SessionConfig
from strand.models.messages import (
    AssistantMessage,
    StructuredChunk,
    TextChunk,
    ToolCall,
    ToolOutputMessage,
    UserMessage,
)
from strand.parsing.partial import PartialParser, partial_type
from strand.toolkit.models import ToolDefinition
from strand.toolkit.registry import ToolRegistry
from strand.transport.events import Completed, Incomplete, StreamError, TextDelta, ToolCallDelta
from tests.conftest import ScriptedTransport, text_round, tool_round


class Weather(BaseModel):
    city: str
    temperature: float


def _loop(transport, *, tools=(), target=str, config=None, store=None):
    store = store if store is not None else ConversationStore()
    loop = GenerationLoop(
        store, transport, ToolRegistry(tools), PartialParser(target), config=config
    )
    return loop, store


async def _drain(loop, prompt="hi"):
    return [p async for p in loop.run(UserMessage.of(prompt))]


# ---------------------------------------------------------------------------
# Text streaming
# ---------------------------------------------------------------------------

class TestTextStreaming:

    @pytest.mark.asyncio
    async def test_partials_are_accumulated_text(self):
        loop, store = _loop(ScriptedTransport(text_round("Hel", "lo", " world")))
        partials = await _drain(loop)
        assert partials == ["Hel", "Hello", "Hello world"]
        assert loop.state == GenerationState.DONE
        assert store.snapshot() == (
            UserMessage.of("hi"),
            AssistantMessage(chunks=(TextChunk("Hello world"),)),
        )

    @pytest.mark.asyncio
    async def test_draft_visible_while_streaming(self):
        loop, store = _loop(ScriptedTransport(text_round("Hel", "lo")))
        seen = []
        async for _ in loop.run(UserMessage.of("hi")):
            seen.append(store.snapshot()[-1])
        assert seen == [
            AssistantMessage(chunks=(TextChunk("Hel"),)),
            AssistantMessage(chunks=(TextChunk("Hello"),)),
        ]
        assert not store.has_draft

    @pytest.mark.asyncio
    async def test_incomplete_round_still_finalizes(self):
        transport = ScriptedTransport([TextDelta("cut"), Incomplete(reason="length")])
        loop, store = _loop(transport)
        assert await _drain(loop) == ["cut"]
        assert store.snapshot()[-1].text == "cut"
        assert loop.state == GenerationState.DONE

    @pytest.mark.asyncio
    async def test_loop_is_single_use(self):
        loop, _ = _loop(ScriptedTransport(text_round("a")))
        await _drain(loop)
        with pytest.raises(RuntimeError):
            await _drain(loop)


# ---------------------------------------------------------------------------
# Structured output
# ---------------------------------------------------------------------------

class TestStructuredStreaming:

    @pytest.mark.asyncio
    async def test_partials_grow_and_final_not_repeated(self):
        transport = ScriptedTransport(
            text_round('{"city": "Pa', 'ris", "temp', 'erature": 21', ".5}")
        )
        loop, store = _loop(transport, target=Weather)
        partials = await _drain(loop)
        WeatherPartial = partial_type(Weather)
        assert partials == [
            WeatherPartial(city="Pa"),
            WeatherPartial(city="Paris"),
            WeatherPartial(city="Paris", temperature=21),
            WeatherPartial(city="Paris", temperature=21.5),
        ]
        assert store.snapshot()[-1] == AssistantMessage(
            chunks=(StructuredChunk({"city": "Paris", "temperature": 21.5}),)
        )

    @pytest.mark.asyncio
    async def test_draft_holds_json_of_partial(self):
        transport = ScriptedTransport(text_round('{"city": "Pa', 'ris"}'))
        loop, store = _loop(transport, target=Weather)
        drafts = []
        async for _ in loop.run(UserMessage.of("hi")):
            drafts.append(store.snapshot()[-1])
        assert drafts[0] == AssistantMessage(
            chunks=(StructuredChunk({"city": "Pa", "temperature": None}),)
        )

    @pytest.mark.asyncio
    async def test_request_carries_schema_and_name(self):
        transport = ScriptedTransport(text_round('{"city": "Oslo", "temperature": 1}'))
        loop, _ = _loop(transport, target=Weather)
        await _drain(loop)
        request = transport.requests[0].request
        assert request.output_name == "Weather"
        assert request.output_schema["required"] == ["city", "temperature"]

    @pytest.mark.asyncio
    async def test_unparseable_deltas_are_skipped(self):
        transport = ScriptedTransport(text_round(" ", '{"city": "Oslo"}'))
        loop, _ = _loop(transport, target=Weather)
        partials = await _drain(loop)
        assert partials == [partial_type(Weather)(city="Oslo")]


# ---------------------------------------------------------------------------
# Tool rounds
# ---------------------------------------------------------------------------

class TestToolRounds:

    @pytest.mark.asyncio
    async def test_calc_scenario(self, calc_tool):
        transport = ScriptedTransport(
            tool_round(("c1", "calc", '{"expression": "2+2"}')),
            text_round("4"),
        )
        loop, store = _loop(transport, tools=[calc_tool])
        partials = await _drain(loop, "2+2?")

        assert partials == ["4"]
        call = ToolCall(id="c1", name="calc", arguments={"expression": "2+2"})
        assert store.snapshot() == (
            UserMessage.of("2+2?"),
            AssistantMessage(tool_calls=(call,)),
            ToolOutputMessage(id="c1", tool_name="calc", chunks=(TextChunk("4"),)),
            AssistantMessage(chunks=(TextChunk("4"),)),
        )
        assert loop.tool_rounds == 1
        assert transport.opened == 2

    @pytest.mark.asyncio
    async def test_second_round_sees_tool_output(self, calc_tool):
        transport = ScriptedTransport(
            tool_round(("c1", "calc", '{"expression": "1+2"}')),
            text_round("3"),
        )
        loop, _ = _loop(transport, tools=[calc_tool])
        await _drain(loop)
        second_history = transport.requests[1].history
        assert isinstance(second_history[-1], ToolOutputMessage)
        assert second_history[-1].text == "3"
        assert transport.requests[1].tools == [calc_tool]

    @pytest.mark.asyncio
    async def test_multiple_calls_in_one_round(self, calc_tool):
        transport = ScriptedTransport(
            tool_round(
                ("c1", "calc", '{"expression": "1+1"}'),
                ("c2", "calc", '{"expression": "2+2"}'),
            ),
            text_round("2 and 4"),
        )
        loop, store = _loop(transport, tools=[calc_tool])
        await _drain(loop)
        outputs = [m for m in store.snapshot() if isinstance(m, ToolOutputMessage)]
        assert [(o.id, o.text) for o in outputs] == [("c1", "2"), ("c2", "4")]

    @pytest.mark.asyncio
    async def test_incomplete_tool_calls_end_the_run(self, calc_tool):
        transport = ScriptedTransport(
            [TextDelta("ok"), ToolCallDelta(index=0, arguments="{}"), Completed()]
        )
        loop, store = _loop(transport, tools=[calc_tool])
        assert await _drain(loop) == ["ok"]
        assert store.snapshot()[-1] == AssistantMessage(chunks=(TextChunk("ok"),))
        assert transport.opened == 1

    @pytest.mark.asyncio
    async def test_loop_exceeded(self):
        executed = []

        def counting_calc(expression: str) -> str:
            """Count executions."""
            executed.append(expression)
            return "0"

        tool = ToolDefinition.from_function(counting_calc, name="calc")
        transport = ScriptedTransport(
            tool_round(("c", "calc", '{"expression": "0"}')), repeat_last=True
        )
        loop, _ = _loop(transport, tools=[tool], config=SessionConfig(max_tool_rounds=3))
        with pytest.raises(ToolLoopExceeded, match="max 3"):
            await _drain(loop)
        assert len(executed) == 3
        assert transport.opened == 4
        assert loop.state == GenerationState.FAILED

    @pytest.mark.asyncio
    async def test_unknown_tool(self, calc_tool):
        transport = ScriptedTransport(tool_round(("c1", "weather", "{}")))
        loop, _ = _loop(transport, tools=[calc_tool])
        with pytest.raises(ToolNotFound):
            await _drain(loop)
        assert loop.state == GenerationState.FAILED

    @pytest.mark.asyncio
    async def test_tool_failure(self, failing_tool):
        transport = ScriptedTransport(tool_round(("c1", "explode", "{}")))
        loop, _ = _loop(transport, tools=[failing_tool])
        with pytest.raises(ToolExecutionFailed):
            await _drain(loop)


# ---------------------------------------------------------------------------
# Transport failures
# ---------------------------------------------------------------------------

class TestTransportFailures:

    @pytest.mark.asyncio
    async def test_stream_error_event(self):
        transport = ScriptedTransport([TextDelta("a"), StreamError("overloaded")])
        loop, store = _loop(transport)
        with pytest.raises(TransportError, match="overloaded"):
            await _drain(loop)
        assert store.snapshot() == (UserMessage.of("hi"),)
        assert transport.closed == 1

    @pytest.mark.asyncio
    async def test_raised_exception_is_wrapped(self):
        boom = ConnectionError("reset")
        loop, _ = _loop(ScriptedTransport([TextDelta("a"), boom]))
        with pytest.raises(TransportError) as exc_info:
            await _drain(loop)
        assert exc_info.value.cause is boom

    @pytest.mark.asyncio
    async def test_strand_errors_pass_through(self):
        error = MinimumTokensRequired("Gemini", 16, 4)
        loop, _ = _loop(ScriptedTransport([error]))
        with pytest.raises(MinimumTokensRequired):
            await _drain(loop)

    @pytest.mark.asyncio
    async def test_stream_without_terminal_event(self):
        loop, store = _loop(ScriptedTransport([TextDelta("partial")]))
        with pytest.raises(NoResponseProduced):
            await _drain(loop)
        assert store.snapshot() == (UserMessage.of("hi"),)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_mid_stream(self):
        transport = ScriptedTransport(text_round("Hel", "lo", " world"))
        loop, store = _loop(transport)
        partials = []
        async for partial in loop.run(UserMessage.of("hi")):
            partials.append(partial)
            loop.cancel()
        assert partials == ["Hel"]
        assert store.snapshot() == (UserMessage.of("hi"),)
        assert loop.state == GenerationState.CANCELLED
        assert transport.closed == 1

    @pytest.mark.asyncio
    async def test_cancel_keeps_finalized_rounds(self, calc_tool):
        transport = ScriptedTransport(
            tool_round(("c1", "calc", '{"expression": "2+2"}')),
            text_round("The answer", " is 4"),
        )
        loop, store = _loop(transport, tools=[calc_tool])
        async for _ in loop.run(UserMessage.of("2+2?")):
            loop.cancel()
        roles = [m.role for m in store.snapshot()]
        assert roles == ["user", "assistant", "tool"]

    @pytest.mark.asyncio
    async def test_cancel_on_completed_round_keeps_reply(self):
        transport = ScriptedTransport(
            [TextDelta("Hel"), TextDelta("lo"), lambda: loop.cancel(), Completed()]
        )
        loop, store = _loop(transport)
        assert await _drain(loop) == ["Hel", "Hello"]
        assert store.snapshot() == (
            UserMessage.of("hi"),
            AssistantMessage(chunks=(TextChunk("Hello"),)),
        )
        assert loop.state == GenerationState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_on_completed_tool_round_runs_tools_then_stops(self, calc_tool):
        round_events = tool_round(("c1", "calc", '{"expression": "2+2"}'))
        round_events.insert(-1, lambda: loop.cancel())
        transport = ScriptedTransport(round_events, text_round("4"))
        loop, store = _loop(transport, tools=[calc_tool])
        assert await _drain(loop) == []
        assert [m.role for m in store.snapshot()] == ["user", "assistant", "tool"]
        assert transport.opened == 1
        assert loop.state == GenerationState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_before_terminal_ignores_later_deltas(self):
        transport = ScriptedTransport(
            [TextDelta("a"), lambda: loop.cancel(), TextDelta("b"), Completed()]
        )
        loop, store = _loop(transport)
        assert await _drain(loop) == ["a"]
        assert store.snapshot() == (UserMessage.of("hi"),)

    @pytest.mark.asyncio
    async def test_aclose_stops_without_error(self):
        loop, store = _loop(ScriptedTransport(text_round("a", "b", "c")))
        agen = loop.run(UserMessage.of("hi"))
        assert await agen.__anext__() == "a"
        await agen.aclose()
        assert loop.state == GenerationState.CANCELLED
        assert store.snapshot() == (UserMessage.of("hi"),)


class TestContentChunks:

    def test_empty(self):
        assert content_chunks("") == ()

    def test_json_object_is_structured(self):
        assert content_chunks('{"a": 1}') == (StructuredChunk({"a": 1}),)

    def test_json_scalar_stays_text(self):
        assert content_chunks("42") == (TextChunk("42"),)

    def test_prose_stays_text(self):
        assert content_chunks("hello") == (TextChunk("hello"),)
