"""Generation engine: history store, tool-call accumulation, and the loop."""

from strand.engine.accumulator import PartialToolCall, ToolCallAccumulator
from strand.engine.history import ConversationStore
from strand.engine.loop import GenerationLoop, GenerationState, content_chunks

__all__ = [
    "ConversationStore",
    "GenerationLoop",
    "GenerationState",
    "PartialToolCall",
    "ToolCallAccumulator",
    "content_chunks",
]
