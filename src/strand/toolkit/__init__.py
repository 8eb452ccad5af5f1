"""Toolkit: tool definitions, registry, and dispatcher.

Exposes Python callables as model-callable tools and runs the calls the
model makes.
"""

from strand.toolkit.executor import ToolDispatcher
from strand.toolkit.models import Tool, ToolDefinition, to_result_chunks
from strand.toolkit.registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolDefinition",
    "ToolDispatcher",
    "ToolRegistry",
    "to_result_chunks",
]
