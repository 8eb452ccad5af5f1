"""Tool protocol and the built-in callable-backed tool definition."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, create_model

from strand.models.messages import ContentChunk, StructuredChunk, TextChunk

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@runtime_checkable
class Tool(Protocol):
    """Protocol for tools the model may call.

    ``invoke`` receives the call arguments as UTF-8 encoded JSON and returns
    the result as content chunks. It may raise anything; the dispatcher
    wraps failures.
    """

    name: str
    description: str
    parameters: dict

    async def invoke(self, arguments: bytes) -> list[ContentChunk]:
        ...


def to_result_chunks(result: object) -> list[ContentChunk]:
    """Normalize a handler's return value into content chunks.

    str -> one TextChunk; chunk or list of chunks -> as is; pydantic model
    -> StructuredChunk of its JSON dump; None -> no chunks; anything else
    -> StructuredChunk.
    """
    if result is None:
        return []
    if isinstance(result, str):
        return [TextChunk(result)]
    if isinstance(result, (TextChunk, StructuredChunk)):
        return [result]
    if isinstance(result, (list, tuple)) and result and all(
        isinstance(c, (TextChunk, StructuredChunk)) for c in result
    ):
        return list(result)
    if isinstance(result, BaseModel):
        return [StructuredChunk(result.model_dump(mode="json"))]
    return [StructuredChunk(result)]


@dataclass(frozen=True)
class ToolDefinition:
    """A tool backed by a Python callable.

    The handler may be sync or async; sync handlers run in a worker thread.
    With ``args_model`` set, arguments are validated through that pydantic
    model and the handler receives the model instance; otherwise the handler
    receives the JSON object as keyword arguments.

    Attributes:
        name: Tool name the model calls (e.g. "get_weather").
        description: When and why the model should use this tool.
        parameters: JSON Schema of the arguments object.
        handler: Callable that executes the tool.
        args_model: Optional pydantic model the arguments are validated into.
    """

    name: str
    description: str
    parameters: dict
    handler: Callable[..., object]
    args_model: type[BaseModel] | None = None

    @classmethod
    def from_model(
        cls,
        name: str,
        description: str,
        args_model: type[BaseModel],
        handler: Callable[[Any], object],
    ) -> ToolDefinition:
        """Build a tool whose parameters come from a pydantic model."""
        return cls(
            name=name,
            description=description,
            parameters=args_model.model_json_schema(),
            handler=handler,
            args_model=args_model,
        )

    @classmethod
    def from_function(
        cls,
        func: Callable[..., object],
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> ToolDefinition:
        """Build a tool from a function's signature and docstring.

        Every parameter must be annotated; parameters without a default are
        required.
        """
        fields: dict[str, Any] = {}
        for param in inspect.signature(func, eval_str=True).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                raise TypeError(f"Tool functions cannot take *args/**kwargs: {func.__name__}")
            if param.annotation is inspect.Parameter.empty:
                raise TypeError(
                    f"Parameter '{param.name}' of {func.__name__} needs a type annotation"
                )
            default = ... if param.default is inspect.Parameter.empty else param.default
            fields[param.name] = (param.annotation, default)
        args_model = create_model(f"{func.__name__}_args", **fields)

        if inspect.iscoroutinefunction(func):
            async def handler(args: BaseModel) -> object:
                return await func(**dict(args))
        else:
            def handler(args: BaseModel) -> object:
                return func(**dict(args))

        return cls(
            name=name or func.__name__,
            description=description or inspect.getdoc(func) or "",
            parameters=args_model.model_json_schema(),
            handler=handler,
            args_model=args_model,
        )

    async def invoke(self, arguments: bytes) -> list[ContentChunk]:
        payload = json.loads(arguments) if arguments else {}
        args: tuple[Any, ...] = ()
        kwargs: dict[str, Any] = {}
        if self.args_model is not None:
            args = (self.args_model.model_validate(payload),)
        elif isinstance(payload, dict):
            kwargs = payload
        else:
            raise TypeError(
                f"Tool '{self.name}' expects a JSON object, got {type(payload).__name__}"
            )
        if inspect.iscoroutinefunction(self.handler):
            result = await self.handler(*args, **kwargs)
        else:
            # Sync handlers run in a worker thread.
            result = await asyncio.to_thread(self.handler, *args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return to_result_chunks(result)
