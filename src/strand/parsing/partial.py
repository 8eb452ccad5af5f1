"""Typed partial projections of streamed model output.

A ``PartialParser`` is bound to a target type. For ``str`` the partial is
the raw text. For anything else the accumulated text is repaired into valid
JSON and validated against a relaxed version of the target in which every
pydantic model field is optional, so half-filled objects validate.
"""

from __future__ import annotations

import functools
import json
import logging
import types
from typing import Any, Generic, Optional, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError, create_model

from strand.exceptions import OutputParseError
from strand.parsing.repair import repair_json

logger = logging.getLogger(__name__)

T = TypeVar("T")


@functools.lru_cache(maxsize=None)
def partial_type(tp: Any) -> Any:
    """Return the partial projection of ``tp``.

    - pydantic models: a generated ``<Name>Partial`` model whose fields are
      all optional and themselves partial.
    - ``list[X]``, ``dict[K, X]``, unions: rebuilt around ``partial_type(X)``.
    - anything else (scalars, enums, literals): unchanged, so a half-written
      enum value fails validation until it is complete.
    """
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        fields: dict[str, Any] = {}
        for name, info in tp.model_fields.items():
            fields[name] = (Optional[partial_type(info.annotation)], None)
        return create_model(f"{tp.__name__}Partial", __doc__=tp.__doc__, **fields)

    origin = get_origin(tp)
    args = get_args(tp)
    if origin is None or not args:
        return tp
    if origin in (Union, types.UnionType):
        return Union[tuple(partial_type(a) for a in args)]
    if origin is list:
        return list[partial_type(args[0])]
    if origin is dict and len(args) == 2:
        return dict[args[0], partial_type(args[1])]
    return tp


class PartialParser(Generic[T]):
    """Incrementally decode streamed text into partial values of ``target``.

    ``parse`` is pure: the same text always yields the same result, and it
    never raises for malformed input.

    Usage::

        parser = PartialParser(Weather)
        parser.parse('{"city": "Par')   # WeatherPartial(city='Par', temp=None)
        parser.parse('{"city": ')       # WeatherPartial(city=None, temp=None)
    """

    def __init__(self, target: type[T] | Any = str) -> None:
        self._target = target
        self._is_text = target is str
        if not self._is_text:
            self._partial_adapter = TypeAdapter(partial_type(target))
            self._full_adapter = TypeAdapter(target)

    @property
    def target(self) -> Any:
        return self._target

    @property
    def is_text(self) -> bool:
        return self._is_text

    def output_schema(self) -> dict | None:
        """JSON schema of the target, or None for plain text output."""
        if self._is_text:
            return None
        return self._full_adapter.json_schema()

    def parse(self, text: str) -> Any | None:
        """Return the partial value for ``text``, or None if none is available yet."""
        if self._is_text:
            return text
        repaired = repair_json(text)
        if not repaired:
            return None
        try:
            return self._partial_adapter.validate_python(json.loads(repaired))
        except (ValueError, ValidationError) as exc:
            logger.debug("No partial for %d chars of output: %s", len(text), exc)
            return None

    def complete(self, text: str) -> T:
        """Validate the final output against the full target type.

        Raises:
            OutputParseError: If the text is not valid JSON for the target.
        """
        if self._is_text:
            return text  # type: ignore[return-value]
        try:
            return self._full_adapter.validate_python(json.loads(text))
        except (ValueError, ValidationError) as exc:
            raise OutputParseError(
                f"Cannot parse model output as {getattr(self._target, '__name__', self._target)}: {exc}"
            ) from exc
