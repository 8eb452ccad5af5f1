"""Configuration models for Strand.

SessionConfig holds per-session settings for the generation loop.
ReplyOptions holds the per-request generation parameters, with
BackendOptions as the single struct of provider-specific knobs that
transports read directly.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Literal, Optional

from pydantic import BaseModel, Field

DEFAULT_MAX_TOOL_ROUNDS = 10


class ToolExecutionPolicy(str, enum.Enum):
    """How the tool calls of one round are executed.

    - ``SEQUENTIAL``: one after another, in the order they were finalized.
    - ``CONCURRENT``: all at once; outputs are still recorded in call order.
    """

    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


class SessionConfig(BaseModel):
    """Per-session configuration."""

    max_tool_rounds: int = Field(default=DEFAULT_MAX_TOOL_ROUNDS, ge=1)
    tool_execution: ToolExecutionPolicy = ToolExecutionPolicy.SEQUENTIAL


@dataclass(frozen=True)
class SamplingMode:
    """Token sampling strategy.

    Use the constructors rather than the raw fields::

        SamplingMode.greedy()
        SamplingMode.top_p(0.9)
    """

    kind: Literal["greedy", "top_p"]
    probability_threshold: float | None = None

    @classmethod
    def greedy(cls) -> SamplingMode:
        return cls(kind="greedy")

    @classmethod
    def top_p(cls, threshold: float) -> SamplingMode:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"top_p threshold must be within [0, 1], got {threshold}")
        return cls(kind="top_p", probability_threshold=threshold)

    @property
    def top_p_value(self) -> float:
        if self.kind == "greedy":
            return 0.0
        return self.probability_threshold  # type: ignore[return-value]


@dataclass(frozen=True)
class BackendOptions:
    """Provider-specific knobs.

    Every field is optional; each transport reads the ones its backend
    understands and ignores the rest.

    Attributes:
        reasoning_effort: "minimal", "low", "medium" or "high".
        frequency_penalty: Between -2.0 and 2.0 (Chat Completions).
        presence_penalty: Between -2.0 and 2.0 (Chat Completions).
        seed: Best-effort deterministic sampling seed.
        user: End-user identifier for abuse monitoring.
        parallel_tool_calls: Let the model emit several calls per round.
        service_tier: "auto", "default" or "flex" (Responses API).
        truncation: "auto" or "disabled" (Responses API).
        store: Whether the backend stores the response (Responses API).
        metadata: Key/value pairs attached to the request.
    """

    reasoning_effort: Optional[Literal["minimal", "low", "medium", "high"]] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    seed: Optional[int] = None
    user: Optional[str] = None
    parallel_tool_calls: Optional[bool] = None
    service_tier: Optional[Literal["auto", "default", "flex"]] = None
    truncation: Optional[Literal["auto", "disabled"]] = None
    store: Optional[bool] = None
    metadata: Optional[dict[str, str]] = None


@dataclass(frozen=True)
class ReplyOptions:
    """Generation parameters for one submitted prompt.

    ``temperature`` is normalized to [0, 1]; OpenAI-style transports scale
    it to their [0, 2] range.

    Example::

        from strand import ReplyOptions, SamplingMode
        options = ReplyOptions(temperature=0.3, sampling=SamplingMode.greedy())
    """

    temperature: float | None = None
    maximum_tokens: int | None = None
    sampling: SamplingMode | None = None
    backend: BackendOptions = field(default_factory=BackendOptions)

    def __post_init__(self) -> None:
        if self.temperature is not None and not 0.0 <= self.temperature <= 1.0:
            raise ValueError(
                f"temperature must be within [0, 1], got {self.temperature}"
            )
        if self.maximum_tokens is not None and self.maximum_tokens < 1:
            raise ValueError(
                f"maximum_tokens must be positive, got {self.maximum_tokens}"
            )
