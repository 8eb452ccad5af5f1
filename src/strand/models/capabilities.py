"""Provider presets and their empirically observed capabilities.

Used by the reference transports to pick a base URL and API key, choose a
structured-output mode, and reject requests a provider is known to mishandle
before anything goes over the wire.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from strand.exceptions import MinimumTokensRequired, UnsupportedConfiguration

if TYPE_CHECKING:
    from collections.abc import Sequence

    from strand.models.config import ReplyOptions


@dataclass(frozen=True)
class ProviderCapabilities:
    """What a provider reliably supports.

    Attributes:
        supports_tools_with_structured_output: Tools and a JSON output schema
            in the same request. Gemini loops forever, Grok returns 400.
        supports_preseeded_tool_history: History that already contains tool
            call/output pairs.
        supports_multi_turn_tool_loops: Calls every required tool in sequence.
        supports_multi_tool_selection: Picks the right tool among several.
        supports_guide_constraints: Honors schema constraints like array counts.
        minimum_tokens: Smallest ``maximum_tokens`` the provider accepts.
    """

    supports_tools_with_structured_output: bool
    supports_preseeded_tool_history: bool
    supports_multi_turn_tool_loops: bool
    supports_multi_tool_selection: bool
    supports_guide_constraints: bool
    minimum_tokens: int

    @classmethod
    def conservative(cls) -> ProviderCapabilities:
        """Defaults for untested providers."""
        return cls(
            supports_tools_with_structured_output=False,
            supports_preseeded_tool_history=False,
            supports_multi_turn_tool_loops=False,
            supports_multi_tool_selection=False,
            supports_guide_constraints=False,
            minimum_tokens=16,
        )


@dataclass(frozen=True)
class Provider:
    """An OpenAI-compatible endpoint.

    Build one with the preset constructors::

        Provider.gemini()
        Provider.deepseek(api_key="sk-...")
        Provider.custom("http://localhost:11434/v1")
    """

    name: str
    base_url: str
    capabilities: ProviderCapabilities
    api_key_env: str | None = None
    explicit_api_key: str | None = field(default=None, repr=False)
    headers: dict[str, str] = field(default_factory=dict)
    supports_json_schema: bool = True

    @property
    def api_key(self) -> str | None:
        """Explicit key, falling back to the provider's environment variable."""
        if self.explicit_api_key:
            return self.explicit_api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env) or None
        return None

    @classmethod
    def gemini(cls, api_key: str | None = None) -> Provider:
        return cls(
            name="Gemini",
            base_url="https://generativelanguage.googleapis.com/v1beta/openai",
            api_key_env="GEMINI_API_KEY",
            explicit_api_key=api_key,
            capabilities=ProviderCapabilities(
                supports_tools_with_structured_output=False,
                supports_preseeded_tool_history=False,
                supports_multi_turn_tool_loops=False,
                supports_multi_tool_selection=True,
                supports_guide_constraints=True,
                minimum_tokens=16,
            ),
        )

    @classmethod
    def deepseek(cls, api_key: str | None = None) -> Provider:
        return cls(
            name="DeepSeek",
            base_url="https://api.deepseek.com/v1",
            api_key_env="DEEPSEEK_API_KEY",
            explicit_api_key=api_key,
            supports_json_schema=False,
            capabilities=ProviderCapabilities(
                supports_tools_with_structured_output=True,
                supports_preseeded_tool_history=True,
                supports_multi_turn_tool_loops=True,
                supports_multi_tool_selection=False,
                supports_guide_constraints=False,
                minimum_tokens=16,
            ),
        )

    @classmethod
    def grok(cls, api_key: str | None = None) -> Provider:
        return cls(
            name="Grok",
            base_url="https://api.x.ai/v1",
            api_key_env="XAI_API_KEY",
            explicit_api_key=api_key,
            capabilities=ProviderCapabilities(
                supports_tools_with_structured_output=False,
                supports_preseeded_tool_history=False,
                supports_multi_turn_tool_loops=True,
                supports_multi_tool_selection=True,
                supports_guide_constraints=False,
                minimum_tokens=1,
            ),
        )

    @classmethod
    def groq(cls, api_key: str | None = None) -> Provider:
        return cls(
            name="Groq",
            base_url="https://api.groq.com/openai/v1",
            api_key_env="GROQ_API_KEY",
            explicit_api_key=api_key,
            supports_json_schema=False,
            capabilities=ProviderCapabilities(
                supports_tools_with_structured_output=False,
                supports_preseeded_tool_history=False,
                supports_multi_turn_tool_loops=False,
                supports_multi_tool_selection=True,
                supports_guide_constraints=False,
                minimum_tokens=1,
            ),
        )

    @classmethod
    def custom(
        cls,
        base_url: str,
        api_key: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> Provider:
        """Any OpenAI-compatible server (Ollama, vLLM, LM Studio, ...)."""
        return cls(
            name="Custom",
            base_url=base_url.rstrip("/"),
            explicit_api_key=api_key,
            headers=dict(headers or {}),
            capabilities=ProviderCapabilities.conservative(),
        )

    def validate(
        self,
        tools: Sequence[Any],
        output_schema: dict | None,
        options: ReplyOptions,
    ) -> None:
        """Reject requests this provider is known to mishandle.

        Raises:
            UnsupportedConfiguration: Tools combined with structured output
                on a provider that cannot handle both.
            MinimumTokensRequired: ``maximum_tokens`` below the provider floor.
        """
        caps = self.capabilities
        if tools and output_schema is not None and not caps.supports_tools_with_structured_output:
            raise UnsupportedConfiguration(
                feature="tools + structured output",
                provider=self.name,
                suggestion="Use tools OR structured output, not both",
            )
        if options.maximum_tokens is not None and options.maximum_tokens < caps.minimum_tokens:
            raise MinimumTokensRequired(
                provider=self.name,
                minimum=caps.minimum_tokens,
                requested=options.maximum_tokens,
            )


PRESETS: dict[str, Any] = {
    "gemini": Provider.gemini,
    "deepseek": Provider.deepseek,
    "grok": Provider.grok,
    "groq": Provider.groq,
}
