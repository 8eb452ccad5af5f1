"""Tests for provider presets, capability checks, and reply options."""

from __future__ import annotations

import pytest

from strand.exceptions import MinimumTokensRequired, UnsupportedConfiguration
from strand.models.capabilities import PRESETS, Provider, ProviderCapabilities
from strand.models.config import BackendOptions, ReplyOptions, SamplingMode


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

class TestPresets:

    @pytest.mark.parametrize(
        "factory, name, minimum, json_schema",
        [
            (Provider.gemini, "Gemini", 16, True),
            (Provider.deepseek, "DeepSeek", 16, False),
            (Provider.grok, "Grok", 1, True),
            (Provider.groq, "Groq", 1, False),
        ],
    )
    def test_preset_table(self, factory, name, minimum, json_schema):
        provider = factory(api_key="k")
        assert provider.name == name
        assert provider.capabilities.minimum_tokens == minimum
        assert provider.supports_json_schema is json_schema
        assert provider.base_url.startswith("https://")

    def test_only_deepseek_mixes_tools_and_schema(self):
        mixers = [
            name for name, factory in PRESETS.items()
            if factory().capabilities.supports_tools_with_structured_output
        ]
        assert mixers == ["deepseek"]

    def test_custom_is_conservative(self):
        provider = Provider.custom("http://localhost:8000/v1/", headers={"X-Org": "a"})
        assert provider.base_url == "http://localhost:8000/v1"
        assert provider.capabilities == ProviderCapabilities.conservative()
        assert provider.headers == {"X-Org": "a"}
        assert provider.api_key is None

    def test_explicit_key_beats_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        assert Provider.gemini().api_key == "env-key"
        assert Provider.gemini(api_key="explicit").api_key == "explicit"

    def test_key_not_in_repr(self):
        assert "secret" not in repr(Provider.grok(api_key="secret"))


# ---------------------------------------------------------------------------
# validate()
# ---------------------------------------------------------------------------

class TestValidate:

    def test_tools_with_schema_rejected(self):
        with pytest.raises(UnsupportedConfiguration) as exc_info:
            Provider.grok().validate([object()], {"type": "object"}, ReplyOptions())
        err = exc_info.value
        assert err.feature == "tools + structured output"
        assert err.suggestion == "Use tools OR structured output, not both"
        assert "Grok" in str(err)

    def test_tools_with_schema_allowed_on_deepseek(self):
        Provider.deepseek().validate([object()], {"type": "object"}, ReplyOptions())

    def test_tools_alone_and_schema_alone_are_fine(self):
        Provider.gemini().validate([object()], None, ReplyOptions())
        Provider.gemini().validate([], {"type": "object"}, ReplyOptions())

    def test_minimum_tokens(self):
        with pytest.raises(MinimumTokensRequired) as exc_info:
            Provider.deepseek().validate([], None, ReplyOptions(maximum_tokens=10))
        err = exc_info.value
        assert (err.provider, err.minimum, err.requested) == ("DeepSeek", 16, 10)
        assert err.suggestion == "Use maximum_tokens of 16 or higher"

    def test_minimum_tokens_boundary(self):
        Provider.gemini().validate([], None, ReplyOptions(maximum_tokens=16))
        Provider.groq().validate([], None, ReplyOptions(maximum_tokens=1))


# ---------------------------------------------------------------------------
# ReplyOptions
# ---------------------------------------------------------------------------

class TestReplyOptions:

    def test_defaults(self):
        options = ReplyOptions()
        assert options.temperature is None
        assert options.backend == BackendOptions()

    @pytest.mark.parametrize("temperature", [-0.1, 1.5])
    def test_temperature_range(self, temperature):
        with pytest.raises(ValueError, match="temperature"):
            ReplyOptions(temperature=temperature)

    def test_maximum_tokens_positive(self):
        with pytest.raises(ValueError, match="maximum_tokens"):
            ReplyOptions(maximum_tokens=0)

    def test_sampling_modes(self):
        assert SamplingMode.greedy().top_p_value == 0.0
        assert SamplingMode.top_p(0.8).top_p_value == 0.8
        with pytest.raises(ValueError):
            SamplingMode.top_p(1.2)
