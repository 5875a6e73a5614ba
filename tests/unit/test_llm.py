"""
Unit tests for LLM provider helpers.
"""

import json

import pytest
from pydantic import SecretStr

from shared.config import settings
from shared.errors import ConfigurationError
from shared.llm import (
    LLMMessage,
    TokenPricing,
    get_llm_provider,
    reset_llm_provider,
    set_llm_provider,
    strip_code_fences,
)
from shared.llm.provider import split_system_prompt
from tests.helpers import StaticLLMProvider


class TestStripCodeFences:
    """Tests for strip_code_fences."""

    def test_plain_text_unchanged(self) -> None:
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_json_fence_removed(self) -> None:
        assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'

    def test_bare_fence_removed(self) -> None:
        assert strip_code_fences("```\n[]\n```") == "[]"


class TestTokenPricing:
    """Tests for TokenPricing."""

    def test_usage_cost_per_million(self) -> None:
        usage = TokenPricing(input=2.50, output=10.00).usage(1_000_000, 500_000)

        assert usage.total_tokens == 1_500_000
        assert usage.total_cost == pytest.approx(7.50)

    def test_zero_tokens_cost_nothing(self) -> None:
        assert TokenPricing(input=3.0, output=15.0).usage(0, 0).total_cost == 0.0


class TestSplitSystemPrompt:
    """Tests for split_system_prompt."""

    def test_system_messages_joined(self) -> None:
        messages = [
            LLMMessage(role="system", content="Be precise"),
            LLMMessage(role="user", content="List rules"),
            LLMMessage(role="system", content="JSON only"),
        ]

        system, rest = split_system_prompt(messages)

        assert system == "Be precise\n\nJSON only"
        assert rest == [{"role": "user", "content": "List rules"}]

    def test_no_system_prompt(self) -> None:
        system, rest = split_system_prompt([LLMMessage(role="user", content="hi")])

        assert system is None
        assert len(rest) == 1


class TestProviderHelpers:
    """Tests for generate_text / generate_json on the base provider."""

    @pytest.mark.asyncio
    async def test_generate_text_sends_system_and_user(self) -> None:
        provider = StaticLLMProvider(content="hello")

        text = await provider.generate_text("Say hello", system_prompt="Be brief")

        assert text == "hello"
        roles = [m.role for m in provider.prompts[0]]
        assert roles == ["system", "user"]

    @pytest.mark.asyncio
    async def test_generate_json_strips_fences(self) -> None:
        provider = StaticLLMProvider(content='```json\n{"rules": []}\n```')

        assert await provider.generate_json("List rules") == {"rules": []}

    @pytest.mark.asyncio
    async def test_generate_json_raises_on_prose(self) -> None:
        provider = StaticLLMProvider(content="I cannot help with that.")

        with pytest.raises(json.JSONDecodeError):
            await provider.generate_json("List rules")


class TestProviderRegistry:
    """Tests for the global provider accessors."""

    def test_set_and_reset(self) -> None:
        provider = StaticLLMProvider()
        set_llm_provider(provider)
        try:
            assert get_llm_provider() is provider
        finally:
            reset_llm_provider()

    def test_missing_openai_key_is_configuration_error(self, monkeypatch) -> None:
        from shared.llm.openai import OpenAIProvider

        monkeypatch.setattr(settings.llm.openai, "api_key", SecretStr(""))

        with pytest.raises(ConfigurationError):
            OpenAIProvider()
