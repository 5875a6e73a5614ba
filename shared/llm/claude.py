"""
Claude Provider
===============

Anthropic Messages API backend.

Version: 0.1.0
"""

import time
from typing import Any

import anthropic

from shared.config import settings
from shared.errors import ConfigurationError
from shared.llm.provider import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TokenPricing,
    retry_transient,
    split_system_prompt,
)
from shared.logging import get_logger

logger = get_logger(__name__)

CLAUDE_PRICING = {
    "claude-sonnet-4-20250514": TokenPricing(input=3.00, output=15.00),
    "claude-3-5-haiku-20241022": TokenPricing(input=0.80, output=4.00),
}
DEFAULT_PRICING = CLAUDE_PRICING["claude-sonnet-4-20250514"]


class ClaudeProvider(LLMProvider):
    """Anthropic Claude backend. Requires ANTHROPIC_API_KEY."""

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        key = api_key or settings.llm.claude.api_key.get_secret_value()
        if not key:
            raise ConfigurationError("ANTHROPIC_API_KEY is not configured")

        self._model = model or settings.llm.claude.model
        self._max_tokens = settings.llm.claude.max_tokens
        self._pricing = CLAUDE_PRICING.get(self._model, DEFAULT_PRICING)
        self._client = anthropic.AsyncAnthropic(api_key=key, timeout=settings.llm.timeout_seconds)

    @property
    def name(self) -> str:
        return "claude"

    @property
    def model(self) -> str:
        return self._model

    @retry_transient(anthropic.RateLimitError, anthropic.APIConnectionError, event="claude_retry")
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        system, conversation = split_system_prompt(messages)
        request: dict[str, Any] = {
            "model": self._model,
            "messages": conversation,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": settings.llm.temperature if temperature is None else temperature,
        }
        if system:
            request["system"] = system

        started = time.perf_counter()
        try:
            response = await self._client.messages.create(**request)
        except anthropic.APIError as e:
            logger.error("claude_request_failed", model=self._model, error_type=type(e).__name__, error=str(e))
            raise
        latency_ms = (time.perf_counter() - started) * 1000

        usage = self._pricing.usage(response.usage.input_tokens, response.usage.output_tokens)
        logger.debug(
            "claude_completion",
            model=self._model,
            tokens=usage.total_tokens,
            cost=round(usage.total_cost, 5),
            latency_ms=round(latency_ms, 2),
        )
        return LLMResponse(
            content="".join(getattr(block, "text", "") for block in response.content),
            model=response.model,
            provider=self.name,
            usage=usage,
            finish_reason=response.stop_reason,
            latency_ms=latency_ms,
        )

    async def health_check(self) -> dict[str, Any]:
        status: dict[str, Any] = {"provider": self.name, "model": self._model}
        try:
            await self._client.models.retrieve(self._model)
        except anthropic.APIError as e:
            logger.warning("claude_health_check_failed", error=str(e))
            return {**status, "status": "unhealthy", "error": str(e)}
        return {**status, "status": "healthy"}
