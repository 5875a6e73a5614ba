"""
OpenAI Provider
===============

OpenAI chat completions backend. Default provider for rule generation
and compliance reports.

Version: 0.1.0
"""

import time
from typing import Any

import openai

from shared.config import settings
from shared.errors import ConfigurationError
from shared.llm.provider import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TokenPricing,
    retry_transient,
)
from shared.logging import get_logger

logger = get_logger(__name__)

OPENAI_PRICING = {
    "gpt-4o": TokenPricing(input=2.50, output=10.00),
    "gpt-4o-mini": TokenPricing(input=0.15, output=0.60),
    "gpt-4.1-mini": TokenPricing(input=0.40, output=1.60),
}
DEFAULT_PRICING = OPENAI_PRICING["gpt-4o-mini"]


class OpenAIProvider(LLMProvider):
    """OpenAI GPT backend. Requires OPENAI_API_KEY."""

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        key = api_key or settings.llm.openai.api_key.get_secret_value()
        if not key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")

        self._model = model or settings.llm.openai.model
        self._max_tokens = settings.llm.openai.max_tokens
        self._pricing = OPENAI_PRICING.get(self._model, DEFAULT_PRICING)
        self._client = openai.AsyncOpenAI(api_key=key, timeout=settings.llm.timeout_seconds)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    @retry_transient(openai.RateLimitError, openai.APIConnectionError, event="openai_retry")
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        started = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[message.to_dict() for message in messages],
                temperature=settings.llm.temperature if temperature is None else temperature,
                max_completion_tokens=max_tokens or self._max_tokens,
            )
        except openai.APIError as e:
            logger.error("openai_request_failed", model=self._model, error_type=type(e).__name__, error=str(e))
            raise
        latency_ms = (time.perf_counter() - started) * 1000

        tokens = response.usage
        usage = self._pricing.usage(
            tokens.prompt_tokens if tokens else 0,
            tokens.completion_tokens if tokens else 0,
        )
        choice = response.choices[0]
        logger.debug(
            "openai_completion",
            model=self._model,
            tokens=usage.total_tokens,
            cost=round(usage.total_cost, 5),
            latency_ms=round(latency_ms, 2),
        )
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            provider=self.name,
            usage=usage,
            finish_reason=choice.finish_reason,
            latency_ms=latency_ms,
        )

    async def health_check(self) -> dict[str, Any]:
        status: dict[str, Any] = {"provider": self.name, "model": self._model}
        try:
            await self._client.models.retrieve(self._model)
        except openai.APIError as e:
            logger.warning("openai_health_check_failed", error=str(e))
            return {**status, "status": "unhealthy", "error": str(e)}
        return {**status, "status": "healthy"}
