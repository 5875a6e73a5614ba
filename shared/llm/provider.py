"""
LLM Provider Base
=================

Provider-neutral message and response models, the abstract provider used
by the rule generator and the report writer, and the process-wide
provider accessor.

Version: 0.1.0
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from shared.config import settings
from shared.config.settings import LLMProvider as LLMProviderEnum
from shared.errors import ConfigurationError
from shared.logging import get_logger

logger = get_logger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMMessage(BaseModel):
    """One chat message."""

    role: MessageRole | Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        role = self.role.value if isinstance(self.role, MessageRole) else self.role
        return {"role": role, "content": self.content}


class LLMUsage(BaseModel):
    """Token counts and USD cost of one completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0


class LLMResponse(BaseModel):
    content: str = Field(..., description="Generated text")
    model: str = Field(..., description="Model that produced the text")
    provider: str = Field(..., description="Provider name")
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: str | None = None
    latency_ms: float = 0.0


@dataclass(frozen=True)
class TokenPricing:
    """USD price per million input and output tokens."""

    input: float
    output: float

    def usage(self, prompt_tokens: int, completion_tokens: int) -> LLMUsage:
        cost = (prompt_tokens * self.input + completion_tokens * self.output) / 1_000_000
        return LLMUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            total_cost=cost,
        )


def strip_code_fences(text: str) -> str:
    """Remove surrounding markdown code fences from model output."""
    return _FENCE.sub("", text.strip()).strip()


def retry_transient(*errors: type[BaseException], event: str) -> Any:
    """
    Retry decorator for rate limiting and connection errors of an SDK.

    Attempts are bounded by settings.llm.max_retries with exponential wait.
    """
    return retry(
        retry=retry_if_exception_type(errors),
        stop=stop_after_attempt(settings.llm.max_retries),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
        before_sleep=lambda state: logger.warning(
            event,
            attempt=state.attempt_number,
            error=str(state.outcome.exception()) if state.outcome else None,
        ),
    )


def split_system_prompt(messages: list[LLMMessage]) -> tuple[str | None, list[dict[str, str]]]:
    """(joined system prompt, remaining messages) for APIs that take the system prompt apart."""
    system: list[str] = []
    rest: list[dict[str, str]] = []
    for message in messages:
        payload = message.to_dict()
        if payload["role"] == "system":
            system.append(payload["content"])
        else:
            rest.append(payload)
    return ("\n\n".join(system) or None), rest


class LLMProvider(ABC):
    """
    Text generation backend.

    Implementations only provide `complete` and `health_check`; prompt
    helpers are shared.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Run one chat completion.

        Args:
            messages: Conversation, system prompt first if any
            temperature: Sampling temperature (defaults to settings.llm.temperature)
            max_tokens: Completion token limit (defaults to the provider setting)
        """
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        ...

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Completion text for a single user prompt."""
        messages = [LLMMessage(role="user", content=prompt)]
        if system_prompt:
            messages.insert(0, LLMMessage(role="system", content=system_prompt))
        response = await self.complete(messages, **kwargs)
        return response.content

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Completion parsed as JSON.

        Raises:
            json.JSONDecodeError: the model did not return valid JSON
        """
        instruction = "Respond ONLY with valid JSON. No markdown, no explanation."
        system = f"{system_prompt}\n\n{instruction}" if system_prompt else instruction
        text = await self.generate_text(prompt, system_prompt=system, **kwargs)
        return json.loads(strip_code_fences(text))


_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider:
    """
    Configured provider (settings.llm.provider), created on first use.

    Raises:
        ConfigurationError: unknown provider, or its API key is missing
    """
    global _provider

    if _provider is None:
        choice = settings.llm.provider
        if choice == LLMProviderEnum.OPENAI:
            from shared.llm.openai import OpenAIProvider

            _provider = OpenAIProvider()
        elif choice == LLMProviderEnum.CLAUDE:
            from shared.llm.claude import ClaudeProvider

            _provider = ClaudeProvider()
        else:
            raise ConfigurationError(f"Unknown LLM provider: {choice}")

        logger.info("llm_provider_initialized", provider=_provider.name, model=_provider.model)

    return _provider


def set_llm_provider(provider: LLMProvider) -> None:
    """Install a provider instance (tests, scripts)."""
    global _provider
    _provider = provider
    logger.info("llm_provider_set", provider=provider.name, model=provider.model)


def reset_llm_provider() -> None:
    global _provider
    _provider = None
