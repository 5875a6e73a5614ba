"""
LLM Provider Module
===================

Text generation for the AI rule source and the report writer. OpenAI is
the default backend and Anthropic Claude the alternative; the choice is
`settings.llm.provider`.

Usage:
    from shared.llm import get_llm_provider

    provider = get_llm_provider()
    text = await provider.generate_text(
        "List federal payroll obligations for an LLC with 12 employees.",
        system_prompt="You are a US business compliance expert.",
    )

Backends are imported on first use, so an unused SDK is never loaded.
"""

from shared.llm.provider import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    LLMUsage,
    TokenPricing,
    get_llm_provider,
    reset_llm_provider,
    set_llm_provider,
    strip_code_fences,
)

__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "LLMUsage",
    "TokenPricing",
    "get_llm_provider",
    "reset_llm_provider",
    "set_llm_provider",
    "strip_code_fences",
]
