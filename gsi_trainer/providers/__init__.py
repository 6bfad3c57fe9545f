from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gsi_trainer.config import Settings
    from gsi_trainer.providers.base import LLMProvider

PROVIDERS = ("gemini", "ollama", "anthropic", "openai")


def create_provider(settings: Settings) -> LLMProvider:
    """Build the single LLM client the application owns."""
    s = settings
    if s.llm_provider == "gemini":
        from gsi_trainer.providers.llm_gemini import GeminiProvider
        return GeminiProvider(model=s.llm_model, max_tokens=s.max_output_tokens)
    elif s.llm_provider == "ollama":
        from gsi_trainer.providers.llm_ollama import OllamaProvider
        return OllamaProvider(
            base_url=s.ollama_url,
            model=s.llm_model,
            timeout=s.llm_timeout,
            max_tokens=s.max_output_tokens,
        )
    elif s.llm_provider == "anthropic":
        from gsi_trainer.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=s.llm_model, max_tokens=s.max_output_tokens)
    elif s.llm_provider == "openai":
        from gsi_trainer.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=s.llm_model)
    raise ValueError(f"Unknown LLM provider: {s.llm_provider}")
