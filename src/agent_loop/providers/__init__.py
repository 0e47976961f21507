"""LLM providers: pluggable backends for the agent loop."""

from __future__ import annotations

from ..config import ModelProviderConfig
from .base import LLMProvider, ProviderEvent, ToolCallDelta
from .gemini_provider import GeminiProvider
from .ollama import OllamaProvider
from .openai_provider import OpenAIProvider

KNOWN_PROVIDERS = ("openai", "gemini", "google", "ollama")


def parse_model(model: str) -> tuple[str, str]:
    """
    Split a model string into (provider_name, model_name).

    Expected formats:
    - "provider:model_name" (e.g. "openai:gpt-4.1-nano", "gemini:gemini-2.5-flash")
    - anything else (e.g. "llama3.2", "qwen3:8b") is an Ollama model name.
    """
    model = (model or "").strip()
    if ":" in model:
        prefix, rest = model.split(":", 1)
        if prefix.strip().lower() in KNOWN_PROVIDERS:
            return prefix.strip().lower(), rest.strip()
    return "ollama", model


def create_provider(config: ModelProviderConfig) -> tuple[LLMProvider, str]:
    """Build the provider named by `config.model`; returns (provider, model_name)."""
    provider_name, model_name = parse_model(config.model)
    if provider_name == "openai":
        provider: LLMProvider = OpenAIProvider(
            default_model=model_name or "gpt-4.1-nano",
            api_key=config.api_key,
            base_url=config.base_url,
        )
    elif provider_name in ("gemini", "google"):
        provider = GeminiProvider(default_model=model_name or "gemini-2.5-flash", api_key=config.api_key)
    else:
        provider = OllamaProvider(default_model=model_name or "llama3.2", base_url=config.base_url)
    return provider, provider.default_model


__all__ = [
    "LLMProvider",
    "ProviderEvent",
    "ToolCallDelta",
    "OpenAIProvider",
    "OllamaProvider",
    "GeminiProvider",
    "parse_model",
    "create_provider",
]
