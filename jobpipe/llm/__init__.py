"""LLM provider registry with lazy loading.

Usage:
    from jobpipe.llm import get_provider

    provider = get_provider(config.provider)
    raw = provider.complete(prompt, config.model, system=..., endpoint=config.endpoint)
"""

from __future__ import annotations

import importlib

from jobpipe.core.schemas import AIProvider
from jobpipe.llm.base import LLMProvider

__all__ = ["LLMProvider", "available_providers", "get_provider"]

# Lazy registry: maps provider → (module_path, class_name)
_REGISTRY: dict[AIProvider, tuple[str, str]] = {
    AIProvider.LOCAL_INFERENCE: ("jobpipe.llm.lmstudio", "LMStudioProvider"),
    AIProvider.SELF_HOSTED: ("jobpipe.llm.ollama", "OllamaProvider"),
    AIProvider.HOSTED_API: ("jobpipe.llm.gemini", "GeminiProvider"),
}


def get_provider(name: AIProvider | str) -> LLMProvider:
    """Instantiate and return an LLM provider by name.

    Args:
        name: Provider identifier (local-inference, self-hosted, hosted-api).

    Raises:
        ValueError: If the provider name is unknown.
    """
    try:
        provider = AIProvider(name)
    except ValueError:
        valid = ", ".join(available_providers())
        msg = f"Unknown LLM provider '{name}'. Available: {valid}"
        raise ValueError(msg) from None

    module_path, class_name = _REGISTRY[provider]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls()  # type: ignore[no-any-return]


def available_providers() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(p.value for p in _REGISTRY)
