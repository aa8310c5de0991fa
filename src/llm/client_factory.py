# src/llm/client_factory.py — v3
"""Factory: instantiate LLM client from provider name.

Called when services are assembled to create the extraction and repair
clients from the llm/config.py cascade.
"""

from __future__ import annotations

import importlib
import logging

from actionextractor.config.settings import Settings
from actionextractor.llm.base_client import BaseLLMClient
from actionextractor.llm.config import LLMAssignment

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "actionextractor.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "actionextractor.llm.adapters.openai_adapter.OpenAIAdapter",
    "google": "actionextractor.llm.adapters.google_adapter.GoogleAdapter",
}

_API_KEY_ATTR = {
    "anthropic": "anthropic_api_key",
    "openai": "openai_api_key",
    "google": "google_api_key",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (anthropic, openai, google).
        model: Model name (e.g. claude-sonnet-4-6).
        settings: Application settings (for API keys).
        **kwargs: Additional provider-specific arguments.

    Returns:
        Configured BaseLLMClient instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if settings is not None and provider in _API_KEY_ATTR:
        init_kwargs.setdefault("api_key", getattr(settings, _API_KEY_ATTR[provider]))

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_client_for(assignment: LLMAssignment, settings: Settings) -> BaseLLMClient:
    """Instantiate the adapter for a resolved component assignment."""
    return create_llm_client(assignment.provider, assignment.model, settings)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s → %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
