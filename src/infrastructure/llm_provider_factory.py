"""LLM Provider Factory for runtime provider selection.

The client names the backend per request ("anthropic" or "openai"). The
factory maps that name onto a registered provider and falls back to the
default provider for unknown or missing names.

Usage:
    factory = LlmProviderFactory()
    factory.register_provider(LlmProviderType.ANTHROPIC, anthropic_provider)
    factory.register_provider(LlmProviderType.OPENAI, openai_provider)

    provider = factory.get_provider_for_name(request.provider)
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from application.agents.llm_provider import LlmProvider, LlmProviderError, LlmProviderType, ModelDefinition

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)


class LlmProviderFactory:
    """Factory for selecting LLM providers.

    Thread Safety:
    - Provider registration should happen during startup
    - Runtime selection is read-only
    """

    def __init__(self, default_provider: LlmProviderType = LlmProviderType.ANTHROPIC) -> None:
        """Initialize the factory.

        Args:
            default_provider: Provider used when a request names none or an unknown one
        """
        self._providers: dict[LlmProviderType, LlmProvider] = {}
        self._default_provider_type = default_provider

    @property
    def default_provider_type(self) -> LlmProviderType:
        """Get the default provider type."""
        return self._default_provider_type

    @property
    def available_providers(self) -> list[LlmProviderType]:
        """Get list of registered provider types."""
        return list(self._providers.keys())

    @property
    def available_models(self) -> list[ModelDefinition]:
        """Get the model allow-lists of every registered provider."""
        models: list[ModelDefinition] = []
        for provider in self._providers.values():
            models.extend(provider.MODELS)
        return models

    def register_provider(self, provider_type: LlmProviderType, provider: LlmProvider) -> None:
        """Register a provider instance.

        Args:
            provider_type: The provider type identifier
            provider: The provider instance
        """
        self._providers[provider_type] = provider
        logger.info(f"Registered LLM provider: {provider_type.value}")

    def get_provider(self, provider_type: LlmProviderType) -> Optional[LlmProvider]:
        """Get a provider by type.

        Returns:
            Provider instance or None if not registered
        """
        return self._providers.get(provider_type)

    def get_default_provider(self) -> LlmProvider:
        """Get the default provider.

        Raises:
            LlmProviderError: If no providers are registered
        """
        provider = self._providers.get(self._default_provider_type)
        if provider:
            return provider

        # Fallback to first available provider
        if self._providers:
            fallback_type = next(iter(self._providers.keys()))
            logger.warning(f"Default provider {self._default_provider_type.value} not available, using {fallback_type.value}")
            return self._providers[fallback_type]

        raise LlmProviderError(
            message="No LLM providers are available",
            error_code="no_providers_available",
            provider="factory",
            is_retryable=False,
        )

    def get_provider_for_name(self, name: Optional[str]) -> LlmProvider:
        """Get the provider a request asked for.

        Args:
            name: Provider name from the request ("anthropic", "openai"); may be None

        Returns:
            The named provider, or the default one when the name is unknown or not registered

        Raises:
            LlmProviderError: If no providers are registered
        """
        if name:
            try:
                provider = self._providers.get(LlmProviderType(name.lower()))
            except ValueError:
                logger.info(f"Unknown provider '{name}', using default '{self._default_provider_type.value}'")
                provider = None
            if provider:
                return provider
        return self.get_default_provider()

    def is_provider_available(self, provider_type: LlmProviderType) -> bool:
        return provider_type in self._providers

    def describe_models(self) -> dict[str, Any]:
        """Describe the selectable providers and models for the client."""
        return {
            "defaultProvider": self._default_provider_type.value,
            "providers": [
                {
                    "id": provider_type.value,
                    "name": provider.DISPLAY_NAME,
                    "defaultModel": provider.default_model,
                    "models": [m.to_dict() for m in provider.MODELS],
                }
                for provider_type, provider in self._providers.items()
            ],
        }

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "LlmProviderFactory":
        """Configure LlmProviderFactory in the service collection.

        This should be called after individual providers are configured.

        Args:
            builder: The application builder

        Returns:
            Configured factory instance
        """
        from application.settings import get_settings
        from infrastructure.adapters.anthropic_llm_provider import AnthropicLlmProvider
        from infrastructure.adapters.openai_llm_provider import OpenAiLlmProvider

        settings = get_settings(builder)

        try:
            default_provider = LlmProviderType(settings.default_llm_provider)
        except ValueError:
            logger.warning(f"Unknown default_llm_provider '{settings.default_llm_provider}', using anthropic")
            default_provider = LlmProviderType.ANTHROPIC

        factory = LlmProviderFactory(default_provider=default_provider)

        for desc in builder.services:
            if desc.service_type is AnthropicLlmProvider and desc.singleton:
                factory.register_provider(LlmProviderType.ANTHROPIC, desc.singleton)
            elif desc.service_type is OpenAiLlmProvider and desc.singleton:
                factory.register_provider(LlmProviderType.OPENAI, desc.singleton)

        builder.services.add_singleton(LlmProviderFactory, singleton=factory)

        logger.info(f"✅ Configured LlmProviderFactory: providers={[p.value for p in factory.available_providers]}, default={default_provider.value}")
        return factory
