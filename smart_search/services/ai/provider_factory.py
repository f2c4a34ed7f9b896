"""
Factory for creating AI provider instances.
"""

from typing import Dict, List, Optional, Type

from loguru import logger

from smart_search.services.ai.ollama_provider import OllamaProvider
from smart_search.services.ai.openai_provider import OpenAIProvider
from smart_search.services.ai.provider_base import AIProvider, ProviderConfig
from smart_search.services.errors import ProviderNotFoundError
from smart_search.settings import Settings, settings as default_settings


class AIProviderFactory:
    """
    Registry of provider classes by name.

    New provider variants are registered here; the orchestrator only ever
    deals with the ``AIProvider`` interface.
    """

    def __init__(self):
        """Initialize the factory with the built-in providers."""
        self._provider_registry: Dict[str, Type[AIProvider]] = {}
        self._register_builtin_providers()

    def _register_builtin_providers(self):
        builtin_providers = [
            ("ollama", OllamaProvider),
            ("openai", OpenAIProvider),
        ]
        for name, provider_class in builtin_providers:
            self.register_provider(name, provider_class)

        logger.debug(f"Registered {len(builtin_providers)} built-in providers")

    def register_provider(self, name: str, provider_class: Type[AIProvider]) -> None:
        """
        Register a provider class with the factory.

        :param name: Name to register the provider under
        :param provider_class: Provider class to register
        """
        if name in self._provider_registry:
            logger.warning(f"Overwriting existing provider registration for {name}")

        self._provider_registry[name] = provider_class
        logger.debug(f"Registered provider class: {name}")

    def create_provider(
        self, name: str, config: Optional[ProviderConfig] = None
    ) -> AIProvider:
        """
        Create a provider instance.

        :param name: Registered provider name
        :param config: Provider configuration
        :return: Provider instance
        :raises ProviderNotFoundError: If no class is registered under the name
        """
        if name not in self._provider_registry:
            raise ProviderNotFoundError(name)

        provider = self._provider_registry[name](config=config, name=name)
        logger.info(f"Created {name} provider with model {provider.config.model}")
        return provider

    def get_provider_names(self) -> List[str]:
        return list(self._provider_registry.keys())

    def has_provider(self, name: str) -> bool:
        return name in self._provider_registry

    def build_providers_from_settings(
        self, settings: Optional[Settings] = None
    ) -> Dict[str, AIProvider]:
        """
        Create every provider the settings configure.

        Ollama is always built. OpenAI is built only when an API key is set.

        :param settings: Settings to read, the global settings by default
        :return: Providers keyed by name
        """
        settings = settings or default_settings

        providers: Dict[str, AIProvider] = {
            "ollama": self.create_provider(
                "ollama",
                ProviderConfig(
                    model=settings.ollama_model,
                    endpoint=settings.ollama_endpoint,
                    temperature=settings.ollama_temperature,
                    max_tokens=settings.ollama_max_tokens,
                    timeout=settings.ollama_timeout,
                    health_check_timeout=settings.ai_health_check_timeout,
                ),
            )
        }

        if settings.openai_api_key:
            providers["openai"] = self.create_provider(
                "openai",
                ProviderConfig(
                    model=settings.openai_completion_model,
                    endpoint=settings.openai_base_url,
                    api_key=settings.openai_api_key,
                    temperature=settings.ollama_temperature,
                    max_tokens=settings.ollama_max_tokens,
                    timeout=settings.ollama_timeout,
                    health_check_timeout=settings.ai_health_check_timeout,
                ),
            )

        return providers
