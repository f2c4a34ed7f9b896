"""
AI Services Module for Smart Search

This module provides the AI providers, the orchestrator that retries and
falls back between them, and the embedding gateway.
"""

from typing import Dict, Optional, Type

from .types import AIResponse, ChatMessage, ResponseSource, ServiceResponse
from .provider_base import AIProvider, ProviderConfig
from .ollama_provider import OllamaProvider
from .openai_provider import OpenAIProvider
from .health import ProviderHealth, ProviderHealthCache
from .fallback import FallbackSynthesizer
from .embeddings import EmbeddingGateway
from .orchestrator import AIOrchestrator
from .provider_factory import AIProviderFactory

# Create a singleton instance of AIProviderFactory
_provider_factory = AIProviderFactory()


def create_provider(name: str, config: Optional[ProviderConfig] = None) -> AIProvider:
    """
    Create an AI provider by registered name.

    :param name: Name of the provider class
    :param config: Optional provider configuration
    :return: Provider instance
    """
    return _provider_factory.create_provider(name, config)


def register_provider(name: str, provider_class: Type[AIProvider]) -> None:
    """
    Register a new AI provider class.

    :param name: Name for the provider
    :param provider_class: Provider class to register
    """
    _provider_factory.register_provider(name, provider_class)


def build_providers_from_settings() -> Dict[str, AIProvider]:
    return _provider_factory.build_providers_from_settings()


__all__ = [
    "AIResponse",
    "ChatMessage",
    "ResponseSource",
    "ServiceResponse",
    "AIProvider",
    "ProviderConfig",
    "OllamaProvider",
    "OpenAIProvider",
    "ProviderHealth",
    "ProviderHealthCache",
    "FallbackSynthesizer",
    "EmbeddingGateway",
    "AIOrchestrator",
    "AIProviderFactory",
    "create_provider",
    "register_provider",
    "build_providers_from_settings",
]
