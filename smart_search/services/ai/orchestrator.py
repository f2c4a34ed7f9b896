"""Multi-provider AI invocation with health-gated retries and fallback."""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from smart_search.services.ai.fallback import FallbackSynthesizer
from smart_search.services.ai.health import ProviderHealthCache
from smart_search.services.ai.ollama_provider import OllamaProvider
from smart_search.services.ai.provider_base import AIProvider
from smart_search.services.ai.types import (
    FALLBACK_PROVIDER_NAME,
    ChatMessage,
    ResponseSource,
    ServiceMetadata,
    ServiceResponse,
)
from smart_search.services.errors import ProviderError, ProviderErrorType, ProviderNotFoundError
from smart_search.services.vector_db.types import ScoredMatch
from smart_search.settings import settings

DEFAULT_CONFIDENCE = 0.5
DEFAULT_TEST_QUERY = "Hello, how are you?"


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, ProviderError) and error.retryable


class AIOrchestrator:
    """
    Answers queries through the primary AI provider.

    Every attempt first consults the cached health of the primary provider.
    Retryable failures are retried with exponential backoff up to
    ``max_retries`` times. When the attempts run out, or a failure is not
    retryable, the answer is synthesized from the search results instead,
    unless fallback is disabled, in which case the last error is raised.
    """

    def __init__(
        self,
        providers: Optional[Dict[str, AIProvider]] = None,
        primary_provider: Optional[str] = None,
        fallback_enabled: Optional[bool] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[int] = None,
        health_check_interval: Optional[int] = None,
        synthesizer: Optional[FallbackSynthesizer] = None,
        health_cache: Optional[ProviderHealthCache] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the orchestrator.

        :param providers: Providers keyed by name
        :param primary_provider: Name of the provider answering queries
        :param fallback_enabled: Whether to synthesize an answer when the provider fails
        :param max_retries: Retries after the first attempt
        :param retry_delay: Backoff base delay in milliseconds
        :param health_check_interval: Health cache lifetime in milliseconds
        :param synthesizer: Builds fallback answers
        :param health_cache: Shared provider health cache
        :param sleep: Awaitable sleep used between attempts
        :param clock: Returns the current time in seconds
        """
        self.providers: Dict[str, AIProvider] = dict(providers or {})
        self.primary_provider = primary_provider or settings.ai_primary_provider
        self.fallback_enabled = (
            settings.ai_fallback_enabled if fallback_enabled is None else fallback_enabled
        )
        self.max_retries = settings.ai_retry_attempts if max_retries is None else max_retries
        self.retry_delay = settings.ai_retry_delay if retry_delay is None else retry_delay
        self.health_check_interval = (
            settings.ai_health_check_interval
            if health_check_interval is None
            else health_check_interval
        )
        self.synthesizer = synthesizer or FallbackSynthesizer()
        self.health_cache = health_cache or ProviderHealthCache(clock=clock)
        self.sleep = sleep
        self.clock = clock

        logger.info(
            f"Initialized AI orchestrator with {len(self.providers)} providers, "
            f"primary: {self.primary_provider}"
        )

    async def generate_response(
        self,
        query: str,
        matches: Sequence[ScoredMatch],
        messages: Optional[Sequence[ChatMessage]] = None,
    ) -> ServiceResponse:
        """
        Answer a query, falling back to the search results if needed.

        :param query: User query
        :param matches: Ranked knowledge-base matches
        :param messages: Optional prior conversation turns
        :return: ServiceResponse
        :raises ProviderError: If every attempt failed and fallback is disabled
        """
        start_time = self.clock()
        attempts = 0
        last_error: Optional[ProviderError] = None

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_delay / 1000),
            retry=retry_if_exception(_is_retryable),
            sleep=self.sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    try:
                        response = await self._attempt(query, matches, messages)
                    except ProviderError as e:
                        last_error = e
                        logger.warning(
                            f"AI provider attempt {attempts} failed: {e.message}"
                        )
                        raise
        except ProviderError:
            pass
        else:
            metadata = response.metadata.model_dump()
            if metadata.get("confidence") is None:
                metadata["confidence"] = DEFAULT_CONFIDENCE
            metadata["retry_count"] = attempts - 1 if attempts > 1 else None
            return ServiceResponse(
                content=response.content,
                source=ResponseSource.AI,
                metadata=ServiceMetadata(**metadata),
            )

        if not self.fallback_enabled:
            raise last_error

        logger.info("Falling back to vector-based response generation")
        fallback = self.synthesizer.synthesize(query, matches)
        return ServiceResponse(
            content=fallback.content,
            source=ResponseSource.FALLBACK,
            metadata=ServiceMetadata(
                provider=FALLBACK_PROVIDER_NAME,
                response_time=int((self.clock() - start_time) * 1000),
                confidence=fallback.metadata.confidence,
                retry_count=attempts - 1,
                fallback_reason=(
                    last_error.message if last_error else "AI provider unavailable"
                ),
            ),
        )

    async def _attempt(
        self,
        query: str,
        matches: Sequence[ScoredMatch],
        messages: Optional[Sequence[ChatMessage]],
    ):
        provider = self.providers.get(self.primary_provider)
        if provider is None:
            raise ProviderError(
                "Primary AI provider not available",
                ProviderErrorType.UNKNOWN,
                retryable=True,
            )

        if not await self._check_health(self.primary_provider, provider):
            raise ProviderError(
                "Primary provider failed health check",
                ProviderErrorType.UNKNOWN,
                retryable=True,
            )

        try:
            return await provider.generate_response(query, matches, messages)
        except ProviderError:
            raise
        except Exception as e:
            raise provider.handle_error(e) from e

    async def _check_health(self, name: str, provider: AIProvider) -> bool:
        """
        Return the cached health of a provider, refreshing it once stale.

        :param name: Registry name of the provider
        :param provider: Provider to probe
        """
        if self.health_cache.is_fresh(name, self.health_check_interval):
            return self.health_cache.get(name).healthy

        try:
            healthy = await provider.health_check()
        except Exception as e:
            logger.error(f"Health check failed for {name}: {e}")
            healthy = False

        self.health_cache.set(name, healthy)
        return healthy

    def add_provider(self, name: str, provider: AIProvider) -> None:
        self.providers[name] = provider
        logger.info(f"Added AI provider: {name}")

    def remove_provider(self, name: str) -> bool:
        removed = self.providers.pop(name, None) is not None
        if removed:
            logger.info(f"Removed AI provider: {name}")
        return removed

    def set_primary_provider(self, name: str) -> None:
        """
        Switch the provider answering queries.

        :param name: Registered provider name
        :raises ProviderNotFoundError: If no provider has that name
        """
        if name not in self.providers:
            raise ProviderNotFoundError(name)
        self.primary_provider = name
        logger.info(f"Switched primary provider to: {name}")

    async def get_health_status(self) -> Dict[str, bool]:
        return {
            name: await self._check_health(name, provider)
            for name, provider in self.providers.items()
        }

    def get_service_info(self) -> Dict[str, Any]:
        providers = {}
        for name, provider in self.providers.items():
            health = self.health_cache.get(name)
            providers[name] = {
                **provider.get_provider_info(),
                "healthy": health.healthy if health else False,
                "last_health_check": (
                    datetime.fromtimestamp(health.last_checked_at, tz=timezone.utc).isoformat()
                    if health
                    else None
                ),
            }

        return {
            "primary_provider": self.primary_provider,
            "fallback_enabled": self.fallback_enabled,
            "retry_attempts": self.max_retries,
            "providers": providers,
        }

    async def test_provider(
        self, name: Optional[str] = None, query: str = DEFAULT_TEST_QUERY
    ) -> bool:
        """
        Run one generation without context against a provider.

        :param name: Provider name, the primary provider by default
        :param query: Query to send
        :return: True if the provider produced content
        :raises ProviderNotFoundError: If no provider has that name
        """
        name = name or self.primary_provider
        provider = self.providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(name)

        try:
            response = await provider.generate_response(query, [])
        except Exception as e:
            logger.error(f"Provider {name} test failed: {e}")
            return False
        return len(response.content) > 0

    async def list_available_models(self) -> List[str]:
        provider = self.providers.get(self.primary_provider)
        if provider is None:
            return []
        return await provider.list_models()

    async def pull_model(self, model_name: str) -> bool:
        """
        Download a model through the Ollama provider.

        :param model_name: Model to pull
        :raises ValueError: If no Ollama provider is registered
        """
        provider = self.providers.get("ollama")
        if not isinstance(provider, OllamaProvider):
            raise ValueError("Model pulling only supported for Ollama provider")
        return await provider.pull_model(model_name)

    def update_config(
        self,
        primary_provider: Optional[str] = None,
        fallback_enabled: Optional[bool] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[int] = None,
        health_check_interval: Optional[int] = None,
    ) -> None:
        if primary_provider is not None:
            self.set_primary_provider(primary_provider)
        if fallback_enabled is not None:
            self.fallback_enabled = fallback_enabled
        if max_retries is not None:
            self.max_retries = max_retries
        if retry_delay is not None:
            self.retry_delay = retry_delay
        if health_check_interval is not None:
            self.health_check_interval = health_check_interval

    async def shutdown(self) -> None:
        logger.info("Shutting down AI orchestrator...")
        self.providers.clear()
