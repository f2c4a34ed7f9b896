"""AI provider backed by the OpenAI chat completions API."""

import time
from typing import Any, List, Optional, Sequence

import openai
from loguru import logger
from openai import AsyncOpenAI

from smart_search.services.ai.provider_base import AIProvider, ProviderConfig
from smart_search.services.ai.types import AIResponse, ChatMessage, ResponseMetadata
from smart_search.services.errors import ProviderError, ProviderErrorType
from smart_search.services.vector_db.types import ScoredMatch

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(AIProvider):
    """Provider using ``AsyncOpenAI`` chat completions."""

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        name: str = "openai",
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the provider.

        :param config: Provider configuration, ``api_key`` is required unless a client is given
        :param name: Registry name of the provider
        :param client: Pre-built client, mostly for tests
        """
        config = config or ProviderConfig()
        config.model = config.model or DEFAULT_MODEL
        super().__init__(name, config)
        self.client = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.endpoint,
            timeout=config.timeout / 1000,
            max_retries=0,
            default_headers=config.custom_headers or None,
        )

    async def generate_response(
        self,
        query: str,
        matches: Sequence[ScoredMatch],
        messages: Optional[Sequence[ChatMessage]] = None,
    ) -> AIResponse:
        return await self.run_with_metrics(
            self._generate_response, query, matches, messages
        )

    async def _generate_response(
        self,
        query: str,
        matches: Sequence[ScoredMatch],
        messages: Optional[Sequence[ChatMessage]],
    ) -> AIResponse:
        start_time = time.time()
        chat_messages = [
            {"role": "system", "content": self.build_system_prompt(query, matches)}
        ]
        if messages:
            chat_messages.extend(message.model_dump() for message in messages)
        else:
            chat_messages.append({"role": "user", "content": query})

        completion = await self.client.chat.completions.create(
            model=self.config.model,
            messages=chat_messages,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

        content = completion.choices[0].message.content if completion.choices else None
        if not self.validate_response(content):
            raise ProviderError(
                "Invalid or empty response content", ProviderErrorType.UNKNOWN
            )

        usage = completion.usage
        return AIResponse(
            content=content.strip(),
            metadata=ResponseMetadata(
                provider=self.name,
                model=completion.model or self.config.model,
                tokens=usage.completion_tokens if usage else None,
                response_time=int((time.time() - start_time) * 1000),
                confidence=self.calculate_confidence(matches),
            ),
        )

    def handle_error(self, error: BaseException) -> ProviderError:
        # APITimeoutError subclasses APIConnectionError, check it first
        if isinstance(error, openai.APITimeoutError):
            return ProviderError(
                "Request timed out", ProviderErrorType.TIMEOUT, retryable=True
            )
        if isinstance(error, openai.APIConnectionError):
            return ProviderError(
                "Network connection failed",
                ProviderErrorType.NETWORK,
                retryable=True,
                details=str(error),
            )
        return super().handle_error(error)

    async def health_check(self) -> bool:
        try:
            models = await self.list_models(raise_errors=True)
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False
        return self.config.model in models

    async def list_models(self, raise_errors: bool = False) -> List[str]:
        try:
            page = await self.client.models.list()
            return [model.id async for model in page]
        except Exception as e:
            if raise_errors:
                raise
            logger.error(f"Failed to list OpenAI models: {e}")
            return []

    def set_model(self, model_name: str) -> None:
        self.config.model = model_name

    def update_config(self, **changes: Any) -> None:
        self.config = self.config.model_copy(update=changes)
