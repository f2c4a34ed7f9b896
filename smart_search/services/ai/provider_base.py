"""Base class for all AI providers."""

import abc
import asyncio
import socket
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from loguru import logger
from pydantic import BaseModel, Field

from smart_search.services.ai.types import AIResponse, ChatMessage
from smart_search.services.errors import ProviderError, ProviderErrorType
from smart_search.services.vector_db.types import ScoredMatch

# Number of ranked matches rendered into the prompt context
MAX_CONTEXT_MATCHES = 5
MAX_RESPONSE_LENGTH = 10000


class ProviderConfig(BaseModel):
    """Connection and generation options of a provider."""

    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 500
    timeout: int = Field(30000, description="Request timeout in milliseconds")
    health_check_timeout: int = Field(5000, description="Health probe timeout in milliseconds")
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    custom_headers: Dict[str, str] = Field(default_factory=dict)


class AIProvider(abc.ABC):
    """
    Abstract base class for all AI providers.

    A provider turns a query plus ranked knowledge-base matches into an
    ``AIResponse`` and can report whether it is currently usable. Failures
    are always raised as ``ProviderError`` so the orchestrator can decide
    whether to retry.
    """

    def __init__(self, name: str, config: Optional[ProviderConfig] = None):
        """
        Initialize the provider base.

        :param name: Registry name of the provider
        :param config: Provider configuration
        """
        self.name = name
        self.config = config or ProviderConfig()
        self.metrics = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_processing_time": 0,
            "last_request_time": None,
        }
        logger.debug(f"Initialized {self.name} provider")

    @abc.abstractmethod
    async def generate_response(
        self,
        query: str,
        matches: Sequence[ScoredMatch],
        messages: Optional[Sequence[ChatMessage]] = None,
    ) -> AIResponse:
        """
        Generate a response for a query using ranked matches as context.

        :param query: User query
        :param matches: Ranked knowledge-base matches
        :param messages: Optional prior conversation turns
        :return: AIResponse
        :raises ProviderError: On any failure
        """

    @abc.abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is available. Never raises.

        :return: True if the provider can serve requests
        """

    async def list_models(self) -> List[str]:
        """
        List the models the provider can serve.

        :return: Model names, empty if the provider cannot tell
        """
        return []

    def get_provider_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "config": {
                "model": self.config.model,
                "endpoint": self.config.endpoint,
                "timeout": self.config.timeout,
            },
        }

    def _track_metric(self, metric_name: str, increment: float = 1):
        self.metrics[metric_name] = self.metrics.get(metric_name, 0) + increment

    def get_metrics(self) -> Dict[str, Any]:
        return dict(self.metrics)

    async def run_with_metrics(self, func, *args, **kwargs):
        """
        Run a provider call while tracking metrics.

        Any exception is converted to a ``ProviderError`` before it leaves.

        :param func: Async function to run
        :return: Result of the function
        """
        start_time = time.time()
        self._track_metric("total_requests")

        try:
            result = await func(*args, **kwargs)
            self._track_metric("successful_requests")
            return result
        except Exception as e:
            self._track_metric("failed_requests")
            error = self.handle_error(e)
            logger.warning(
                f"{self.name} provider error ({error.type.value}, "
                f"retryable={error.retryable}): {error.message}"
            )
            raise error from e
        finally:
            self._track_metric("total_processing_time", time.time() - start_time)
            self.metrics["last_request_time"] = datetime.utcnow().isoformat()

    def handle_error(self, error: BaseException) -> ProviderError:
        """
        Classify an exception into a ``ProviderError``.

        :param error: Exception raised while talking to the provider
        :return: ProviderError with type and retryable flag set
        """
        if isinstance(error, ProviderError):
            return error

        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            return ProviderError(
                "Request timed out", ProviderErrorType.TIMEOUT, retryable=True
            )

        if isinstance(
            error, (aiohttp.ClientConnectionError, ConnectionError, socket.gaierror)
        ):
            return ProviderError(
                "Network connection failed",
                ProviderErrorType.NETWORK,
                retryable=True,
                details=str(error),
            )

        status = getattr(error, "status", None) or getattr(error, "status_code", None)
        if isinstance(status, int):
            return self.error_for_status(status, str(error))

        return ProviderError(
            str(error) or "Unknown error",
            ProviderErrorType.UNKNOWN,
            retryable=False,
            details=repr(error),
        )

    @staticmethod
    def error_for_status(status: int, details: Optional[str] = None) -> ProviderError:
        """
        Map an HTTP status code onto the provider error taxonomy.

        :param status: HTTP status returned by the provider
        :param details: Response body or error text
        :return: ProviderError
        """
        if status in (401, 403):
            return ProviderError(
                f"Authentication failed ({status})",
                ProviderErrorType.AUTH,
                retryable=False,
                details=details,
            )
        if status == 429:
            return ProviderError(
                "Rate limit exceeded",
                ProviderErrorType.RATE_LIMIT,
                retryable=True,
                details=details,
            )
        if status >= 500:
            return ProviderError(
                f"Model service error ({status})",
                ProviderErrorType.MODEL_ERROR,
                retryable=True,
                details=details,
            )
        return ProviderError(
            f"Provider API error ({status}): {details or 'no details'}",
            ProviderErrorType.UNKNOWN,
            retryable=False,
            details=details,
        )

    def build_system_prompt(self, query: str, matches: Sequence[ScoredMatch]) -> str:
        """
        Build the system prompt with the top ranked matches as context.

        :param query: User query
        :param matches: Ranked matches, best first
        :return: Prompt text
        """
        context_prompts = "\n\n".join(
            f"[Context {index}] (Similarity: {match.similarity * 100:.1f}%)\n"
            f"Prompt: {match.record.prompt}\n"
            f"Response: {match.record.response}"
            for index, match in enumerate(matches[:MAX_CONTEXT_MATCHES], start=1)
        )

        return f"""You are an intelligent assistant that provides helpful responses based on a knowledge base of prompts and responses.

Use the following context to answer the user's query. The context items are ranked by similarity to the user's question.

Context from knowledge base:
{context_prompts}

Guidelines:
- Provide a comprehensive, helpful response based on the context
- If the context contains relevant information, use it to inform your answer
- If the context doesn't fully address the query, supplement with general knowledge while noting what came from the knowledge base
- Be accurate, concise, and actionable
- Reference the context when it's directly relevant
- Maintain a helpful and professional tone

User Query: {query}"""

    @staticmethod
    def validate_response(content: Optional[str]) -> bool:
        return (
            isinstance(content, str)
            and 0 < len(content.strip()) < MAX_RESPONSE_LENGTH
        )

    @staticmethod
    def calculate_confidence(matches: Sequence[ScoredMatch]) -> float:
        """
        Estimate answer confidence from the similarity of the context used.

        :param matches: Matches that were given to the model
        :return: Confidence in [0.3, 0.9]
        """
        if not matches:
            return 0.3  # No context to ground the answer

        similarities = [match.similarity for match in matches]
        avg_similarity = sum(similarities) / len(similarities)
        top_similarity = max(similarities)

        similarity_factor = (avg_similarity + top_similarity) / 2
        source_factor = min(len(matches), MAX_CONTEXT_MATCHES) / MAX_CONTEXT_MATCHES

        return min(0.9, 0.4 + similarity_factor * 0.4 + source_factor * 0.1)
