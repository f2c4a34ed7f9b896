"""AI provider backed by a local Ollama server."""

import time
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from loguru import logger

from smart_search.services.ai.provider_base import AIProvider, ProviderConfig
from smart_search.services.ai.types import AIResponse, ChatMessage, ResponseMetadata
from smart_search.services.errors import ProviderError, ProviderErrorType
from smart_search.services.vector_db.types import ScoredMatch

DEFAULT_ENDPOINT = "http://localhost:11434"
DEFAULT_MODEL = "llama3.1:latest"


class OllamaProvider(AIProvider):
    """
    Provider talking to the Ollama HTTP API.

    Single-turn queries go to ``/api/generate``; when prior conversation
    turns are supplied the request goes to ``/api/chat`` with the knowledge
    base context as the system message.
    """

    def __init__(self, config: Optional[ProviderConfig] = None, name: str = "ollama"):
        config = config or ProviderConfig()
        config.endpoint = (config.endpoint or DEFAULT_ENDPOINT).rstrip("/")
        config.model = config.model or DEFAULT_MODEL
        super().__init__(name, config)

    @property
    def base_url(self) -> str:
        return self.config.endpoint

    @property
    def model(self) -> str:
        return self.config.model

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
        use_chat = bool(messages)
        system_prompt = self.build_system_prompt(query, matches)

        request_body: Dict[str, Any] = {
            "model": self.model,
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
            },
        }

        if use_chat:
            request_body["messages"] = [
                {"role": "system", "content": system_prompt},
                *(message.model_dump() for message in messages),
            ]
            endpoint = "/api/chat"
        else:
            request_body["prompt"] = f"{system_prompt}\n\nPlease provide your response:"
            endpoint = "/api/generate"

        logger.debug(f"Calling Ollama {endpoint} with model {self.model}")
        data = await self._request("POST", endpoint, json=request_body)

        if not data.get("done"):
            raise ProviderError(
                "Incomplete response from Ollama", ProviderErrorType.UNKNOWN
            )

        if use_chat:
            content = (data.get("message") or {}).get("content")
        else:
            content = data.get("response")

        if not self.validate_response(content):
            raise ProviderError(
                "Invalid or empty response content", ProviderErrorType.UNKNOWN
            )

        return AIResponse(
            content=content.strip(),
            metadata=ResponseMetadata(
                provider=self.name,
                model=self.model,
                tokens=data.get("eval_count"),
                response_time=int((time.time() - start_time) * 1000),
                confidence=self.calculate_confidence(matches),
            ),
        )

    async def health_check(self) -> bool:
        """
        Check that Ollama answers and has the configured model.

        :return: True if the model (or a tag of it) is available
        """
        try:
            data = await self._request(
                "GET", "/api/tags", timeout_ms=self.config.health_check_timeout
            )
        except Exception as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False

        base_name = self.model.split(":")[0]
        for model in data.get("models") or []:
            name = model.get("name", "")
            if name == self.model or name.startswith(base_name):
                return True

        logger.warning(f"Ollama is up but model {self.model} is not available")
        return False

    async def list_models(self) -> List[str]:
        try:
            data = await self._request("GET", "/api/tags")
        except Exception as e:
            logger.error(f"Failed to list Ollama models: {e}")
            return []
        return [model.get("name", "") for model in data.get("models") or []]

    async def pull_model(self, model_name: str) -> bool:
        """
        Ask Ollama to download a model.

        :param model_name: Name of the model to pull
        :return: True if Ollama accepted the pull
        """
        try:
            await self._request(
                "POST", "/api/pull", json={"name": model_name, "stream": False}
            )
            logger.info(f"Pulled Ollama model {model_name}")
            return True
        except Exception as e:
            logger.error(f"Failed to pull Ollama model {model_name}: {e}")
            return False

    def set_model(self, model_name: str) -> None:
        self.config.model = model_name

    def update_config(self, **changes: Any) -> None:
        self.config = self.config.model_copy(update=changes)
        if "endpoint" in changes:
            self.config.endpoint = (changes["endpoint"] or DEFAULT_ENDPOINT).rstrip("/")

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        timeout_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Send a request to Ollama and decode the JSON body.

        The session lives only for this call, so a timed-out request
        closes its connection instead of leaving it behind.

        :raises ProviderError: On non-2xx responses
        """
        timeout = aiohttp.ClientTimeout(total=(timeout_ms or self.config.timeout) / 1000)
        headers = {"Content-Type": "application/json", **self.config.custom_headers}

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(
                method, f"{self.base_url}{endpoint}", json=json, headers=headers
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise self.error_for_status(response.status, error_text)
                return await response.json(content_type=None)
