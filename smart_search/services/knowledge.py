"""Knowledge service tying together storage, embeddings, search and AI answers."""

from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from smart_search.services.ai.embeddings import EmbeddingGateway
from smart_search.services.ai.fallback import FallbackSynthesizer
from smart_search.services.ai.orchestrator import AIOrchestrator
from smart_search.services.ai.types import ChatMessage, ServiceResponse
from smart_search.services.errors import ProviderNotFoundError, RecordValidationError
from smart_search.services.vector_db.search import VectorSearchEngine
from smart_search.services.vector_db.store import RecordStore
from smart_search.services.vector_db.types import Record, RecordStats, ScoredMatch
from smart_search.settings import settings

AI_TEST_QUERY = "Hello, this is a test query"


class KnowledgeService:
    """
    Entry point used by the API to search and answer from the knowledge base.

    Each query is embedded, compared against every stored record and
    handed with its ranked matches to the AI orchestrator.
    """

    def __init__(
        self,
        store: RecordStore,
        gateway: EmbeddingGateway,
        orchestrator: AIOrchestrator,
        search_engine: Optional[VectorSearchEngine] = None,
        synthesizer: Optional[FallbackSynthesizer] = None,
    ):
        """
        Initialize the service.

        :param store: Record persistence
        :param gateway: Embedding client
        :param orchestrator: AI orchestrator producing answers
        :param search_engine: Ranks records against a query vector
        :param synthesizer: Formats plain match listings
        """
        self.store = store
        self.gateway = gateway
        self.orchestrator = orchestrator
        self.search_engine = search_engine or VectorSearchEngine()
        self.synthesizer = synthesizer or orchestrator.synthesizer or FallbackSynthesizer()

    async def search(
        self,
        query: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[ScoredMatch]:
        """
        Find the records most similar to a query.

        :param query: Natural language query
        :param threshold: Minimum similarity, settings default if omitted
        :param limit: Maximum number of matches, settings default if omitted
        :return: Matches sorted by descending similarity
        :raises EmbeddingError: If the query cannot be embedded
        """
        threshold = settings.search_default_threshold if threshold is None else threshold
        limit = settings.search_default_limit if limit is None else limit

        query_vector = await self.gateway.embed(query)
        candidates = await self.store.find_all_with_embedding()
        return self.search_engine.search(query_vector, candidates, threshold, limit)

    async def answer(
        self,
        query: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        messages: Optional[Sequence[ChatMessage]] = None,
    ) -> ServiceResponse:
        """
        Answer a query from the knowledge base.

        :param query: Natural language query
        :param threshold: Minimum similarity of the context records
        :param limit: Maximum number of context records
        :param messages: Optional prior conversation turns
        :return: AI answer, or a fallback built from the matches
        """
        matches = await self.search(query, threshold, limit)
        logger.info(f"Answering query with {len(matches)} context matches")
        return await self.orchestrator.generate_response(query, matches, messages)

    async def embed_and_store(self, prompt: str, response: str) -> str:
        """
        Validate, embed and store a new question/answer pair.

        :param prompt: Question text
        :param response: Answer text
        :return: Id of the stored record
        :raises RecordValidationError: If the pair or its embedding is invalid
        :raises EmbeddingError: If the prompt cannot be embedded
        """
        try:
            record = Record(prompt=prompt, response=response)
        except ValidationError as e:
            raise RecordValidationError(_validation_message(e)) from e

        embedding = await self.gateway.embed(record.prompt)
        if not self.gateway.is_valid_embedding(embedding):
            raise RecordValidationError(
                f"Embedding must have {self.gateway.dimensions} finite numbers, "
                f"got {len(embedding)} values"
            )

        record_id = await self.store.insert(record.model_copy(update={"embedding": embedding}))
        logger.info(f"Prompt saved with embedding, ID: {record_id}")
        return record_id

    async def migrate_missing_embeddings(self) -> int:
        """
        Embed every stored record that has no embedding yet.

        Records whose embedding fails or comes back invalid are left as they are.

        :return: Number of records updated
        """
        pending = await self.store.find_without_embedding()
        if not pending:
            logger.info("All prompts already have embeddings")
            return 0

        logger.info(f"Updating {len(pending)} prompts with embeddings...")
        embeddings = await self.gateway.embed_batch([record.prompt for record in pending])

        updated = 0
        for record, embedding in zip(pending, embeddings):
            if not self.gateway.is_valid_embedding(embedding):
                logger.warning(f"Invalid embedding for record {record.id}")
                continue
            await self.store.update_embedding(record.id, embedding)
            updated += 1

        logger.info(f"Successfully updated {updated} prompts with embeddings")
        return updated

    async def stats(self) -> RecordStats:
        total = await self.store.count()
        with_embedding = await self.store.count(with_embedding=True)
        return RecordStats(
            total=total,
            with_embedding=with_embedding,
            without_embedding=total - with_embedding,
        )

    async def health(self) -> Dict[str, Any]:
        return {
            "providers": await self.orchestrator.get_health_status(),
            "orchestrator_info": self.orchestrator.get_service_info(),
        }

    async def recent(self, limit: int = 10) -> List[Record]:
        return await self.store.find_recent(limit)

    async def delete(self, record_id: str) -> bool:
        deleted = await self.store.delete(record_id)
        if deleted:
            logger.info(f"Deleted record {record_id}")
        return deleted

    async def test_ai(self) -> bool:
        """
        Send a test query without context to the primary provider.

        Fallback content never counts as a working AI service.

        :return: True if the provider itself answered
        """
        try:
            return await self.orchestrator.test_provider(query=AI_TEST_QUERY)
        except ProviderNotFoundError as e:
            logger.error(f"AI service test failed: {e}")
            return False

    async def list_models(self) -> List[str]:
        return await self.orchestrator.list_available_models()

    async def pull_model(self, model_name: str) -> bool:
        return await self.orchestrator.pull_model(model_name)

    def format_matches(self, matches: Sequence[ScoredMatch]) -> str:
        return self.synthesizer.format_matches(matches)


def _validation_message(error: ValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    ]
    return "; ".join(problems)
