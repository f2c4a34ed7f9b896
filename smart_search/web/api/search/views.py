"""Smart search API views."""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status
from loguru import logger

from smart_search.services.dependencies import get_knowledge_service
from smart_search.services.errors import (
    EmbeddingError,
    ProviderError,
    ProviderNotFoundError,
    RecordValidationError,
)
from smart_search.services.knowledge import KnowledgeService
from smart_search.settings import settings

from .schema import (
    AIServiceStatus,
    DeletePromptResponse,
    EmbeddingStatsResponse,
    FindSimilarResponse,
    MigrationResponse,
    ModelsResponse,
    PullModelRequest,
    PullModelResponse,
    RecordOut,
    SearchRequest,
    SimilarResult,
    SmartHealthResponse,
    SmartPromptRequest,
    SmartPromptResponse,
    SmartSearchResponse,
    TestAIResponse,
)

router = APIRouter()


def _http_error(error: Exception, action: str) -> HTTPException:
    """
    Translate a service error into an HTTP error.

    :param error: Error raised by the knowledge service
    :param action: What the endpoint was doing, used in the error title
    :returns: HTTPException with an ``{error, message}`` detail
    """
    if isinstance(error, RecordValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, ProviderNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, EmbeddingError):
        status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(error, ProviderError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.error(f"Error during {action}: {error}")
    return HTTPException(
        status_code=status_code,
        detail={"error": f"Failed during {action}", "message": str(error)},
    )


@router.post("/smart-search", response_model=SmartSearchResponse)
async def smart_search(
    request: SearchRequest = Body(...),
    service: KnowledgeService = Depends(get_knowledge_service),
) -> SmartSearchResponse:
    """
    Answer a query from the knowledge base.

    :param request: Query, limit and threshold
    :param service: Knowledge service
    :returns: Answer with the records it is based on
    """
    logger.info(f'Smart search query: "{request.query}"')
    try:
        answer = await service.answer(request.query, request.threshold, request.limit)
        logger.info(
            f"Generated response using {answer.metadata.provider} ({answer.source.value})"
        )
        # Searched again to list the sources next to the answer
        matches = await service.search(request.query, request.threshold, request.limit)
    except Exception as e:
        raise _http_error(e, "smart search")

    return SmartSearchResponse(
        response=answer.content,
        source=answer.source.value,
        metadata=answer.to_dict()["metadata"],
        sources=[RecordOut.from_record(match.record) for match in matches],
        similarity_scores=[match.similarity for match in matches],
    )


@router.post("/find-similar", response_model=FindSimilarResponse)
async def find_similar(
    request: SearchRequest = Body(...),
    service: KnowledgeService = Depends(get_knowledge_service),
) -> FindSimilarResponse:
    """
    Search for similar prompts without generating an answer.

    :param request: Query, limit and threshold
    :param service: Knowledge service
    :returns: Ranked matches
    """
    logger.info(f'Finding similar prompts for: "{request.query}"')
    try:
        matches = await service.search(request.query, request.threshold, request.limit)
    except Exception as e:
        raise _http_error(e, "similarity search")

    return FindSimilarResponse(
        query=request.query,
        found_count=len(matches),
        results=[
            SimilarResult(
                document=RecordOut.from_record(match.record),
                similarity_score=match.similarity,
                similarity_percentage=match.similarity_percentage,
            )
            for match in matches
        ],
        formatted=service.format_matches(matches),
    )


@router.post("/smart-prompt", response_model=SmartPromptResponse)
async def smart_prompt(
    request: SmartPromptRequest = Body(...),
    service: KnowledgeService = Depends(get_knowledge_service),
) -> SmartPromptResponse:
    """
    Save a prompt and its response together with the prompt embedding.

    :param request: Prompt and response to store
    :param service: Knowledge service
    :returns: Id of the stored prompt
    """
    logger.info(f'Saving smart prompt: "{request.prompt[:50]}..."')
    try:
        record_id = await service.embed_and_store(request.prompt, request.response)
    except Exception as e:
        raise _http_error(e, "prompt saving")

    return SmartPromptResponse(
        id=record_id,
        message="Prompt saved successfully with embedding",
        prompt=request.prompt,
        response=request.response,
    )


@router.get("/prompts", response_model=List[RecordOut])
async def list_prompts(
    limit: int = Query(10, ge=1, le=100, description="Number of prompts to return"),
    service: KnowledgeService = Depends(get_knowledge_service),
) -> List[RecordOut]:
    records = await service.recent(limit)
    logger.debug(f"Retrieved prompts: {len(records)}")
    return [RecordOut.from_record(record) for record in records]


@router.delete("/prompts/{prompt_id}", response_model=DeletePromptResponse)
async def delete_prompt(
    prompt_id: str = Path(..., description="Id of the prompt to delete"),
    service: KnowledgeService = Depends(get_knowledge_service),
) -> DeletePromptResponse:
    if not await service.delete(prompt_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Prompt not found", "message": f"Prompt {prompt_id} not found"},
        )
    return DeletePromptResponse(id=prompt_id, deleted=True)


@router.post("/migrate-embeddings", response_model=MigrationResponse)
async def migrate_embeddings(
    service: KnowledgeService = Depends(get_knowledge_service),
) -> MigrationResponse:
    logger.info("Starting embedding migration...")
    try:
        updated_count = await service.migrate_missing_embeddings()
    except Exception as e:
        raise _http_error(e, "embedding migration")

    return MigrationResponse(
        message="Embedding migration completed",
        updated_count=updated_count,
    )


@router.get("/embedding-stats", response_model=EmbeddingStatsResponse)
async def embedding_stats(
    service: KnowledgeService = Depends(get_knowledge_service),
) -> EmbeddingStatsResponse:
    try:
        stats = await service.stats()
    except Exception as e:
        raise _http_error(e, "embedding stats")

    return EmbeddingStatsResponse(
        total_prompts=stats.total,
        prompts_with_embeddings=stats.with_embedding,
        prompts_without_embeddings=stats.without_embedding,
        embedding_coverage=stats.embedding_coverage,
    )


@router.get("/smart-health", response_model=SmartHealthResponse)
async def smart_health(
    service: KnowledgeService = Depends(get_knowledge_service),
) -> SmartHealthResponse:
    """
    Report provider health and orchestrator configuration.

    :param service: Knowledge service
    :returns: Health summary
    """
    try:
        health = await service.health()
    except Exception as e:
        raise _http_error(e, "smart health check")

    return SmartHealthResponse(
        status="healthy",
        openai_configured=bool(settings.openai_api_key),
        embedding_service=service.gateway is not None,
        ai_service=AIServiceStatus(
            configured=service.orchestrator is not None,
            info=health["orchestrator_info"],
            providers=health["providers"],
        ),
        timestamp=datetime.utcnow().isoformat(),
    )


@router.post("/test-ai", response_model=TestAIResponse)
async def test_ai(
    service: KnowledgeService = Depends(get_knowledge_service),
) -> TestAIResponse:
    working = await service.test_ai()
    health = await service.health()
    return TestAIResponse(
        ai_service_working=working,
        providers_health=health["providers"],
        timestamp=datetime.utcnow().isoformat(),
    )


@router.get("/ai-models", response_model=ModelsResponse)
async def list_ai_models(
    service: KnowledgeService = Depends(get_knowledge_service),
) -> ModelsResponse:
    try:
        models = await service.list_models()
    except Exception as e:
        raise _http_error(e, "model listing")

    provider = service.orchestrator.providers.get(service.orchestrator.primary_provider)
    return ModelsResponse(
        available_models=models,
        current_model=provider.config.model if provider else None,
        endpoint=provider.config.endpoint if provider else None,
    )


@router.post("/ai-models/pull", response_model=PullModelResponse)
async def pull_ai_model(
    request: PullModelRequest = Body(...),
    service: KnowledgeService = Depends(get_knowledge_service),
) -> PullModelResponse:
    try:
        success = await service.pull_model(request.model)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Failed to pull AI model", "message": str(e)},
        )
    except Exception as e:
        raise _http_error(e, "model pull")

    return PullModelResponse(
        success=success,
        model=request.model,
        message=(
            f"Model {request.model} pulled successfully"
            if success
            else f"Failed to pull model {request.model}"
        ),
    )
