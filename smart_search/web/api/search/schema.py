"""Smart search API schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from smart_search.services.vector_db.types import Record
from smart_search.settings import settings


class SearchRequest(BaseModel):
    """Query parameters shared by smart search and similarity lookups."""

    query: str = Field(..., description="Natural language query")
    limit: int = Field(
        settings.search_default_limit,
        description="Maximum number of matches",
        ge=1,
        le=settings.search_max_limit,
    )
    threshold: float = Field(
        settings.search_default_threshold,
        description="Minimum cosine similarity of a match",
        ge=settings.search_min_threshold,
        le=1.0,
    )

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Query is required and cannot be empty")
        return value.strip()


class RecordOut(BaseModel):
    """A stored prompt without its raw embedding."""

    id: Optional[str] = None
    prompt: str
    response: str
    has_embedding: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: Record) -> "RecordOut":
        return cls(
            id=record.id,
            prompt=record.prompt,
            response=record.response,
            has_embedding=record.has_embedding,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class SmartSearchResponse(BaseModel):
    """Answer to a query together with the records it was built from."""

    response: str = Field(..., description="Generated or synthesized answer")
    source: str = Field(..., description="Either 'ai' or 'fallback'")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    sources: List[RecordOut] = Field(default_factory=list)
    similarity_scores: List[float] = Field(default_factory=list)


class SimilarResult(BaseModel):
    document: RecordOut
    similarity_score: float
    similarity_percentage: str


class FindSimilarResponse(BaseModel):
    """Ranked matches of a query without any generated answer."""

    query: str
    found_count: int
    results: List[SimilarResult]
    formatted: str = Field(..., description="Markdown listing of the matches")


class SmartPromptRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=settings.prompt_max_length)
    response: str = Field(..., min_length=1)


class SmartPromptResponse(BaseModel):
    id: str
    message: str
    prompt: str
    response: str


class DeletePromptResponse(BaseModel):
    id: str
    deleted: bool


class MigrationResponse(BaseModel):
    message: str
    updated_count: int


class EmbeddingStatsResponse(BaseModel):
    total_prompts: int
    prompts_with_embeddings: int
    prompts_without_embeddings: int
    embedding_coverage: str


class AIServiceStatus(BaseModel):
    configured: bool
    info: Dict[str, Any]
    providers: Dict[str, bool]


class SmartHealthResponse(BaseModel):
    """Health of the embedding and AI layers."""

    status: str
    openai_configured: bool
    embedding_service: bool
    ai_service: AIServiceStatus
    timestamp: str


class TestAIResponse(BaseModel):
    ai_service_working: bool
    providers_health: Dict[str, bool]
    timestamp: str


class ModelsResponse(BaseModel):
    available_models: List[str]
    current_model: Optional[str] = None
    endpoint: Optional[str] = None


class PullModelRequest(BaseModel):
    model: str = Field(..., min_length=1, description="Name of the model to pull")


class PullModelResponse(BaseModel):
    success: bool
    model: str
    message: str
