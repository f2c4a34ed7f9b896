"""Shared types for the AI services module."""

import enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

FALLBACK_PROVIDER_NAME = "vector-fallback"


class ChatMessage(BaseModel):
    """One conversation turn passed to a chat-capable provider."""

    role: Literal["system", "user", "assistant"]
    content: str


class ResponseMetadata(BaseModel):
    """Metadata of a single generation attempt."""

    provider: str
    model: Optional[str] = None
    tokens: Optional[int] = None
    response_time: int = Field(0, description="Milliseconds spent producing the content")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class AIResponse(BaseModel):
    """Successful result of an AI provider call."""

    content: str
    metadata: ResponseMetadata


class ResponseSource(str, enum.Enum):
    """Where a service response came from."""

    AI = "ai"
    FALLBACK = "fallback"


class ServiceMetadata(ResponseMetadata):
    """Response metadata plus what the orchestrator did to get it."""

    confidence: float = Field(..., ge=0.0, le=1.0)
    retry_count: Optional[int] = None
    fallback_reason: Optional[str] = None


class ServiceResponse(BaseModel):
    """Unified answer handed back to callers of the orchestrator."""

    content: str
    source: ResponseSource
    metadata: ServiceMetadata

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class FallbackMetadata(BaseModel):
    """Metadata of a response synthesized from search results."""

    provider: str = FALLBACK_PROVIDER_NAME
    source_count: int
    avg_similarity: float
    response_time: int
    confidence: float


class FallbackResult(BaseModel):
    """Deterministic answer built by the fallback synthesizer."""

    content: str
    metadata: FallbackMetadata
