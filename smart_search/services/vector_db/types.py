"""Shared types for vector database module."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from smart_search.settings import settings


def _utcnow() -> datetime:
    return datetime.utcnow()


class Record(BaseModel):
    """A stored question/answer pair, optionally vectorized."""

    id: Optional[str] = None
    prompt: str = Field(..., min_length=1, max_length=settings.prompt_max_length)
    response: str = Field(..., min_length=1)
    embedding: Optional[List[float]] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("embedding")
    @classmethod
    def _empty_embedding_is_missing(cls, value):
        # an empty vector marks a failed embedding, treat it as absent
        return value or None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class ScoredMatch(BaseModel):
    """A record matched by a query, with its cosine similarity."""

    record: Record
    similarity: float

    model_config = ConfigDict(frozen=True)

    @property
    def similarity_percentage(self) -> str:
        return f"{self.similarity * 100:.1f}%"


class RecordStats(BaseModel):
    """Embedding coverage of the record store."""

    total: int
    with_embedding: int
    without_embedding: int

    @property
    def embedding_coverage(self) -> str:
        if self.total <= 0:
            return "0%"
        return f"{self.with_embedding / self.total * 100:.2f}%"
