"""Vector database services module."""

# Export types first to avoid circular imports
from smart_search.services.vector_db.types import Record, RecordStats, ScoredMatch

from smart_search.services.vector_db.similarity import cosine_similarity
from smart_search.services.vector_db.search import VectorSearchEngine
from smart_search.services.vector_db.store import InMemoryRecordStore, RecordStore
from smart_search.services.vector_db.sql_store import SQLRecordStore

__all__ = [
    "Record",
    "RecordStats",
    "ScoredMatch",
    "cosine_similarity",
    "VectorSearchEngine",
    "RecordStore",
    "InMemoryRecordStore",
    "SQLRecordStore",
]
