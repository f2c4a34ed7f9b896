"""Services package for smart_search."""

from smart_search.services import ai, vector_db

__all__ = [
    "ai",
    "vector_db",
]
