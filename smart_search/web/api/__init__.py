"""API package for smart_search."""

from smart_search.web.api import monitoring, search

__all__ = [
    "monitoring",
    "search",
]
