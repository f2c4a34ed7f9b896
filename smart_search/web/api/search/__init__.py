"""Smart search API."""
from smart_search.web.api.search.views import router

__all__ = ["router"]
