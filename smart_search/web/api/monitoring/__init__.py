"""API for checking project status."""
from smart_search.web.api.monitoring.views import router

__all__ = ["router"]
