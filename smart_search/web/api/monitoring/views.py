from datetime import datetime

from fastapi import APIRouter

from smart_search.settings import settings

router = APIRouter()


@router.get("/health")
def health_check() -> dict:
    """
    Checks the health of a project.

    It returns 200 if the project is healthy.
    """
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
    }
