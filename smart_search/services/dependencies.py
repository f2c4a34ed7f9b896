from starlette.requests import Request

from smart_search.services.knowledge import KnowledgeService


def get_knowledge_service(request: Request) -> KnowledgeService:  # pragma: no cover
    """
    Get the knowledge service built on startup.

    :param request: current request.
    :return: knowledge service stored in the application state.
    """
    return request.app.state.knowledge_service
