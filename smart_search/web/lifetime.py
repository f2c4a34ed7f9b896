from typing import Awaitable, Callable

from fastapi import FastAPI
from loguru import logger

from smart_search.db.models import load_all_models
from smart_search.services.ai.embeddings import EmbeddingGateway
from smart_search.services.ai.orchestrator import AIOrchestrator
from smart_search.services.ai.provider_factory import AIProviderFactory
from smart_search.services.knowledge import KnowledgeService
from smart_search.services.vector_db.sql_store import SQLRecordStore
from smart_search.settings import settings


async def _setup_store(app: FastAPI) -> None:  # pragma: no cover
    """
    Creates connection to the database.

    This function creates the SQL record store, makes sure its tables
    exist and stores it in the application's state property.

    :param app: fastAPI application.
    """
    load_all_models()
    store = SQLRecordStore.from_url(str(settings.db_url), echo=settings.db_echo)
    try:
        await store.create_tables()
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise
    app.state.record_store = store


def _setup_knowledge_service(app: FastAPI) -> None:  # pragma: no cover
    """
    Build the AI providers, the orchestrator and the knowledge service.

    :param app: fastAPI application.
    """
    providers = AIProviderFactory().build_providers_from_settings(settings)
    orchestrator = AIOrchestrator(providers=providers)
    gateway = EmbeddingGateway()

    app.state.knowledge_service = KnowledgeService(
        store=app.state.record_store,
        gateway=gateway,
        orchestrator=orchestrator,
    )
    logger.info(f"Initialized {len(providers)} AI providers: {', '.join(providers)}")


def register_startup_event(
    app: FastAPI,
) -> Callable[[], Awaitable[None]]:  # pragma: no cover
    """
    Actions to run on application startup.

    This function uses fastAPI app to store data
    in the state, such as the record store.

    :param app: the fastAPI application.
    :return: function that actually performs actions.
    """

    @app.on_event("startup")
    async def _startup() -> None:  # noqa: WPS430
        app.middleware_stack = None
        await _setup_store(app)
        _setup_knowledge_service(app)
        app.middleware_stack = app.build_middleware_stack()

    return _startup


def register_shutdown_event(
    app: FastAPI,
) -> Callable[[], Awaitable[None]]:  # pragma: no cover
    """
    Actions to run on application's shutdown.

    :param app: fastAPI application.
    :return: function that actually performs actions.
    """

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # noqa: WPS430
        if hasattr(app.state, "knowledge_service"):
            await app.state.knowledge_service.orchestrator.shutdown()
        if hasattr(app.state, "record_store"):
            await app.state.record_store.dispose()

    return _shutdown
