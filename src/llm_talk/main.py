"""
Main entry point for the llm-talk service.

Creates the FastAPI application instance for uvicorn:

    uvicorn llm_talk.main:app --port 8090
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from llm_talk import __version__
from llm_talk.api.dependencies import OrchestratorPool
from llm_talk.api.error_handlers import register_error_handlers
from llm_talk.api.routes import health_router, providers_router, session_router
from llm_talk.core.config import Settings, get_settings
from llm_talk.core.logging import configure_logging, get_logger
from llm_talk.persistence.memory import InMemoryChangeFeed, InMemorySessionStore
from llm_talk.persistence.protocols import ChangeFeed, SessionStore
from llm_talk.providers.registry import ProviderRegistry


# Configure structured logging on module load
configure_logging()
logger = get_logger(__name__)


def create_app(
    registry: ProviderRegistry | None = None,
    store: SessionStore | None = None,
    feed: ChangeFeed | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every collaborator can be injected; anything left as None is built at
    startup from settings (providers from configured API keys, in-memory
    store and change feed).

    Args:
        registry: Provider adapters keyed by tag
        store: Session persistence
        feed: Change feed the store publishes to; must be the same feed the
            store was built with when both are injected
        settings: Service settings

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Wire shared services onto app.state; close provider clients on shutdown."""
        app_settings = settings or get_settings()
        configure_logging(app_settings)
        logger.info(
            "Starting llm-talk service",
            port=app_settings.port,
            environment=app_settings.environment,
        )

        app_registry = registry if registry is not None else ProviderRegistry.from_settings(app_settings)
        app_feed = feed if feed is not None else InMemoryChangeFeed()
        app_store = store if store is not None else InMemorySessionStore(app_feed)

        app.state.settings = app_settings
        app.state.registry = app_registry
        app.state.feed = app_feed
        app.state.store = app_store
        app.state.pool = OrchestratorPool(app_registry, app_store, app_settings)
        app.state.started_at = datetime.now(UTC)

        if not app_registry.tags():
            logger.warning("No provider API keys configured")

        yield

        logger.info("Shutting down llm-talk service")
        await app_registry.close_all()

    app = FastAPI(
        title="LLM-Talk Service",
        description="Orchestrates turn-based conversations between LLM participants",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(session_router)
    app.include_router(providers_router)

    return app


# Create application instance
app = create_app()
