"""
Formflow API - FastAPI Application

Main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from formflow import __version__
from formflow.config import get_settings
from formflow.core.database import close_db, init_db
from formflow.routers import (
    approvals_router,
    data_sources_router,
    field_types_router,
    forms_router,
    submissions_router,
)
from formflow.services.button_dispatcher import DispatcherRegistry
from formflow.services.data_resolver import DataBoundFieldResolver, DataProviderRegistry
from formflow.services.events import EventSink, LoggingEventSink
from formflow.services.protocol import DataProvider

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Suppress noisy third-party loggers
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Formflow API...")
    settings = get_settings()

    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connection established")

    logger.info(f"Formflow API started in {settings.environment} mode")

    yield

    # Shutdown
    logger.info("Shutting down Formflow API...")
    pruned = app.state.dispatch_handles.prune()
    if pruned:
        logger.info(f"Dropped {pruned} idle button handle(s)")
    await close_db()
    logger.info("Formflow API shutdown complete")


def create_app(
    data_provider: DataProvider | None = None,
    event_sink: EventSink | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        data_provider: Connector(s) for data-bound fields; defaults to an
            empty DataProviderRegistry that connectors register into
        event_sink: Receiver for engine events; defaults to logging them

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Formflow API",
        description="Form definition and submission workflow engine",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Long-lived engine collaborators shared by all requests
    app.state.data_providers = data_provider or DataProviderRegistry()
    app.state.data_resolver = DataBoundFieldResolver(app.state.data_providers)
    app.state.event_sink = event_sink or LoggingEventSink()
    app.state.dispatch_handles = DispatcherRegistry()

    # Register routers
    app.include_router(field_types_router)
    app.include_router(forms_router)
    app.include_router(submissions_router)
    app.include_router(approvals_router)
    app.include_router(data_sources_router)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "name": "Formflow API",
            "version": __version__,
            "docs": "/docs",
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "formflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
