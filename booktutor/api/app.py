# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the application factory for the BookTutor API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from booktutor.api.chat import router as chat_router
from booktutor.core.config import Settings, get_settings
from booktutor.core.intelligence.llm.client import LLMClient
from booktutor.core.orchestration.cache import TutorAgentCache
from booktutor.core.orchestration.tutor import TutorAgent
from booktutor.domains.books.book import InMemoryBookLibrary
from booktutor.infrastructure.database.connection import (
    check_database_connection,
    close_database,
    create_schema,
    get_sessionmaker,
    init_database,
)
from booktutor.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _load_library(settings: Settings) -> InMemoryBookLibrary:
    if not settings.tutor.library_path:
        logger.warning("No book library configured, starting with an empty library")
        return InMemoryBookLibrary()
    return InMemoryBookLibrary.from_yaml(settings.tutor.library_path)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes logging, the database, the book library and the agent
    cache on startup; closes the database on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    setup_logging(settings)
    logger.info(
        "Starting BookTutor API: environment=%s, model=%s",
        settings.environment,
        settings.llm.model,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    await init_database(settings)
    await create_schema()
    logger.info("Database initialized")

    library = _load_library(settings)
    llm_client = LLMClient(settings.llm)
    sessionmaker = get_sessionmaker()

    async def build_agent(student_id: int, book_id: int) -> TutorAgent:
        return await TutorAgent.create(
            student_id,
            book_id,
            library=library,
            sessionmaker=sessionmaker,
            llm_client=llm_client,
            settings=settings.tutor,
        )

    app.state.library = library
    app.state.sessionmaker = sessionmaker
    app.state.agent_cache = TutorAgentCache(build_agent, settings.tutor.cache_max_size)

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    app.state.agent_cache.clear()
    try:
        await close_database()
        logger.info("Database connection closed")
    except Exception as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down BookTutor API")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use, defaults to get_settings().

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="BookTutor API",
        description="AI tutor guiding students through books",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        database = "healthy" if await check_database_connection() else "unhealthy"
        return {"status": "ok", "database": database}

    app.include_router(chat_router)

    return app
