"""
Document QA Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Design Goals
------------
- Deterministic startup
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import settings
from .core.errors import (
    ServiceError,
    http_exception_handler,
    request_validation_handler,
    service_error_handler,
    unhandled_exception_handler,
)
from .api import (
    document_routes,
    extract_routes,
    health_routes,
    qa_routes,
)
from .api.dependencies import get_text_cache
from .db.session import async_engine


logger = logging.getLogger("docqa.app")


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Fail-fast configuration check on startup; release process-wide
    resources on shutdown.
    """
    logger.info("Starting doc-qa-server (store=%s)", settings.document_store)

    if settings.openai_api_key is None:
        raise RuntimeError("OPENAI_API_KEY is required")
    _ = settings.openai_api_key.get_secret_value()

    logger.info("Configuration validated successfully")

    yield

    logger.info("Shutting down doc-qa-server")
    get_text_cache().clear()
    await async_engine.dispose()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="doc-qa-server",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(qa_routes.router)
    app.include_router(extract_routes.router)
    app.include_router(document_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
