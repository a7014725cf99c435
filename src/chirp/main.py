# src/chirp/main.py
"""Main entry point for the Chirp application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from chirp.api.v1 import auth_router, posts_router, users_router
from chirp.core.errors import register_exception_handlers
from chirp.core.logging import AccessLogMiddleware, configure_logging
from chirp.core.settings import settings
from chirp.db.session import Database
from chirp.services.storage import MediaStorageClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the database engine and storage client for the app's lifetime."""
    configure_logging()
    database = Database(
        settings.database_url,
        echo=settings.sql_debug,
        connect_timeout_seconds=settings.db_connect_timeout_seconds,
        pool_timeout_seconds=settings.db_pool_timeout_seconds,
    )
    if settings.auto_create_tables:
        database.create_tables()
    storage = MediaStorageClient()
    if not storage.enabled:
        logger.warning("Media storage is not configured; image uploads will fail")

    app.state.database = database
    app.state.storage = storage
    logger.info("%s %s started", settings.app_name, settings.app_version)
    try:
        yield
    finally:
        await storage.close()
        database.dispose()
        logger.info("%s stopped", settings.app_name)


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Social network API: posts, likes, reposts, bookmarks, follows and notifications",
    version=settings.app_version,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)
app.add_middleware(AccessLogMiddleware)

register_exception_handlers(app)

# Include API routers
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(posts_router, prefix=settings.api_prefix)
app.include_router(users_router, prefix=settings.api_prefix)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chirp.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
