"""Rapport HTTP API: FastAPI application factory.

The app factory creates a FastAPI instance with:
- CORS middleware (configurable origins)
- Lifespan handler that connects the database pool on startup and closes it
  on shutdown
- The tracker router (health endpoint included) under ``/api``
- Error envelope handlers from :mod:`rapport.api.middleware`
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import rapport
from rapport.api.middleware import register_error_handlers
from rapport.api.router import get_tracker
from rapport.api.router import router as crm_router
from rapport.config import RapportConfig
from rapport.service import RelationshipTracker

logger = logging.getLogger(__name__)


def create_app(
    config: RapportConfig | None = None,
    tracker: RelationshipTracker | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    config:
        Loaded configuration. Defaults to ``RapportConfig()``.
    tracker:
        Pre-built tracker. When omitted one is built from ``config.database``
        and its pool is opened and closed by the app lifespan. A supplied
        tracker is used as-is; the caller owns its database.
    cors_origins:
        Allowed CORS origins; overrides ``config.api.cors_origins``.
    """
    config = config or RapportConfig()
    if cors_origins is None:
        cors_origins = config.api.cors_origins

    owned_db = None
    if tracker is None:
        owned_db = config.database.to_database()
        tracker = RelationshipTracker(owned_db, config.queries)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owned_db is not None:
            await owned_db.connect()
            logger.info("Database pool ready for '%s'", owned_db.db_name)
        try:
            yield
        finally:
            if owned_db is not None:
                await owned_db.close()

    app = FastAPI(
        title="Rapport API",
        version=rapport.__version__,
        lifespan=lifespan,
    )
    app.router.redirect_slashes = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(crm_router)
    app.dependency_overrides[get_tracker] = lambda: tracker
    app.state.tracker = tracker

    return app
