"""
VidTube - FastAPI Backend
Main application entry point with health check and API routing.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import Settings, get_settings, validate_security_settings
from database import Base, build_engine, build_session_maker
import models  # noqa: F401
from routers import (
    comments,
    dashboard,
    health,
    likes,
    playlists,
    subscriptions,
    tweets,
    users,
    videos,
)
from routers.boundary import register_error_handlers
from services.media_store import LocalMediaStore, build_media_store

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("api_starting media_store=%s", settings.MEDIA_STORE)
    validate_security_settings(settings)
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with app.state.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("database_schema_verified")
        except Exception as exc:
            logger.warning("database_bootstrap_skipped error=%s", exc)
    yield
    await app.state.engine.dispose()
    logger.info("api_stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="VidTube API",
        description="Video sharing backend: accounts, videos, comments, likes, playlists, subscriptions and tweets",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_maker = build_session_maker(app.state.engine, settings.STORE_TIMEOUT_SECONDS)
    app.state.media_store = build_media_store(settings)
    app.state.disable_rate_limits = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(health.api_router, prefix=API_PREFIX, tags=["Health"])
    app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["Users"])
    app.include_router(videos.router, prefix=f"{API_PREFIX}/videos", tags=["Videos"])
    app.include_router(comments.router, prefix=f"{API_PREFIX}/comments", tags=["Comments"])
    app.include_router(tweets.router, prefix=f"{API_PREFIX}/tweets", tags=["Tweets"])
    app.include_router(likes.router, prefix=f"{API_PREFIX}/likes", tags=["Likes"])
    app.include_router(subscriptions.router, prefix=f"{API_PREFIX}/subscriptions", tags=["Subscriptions"])
    app.include_router(playlists.router, prefix=f"{API_PREFIX}/playlist", tags=["Playlists"])
    app.include_router(dashboard.router, prefix=f"{API_PREFIX}/dashboard", tags=["Dashboard"])

    if isinstance(app.state.media_store, LocalMediaStore):
        app.mount(
            app.state.media_store.url_prefix,
            StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
            name="media",
        )

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "VidTube API",
            "version": "0.1.0",
            "status": "running",
        }

    return app


app = create_app()
