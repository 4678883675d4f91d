"""FastAPI application factory for the image gateway."""

from __future__ import annotations

import inspect
import logging

from fastapi import FastAPI

from .api import router
from .config import Settings, get_settings
from .store import create_db_engine, create_session_factory, init_schema

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    logging.basicConfig(level=logging.INFO)
    app = FastAPI(
        title="Image Gateway",
        description="Stores uploaded images and serves resized variants addressed by path.",
        version="0.1.0",
    )
    app.include_router(router)
    app.state.engine = None
    app.state.session_factory = None

    async def _resolve_settings() -> Settings:
        override = app.dependency_overrides.get(get_settings)
        if override is None:
            return get_settings()

        candidate = override()
        if inspect.isawaitable(candidate):
            return await candidate
        return candidate

    @app.on_event("startup")
    async def start_services() -> None:
        """Open the document store connection pool."""
        settings = await _resolve_settings()
        settings.cache_folder.mkdir(parents=True, exist_ok=True)
        engine = create_db_engine(settings.database_url, pool_size=settings.database_pool_size)
        init_schema(engine)
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        logger.info(
            "Image gateway ready",
            extra={
                "cache_folder": str(settings.cache_folder),
                "stored_size": f"{settings.stored_width}x{settings.stored_height}",
            },
        )

    @app.on_event("shutdown")
    async def shutdown_services() -> None:
        """Release pooled store connections."""
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            engine.dispose()
            app.state.engine = None
        app.state.session_factory = None

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured bind address."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
