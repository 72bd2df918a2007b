from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from ethparser.core.config import get_settings
from ethparser.core.logging import configure_logging, request_id_middleware
from ethparser.sync.config import SyncConfig
from ethparser.sync.engine import SyncEngine
from ethparser.sync.router import router as sync_router

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.ENV)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the sync engine with the app and stop it on shutdown."""
    engine: Optional[SyncEngine] = getattr(app.state, "engine", None)
    if engine is None:
        engine = SyncEngine.from_config(SyncConfig.from_settings(settings))
        app.state.engine = engine

    logger.info("Starting Ethereum block parser")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Block source: {engine.client.get_source_name()}")

    if engine.config.enabled:
        await engine.start()
    else:
        logger.warning("Sync engine disabled, serving reads only")

    yield

    # uvicorn has already stopped accepting requests at this point
    logger.info("Shutting down Ethereum block parser")
    if not await engine.stop():
        logger.warning("Sync engine did not stop within its grace period")
    await engine.client.close()
    logger.info("Shutdown complete")


def create_app(engine: Optional[SyncEngine] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        engine: Pre-built engine (tests); built from settings at startup if omitted
    """
    app = FastAPI(title="Ethereum Block Parser", version="0.1.0", lifespan=lifespan)
    if engine is not None:
        app.state.engine = engine

    app.middleware("http")(request_id_middleware)
    app.include_router(sync_router)

    @app.get("/")
    def health_check():
        logger.debug("Health check endpoint called")
        return {"status": "ok"}

    @app.get("/healthz")
    def healthz():
        logger.debug(f"Healthz endpoint called (env: {settings.ENV})")
        return {"status": "healthy", "env": settings.ENV}

    return app


app = create_app()
