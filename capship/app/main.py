"""
FastAPI application factory.

Run with:
    capship --config /etc/capship/capship.env

Or directly under uvicorn:
    uvicorn capship.app.main:create_app --factory --port 8080
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

# ── Core infrastructure ──
from capship.app.core.config import Settings, get_settings
from capship.app.core.errors import register_error_handlers
from capship.app.core.logging_config import setup_logging
from capship.app.core.middleware import RequestLoggingMiddleware

# ── Domain services ──
from capship.app.feeds.generator import FeedIdentity
from capship.app.feeds.jobs import AggregationJob
from capship.app.storage.store import DocumentKind, DocumentStore

# ── API routers ──
from capship.app.api.v1.cap import router as cap_router

APP_NAME = "capship"
APP_VERSION = "0.1.0"


def create_app(settings: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> FastAPI:
    """Build the application around one store and one aggregation job."""
    settings = settings or get_settings()
    log = logger or setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    store = DocumentStore(settings.ROOT, logger=log, feed_filename=settings.FEED_FILENAME)
    job = AggregationJob(
        store,
        FeedIdentity.from_settings(settings),
        logger=log,
        interval_seconds=settings.AGGREGATION_INTERVAL_SECONDS,
    )

    # ── Application lifespan (startup / shutdown) ──

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Starting %s v%s, root %s", APP_NAME, APP_VERSION, settings.ROOT)
        await job.start()
        yield
        await job.stop()
        log.info("Shutting down %s", APP_NAME)

    app = FastAPI(
        title=APP_NAME,
        description=(
            "Stores uploaded CAP alerts, aggregates them into an Atom feed "
            "and serves both."
        ),
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.aggregation_job = job

    # ── Middleware & error handlers ──
    app.add_middleware(RequestLoggingMiddleware, logger=log)
    register_error_handlers(app, log)

    # ── Routers & static files ──
    app.include_router(cap_router)
    app.mount("/feeds", StaticFiles(directory=str(store.directory(DocumentKind.FEEDS))), name="feeds")
    app.mount("/alerts", StaticFiles(directory=str(store.directory(DocumentKind.ALERTS))), name="alerts")

    @app.get("/health", tags=["health"])
    async def health_check():
        """Liveness probe with the outcome of the last aggregation run."""
        return {
            "status": "alive",
            "service": APP_NAME,
            "version": APP_VERSION,
            "aggregation": job.last_run.to_dict(),
        }

    return app
