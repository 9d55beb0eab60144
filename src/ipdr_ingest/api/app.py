"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ipdr_ingest.api.routes import health, ipdr
from ipdr_ingest.core.config import AppSettings
from ipdr_ingest.core.logging import setup_logging
from ipdr_ingest.services.ingest import IngestService, create_ingest_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings: AppSettings = app.state.settings
    setup_logging(settings.log_level)
    if getattr(app.state, "service", None) is None:
        app.state.service = create_ingest_service(settings)
    yield


def create_app(
    settings: AppSettings | None = None, service: IngestService | None = None
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="IPDR Ingest",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or AppSettings()
    app.state.service = service
    app.include_router(health.router)
    app.include_router(ipdr.router, prefix="/api")
    return app
