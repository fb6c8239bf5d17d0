"""Composting Belt API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CompostingError → structured failure envelopes
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from composting_belt.api.error_handlers import register_error_handlers
from composting_belt.api.routes import (
    batches, contributions, facilities, geofence, health,
)
from composting_belt.api.routes.health import SERVICE_VERSION
from composting_belt.config import get_settings
from composting_belt.infrastructure.database import init_db
from composting_belt.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Composting belt API started")
    yield
    logger.info("Composting belt API shutting down")


app = FastAPI(
    title="Composting Belt API", version=SERVICE_VERSION, lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(facilities.router)
app.include_router(batches.router)
app.include_router(contributions.router)
app.include_router(geofence.router)

register_error_handlers(app)
