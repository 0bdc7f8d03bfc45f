from __future__ import annotations

import logging

from fastapi import FastAPI

from agenda.api.v1.auth import router as auth_router
from agenda.api.v1.calendar import router as calendar_router
from agenda.api.v1.health import router as health_router
from agenda.config import settings
from agenda.db.base import create_db_and_tables

# Configure basic logging
logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

description = """
Personal scheduling calendar: events with daily / weekly / monthly
recurrence expanded into the requested window, month / week / day views.
"""
tags_metadata = [
    {"name": "Authentication & Testing", "description": "Development-only token issuing."},
    {"name": "calendar", "description": "Occurrences, views and event mutations."},
    {"name": "Health", "description": "Liveness and dependency checks."},
]

app = FastAPI(
    title="Agenda API",
    description=description,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)

app.include_router(auth_router)
app.include_router(calendar_router)
app.include_router(health_router)

log.info("\U0001F331 FastAPI application configured. Environment: %s", settings.ENVIRONMENT)


@app.on_event("startup")
async def startup_event() -> None:
    # В dev/test схему создаём сами, в prod ей управляет alembic
    if settings.EVENT_STORE == "sql" and settings.ENVIRONMENT != "prod":
        await create_db_and_tables()
    log.info("\U0001F680 FastAPI application startup complete.")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    log.info("\U0001F44B FastAPI application shutdown.")
