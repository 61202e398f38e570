"""Health check endpoint - no authentication required."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from imagecache import __version__
from imagecache.config.database import db_manager
from imagecache.container import container

logger = logging.getLogger(__name__)


class HealthChecks(BaseModel):
    """Individual health check results."""

    model_config = ConfigDict(strict=True)

    database_latency_ms: Optional[int] = None
    cache_files: Optional[int] = None
    cache_bytes: Optional[int] = None


class HealthStatus(BaseModel):
    """Application health status."""

    model_config = ConfigDict(strict=True)

    status: str  # "healthy", "unhealthy"
    version: str  # imagecache version
    database: str  # "connected", "disconnected"
    cache_dir_writable: bool
    timestamp: datetime
    checks: Optional[HealthChecks] = None


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    data: HealthStatus


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint - no authentication required.

    Returns application health status including:
    - Database connectivity
    - Cache directory usability and size
    - Application version
    """
    db_status = "disconnected"
    db_latency_ms: Optional[int] = None
    try:
        start = time.monotonic()
        async for session in db_manager.get_session():
            await session.execute(text("SELECT 1"))
            break
        db_latency_ms = int((time.monotonic() - start) * 1000)
        db_status = "connected"
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Health check database probe failed: %s", exc)

    blob_store = container.blob_store
    try:
        blob_store.ensure_directory()
        cache_dir_writable = True
    except OSError:
        cache_dir_writable = False
    cache_files, cache_bytes = blob_store.total_size()

    if db_status == "disconnected" or not cache_dir_writable:
        status = "unhealthy"
    else:
        status = "healthy"

    health_data = HealthStatus(
        status=status,
        version=__version__,
        database=db_status,
        cache_dir_writable=cache_dir_writable,
        timestamp=datetime.now(timezone.utc),
        checks=HealthChecks(
            database_latency_ms=db_latency_ms,
            cache_files=cache_files,
            cache_bytes=cache_bytes,
        ),
    )

    return HealthResponse(data=health_data)
