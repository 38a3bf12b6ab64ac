"""
Bin Tracker — Liveness and Health Routes
=========================================

What:  `GET /` answers a fixed liveness string; `GET /health` probes the
       database and blob storage for monitoring and load balancers.

Status levels:
    - healthy:   Database reachable and blob storage usable (HTTP 200)
    - unhealthy: Either dependency down (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text

from bintracker import __version__
from bintracker.dependencies import get_blob_store
from bintracker.schemas.bin import HealthResponse
from bintracker.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

LIVENESS_TEXT = "Smart Bin Worker online"

_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Liveness probe")
async def liveness() -> PlainTextResponse:
    return PlainTextResponse(LIVENESS_TEXT)


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "A dependency is down", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(blobs: BlobStore = Depends(get_blob_store)) -> JSONResponse:
    """
    Check the database (SELECT 1) and the blob store root.

    Returns:
        HealthResponse with status for each dependency and uptime.
    """
    db_status = "connected"
    blob_status = "writable"

    try:
        from bintracker.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))

    if not await blobs.is_available():
        blob_status = "unavailable"
        logger.warning("Health check: blob storage unavailable")

    healthy = db_status == "connected" and blob_status == "writable"
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=__version__,
        database=db_status,
        blob_storage=blob_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())
