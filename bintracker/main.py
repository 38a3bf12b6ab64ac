"""
Bin Tracker — FastAPI Application Factory
==========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn bintracker.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────┐
    │                     FastAPI App                       │
    │                                                       │
    │  Middleware:  Trailing slash → Request ID → Logging   │
    │               → GZip → CORS                           │
    │                                                       │
    │  Routes:                                              │
    │  ┌────────────┐ ┌──────────────────┐ ┌─────────────┐  │
    │  │ GET /      │ │ /api/bin/{id}    │ │ GET /health │  │
    │  │            │ │ /bin/{id}[/photo]│ │             │  │
    │  └────────────┘ └──────────────────┘ └─────────────┘  │
    │                                                       │
    │  Exception Handlers:                                  │
    │  BadRequest→400 │ NotFound→404 │ 404/405 plain text   │
    │  BlobStorage→500 │ anything else→500                  │
    └───────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, blob storage directory, SQLite schema (if SQLite)
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bintracker import __version__
from bintracker.config import settings
from bintracker.database import create_tables, dispose_engine
from bintracker.exceptions import (
    BinTrackerError,
    BadRequestError,
    NotFoundError,
    BlobStorageError,
)
from bintracker.middleware.request_id import RequestIDMiddleware, request_id_var
from bintracker.middleware.logging import RequestLoggingMiddleware
from bintracker.middleware.paths import TrailingSlashMiddleware
from bintracker.routes import bins, health

logger = logging.getLogger(__name__)

# Plain-text bodies for router-level misses
ROUTER_ERROR_TEXT = {
    404: "Not found",
    405: "Method not allowed",
}


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s to stdout.
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
        1. Setup logging
        2. Create blob storage directory
        3. Create the bins table when running on SQLite (PostgreSQL uses Alembic)

    Shutdown:
        1. Dispose database engine (close all pooled connections)
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Bin Tracker %s starting up...", __version__)

    storage = Path(settings.blob_storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Blob storage directory: %s", storage.resolve())

    if settings.is_sqlite:
        await create_tables()
        logger.info("SQLite schema ensured")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Bin Tracker shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler map:
        BadRequestError          → 400 JSON
        NotFoundError            → 404 JSON
        BlobStorageError         → 500 JSON (context logged only)
        BinTrackerError (base)   → 500 JSON
        Starlette HTTPException  → plain text (404 unmatched path, 405 wrong verb)
        Exception (fallback)     → 500 JSON, traceback logged
    """

    @app.exception_handler(BadRequestError)
    async def handle_bad_request(request: Request, exc: BadRequestError):
        rid = request_id_var.get("")
        logger.warning("[%s] Bad request: %s | %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=400,
            content={
                "error": "bad_request",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(BlobStorageError)
    async def handle_blob_storage_error(request: Request, exc: BlobStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] Blob storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(BinTrackerError)
    async def handle_app_error(request: Request, exc: BinTrackerError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Router-level misses: unknown path or wrong method on a known path."""
        text = ROUTER_ERROR_TEXT.get(exc.status_code, str(exc.detail))
        return PlainTextResponse(text, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for store faults and bugs.

        The stack trace is logged server-side only.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Bin Tracker API",
        description=(
            "Metadata and photo tracker for physical storage bins. "
            "Read a bin as HTML or JSON, update its metadata, and upload or fetch its photo."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(TrailingSlashMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(bins.router)

    return app


app = create_app()
