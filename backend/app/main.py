"""
Magic Movers Backend — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │   Req ID     │→│ Logging  │→│  GZip / CORS    │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │   /movers    │ │  /items  │ │  GET /health    │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ MagicMoversError→status │ Request→400 │ →500 │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging (console + optional rotating action log)
    2. Validate configuration
    3. Create tables when DB_CREATE_ALL is set
    4. Log startup complete

    Shutdown:
    1. Dispose database engine (close all connections)
    2. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import create_all_tables, dispose_engine
from app.exceptions import MagicMoversError, OperationFailedError, ValidationError
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import health, items, movers
from app.schemas.common import field_errors

logger = logging.getLogger(__name__)

ACTIONS_LOGGER = "magicmovers.actions"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Console:  Root logger to stdout, `%(asctime)s [%(levelname)s] %(name)s: %(message)s`.
    Actions:  With LOG_TO_FILE, the `magicmovers.actions` logger (loads and
              mission ends) also writes to LOG_DIR/actions.log, rotated at
              midnight and kept for LOG_RETENTION_DAYS days.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%Y-%m-%dT%H:%M:%S"

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt=datefmt,
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,  # Override any existing logging config
    )

    actions = logging.getLogger(ACTIONS_LOGGER)
    actions.setLevel(logging.INFO)
    for handler in list(actions.handlers):
        if isinstance(handler, TimedRotatingFileHandler):
            actions.removeHandler(handler)
            handler.close()

    if settings.log_to_file:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_dir / "actions.log",
            when="midnight",
            backupCount=settings.log_retention_days,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=datefmt))
        actions.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: startup and shutdown procedures.

    Code before yield runs on startup, code after yield on shutdown.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Magic Movers Backend %s starting up...", __version__)

    try:
        settings.validate_runtime()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")
        # Keep serving so /health can report the problem

    if settings.db_create_all:
        logger.info("DB_CREATE_ALL set: creating missing tables")
        await create_all_tables()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Magic Movers Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(code: str, message: str, details: dict, rid: str) -> dict:
    return {
        "error": code,
        "message": message,
        "details": details or None,
        "request_id": rid,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        MagicMoversError        → exc.status_code with exc.code
        RequestValidationError  → 400 ValidationError with per-field errors
        Exception (fallback)    → 500 OperationFailed

    Every body has the shape {"error", "message", "details", "request_id"}.
    OperationFailed never exposes driver or SQL details; those are logged.
    """

    @app.exception_handler(MagicMoversError)
    async def handle_app_error(request: Request, exc: MagicMoversError):
        rid = request_id_var.get("")
        if isinstance(exc, OperationFailedError):
            logger.error("[%s] Operation failed: %s | Context: %s", rid, exc.message, exc.context)
            details = {}
        else:
            logger.info("[%s] %s: %s", rid, exc.code, exc.message)
            details = exc.context
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, details, rid),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body, query or path parameters."""
        rid = request_id_var.get("")
        error = ValidationError("Request validation failed", errors=field_errors(exc.errors()))
        logger.warning("[%s] Request validation failed: %s", rid, error.errors)
        return JSONResponse(
            status_code=error.status_code,
            content=_error_body(error.code, error.message, error.context, rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic 500, stack trace logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                OperationFailedError.code,
                "An unexpected error occurred. Please try again or contact support.",
                {},
                rid,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Magic Movers API",
        description=(
            "Registry of magic movers and items. Load items onto movers within "
            "their weight limit, send them on missions, and rank them by "
            "missions completed."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(movers.router)
    app.include_router(items.router)
    app.include_router(health.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
