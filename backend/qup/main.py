"""
Qup Backend - FastAPI Application Factory
===========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn qup.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware Chain:                                        │
    │  ┌────────────┐ ┌──────────┐ ┌─────────┐ ┌──────┐ ┌──────┐│
    │  │ Rate Limit │→│ Req ID   │→│ Logging │→│ GZip │→│ CORS ││
    │  └────────────┘ └──────────┘ └─────────┘ └──────┘ └──────┘│
    │                                                           │
    │  Routes:                                                  │
    │  ┌──────────────────┐ ┌──────────────┐ ┌──────────────┐   │
    │  │ REST /api/v1/... │ │ GraphQL      │ │ GET /health  │   │
    │  │                  │ │ /graphql (+ws)│ │              │   │
    │  └──────────────────┘ └──────────────┘ └──────────────┘   │
    │                                                           │
    │  Exception Handlers (REST):                               │
    │  ┌─────────────────────────────────────────────────────┐  │
    │  │ QupError → its status_code │ Exception → 500        │  │
    │  └─────────────────────────────────────────────────────┘  │
    └───────────────────────────────────────────────────────────┘

    GraphQL errors never reach these handlers: strawberry reports them in the
    response's `errors` array (see qup.graphql.schema).

Lifecycle:
    Startup:  logging → settings validation → storage directory
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
from fastapi.responses import JSONResponse

from qup import __version__
from qup.config import settings
from qup.database import dispose_engine
from qup.exceptions import (
    GENERIC_ERROR_MESSAGE,
    DatabaseError,
    FileStorageError,
    QupError,
    RateLimitExceededError,
    ValidationError,
)
from qup.graphql.schema import graphql_router
from qup.middleware.logging import RequestLoggingMiddleware
from qup.middleware.rate_limit import RateLimitMiddleware
from qup.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from qup.routes import (
    auth,
    channels,
    files,
    health,
    messages,
    notifications,
    questions,
    search,
    users,
    votes,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Qup Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report; the problem stays visible in the log
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("REST API:    http://%s:%d/api/v1", settings.backend_host, settings.backend_port)
    logger.info("GraphQL API: http://%s:%d/graphql", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Qup Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(exc: QupError, rid: str, include_details: bool = True) -> dict:
    body = {"error": exc.error_code, "message": exc.message, "request_id": rid}
    if include_details and exc.context:
        body["details"] = exc.context
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the QupError hierarchy onto HTTP responses.

    Client errors (4xx) carry the exception's message and context. Server
    errors (5xx) answer with a generic message; details go to the log only.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc, rid))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, rid),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.error_code,
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body(exc, rid, include_details=False))

    @app.exception_handler(QupError)
    async def handle_qup_error(request: Request, exc: QupError):
        """Authentication, permission, not-found and conflict errors."""
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.error_code, "message": GENERIC_ERROR_MESSAGE, "request_id": rid},
            )
        logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc, rid))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": GENERIC_ERROR_MESSAGE,
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Qup API",
        description=(
            "Team chat with channels, threaded messages and a weighted-vote "
            "Q&A system. REST under /api/v1, GraphQL (with subscriptions) at /graphql."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    for module in (auth, users, channels, messages, questions, votes, files, notifications, search):
        app.include_router(module.router)
    app.include_router(health.router)
    app.include_router(graphql_router, prefix="/graphql")

    return app


app = create_app()
