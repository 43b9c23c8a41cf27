"""
FlashVault Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires logging, middleware, exception handlers and
       routers; uvicorn serves the module-level `app`
       (uvicorn flashvault.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Access Log → GZip → CORS      │
    │                                                          │
    │  Routes:                                                 │
    │  ┌──────────────────┐ ┌───────────────────┐ ┌─────────┐  │
    │  │ /api/flashlights │ │ /api/manufacturers│ │ /health │  │
    │  │  (+ /bulk)       │ │ /api/emitter-types│ │         │  │
    │  └──────────────────┘ └───────────────────┘ └─────────┘  │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ Auth→401 │ NotFound→404 │ IdP→503      │
    │  Reference/Write/Database→500                            │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check (logged, not fatal)
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from flashvault import __version__
from flashvault.config import settings
from flashvault.constants import VALUES_VERSION
from flashvault.database import dispose_engine
from flashvault.exceptions import (
    AuthError,
    DatabaseError,
    FlashVaultError,
    IdentityProviderUnavailable,
    NotFoundError,
    ReferenceResolutionError,
    ValidationError,
    WriteFailed,
)
from flashvault.middleware.logging import RequestLoggingMiddleware
from flashvault.middleware.request_id import RequestIDMiddleware, request_id_var
from flashvault.routes import flashlights, health, references
from flashvault.services.composer import validation_error_from

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] flashvault.services.writer: Created ...
    Output goes to stdout; the container runtime collects it.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("FlashVault Backend %s starting up (value set v%d)...", __version__, VALUES_VERSION)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health still answers and /api routes fail with 401
        logger.error("Configuration error: %s", str(e))

    logger.info(
        "Bulk import creates unknown manufacturers: %s",
        settings.bulk_create_manufacturers,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("FlashVault Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        AuthError                                → 401 (+ WWW-Authenticate)
        NotFoundError                            → 404
        IdentityProviderUnavailable              → 503
        ReferenceResolutionError, WriteFailed    → 500 with their own message
        DatabaseError, other FlashVaultError     → 500 generic
        Exception                                → 500 generic, stack logged

    Internal details (SQL, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        converted = validation_error_from(exc, strip_prefix="body")
        logger.warning("[%s] Request rejected: %s", request_id_var.get(""), converted.message)
        return _error(400, "validation_error", converted.message, converted.context)

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return _error(401, "unauthorized", exc.message, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(IdentityProviderUnavailable)
    async def handle_identity_unavailable(request: Request, exc: IdentityProviderUnavailable):
        logger.error("[%s] Identity provider unavailable: %s", request_id_var.get(""), exc.context)
        return _error(503, "service_unavailable", exc.message)

    @app.exception_handler(ReferenceResolutionError)
    async def handle_reference_error(request: Request, exc: ReferenceResolutionError):
        logger.error("[%s] %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error(500, "reference_error", exc.message)

    @app.exception_handler(WriteFailed)
    async def handle_write_failed(request: Request, exc: WriteFailed):
        logger.error("[%s] %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error(500, "write_failed", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(FlashVaultError)
    async def handle_flashvault_error(request: Request, exc: FlashVaultError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="FlashVault API",
        description=(
            "Personal flashlight collection inventory: flashlights, their emitters, "
            "and shared manufacturer / emitter-type reference tables."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RequestID runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        # Browser sessions send the session cookie
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(flashlights.router)
    app.include_router(references.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
