"""
Voice Memo Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the shared security objects from settings, registers
       middleware, exception handlers and routers, and returns the app.
Who:   uvicorn (voicememo.main:app) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────┐ ┌──────┐ ┌──────┐         │
    │  │  Req ID  │→│ Logging │→│ GZip │→│ CORS │         │
    │  └──────────┘ └─────────┘ └──────┘ └──────┘         │
    │                                                     │
    │  app.state: cipher, token_codec, generation_service │
    │                                                     │
    │  Routes: auth │ memos │ api_keys │ generation │     │
    │          health                                     │
    │                                                     │
    │  Exception Handlers:                                │
    │  VoiceMemoError subclasses → their status code      │
    │  RequestValidationError → 400, Exception → 500      │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Report development secrets still in use
    3. Probe the database (failure aborts startup)
    Shutdown:
    1. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from voicememo import __version__
from voicememo.config import settings
from voicememo.database import check_connection, dispose_engine
from voicememo.exceptions import (
    DatabaseError,
    DecryptionError,
    EncryptionError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
    VoiceMemoError,
)
from voicememo.middleware.logging import RequestLoggingMiddleware
from voicememo.middleware.request_id import RequestIDMiddleware, request_id_var
from voicememo.routes import api_keys, auth, generation, health, memos
from voicememo.security.cipher import CredentialCipher
from voicememo.security.tokens import TokenCodec
from voicememo.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    httpx logs full request URLs at INFO, and Gemini calls carry the user's
    key in the query string, so httpx/httpcore are held at WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Voice Memo Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Set the variables above before deploying.")

    try:
        await check_connection()
    except Exception:
        logger.critical("Database unreachable at startup; aborting", exc_info=True)
        raise
    logger.info("Database connection verified")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Voice Memo Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to HTTP responses.

    Handler hierarchy (most specific wins):
        RequestValidationError  → 400 (pydantic constraint that failed)
        ValidationError         → 400
        UnauthorizedError       → 401 + WWW-Authenticate: Bearer
        UpstreamError           → 502
        Encryption/Decryption   → 500, message kept
        DatabaseError           → 500, generic message
        VoiceMemoError (base)   → exc.status_code (403, 404, 409)
        Exception (fallback)    → 500

    Context dicts are logged, never returned, except for ValidationError
    where they name the offending field.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Request validation failed on %s", rid, request.url.path)
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Request validation failed", jsonable_encoder(errors)),
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, exc.context),
        )

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        logger.info(
            "[%s] Unauthorized on %s: %s %s",
            request_id_var.get(""),
            request.url.path,
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        logger.error("[%s] Upstream error: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(EncryptionError)
    @app.exception_handler(DecryptionError)
    async def handle_cipher_error(request: Request, exc: VoiceMemoError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(VoiceMemoError)
    async def handle_app_error(request: Request, exc: VoiceMemoError):
        logger.info(
            "[%s] %s on %s: %s",
            request_id_var.get(""),
            type(exc).__name__,
            request.url.path,
            exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    The cipher and token codec are built here from settings and attached to
    app.state; the request pipeline reads them from there.
    """
    app = FastAPI(
        title="Voice Memo API",
        description=(
            "Backend for a voice memo app: accounts, owner-scoped memo storage, "
            "encrypted per-user API keys, and Gemini-powered transcription, "
            "translation, summaries and titles."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Shared Objects ────────────────────────────────────────────────────
    app.state.cipher = CredentialCipher(settings.encryption_key_bytes)
    app.state.token_codec = TokenCodec(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        default_ttl=timedelta(hours=settings.token_ttl_hours),
    )
    app.state.generation_service = gemini_service

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
    app.include_router(auth.router)
    app.include_router(memos.router)
    app.include_router(api_keys.router)
    app.include_router(generation.router)
    app.include_router(health.router)

    return app


# uvicorn imports voicememo.main:app
app = create_app()
