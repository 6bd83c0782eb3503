"""
Grocery Vision Backend — FastAPI Application Factory
======================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn grocery_vision.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                     FastAPI App                         │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌───────────┐  │
    │  │  Req ID  │→│ Logging  │→│   GZip   │→│   CORS    │  │
    │  └──────────┘ └──────────┘ └──────────┘ └───────────┘  │
    │                                                         │
    │  Routes:                                                │
    │  ┌────────────────────┐ ┌──────────────────────────┐   │
    │  │ POST /api/detect-* │ │ GET / , GET /health      │   │
    │  └────────────────────┘ └──────────────────────────┘   │
    │                                                         │
    │  Exception Handlers:                                    │
    │  ┌───────────────────────────────────────────────────┐ │
    │  │ Validation→400/413 │ Auth→401 │ LLM→503 │ *→500   │ │
    │  └───────────────────────────────────────────────────┘ │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate configuration (log, don't exit)
    Shutdown: log
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from grocery_vision import __version__
from grocery_vision.config import settings
from grocery_vision.exceptions import (
    GroceryVisionError,
    ImageProcessingError,
    LLMAuthenticationError,
    LLMServiceError,
    ValidationError,
)
from grocery_vision.middleware.logging import RequestLoggingMiddleware
from grocery_vision.middleware.request_id import RequestIDMiddleware, request_id_var
from grocery_vision.routes import detect, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before anything else logs.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("grpc").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Grocery Vision Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server still answers health checks; detections report 401
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Gemini model: %s", settings.gemini_model)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Grocery Vision Backend shut down.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def error_response(
    request: Request,
    status_code: int,
    error: str,
    details: Optional[Union[str, Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Render the {"message": "Error", "error": ...} envelope."""
    content: Dict[str, Any] = {
        "message": "Error",
        "error": error,
        "request_id": _request_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the error envelope.

    Handler hierarchy:
        ValidationError         → 400 (413 for PayloadTooLargeError)
        RequestValidationError  → 422 (malformed multipart request)
        LLMAuthenticationError  → 401
        LLMServiceError         → 503
        ImageProcessingError    → 500
        GroceryVisionError      → 500 (catch-all for custom)
        Exception               → 500 (unexpected errors, generic message)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        return error_response(request, exc.status_code, exc.message, details=exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        logger.warning("[%s] Malformed request: %s", _request_id(request), exc.errors())
        return error_response(
            request,
            422,
            "Malformed request. Send the image as multipart field 'image'.",
        )

    @app.exception_handler(LLMAuthenticationError)
    async def handle_llm_auth_error(request: Request, exc: LLMAuthenticationError):
        logger.error("[%s] Gemini authentication error: %s", _request_id(request), exc.details)
        return error_response(
            request, exc.status_code, exc.message, details=exc.details
        )

    @app.exception_handler(LLMServiceError)
    async def handle_llm_error(request: Request, exc: LLMServiceError):
        logger.error("[%s] LLM service error: %s", _request_id(request), exc.message)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return error_response(request, exc.status_code, exc.message, headers=headers)

    @app.exception_handler(ImageProcessingError)
    async def handle_image_processing_error(request: Request, exc: ImageProcessingError):
        logger.error(
            "[%s] Image processing error: %s | Context: %s",
            _request_id(request), exc.message, exc.context,
        )
        return error_response(request, exc.status_code, exc.message)

    @app.exception_handler(GroceryVisionError)
    async def handle_app_error(request: Request, exc: GroceryVisionError):
        logger.error(
            "[%s] Application error: %s | Context: %s",
            _request_id(request), exc.message, exc.context,
        )
        return error_response(request, exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace is logged server-side only."""
        logger.error(
            "[%s] Unexpected error: %s",
            _request_id(request),
            str(exc),
            exc_info=True,
        )
        return error_response(
            request,
            500,
            "An unexpected error occurred. Please try again.",
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
        title="Grocery Vision API",
        description=(
            "Counts grocery items and assesses produce freshness in photos "
            "using the Google Gemini API."
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
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(detect.router)
    app.include_router(health.router)

    return app


app = create_app()
