"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, CORS, request-id middleware, and routes.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures every response (including CORS preflights) gets X-Request-ID

Shared Client Lifecycle:
- httpx.AsyncClient is created at startup, stored in app.state
- LLMRouter wraps the shared client for connection pooling
- The storage client is chosen once from settings
- The HTTP client is closed gracefully at shutdown
"""

import json
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from parley.api.routes import create_api_router
from parley.config import get_settings
from parley.errors import ApiError, ApiErrorCode
from parley.logging import configure_logging, get_logger
from parley.middleware.request_id import RequestIDMiddleware
from parley.responses import (
    api_error_handler,
    error_response,
    http_exception_handler,
    unhandled_exception_handler,
)
from parley.services.llm import LLMRouter
from parley.services.redact import set_strict_log_keys
from parley.storage.client import get_storage_client

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle resources.

    - Creates shared httpx.AsyncClient for connection pooling
    - Initializes LLMRouter and the storage client
    - Cleans up on shutdown

    Resources already placed on app.state (tests) are left alone.
    """
    settings = get_settings()

    app.state.httpx_client = httpx.AsyncClient(
        timeout=httpx.Timeout(60.0, connect=10.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
    )

    if getattr(app.state, "llm_router", None) is None:
        app.state.llm_router = LLMRouter(
            app.state.httpx_client,
            enable_openai=True,
            enable_openrouter=settings.enable_openrouter,
            openrouter_referer=settings.openrouter_referer,
        )
        logger.info("llm_router_initialized", enable_openrouter=settings.enable_openrouter)

    if getattr(app.state, "storage_client", None) is None:
        app.state.storage_client = get_storage_client(settings)

    yield

    await app.state.httpx_client.aclose()
    logger.info("httpx_client_closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    set_strict_log_keys(settings.strict_log_keys)

    app = FastAPI(
        title="Parley API",
        description="Context-augmented completion pipeline for project chats",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Missing or malformed fields are a hard failure on the pipeline contract."""
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
        logger.warning("request_validation_failed", fields=fields)
        return JSONResponse(
            status_code=500,
            content=error_response(ApiErrorCode.E_INVALID_REQUEST, "Missing required parameters"),
        )

    @app.middleware("http")
    async def catch_json_decode_errors(request: Request, call_next):
        """Catch JSON decode errors before they reach route handlers."""
        if request.method == "POST":
            content_type = request.headers.get("content-type", "")
            if "application/json" in content_type:
                body = await request.body()
                if body:
                    try:
                        json.loads(body)
                    except json.JSONDecodeError:
                        return JSONResponse(
                            status_code=500,
                            content=error_response(
                                ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body"
                            ),
                        )
        return await call_next(request)

    app.include_router(create_api_router())

    # Browser clients call the pipeline directly
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
        expose_headers=["X-Request-ID"],
    )

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
