"""
FastAPI application for the Talent Scout API.

Exposes auth, player search and profiles, recommendations, messages and
trials over JSON. All persistence goes through the shared BackendClient,
created at startup and closed at shutdown.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import msgspec
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from ..backend import BackendClient
from ..core.config import Settings, get_settings
from ..core.errors import ScoutError
from .errors import error_content, scout_error_handler
from .routers import auth, messages, players, similarity, trials

logger = logging.getLogger(__name__)


class MSGSpecResponse(Response):
    """Custom response class using msgspec for fast JSON serialization."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        if content is None:
            return b""
        return msgspec.json.encode(content)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle.

    Startup:
    - Create the shared backend client (if the backend is configured)

    Shutdown:
    - Close the backend client's connections
    """
    settings: Settings = app.state.settings
    logger.info("Starting %s...", settings.app_name)

    if getattr(app.state, "backend", None) is None:
        if settings.backend_configured:
            app.state.backend = BackendClient.from_settings(settings)
            logger.info("Backend client ready for %s", settings.supabase_url)
        else:
            app.state.backend = None
            logger.warning(
                "SUPABASE_URL / SUPABASE_ANON_KEY not set - backend endpoints will return 503"
            )

    yield

    logger.info("Shutting down %s...", settings.app_name)
    backend = app.state.backend
    if backend is not None:
        try:
            await backend.close()
        except Exception as e:
            logger.warning(f"Error closing backend client: {e}")


def create_app(
    settings: Settings | None = None, backend: BackendClient | None = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (default: environment via get_settings)
        backend: Pre-built backend client, e.g. one with a mock transport

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Player profiles, scout search, recommendations, messaging and trials",
        version=settings.app_version,
        default_response_class=MSGSpecResponse,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        allow_credentials=settings.cors_allow_credentials,
        expose_headers=["X-Process-Time"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000
        response.headers["X-Process-Time"] = f"{process_time:.2f}ms"
        if request.url.path.startswith(settings.api_prefix):
            response.headers["Cache-Control"] = "no-store"
        return response

    # Register custom error handler for consistent error responses
    app.add_exception_handler(ScoutError, scout_error_handler)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with consistent format."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        # Never leak exception details in production, regardless of DEBUG flag
        show_detail = settings.debug and settings.environment != "production"
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_content(
                "INTERNAL_ERROR",
                "An internal error occurred",
                str(exc) if show_detail else None,
            ),
        )

    @app.get("/health", tags=["health"])
    async def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "backend": "configured" if app.state.backend is not None else "not_configured",
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        }

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "docs": "/docs",
        }

    prefix = settings.api_prefix
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(players.router, prefix=f"{prefix}/players", tags=["players"])
    app.include_router(
        similarity.router, prefix=f"{prefix}/similarity", tags=["similarity"]
    )
    app.include_router(messages.router, prefix=f"{prefix}/messages", tags=["messages"])
    app.include_router(trials.router, prefix=f"{prefix}/trials", tags=["trials"])

    return app


# Create app instance
app = create_app()
