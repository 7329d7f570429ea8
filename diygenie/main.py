"""
DIY Genie - home-improvement project backend.

FastAPI application: projects from photo to preview to build plan, gated by
subscription tier.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from diygenie.api.router import api_router, root_router
from diygenie.config import Settings, get_settings
from diygenie.context import AppContext
from diygenie.middleware.auth import ApiKeyMiddleware, RateLimitMiddleware
from diygenie.services.errors import DiyGenieError
from diygenie.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    context: AppContext = app.state.context
    logger.info(f"Starting {context.settings.app_name} API server ({context.settings.environment})...")
    logger.info(
        f"Providers: preview={context.dispatch.modes['preview']} plan={context.dispatch.modes['plan']}"
    )

    # Creates tables and resumes operations interrupted by the last shutdown
    await context.startup()

    yield

    logger.info(f"Shutting down {context.settings.app_name} API server...")
    await context.shutdown()


async def diygenie_error_handler(request: Request, exc: DiyGenieError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse({"detail": exc.detail, "error": exc.error}, status_code=exc.status_code)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Home-improvement projects: room previews, build plans and progress tracking",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.context = AppContext.build(settings)

    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service key auth + simple per-caller rate limiting
    app.add_middleware(
        RateLimitMiddleware,
        api_key=settings.api_key,
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(ApiKeyMiddleware, api_key=settings.api_key)

    app.add_exception_handler(DiyGenieError, diygenie_error_handler)

    app.include_router(api_router)
    app.include_router(root_router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "api": "/api/v1",
        }

    return app
