"""
PostPilot FastAPI Application Entry Point

This module initializes and configures the FastAPI application with all routes,
middleware, and dependencies.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from postpilot import __version__
from postpilot.api import cron, metrics, notifications, posts, providers, quota, scheduler, teams
from postpilot.config.database import db_manager
from postpilot.config.settings import get_settings
from postpilot.models.schemas.common import HealthCheckResponse
from postpilot.services.scheduler import get_background_scheduler
from postpilot.utils.error_handling import APIRateLimitError, PostPilotError, http_status_for
from postpilot.utils.logger import bind_request_context, setup_logging
from postpilot.utils.time import utcnow


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    settings = get_settings()

    # Startup
    setup_logging()
    logger = structlog.get_logger(__name__)
    logger.info("PostPilot application starting up", environment=settings.environment)

    background_scheduler = None
    if settings.enable_background_scheduler:
        background_scheduler = get_background_scheduler()
        await background_scheduler.start()

    yield

    # Shutdown
    if background_scheduler:
        await background_scheduler.stop()
    logger.info("PostPilot application shutting down")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="PostPilot API",
        description="Social media scheduling and publishing",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def time_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        bind_request_context(request_id, path=request.url.path, method=request.method)

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        structlog.get_logger(__name__).debug(
            "Request handled",
            status_code=response.status_code,
            duration_ms=round(process_time * 1000, 2)
        )
        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Request-ID"] = request_id
        return response

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(posts.router, prefix="/api/v1/posts", tags=["posts"])
    app.include_router(quota.router, prefix="/api/v1/quota", tags=["quota"])
    app.include_router(providers.router, prefix="/api/v1/providers", tags=["providers"])
    app.include_router(metrics.router, prefix="/api/v1/metrics", tags=["metrics"])
    app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(teams.router, prefix="/api/v1/teams", tags=["teams"])
    app.include_router(scheduler.router, prefix="/api/v1/scheduler", tags=["scheduler"])
    app.include_router(cron.router, prefix="/api/cron", tags=["cron"])

    return app


# Create the application instance
app = create_application()


@app.get("/")
async def root():
    """Root endpoint with basic application information."""
    return {
        "name": "PostPilot API",
        "version": __version__,
        "description": "Social media scheduling and publishing",
        "status": "operational"
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint for monitoring and load balancers."""
    database_ok = await db_manager.health_check()

    return HealthCheckResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        timestamp=utcnow().isoformat(),
        checks={
            "database": "ok" if database_ok else "unavailable",
            "scheduler": "running" if get_background_scheduler().is_running else "stopped",
        }
    )


@app.exception_handler(PostPilotError)
async def postpilot_exception_handler(request: Request, exc: PostPilotError):
    """Translate service errors into JSON responses."""
    status_code = http_status_for(exc)
    logger = structlog.get_logger(__name__)
    logger.warning(
        "Request failed",
        path=request.url.path,
        method=request.method,
        category=exc.category.value,
        status_code=status_code,
        error=exc.message
    )

    content = {"error": exc.category.value, "message": exc.message}
    content.update(exc.details)

    headers = None
    if isinstance(exc, APIRateLimitError):
        headers = dict(exc.headers)
        if exc.retry_after is not None:
            headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Unhandled exception occurred",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "postpilot.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
