"""Main FastAPI application entry point."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from director_auth.api.dependencies import get_client_ip
from director_auth.api.v1.endpoints.auth.routes import router as auth_router
from director_auth.api.v1.endpoints.health.routes import router as health_router
from director_auth.core.auth.interfaces import RateLimiterInterface
from director_auth.core.exceptions import DomainException, RateLimitExceededException
from director_auth.infrastructure.cache.rate_limiter import build_rate_limiter
from director_auth.infrastructure.cache.redis_client import close_redis_connection, get_redis_client
from director_auth.infrastructure.database.init_db import init_database
from director_auth.infrastructure.database.session import close_db_connections
from director_auth.settings import get_settings
from director_auth.utils.logging import setup_logging

SERVICE_NAME = "Director of One Authentication Service"
VERSION = "1.0.0"

logger = logging.getLogger("director_auth")


async def sweep_rate_limits(limiter: RateLimiterInterface, interval_seconds: int) -> None:
    """Periodically drop lapsed rate limit windows until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await limiter.cleanup()
            if removed:
                logger.debug("Removed %d stale rate limit windows", removed)
        except Exception:
            logger.exception("Rate limit sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events."""
    settings = get_settings()

    try:
        setup_logging()
        logger.info("Starting %s...", SERVICE_NAME)

        await init_database(use_migrations=False)

        redis_client = None
        if settings.rate_limit_backend == "redis":
            redis_client = get_redis_client()
            await redis_client.connect()
            if await redis_client.ping():
                logger.info("Redis connection established")
            else:
                logger.warning("Redis ping failed")
        app.state.redis_client = redis_client

        limiter = build_rate_limiter(settings, redis_client)
        app.state.rate_limiter = limiter
        app.state.sweep_task = asyncio.create_task(
            sweep_rate_limits(limiter, settings.rate_limit_cleanup_interval_seconds)
        )

        logger.info("%s started successfully", SERVICE_NAME)
    except Exception:
        logger.exception("Startup failed")
        raise

    yield

    logger.info("Shutting down %s...", SERVICE_NAME)

    sweep_task = getattr(app.state, "sweep_task", None)
    if sweep_task:
        sweep_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweep_task

    try:
        if getattr(app.state, "redis_client", None):
            await close_redis_connection()
            logger.info("Redis connection closed")
        await close_db_connections()
    except Exception:
        logger.exception("Shutdown error")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=SERVICE_NAME,
        description="Accounts, tokens, sessions and audit logging for Director of One",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix=settings.api_v1_prefix)
    app.include_router(auth_router, prefix=settings.api_v1_prefix)

    register_exception_handlers(app)

    register_middleware(app)

    register_service_routes(app)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        """Answer domain exceptions with their mapped status."""
        content = {"error": exc.message, "type": exc.__class__.__name__}
        if exc.details is not None:
            content["details"] = jsonable_encoder(exc.details)

        headers = {}
        if isinstance(exc, RateLimitExceededException):
            headers["Retry-After"] = str(exc.retry_after)
        elif exc.status_code == 401:
            headers["WWW-Authenticate"] = "Bearer"

        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle malformed request bodies and parameters."""
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "type": "ValidationError",
                "details": jsonable_encoder(exc.errors(), exclude={"input", "ctx", "url"}),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle FastAPI HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail, "type": "HTTPException"},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

        content = {"error": "Internal server error", "type": "InternalError"}
        if get_settings().is_development:
            content["details"] = str(exc)
        return JSONResponse(status_code=500, content=content)


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware."""

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log each request with its outcome and duration."""
        start_time = time.perf_counter()
        client_ip = get_client_ip(request) or "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s %s -> %d",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "client_ip": client_ip,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        return response

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        """Harden responses; tokens must never be cached."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        if not get_settings().is_development:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def register_service_routes(app: FastAPI) -> None:

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint."""
        return {
            "message": f"{SERVICE_NAME} API",
            "version": VERSION,
            "docs": "/docs",
        }

    @app.get("/health", include_in_schema=False)
    async def health_check():
        """Basic liveness endpoint."""
        return {"status": "healthy", "service": "director-auth"}


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "director_auth.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
