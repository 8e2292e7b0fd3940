"""
Main FastAPI Application

Entry point for the arcade queue tracker. The chat gateway forwards group
commands here as HTTP calls; replies are rendered by the gateway from the
JSON responses.

Configures middleware, routes, error handlers, and the lifespan that owns
the process-wide tenant locks, platform directory and reset scheduler.
"""
from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from arcade_queue import __version__
from arcade_queue.api.endpoints import admin, allow_list, arcades, bindings
from arcade_queue.config import get_settings
from arcade_queue.core.directory import build_directory
from arcade_queue.core.exceptions import (
    AuthenticationError,
    ConfirmationMismatchError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PermissionDenied,
    TenantIsolationError,
    UpstreamUnavailableError,
)
from arcade_queue.core.locking import TenantLocks
from arcade_queue.core.scheduler import ResetScheduler
from arcade_queue.database import SessionLocal, engine, init_db
from arcade_queue.middleware.tenant import TenantMiddleware
from arcade_queue.utils.logging import setup_logging, get_logger

settings = get_settings()

# Setup logging
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup arms a daily reset timer for every group that has arcades;
    shutdown cancels them before the engine goes away.
    """
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

    # Initialize database tables (dev only - use migrations in production)
    if settings.ENVIRONMENT == "development":
        logger.warning("Initializing database tables (dev mode)")
        init_db()

    app.state.locks = TenantLocks()
    app.state.directory = build_directory(settings)
    app.state.scheduler = ResetScheduler(settings, SessionLocal, app.state.locks)
    app.state.scheduler.bootstrap()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    app.state.scheduler.shutdown()
    close = getattr(app.state.directory, "close", None)
    if close:
        close()
    engine.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Arcade Queue Tracker",
    description="Per-group arcade queue tracking with group bindings and daily resets",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

# Only the gateway calls this API; browsers are allowed in development only
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ENVIRONMENT == "development" else [],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add X-Process-Time header to track request duration."""
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response


# CRITICAL: Tenant middleware injects the tenant every route depends on
app.add_middleware(TenantMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

ERROR_TYPES = {
    NotFoundError: "not_found",
    InvalidInputError: "invalid_input",
    ConfirmationMismatchError: "confirmation_mismatch",
    PermissionDenied: "permission_denied",
    ConflictError: "conflict",
    UpstreamUnavailableError: "upstream_unavailable",
}


async def domain_error_handler(request: Request, exc):
    """Render core errors as {"detail", "type"}."""
    # Subclasses (ArcadeNotFoundError) report their registered base
    error_type = next(
        ERROR_TYPES[cls] for cls in type(exc).__mro__ if cls in ERROR_TYPES
    )
    if exc.status_code >= 500:
        logger.warning(
            f"{error_type}: {exc.detail}",
            extra={"tenant_id": getattr(request.state, "tenant_id", None)}
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": error_type},
        headers=exc.headers or {}
    )


for error_class in ERROR_TYPES:
    app.add_exception_handler(error_class, domain_error_handler)


@app.exception_handler(TenantIsolationError)
async def tenant_isolation_error_handler(request: Request, exc: TenantIsolationError):
    """
    Handle tenant isolation violations.

    CRITICAL: a token for one group was used against another.
    """
    logger.error(
        f"TENANT ISOLATION VIOLATION: {exc.detail}",
        extra={"tenant_id": getattr(request.state, "tenant_id", None)}
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": "tenant_isolation_error"}
    )


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    """Handle authentication errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": "authentication_error"},
        headers=exc.headers or {}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler.

    SECURITY: Don't expose internal errors in production.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=True,
        extra={"tenant_id": getattr(request.state, "tenant_id", None)}
    )

    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"}
    )


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "Arcade Queue Tracker API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(arcades.router, prefix="/api/v1")
app.include_router(bindings.router, prefix="/api/v1")
app.include_router(allow_list.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Daily reset at {settings.DAILY_RESET_TIME}")

    uvicorn.run(
        "arcade_queue.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
