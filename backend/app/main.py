"""
Status Workflow Service - Main FastAPI Application

This is the entry point for the FastAPI application.
It configures middleware, routes, and lifecycle handlers.
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .scheduler.reconciliation_scheduler import ReconciliationScheduler
from .services.runtime import EngineRuntime
from .utils.logger import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Creates MongoDB indexes
        - Builds the engine runtime and warms the published workflow cache
        - Starts the reconciliation scheduler (if enabled)

    Shutdown:
        - Stops scheduler
        - Closes database connections
    """
    logger.info("Starting Status Workflow Service...")

    if app.state.runtime is None:
        create_indexes()
        app.state.runtime = EngineRuntime()
    app.state.runtime.warm_cache()

    scheduler: Optional[ReconciliationScheduler] = None
    if settings.reconciliation_enabled:
        scheduler = ReconciliationScheduler(app.state.runtime.reconciler)
        scheduler.start()
    app.state.scheduler = scheduler

    logger.info("Application started successfully")

    yield

    logger.info("Shutting down...")
    if scheduler:
        scheduler.stop()
    close_connection()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(runtime: Optional[EngineRuntime] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        runtime: Pre-built engine runtime; created at startup when omitted

    Returns:
        Configured FastAPI application instance
    """
    application = FastAPI(
        title="Status Workflow Service",
        description="Status registry, workflow graphs, transitions and status history for business entities",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )
    application.state.runtime = runtime
    application.state.scheduler = None

    # Register middleware
    _configure_middleware(application)

    # Register error handlers
    register_error_handlers(application)

    # Register routes
    _configure_routes(application)

    return application


def _configure_middleware(app: FastAPI) -> None:
    """Configure application middleware."""
    # allow_credentials must be False when allowing all origins
    allow_all = settings.cors_origins.strip() == "*"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )

    app.add_middleware(CorrelationIdMiddleware)


def _configure_routes(app: FastAPI) -> None:
    """Configure application routes."""
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    def health(request: Request):
        """Database connectivity and reconciliation scheduler state"""
        runtime = request.app.state.runtime
        mongo_health = health_check(runtime.database if runtime is not None else None)
        scheduler = request.app.state.scheduler
        return {
            "status": "healthy" if mongo_health.get("status") == "healthy" else "degraded",
            "version": "1.0.0",
            "environment": settings.environment,
            "mongo": mongo_health,
            "reconciliation_running": bool(scheduler and scheduler.is_running)
        }


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()
