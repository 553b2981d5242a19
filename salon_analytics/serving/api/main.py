"""
FastAPI Application Factory

Creates and configures the analytics API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import structlog

from salon_analytics.config import get_settings
from salon_analytics.database.connection import init_database, close_database
from .middleware import RequestLoggingMiddleware
from .routes import analytics_router, health_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and open the datastore engine."""
    from salon_analytics.config.logging import configure_logging
    configure_logging()

    logger.info("Starting Salon Analytics API")
    try:
        await init_database()
    except Exception as e:
        # Health endpoints report the outage; analytics requests fail with 500
        logger.warning("Database init failed", error=str(e))

    yield

    logger.info("Shutting down...")
    await close_database()


def create_api_app(lifespan_handler: Optional[object] = lifespan) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        lifespan_handler: Lifespan context; pass None to skip startup I/O

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()
    app = FastAPI(
        title="Salon Analytics API",
        description="Revenue trends, customer segmentation, operational metrics and naive forecasts",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan_handler,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Salon Analytics API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
