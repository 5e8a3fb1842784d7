"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from imageresize.api.router import api_router
from imageresize.config import Settings, get_settings
from imageresize.dependencies import init_services
from imageresize.models.database import init_db
from imageresize.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown."""
        # Startup
        setup_logging(settings)

        # Sentry init if configured
        if settings.SENTRY_DSN:
            import sentry_sdk
            from sentry_sdk.integrations.fastapi import FastApiIntegration
            sentry_sdk.init(
                dsn=settings.SENTRY_DSN,
                integrations=[FastApiIntegration()],
                traces_sample_rate=0.1,
            )

        services = init_services(settings)
        if settings.DB_AUTO_CREATE:
            try:
                await init_db(services.engine)
            except (SQLAlchemyError, OSError) as e:
                # Permalinks degrade to ephemeral URLs until the database is reachable
                logger.warning("database_init_failed", error=str(e))

        logger.info("startup", app=settings.APP_NAME, version=settings.APP_VERSION)
        yield

        # Shutdown
        await services.aclose()

    app = FastAPI(
        title="Image Resize Service",
        description="On-demand image resizing with a content-addressed disk cache and permalinks.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics endpoint
    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    app.include_router(api_router)

    # Materialized artifacts, served straight from disk
    if settings.SERVE_CACHE_DIRECTORY:
        app.mount(
            settings.CACHE_URL_PREFIX,
            StaticFiles(directory=settings.CACHE_DIRECTORY, check_dir=False),
            name="imageresizecache",
        )

    return app


# Application instance
app = create_app()
