from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from pustak_api.core.settings import settings
from pustak_api.db.session import engine
from pustak_api.services.notifications import get_connection_manager
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing


APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Pustak API starting",
        environment=settings.environment,
        milestone_threshold=settings.milestone_order_threshold,
        milestone_percentage=settings.milestone_discount_percentage,
        realtime_push_enabled=settings.realtime_push_enabled,
    )
    try:
        yield
    finally:
        get_connection_manager().reset()
        await engine.dispose()
        logger.info("Pustak API stopped")


def create_app() -> FastAPI:
    """Application factory for the Pustak FastAPI service."""
    configure_logging(
        service_name="pustak-api",
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="Pustak API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    if settings.tracing_enabled:
        configure_tracing(
            app,
            service_name="pustak-api",
            service_version=APP_VERSION,
            environment=settings.environment,
        )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
