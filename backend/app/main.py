"""
MatchDay FastAPI Backend - Main Application Entry Point
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables before imports that might use them
load_dotenv()

# Now import app modules that require environment variables
from app.dependencies import build_services
from app.models.common import HealthResponse, ReadinessResponse
from app.routers import matches, players
from app.utils.config import Settings, get_settings, verify_env_variables
from app.utils.logger import logger
from app.utils.timeutils import utc_now
from notifiers import build_notifier
from notifiers.base import Notifier
from schedulers.match_scheduler import MatchScheduler
from storage import build_stores
from storage.base import Stores


def create_app(
    stores: Optional[Stores] = None,
    notifier: Optional[Notifier] = None,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Build the API around the given stores and notifier (configured ones by default)."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Environment: {settings.ENVIRONMENT}, store: {settings.STORE_BACKEND}")

        if settings.APP_DEBUG:
            logger.warning("Running in DEBUG mode - not recommended for production")

        if not verify_env_variables(settings):
            logger.warning(
                "Some required environment variables are missing. "
                "Some features may not work correctly."
            )

        scheduler = None
        if settings.SCHEDULER_ENABLED:
            services = app.state.services
            scheduler = MatchScheduler(services.stores, services.notifier, settings, clock=clock)
            scheduler.start()

        yield

        logger.info(f"Shutting down {settings.APP_NAME}")
        if scheduler is not None:
            scheduler.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Match lifecycle and settlement API for MatchDay",
        version=settings.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        debug=settings.APP_DEBUG,
        lifespan=lifespan,
    )

    stores = stores or build_stores(settings)
    notifier = notifier or build_notifier(settings, stores)
    app.state.services = build_services(settings, stores, notifier, clock=clock)

    # Configure CORS - allow frontend to communicate with backend
    frontend_urls = [
        "http://localhost:3000",  # Local development
        "http://localhost:8080",  # Docker development
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=frontend_urls,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        max_age=86400,  # 24 hours cache for preflight requests
    )

    # Health check endpoint
    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """
        Health check endpoint to verify API is running.
        Returns current API version and status.
        """
        return {
            "status": "ok",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Readiness check - validates the entity store
    @app.get("/ready", response_model=ReadinessResponse)
    async def ready_check(request: Request):
        """
        Readiness check to verify that the application can serve requests.
        Pings every entity store collection.
        """
        services = request.app.state.services
        status = {store.name: store.ping() for store in services.stores.all()}
        return {"ready": all(status.values()), "services": status}

    # Register routers
    app.include_router(matches.router, prefix="/matches", tags=["matches"])
    app.include_router(players.router, tags=["players"])

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.APP_DEBUG)
