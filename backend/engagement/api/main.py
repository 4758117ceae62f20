"""FastAPI application entry point for the Habitus33 engagement engine."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engagement import database
from engagement.api.routes import notifications
from engagement.config import settings
from engagement.logging_config import configure_logging
from engagement.notifications.push_client import PushClient
from engagement.notifications.stream_hub import StreamHub
from engagement.tasks.campaign_runner import CampaignRunner, engagement_scope
from engagement.tasks.campaign_scheduler import (
    start_campaign_scheduler,
    stop_campaign_scheduler,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan.

    Startup:
    - Configures structlog
    - Creates the process-wide StreamHub and PushClient
    - Starts the daily campaign scheduler when enabled

    Shutdown:
    - Stops the scheduler
    """
    configure_logging()

    app.state.stream_hub = StreamHub()
    app.state.push_client = PushClient.from_settings(settings)

    scheduler_started = False
    if settings.campaign_scheduler_enabled:
        if database.async_session_maker is None:
            logger.warning("campaign_scheduler_disabled_no_database")
        else:
            runner = CampaignRunner(
                engagement_scope(
                    database.async_session_maker,
                    app.state.stream_hub,
                    app.state.push_client,
                    settings,
                ),
                max_concurrency=settings.campaign_max_concurrency,
            )
            start_campaign_scheduler(runner, settings)
            scheduler_started = True

    logger.info(
        "engagement_api_started",
        environment=settings.environment,
        push_configured=app.state.push_client.is_configured,
        campaign_scheduler=scheduler_started,
    )

    yield

    if scheduler_started:
        stop_campaign_scheduler()
    logger.info("engagement_api_stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="Habitus33 Engagement API",
        description="Notification engagement and multi-channel dispatch",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(notifications.router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Basic health check endpoint for Docker and monitoring."""
        return {"status": "healthy"}

    return app


app = create_app()
