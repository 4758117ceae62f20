"""
CLI commands for the engagement campaign.

Provides `engagement-campaign run` for running one campaign pass outside the
API process (e.g., from an external cron), and `engagement-campaign init-db`.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import click
import structlog

from engagement.config import settings
from engagement.database import create_engine, create_session_maker, init_db
from engagement.logging_config import configure_logging
from engagement.models.notification import CampaignRunResult
from engagement.notifications.push_client import PushClient
from engagement.notifications.stream_hub import StreamHub
from engagement.tasks.campaign_runner import CampaignRunner, engagement_scope

logger = structlog.get_logger(__name__)


@click.group()
def cli():
    """Habitus33 engagement CLI tool."""
    pass


@cli.command()
@click.option(
    "--at",
    "at",
    default=None,
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d"]),
    help="Evaluation instant in UTC (default: now)",
)
@click.option(
    "--database-url",
    default=None,
    help="Database URL (default: from settings)",
)
def run(at, database_url):
    """
    Run one engagement campaign pass.

    Example:
        engagement-campaign run

    Replay a specific instant:
        engagement-campaign run --at 2025-03-01T11:00:00
    """
    configure_logging()
    now = at.replace(tzinfo=UTC) if at else None
    logger.info("campaign_cli_run", at=now.isoformat() if now else None)

    result = asyncio.run(run_async(now, database_url))

    click.echo(
        f"created={result.created} "
        f"users_evaluated={result.users_evaluated} "
        f"rule_failures={result.rule_failures}"
    )


@cli.command("init-db")
def init_db_command():
    """Create the engagement tables (development only; use migrations in production)."""
    configure_logging()
    try:
        asyncio.run(init_db())
    except Exception as e:
        raise click.ClickException(f"Failed to initialize database: {e}") from e
    click.echo("Database schema initialized")


async def run_async(now: datetime | None, database_url: str | None) -> CampaignRunResult:
    """Build a runner against a fresh engine and execute it once."""
    engine = create_engine(database_url)
    try:
        # No stream clients live in this process; the hub just drops broadcasts
        runner = CampaignRunner(
            engagement_scope(
                create_session_maker(engine),
                StreamHub(),
                PushClient.from_settings(settings),
                settings,
            ),
            max_concurrency=settings.campaign_max_concurrency,
        )
        return await runner.run(now)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    cli()
