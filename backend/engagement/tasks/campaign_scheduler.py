"""
Engagement Campaign Scheduler

Runs one campaign pass per day at the configured local time using APScheduler.
"""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from engagement.config import Settings
from engagement.models.notification import CampaignRunResult
from engagement.tasks.campaign_runner import CampaignRunner

logger = structlog.get_logger(__name__)

JOB_ID = "engagement_campaign_daily_run"

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def run_campaign(runner: CampaignRunner) -> CampaignRunResult | None:
    """
    Execute one campaign pass.

    Called by the scheduler. Failures are logged so the job stays scheduled.

    Args:
        runner: Configured campaign runner

    Returns:
        CampaignRunResult, or None if the run failed
    """
    try:
        return await runner.run()
    except Exception as e:
        logger.error("scheduled_campaign_run_failed", error=str(e), exc_info=True)
        return None


def create_campaign_scheduler(runner: CampaignRunner, settings: Settings) -> AsyncIOScheduler:
    """
    Create and configure the campaign scheduler.

    Args:
        runner: Campaign runner invoked by the job
        settings: Cron hour, minute and time zone

    Returns:
        Configured AsyncIOScheduler instance
    """
    global _scheduler

    if _scheduler is not None:
        return _scheduler

    _scheduler = AsyncIOScheduler(timezone=settings.campaign_cron_timezone)

    _scheduler.add_job(
        run_campaign,
        trigger=CronTrigger(
            hour=settings.campaign_cron_hour,
            minute=settings.campaign_cron_minute,
            timezone=settings.campaign_cron_timezone,
        ),
        args=[runner],
        id=JOB_ID,
        name="Daily engagement campaign",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info(
        "campaign_scheduler_configured",
        hour=settings.campaign_cron_hour,
        minute=settings.campaign_cron_minute,
        timezone=settings.campaign_cron_timezone,
    )

    return _scheduler


def start_campaign_scheduler(runner: CampaignRunner, settings: Settings) -> None:
    """
    Start the campaign scheduler.

    Should be called during application startup.
    """
    scheduler = create_campaign_scheduler(runner, settings)

    if not scheduler.running:
        scheduler.start()
        logger.info("campaign_scheduler_started")
    else:
        logger.info("campaign_scheduler_already_running")


def stop_campaign_scheduler() -> None:
    """Stop the campaign scheduler. Should be called during application shutdown."""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("campaign_scheduler_stopped")
    _scheduler = None


def get_scheduler() -> AsyncIOScheduler | None:
    return _scheduler
