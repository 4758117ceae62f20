"""
Unit tests for the campaign scheduler wiring.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from engagement.config import Settings
from engagement.models.notification import CampaignRunResult
from engagement.tasks import campaign_scheduler
from engagement.tasks.campaign_scheduler import (
    JOB_ID,
    create_campaign_scheduler,
    get_scheduler,
    run_campaign,
    stop_campaign_scheduler,
)


@pytest.fixture(autouse=True)
def reset_scheduler():
    campaign_scheduler._scheduler = None
    yield
    stop_campaign_scheduler()


class TestCreateCampaignScheduler:
    def test_registers_daily_cron_job(self):
        runner = MagicMock()
        settings = Settings(
            campaign_cron_hour=21,
            campaign_cron_minute=30,
            campaign_cron_timezone="Asia/Seoul",
        )

        scheduler = create_campaign_scheduler(runner, settings)

        job = scheduler.get_job(JOB_ID)
        assert job is not None
        assert job.args == (runner,)
        trigger = str(job.trigger)
        assert "hour='21'" in trigger
        assert "minute='30'" in trigger
        assert get_scheduler() is scheduler

    def test_returns_existing_instance(self):
        first = create_campaign_scheduler(MagicMock(), Settings())
        second = create_campaign_scheduler(MagicMock(), Settings())

        assert first is second

    def test_stop_without_start_clears_instance(self):
        create_campaign_scheduler(MagicMock(), Settings())

        stop_campaign_scheduler()

        assert get_scheduler() is None


class TestRunCampaign:
    @pytest.mark.asyncio
    async def test_returns_runner_result(self):
        runner = MagicMock()
        runner.run = AsyncMock(return_value=CampaignRunResult(created=3, users_evaluated=4))

        result = await run_campaign(runner)

        assert result.created == 3

    @pytest.mark.asyncio
    async def test_failure_logged_and_swallowed(self):
        runner = MagicMock()
        runner.run = AsyncMock(side_effect=RuntimeError("db down"))

        assert await run_campaign(runner) is None
