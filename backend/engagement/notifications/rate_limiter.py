"""
Daily Rate Limiter for dispatched notifications.

Counts notifications already created for a user since local midnight and
compares the count to the user's daily cap. The count is read from the
notification store; there is no cross-request lock, so two concurrent
dispatches can both observe headroom and overshoot the cap slightly. That is
acceptable for engagement nudges and is NOT suitable for billing-relevant
throttling.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog

from engagement.notifications.clock import start_of_local_day
from engagement.repositories.notification_repository import NotificationRepository

logger = structlog.get_logger(__name__)


class DailyRateLimiter:
    """
    Per-user daily notification cap.

    Example:
        >>> limiter = DailyRateLimiter(repository)
        >>> if await limiter.has_headroom(user_id, daily_limit=2, now=now, time_zone="Asia/Seoul"):
        ...     ...
    """

    def __init__(self, repository: NotificationRepository):
        """
        Initialize rate limiter.

        Args:
            repository: Notification store used for counting
        """
        self.repository = repository

    async def count_since(self, user_id: UUID, since: datetime) -> int:
        """Number of notifications created for ``user_id`` at or after ``since``."""
        return await self.repository.count_since(user_id, since)

    async def has_headroom(
        self,
        user_id: UUID,
        daily_limit: int,
        now: datetime,
        time_zone: Optional[str],
    ) -> bool:
        """
        Check whether one more notification fits under today's cap.

        Args:
            user_id: User identifier
            daily_limit: Maximum notifications per local day (0 blocks all)
            now: Evaluation instant
            time_zone: User time zone defining "today"

        Returns:
            True if count since local midnight is below ``daily_limit``
        """
        if daily_limit <= 0:
            return False

        since = start_of_local_day(now, time_zone)
        count = await self.count_since(user_id, since)

        logger.debug(
            "daily_rate_limit_checked",
            user_id=str(user_id),
            count=count,
            daily_limit=daily_limit,
        )

        return count < daily_limit
