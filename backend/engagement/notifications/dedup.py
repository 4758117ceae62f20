"""
Dedup guard: at most one notification of a kind per user per local day.
"""

from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

from engagement.models.notification import NotificationKind
from engagement.notifications.clock import start_of_local_day
from engagement.repositories.notification_repository import NotificationRepository


class DedupGuard:
    """Answers whether a kind may still be triggered today for a user."""

    def __init__(self, repository: NotificationRepository):
        self.repository = repository

    async def can_trigger_today(
        self,
        user_id: UUID,
        kind: NotificationKind,
        *,
        now: Optional[datetime] = None,
        time_zone: Optional[str] = None,
    ) -> bool:
        """
        Return True if no ``kind`` notification exists for the user today.

        Args:
            user_id: User identifier
            kind: Notification kind
            now: Evaluation instant (defaults to now, UTC)
            time_zone: User time zone defining "today"
        """
        since = start_of_local_day(now or datetime.now(UTC), time_zone)
        return not await self.repository.exists_since(user_id, kind, since)
