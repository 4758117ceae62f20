"""
Activity Repository

Counts recent qualifying actions per user for the campaign trigger rules.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.models.notification import ActivityType
from engagement.orm.models import ActivityEventORM
from engagement.repositories.notification_repository import as_utc


class ActivityRepository:
    """Read access to the activity event log."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_since(
        self,
        user_id: UUID,
        activity_type: ActivityType,
        since: datetime,
    ) -> int:
        """Count ``activity_type`` events for ``user_id`` at or after ``since``."""
        stmt = select(func.count(ActivityEventORM.id)).where(
            ActivityEventORM.user_id == user_id,
            ActivityEventORM.activity_type == activity_type.value,
            ActivityEventORM.occurred_at >= as_utc(since),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())
