"""
Shared fixtures for integration tests.

Provides repository instances and a seeding helper. Database engine and
session fixtures are inherited from the parent conftest.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.models.notification import ActivityType, ChannelPolicy
from engagement.orm.models import ActivityEventORM, PushSubscriptionORM, UserProfileORM
from engagement.repositories.activity_repository import ActivityRepository
from engagement.repositories.notification_repository import (
    NotificationRepository,
    as_utc,
)
from engagement.repositories.user_profile_repository import UserProfileRepository


class Seeder:
    """Inserts profile, subscription and activity rows for a test."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def profile(
        self,
        user_id: UUID,
        policy: Optional[ChannelPolicy] = None,
        is_active: bool = True,
        raw_policy: Optional[dict] = None,
    ) -> None:
        """Insert a user profile; ``raw_policy`` is stored as-is, without validation."""
        if raw_policy is None:
            raw_policy = (policy or ChannelPolicy()).model_dump(mode="json")
        self.session.add(
            UserProfileORM(id=user_id, is_active=is_active, channel_policy=raw_policy)
        )
        await self.session.commit()

    async def subscription(self, user_id: UUID, endpoint: str, is_active: bool = True) -> None:
        self.session.add(
            PushSubscriptionORM(
                user_id=user_id,
                endpoint=endpoint,
                keys={"p256dh": "key", "auth": "auth"},
                is_active=is_active,
            )
        )
        await self.session.commit()

    async def activity(
        self,
        user_id: UUID,
        activity_type: ActivityType,
        occurred_at: datetime,
        count: int = 1,
    ) -> None:
        for _ in range(count):
            self.session.add(
                ActivityEventORM(
                    user_id=user_id,
                    activity_type=activity_type.value,
                    occurred_at=as_utc(occurred_at),
                )
            )
        await self.session.commit()


@pytest.fixture
def seed(db_session: AsyncSession) -> Seeder:
    return Seeder(db_session)


@pytest.fixture
def notification_repository(db_session: AsyncSession) -> NotificationRepository:
    """Provide a NotificationRepository instance for tests."""
    return NotificationRepository(db_session)


@pytest.fixture
def user_profile_repository(db_session: AsyncSession) -> UserProfileRepository:
    """Provide a UserProfileRepository instance for tests."""
    return UserProfileRepository(db_session)


@pytest.fixture
def activity_repository(db_session: AsyncSession) -> ActivityRepository:
    """Provide an ActivityRepository instance for tests."""
    return ActivityRepository(db_session)
