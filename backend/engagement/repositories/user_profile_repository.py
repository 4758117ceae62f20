"""
User Profile Repository

Read-mostly view of the user profile store: channel policy, push
subscriptions, and the soft deactivation of dead push endpoints.
"""

from uuid import UUID

import structlog
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.models.notification import ChannelPolicy, PushSubscription
from engagement.orm.models import PushSubscriptionORM, UserProfileORM
from engagement.repositories.notification_repository import as_utc

logger = structlog.get_logger(__name__)


class UserProfileRepository:
    """Repository for the profile fields the engagement engine reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_channel_policy(self, user_id: UUID) -> ChannelPolicy:
        """
        Get the channel policy for a user.

        Users without a profile row, or with a stored policy that no longer
        validates, get the default policy.

        Args:
            user_id: User UUID

        Returns:
            ChannelPolicy model
        """
        stmt = select(UserProfileORM.channel_policy).where(UserProfileORM.id == user_id)
        result = await self.session.execute(stmt)
        stored = result.scalar_one_or_none()

        if not stored:
            return ChannelPolicy()

        try:
            return ChannelPolicy(**stored)
        except ValidationError as e:
            logger.warning(
                "channel_policy_invalid_using_defaults",
                user_id=str(user_id),
                error=str(e),
            )
            return ChannelPolicy()

    async def list_active_user_ids(self) -> list[UUID]:
        """Return the ids of every active user profile."""
        stmt = select(UserProfileORM.id).where(UserProfileORM.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_push_subscriptions(self, user_id: UUID) -> list[PushSubscription]:
        """
        Get all push subscriptions for a user, active or not.

        Args:
            user_id: User UUID

        Returns:
            List of PushSubscription models
        """
        stmt = select(PushSubscriptionORM).where(PushSubscriptionORM.user_id == user_id)

        result = await self.session.execute(stmt)
        subscriptions = result.scalars().all()

        return [self._orm_to_push_subscription(s) for s in subscriptions]

    async def deactivate_subscription(self, user_id: UUID, endpoint: str) -> bool:
        """
        Soft-delete a push subscription by flipping ``is_active`` off.

        Rows are kept for audit. Already inactive rows are left untouched.

        Args:
            user_id: User UUID
            endpoint: Push subscription endpoint URL

        Returns:
            True if an active subscription was deactivated
        """
        stmt = (
            update(PushSubscriptionORM)
            .where(
                PushSubscriptionORM.user_id == user_id,
                PushSubscriptionORM.endpoint == endpoint,
                PushSubscriptionORM.is_active.is_(True),
            )
            .values(is_active=False)
        )

        result = await self.session.execute(stmt)
        await self.session.commit()

        return result.rowcount > 0

    def _orm_to_push_subscription(self, orm: PushSubscriptionORM) -> PushSubscription:
        """Convert ORM model to Pydantic model."""
        return PushSubscription(
            user_id=orm.user_id,
            endpoint=orm.endpoint,
            keys=dict(orm.keys or {}),
            user_agent=orm.user_agent,
            is_active=orm.is_active,
            created_at=as_utc(orm.created_at) if orm.created_at else None,
        )
