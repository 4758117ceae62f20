"""
Notification Repository

Persistence collaborator of the dispatch engine: creates notification records
and answers the "how many since" / "any since" questions asked by the rate
limiter and the dedup guard.
"""

from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.models.notification import (
    MAX_MESSAGE_LENGTH,
    NotificationKind,
    NotificationRecord,
)
from engagement.orm.models import NotificationORM


def as_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime (SQLite returns naive values)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class NotificationRepository:
    """Repository for notification database operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create_notification(
        self,
        user_id: UUID,
        kind: NotificationKind,
        message: str,
        sender_id: Optional[UUID] = None,
        created_at: Optional[datetime] = None,
    ) -> NotificationRecord:
        """
        Create and persist a new notification.

        The record is committed before returning; channel delivery happens
        afterwards and never touches it.

        Args:
            user_id: Recipient user UUID
            kind: Notification kind
            message: Display text
            sender_id: Optional user that caused the notification
            created_at: Creation instant (defaults to now, UTC)

        Returns:
            Created NotificationRecord

        Raises:
            ValueError: If message is longer than MAX_MESSAGE_LENGTH; nothing
                is written
        """
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValueError(
                f"Notification message exceeds {MAX_MESSAGE_LENGTH} characters "
                f"(got {len(message)})"
            )

        notification = NotificationORM(
            user_id=user_id,
            sender_id=sender_id,
            kind=kind.value,
            message=message,
            is_read=False,
            created_at=as_utc(created_at or datetime.now(UTC)),
        )

        self.session.add(notification)
        await self.session.commit()
        await self.session.refresh(notification)

        return self._orm_to_record(notification)

    async def count_since(
        self,
        user_id: UUID,
        since: datetime,
        kind: Optional[NotificationKind] = None,
    ) -> int:
        """
        Count notifications created for a user at or after ``since``.

        Args:
            user_id: User UUID
            since: Inclusive lower bound on created_at
            kind: Restrict the count to one kind

        Returns:
            Number of matching notifications
        """
        stmt = select(func.count(NotificationORM.id)).where(
            NotificationORM.user_id == user_id,
            NotificationORM.created_at >= as_utc(since),
        )
        if kind is not None:
            stmt = stmt.where(NotificationORM.kind == kind.value)

        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def exists_since(
        self,
        user_id: UUID,
        kind: NotificationKind,
        since: datetime,
    ) -> bool:
        """Return True if a notification of ``kind`` was created at or after ``since``."""
        stmt = (
            select(NotificationORM.id)
            .where(
                NotificationORM.user_id == user_id,
                NotificationORM.kind == kind.value,
                NotificationORM.created_at >= as_utc(since),
            )
            .limit(1)
        )

        result = await self.session.execute(stmt)
        return result.first() is not None

    def _orm_to_record(self, orm: NotificationORM) -> NotificationRecord:
        """Convert ORM model to Pydantic model."""
        return NotificationRecord(
            id=orm.id,
            user_id=orm.user_id,
            sender_id=orm.sender_id,
            kind=NotificationKind(orm.kind),
            message=orm.message,
            is_read=orm.is_read,
            read_at=as_utc(orm.read_at) if orm.read_at else None,
            created_at=as_utc(orm.created_at),
        )
