"""
SQLAlchemy ORM Models for the Habitus33 engagement engine.

Models:
-------
- NotificationORM: Notifications created by the dispatcher
- UserProfileORM: Minimal user profile carrying the channel policy
- PushSubscriptionORM: Browser push subscriptions (soft-deleted only)
- ActivityEventORM: Qualifying user actions read by campaign rules
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from engagement.database import Base


def utc_now() -> datetime:
    return datetime.now(UTC)


class NotificationORM(Base):
    """
    User notifications.

    Table: notifications
    Primary Key: id (UUID)
    Indexes: idx_notifications_user_created, idx_notifications_user_kind_created
    """

    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    sender_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    message: Mapped[str] = mapped_column(String(500), nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_user_kind_created", "user_id", "kind", "created_at"),
    )


class UserProfileORM(Base):
    """
    User profile slice owned by the account service.

    Table: user_profiles
    Primary Key: id (UUID)
    """

    __tablename__ = "user_profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Serialized ChannelPolicy (allow_push, daily_limit, quiet_hours, categories)
    channel_policy: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class PushSubscriptionORM(Base):
    """
    Browser push notification subscriptions.

    Table: push_subscriptions
    Primary Key: id (UUID)
    Unique: endpoint
    """

    __tablename__ = "push_subscriptions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    endpoint: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    keys: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class ActivityEventORM(Base):
    """
    Qualifying user action (memo written, reading session finished, ...).

    Table: activity_events
    Primary Key: id (UUID)
    """

    __tablename__ = "activity_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index("idx_activity_user_type_occurred", "user_id", "activity_type", "occurred_at"),
    )
