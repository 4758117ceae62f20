"""
Notification Dispatcher

Orchestrating entry point of the engine. For a candidate (user, kind,
message) it:
- Loads the user's channel policy and asks the policy engine
- Persists the notification record on admit (the source of truth)
- Broadcasts the record to the user's open streams (best-effort)
- Sends a Web Push when the policy allows it (best-effort)

Only record persistence (and the policy reads feeding the decision) can fail
the call. Channel failures are logged and never roll back or duplicate the
record.
"""

from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.config import Settings, settings as default_settings
from engagement.models.notification import NotificationKind, NotificationRecord, WebPushPayload
from engagement.notifications.exceptions import PersistenceFailure
from engagement.notifications.policy import PolicyEngine
from engagement.notifications.push_client import PushClient
from engagement.notifications.push_delivery import PushDeliveryService
from engagement.notifications.rate_limiter import DailyRateLimiter
from engagement.notifications.stream_hub import StreamHub
from engagement.repositories.notification_repository import NotificationRepository
from engagement.repositories.user_profile_repository import UserProfileRepository

logger = structlog.get_logger(__name__)

STREAM_EVENT_NAME = "notification"


class Dispatcher:
    """Policy-gated, multi-channel notification dispatcher."""

    def __init__(
        self,
        notifications: NotificationRepository,
        profiles: UserProfileRepository,
        policy_engine: PolicyEngine,
        stream_hub: StreamHub,
        push_delivery: PushDeliveryService,
        settings: Settings = default_settings,
    ):
        """
        Initialize dispatcher with its collaborators.

        Args:
            notifications: Notification record store
            profiles: Channel policy source
            policy_engine: Admission policy
            stream_hub: Registry of open real-time streams
            push_delivery: Web Push fan-out
            settings: Push payload presentation settings
        """
        self.notifications = notifications
        self.profiles = profiles
        self.policy_engine = policy_engine
        self.stream_hub = stream_hub
        self.push_delivery = push_delivery
        self.settings = settings

    @classmethod
    def for_session(
        cls,
        session: AsyncSession,
        stream_hub: StreamHub,
        push_client: PushClient,
        settings: Settings = default_settings,
    ) -> "Dispatcher":
        """Wire a dispatcher whose repositories share ``session``."""
        notifications = NotificationRepository(session)
        profiles = UserProfileRepository(session)
        return cls(
            notifications=notifications,
            profiles=profiles,
            policy_engine=PolicyEngine(DailyRateLimiter(notifications)),
            stream_hub=stream_hub,
            push_delivery=PushDeliveryService(push_client, profiles),
            settings=settings,
        )

    async def dispatch_if_allowed(
        self,
        user_id: UUID,
        kind: NotificationKind,
        message: str,
        *,
        sender_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Create and fan out a notification if policy admits it.

        Args:
            user_id: Recipient
            kind: Notification kind
            message: Display text
            sender_id: Optional user that caused the notification
            now: Evaluation instant (defaults to now, UTC)

        Returns:
            True iff a notification record was created

        Raises:
            PersistenceFailure: Policy could not be read, or the record could not be
                written (including a message over the stored length limit)
        """
        now = now or datetime.now(UTC)

        try:
            policy = await self.profiles.get_channel_policy(user_id)
            decision = await self.policy_engine.evaluate(user_id, kind, policy, now)
        except SQLAlchemyError as e:
            await self.notifications.session.rollback()
            logger.error(
                "dispatch_policy_read_failed",
                user_id=str(user_id),
                kind=kind.value,
                error=str(e),
            )
            raise PersistenceFailure(f"Failed to evaluate policy for user {user_id}") from e

        if not decision.admitted:
            logger.info(
                "dispatch_denied",
                user_id=str(user_id),
                kind=kind.value,
                reason=decision.reason.value if decision.reason else None,
            )
            return False

        try:
            record = await self.notifications.create_notification(
                user_id=user_id,
                kind=kind,
                message=message,
                sender_id=sender_id,
                created_at=now,
            )
        except (SQLAlchemyError, ValueError) as e:
            await self.notifications.session.rollback()
            logger.error(
                "dispatch_record_create_failed",
                user_id=str(user_id),
                kind=kind.value,
                error=str(e),
            )
            raise PersistenceFailure(f"Failed to create {kind.value} notification") from e

        logger.info(
            "notification_created",
            notification_id=str(record.id),
            user_id=str(user_id),
            kind=kind.value,
        )

        self._broadcast(record)

        if policy.allow_push:
            await self._push(record)

        return True

    def _broadcast(self, record: NotificationRecord) -> None:
        try:
            self.stream_hub.broadcast(
                record.user_id,
                STREAM_EVENT_NAME,
                record.model_dump(mode="json"),
            )
        except Exception as e:
            logger.error(
                "dispatch_stream_broadcast_failed",
                notification_id=str(record.id),
                error=str(e),
                exc_info=True,
            )

    async def _push(self, record: NotificationRecord) -> None:
        try:
            await self.push_delivery.send_to_user(record.user_id, self._build_push_payload(record))
        except Exception as e:
            if isinstance(e, SQLAlchemyError):
                # Leave the shared session usable for the caller's next statement
                await self.notifications.session.rollback()
            logger.error(
                "dispatch_push_failed",
                notification_id=str(record.id),
                error=str(e),
                exc_info=True,
            )

    def _build_push_payload(self, record: NotificationRecord) -> WebPushPayload:
        return WebPushPayload(
            title=self.settings.push_default_title,
            body=record.message,
            icon=self.settings.push_icon,
            tag=record.kind.value,
            data={
                "notification_id": str(record.id),
                "kind": record.kind.value,
                "url": self.settings.push_click_url,
            },
        )
