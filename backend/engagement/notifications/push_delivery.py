"""
Push Delivery Service

Fans one payload out to every active push subscription of a user. Sends run
concurrently and independently; a subscription the provider reports as gone
is deactivated, any other failure is only logged so that a transiently
failing endpoint is not switched off by mistake.
"""

import asyncio
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from engagement.models.notification import PushDeliveryResult, PushSubscription, WebPushPayload
from engagement.notifications.push_client import PushClient, PushSendResult, mask_endpoint
from engagement.repositories.user_profile_repository import UserProfileRepository

logger = structlog.get_logger(__name__)


class PushDeliveryService:
    """Delivers push payloads to a user's subscribed browsers."""

    def __init__(self, push_client: PushClient, profiles: UserProfileRepository):
        """
        Initialize delivery service.

        Args:
            push_client: Web Push provider client
            profiles: Source of subscriptions and target of deactivations
        """
        self.push_client = push_client
        self.profiles = profiles

    async def send_to_user(self, user_id: UUID, payload: WebPushPayload) -> PushDeliveryResult:
        """
        Send ``payload`` to all active subscriptions of ``user_id``.

        Args:
            user_id: Recipient
            payload: Push message

        Returns:
            PushDeliveryResult with sent and cleaned counts
        """
        if not self.push_client.is_configured:
            return PushDeliveryResult()

        subscriptions = [
            s for s in await self.profiles.get_push_subscriptions(user_id) if s.is_active
        ]
        if not subscriptions:
            return PushDeliveryResult()

        results = await asyncio.gather(
            *(self._send_one(subscription, payload) for subscription in subscriptions)
        )

        sent = sum(1 for result in results if result == PushSendResult.SUCCESS)

        # Deactivate after the concurrent phase; the session is not shared across tasks
        cleaned = 0
        for subscription, result in zip(subscriptions, results):
            if result != PushSendResult.GONE:
                continue
            try:
                if await self.profiles.deactivate_subscription(user_id, subscription.endpoint):
                    cleaned += 1
            except SQLAlchemyError as e:
                await self.profiles.session.rollback()
                logger.error(
                    "push_subscription_deactivate_failed",
                    user_id=str(user_id),
                    endpoint=mask_endpoint(subscription.endpoint),
                    error=str(e),
                )

        logger.info(
            "push_delivery_complete",
            user_id=str(user_id),
            attempted=len(subscriptions),
            sent=sent,
            cleaned=cleaned,
        )

        return PushDeliveryResult(sent=sent, cleaned=cleaned)

    async def _send_one(
        self, subscription: PushSubscription, payload: WebPushPayload
    ) -> PushSendResult:
        try:
            return await self.push_client.send(subscription.endpoint, subscription.keys, payload)
        except Exception as e:
            logger.error(
                "push_send_unexpected_error",
                endpoint=mask_endpoint(subscription.endpoint),
                error=str(e),
            )
            return PushSendResult.ERROR
