"""
Policy Engine

Composes category opt-in, the daily cap and quiet hours into a single
admit/deny decision for a (user, kind) pair. Checks run in this order and
short-circuit on the first denial:

1. Category - deny if the user opted out of this kind
2. Rate limit - deny if today's count is at or over the cap
3. Quiet hours - deny if now is inside the quiet window

No persistence happens here.
"""

from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

import structlog

from engagement.models.notification import (
    CategoryPolicy,
    ChannelPolicy,
    DenialReason,
    NotificationKind,
    PolicyDecision,
)
from engagement.notifications.quiet_hours import is_quiet_for
from engagement.notifications.rate_limiter import DailyRateLimiter

logger = structlog.get_logger(__name__)


def is_category_allowed(categories: CategoryPolicy, kind: NotificationKind) -> bool:
    """Per-kind opt-in flag; kinds without an override are allowed by default."""
    return categories.is_allowed(kind)


class PolicyEngine:
    """Admission policy for notifications."""

    def __init__(self, rate_limiter: DailyRateLimiter):
        self.rate_limiter = rate_limiter

    async def evaluate(
        self,
        user_id: UUID,
        kind: NotificationKind,
        policy: ChannelPolicy,
        now: Optional[datetime] = None,
    ) -> PolicyDecision:
        """
        Decide whether ``kind`` may be sent to ``user_id`` right now.

        Args:
            user_id: Recipient
            kind: Notification kind
            policy: Already loaded channel policy of the recipient
            now: Evaluation instant (defaults to now, UTC)

        Returns:
            PolicyDecision with the denial reason, if any
        """
        now = now or datetime.now(UTC)

        if not is_category_allowed(policy.categories, kind):
            return PolicyDecision.deny(DenialReason.CATEGORY_DISABLED)

        has_headroom = await self.rate_limiter.has_headroom(
            user_id,
            daily_limit=policy.daily_limit,
            now=now,
            time_zone=policy.quiet_hours.time_zone,
        )
        if not has_headroom:
            return PolicyDecision.deny(DenialReason.DAILY_LIMIT_REACHED)

        if is_quiet_for(policy.quiet_hours, now):
            return PolicyDecision.deny(DenialReason.QUIET_HOURS)

        return PolicyDecision.admit()

    async def admit(
        self,
        user_id: UUID,
        kind: NotificationKind,
        policy: ChannelPolicy,
        now: Optional[datetime] = None,
    ) -> bool:
        """Boolean form of :meth:`evaluate`."""
        decision = await self.evaluate(user_id, kind, policy, now)
        return decision.admitted
