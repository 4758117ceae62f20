"""
Engagement Campaign Runner

Periodic batch job evaluating the campaign rules for every active user and
dispatching the notifications whose conditions hold.

Execution model:
- Active users are processed concurrently, bounded by a semaphore
- Each user gets its own unit of work (own DB session)
- Rules for one user run sequentially
- A failing rule is counted and its session rolled back; the run continues
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagement.config import Settings, settings as default_settings
from engagement.models.notification import CampaignRunResult
from engagement.notifications.dedup import DedupGuard
from engagement.notifications.dispatcher import Dispatcher
from engagement.notifications.push_client import PushClient
from engagement.notifications.stream_hub import StreamHub
from engagement.repositories.activity_repository import ActivityRepository
from engagement.repositories.user_profile_repository import UserProfileRepository
from engagement.tasks.campaign_rules import CampaignRule, default_rules

logger = structlog.get_logger(__name__)


@dataclass
class EngagementScope:
    """Collaborators bound to one DB session."""

    dispatcher: Dispatcher
    dedup: DedupGuard
    activity: ActivityRepository
    profiles: UserProfileRepository
    session: AsyncSession


ScopeFactory = Callable[[], AbstractAsyncContextManager[EngagementScope]]


def engagement_scope(
    session_maker: async_sessionmaker[AsyncSession],
    stream_hub: StreamHub,
    push_client: PushClient,
    settings: Settings = default_settings,
) -> ScopeFactory:
    """
    Build a factory opening one session-scoped set of collaborators per call.

    Args:
        session_maker: Session factory
        stream_hub: Shared registry of open streams
        push_client: Shared Web Push client
        settings: Application settings

    Returns:
        Zero-argument callable returning an async context manager
    """

    @asynccontextmanager
    async def scope() -> AsyncIterator[EngagementScope]:
        async with session_maker() as session:
            dispatcher = Dispatcher.for_session(session, stream_hub, push_client, settings)
            yield EngagementScope(
                dispatcher=dispatcher,
                dedup=DedupGuard(dispatcher.notifications),
                activity=ActivityRepository(session),
                profiles=dispatcher.profiles,
                session=session,
            )

    return scope


class CampaignRunner:
    """Evaluates campaign rules for all active users."""

    def __init__(
        self,
        scope_factory: ScopeFactory,
        rules: Optional[list[CampaignRule]] = None,
        max_concurrency: int = 5,
    ):
        """
        Initialize campaign runner.

        Args:
            scope_factory: Opens a fresh EngagementScope per unit of work
            rules: Rules to evaluate (defaults to the standard rule set)
            max_concurrency: Users processed at the same time
        """
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

        self.scope_factory = scope_factory
        self.rules = rules if rules is not None else default_rules(default_settings)
        self.max_concurrency = max_concurrency

    async def run(self, now: Optional[datetime] = None) -> CampaignRunResult:
        """
        Run one campaign pass.

        Args:
            now: Evaluation instant (defaults to now, UTC)

        Returns:
            CampaignRunResult with created, users_evaluated and rule_failures
        """
        now = now or datetime.now(UTC)

        async with self.scope_factory() as scope:
            user_ids = await scope.profiles.list_active_user_ids()

        logger.info("campaign_run_started", users=len(user_ids), rules=len(self.rules))

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(user_id: UUID) -> tuple[int, int]:
            async with semaphore:
                return await self._process_user(user_id, now)

        outcomes = await asyncio.gather(*(bounded(user_id) for user_id in user_ids))

        result = CampaignRunResult(
            created=sum(created for created, _ in outcomes),
            users_evaluated=len(user_ids),
            rule_failures=sum(failures for _, failures in outcomes),
        )

        logger.info(
            "campaign_run_complete",
            created=result.created,
            users_evaluated=result.users_evaluated,
            rule_failures=result.rule_failures,
        )

        return result

    async def _process_user(self, user_id: UUID, now: datetime) -> tuple[int, int]:
        """Evaluate every rule for one user. Returns (created, failures)."""
        created = 0
        failures = 0
        attempted = 0

        try:
            async with self.scope_factory() as scope:
                policy = await scope.profiles.get_channel_policy(user_id)
                time_zone = policy.quiet_hours.time_zone

                for rule in self.rules:
                    attempted += 1
                    try:
                        if await self._apply_rule(rule, scope, user_id, now, time_zone):
                            created += 1
                    except Exception as e:
                        failures += 1
                        logger.error(
                            "campaign_rule_failed",
                            user_id=str(user_id),
                            kind=rule.kind.value,
                            error=str(e),
                            exc_info=True,
                        )
                        # A failed statement leaves the session unusable for the next rule
                        await scope.session.rollback()
        except Exception as e:
            # Rules never reached count as failed
            failures += len(self.rules) - attempted
            logger.error(
                "campaign_user_failed",
                user_id=str(user_id),
                error=str(e),
                exc_info=True,
            )

        return created, failures

    async def _apply_rule(
        self,
        rule: CampaignRule,
        scope: EngagementScope,
        user_id: UUID,
        now: datetime,
        time_zone: str,
    ) -> bool:
        if not await rule.is_satisfied(user_id, now, scope.activity):
            return False

        if rule.requires_dedup and not await scope.dedup.can_trigger_today(
            user_id, rule.kind, now=now, time_zone=time_zone
        ):
            logger.debug("campaign_rule_deduplicated", user_id=str(user_id), kind=rule.kind.value)
            return False

        return await scope.dispatcher.dispatch_if_allowed(user_id, rule.kind, rule.message, now=now)
