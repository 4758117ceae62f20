"""
Unit tests for PolicyEngine, DailyRateLimiter and DedupGuard.

The notification repository is mocked; only counting/exists answers matter.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from engagement.models.notification import (
    CategoryPolicy,
    ChannelPolicy,
    DenialReason,
    NotificationKind,
    QuietHours,
)
from engagement.notifications.dedup import DedupGuard
from engagement.notifications.policy import PolicyEngine, is_category_allowed
from engagement.notifications.rate_limiter import DailyRateLimiter

# 12:00 in Seoul
NOON_SEOUL = datetime(2025, 3, 1, 3, 0, tzinfo=UTC)
# 23:30 in Seoul
LATE_SEOUL = datetime(2025, 3, 1, 14, 30, tzinfo=UTC)


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.count_since = AsyncMock(return_value=0)
    repo.exists_since = AsyncMock(return_value=False)
    return repo


@pytest.fixture
def engine(repository):
    return PolicyEngine(DailyRateLimiter(repository))


def make_policy(**overrides) -> ChannelPolicy:
    values = {
        "daily_limit": 2,
        "quiet_hours": QuietHours(start="23:00", end="07:00", time_zone="Asia/Seoul"),
    }
    values.update(overrides)
    return ChannelPolicy(**values)


class TestCategoryPolicy:
    def test_unlisted_kind_allowed_by_default(self):
        assert is_category_allowed(CategoryPolicy(), NotificationKind.ZENGO_NUDGE) is True

    def test_override_disables_kind(self):
        categories = CategoryPolicy(overrides={NotificationKind.MEMO_NUDGE: False})
        assert is_category_allowed(categories, NotificationKind.MEMO_NUDGE) is False
        assert is_category_allowed(categories, NotificationKind.TS_NUDGE) is True

    def test_default_false_blocks_unlisted(self):
        categories = CategoryPolicy(
            overrides={NotificationKind.SHARE_RECEIVED: True},
            default=False,
        )
        assert categories.is_allowed(NotificationKind.SHARE_RECEIVED) is True
        assert categories.is_allowed(NotificationKind.MEMO_NUDGE) is False

    def test_override_keys_parsed_from_strings(self):
        categories = CategoryPolicy(overrides={"memo-nudge": False})
        assert categories.is_allowed(NotificationKind.MEMO_NUDGE) is False

    def test_unknown_kind_key_rejected(self):
        with pytest.raises(ValueError):
            CategoryPolicy(overrides={"memo-nudgee": False})


class TestPolicyEngine:
    """Check order: category, then rate limit, then quiet hours."""

    @pytest.mark.asyncio
    async def test_admits_when_all_checks_pass(self, engine, repository):
        decision = await engine.evaluate(
            uuid4(), NotificationKind.MEMO_NUDGE, make_policy(), NOON_SEOUL
        )

        assert decision.admitted is True
        assert decision.reason is None

    @pytest.mark.asyncio
    async def test_category_denial_short_circuits(self, engine, repository):
        policy = make_policy(
            categories=CategoryPolicy(overrides={NotificationKind.MEMO_NUDGE: False})
        )

        decision = await engine.evaluate(uuid4(), NotificationKind.MEMO_NUDGE, policy, LATE_SEOUL)

        assert decision.admitted is False
        assert decision.reason == DenialReason.CATEGORY_DISABLED
        repository.count_since.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limit_checked_before_quiet_hours(self, engine, repository):
        repository.count_since.return_value = 2

        decision = await engine.evaluate(
            uuid4(), NotificationKind.TS_NUDGE, make_policy(), LATE_SEOUL
        )

        assert decision.reason == DenialReason.DAILY_LIMIT_REACHED

    @pytest.mark.asyncio
    async def test_quiet_hours_denial(self, engine, repository):
        repository.count_since.return_value = 1

        decision = await engine.evaluate(
            uuid4(), NotificationKind.TS_NUDGE, make_policy(), LATE_SEOUL
        )

        assert decision.admitted is False
        assert decision.reason == DenialReason.QUIET_HOURS

    @pytest.mark.asyncio
    async def test_zero_daily_limit_denies_without_counting(self, engine, repository):
        decision = await engine.evaluate(
            uuid4(), NotificationKind.MEMO_NUDGE, make_policy(daily_limit=0), NOON_SEOUL
        )

        assert decision.reason == DenialReason.DAILY_LIMIT_REACHED
        repository.count_since.assert_not_called()

    @pytest.mark.asyncio
    async def test_admit_helper_returns_bool(self, engine):
        assert await engine.admit(uuid4(), NotificationKind.MEMO_NUDGE, make_policy(), NOON_SEOUL)


class TestDailyRateLimiter:
    @pytest.mark.asyncio
    async def test_counts_since_local_midnight(self, repository):
        limiter = DailyRateLimiter(repository)
        user_id = uuid4()

        await limiter.has_headroom(user_id, daily_limit=2, now=NOON_SEOUL, time_zone="Asia/Seoul")

        # Midnight Mar 1 in Seoul is 15:00 UTC on Feb 28
        repository.count_since.assert_awaited_once_with(
            user_id, datetime(2025, 2, 28, 15, 0, tzinfo=UTC)
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,expected", [(0, True), (1, True), (2, False), (5, False)])
    async def test_headroom_against_limit(self, repository, count, expected):
        repository.count_since.return_value = count
        limiter = DailyRateLimiter(repository)

        assert (
            await limiter.has_headroom(
                uuid4(), daily_limit=2, now=NOON_SEOUL, time_zone="Asia/Seoul"
            )
            is expected
        )


class TestDedupGuard:
    @pytest.mark.asyncio
    async def test_can_trigger_when_nothing_today(self, repository):
        guard = DedupGuard(repository)

        assert await guard.can_trigger_today(
            uuid4(), NotificationKind.MEMO_NUDGE, now=NOON_SEOUL, time_zone="Asia/Seoul"
        )

    @pytest.mark.asyncio
    async def test_blocked_when_kind_exists_today(self, repository):
        repository.exists_since.return_value = True
        guard = DedupGuard(repository)
        user_id = uuid4()

        allowed = await guard.can_trigger_today(
            user_id, NotificationKind.MEMO_NUDGE, now=NOON_SEOUL, time_zone="Asia/Seoul"
        )

        assert allowed is False
        repository.exists_since.assert_awaited_once_with(
            user_id,
            NotificationKind.MEMO_NUDGE,
            datetime(2025, 2, 28, 15, 0, tzinfo=UTC),
        )
