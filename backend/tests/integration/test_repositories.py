"""
Integration tests for the notification, user profile and activity repositories.

Runs against in-memory SQLite.
"""

from datetime import UTC, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from engagement.models.notification import (
    MAX_MESSAGE_LENGTH,
    ActivityType,
    CategoryPolicy,
    ChannelPolicy,
    NotificationKind,
    QuietHours,
)

T0 = datetime(2025, 3, 1, 3, 0, tzinfo=UTC)


class TestNotificationRepository:
    @pytest.mark.asyncio
    async def test_create_notification(self, notification_repository):
        user_id = uuid4()
        sender_id = uuid4()

        record = await notification_repository.create_notification(
            user_id=user_id,
            kind=NotificationKind.SHARE_RECEIVED,
            message="A friend shared a memo with you",
            sender_id=sender_id,
            created_at=T0,
        )

        assert record.id is not None
        assert record.user_id == user_id
        assert record.sender_id == sender_id
        assert record.kind == NotificationKind.SHARE_RECEIVED
        assert record.is_read is False
        assert record.read_at is None
        assert record.created_at == T0

    @pytest.mark.asyncio
    async def test_create_notification_rejects_overlong_message(self, notification_repository):
        user_id = uuid4()

        with pytest.raises(ValueError):
            await notification_repository.create_notification(
                user_id=user_id,
                kind=NotificationKind.MEMO_NUDGE,
                message="x" * (MAX_MESSAGE_LENGTH + 1),
                created_at=T0,
            )

        assert await notification_repository.count_since(user_id, T0 - timedelta(days=1)) == 0

    @pytest.mark.asyncio
    async def test_count_since_respects_bound_and_user(self, notification_repository):
        user_id = uuid4()
        for offset in (-2, 0, 1):
            await notification_repository.create_notification(
                user_id=user_id,
                kind=NotificationKind.MEMO_NUDGE,
                message="hi",
                created_at=T0 + timedelta(hours=offset),
            )
        await notification_repository.create_notification(
            user_id=uuid4(), kind=NotificationKind.MEMO_NUDGE, message="other", created_at=T0
        )

        # Lower bound is inclusive
        assert await notification_repository.count_since(user_id, T0) == 2
        assert await notification_repository.count_since(user_id, T0 - timedelta(days=1)) == 3
        assert await notification_repository.count_since(user_id, T0 + timedelta(hours=2)) == 0

    @pytest.mark.asyncio
    async def test_count_since_by_kind(self, notification_repository):
        user_id = uuid4()
        await notification_repository.create_notification(
            user_id=user_id, kind=NotificationKind.MEMO_NUDGE, message="a", created_at=T0
        )
        await notification_repository.create_notification(
            user_id=user_id, kind=NotificationKind.TS_NUDGE, message="b", created_at=T0
        )

        count = await notification_repository.count_since(
            user_id, T0, kind=NotificationKind.TS_NUDGE
        )

        assert count == 1

    @pytest.mark.asyncio
    async def test_exists_since(self, notification_repository):
        user_id = uuid4()
        await notification_repository.create_notification(
            user_id=user_id, kind=NotificationKind.MEMO_NUDGE, message="a", created_at=T0
        )

        assert await notification_repository.exists_since(user_id, NotificationKind.MEMO_NUDGE, T0)
        assert not await notification_repository.exists_since(
            user_id, NotificationKind.ZENGO_NUDGE, T0
        )
        assert not await notification_repository.exists_since(
            user_id, NotificationKind.MEMO_NUDGE, T0 + timedelta(seconds=1)
        )

    @pytest.mark.asyncio
    async def test_non_utc_since_normalized(self, notification_repository):
        user_id = uuid4()
        await notification_repository.create_notification(
            user_id=user_id, kind=NotificationKind.MEMO_NUDGE, message="a", created_at=T0
        )

        # Same instant as T0 expressed at UTC+9
        seoul_t0 = T0.astimezone(timezone(timedelta(hours=9)))

        assert await notification_repository.count_since(user_id, seoul_t0) == 1


class TestUserProfileRepository:
    @pytest.mark.asyncio
    async def test_missing_profile_gets_default_policy(self, user_profile_repository):
        policy = await user_profile_repository.get_channel_policy(uuid4())

        assert policy == ChannelPolicy()
        assert policy.daily_limit == 2
        assert policy.allow_push is False

    @pytest.mark.asyncio
    async def test_stored_policy_round_trips(self, user_profile_repository, seed):
        user_id = uuid4()
        stored = ChannelPolicy(
            allow_push=True,
            daily_limit=5,
            quiet_hours=QuietHours(start="22:00", end="08:00", time_zone="Europe/Berlin"),
            categories=CategoryPolicy(overrides={NotificationKind.ZENGO_NUDGE: False}),
        )
        await seed.profile(user_id, stored)

        policy = await user_profile_repository.get_channel_policy(user_id)

        assert policy == stored

    @pytest.mark.asyncio
    async def test_invalid_stored_policy_falls_back(self, user_profile_repository, seed):
        user_id = uuid4()
        await seed.profile(user_id, raw_policy={"daily_limit": -1})

        policy = await user_profile_repository.get_channel_policy(user_id)

        assert policy == ChannelPolicy()

    @pytest.mark.asyncio
    async def test_list_active_user_ids(self, user_profile_repository, seed):
        active, inactive = uuid4(), uuid4()
        await seed.profile(active)
        await seed.profile(inactive, is_active=False)

        assert await user_profile_repository.list_active_user_ids() == [active]

    @pytest.mark.asyncio
    async def test_get_push_subscriptions(self, user_profile_repository, seed):
        user_id = uuid4()
        await seed.subscription(user_id, "https://push.example.com/a")
        await seed.subscription(user_id, "https://push.example.com/b", is_active=False)
        await seed.subscription(uuid4(), "https://push.example.com/other")

        subscriptions = await user_profile_repository.get_push_subscriptions(user_id)

        assert {s.endpoint for s in subscriptions} == {
            "https://push.example.com/a",
            "https://push.example.com/b",
        }
        assert subscriptions[0].keys == {"p256dh": "key", "auth": "auth"}

    @pytest.mark.asyncio
    async def test_deactivate_subscription_is_soft_and_once(self, user_profile_repository, seed):
        user_id = uuid4()
        endpoint = "https://push.example.com/gone"
        await seed.subscription(user_id, endpoint)

        assert await user_profile_repository.deactivate_subscription(user_id, endpoint) is True
        assert await user_profile_repository.deactivate_subscription(user_id, endpoint) is False

        subscriptions = await user_profile_repository.get_push_subscriptions(user_id)
        assert len(subscriptions) == 1
        assert subscriptions[0].is_active is False

    @pytest.mark.asyncio
    async def test_deactivate_scoped_to_user(self, user_profile_repository, seed):
        owner = uuid4()
        endpoint = "https://push.example.com/shared"
        await seed.subscription(owner, endpoint)

        assert await user_profile_repository.deactivate_subscription(uuid4(), endpoint) is False


class TestActivityRepository:
    @pytest.mark.asyncio
    async def test_count_since_by_type(self, activity_repository, seed):
        user_id = uuid4()
        await seed.activity(user_id, ActivityType.MEMO, T0, count=3)
        await seed.activity(user_id, ActivityType.MEMO, T0 - timedelta(days=2))
        await seed.activity(user_id, ActivityType.TS_SESSION, T0)
        await seed.activity(uuid4(), ActivityType.MEMO, T0)

        since = T0 - timedelta(hours=24)

        assert await activity_repository.count_since(user_id, ActivityType.MEMO, since) == 3
        assert await activity_repository.count_since(user_id, ActivityType.TS_SESSION, since) == 1
        assert await activity_repository.count_since(user_id, ActivityType.SUMMARY_NOTE, since) == 0
