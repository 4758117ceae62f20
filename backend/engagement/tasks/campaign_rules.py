"""
Engagement Campaign Trigger Rules

Purpose:
--------
Each rule inspects a user's recent activity and says whether a nudge of its
kind should be attempted. Rules are independent of each other; the campaign
runner evaluates them one by one and dispatches once per satisfied rule.

Rules:
------
- InactivityRule: no qualifying action of a type within a lookback window
  (memo-nudge, ts-nudge, zengo-nudge)
- SummarySuggestionRule: enough memos written recently but no summary note
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from uuid import UUID

from engagement.config import Settings
from engagement.models.notification import ActivityType, NotificationKind
from engagement.repositories.activity_repository import ActivityRepository


class CampaignRule(ABC):
    """
    Abstract base class for campaign trigger rules.

    Properties (must be overridden):
    --------------------------------
    - kind: Notification kind created when the rule fires
    - message: Display text of the notification

    ``requires_dedup`` controls whether the dedup guard is consulted before
    dispatch (one notification of ``kind`` per user per local day).
    """

    requires_dedup: bool = True

    @property
    @abstractmethod
    def kind(self) -> NotificationKind:
        pass

    @property
    @abstractmethod
    def message(self) -> str:
        pass

    @abstractmethod
    async def is_satisfied(
        self, user_id: UUID, now: datetime, activity: ActivityRepository
    ) -> bool:
        """
        Evaluate the rule condition for one user.

        Parameters:
        -----------
        user_id : UUID
            User being evaluated
        now : datetime
            Evaluation instant (lookback windows end here)
        activity : ActivityRepository
            Source of recent activity counts

        Returns:
        --------
        bool
            True if a notification should be attempted
        """
        pass


class InactivityRule(CampaignRule):
    """Fires when the user has no ``activity_type`` action in ``lookback``."""

    def __init__(
        self,
        kind: NotificationKind,
        activity_type: ActivityType,
        lookback: timedelta,
        message: str,
    ):
        self._kind = kind
        self._message = message
        self.activity_type = activity_type
        self.lookback = lookback

    @property
    def kind(self) -> NotificationKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    async def is_satisfied(
        self, user_id: UUID, now: datetime, activity: ActivityRepository
    ) -> bool:
        count = await activity.count_since(user_id, self.activity_type, now - self.lookback)
        return count == 0


class SummarySuggestionRule(CampaignRule):
    """Fires when at least ``min_memos`` memos but no summary note were written in ``lookback``."""

    def __init__(self, lookback: timedelta, min_memos: int):
        self.lookback = lookback
        self.min_memos = min_memos

    @property
    def kind(self) -> NotificationKind:
        return NotificationKind.SUMMARY_SUGGESTION

    @property
    def message(self) -> str:
        return (
            "You've collected plenty of memos lately. "
            "How about tying them together in a summary note?"
        )

    async def is_satisfied(
        self, user_id: UUID, now: datetime, activity: ActivityRepository
    ) -> bool:
        since = now - self.lookback
        memos = await activity.count_since(user_id, ActivityType.MEMO, since)
        if memos < self.min_memos:
            return False
        summaries = await activity.count_since(user_id, ActivityType.SUMMARY_NOTE, since)
        return summaries == 0


def default_rules(settings: Settings) -> list[CampaignRule]:
    """The standard rule set, with lookbacks taken from settings."""
    return [
        InactivityRule(
            kind=NotificationKind.MEMO_NUDGE,
            activity_type=ActivityType.MEMO,
            lookback=timedelta(hours=settings.memo_nudge_lookback_hours),
            message="No memos today yet. Jot down one line from what you read.",
        ),
        InactivityRule(
            kind=NotificationKind.TS_NUDGE,
            activity_type=ActivityType.TS_SESSION,
            lookback=timedelta(hours=settings.ts_nudge_lookback_hours),
            message="It's been a while since your last reading session. Ready for a quick one?",
        ),
        InactivityRule(
            kind=NotificationKind.ZENGO_NUDGE,
            activity_type=ActivityType.ZENGO_SESSION,
            lookback=timedelta(hours=settings.zengo_nudge_lookback_hours),
            message="Keep your memory sharp with a round of Zengo.",
        ),
        SummarySuggestionRule(
            lookback=timedelta(days=settings.summary_suggestion_lookback_days),
            min_memos=settings.summary_suggestion_min_memos,
        ),
    ]
