"""
Notification data models for the engagement and dispatch engine.

This module defines Pydantic models for notification records, per-user channel
policy (quiet hours, daily cap, category opt-in), push subscriptions and the
payloads exchanged with the real-time stream and Web Push channels.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engagement.config import settings

_HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

MAX_MESSAGE_LENGTH = 500


class NotificationKind(str, Enum):
    """Closed set of notification trigger types."""

    MEMO_NUDGE = "memo-nudge"
    TS_NUDGE = "ts-nudge"
    ZENGO_NUDGE = "zengo-nudge"
    SUMMARY_SUGGESTION = "summary-suggestion"
    SHARE_RECEIVED = "share-received"


class ActivityType(str, Enum):
    """Qualifying user actions that campaign rules look back over."""

    MEMO = "memo"
    TS_SESSION = "ts_session"  # Timed reading session
    ZENGO_SESSION = "zengo_session"
    SUMMARY_NOTE = "summary_note"


class DenialReason(str, Enum):
    """Why the policy engine refused a (user, kind) pair."""

    CATEGORY_DISABLED = "category_disabled"
    DAILY_LIMIT_REACHED = "daily_limit_reached"
    QUIET_HOURS = "quiet_hours"


class NotificationRecord(BaseModel):
    """Individual notification record persisted to database."""

    id: UUID
    user_id: UUID
    sender_id: Optional[UUID] = None
    kind: NotificationKind
    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH)
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime


class QuietHours(BaseModel):
    """Do-not-disturb window anchored to the user's time zone.

    Empty ``start`` or ``end`` (or ``start == end``) disables the window.
    ``start > end`` means the window wraps midnight.
    """

    start: str = ""
    end: str = ""
    time_zone: str = Field(default_factory=lambda: settings.default_time_zone)

    @field_validator("start", "end")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        """Accept "HH:MM" (24-hour) or an empty string."""
        v = (v or "").strip()
        if v and not _HHMM_PATTERN.match(v):
            raise ValueError(f"Expected HH:MM or empty string, got {v!r}")
        return v

    @property
    def enabled(self) -> bool:
        return bool(self.start and self.end and self.start != self.end)


class CategoryPolicy(BaseModel):
    """Per-kind opt-in/opt-out flags with an explicit default.

    Keys are validated against :class:`NotificationKind`, so a misspelled
    kind is rejected instead of silently ignored. Kinds without an override
    fall back to ``default``, which lets new kinds reach existing users
    without a data migration.
    """

    overrides: dict[NotificationKind, bool] = Field(default_factory=dict)
    default: bool = True

    def is_allowed(self, kind: NotificationKind) -> bool:
        return self.overrides.get(kind, self.default)


class ChannelPolicy(BaseModel):
    """User notification channel policy (read-only to the engine)."""

    allow_push: bool = False
    daily_limit: int = Field(default_factory=lambda: settings.default_daily_limit, ge=0)
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    categories: CategoryPolicy = Field(default_factory=CategoryPolicy)


class PushSubscription(BaseModel):
    """Browser push notification subscription info.

    ``keys`` holds the opaque Web Push encryption material (``p256dh`` and
    ``auth``) exactly as the browser reported it.
    """

    user_id: UUID
    endpoint: str
    keys: dict[str, str] = Field(default_factory=dict)
    user_agent: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


class WebPushPayload(BaseModel):
    """JSON body delivered to the service worker's push handler."""

    title: str
    body: str
    icon: Optional[str] = None
    badge: Optional[str] = None
    tag: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)


class PushDeliveryResult(BaseModel):
    """Aggregate outcome of one fan-out to a user's push subscriptions."""

    model_config = ConfigDict(frozen=True)

    sent: int = 0
    cleaned: int = 0


class PolicyDecision(BaseModel):
    """Admit/deny outcome of the policy engine."""

    model_config = ConfigDict(frozen=True)

    admitted: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def admit(cls) -> "PolicyDecision":
        return cls(admitted=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "PolicyDecision":
        return cls(admitted=False, reason=reason)


class CampaignRunResult(BaseModel):
    """Summary of one campaign pass."""

    created: int = 0
    users_evaluated: int = 0
    rule_failures: int = 0
