"""Pydantic models shared across the engagement engine."""

from engagement.models.notification import (
    ActivityType,
    CampaignRunResult,
    CategoryPolicy,
    ChannelPolicy,
    DenialReason,
    NotificationKind,
    NotificationRecord,
    PolicyDecision,
    PushDeliveryResult,
    PushSubscription,
    QuietHours,
    WebPushPayload,
)

__all__ = [
    "ActivityType",
    "CampaignRunResult",
    "CategoryPolicy",
    "ChannelPolicy",
    "DenialReason",
    "NotificationKind",
    "NotificationRecord",
    "PolicyDecision",
    "PushDeliveryResult",
    "PushSubscription",
    "QuietHours",
    "WebPushPayload",
]
