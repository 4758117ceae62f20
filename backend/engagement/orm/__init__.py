from engagement.orm.models import (
    ActivityEventORM,
    NotificationORM,
    PushSubscriptionORM,
    UserProfileORM,
)

__all__ = [
    "ActivityEventORM",
    "NotificationORM",
    "PushSubscriptionORM",
    "UserProfileORM",
]
