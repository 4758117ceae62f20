from engagement.repositories.activity_repository import ActivityRepository
from engagement.repositories.notification_repository import NotificationRepository
from engagement.repositories.user_profile_repository import UserProfileRepository

__all__ = ["ActivityRepository", "NotificationRepository", "UserProfileRepository"]
