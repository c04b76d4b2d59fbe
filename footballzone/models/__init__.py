"""Models package: import all models so metadata.create_all sees them."""

from footballzone.models.user import User, UserRole
from footballzone.models.article import (
    Article, ArticleZoneSetting, ArticleStatus, ArticleCategory, ZoneType
)
from footballzone.models.view_event import ViewEvent
from footballzone.models.subscription import Subscription, SubscriptionStatus

__all__ = [
    "User", "UserRole",
    "Article", "ArticleZoneSetting", "ArticleStatus", "ArticleCategory", "ZoneType",
    "ViewEvent", "Subscription", "SubscriptionStatus",
]
