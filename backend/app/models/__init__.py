"""ORM models. Importing this package registers every table on Base.metadata."""

from app.models.ai_model import AIModel
from app.models.user_interaction import UserModelInteraction
from app.models.user_affinity import UserCategoryAffinity, UserProviderAffinity
from app.models.user_behavior_profile import UserBehaviorProfile

__all__ = [
    "AIModel",
    "UserModelInteraction",
    "UserCategoryAffinity",
    "UserProviderAffinity",
    "UserBehaviorProfile",
]
