"""Background task dispatch dependencies."""

import logging
from typing import Callable

logger = logging.getLogger(__name__)


def dispatch_profile_refresh(user_id: int) -> bool:
    """Queue a behavior profile recompute. Returns False when the task could not be queued."""
    try:
        from app.tasks.profile_tasks import refresh_behavior_profile
        refresh_behavior_profile.delay(user_id)
        return True
    except Exception as e:
        logger.warning("Could not dispatch profile refresh for user %s: %s", user_id, e)
        return False


def get_profile_refresh_dispatcher() -> Callable[[int], bool]:
    return dispatch_profile_refresh
