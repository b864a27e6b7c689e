"""Usage limiter: gates job creation on the caller's monthly plan quota."""

import logging
from typing import Optional

from app.jobs.errors import QuotaExceeded, ResourceNotFound, UserBlocked
from app.models.user import UserAccount, current_usage_month
from app.storage.base import UserStore
from app.usage.plans import LimitCheck, check_limit, get_plan

logger = logging.getLogger(__name__)


class UsageLimiter:
    """Check-then-increment over the user store.

    `check` never writes. `increment` is called only once the gated work
    has actually been launched, and resets a stale month before adding one.
    """

    def __init__(self, users: UserStore):
        self._users = users

    async def load_user(self, user_id: str) -> UserAccount:
        user = await self._users.get(user_id)
        if user is None:
            raise ResourceNotFound("User not found")
        if user.is_blocked:
            raise UserBlocked()
        return user

    async def check(self, user: UserAccount, feature_key: Optional[str]) -> LimitCheck:
        usage = user.usage.for_month(current_usage_month())
        return check_limit(user.plan_id, usage, feature_key)

    async def enforce(self, user: UserAccount, feature_key: Optional[str]) -> LimitCheck:
        result = await self.check(user, feature_key)
        if not result.allowed:
            plan = get_plan(user.plan_id)
            hint = (
                "Upgrade to Premium to continue."
                if plan.id == "free"
                else "Your limit will reset next month."
            )
            raise QuotaExceeded(
                f"You've reached your {plan.name} plan limit for this feature. {hint}",
                limit=result.limit,
                used=result.used,
                plan_id=plan.id,
            )
        return result

    async def increment(self, user_id: str, feature_key: Optional[str]) -> None:
        if not feature_key:
            return
        counter = await self._users.increment_usage(user_id, feature_key, current_usage_month())
        logger.info(
            "usage incremented user=%s feature=%s month=%s value=%s",
            user_id, feature_key, counter.usage_month, getattr(counter, feature_key),
        )
