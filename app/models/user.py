"""User account and monthly usage counters."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


def current_usage_month(now: Optional[datetime] = None) -> str:
    """Calendar month tag in YYYY-MM form (UTC)."""
    return (now or datetime.utcnow()).strftime("%Y-%m")


class UsageCounter(BaseModel):
    """Per-feature counts for one calendar month.

    Counters are never decremented. A counter whose `usage_month` is not the
    current month is stale and reads as all zeros.
    """
    interviews: int = 0
    ats_checks: int = 0
    resume_generations: int = 0
    usage_month: str = Field(default_factory=current_usage_month)

    def for_month(self, month: str) -> "UsageCounter":
        if self.usage_month == month:
            return self.model_copy()
        return UsageCounter(usage_month=month)

    def incremented(self, feature_key: str, month: str) -> "UsageCounter":
        counter = self.for_month(month)
        setattr(counter, feature_key, getattr(counter, feature_key) + 1)
        return counter


class UserAccount(BaseModel):
    id: str
    name: str = ""
    email: Optional[str] = None
    plan_id: str = "free"
    is_blocked: bool = False
    usage: UsageCounter = Field(default_factory=UsageCounter)
