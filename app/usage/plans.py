"""Plan definitions and the pure monthly quota check.

Limits are ints or UNLIMITED.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from app.jobs.models import JobKind
from app.models.user import UsageCounter

UNLIMITED = "unlimited"

Limit = Union[int, str]


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price_monthly: int
    price_yearly: int
    limits: Dict[str, Limit] = field(default_factory=dict)


PLANS: Dict[str, Plan] = {
    "free": Plan(
        id="free",
        name="Free",
        price_monthly=0,
        price_yearly=0,
        limits={"interviews": 3, "ats_checks": 3, "resume_generations": 2},
    ),
    "premium": Plan(
        id="premium",
        name="Premium",
        price_monthly=499,
        price_yearly=4990,
        limits={"interviews": 40, "ats_checks": 40, "resume_generations": 30},
    ),
    "enterprise": Plan(
        id="enterprise",
        name="Enterprise",
        price_monthly=9999,
        price_yearly=99990,
        limits={
            "interviews": UNLIMITED,
            "ats_checks": UNLIMITED,
            "resume_generations": UNLIMITED,
        },
    ),
}

# Operation names used by the product surface -> quota category
_OPERATION_FEATURES = {
    "interview-score": "interviews",
    "resume-ats": "ats_checks",
    "resume-analysis": "ats_checks",
    "resume-generation": "resume_generations",
}

# Metered job kinds and the operation they count as; parse kinds are free
KIND_OPERATIONS = {
    JobKind.ATS_SCORE: "resume-ats",
    JobKind.ATS_REWRITE: "resume-ats",
    JobKind.INTERVIEW_EVALUATE: "interview-score",
    JobKind.RENDER_PDF: "resume-generation",
}


def get_plan(plan_id: Optional[str]) -> Plan:
    return PLANS.get(plan_id or "free", PLANS["free"])


def feature_for_operation(operation: Optional[str]) -> Optional[str]:
    return _OPERATION_FEATURES.get(operation) if operation else None


def feature_for_kind(kind: JobKind) -> Optional[str]:
    return feature_for_operation(KIND_OPERATIONS.get(kind))


@dataclass(frozen=True)
class LimitCheck:
    allowed: bool
    remaining: Optional[int]
    limit: Optional[Limit]
    used: int


def check_limit(plan_id: Optional[str], usage: UsageCounter, feature_key: Optional[str]) -> LimitCheck:
    """Read-only quota check against an already month-normalized counter.

    An unmapped feature (no quota defined) is always allowed, and so is an
    unlimited one. Otherwise allowed iff used < limit.
    """
    plan = get_plan(plan_id)
    limit = plan.limits.get(feature_key) if feature_key else None
    used = int(getattr(usage, feature_key, 0) or 0) if feature_key else 0

    if limit is None or limit == UNLIMITED:
        return LimitCheck(allowed=True, remaining=None, limit=limit, used=used)

    remaining = max(0, int(limit) - used)
    return LimitCheck(allowed=used < int(limit), remaining=remaining, limit=limit, used=used)
