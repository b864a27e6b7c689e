"""Per-judge evaluation records."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from app.jobs.models import TrackedRecord


class JudgeRole(str, Enum):
    HIRING_MANAGER = "hiring-manager"
    TECHNICAL_LEAD = "technical-lead"
    HR = "hr"
    PEER = "peer"
    ADMIN = "admin"


class Recommendation(str, Enum):
    STRONG_HIRE = "strong-hire"
    HIRE = "hire"
    MAYBE = "maybe"
    NO_HIRE = "no-hire"


# Most conservative first.
RECOMMENDATION_ORDER = (
    Recommendation.NO_HIRE,
    Recommendation.MAYBE,
    Recommendation.HIRE,
    Recommendation.STRONG_HIRE,
)


class JudgeFeedback(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    summary: str = ""
    detailed_feedback: Dict[str, Any] = Field(default_factory=dict)
    recommendation: Recommendation = Recommendation.MAYBE


class JudgeEvaluation(TrackedRecord):
    """One judge's assessment of one interview.

    There is at most one per (interview_id, judge_id). A failed evaluation is
    resubmitted as a new attempt on the same record.
    """
    interview_id: str
    judge_id: str
    judge_name: str = "Anonymous Judge"
    judge_role: JudgeRole = JudgeRole.HIRING_MANAGER
    weight: float = Field(default=1.0, ge=0.0, le=2.0)
    scores: Dict[str, float] = Field(default_factory=dict)
    feedback: Optional[JudgeFeedback] = None
    attempt: int = 1

    def restarted(self) -> "JudgeEvaluation":
        """Fresh pending attempt that reuses this record's identity."""
        return JudgeEvaluation(
            id=self.id,
            interview_id=self.interview_id,
            judge_id=self.judge_id,
            judge_name=self.judge_name,
            judge_role=self.judge_role,
            weight=self.weight,
            created_at=self.created_at,
            attempt=self.attempt + 1,
        )
