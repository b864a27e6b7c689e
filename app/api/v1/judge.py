"""Multi-judge interview evaluation endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.auth.supabase_auth import CurrentUser, get_current_user, require_role
from app.evaluation.models import JudgeEvaluation, JudgeRole
from app.idempotency.route import IdempotentRoute
from app.jobs.models import JobStatus

router = APIRouter(route_class=IdempotentRoute)

# Set by main.py during lifespan (same pattern as jobs.py)
_gateway = None


def set_gateway(gateway):
    global _gateway
    _gateway = gateway


def _require_gateway():
    if _gateway is None:
        raise HTTPException(status_code=503, detail="Job service not initialized")
    return _gateway


class JudgeEvaluateRequest(BaseModel):
    interview_id: str = Field(..., min_length=1)
    judge_name: Optional[str] = None
    judge_role: JudgeRole = JudgeRole.HIRING_MANAGER
    weight: float = Field(default=1.0, ge=0.0, le=2.0)


class JudgeEvaluateResponse(BaseModel):
    evaluation_id: str
    status: str
    attempt: int
    message: str


def _message_for(evaluation: JudgeEvaluation) -> str:
    if evaluation.status == JobStatus.COMPLETED:
        return "Evaluation already completed"
    if evaluation.status == JobStatus.PROCESSING:
        return "Evaluation already in progress"
    return "Judge evaluation job started"


@router.post("/judge/evaluate", response_model=JudgeEvaluateResponse)
async def submit_judge_evaluation(
    request: JudgeEvaluateRequest,
    user: CurrentUser = Depends(require_role("recruiter", "admin")),
):
    evaluation = await _require_gateway().submit_judge_evaluation(
        judge_id=user.id,
        interview_id=request.interview_id,
        judge_name=request.judge_name or user.name or None,
        judge_role=request.judge_role,
        weight=request.weight,
    )
    return JudgeEvaluateResponse(
        evaluation_id=evaluation.id,
        status=evaluation.status.value,
        attempt=evaluation.attempt,
        message=_message_for(evaluation),
    )


@router.get("/judge/evaluation/{evaluation_id}")
async def get_judge_evaluation(evaluation_id: str, user: CurrentUser = Depends(get_current_user)):
    evaluation = await _require_gateway().get_judge_evaluation(evaluation_id, user.id)
    return {
        "evaluation_id": evaluation.id,
        "interview_id": evaluation.interview_id,
        "status": evaluation.status.value,
        "progress": evaluation.progress,
        "scores": evaluation.scores,
        "feedback": evaluation.feedback.model_dump(mode="json") if evaluation.feedback else None,
        "weight": evaluation.weight,
        "attempt": evaluation.attempt,
        "error": evaluation.error,
    }


@router.get("/judge/interview/{interview_id}/aggregated")
async def get_aggregated_evaluation(interview_id: str, user: CurrentUser = Depends(get_current_user)):
    """Per-judge list plus the weighted aggregate, recomputed on every call."""
    return await _require_gateway().aggregated(interview_id, user.id, user.role)
