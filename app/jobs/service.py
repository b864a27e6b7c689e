"""Job gateway: validates, gates and creates jobs, and serves their status.

Everything raised here happens before a job is queued and maps to an HTTP
error. Once a token is submitted, errors only show up on the record.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from app.evaluation.aggregator import aggregate_evaluations
from app.evaluation.models import JudgeEvaluation, JudgeRole
from app.jobs.dispatcher import JobDispatcher
from app.jobs.errors import AccessDenied, InvalidJobRequest, ResourceNotFound
from app.jobs.models import (
    InterviewEvaluateInput,
    JobInput,
    JobKind,
    JobRecord,
    JobStatus,
    TaskToken,
)
from app.models.interview import Interview, InterviewStatus
from app.storage.registry import Stores
from app.usage.limiter import UsageLimiter
from app.usage.plans import feature_for_kind

logger = logging.getLogger(__name__)

CANDIDATE_ROLE = "candidate"


class JobGateway:
    def __init__(self, stores: Stores, dispatcher: JobDispatcher, limiter: UsageLimiter):
        self._stores = stores
        self._dispatcher = dispatcher
        self._limiter = limiter

    # ------------------------------------------------------------------
    # Generic jobs
    # ------------------------------------------------------------------

    async def create_job(self, user_id: str, job_input: JobInput) -> Tuple[JobRecord, bool]:
        """Create and queue a job, or return the active one for the same resource.

        Returns (job, created). Usage is only counted when a job was created.
        """
        kind = JobKind(job_input.kind)
        if kind == JobKind.JUDGE_EVALUATE:
            raise InvalidJobRequest("Judge evaluations are created through /judge/evaluate")

        interview = await self._check_target(user_id, job_input)
        user = await self._limiter.load_user(user_id)

        if job_input.resource_id is not None:
            existing = await self._stores.jobs.find_active(job_input.resource_id, kind)
            if existing is not None:
                logger.info("%s for %s already active as %s", kind.value, job_input.resource_id, existing.id)
                return existing, False

        feature = feature_for_kind(kind)
        await self._limiter.enforce(user, feature)

        job = JobRecord.for_input(user_id, job_input)
        stored = await self._stores.jobs.claim(job)
        if stored.id != job.id:
            logger.info("%s for %s claimed concurrently by %s", kind.value, job.resource_id, stored.id)
            return stored, False

        if interview is not None:
            interview.evaluation_job_id = job.id
            await self._stores.interviews.save(interview)

        await self._dispatcher.submit(TaskToken(kind=kind, record_id=job.id))
        await self._limiter.increment(user_id, feature)
        logger.info("Created %s job %s for user %s", kind.value, job.id, user_id)
        return job, True

    async def _check_target(self, user_id: str, job_input: JobInput) -> Optional[Interview]:
        """The caller must own whatever the job works on."""
        if isinstance(job_input, InterviewEvaluateInput):
            interview = await self._stores.interviews.get_for_owner(job_input.interview_id, user_id)
            if interview is None:
                raise ResourceNotFound("Interview not found")
            if interview.status != InterviewStatus.COMPLETED:
                raise InvalidJobRequest(
                    f"Interview must be completed before evaluation (status: {interview.status.value})"
                )
            return interview

        resume_id = getattr(job_input, "resume_id", None)
        if resume_id:
            resume = await self._stores.resumes.get_for_owner(resume_id, user_id)
            if resume is None:
                raise ResourceNotFound("Resume not found")
        return None

    async def get_status(self, job_id: str, user_id: str, kind: JobKind) -> JobRecord:
        job = await self._stores.jobs.get_for_owner(job_id, user_id)
        if job is None or job.kind != kind:
            raise ResourceNotFound("Job not found")
        return job

    # ------------------------------------------------------------------
    # Judge evaluations
    # ------------------------------------------------------------------

    async def submit_judge_evaluation(
        self,
        judge_id: str,
        interview_id: str,
        judge_name: Optional[str] = None,
        judge_role: JudgeRole = JudgeRole.HIRING_MANAGER,
        weight: float = 1.0,
    ) -> JudgeEvaluation:
        """One evaluation per (interview, judge).

        A completed one is returned untouched, an active one is returned as
        is, and a failed one is restarted as a new attempt on the same record.
        """
        if await self._stores.interviews.get(interview_id) is None:
            raise ResourceNotFound("Interview not found")

        candidate = JudgeEvaluation(
            interview_id=interview_id,
            judge_id=judge_id,
            judge_name=judge_name or "Anonymous Judge",
            judge_role=judge_role,
            weight=weight,
        )
        evaluation = await self._stores.evaluations.claim(candidate)

        if evaluation.id != candidate.id:
            if evaluation.status != JobStatus.FAILED:
                return evaluation
            evaluation = evaluation.restarted()
            evaluation.judge_name = candidate.judge_name
            evaluation.judge_role = judge_role
            evaluation.weight = weight
            if not await self._stores.evaluations.restart(evaluation):
                # Another submit restarted it first; report whatever is stored now
                logger.info("Judge evaluation %s was already restarted", evaluation.id)
                return await self._stores.evaluations.get(evaluation.id)
            logger.info("Restarting judge evaluation %s (attempt %d)", evaluation.id, evaluation.attempt)

        await self._dispatcher.submit(TaskToken(kind=JobKind.JUDGE_EVALUATE, record_id=evaluation.id))
        return evaluation

    async def get_judge_evaluation(self, evaluation_id: str, judge_id: str) -> JudgeEvaluation:
        evaluation = await self._stores.evaluations.get_for_judge(evaluation_id, judge_id)
        if evaluation is None:
            raise ResourceNotFound("Evaluation not found")
        return evaluation

    async def aggregated(self, interview_id: str, user_id: str, role: str) -> Dict[str, Any]:
        interview = await self._stores.interviews.get(interview_id)
        if interview is None:
            raise ResourceNotFound("Interview not found")
        if role == CANDIDATE_ROLE and interview.user_id != user_id:
            raise AccessDenied("Access denied")

        evaluations = await self._stores.evaluations.list_completed(interview_id)
        return {
            "interview_id": interview_id,
            "evaluations": [
                {
                    "evaluation_id": e.id,
                    "judge_name": e.judge_name,
                    "judge_role": e.judge_role.value,
                    "scores": e.scores,
                    "feedback": e.feedback.model_dump(mode="json") if e.feedback else None,
                    "weight": e.weight,
                }
                for e in evaluations
            ],
            "aggregated": aggregate_evaluations(evaluations),
        }
