"""In-memory stores for local development and tests.

Each store keeps its rows in a dict guarded by one asyncio.Lock and hands
out copies, so callers never mutate stored state without a save.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from app.evaluation.models import JudgeEvaluation
from app.idempotency.models import IdempotencyRecord
from app.jobs.models import ACTIVE_STATUSES, JobKind, JobRecord, JobStatus
from app.models.interview import Interview
from app.models.resume import Resume
from app.models.user import UsageCounter, UserAccount
from app.storage.base import (
    IdempotencyStore,
    InterviewStore,
    JobStore,
    JudgeEvaluationStore,
    ResumeStore,
    UserStore,
)


class InMemoryJobStore(JobStore):
    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = asyncio.Lock()

    async def claim(self, job: JobRecord) -> JobRecord:
        async with self._lock:
            if job.resource_id is not None:
                existing = self._find_active(job.resource_id, job.kind)
                if existing is not None:
                    return existing.model_copy(deep=True)
            self._jobs[job.id] = job.model_copy(deep=True)
            return job

    async def get(self, job_id: str) -> Optional[JobRecord]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def get_for_owner(self, job_id: str, user_id: str) -> Optional[JobRecord]:
        job = self._jobs.get(job_id)
        if job is None or job.user_id != user_id:
            return None
        return job.model_copy(deep=True)

    async def find_active(self, resource_id: str, kind: JobKind) -> Optional[JobRecord]:
        job = self._find_active(resource_id, kind)
        return job.model_copy(deep=True) if job else None

    async def save(self, job: JobRecord) -> None:
        async with self._lock:
            self._jobs[job.id] = job.model_copy(deep=True)

    async def list_unfinished(self) -> List[JobRecord]:
        jobs = [j for j in self._jobs.values() if j.status in ACTIVE_STATUSES]
        return [j.model_copy(deep=True) for j in sorted(jobs, key=lambda j: j.created_at)]

    def _find_active(self, resource_id: str, kind: JobKind) -> Optional[JobRecord]:
        for job in self._jobs.values():
            if job.resource_id == resource_id and job.kind == kind and job.status in ACTIVE_STATUSES:
                return job
        return None


class InMemoryJudgeEvaluationStore(JudgeEvaluationStore):
    def __init__(self):
        self._evaluations: Dict[str, JudgeEvaluation] = {}
        self._by_pair: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def claim(self, evaluation: JudgeEvaluation) -> JudgeEvaluation:
        pair = (evaluation.interview_id, evaluation.judge_id)
        async with self._lock:
            existing_id = self._by_pair.get(pair)
            if existing_id is not None:
                return self._evaluations[existing_id].model_copy(deep=True)
            self._evaluations[evaluation.id] = evaluation.model_copy(deep=True)
            self._by_pair[pair] = evaluation.id
            return evaluation

    async def get(self, evaluation_id: str) -> Optional[JudgeEvaluation]:
        evaluation = self._evaluations.get(evaluation_id)
        return evaluation.model_copy(deep=True) if evaluation else None

    async def get_for_judge(self, evaluation_id: str, judge_id: str) -> Optional[JudgeEvaluation]:
        evaluation = self._evaluations.get(evaluation_id)
        if evaluation is None or evaluation.judge_id != judge_id:
            return None
        return evaluation.model_copy(deep=True)

    async def save(self, evaluation: JudgeEvaluation) -> None:
        async with self._lock:
            self._evaluations[evaluation.id] = evaluation.model_copy(deep=True)
            self._by_pair[(evaluation.interview_id, evaluation.judge_id)] = evaluation.id

    async def restart(self, evaluation: JudgeEvaluation) -> bool:
        async with self._lock:
            current = self._evaluations.get(evaluation.id)
            if current is None or current.status != JobStatus.FAILED or current.attempt != evaluation.attempt - 1:
                return False
            self._evaluations[evaluation.id] = evaluation.model_copy(deep=True)
            return True

    async def list_completed(self, interview_id: str) -> List[JudgeEvaluation]:
        return [
            e.model_copy(deep=True)
            for e in sorted(self._evaluations.values(), key=lambda e: e.created_at)
            if e.interview_id == interview_id and e.status == JobStatus.COMPLETED
        ]

    async def list_unfinished(self) -> List[JudgeEvaluation]:
        return [
            e.model_copy(deep=True)
            for e in sorted(self._evaluations.values(), key=lambda e: e.created_at)
            if e.status in ACTIVE_STATUSES
        ]


class InMemoryIdempotencyStore(IdempotencyStore):
    def __init__(self):
        self._records: Dict[str, IdempotencyRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[IdempotencyRecord]:
        record = self._records.get(key)
        return record.model_copy(deep=True) if record else None

    async def add(self, record: IdempotencyRecord) -> bool:
        async with self._lock:
            existing = self._records.get(record.key)
            if existing is not None and not existing.is_expired():
                return False
            self._records[record.key] = record.model_copy(deep=True)
            return True

    async def purge_expired(self, now: datetime) -> int:
        async with self._lock:
            expired = [k for k, r in self._records.items() if r.is_expired(now)]
            for key in expired:
                del self._records[key]
            return len(expired)


class InMemoryUserStore(UserStore):
    def __init__(self):
        self._users: Dict[str, UserAccount] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> Optional[UserAccount]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def save(self, user: UserAccount) -> None:
        async with self._lock:
            self._users[user.id] = user.model_copy(deep=True)

    async def increment_usage(self, user_id: str, feature_key: str, month: str) -> UsageCounter:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise KeyError(user_id)
            user.usage = user.usage.incremented(feature_key, month)
            return user.usage.model_copy()


class InMemoryResumeStore(ResumeStore):
    def __init__(self):
        self._resumes: Dict[str, Resume] = {}

    async def get(self, resume_id: str) -> Optional[Resume]:
        resume = self._resumes.get(resume_id)
        return resume.model_copy(deep=True) if resume else None

    async def get_for_owner(self, resume_id: str, user_id: str) -> Optional[Resume]:
        resume = self._resumes.get(resume_id)
        if resume is None or resume.user_id != user_id:
            return None
        return resume.model_copy(deep=True)

    async def save(self, resume: Resume) -> None:
        resume.updated_at = datetime.utcnow()
        self._resumes[resume.id] = resume.model_copy(deep=True)


class InMemoryInterviewStore(InterviewStore):
    def __init__(self):
        self._interviews: Dict[str, Interview] = {}

    async def get(self, interview_id: str) -> Optional[Interview]:
        interview = self._interviews.get(interview_id)
        return interview.model_copy(deep=True) if interview else None

    async def get_for_owner(self, interview_id: str, user_id: str) -> Optional[Interview]:
        interview = self._interviews.get(interview_id)
        if interview is None or interview.user_id != user_id:
            return None
        return interview.model_copy(deep=True)

    async def save(self, interview: Interview) -> None:
        self._interviews[interview.id] = interview.model_copy(deep=True)
