"""Supabase-backed stores (service-role client, one table per store).

The client is synchronous, so every query runs in a worker thread. Table
layout lives in app/db/schema.sql.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

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

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

_ACTIVE = [s.value for s in ACTIVE_STATUSES]


async def _run(query) -> List[Dict[str, Any]]:
    response = await asyncio.to_thread(query.execute)
    return response.data or []


def _is_unique_violation(exc: APIError) -> bool:
    return str(getattr(exc, "code", "")) == UNIQUE_VIOLATION


class SupabaseJobStore(JobStore):
    table = "jobs"

    def __init__(self, client: Client):
        self._client = client

    async def claim(self, job: JobRecord) -> JobRecord:
        # A partial unique index on (resource_id, kind) over active rows makes
        # the insert itself the compare-and-swap.
        try:
            await _run(self._client.table(self.table).insert(job.model_dump(mode="json")))
            return job
        except APIError as exc:
            if not _is_unique_violation(exc) or job.resource_id is None:
                raise
        existing = await self.find_active(job.resource_id, job.kind)
        if existing is None:
            # The active job finished between the insert and the lookup
            return await self.claim(job)
        return existing

    async def get(self, job_id: str) -> Optional[JobRecord]:
        rows = await _run(self._client.table(self.table).select("*").eq("id", job_id).limit(1))
        return JobRecord.model_validate(rows[0]) if rows else None

    async def get_for_owner(self, job_id: str, user_id: str) -> Optional[JobRecord]:
        rows = await _run(
            self._client.table(self.table).select("*")
            .eq("id", job_id).eq("user_id", user_id).limit(1)
        )
        return JobRecord.model_validate(rows[0]) if rows else None

    async def find_active(self, resource_id: str, kind: JobKind) -> Optional[JobRecord]:
        rows = await _run(
            self._client.table(self.table).select("*")
            .eq("resource_id", resource_id)
            .eq("kind", kind.value)
            .in_("status", _ACTIVE)
            .limit(1)
        )
        return JobRecord.model_validate(rows[0]) if rows else None

    async def save(self, job: JobRecord) -> None:
        await _run(self._client.table(self.table).upsert(job.model_dump(mode="json")))

    async def list_unfinished(self) -> List[JobRecord]:
        rows = await _run(
            self._client.table(self.table).select("*")
            .in_("status", _ACTIVE).order("created_at")
        )
        return [JobRecord.model_validate(r) for r in rows]


class SupabaseJudgeEvaluationStore(JudgeEvaluationStore):
    table = "judge_evaluations"

    def __init__(self, client: Client):
        self._client = client

    async def claim(self, evaluation: JudgeEvaluation) -> JudgeEvaluation:
        try:
            await _run(self._client.table(self.table).insert(evaluation.model_dump(mode="json")))
            return evaluation
        except APIError as exc:
            if not _is_unique_violation(exc):
                raise
        rows = await _run(
            self._client.table(self.table).select("*")
            .eq("interview_id", evaluation.interview_id)
            .eq("judge_id", evaluation.judge_id)
            .limit(1)
        )
        return JudgeEvaluation.model_validate(rows[0])

    async def get(self, evaluation_id: str) -> Optional[JudgeEvaluation]:
        rows = await _run(self._client.table(self.table).select("*").eq("id", evaluation_id).limit(1))
        return JudgeEvaluation.model_validate(rows[0]) if rows else None

    async def get_for_judge(self, evaluation_id: str, judge_id: str) -> Optional[JudgeEvaluation]:
        rows = await _run(
            self._client.table(self.table).select("*")
            .eq("id", evaluation_id).eq("judge_id", judge_id).limit(1)
        )
        return JudgeEvaluation.model_validate(rows[0]) if rows else None

    async def save(self, evaluation: JudgeEvaluation) -> None:
        await _run(self._client.table(self.table).upsert(evaluation.model_dump(mode="json")))

    async def restart(self, evaluation: JudgeEvaluation) -> bool:
        # Conditional update: the row must still hold the failed previous attempt
        rows = await _run(
            self._client.table(self.table)
            .update(evaluation.model_dump(mode="json"))
            .eq("id", evaluation.id)
            .eq("status", JobStatus.FAILED.value)
            .eq("attempt", evaluation.attempt - 1)
        )
        return bool(rows)

    async def list_completed(self, interview_id: str) -> List[JudgeEvaluation]:
        rows = await _run(
            self._client.table(self.table).select("*")
            .eq("interview_id", interview_id)
            .eq("status", JobStatus.COMPLETED.value)
            .order("created_at")
        )
        return [JudgeEvaluation.model_validate(r) for r in rows]

    async def list_unfinished(self) -> List[JudgeEvaluation]:
        rows = await _run(
            self._client.table(self.table).select("*")
            .in_("status", _ACTIVE).order("created_at")
        )
        return [JudgeEvaluation.model_validate(r) for r in rows]


class SupabaseIdempotencyStore(IdempotencyStore):
    table = "idempotency_keys"

    def __init__(self, client: Client):
        self._client = client

    async def get(self, key: str) -> Optional[IdempotencyRecord]:
        rows = await _run(self._client.table(self.table).select("*").eq("key", key).limit(1))
        return IdempotencyRecord.model_validate(rows[0]) if rows else None

    async def add(self, record: IdempotencyRecord) -> bool:
        if await self._insert(record):
            return True
        # The key is taken; an expired holder gives way, a live one wins
        expired = await _run(
            self._client.table(self.table).delete()
            .eq("key", record.key)
            .lte("expires_at", datetime.utcnow().isoformat())
        )
        if not expired:
            return False
        logger.debug("Replacing expired idempotency key %s", record.key)
        return await self._insert(record)

    async def _insert(self, record: IdempotencyRecord) -> bool:
        try:
            await _run(self._client.table(self.table).insert(record.model_dump(mode="json")))
        except APIError as exc:
            if _is_unique_violation(exc):
                return False
            raise
        return True

    async def purge_expired(self, now: datetime) -> int:
        rows = await _run(
            self._client.table(self.table).delete().lte("expires_at", now.isoformat())
        )
        return len(rows)


class SupabaseUserStore(UserStore):
    table = "users"

    def __init__(self, client: Client):
        self._client = client

    async def get(self, user_id: str) -> Optional[UserAccount]:
        rows = await _run(self._client.table(self.table).select("*").eq("id", user_id).limit(1))
        return UserAccount.model_validate(rows[0]) if rows else None

    async def save(self, user: UserAccount) -> None:
        await _run(self._client.table(self.table).upsert(user.model_dump(mode="json")))

    async def increment_usage(self, user_id: str, feature_key: str, month: str) -> UsageCounter:
        # Read-modify-write; concurrent increments for one user may collapse
        user = await self.get(user_id)
        if user is None:
            raise KeyError(user_id)
        counter = user.usage.incremented(feature_key, month)
        await _run(
            self._client.table(self.table)
            .update({"usage": counter.model_dump(mode="json")})
            .eq("id", user_id)
        )
        return counter


class _DocumentStore:
    """Shared get/get_for_owner/save for owner-scoped documents."""

    table: str
    model: type

    def __init__(self, client: Client):
        self._client = client

    async def get(self, doc_id: str):
        rows = await _run(self._client.table(self.table).select("*").eq("id", doc_id).limit(1))
        return self.model.model_validate(rows[0]) if rows else None

    async def get_for_owner(self, doc_id: str, user_id: str):
        rows = await _run(
            self._client.table(self.table).select("*")
            .eq("id", doc_id).eq("user_id", user_id).limit(1)
        )
        return self.model.model_validate(rows[0]) if rows else None

    async def _upsert(self, doc) -> None:
        await _run(self._client.table(self.table).upsert(doc.model_dump(mode="json")))


class SupabaseResumeStore(_DocumentStore, ResumeStore):
    table = "resumes"
    model = Resume

    async def save(self, resume: Resume) -> None:
        resume.updated_at = datetime.utcnow()
        await self._upsert(resume)


class SupabaseInterviewStore(_DocumentStore, InterviewStore):
    table = "interviews"
    model = Interview

    async def save(self, interview: Interview) -> None:
        await self._upsert(interview)
