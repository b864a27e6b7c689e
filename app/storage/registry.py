"""Builds the set of stores for the configured backend."""

import logging
from dataclasses import dataclass

from app.config import Settings
from app.storage.base import (
    IdempotencyStore,
    InterviewStore,
    JobStore,
    JudgeEvaluationStore,
    ResumeStore,
    UserStore,
)

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    jobs: JobStore
    evaluations: JudgeEvaluationStore
    idempotency: IdempotencyStore
    users: UserStore
    resumes: ResumeStore
    interviews: InterviewStore


def memory_stores() -> Stores:
    from app.storage.memory import (
        InMemoryIdempotencyStore,
        InMemoryInterviewStore,
        InMemoryJobStore,
        InMemoryJudgeEvaluationStore,
        InMemoryResumeStore,
        InMemoryUserStore,
    )

    return Stores(
        jobs=InMemoryJobStore(),
        evaluations=InMemoryJudgeEvaluationStore(),
        idempotency=InMemoryIdempotencyStore(),
        users=InMemoryUserStore(),
        resumes=InMemoryResumeStore(),
        interviews=InMemoryInterviewStore(),
    )


def supabase_stores() -> Stores:
    from app.db.supabase_client import get_supabase
    from app.storage.supabase_store import (
        SupabaseIdempotencyStore,
        SupabaseInterviewStore,
        SupabaseJobStore,
        SupabaseJudgeEvaluationStore,
        SupabaseResumeStore,
        SupabaseUserStore,
    )

    client = get_supabase()
    return Stores(
        jobs=SupabaseJobStore(client),
        evaluations=SupabaseJudgeEvaluationStore(client),
        idempotency=SupabaseIdempotencyStore(client),
        users=SupabaseUserStore(client),
        resumes=SupabaseResumeStore(client),
        interviews=SupabaseInterviewStore(client),
    )


def build_stores(settings: Settings) -> Stores:
    backend = settings.storage_backend.lower()
    logger.info("Storage backend: %s", backend)
    if backend == "memory":
        return memory_stores()
    if backend == "supabase":
        return supabase_stores()
    raise ValueError(f"Unknown STORAGE_BACKEND {settings.storage_backend!r}")
