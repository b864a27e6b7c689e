"""Storage interfaces for jobs, evaluations, idempotency keys and documents."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from app.evaluation.models import JudgeEvaluation
from app.idempotency.models import IdempotencyRecord
from app.jobs.models import JobKind, JobRecord
from app.models.interview import Interview
from app.models.resume import Resume
from app.models.user import UsageCounter, UserAccount


class JobStore(ABC):
    @abstractmethod
    async def claim(self, job: JobRecord) -> JobRecord:
        """Insert `job` unless an active job already exists for its (resource, kind).

        Returns the stored job: `job` itself when inserted, otherwise the
        existing active one. Jobs without a resource id are always inserted.
        """
        ...

    @abstractmethod
    async def get(self, job_id: str) -> Optional[JobRecord]:
        ...

    @abstractmethod
    async def get_for_owner(self, job_id: str, user_id: str) -> Optional[JobRecord]:
        ...

    @abstractmethod
    async def find_active(self, resource_id: str, kind: JobKind) -> Optional[JobRecord]:
        ...

    @abstractmethod
    async def save(self, job: JobRecord) -> None:
        ...

    @abstractmethod
    async def list_unfinished(self) -> List[JobRecord]:
        """All pending and processing jobs, oldest first."""
        ...


class JudgeEvaluationStore(ABC):
    @abstractmethod
    async def claim(self, evaluation: JudgeEvaluation) -> JudgeEvaluation:
        """Insert unless one already exists for (interview, judge); return the stored one."""
        ...

    @abstractmethod
    async def get(self, evaluation_id: str) -> Optional[JudgeEvaluation]:
        ...

    @abstractmethod
    async def get_for_judge(self, evaluation_id: str, judge_id: str) -> Optional[JudgeEvaluation]:
        ...

    @abstractmethod
    async def save(self, evaluation: JudgeEvaluation) -> None:
        ...

    @abstractmethod
    async def restart(self, evaluation: JudgeEvaluation) -> bool:
        """Replace the stored record with `evaluation`, a new attempt of it.

        Only succeeds while the stored record is still the failed previous
        attempt. Returns False (and changes nothing) otherwise.
        """
        ...

    @abstractmethod
    async def list_completed(self, interview_id: str) -> List[JudgeEvaluation]:
        ...

    @abstractmethod
    async def list_unfinished(self) -> List[JudgeEvaluation]:
        ...


class IdempotencyStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[IdempotencyRecord]:
        ...

    @abstractmethod
    async def add(self, record: IdempotencyRecord) -> bool:
        """Insert if the key is new. Returns False (and changes nothing) otherwise."""
        ...

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        ...


class UserStore(ABC):
    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserAccount]:
        ...

    @abstractmethod
    async def save(self, user: UserAccount) -> None:
        ...

    @abstractmethod
    async def increment_usage(self, user_id: str, feature_key: str, month: str) -> UsageCounter:
        """Reset the counter if it belongs to another month, then add one."""
        ...


class ResumeStore(ABC):
    @abstractmethod
    async def get(self, resume_id: str) -> Optional[Resume]:
        ...

    @abstractmethod
    async def get_for_owner(self, resume_id: str, user_id: str) -> Optional[Resume]:
        ...

    @abstractmethod
    async def save(self, resume: Resume) -> None:
        """Insert or replace."""
        ...


class InterviewStore(ABC):
    @abstractmethod
    async def get(self, interview_id: str) -> Optional[Interview]:
        ...

    @abstractmethod
    async def get_for_owner(self, interview_id: str, user_id: str) -> Optional[Interview]:
        ...

    @abstractmethod
    async def save(self, interview: Interview) -> None:
        """Insert or replace."""
        ...
