"""Job record data model and lifecycle state machine for async processing."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
import uuid

from app.jobs.errors import InvalidTransition


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.PROCESSING})

# Forward-only transitions. Terminal states have no way out.
_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class JobKind(str, Enum):
    PARSE_TEMPLATE = "parse-template"
    PARSE_LINKEDIN_URL = "parse-linkedin-url"
    PARSE_LINKEDIN_ZIP = "parse-linkedin-zip"
    RENDER_PDF = "render-pdf"
    ATS_SCORE = "ats-score"
    ATS_REWRITE = "ats-rewrite"
    INTERVIEW_EVALUATE = "interview-evaluate"
    JUDGE_EVALUATE = "judge-evaluate"


PARSE_KINDS = frozenset({
    JobKind.PARSE_TEMPLATE,
    JobKind.PARSE_LINKEDIN_URL,
    JobKind.PARSE_LINKEDIN_ZIP,
})
ATS_KINDS = frozenset({JobKind.ATS_SCORE, JobKind.ATS_REWRITE})


class TrackedRecord(BaseModel):
    """Shared lifecycle for every unit of background work.

    pending -> processing -> completed | failed. Progress only moves forward
    and reaches 100 exactly when the record completes.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _move(self, new_status: JobStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise InvalidTransition(self.id, self.status, new_status)
        self.status = new_status
        self.updated_at = datetime.utcnow()

    def mark_processing(self, progress: int = 10) -> None:
        self._move(JobStatus.PROCESSING)
        self.started_at = self.updated_at
        self.progress = max(self.progress, progress)

    def advance(self, progress: int) -> None:
        """Move progress forward to an intermediate checkpoint (never 100)."""
        if self.status != JobStatus.PROCESSING:
            raise InvalidTransition(self.id, self.status, JobStatus.PROCESSING)
        progress = min(progress, 99)
        if progress > self.progress:
            self.progress = progress
            self.updated_at = datetime.utcnow()

    def mark_completed(self) -> None:
        self._move(JobStatus.COMPLETED)
        self.progress = 100
        self.error = None
        self.completed_at = self.updated_at

    def mark_failed(self, message: str) -> None:
        self._move(JobStatus.FAILED)
        self.error = message
        self.completed_at = self.updated_at


# ---------------------------------------------------------------------------
# Kind-specific inputs (tagged on `kind`, immutable once created)
# ---------------------------------------------------------------------------

class _JobInput(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def resource_id(self) -> Optional[str]:
        return None


class ParseTemplateInput(_JobInput):
    kind: Literal["parse-template"] = "parse-template"
    file_path: str = Field(..., min_length=1)
    file_url: Optional[str] = None
    resume_id: Optional[str] = None

    @property
    def resource_id(self) -> Optional[str]:
        return self.resume_id


class ParseLinkedInUrlInput(_JobInput):
    kind: Literal["parse-linkedin-url"] = "parse-linkedin-url"
    profile_url: str = Field(..., pattern=r"^https?://")
    resume_id: Optional[str] = None

    @property
    def resource_id(self) -> Optional[str]:
        return self.resume_id


class ParseLinkedInZipInput(_JobInput):
    kind: Literal["parse-linkedin-zip"] = "parse-linkedin-zip"
    file_path: str = Field(..., min_length=1)
    resume_id: Optional[str] = None

    @property
    def resource_id(self) -> Optional[str]:
        return self.resume_id


class RenderPdfInput(_JobInput):
    kind: Literal["render-pdf"] = "render-pdf"
    resume_id: str = Field(..., min_length=1)
    template_id: str = "modern"

    @property
    def resource_id(self) -> Optional[str]:
        return self.resume_id


class AtsScoreInput(_JobInput):
    kind: Literal["ats-score"] = "ats-score"
    resume_id: str = Field(..., min_length=1)
    job_description: Optional[str] = None
    job_role: Optional[str] = None

    @property
    def resource_id(self) -> Optional[str]:
        return self.resume_id


class AtsRewriteInput(_JobInput):
    kind: Literal["ats-rewrite"] = "ats-rewrite"
    resume_id: str = Field(..., min_length=1)
    job_description: Optional[str] = None
    job_role: Optional[str] = None

    @property
    def resource_id(self) -> Optional[str]:
        return self.resume_id


class InterviewEvaluateInput(_JobInput):
    kind: Literal["interview-evaluate"] = "interview-evaluate"
    interview_id: str = Field(..., min_length=1)

    @property
    def resource_id(self) -> Optional[str]:
        return self.interview_id


JobInput = Annotated[
    Union[
        ParseTemplateInput,
        ParseLinkedInUrlInput,
        ParseLinkedInZipInput,
        RenderPdfInput,
        AtsScoreInput,
        AtsRewriteInput,
        InterviewEvaluateInput,
    ],
    Field(discriminator="kind"),
]


class JobRecord(TrackedRecord):
    """Tracks the lifecycle of one async processing job."""
    user_id: str
    kind: JobKind
    resource_id: Optional[str] = None
    input: JobInput
    result: Optional[Dict[str, Any]] = None
    output_files: List[str] = Field(default_factory=list)

    @classmethod
    def for_input(cls, user_id: str, job_input: "JobInput") -> "JobRecord":
        return cls(
            user_id=user_id,
            kind=JobKind(job_input.kind),
            resource_id=job_input.resource_id,
            input=job_input,
        )


class TaskToken(BaseModel):
    """What goes on the queue: enough to find the persisted record again."""
    model_config = ConfigDict(frozen=True)

    kind: JobKind
    record_id: str
