"""Mock interview session as seen by the evaluation jobs."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
import uuid


class InterviewStatus(str, Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    EVALUATED = "evaluated"


class InterviewQuestion(BaseModel):
    id: str
    text: str
    category: Optional[str] = None


class InterviewAnswer(BaseModel):
    question_id: str
    answer_text: str = ""
    transcript: Optional[str] = None
    language: Optional[str] = None
    time_taken: Optional[float] = None

    @property
    def spoken_text(self) -> str:
        return self.transcript or self.answer_text


class Interview(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    job_role: Optional[str] = None
    job_description: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    detected_language: str = "en"
    status: InterviewStatus = InterviewStatus.ONGOING
    questions: List[InterviewQuestion] = Field(default_factory=list)
    answers: List[InterviewAnswer] = Field(default_factory=list)
    ai_scores: Optional[Dict[str, Any]] = None
    evaluation_job_id: Optional[str] = None
    evaluated_at: Optional[datetime] = None

    def transcripts(self) -> str:
        return "\n\n".join(a.spoken_text for a in self.answers if a.spoken_text)

    def question_answer_pairs(self) -> List[Dict[str, Any]]:
        questions = {q.id: q.text for q in self.questions}
        return [
            {
                "question": questions.get(a.question_id, ""),
                "answer": a.spoken_text,
                "language": a.language,
                "time_taken": a.time_taken,
            }
            for a in self.answers
        ]
