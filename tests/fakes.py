"""Test doubles for collaborators and the dispatcher, plus seed helpers."""

import asyncio
from typing import Any, Dict, List, Optional

from app.collaborators.base import Collaborators, PillowPdfRenderer, ResumeParser, ResumeRenderer
from app.jobs.dispatcher import JobDispatcher
from app.jobs.errors import CollaboratorUnavailable
from app.jobs.models import TaskToken
from app.models.interview import Interview, InterviewAnswer, InterviewQuestion, InterviewStatus
from app.models.resume import Resume
from app.models.user import UserAccount


class FakeAI:
    """Returns queued answers in order, then `default` (None = unavailable)."""

    configured = True

    def __init__(self, answers: Optional[List[Optional[Dict[str, Any]]]] = None, default=None, delay: float = 0):
        self.answers = list(answers or [])
        self.default = default
        self.delay = delay
        self.calls: List[tuple] = []

    async def complete_json(self, system_prompt: str, user_prompt: str):
        self.calls.append((system_prompt, user_prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.answers:
            return self.answers.pop(0)
        return self.default


class FakeParser(ResumeParser):
    def __init__(self, parsed: Optional[Dict[str, Any]] = None):
        self.parsed = parsed

    async def _result(self):
        if self.parsed is None:
            raise CollaboratorUnavailable("parser offline")
        return dict(self.parsed)

    async def parse_template(self, file_path, file_url=None):
        return await self._result()

    async def parse_linkedin_url(self, profile_url):
        return await self._result()

    async def parse_linkedin_zip(self, file_path):
        return await self._result()


class BrokenRenderer(ResumeRenderer):
    async def render(self, resume, template_id, output_path):
        raise CollaboratorUnavailable("renderer offline")


class RecordingDispatcher(JobDispatcher):
    def __init__(self):
        self.tokens: List[TaskToken] = []

    async def submit(self, token: TaskToken) -> str:
        self.tokens.append(token)
        return token.record_id

    def pending(self) -> int:
        return len(self.tokens)

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


def collaborators(ai=None, parser=None, renderer: Optional[ResumeRenderer] = None) -> Collaborators:
    return Collaborators(
        ai=ai or FakeAI(),
        parser=parser or FakeParser(),
        renderer=renderer or PillowPdfRenderer(),
    )


def make_user(user_id: str = "user-1", plan_id: str = "free", **kwargs) -> UserAccount:
    return UserAccount(id=user_id, name="Asha Rao", email=f"{user_id}@example.com", plan_id=plan_id, **kwargs)


def make_resume(user_id: str = "user-1", **kwargs) -> Resume:
    return Resume(
        user_id=user_id,
        personal_info={"full_name": "Asha Rao", "summary": "Backend developer.", "email": "asha@example.com"},
        experience=[
            {
                "title": "Software Engineer",
                "company": "Acme",
                "start_date": "2021-01",
                "current": True,
                "description": "Built payment APIs.",
                "achievements": ["Cut latency by 30%"],
            }
        ],
        education=[{"degree": "B.Tech", "institution": "IIT Delhi", "start_date": "2016", "end_date": "2020"}],
        skills=[{"category": "Languages", "items": ["Python", "SQL"]}],
        **kwargs,
    )


def make_interview(user_id: str = "user-1", status: InterviewStatus = InterviewStatus.COMPLETED) -> Interview:
    return Interview(
        user_id=user_id,
        job_role="Backend Engineer",
        skills=["Python", "SQL"],
        status=status,
        questions=[
            InterviewQuestion(id="q1", text="Tell me about yourself."),
            InterviewQuestion(id="q2", text="Describe a hard bug you fixed."),
        ],
        answers=[
            InterviewAnswer(question_id="q1", answer_text="I build backend services."),
            InterviewAnswer(question_id="q2", answer_text="", transcript="A race in our payment queue."),
        ],
    )
