"""External collaborators the job handlers call out to.

Parsers and renderers raise CollaboratorUnavailable when they cannot do the
work; that fails the job. The AI client instead returns None and the
scoring handlers fall back to generated results.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.collaborators.ai import AIClient, from_settings
from app.config import Settings
from app.jobs.errors import CollaboratorUnavailable
from app.models.resume import Resume
from app.processing.resume_pdf import render_resume_pdf

logger = logging.getLogger(__name__)


class ResumeParser(ABC):
    """Extracts structured resume data.

    Every method returns a dict with any of: name, summary, email, phone,
    location, experience, education, skills, projects, certifications.
    """

    @abstractmethod
    async def parse_template(self, file_path: str, file_url: Optional[str] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def parse_linkedin_url(self, profile_url: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def parse_linkedin_zip(self, file_path: str) -> Dict[str, Any]:
        ...


class UnconfiguredParser(ResumeParser):
    """Placeholder until a real extractor is wired in."""

    async def parse_template(self, file_path, file_url=None):
        raise CollaboratorUnavailable("Template parser is not configured")

    async def parse_linkedin_url(self, profile_url):
        raise CollaboratorUnavailable("LinkedIn profile parser is not configured")

    async def parse_linkedin_zip(self, file_path):
        raise CollaboratorUnavailable("LinkedIn export parser is not configured")


class ResumeRenderer(ABC):
    @abstractmethod
    async def render(self, resume: Resume, template_id: str, output_path: str) -> None:
        ...


class PillowPdfRenderer(ResumeRenderer):
    """Draws the resume to A4 pages in a worker thread."""

    async def render(self, resume: Resume, template_id: str, output_path: str) -> None:
        try:
            pages = await asyncio.to_thread(
                render_resume_pdf, resume.model_dump(mode="json"), output_path, template_id
            )
        except OSError as exc:
            raise CollaboratorUnavailable(f"PDF rendering failed: {exc}") from exc
        logger.info("Rendered resume %s to %s (%d page(s))", resume.id, output_path, pages)


@dataclass
class Collaborators:
    ai: AIClient
    parser: ResumeParser
    renderer: ResumeRenderer


def default_collaborators(settings: Settings) -> Collaborators:
    ai = from_settings(settings)
    if not ai.configured:
        logger.warning("AI collaborator not configured; scoring jobs will use generated results")
    return Collaborators(ai=ai, parser=UnconfiguredParser(), renderer=PillowPdfRenderer())
