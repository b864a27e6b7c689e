"""Per-kind job handlers.

Each handler receives the record already in `processing` and fills in its
output. It raises to fail the job; the executor owns every status change.
"""

import logging
from datetime import datetime
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List

from app.collaborators.base import Collaborators
from app.collaborators.prompts import ats_prompt, interview_prompt, judge_focus, judge_prompt
from app.evaluation.models import JudgeEvaluation
from app.jobs.fallbacks import (
    generated_ats_result,
    generated_interview_scores,
    generated_judge_evaluation,
    normalize_ats,
    normalize_interview,
    normalize_judge,
)
from app.jobs.models import (
    AtsRewriteInput,
    InterviewEvaluateInput,
    JobKind,
    JobRecord,
    ParseLinkedInUrlInput,
    ParseLinkedInZipInput,
    ParseTemplateInput,
    RenderPdfInput,
)
from app.models.interview import InterviewStatus
from app.models.resume import Resume
from app.storage.registry import Stores
from app.storage.temp_results import ArtifactStore

logger = logging.getLogger(__name__)

# fn(progress) -> None; moves the record's progress forward and persists it
ProgressCallback = Callable[[int], Awaitable[None]]
CompletionHook = Callable[[], Awaitable[None]]


@dataclass
class ExecutionContext:
    stores: Stores
    collaborators: Collaborators
    artifacts: ArtifactStore
    progress: ProgressCallback
    completion_hooks: List[CompletionHook] = field(default_factory=list)

    def on_completed(self, hook: CompletionHook) -> None:
        """Run `hook` once the record has been saved as completed, never on failure."""
        self.completion_hooks.append(hook)


async def _load_resume(ctx: ExecutionContext, resume_id: str, user_id: str) -> Resume:
    resume = await ctx.stores.resumes.get_for_owner(resume_id, user_id)
    if resume is None:
        raise LookupError(f"Resume {resume_id} not found")
    return resume


async def handle_parse(job: JobRecord, ctx: ExecutionContext) -> None:
    """Parse an upload or profile and create (or update) the target resume."""
    job_input = job.input
    parser = ctx.collaborators.parser
    if job_input.resume_id:
        resume = await _load_resume(ctx, job_input.resume_id, job.user_id)
    else:
        resume = Resume(user_id=job.user_id)
    await ctx.progress(30)

    await ctx.progress(50)
    if isinstance(job_input, ParseTemplateInput):
        parsed = await parser.parse_template(job_input.file_path, job_input.file_url)
    elif isinstance(job_input, ParseLinkedInUrlInput):
        parsed = await parser.parse_linkedin_url(job_input.profile_url)
    elif isinstance(job_input, ParseLinkedInZipInput):
        parsed = await parser.parse_linkedin_zip(job_input.file_path)
    else:
        raise TypeError(f"Not a parse input: {job_input.kind}")
    await ctx.progress(80)

    if isinstance(job_input, ParseTemplateInput):
        resume.apply_imported_template(parsed, job_input.file_path, job_input.file_url)
        job.result = {"resume_id": resume.id, "parsed_layout": parsed}
    else:
        source = "url" if isinstance(job_input, ParseLinkedInUrlInput) else "zip"
        profile_url = job_input.profile_url if source == "url" else ""
        resume.apply_parsed_profile(parsed, source=source, profile_url=profile_url)
        job.result = {"resume_id": resume.id, "linkedin_data": parsed}

    await ctx.stores.resumes.save(resume)
    job.resource_id = resume.id
    await ctx.progress(90)


async def handle_render(job: JobRecord, ctx: ExecutionContext) -> None:
    job_input: RenderPdfInput = job.input
    resume = await _load_resume(ctx, job_input.resume_id, job.user_id)
    await ctx.progress(30)

    filename = f"resume-{resume.id}.pdf"
    output_path = ctx.artifacts.get_output_path(job.id, filename)
    await ctx.progress(50)
    await ctx.collaborators.renderer.render(resume, job_input.template_id, output_path)
    await ctx.progress(90)

    pdf_url = f"/api/v1/jobs/{job.kind.value}/{job.id}/outputs/{filename}"
    resume.pdf_url = pdf_url
    resume.preview_url = pdf_url
    await ctx.stores.resumes.save(resume)

    job.output_files = [filename]
    job.result = {"pdf_url": pdf_url, "preview_url": pdf_url}


async def handle_ats(job: JobRecord, ctx: ExecutionContext) -> None:
    """Score a resume, and for rewrites apply the suggestions to it."""
    job_input = job.input
    resume = await _load_resume(ctx, job_input.resume_id, job.user_id)
    await ctx.progress(30)

    system, user = ats_prompt(resume.to_text(), job_input.job_description, job_input.job_role)
    await ctx.progress(50)
    result = normalize_ats(await ctx.collaborators.ai.complete_json(system, user))
    source = "ai"
    if result is None:
        logger.info("Job %s: AI scorer unavailable, using generated ATS result", job.id)
        result = generated_ats_result(resume)
        source = "generated"
    await ctx.progress(80)

    if isinstance(job_input, AtsRewriteInput):
        resume.apply_ats_improvements(result)
        await ctx.stores.resumes.save(resume)
        result["improved_resume"] = resume.model_dump(mode="json")

    job.result = {**result, "source": source}


async def handle_interview(job: JobRecord, ctx: ExecutionContext) -> None:
    """Evaluate all answers of an interview and mark the interview evaluated."""
    job_input: InterviewEvaluateInput = job.input
    interview = await ctx.stores.interviews.get_for_owner(job_input.interview_id, job.user_id)
    if interview is None:
        raise LookupError(f"Interview {job_input.interview_id} not found")
    qa_pairs = interview.question_answer_pairs()
    await ctx.progress(30)

    system, user = interview_prompt(qa_pairs, interview.job_role, interview.skills)
    await ctx.progress(50)
    scores = normalize_interview(await ctx.collaborators.ai.complete_json(system, user))
    if scores is None:
        logger.info("Job %s: AI evaluator unavailable, using generated scores", job.id)
        scores = generated_interview_scores(interview.job_role)
    await ctx.progress(80)

    job.result = {"interview_id": interview.id, "scores": scores}

    async def mark_evaluated() -> None:
        current = await ctx.stores.interviews.get(interview.id)
        if current is None:
            logger.warning("Job %s: interview %s vanished before it could be marked", job.id, interview.id)
            return
        current.ai_scores = scores
        current.status = InterviewStatus.EVALUATED
        current.evaluated_at = datetime.utcnow()
        current.evaluation_job_id = job.id
        await ctx.stores.interviews.save(current)

    # A timed-out or failed job must leave the interview untouched
    ctx.on_completed(mark_evaluated)


async def handle_judge(evaluation: JudgeEvaluation, ctx: ExecutionContext) -> None:
    interview = await ctx.stores.interviews.get(evaluation.interview_id)
    if interview is None:
        raise LookupError(f"Interview {evaluation.interview_id} not found")
    qa_pairs = interview.question_answer_pairs()
    role = evaluation.judge_role.value
    await ctx.progress(30)

    system, user = judge_prompt(qa_pairs, role, interview.job_role)
    await ctx.progress(50)
    outcome = normalize_judge(await ctx.collaborators.ai.complete_json(system, user))
    if outcome is None:
        outcome = generated_judge_evaluation(role, judge_focus(role))
    await ctx.progress(90)

    evaluation.scores = outcome["scores"]
    evaluation.feedback = outcome["feedback"]


HANDLERS: Dict[JobKind, Callable] = {
    JobKind.PARSE_TEMPLATE: handle_parse,
    JobKind.PARSE_LINKEDIN_URL: handle_parse,
    JobKind.PARSE_LINKEDIN_ZIP: handle_parse,
    JobKind.RENDER_PDF: handle_render,
    JobKind.ATS_SCORE: handle_ats,
    JobKind.ATS_REWRITE: handle_ats,
    JobKind.INTERVIEW_EVALUATE: handle_interview,
    JobKind.JUDGE_EVALUATE: handle_judge,
}
