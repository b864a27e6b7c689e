import asyncio
import tempfile
import unittest

from app.evaluation.models import JudgeEvaluation, JudgeRole, Recommendation
from app.jobs.executor import RESTART_MESSAGE, JobExecutor
from app.jobs.fallbacks import recommendation_for_score
from app.jobs.models import (
    AtsRewriteInput,
    AtsScoreInput,
    InterviewEvaluateInput,
    JobKind,
    JobRecord,
    JobStatus,
    ParseLinkedInUrlInput,
    ParseTemplateInput,
    RenderPdfInput,
    TaskToken,
)
from app.models.interview import InterviewStatus
from app.storage.memory import InMemoryInterviewStore
from app.storage.registry import memory_stores
from app.storage.temp_results import ArtifactStore
from tests.fakes import BrokenRenderer, FakeAI, FakeParser, RecordingDispatcher, collaborators, make_interview, make_resume



class SlowSaveInterviewStore(InMemoryInterviewStore):
    """Writes land immediately but the call returns late."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    async def save(self, interview):
        await super().save(interview)
        await asyncio.sleep(self.delay)


class CountingParser(FakeParser):
    def __init__(self, parsed=None):
        super().__init__(parsed)
        self.calls = 0

    async def _result(self):
        self.calls += 1
        return await super()._result()


class ExecutorTestCase(unittest.IsolatedAsyncioTestCase):
    timeout = 5

    async def asyncSetUp(self):
        self.stores = memory_stores()
        self.artifacts = ArtifactStore(tempfile.mkdtemp(prefix="placed-artifacts-"))
        self.ai = FakeAI()
        self.parser = FakeParser()
        self.renderer = None
        self.resume = make_resume()
        await self.stores.resumes.save(self.resume)
        self.interview = make_interview()
        await self.stores.interviews.save(self.interview)

    def executor(self) -> JobExecutor:
        return JobExecutor(
            self.stores,
            collaborators(ai=self.ai, parser=self.parser, renderer=self.renderer),
            self.artifacts,
            timeout_seconds=self.timeout,
        )

    async def run_job(self, job_input, user_id="user-1") -> JobRecord:
        job = JobRecord.for_input(user_id, job_input)
        await self.stores.jobs.claim(job)
        await self.executor().run(TaskToken(kind=job.kind, record_id=job.id))
        return await self.stores.jobs.get(job.id)


class AtsJobTests(ExecutorTestCase):
    async def test_rewrite_without_ai_completes_with_generated_result(self):
        job = await self.run_job(AtsRewriteInput(resume_id=self.resume.id))

        self.assertEqual(job.status, JobStatus.COMPLETED)
        self.assertEqual(job.progress, 100)
        self.assertGreaterEqual(job.result["score"], 70)
        self.assertLess(job.result["score"], 100)
        self.assertTrue(job.result["strengths"])
        self.assertTrue(job.result["weaknesses"])
        self.assertEqual(job.result["source"], "generated")

    async def test_rewrite_applies_ai_suggestions_to_resume(self):
        self.ai.answers = [{
            "score": 88,
            "strengths": ["Concise"],
            "weaknesses": ["No metrics"],
            "suggested_keywords": ["python", "Kubernetes"],
            "suggested_summary": "Backend engineer focused on payments.",
            "improved_experience": [{"description": "Led payment API redesign.", "achievements": ["Cut p99 by 30%"]}],
        }]
        job = await self.run_job(AtsRewriteInput(resume_id=self.resume.id, job_description="K8s role"))

        self.assertEqual(job.result["source"], "ai")
        resume = await self.stores.resumes.get(self.resume.id)
        self.assertEqual(resume.personal_info["summary"], "Backend engineer focused on payments.")
        self.assertEqual(resume.experience[0]["description"], "Led payment API redesign.")
        self.assertEqual(resume.skills[0]["items"], ["Python", "SQL", "Kubernetes"])
        self.assertIn("K8s role", self.ai.calls[0][1])

    async def test_score_does_not_touch_resume(self):
        self.ai.answers = [{"score": 91, "suggested_summary": "Changed"}]
        job = await self.run_job(AtsScoreInput(resume_id=self.resume.id))
        self.assertEqual(job.result["score"], 91)
        resume = await self.stores.resumes.get(self.resume.id)
        self.assertEqual(resume.personal_info["summary"], "Backend developer.")

    async def test_missing_resume_fails_the_job(self):
        job = await self.run_job(AtsScoreInput(resume_id="nope"))
        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertIn("not found", job.error)


class ParseAndRenderJobTests(ExecutorTestCase):
    async def test_unavailable_parser_fails_without_fallback(self):
        job = await self.run_job(ParseTemplateInput(file_path="/tmp/upload.docx"))
        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error, "parser offline")
        self.assertIsNone(job.result)

    async def test_linkedin_import_creates_resume_and_links_job(self):
        self.parser = FakeParser({
            "name": "Asha Rao",
            "summary": "Engineer",
            "experience": [{"title": "SDE", "company": "Acme"}],
        })
        job = await self.run_job(ParseLinkedInUrlInput(profile_url="https://linkedin.com/in/asha"))

        self.assertEqual(job.status, JobStatus.COMPLETED)
        resume = await self.stores.resumes.get(job.resource_id)
        self.assertEqual(resume.user_id, "user-1")
        self.assertEqual(resume.personal_info["full_name"], "Asha Rao")
        self.assertEqual(resume.personal_info["linkedin"], "https://linkedin.com/in/asha")
        self.assertEqual(resume.linkedin_data["import_source"], "url")
        self.assertEqual(job.result["resume_id"], resume.id)

    async def test_template_import_into_existing_resume(self):
        self.parser = FakeParser({"sections": ["header", "experience"]})
        job = await self.run_job(ParseTemplateInput(file_path="/tmp/cv.pdf", resume_id=self.resume.id))

        self.assertEqual(job.status, JobStatus.COMPLETED)
        resume = await self.stores.resumes.get(self.resume.id)
        self.assertEqual(resume.template_id, "imported")
        self.assertEqual(resume.imported_template["original_name"], "cv.pdf")
        self.assertEqual(resume.experience, self.resume.experience)

    async def test_missing_target_resume_fails_before_parsing(self):
        self.parser = CountingParser({"sections": ["header"]})
        job = await self.run_job(ParseTemplateInput(file_path="/tmp/cv.pdf", resume_id="missing"))

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error, "Resume missing not found")
        self.assertLess(job.progress, 30)
        self.assertEqual(self.parser.calls, 0)

    async def test_render_writes_pdf_and_links_it(self):
        job = await self.run_job(RenderPdfInput(resume_id=self.resume.id))

        self.assertEqual(job.status, JobStatus.COMPLETED, job.error)
        self.assertEqual(len(job.output_files), 1)
        path = self.artifacts.find(job.id, job.output_files[0])
        self.assertIsNotNone(path)
        with open(path, "rb") as f:
            self.assertEqual(f.read(5), b"%PDF-")
        resume = await self.stores.resumes.get(self.resume.id)
        self.assertEqual(resume.pdf_url, job.result["pdf_url"])
        self.assertTrue(resume.pdf_url.endswith(job.output_files[0]))

    async def test_render_failure_is_terminal(self):
        self.renderer = BrokenRenderer()
        job = await self.run_job(RenderPdfInput(resume_id=self.resume.id))
        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error, "renderer offline")


class InterviewAndJudgeJobTests(ExecutorTestCase):
    async def test_interview_evaluated_when_job_completes(self):
        job = await self.run_job(InterviewEvaluateInput(interview_id=self.interview.id))

        self.assertEqual(job.status, JobStatus.COMPLETED)
        interview = await self.stores.interviews.get(self.interview.id)
        self.assertEqual(interview.status, InterviewStatus.EVALUATED)
        self.assertEqual(interview.ai_scores, job.result["scores"])
        self.assertIsNotNone(interview.evaluated_at)
        for key in ("communication", "confidence", "technical", "overall"):
            self.assertTrue(1 <= job.result["scores"][key] <= 10)

    async def test_interview_prompt_uses_transcripts(self):
        self.ai.answers = [{"communication": 9, "overall": 8}]
        job = await self.run_job(InterviewEvaluateInput(interview_id=self.interview.id))
        self.assertEqual(job.result["scores"]["communication"], 9)
        self.assertEqual(job.result["scores"]["confidence"], 7)
        self.assertIn("A race in our payment queue.", self.ai.calls[0][1])

    async def test_failed_interview_job_leaves_interview_untouched(self):
        job = await self.run_job(InterviewEvaluateInput(interview_id=self.interview.id), user_id="someone-else")
        self.assertEqual(job.status, JobStatus.FAILED)
        interview = await self.stores.interviews.get(self.interview.id)
        self.assertEqual(interview.status, InterviewStatus.COMPLETED)

    async def test_judge_evaluation_uses_ai_result(self):
        self.ai.answers = [{
            "scores": {"technical": 92, "overall": 88},
            "strengths": ["Deep systems knowledge"],
            "recommendation": "strong-hire",
        }]
        evaluation = JudgeEvaluation(interview_id=self.interview.id, judge_id="j1", judge_role=JudgeRole.TECHNICAL_LEAD)
        await self.stores.evaluations.claim(evaluation)
        await self.executor().run(TaskToken(kind=JobKind.JUDGE_EVALUATE, record_id=evaluation.id))

        stored = await self.stores.evaluations.get(evaluation.id)
        self.assertEqual(stored.status, JobStatus.COMPLETED)
        self.assertEqual(stored.scores["technical"], 92)
        self.assertEqual(stored.feedback.recommendation, Recommendation.STRONG_HIRE)
        self.assertIn("problem-solving", self.ai.calls[0][1])

    async def test_judge_fallback_recommendation_follows_score(self):
        evaluation = JudgeEvaluation(interview_id=self.interview.id, judge_id="j1")
        await self.stores.evaluations.claim(evaluation)
        await self.executor().run(TaskToken(kind=JobKind.JUDGE_EVALUATE, record_id=evaluation.id))

        stored = await self.stores.evaluations.get(evaluation.id)
        self.assertEqual(stored.status, JobStatus.COMPLETED)
        overall = stored.scores["overall"]
        self.assertEqual(stored.feedback.recommendation, recommendation_for_score(overall))
        self.assertIn("hiring-manager perspective", stored.feedback.summary)


class DriverTests(ExecutorTestCase):
    timeout = 0.1

    async def test_slow_job_times_out(self):
        self.ai = FakeAI(delay=1.0)
        job = await self.run_job(AtsScoreInput(resume_id=self.resume.id))
        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertIn("timed out", job.error)

    async def test_slow_interview_write_does_not_fail_an_evaluated_interview(self):
        slow = SlowSaveInterviewStore(delay=0.3)
        await InMemoryInterviewStore.save(slow, self.interview)
        self.stores.interviews = slow

        job = await self.run_job(InterviewEvaluateInput(interview_id=self.interview.id))

        self.assertEqual(job.status, JobStatus.COMPLETED, job.error)
        interview = await slow.get(self.interview.id)
        self.assertEqual(interview.status, InterviewStatus.EVALUATED)
        self.assertEqual(interview.evaluation_job_id, job.id)
        self.assertEqual(interview.ai_scores, job.result["scores"])

    async def test_timed_out_interview_job_leaves_interview_untouched(self):
        self.ai = FakeAI(delay=1.0)
        job = await self.run_job(InterviewEvaluateInput(interview_id=self.interview.id))

        self.assertEqual(job.status, JobStatus.FAILED)
        interview = await self.stores.interviews.get(self.interview.id)
        self.assertEqual(interview.status, InterviewStatus.COMPLETED)
        self.assertIsNone(interview.evaluation_job_id)

    async def test_terminal_record_is_not_rerun(self):
        job = JobRecord.for_input("user-1", AtsScoreInput(resume_id=self.resume.id))
        job.mark_failed("earlier failure")
        await self.stores.jobs.claim(job)
        await self.executor().run(TaskToken(kind=job.kind, record_id=job.id))
        stored = await self.stores.jobs.get(job.id)
        self.assertEqual(stored.error, "earlier failure")
        self.assertEqual(self.ai.calls, [])

    async def test_recovery_requeues_pending_and_fails_processing(self):
        pending = JobRecord.for_input("user-1", AtsScoreInput(resume_id=self.resume.id))
        running = JobRecord.for_input("user-1", RenderPdfInput(resume_id=self.resume.id))
        running.mark_processing()
        done = JobRecord.for_input("user-1", InterviewEvaluateInput(interview_id=self.interview.id))
        done.mark_processing()
        done.mark_completed()
        evaluation = JudgeEvaluation(interview_id=self.interview.id, judge_id="j1")
        for job in (pending, running, done):
            await self.stores.jobs.save(job)
        await self.stores.evaluations.save(evaluation)

        dispatcher = RecordingDispatcher()
        requeued, failed = await self.executor().recover_unfinished(dispatcher)

        self.assertEqual((requeued, failed), (2, 1))
        self.assertEqual(
            {(t.kind, t.record_id) for t in dispatcher.tokens},
            {(JobKind.ATS_SCORE, pending.id), (JobKind.JUDGE_EVALUATE, evaluation.id)},
        )
        stored = await self.stores.jobs.get(running.id)
        self.assertEqual(stored.status, JobStatus.FAILED)
        self.assertEqual(stored.error, RESTART_MESSAGE)


if __name__ == "__main__":
    unittest.main()
