"""Prompt builders for the ATS, interview and judge scoring calls."""

from typing import Any, Dict, List, Optional, Tuple

ATS_SYSTEM_PROMPT = """You are an ATS (Applicant Tracking System) expert.
Evaluate resume ATS compatibility with focus on:
- Keyword matching against job description
- Formatting (no complex layouts, proper headings)
- File structure (text-based, parseable)
- Industry-standard sections
Provide detailed ATS score and optimization tips."""

INTERVIEW_SYSTEM_PROMPT = """You are an expert interview evaluator.
Analyze candidate responses with focus on:
- Communication clarity (especially for non-native English speakers)
- Technical knowledge relevant to the role
- Confidence and presence
- Cultural fit for the workplace
Provide structured, actionable feedback."""

JUDGE_SYSTEM_PROMPT = """You are an interview panel judge.
Score the candidate from your assigned perspective and recommend one of:
strong-hire, hire, maybe, no-hire."""

JUDGE_ROLE_FOCUS = {
    "hiring-manager": "leadership, cultural fit, communication",
    "technical-lead": "technical skills, problem-solving, domain expertise",
    "hr": "communication, soft skills, cultural alignment",
    "peer": "collaboration, teamwork, communication",
    "admin": "overall assessment",
}


def judge_focus(role: str) -> str:
    return JUDGE_ROLE_FOCUS.get(role, "overall assessment")


def ats_prompt(
    resume_text: str,
    job_description: Optional[str],
    job_role: Optional[str],
) -> Tuple[str, str]:
    job = job_description or f"Position: {job_role or 'Software Developer'}"
    user = f"""Evaluate ATS compatibility for this resume against this job:

Job Description:
{job}

Resume Text:
{resume_text or 'No resume text provided'}

Provide JSON response:
{{
  "score": <1-100>,
  "keyword_match": <1-100>,
  "readability": <1-100>,
  "formatting": <1-100>,
  "strengths": ["strength1", "strength2"],
  "weaknesses": ["weakness1", "weakness2"],
  "suggested_keywords": ["keyword1", "keyword2"],
  "recommended_fixes": ["fix1", "fix2"],
  "missing_sections": ["section1"],
  "ats_optimization_tips": ["tip1", "tip2"],
  "suggested_summary": "Improved professional summary text",
  "improved_experience": [
    {{"description": "Improved description using STAR method", "achievements": ["bullet 1", "bullet 2"]}}
  ]
}}"""
    return ATS_SYSTEM_PROMPT, user


def interview_prompt(
    qa_pairs: List[Dict[str, Any]],
    job_role: Optional[str],
    skills: List[str],
) -> Tuple[str, str]:
    answers = "\n\n".join(
        f"Q{i + 1}: {pair.get('question') or 'Question'}\nAnswer: {pair.get('answer') or 'No answer'}"
        for i, pair in enumerate(qa_pairs)
    )
    user = f"""Evaluate this interview for a {job_role or 'general'} position.

Required Skills: {', '.join(skills) or 'Not specified'}

Interview Answers:
{answers or 'No answers provided'}

Provide JSON response:
{{
  "communication": <1-10>,
  "confidence": <1-10>,
  "technical": <1-10>,
  "overall": <1-10>,
  "strengths": ["strength1", "strength2"],
  "improvements": ["improvement1", "improvement2"],
  "summary": "Overall assessment (2-3 sentences)"
}}"""
    return INTERVIEW_SYSTEM_PROMPT, user


def judge_prompt(
    qa_pairs: List[Dict[str, Any]],
    judge_role: str,
    job_role: Optional[str],
) -> Tuple[str, str]:
    answers = "\n\n".join(
        f"Q{i + 1}: {pair.get('question') or 'Question'}\nAnswer: {pair.get('answer') or 'No answer'}"
        for i, pair in enumerate(qa_pairs)
    )
    user = f"""You are evaluating as a {judge_role} focusing on {judge_focus(judge_role)}.
Position: {job_role or 'Not specified'}

Interview Answers:
{answers or 'No answers provided'}

Provide JSON response (scores 1-100):
{{
  "scores": {{
    "communication": 0, "confidence": 0, "technical": 0,
    "overall": 0, "cultural_fit": 0, "problem_solving": 0
  }},
  "strengths": ["strength1"],
  "improvements": ["improvement1"],
  "summary": "2-3 sentences",
  "detailed_feedback": {{"communication": "...", "technical": "..."}},
  "recommendation": "strong-hire | hire | maybe | no-hire"
}}"""
    return JUDGE_SYSTEM_PROMPT, user
