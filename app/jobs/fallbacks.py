"""Result shaping for the AI-scored job kinds.

`normalize_*` coerce whatever the AI returned into the stored shape, or
return None when it is unusable. `generated_*` produce plausible results
locally so a missing AI answer never fails a scoring job.
"""

import random
from typing import Any, Dict, List, Optional

from app.evaluation.aggregator import SCORE_CATEGORIES
from app.evaluation.models import JudgeFeedback, Recommendation
from app.models.resume import Resume


def _clamp(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


# ---------------------------------------------------------------------------
# ATS score / rewrite
# ---------------------------------------------------------------------------

def normalize_ats(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not raw or "score" not in raw:
        return None
    return {
        "score": _clamp(raw.get("score"), 1, 100, 70),
        "keyword_match": _clamp(raw.get("keyword_match"), 1, 100, 70),
        "readability": _clamp(raw.get("readability"), 1, 100, 75),
        "formatting": _clamp(raw.get("formatting"), 1, 100, 70),
        "strengths": _str_list(raw.get("strengths")),
        "weaknesses": _str_list(raw.get("weaknesses")),
        "suggested_keywords": _str_list(raw.get("suggested_keywords")),
        "recommended_fixes": _str_list(raw.get("recommended_fixes")),
        "missing_sections": _str_list(raw.get("missing_sections")),
        "ats_optimization_tips": _str_list(raw.get("ats_optimization_tips")),
        "suggested_summary": str(raw.get("suggested_summary") or ""),
        "improved_experience": [
            e for e in raw.get("improved_experience") or [] if isinstance(e, dict)
        ],
    }


def generated_ats_result(resume: Resume) -> Dict[str, Any]:
    """Score in [70, 100) with canned strengths and weaknesses.

    The rewrite suggestions keep the resume's own text, so applying them
    changes nothing but missing keywords.
    """
    return {
        "score": random.randint(70, 99),
        "keyword_match": random.randint(65, 90),
        "readability": random.randint(75, 90),
        "formatting": random.randint(70, 90),
        "strengths": [
            "Clean formatting",
            "Standard section structure",
            "Text-based content",
        ],
        "weaknesses": [
            "Missing some job-relevant keywords",
            "Could improve section headings",
            "Add more quantifiable metrics",
        ],
        "suggested_keywords": [],
        "recommended_fixes": [
            'Use standard headings: "Experience", "Education", "Skills"',
            "Add more industry-specific keywords",
            "Include metrics in bullet points",
        ],
        "missing_sections": [],
        "ats_optimization_tips": [
            "Use simple, clean formatting",
            "Include keywords from the job description",
            "Save as PDF with a text layer (not a scanned image)",
        ],
        "suggested_summary": (resume.personal_info or {}).get("summary")
        or "Experienced professional with strong technical skills and proven track record.",
        "improved_experience": [
            {
                "description": exp.get("description") or "",
                "achievements": list(exp.get("achievements") or []),
            }
            for exp in resume.experience
        ],
    }


# ---------------------------------------------------------------------------
# Interview evaluation (1-10 scale)
# ---------------------------------------------------------------------------

def normalize_interview(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    return {
        "communication": _clamp(raw.get("communication"), 1, 10, 7),
        "confidence": _clamp(raw.get("confidence"), 1, 10, 7),
        "technical": _clamp(raw.get("technical"), 1, 10, 7),
        "overall": _clamp(raw.get("overall"), 1, 10, 7),
        "strengths": _str_list(raw.get("strengths")),
        "improvements": _str_list(raw.get("improvements")),
        "summary": str(raw.get("summary") or "Interview completed successfully."),
    }


def generated_interview_scores(job_role: Optional[str]) -> Dict[str, Any]:
    base = random.uniform(6, 9)

    def jitter() -> int:
        return _clamp(base + random.uniform(-1, 1), 1, 10, 7)

    return {
        "communication": jitter(),
        "confidence": jitter(),
        "technical": jitter(),
        "overall": _clamp(base, 1, 10, 7),
        "strengths": [
            "Clear communication style",
            "Relevant experience mentioned",
            "Shows enthusiasm for the role",
        ],
        "improvements": [
            "Could provide more specific examples",
            "Consider elaborating on technical details",
            "Practice articulating achievements",
        ],
        "summary": (
            f"The candidate demonstrated solid understanding of {job_role or 'the role'} "
            "requirements. Responses were coherent and relevant. Areas for improvement include "
            "providing more concrete examples and technical depth."
        ),
    }


# ---------------------------------------------------------------------------
# Judge evaluation (1-100 scale)
# ---------------------------------------------------------------------------

def recommendation_for_score(overall: float) -> Recommendation:
    if overall >= 85:
        return Recommendation.STRONG_HIRE
    if overall >= 75:
        return Recommendation.HIRE
    if overall >= 65:
        return Recommendation.MAYBE
    return Recommendation.NO_HIRE


def normalize_judge(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not raw or not isinstance(raw.get("scores"), dict):
        return None
    scores = {}
    for category, value in raw["scores"].items():
        try:
            scores[str(category)] = float(max(0.0, min(100.0, float(value))))
        except (TypeError, ValueError):
            continue
    if not scores:
        return None

    try:
        recommendation = Recommendation(raw.get("recommendation"))
    except ValueError:
        recommendation = recommendation_for_score(scores.get("overall", 0.0))

    detailed = raw.get("detailed_feedback")
    feedback = JudgeFeedback(
        strengths=_str_list(raw.get("strengths")),
        improvements=_str_list(raw.get("improvements")),
        summary=str(raw.get("summary") or ""),
        detailed_feedback=detailed if isinstance(detailed, dict) else {},
        recommendation=recommendation,
    )
    return {"scores": scores, "feedback": feedback}


def generated_judge_evaluation(judge_role: str, focus: str) -> Dict[str, Any]:
    scores = {category: float(random.randint(70, 90)) for category in SCORE_CATEGORIES}
    scores["confidence"] = float(random.randint(65, 90))
    feedback = JudgeFeedback(
        strengths=["Clear communication", "Good technical knowledge"],
        improvements=["Could improve confidence", "Reduce filler words"],
        summary=f"Evaluation from {judge_role} perspective focusing on {focus}.",
        detailed_feedback={
            "communication": "Overall communication was clear and understandable.",
            "confidence": "Confidence level was moderate.",
            "technical": "Demonstrated solid technical understanding.",
            "cultural_fit": "Good alignment with company values.",
            "problem_solving": "Showed good problem-solving approach.",
        },
        recommendation=recommendation_for_score(scores["overall"]),
    )
    return {"scores": scores, "feedback": feedback}
