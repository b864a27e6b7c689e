"""Evaluation aggregator: weighted combination of per-judge evaluations."""

import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from app.evaluation.models import (
    RECOMMENDATION_ORDER,
    JudgeEvaluation,
    Recommendation,
)
from app.jobs.models import JobStatus


# Reported for every aggregate, in this order. Extra categories that judges
# score are appended after these.
SCORE_CATEGORIES = (
    "communication",
    "confidence",
    "technical",
    "overall",
    "cultural_fit",
    "problem_solving",
)

DEFAULT_WEIGHT = 1.0


def aggregate_evaluations(evaluations: Iterable[JudgeEvaluation]) -> Optional[Dict[str, Any]]:
    """Combine completed judge evaluations into one weighted view.

    Per category: sum(score_i * weight_i) / sum(weight_i), rounded half up.
    A judge that did not score a category contributes 0 for it but still
    counts in the denominator. Strengths and improvements are unioned in
    first-seen order. The recommendation is a majority vote; ties go to the
    most conservative of the tied recommendations.

    Returns None when there is nothing completed to aggregate.
    """
    completed = [e for e in evaluations if e.status == JobStatus.COMPLETED]
    if not completed:
        return None

    weights = np.array([_weight_of(e) for e in completed], dtype=float)
    if weights.sum() <= 0:
        # Every judge weighted at zero: fall back to equal weighting
        weights = np.ones(len(completed))

    categories = _categories(completed)
    scores = {}
    for category in categories:
        values = np.array([e.scores.get(category) or 0.0 for e in completed], dtype=float)
        scores[category] = _round_half_up(float(np.average(values, weights=weights)))

    strengths: Dict[str, None] = {}
    improvements: Dict[str, None] = {}
    votes: List[Recommendation] = []
    for evaluation in completed:
        if evaluation.feedback is None:
            continue
        strengths.update(dict.fromkeys(evaluation.feedback.strengths))
        improvements.update(dict.fromkeys(evaluation.feedback.improvements))
        votes.append(evaluation.feedback.recommendation)

    return {
        "scores": scores,
        "strengths": list(strengths),
        "improvements": list(improvements),
        "recommendation": _majority_vote(votes),
        "judge_count": len(completed),
        "total_weight": round(float(sum(_weight_of(e) for e in completed)), 3),
        "summary": f"Aggregated evaluation from {len(completed)} judge(s)",
    }


def _weight_of(evaluation: JudgeEvaluation) -> float:
    if evaluation.weight is None:
        return DEFAULT_WEIGHT
    return float(evaluation.weight)


def _categories(evaluations: List[JudgeEvaluation]) -> List[str]:
    extra: Dict[str, None] = {}
    for evaluation in evaluations:
        for key in evaluation.scores:
            if key not in SCORE_CATEGORIES:
                extra[key] = None
    return list(SCORE_CATEGORIES) + list(extra)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _majority_vote(votes: List[Recommendation]) -> Optional[str]:
    """Most common recommendation; ties resolved toward the conservative end."""
    if not votes:
        return None
    counts = Counter(votes)
    best = max(counts.values())
    tied = [r for r in RECOMMENDATION_ORDER if counts.get(r) == best]
    return tied[0].value
