"""Pure suite-level aggregation over test results."""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import CRITERIA, EvaluationSummary, TestResult, letter_grade

CRITICAL_THRESHOLD = 60.0
IMPROVEMENT_THRESHOLD = 75.0
GENERAL_REVIEW_THRESHOLD = 80.0
EXCELLENCE_THRESHOLD = 85.0

CRITERION_RECOMMENDATIONS = {
    "accuracy": "Improve factual accuracy with better knowledge base validation",
    "clarity": "Enhance explanation clarity with simpler language and examples",
    "completeness": "Ensure responses address all parts of student questions",
    "age_appropriateness": "Better adapt language and concepts to student grade level",
    "engagement": "Add more interactive elements and relatable examples",
    "structure": "Improve response organization and logical flow",
}
GENERAL_RECOMMENDATION = "Consider reviewing and improving AI tutor responses"
MAINTAIN_RECOMMENDATION = "Excellent performance! Continue monitoring and maintaining quality"


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def average_score(results: Iterable[TestResult]) -> float:
    """Mean overall score over tests that scored above zero."""
    return _mean([r.overall_score for r in results if r.overall_score > 0])


def criteria_averages(results: Iterable[TestResult]) -> Dict[str, float]:
    """Per-criterion mean, each over that criterion's non-zero values."""
    results = list(results)
    averages = {}
    for criterion in CRITERIA:
        scores = [getattr(r.judge_evaluation.criteria_scores, criterion) for r in results]
        averages[criterion] = _mean([s for s in scores if s > 0])
    return averages


def build_recommendations(
    criteria: Dict[str, float],
    overall: float,
    errored_tests: int = 0,
) -> Tuple[List[str], List[str]]:
    """Return ``(recommendations, critical_issues)`` for a set of averages."""
    recommendations: List[str] = []
    critical_issues: List[str] = []

    for criterion, score in criteria.items():
        if score < CRITICAL_THRESHOLD:
            critical_issues.append(
                f"{criterion.replace('_', ' ')} score is critically low ({round(score)}%)"
            )
        elif score < IMPROVEMENT_THRESHOLD:
            recommendations.append(
                CRITERION_RECOMMENDATIONS.get(criterion, f"Improve {criterion.replace('_', ' ')}")
            )

    if errored_tests:
        critical_issues.append(f"{errored_tests} test(s) failed to evaluate")

    if overall < GENERAL_REVIEW_THRESHOLD:
        recommendations.append(GENERAL_RECOMMENDATION)

    if not critical_issues and overall >= EXCELLENCE_THRESHOLD:
        recommendations.append(MAINTAIN_RECOMMENDATION)

    return recommendations, critical_issues


def top_items(lists: Iterable[List[str]], limit: int = 3) -> List[str]:
    """Most frequent entries across lists; ties keep first-seen order."""
    counts = Counter(item for items in lists for item in items)
    return [item for item, _ in counts.most_common(limit)]


def summarize(
    results: List[TestResult],
    passing_score: float = 70.0,
    metadata: Optional[Dict[str, Any]] = None,
) -> EvaluationSummary:
    """Fold test results into an :class:`EvaluationSummary`.

    The summary is a pure function of ``results``: running it again on the
    same list reproduces every statistic.
    """
    results = list(results)
    total = len(results)
    passed = sum(1 for r in results if r.passed(passing_score))
    overall = average_score(results)
    criteria = criteria_averages(results)
    errored = sum(1 for r in results if r.error)
    recommendations, critical_issues = build_recommendations(criteria, overall, errored)

    return EvaluationSummary(
        total_tests=total,
        average_score=overall,
        criteria_averages=criteria,
        passed_tests=passed,
        failed_tests=total - passed,
        grade=letter_grade(overall),
        recommendations=recommendations,
        critical_issues=critical_issues,
        common_strengths=top_items(r.judge_evaluation.strengths for r in results),
        common_weaknesses=top_items(r.judge_evaluation.areas_for_improvement for r in results),
        results=results,
        metadata=dict(metadata or {}),
    )
