"""Tests for suite aggregation, grading and recommendations."""

import pytest

from evals.aggregation import (
    GENERAL_RECOMMENDATION,
    MAINTAIN_RECOMMENDATION,
    build_recommendations,
    summarize,
    top_items,
)
from evals.models import (
    CRITERIA,
    EvaluationCriteria,
    JudgeEvaluation,
    TestResult,
    TestScenario,
    TutorResponse,
    letter_grade,
)


def make_result(score, criteria=None, strengths=(), weaknesses=(), error=None):
    scenario = TestScenario(subject="mathematics", grade=8, question=f"Question scoring {score}")
    evaluation = JudgeEvaluation(
        overall_score=score,
        criteria_scores=criteria if criteria is not None else EvaluationCriteria.uniform(score),
        strengths=list(strengths),
        areas_for_improvement=list(weaknesses),
    )
    return TestResult(
        scenario=scenario,
        tutor_response=TutorResponse(response="answer"),
        judge_evaluation=evaluation,
        timestamp="2026-01-01T00:00:00+00:00",
        processing_time_ms=10,
        error=error,
    )


class TestLetterGrade:
    @pytest.mark.parametrize("score, grade", [
        (100, "A+"), (90, "A+"), (89.9, "A"), (85, "A"), (80, "B+"), (75, "B"),
        (70, "C+"), (65, "C"), (60, "D"), (59.9, "F"), (0, "F"),
    ])
    def test_boundaries(self, score, grade):
        assert letter_grade(score) == grade

    def test_result_grade_uses_same_table(self):
        assert make_result(86).grade == "A"


class TestSummarize:
    def test_total_accounting(self):
        results = [make_result(s) for s in (90, 72, 69, 0, 40)]
        summary = summarize(results, passing_score=70)

        assert summary.total_tests == 5
        assert summary.passed_tests == 2
        assert summary.failed_tests == 3
        assert summary.passed_tests + summary.failed_tests == summary.total_tests

    def test_zero_scores_excluded_from_averages(self):
        results = [make_result(80), make_result(60), make_result(0, error="Judge evaluation failed")]
        summary = summarize(results)

        assert summary.average_score == pytest.approx(70.0)
        assert summary.criteria_averages["accuracy"] == pytest.approx(70.0)
        assert summary.failed_tests == 2
        assert summary.total_tests == 3

    def test_criteria_averages_per_criterion(self):
        uneven = EvaluationCriteria(accuracy=90, clarity=0, completeness=50,
                                    age_appropriateness=50, engagement=50, structure=50)
        summary = summarize([make_result(70, uneven), make_result(80)])

        assert summary.criteria_averages["accuracy"] == pytest.approx(85.0)
        assert summary.criteria_averages["clarity"] == pytest.approx(80.0)
        assert set(summary.criteria_averages) == set(CRITERIA)

    def test_empty_results(self):
        summary = summarize([])
        assert summary.total_tests == 0
        assert summary.average_score == 0
        assert summary.grade == "F"
        assert summary.success_rate == 0

    def test_idempotent(self):
        results = [make_result(s, strengths=["clear"], weaknesses=["short"]) for s in (88, 64, 0, 77)]
        first = summarize(results, metadata={"subject": "mathematics"})
        second = summarize(first.results, metadata=first.metadata)
        assert first.to_dict() == second.to_dict()

    def test_common_strengths_and_weaknesses(self):
        results = [
            make_result(80, strengths=["clear", "accurate"], weaknesses=["short"]),
            make_result(80, strengths=["clear", "friendly"], weaknesses=["short", "no example"]),
            make_result(80, strengths=["clear", "accurate", "visual", "fun"]),
        ]
        summary = summarize(results)
        assert summary.common_strengths[:2] == ["clear", "accurate"]
        assert len(summary.common_strengths) == 3
        assert summary.common_weaknesses == ["short", "no example"]

    def test_wire_keys(self):
        data = summarize([make_result(75)]).to_dict()
        for key in ("totalTests", "averageScore", "criteriaAverages", "passedTests", "failedTests",
                    "grade", "recommendations", "criticalIssues", "results", "metadata"):
            assert key in data
        assert data["results"][0]["judgeEvaluation"]["overall_score"] == 75


class TestRecommendations:
    def test_critical_and_improvement_flags(self):
        criteria = {name: 90.0 for name in CRITERIA}
        criteria["accuracy"] = 55.0
        criteria["clarity"] = 70.0
        recommendations, critical = build_recommendations(criteria, overall=78)

        assert len(critical) == 1
        assert "accuracy" in critical[0]
        assert "Enhance explanation clarity with simpler language and examples" in recommendations
        assert GENERAL_RECOMMENDATION in recommendations
        assert MAINTAIN_RECOMMENDATION not in recommendations

    def test_excellent_suite_gets_single_positive_recommendation(self):
        criteria = {name: 92.0 for name in CRITERIA}
        recommendations, critical = build_recommendations(criteria, overall=91)
        assert critical == []
        assert recommendations == [MAINTAIN_RECOMMENDATION]

    def test_errored_tests_raise_critical_issue(self):
        criteria = {name: 92.0 for name in CRITERIA}
        recommendations, critical = build_recommendations(criteria, overall=91, errored_tests=2)
        assert critical == ["2 test(s) failed to evaluate"]
        assert MAINTAIN_RECOMMENDATION not in recommendations

    def test_no_flags_between_75_and_85(self):
        criteria = {name: 80.0 for name in CRITERIA}
        recommendations, critical = build_recommendations(criteria, overall=82)
        assert critical == []
        assert recommendations == []


def test_top_items_limit():
    assert top_items([["a", "b"], ["b", "c"], ["b", "d", "a"]], limit=2) == ["b", "a"]
