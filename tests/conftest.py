"""Shared fixtures: a ready config plus stub tutor and judge transports."""

import json

import pytest

from core.config import EvaluationConfig
from core.errors import TutorQueryError
from evals.models import TutorResponse
from llm.base import LLMProvider, LLMResponse


def judge_json(score=80, **criteria):
    """A well-formed judge verdict with every criterion at ``score`` unless overridden."""
    scores = {name: score for name in (
        "accuracy", "clarity", "completeness", "age_appropriateness", "engagement", "structure"
    )}
    scores.update(criteria)
    return json.dumps({
        "overall_score": score,
        "criteria_scores": scores,
        "detailed_feedback": "Clear and correct.",
        "strengths": ["clear steps"],
        "areas_for_improvement": ["add a real-world example"],
        "confidence_level": 90,
    })


class StubJudgeProvider(LLMProvider):
    """Replays canned judge outputs in order; the last one repeats."""

    def __init__(self, config, outputs):
        super().__init__(config)
        self.outputs = list(outputs)
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        if isinstance(output, LLMResponse):
            return output
        return LLMResponse(content=output, provider="stub", model=self.model)


class StubTutor:
    """Answers every question with the same text, or raises the given error."""

    def __init__(self, answer="x = 4", error=None):
        self.answer = answer
        self.error = error
        self.questions = []

    async def query(self, question, student_profile=None, subject=None):
        self.questions.append(question)
        if self.error:
            raise self.error
        return TutorResponse(response=self.answer)

    async def aclose(self):
        pass


@pytest.fixture
def config(tmp_path):
    return EvaluationConfig(
        backend_api_endpoint="http://judge.test/api",
        tutor_api_endpoint="http://tutor.test",
        inter_test_delay=0,
        suite_delay=0,
        results_dir=str(tmp_path / "results"),
        db_path=str(tmp_path / "test.duckdb"),
    )


@pytest.fixture
def stub_provider(config):
    def _make(*outputs):
        return StubJudgeProvider(config, outputs)
    return _make


@pytest.fixture
def stub_tutor():
    def _make(answer="x = 4", error=None):
        return StubTutor(answer, error)
    return _make


@pytest.fixture
def failing_tutor():
    return StubTutor(error=TutorQueryError("Service Unavailable", status_code=503))


@pytest.fixture
def verdict():
    return judge_json
