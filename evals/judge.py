"""Independent judge: prompt construction, JSON extraction and verdict normalization.

The judge model's output shape is not guaranteed, so every call produces a
tagged outcome (:class:`JudgeOk`, :class:`JudgeParseFailure` or
:class:`JudgeEndpointFailure`). Raw model JSON never leaves this module
without passing through :func:`normalize_evaluation`.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from core.config import EvaluationConfig
from core.errors import JudgeParseError
from llm.base import LLMProvider, LLMRequest
from llm.factory import JudgeProviderFactory
from .models import EvaluationCriteria, JudgeEvaluation, TestScenario, TutorResponse

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert educational AI evaluator. Provide objective, detailed evaluations "
    "of AI tutor responses. Always respond with valid JSON."
)

PROMPT_TEMPLATE = """
You are an expert educational AI evaluator. Your task is to evaluate the quality of an AI tutor's response to a student question.

QUESTION ASKED: "{question}"
DIFFICULTY LEVEL: {difficulty}
EXPECTED CRITERIA: {criteria}

AI TUTOR'S RESPONSE:
"{response}"

Please evaluate this response on a scale of 0-100 for each criterion:

1. ACCURACY: Is the information factually correct?
2. CLARITY: Is the explanation clear and easy to understand?
3. COMPLETENESS: Does it address all parts of the question?
4. AGE_APPROPRIATENESS: Is the language and complexity suitable for grade {grade}?
5. ENGAGEMENT: Is the response engaging and likely to help student learning?
6. STRUCTURE: Is the response well-organized and logical?
{focus}
Provide your evaluation in the following JSON format:
{{
  "overall_score": [0-100],
  "criteria_scores": {{
    "accuracy": [0-100],
    "clarity": [0-100],
    "completeness": [0-100],
    "age_appropriateness": [0-100],
    "engagement": [0-100],
    "structure": [0-100]
  }},
  "detailed_feedback": "detailed explanation of the evaluation",
  "strengths": ["list of strengths"],
  "areas_for_improvement": ["list of areas for improvement"],
  "confidence_level": [0-100]
}}

Be thorough but fair in your evaluation. Consider that this is educational content for students.
"""

# alias -> canonical key
FIELD_ALIASES = {
    "reasoning": "detailed_feedback",
    "feedback": "detailed_feedback",
    "weaknesses": "areas_for_improvement",
    "suggestions": "recommendations",
    "score": "overall_score",
    "confidence": "confidence_level",
}

PARSE_FAILURE_FEEDBACK = "Evaluation parsing failed, using default scores"
PARSE_FAILURE_ISSUE = "Unable to parse detailed evaluation"
ENDPOINT_FAILURE_FEEDBACK = "Could not complete judge evaluation"


@dataclass(frozen=True)
class JudgeOk:
    evaluation: JudgeEvaluation


@dataclass(frozen=True)
class JudgeParseFailure:
    raw: str
    reason: str


@dataclass(frozen=True)
class JudgeEndpointFailure:
    cause: str
    status_code: Optional[int] = None


JudgeOutcome = Union[JudgeOk, JudgeParseFailure, JudgeEndpointFailure]


def build_prompt(scenario: TestScenario, tutor_response: TutorResponse, focus: Optional[str] = None) -> str:
    """Render the rubric prompt for one scenario and tutor answer."""
    focus_line = f"\nADDITIONAL FOCUS: {focus}\n" if focus else ""
    return PROMPT_TEMPLATE.format(
        question=scenario.question,
        difficulty=scenario.difficulty.value,
        criteria=", ".join(scenario.expected_criteria),
        response=tutor_response.response,
        grade=scenario.grade,
        focus=focus_line,
    )


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index one past the bracket closing ``text[start]``, or None."""
    stack = []
    in_string = False
    escaped = False
    pairs = {"{": "}", "[": "]"}

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in pairs:
            stack.append(pairs[char])
        elif char in "}]":
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return index + 1
    return None


def _as_evaluation_dict(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                return item
    return None


def extract_json_block(text: str) -> Optional[Dict[str, Any]]:
    """Find the first JSON object (or array of objects) embedded in ``text``.

    Handles prose before or after the JSON and markdown code fences. A
    top-level array yields its first object.
    """
    if not text:
        return None

    try:
        found = _as_evaluation_dict(json.loads(text.strip()))
        if found is not None:
            return found
    except ValueError:
        pass

    for start, char in enumerate(text):
        if char not in "{[":
            continue
        end = _balanced_end(text, start)
        if end is None:
            continue
        try:
            found = _as_evaluation_dict(json.loads(text[start:end]))
        except ValueError:
            continue
        if found is not None:
            return found
    return None


def normalize_evaluation(raw: Dict[str, Any]) -> JudgeEvaluation:
    """Turn an untrusted judge mapping into a clamped :class:`JudgeEvaluation`."""
    data = dict(raw)
    for alias, canonical in FIELD_ALIASES.items():
        if alias in data and canonical not in data:
            data[canonical] = data[alias]

    known = {name: data[name] for name in JudgeEvaluation.model_fields if name in data}
    return JudgeEvaluation.model_validate(known)


def parse_evaluation(text: str) -> JudgeEvaluation:
    """Extract and normalize the verdict in raw judge output."""
    data = extract_json_block(text)
    if data is None:
        raise JudgeParseError("no JSON object in judge output", raw=text)
    return normalize_evaluation(data)


def parse_failure_evaluation() -> JudgeEvaluation:
    return JudgeEvaluation(
        overall_score=50,
        criteria_scores=EvaluationCriteria.uniform(50),
        detailed_feedback=PARSE_FAILURE_FEEDBACK,
        areas_for_improvement=[PARSE_FAILURE_ISSUE],
        confidence_level=0,
    )


def endpoint_failure_evaluation(cause: str) -> JudgeEvaluation:
    return JudgeEvaluation.zeroed(ENDPOINT_FAILURE_FEEDBACK, f"Judge evaluation failed: {cause}")


def resolve_outcome(outcome: JudgeOutcome) -> JudgeEvaluation:
    """Collapse a tagged outcome into the evaluation stored on a test result."""
    if isinstance(outcome, JudgeOk):
        return outcome.evaluation
    if isinstance(outcome, JudgeParseFailure):
        return parse_failure_evaluation()
    return endpoint_failure_evaluation(outcome.cause)


def describe_failure(outcome: JudgeOutcome) -> Optional[str]:
    """Error text recorded on the test result, None for a clean verdict."""
    if isinstance(outcome, JudgeParseFailure):
        return f"Judge output could not be parsed: {outcome.reason}"
    if isinstance(outcome, JudgeEndpointFailure):
        return f"Judge evaluation failed: {outcome.cause}"
    return None


class JudgeEvaluator:
    """Scores tutor answers with an independent judge model."""

    def __init__(self, config: EvaluationConfig, provider: Optional[LLMProvider] = None):
        self.config = config
        self.provider = provider or JudgeProviderFactory.create(config)

    async def judge(
        self,
        scenario: TestScenario,
        tutor_response: TutorResponse,
        focus: Optional[str] = None,
    ) -> JudgeOutcome:
        request = LLMRequest(
            prompt=build_prompt(scenario, tutor_response, focus),
            system_prompt=SYSTEM_PROMPT,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            metadata={"subject": scenario.subject, "grade": scenario.grade},
        )

        response = await self.provider.generate_with_retry(request, max_retries=self.config.max_retries)
        if response.error:
            logger.error(f"Judge evaluation failed: {response.error}")
            return JudgeEndpointFailure(cause=response.error, status_code=response.status_code)

        try:
            evaluation = parse_evaluation(response.content)
        except JudgeParseError as e:
            logger.warning(f"Failed to parse judge evaluation JSON. Raw response: {e.raw[:500]}")
            return JudgeParseFailure(raw=e.raw, reason=str(e))

        return JudgeOk(evaluation)

    async def evaluate(
        self,
        scenario: TestScenario,
        tutor_response: TutorResponse,
        focus: Optional[str] = None,
    ) -> JudgeEvaluation:
        """Like :meth:`judge` but always returns an evaluation, using fallbacks."""
        return resolve_outcome(await self.judge(scenario, tutor_response, focus))

    async def aclose(self) -> None:
        await self.provider.aclose()
