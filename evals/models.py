"""Data contracts for scenarios, tutor answers, judge verdicts and suite results."""

import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

CRITERIA: Tuple[str, ...] = (
    "accuracy",
    "clarity",
    "completeness",
    "age_appropriateness",
    "engagement",
    "structure",
)

# (lower bound, grade), checked top down
GRADE_BOUNDARIES: Tuple[Tuple[float, str], ...] = (
    (90.0, "A+"),
    (85.0, "A"),
    (80.0, "B+"),
    (75.0, "B"),
    (70.0, "C+"),
    (65.0, "C"),
    (60.0, "D"),
)


def clamp_score(value: Any) -> float:
    """Coerce a raw judge value into a score within [0, 100].

    Numbers and numeric strings are clamped; anything else (None, booleans,
    NaN, free text, containers) becomes 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return 0.0
    if not isinstance(value, (int, float)):
        return 0.0
    number = float(value)
    if math.isnan(number):
        return 0.0
    return max(0.0, min(100.0, number))


def letter_grade(score: float) -> str:
    """Map a 0-100 score to a letter grade."""
    for lower_bound, grade in GRADE_BOUNDARIES:
        if score >= lower_bound:
            return grade
    return "F"


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


class Difficulty(str, Enum):
    """Difficulty levels for test scenarios."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class TestScenario(BaseModel):
    """A fixed test question plus its grading context."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)
    __test__: ClassVar[bool] = False

    subject: str
    grade: int
    question: str
    expected_criteria: List[str] = Field(default_factory=list, alias="expectedCriteria")
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    context: Optional[str] = None

    @field_validator("question")
    @classmethod
    def validate_question(cls, v):
        """Ensure the question is not empty."""
        if not v.strip():
            raise ValueError("Scenario question cannot be empty")
        return v.strip()

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StudentProfile(BaseModel):
    """Read-only snapshot of a student, supplied by the caller."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    student_id: str = Field("eval_student", alias="studentId")
    name: str = "Test Student"
    grade: int = 8
    board: str = "CBSE"
    country: str = "India"
    subjects: List[str] = Field(default_factory=list)
    school: Optional[str] = None
    learning_pace: Optional[str] = Field(None, alias="learningPace")
    challenges: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    learning_style: List[str] = Field(default_factory=list, alias="learningStyle")
    notes: Optional[str] = None

    @classmethod
    def load(cls, path: str) -> "StudentProfile":
        """Load a profile from a JSON file."""
        with open(Path(path), "r", encoding="utf-8") as f:
            data = json.load(f)
        profile = cls.model_validate(data)
        logger.info(f"Loaded student profile '{profile.name}' from {path}")
        return profile

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TutorResponseMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: str
    processing_time: float = Field(0.0, alias="processingTime")
    model: Optional[str] = None


class TutorResponse(BaseModel):
    """The tutor's answer to one scenario."""

    model_config = ConfigDict(frozen=True)

    response: str = ""
    success: bool = True
    error: Optional[str] = None
    metadata: Optional[TutorResponseMetadata] = None

    @classmethod
    def failed(cls, error: str) -> "TutorResponse":
        return cls(response="", success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EvaluationCriteria(BaseModel):
    """The six rubric scores, each clamped into [0, 100]."""

    accuracy: float = 0.0
    clarity: float = 0.0
    completeness: float = 0.0
    age_appropriateness: float = 0.0
    engagement: float = 0.0
    structure: float = 0.0

    @field_validator(*CRITERIA, mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)

    @classmethod
    def uniform(cls, value: float) -> "EvaluationCriteria":
        return cls(**{name: value for name in CRITERIA})

    def items(self) -> List[Tuple[str, float]]:
        return [(name, getattr(self, name)) for name in CRITERIA]


class JudgeEvaluation(BaseModel):
    """A normalized judge verdict. Every score is clamped on construction."""

    overall_score: float = 0.0
    criteria_scores: EvaluationCriteria = Field(default_factory=EvaluationCriteria)
    detailed_feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    confidence_level: float = 0.0
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("overall_score", "confidence_level", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)

    @field_validator("criteria_scores", mode="before")
    @classmethod
    def criteria_mapping(cls, v):
        if isinstance(v, EvaluationCriteria):
            return v
        if not isinstance(v, dict):
            return {}
        return {name: v.get(name) for name in CRITERIA}

    @field_validator("strengths", "areas_for_improvement", "recommendations", mode="before")
    @classmethod
    def as_list(cls, v):
        return _string_list(v)

    @field_validator("detailed_feedback", mode="before")
    @classmethod
    def as_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @classmethod
    def zeroed(cls, feedback: str, issue: str) -> "JudgeEvaluation":
        """All-zero verdict for a test whose tutor or judge call hard-failed."""
        return cls(
            overall_score=0,
            criteria_scores=EvaluationCriteria.uniform(0),
            detailed_feedback=feedback,
            areas_for_improvement=[issue],
            confidence_level=0,
        )

    @property
    def grade(self) -> str:
        return letter_grade(self.overall_score)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass(frozen=True)
class TestResult:
    """Outcome of one scenario: tutor answer plus judge verdict."""
    __test__ = False

    scenario: TestScenario
    tutor_response: TutorResponse
    judge_evaluation: JudgeEvaluation
    timestamp: str
    processing_time_ms: int
    error: Optional[str] = None

    @property
    def overall_score(self) -> float:
        return self.judge_evaluation.overall_score

    @property
    def grade(self) -> str:
        return letter_grade(self.overall_score)

    def passed(self, passing_score: float) -> bool:
        return self.overall_score >= passing_score

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "scenario": self.scenario.to_dict(),
            "tutorResponse": self.tutor_response.to_dict(),
            "judgeEvaluation": self.judge_evaluation.to_dict(),
            "timestamp": self.timestamp,
            "processingTimeMs": self.processing_time_ms,
            "grade": self.grade,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class EvaluationSummary:
    """Suite-level statistics, derived entirely from ``results``.

    Built by ``evals.aggregation.summarize``; never edited afterwards.
    """
    total_tests: int
    average_score: float
    criteria_averages: Dict[str, float]
    passed_tests: int
    failed_tests: int
    grade: str
    recommendations: List[str]
    critical_issues: List[str]
    common_strengths: List[str]
    common_weaknesses: List[str]
    results: List[TestResult]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.passed_tests / self.total_tests * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTests": self.total_tests,
            "averageScore": self.average_score,
            "criteriaAverages": dict(self.criteria_averages),
            "passedTests": self.passed_tests,
            "failedTests": self.failed_tests,
            "grade": self.grade,
            "recommendations": list(self.recommendations),
            "criticalIssues": list(self.critical_issues),
            "commonStrengths": list(self.common_strengths),
            "commonWeaknesses": list(self.common_weaknesses),
            "results": [result.to_dict() for result in self.results],
            "metadata": self.metadata,
        }


@dataclass
class SuiteCellFailure:
    """A full-suite cell whose run raised instead of producing a summary."""
    subject: str
    grade: int
    number_of_tests: int
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject": self.subject,
            "grade": self.grade,
            "numberOfTests": self.number_of_tests,
            "totalTests": 0,
            "averageScore": 0,
            "passedTests": 0,
            "failedTests": 0,
            "results": [],
            "error": self.error,
        }


@dataclass
class FullSuiteReport:
    """Roll-up of every (subject, grade) cell in a full-suite run."""
    timestamp: str
    results: List[Any] = field(default_factory=list)

    @property
    def successful(self) -> List[EvaluationSummary]:
        return [r for r in self.results if isinstance(r, EvaluationSummary)]

    @property
    def failed(self) -> List[SuiteCellFailure]:
        return [r for r in self.results if isinstance(r, SuiteCellFailure)]

    def summary(self) -> Dict[str, Any]:
        successful = self.successful
        by_subject: Dict[str, List[float]] = {}
        for result in successful:
            subject = result.metadata.get("subject", "unknown")
            by_subject.setdefault(subject, []).append(result.average_score)

        return {
            "totalSuites": len(self.results),
            "successful": len(successful),
            "failed": len(self.failed),
            "averageScore": (
                sum(r.average_score for r in successful) / len(successful) if successful else 0.0
            ),
            "subjectAverages": {
                subject: sum(scores) / len(scores) for subject, scores in by_subject.items()
            },
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "summary": self.summary(),
            "results": [r.to_dict() for r in self.results],
        }
