"""Evaluation pipeline for the AI tutor."""

from .models import (
    CRITERIA,
    Difficulty,
    EvaluationCriteria,
    EvaluationSummary,
    FullSuiteReport,
    JudgeEvaluation,
    StudentProfile,
    SuiteCellFailure,
    TestResult,
    TestScenario,
    TutorResponse,
    clamp_score,
    letter_grade,
)
from .scenarios import ScenarioCatalog
from .tutor_client import TutorClient
from .judge import (
    JudgeEndpointFailure,
    JudgeEvaluator,
    JudgeOk,
    JudgeParseFailure,
    extract_json_block,
    normalize_evaluation,
)
from .orchestrator import TestOrchestrator
from .aggregation import build_recommendations, summarize
from .suite import FULL_SUITE_MATRIX, SuiteOptions, SuiteRunner

__all__ = [
    "CRITERIA",
    "Difficulty",
    "EvaluationCriteria",
    "EvaluationSummary",
    "FullSuiteReport",
    "JudgeEvaluation",
    "StudentProfile",
    "SuiteCellFailure",
    "TestResult",
    "TestScenario",
    "TutorResponse",
    "clamp_score",
    "letter_grade",
    "ScenarioCatalog",
    "TutorClient",
    "JudgeEndpointFailure",
    "JudgeEvaluator",
    "JudgeOk",
    "JudgeParseFailure",
    "extract_json_block",
    "normalize_evaluation",
    "TestOrchestrator",
    "build_recommendations",
    "summarize",
    "FULL_SUITE_MATRIX",
    "SuiteOptions",
    "SuiteRunner",
]
