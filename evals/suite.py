"""Sequential suite execution and the subject x grade full-suite matrix."""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from core.config import EvaluationConfig
from .aggregation import summarize
from .judge import JudgeEvaluator
from .models import EvaluationSummary, FullSuiteReport, StudentProfile, SuiteCellFailure, TestResult
from .orchestrator import TestOrchestrator
from .scenarios import ScenarioCatalog
from .tutor_client import TutorClient

logger = logging.getLogger(__name__)

# (subject, grade, number of tests)
FULL_SUITE_MATRIX: Tuple[Tuple[str, int, int], ...] = (
    ("mathematics", 8, 5),
    ("mathematics", 10, 5),
    ("science", 8, 3),
    ("science", 10, 3),
)

ProgressCallback = Callable[[int, int, TestResult], None]


@dataclass
class SuiteOptions:
    subject: str = "mathematics"
    grade: int = 8
    number_of_tests: int = 3
    student_profile: Optional[StudentProfile] = None


class SuiteRunner:
    """Runs scenarios one at a time and aggregates their results.

    Tests within a suite never run concurrently; ``inter_test_delay`` seconds
    separate consecutive tests and ``suite_delay`` separates full-suite cells.
    """

    def __init__(
        self,
        config: EvaluationConfig,
        orchestrator: Optional[TestOrchestrator] = None,
        catalog: Optional[ScenarioCatalog] = None,
    ):
        self.config = config
        self.orchestrator = orchestrator or TestOrchestrator(TutorClient(config), JudgeEvaluator(config))
        self.catalog = catalog or ScenarioCatalog()

    async def run_suite(
        self,
        options: SuiteOptions,
        progress: Optional[ProgressCallback] = None,
    ) -> EvaluationSummary:
        started = time.perf_counter()
        scenarios = self.catalog.get_scenarios(options.subject, options.grade, options.number_of_tests)
        logger.info(
            f"Starting evaluation for {options.subject} grade {options.grade}: {len(scenarios)} test scenarios"
        )

        results: List[TestResult] = []
        for index, scenario in enumerate(scenarios):
            if index and self.config.inter_test_delay > 0:
                await asyncio.sleep(self.config.inter_test_delay)

            logger.info(f"Running test {index + 1}/{len(scenarios)}: {scenario.question[:50]}")
            result = await self.orchestrator.run_one(scenario, options.student_profile)
            results.append(result)
            if progress:
                progress(index + 1, len(scenarios), result)

        metadata = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "duration": int((time.perf_counter() - started) * 1000),
            "configuration": self.config.public_dict(),
            "subject": options.subject,
            "grade": options.grade,
        }
        if options.student_profile is not None:
            metadata["studentProfile"] = options.student_profile.to_dict()

        summary = summarize(results, self.config.passing_score, metadata)
        logger.info(f"Evaluation completed. Average score: {summary.average_score:.1f}%")
        return summary

    async def run_full_suite(
        self,
        matrix: Tuple[Tuple[str, int, int], ...] = FULL_SUITE_MATRIX,
        student_profile: Optional[StudentProfile] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> FullSuiteReport:
        report = FullSuiteReport(timestamp=datetime.now(timezone.utc).isoformat())

        for index, (subject, grade, count) in enumerate(matrix):
            if index and self.config.suite_delay > 0:
                await asyncio.sleep(self.config.suite_delay)

            logger.info(f"Testing {subject} - Grade {grade}")
            options = SuiteOptions(subject=subject, grade=grade, number_of_tests=count, student_profile=student_profile)
            try:
                report.results.append(await self.run_suite(options, progress))
            except Exception as e:
                logger.error(f"Suite {subject} grade {grade} failed: {e}")
                report.results.append(SuiteCellFailure(subject, grade, count, str(e) or e.__class__.__name__))

        summary = report.summary()
        logger.info(
            f"Full suite finished: {summary['successful']}/{summary['totalSuites']} suites, "
            f"average {summary['averageScore']:.1f}%"
        )
        return report

    async def aclose(self) -> None:
        await self.orchestrator.tutor.aclose()
        await self.orchestrator.judge.aclose()
