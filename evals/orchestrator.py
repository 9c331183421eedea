"""Runs one scenario end to end: tutor query, then judge."""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from core.errors import TutorQueryError
from .judge import JudgeEndpointFailure, JudgeEvaluator, describe_failure, resolve_outcome
from .models import JudgeEvaluation, StudentProfile, TestResult, TestScenario, TutorResponse
from .tutor_client import TutorClient

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TestOrchestrator:
    """Produces exactly one :class:`TestResult` per scenario and never raises."""

    __test__ = False

    def __init__(self, tutor: TutorClient, judge: JudgeEvaluator):
        self.tutor = tutor
        self.judge = judge

    async def run_one(
        self,
        scenario: TestScenario,
        student_profile: Optional[StudentProfile] = None,
    ) -> TestResult:
        started = time.perf_counter()

        try:
            logger.info(f"Sending question to tutor: {scenario.question[:50]}")
            tutor_response = await self.tutor.query(scenario.question, student_profile, scenario.subject)
        except TutorQueryError as e:
            logger.error(f"Test failed: {e}")
            return self._failed(scenario, str(e), started)
        except Exception as e:
            logger.exception(f"Unexpected error querying tutor: {e}")
            return self._failed(scenario, str(e) or e.__class__.__name__, started)

        logger.info("Evaluating response with judge")
        try:
            outcome = await self.judge.judge(scenario, tutor_response)
        except Exception as e:
            logger.exception(f"Judge evaluation raised: {e}")
            outcome = JudgeEndpointFailure(cause=str(e) or e.__class__.__name__)

        return TestResult(
            scenario=scenario,
            tutor_response=tutor_response,
            judge_evaluation=resolve_outcome(outcome),
            timestamp=_now(),
            processing_time_ms=self._elapsed_ms(started),
            error=describe_failure(outcome),
        )

    def _failed(self, scenario: TestScenario, message: str, started: float) -> TestResult:
        return TestResult(
            scenario=scenario,
            tutor_response=TutorResponse.failed(message),
            judge_evaluation=JudgeEvaluation.zeroed(f"Test failed: {message}", message),
            timestamp=_now(),
            processing_time_ms=self._elapsed_ms(started),
            error=message,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
