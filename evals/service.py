"""Gateway evaluation engine: single, live and batch evaluations plus read paths."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from core.config import EvaluationConfig
from core.errors import InvalidEvaluationTypeError, JudgeEndpointError, PersistenceError
from gateway.metrics import (
    aggregate_by_date,
    build_dashboard,
    group_metrics_by_type,
    period_start,
    summarize_metrics,
)
from storage.models import EvaluationRecord, MetricRecord, expiry, new_id, utcnow
from storage.repository import EvaluationRepository
from .judge import JudgeEndpointFailure, JudgeEvaluator, describe_failure, resolve_outcome
from .models import Difficulty, TestScenario, TutorResponse, letter_grade

logger = logging.getLogger(__name__)

EVALUATION_FOCUS = {
    "hallucination_detection": (
        "Check every factual claim for fabricated or unsupported content. "
        "Score accuracy low when the response invents facts."
    ),
    "factuality_check": "Verify each statement against established knowledge for the subject.",
    "code_execution": "Check that any code or calculation in the response would run or compute correctly.",
    "response_quality": "Judge the overall quality of the response for the student.",
    "educational_effectiveness": "Judge how well the response helps the student understand and retain the concept.",
    "curriculum_compliance": "Check alignment with the student's curriculum board and grade-level syllabus.",
    "engagement_metrics": "Judge how engaging and motivating the response is for the student.",
    "learning_outcomes": "Judge whether the response moves the student toward a clear learning outcome.",
}
VALID_TYPES = list(EVALUATION_FOCUS)
DEFAULT_LIVE_TYPES = ["response_quality", "factuality_check"]
CHAT_INTERACTION = "chat_interaction"
PENDING_STATUSES = ("running", "processing")
MISSING_QUERY = "Student question not provided"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def scenario_from_request(data: Dict[str, Any]) -> TestScenario:
    """Build the judged scenario from a gateway ``data`` payload."""
    context = data.get("context") or {}
    try:
        grade = int(context.get("grade", 8))
    except (TypeError, ValueError):
        grade = 8
    return TestScenario(
        subject=str(context.get("subject") or "General"),
        grade=grade,
        question=str(data.get("studentQuery") or MISSING_QUERY),
        expected_criteria=list(context.get("expectedCriteria") or []),
        difficulty=Difficulty.INTERMEDIATE,
    )


def metric_row_to_dict(row: Dict[str, Any]) -> Dict[str, Any]:
    created_at = row.get("created_at")
    return {
        "metricType": row.get("metric_type"),
        "timestamp": created_at.isoformat() if isinstance(created_at, datetime) else str(created_at),
        "count": row.get("count"),
        "averageScore": row.get("average_score"),
    }


class EvaluationService:
    """Evaluates stored or live tutor responses with the judge and records the results."""

    max_finished_jobs = 500

    def __init__(
        self,
        config: EvaluationConfig,
        repository: EvaluationRepository,
        judge: Optional[JudgeEvaluator] = None,
    ):
        self.config = config
        self.repository = repository
        self._judge = judge
        self._jobs: Dict[str, Dict[str, Any]] = {}
        self._tasks: Set[asyncio.Task] = set()

    @property
    def judge(self) -> JudgeEvaluator:
        if self._judge is None:
            self._judge = JudgeEvaluator(self.config)
        return self._judge

    def validate_type(self, evaluation_type: str) -> None:
        if evaluation_type not in EVALUATION_FOCUS:
            raise InvalidEvaluationTypeError(evaluation_type, VALID_TYPES)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _prune_jobs(self) -> None:
        """Forget the oldest finished jobs once more than ``max_finished_jobs`` are held."""
        finished = [job_id for job_id, job in self._jobs.items() if job["status"] not in PENDING_STATUSES]
        for job_id in finished[:max(0, len(finished) - self.max_finished_jobs)]:
            del self._jobs[job_id]

    # ── Evaluation ────────────────────────────────────────────────────

    async def evaluate(
        self,
        evaluation_type: str,
        data: Dict[str, Any],
        student_id: Optional[str] = None,
        session_id: Optional[str] = None,
        interaction_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Judge one tutor response and store the outcome.

        A judge endpoint failure raises :class:`JudgeEndpointError`; an
        unparseable verdict is stored with the neutral fallback scores.
        """
        self.validate_type(evaluation_type)
        scenario = scenario_from_request(data)
        tutor_response = TutorResponse(response=str(data.get("aiResponse") or ""))

        outcome = await self.judge.judge(scenario, tutor_response, EVALUATION_FOCUS[evaluation_type])
        if isinstance(outcome, JudgeEndpointFailure):
            raise JudgeEndpointError(outcome.cause)

        evaluation = resolve_outcome(outcome)
        error = describe_failure(outcome)
        now = utcnow()
        result = {
            "evaluationId": new_id(),
            "evaluationType": evaluation_type,
            "studentId": student_id,
            "sessionId": session_id,
            "timestamp": _timestamp(),
            "score": evaluation.overall_score,
            "grade": letter_grade(evaluation.overall_score),
            "evaluation": evaluation.to_dict(),
        }
        if error:
            result["error"] = error

        self._store(
            EvaluationRecord(
                id=result["evaluationId"],
                evaluation_type=evaluation_type,
                status="completed",
                student_id=student_id,
                session_id=session_id,
                interaction_id=interaction_id,
                score=evaluation.overall_score,
                letter_grade=result["grade"],
                result=result,
                error=error,
                created_at=now,
                expires_at=expiry(self.config.retention_days, now),
            ),
            MetricRecord(
                id=new_id(),
                metric_type=f"daily_{evaluation_type}",
                count=1,
                average_score=evaluation.overall_score,
                created_at=now,
                expires_at=expiry(self.config.retention_days, now),
            ),
        )
        return result

    def _store(self, record: EvaluationRecord, metric: MetricRecord) -> None:
        try:
            self.repository.save_evaluation(record)
            self.repository.save_metric(metric)
        except PersistenceError as e:
            logger.error(f"Could not store evaluation {record.id}: {e}")

    async def trigger(
        self,
        evaluation_type: str,
        data: Dict[str, Any],
        student_id: Optional[str] = None,
        session_id: Optional[str] = None,
        priority: str = "normal",
    ) -> Dict[str, Any]:
        """Evaluate inline for ``urgent`` priority, otherwise in a background job."""
        self.validate_type(evaluation_type)
        request_id = str(uuid.uuid4())
        session_id = session_id or str(uuid.uuid4())
        response = {
            "requestId": request_id,
            "evaluationType": evaluation_type,
            "sessionId": session_id,
            "status": "triggered",
            "timestamp": _timestamp(),
        }

        if priority == "urgent":
            response["result"] = await self.evaluate(evaluation_type, data, student_id, session_id)
            response["status"] = "completed"
            return response

        self._jobs[request_id] = {**response, "status": "running", "result": None, "error": None}

        async def _run() -> None:
            try:
                result = await self.evaluate(evaluation_type, data, student_id, session_id)
                self._jobs[request_id]["status"] = "completed"
                self._jobs[request_id]["result"] = result
            except Exception as exc:
                logger.error(f"Evaluation job {request_id} failed: {exc}")
                self._jobs[request_id]["status"] = "failed"
                self._jobs[request_id]["error"] = str(exc)
            self._prune_jobs()

        self._spawn(_run())
        return response

    def get_job_status(self, request_id: str) -> Dict[str, Any]:
        return self._jobs.get(request_id, {"requestId": request_id, "status": "not_found"})

    async def live(
        self,
        ai_response: str,
        student_query: str = "",
        context: Optional[Dict[str, Any]] = None,
        student_id: Optional[str] = None,
        session_id: Optional[str] = None,
        evaluation_types: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Run several evaluation types concurrently over one response."""
        evaluation_types = evaluation_types or list(DEFAULT_LIVE_TYPES)
        for evaluation_type in evaluation_types:
            self.validate_type(evaluation_type)
        session_id = session_id or str(uuid.uuid4())
        data = {"aiResponse": ai_response, "studentQuery": student_query, "context": context or {}}

        async def _one(evaluation_type: str) -> Dict[str, Any]:
            try:
                result = await self.evaluate(evaluation_type, data, student_id, session_id)
                return {"evaluationType": evaluation_type, "status": "completed", "result": result}
            except Exception as exc:
                logger.error(f"Live {evaluation_type} evaluation failed: {exc}")
                return {"evaluationType": evaluation_type, "status": "failed", "error": str(exc)}

        evaluations = await asyncio.gather(*(_one(t) for t in evaluation_types))
        return {"sessionId": session_id, "evaluations": list(evaluations), "timestamp": _timestamp()}

    async def start_batch(
        self,
        session_ids: List[str],
        evaluation_types: List[str],
        batch_size: int = 10,
    ) -> Dict[str, Any]:
        """Schedule evaluation of stored chat interactions for the given sessions."""
        for evaluation_type in evaluation_types:
            self.validate_type(evaluation_type)
        interactions = self.repository.list_interactions(session_ids)
        batch_id = str(uuid.uuid4())

        self._jobs[batch_id] = {
            "batchId": batch_id,
            "status": "processing",
            "totalInteractions": len(interactions),
            "processed": 0,
            "failed": 0,
        }
        self._spawn(self._run_batch(batch_id, interactions, evaluation_types, batch_size))

        return {
            "batchId": batch_id,
            "totalInteractions": len(interactions),
            "evaluationTypes": evaluation_types,
            "status": "processing",
            "timestamp": _timestamp(),
        }

    async def _run_batch(
        self,
        batch_id: str,
        interactions: List[Dict[str, Any]],
        evaluation_types: List[str],
        batch_size: int,
    ) -> None:
        job = self._jobs[batch_id]
        chat = [i for i in interactions if i.get("type") == CHAT_INTERACTION]

        async def _one(interaction: Dict[str, Any], evaluation_type: str) -> None:
            try:
                await self.evaluate(
                    evaluation_type,
                    {
                        "aiResponse": interaction.get("ai_response"),
                        "studentQuery": interaction.get("user_message"),
                        "context": {"subject": interaction.get("subject")},
                    },
                    student_id=interaction.get("student_id"),
                    session_id=interaction.get("session_id"),
                    interaction_id=interaction.get("interaction_id"),
                )
                job["processed"] += 1
            except Exception as exc:
                logger.error(f"Batch evaluation error for {evaluation_type}: {exc}")
                job["failed"] += 1

        for start in range(0, len(chat), batch_size):
            chunk = chat[start:start + batch_size]
            await asyncio.gather(*(_one(i, t) for i in chunk for t in evaluation_types))

        job["status"] = "completed"
        self._prune_jobs()
        logger.info(f"Batch {batch_id} finished: {job['processed']} evaluated, {job['failed']} failed")

    # ── Reads ─────────────────────────────────────────────────────────

    def get_results(self, **filters: Any) -> Dict[str, Any]:
        results = self.repository.list_results(**filters)
        return {"results": results, "count": len(results)}

    def get_result(self, evaluation_id: str) -> Optional[Dict[str, Any]]:
        return self.repository.get_result(evaluation_id)

    def get_metrics(self, metric_type: Optional[str] = None, aggregation: str = "daily") -> Dict[str, Any]:
        if metric_type:
            stored_type = metric_type if metric_type.startswith("daily_") else f"daily_{metric_type}"
            metrics = [metric_row_to_dict(r) for r in self.repository.list_metrics(metric_type=stored_type)]
            return {
                "metricType": metric_type,
                "aggregation": aggregation,
                "metrics": aggregate_by_date(metrics),
                "rawData": metrics,
            }

        metrics = [metric_row_to_dict(r) for r in self.repository.list_metrics()]
        grouped = group_metrics_by_type(metrics)
        return {"summary": summarize_metrics(grouped), "metricsByType": grouped}

    def get_dashboard(self, period: str = "7d") -> Dict[str, Any]:
        rows = self.repository.list_metrics(since=period_start(period))
        dashboard = build_dashboard(
            [metric_row_to_dict(r) for r in rows],
            period,
            known_types=self.repository.list_metric_types(),
        )
        dashboard["lastUpdated"] = _timestamp()
        return dashboard

    async def aclose(self) -> None:
        if self._judge is not None:
            await self._judge.aclose()
