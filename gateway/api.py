"""HTTP routes for gateway evaluations and dashboard reads."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from core.config import load_config
from evals.service import DEFAULT_LIVE_TYPES, EvaluationService
from storage.database import Database
from storage.repository import EvaluationRepository

router = APIRouter(prefix="/evaluations", tags=["evaluations"])

# Service singleton (lazy)
_service: Optional[EvaluationService] = None


def get_service() -> EvaluationService:
    global _service
    if _service is None:
        config = load_config()
        _service = EvaluationService(config, EvaluationRepository(Database(config.db_path)))
    return _service


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EvaluationData(CamelModel):
    ai_response: str = Field(alias="aiResponse")
    student_query: str = Field("", alias="studentQuery")
    context: Dict[str, Any] = Field(default_factory=dict)


class TriggerRequest(CamelModel):
    evaluation_type: str = Field(alias="evaluationType")
    data: EvaluationData
    student_id: Optional[str] = Field(None, alias="studentId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    priority: str = "normal"


class LiveRequest(CamelModel):
    ai_response: str = Field(alias="aiResponse")
    student_query: str = Field("", alias="studentQuery")
    context: Dict[str, Any] = Field(default_factory=dict)
    student_id: Optional[str] = Field(None, alias="studentId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    evaluation_types: List[str] = Field(default_factory=lambda: list(DEFAULT_LIVE_TYPES), alias="evaluationTypes")


class BatchRequest(CamelModel):
    session_ids: List[str] = Field(alias="sessionIds")
    evaluation_types: List[str] = Field(alias="evaluationTypes")
    batch_size: int = Field(10, ge=1, le=100, alias="batchSize")


@router.post("/trigger")
async def trigger(payload: TriggerRequest, service: EvaluationService = Depends(get_service)) -> Dict[str, Any]:
    return await service.trigger(
        payload.evaluation_type,
        payload.data.model_dump(by_alias=True),
        student_id=payload.student_id,
        session_id=payload.session_id,
        priority=payload.priority,
    )


@router.get("/jobs/{request_id}")
async def job_status(request_id: str, service: EvaluationService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_job_status(request_id)


@router.post("/live")
async def live(payload: LiveRequest, service: EvaluationService = Depends(get_service)) -> Dict[str, Any]:
    return await service.live(
        payload.ai_response,
        student_query=payload.student_query,
        context=payload.context,
        student_id=payload.student_id,
        session_id=payload.session_id,
        evaluation_types=payload.evaluation_types,
    )


@router.post("/batch")
async def batch(payload: BatchRequest, service: EvaluationService = Depends(get_service)) -> Dict[str, Any]:
    return await service.start_batch(payload.session_ids, payload.evaluation_types, payload.batch_size)


@router.get("/results")
async def list_results(
    evaluation_type: Optional[str] = Query(None, alias="evaluationType"),
    student_id: Optional[str] = Query(None, alias="studentId"),
    session_id: Optional[str] = Query(None, alias="sessionId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: EvaluationService = Depends(get_service),
) -> Dict[str, Any]:
    return service.get_results(
        evaluation_type=evaluation_type,
        student_id=student_id,
        session_id=session_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.get("/results/{evaluation_id}")
async def get_result(evaluation_id: str, service: EvaluationService = Depends(get_service)) -> Dict[str, Any]:
    result = service.get_result(evaluation_id)
    if not result:
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return result


@router.get("/metrics")
async def metrics(
    metric_type: Optional[str] = Query(None, alias="metricType"),
    aggregation: str = "daily",
    service: EvaluationService = Depends(get_service),
) -> Dict[str, Any]:
    return service.get_metrics(metric_type, aggregation)


@router.get("/dashboard")
async def dashboard(period: str = "7d", service: EvaluationService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_dashboard(period)
