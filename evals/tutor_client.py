"""HTTP client for the AI tutor under evaluation."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from core.config import EvaluationConfig
from core.errors import TutorQueryError
from .models import StudentProfile, TutorResponse, TutorResponseMetadata

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response received"


def build_session_context(
    student_profile: Optional[StudentProfile] = None,
    subject: Optional[str] = None,
) -> Dict[str, Any]:
    """Session context sent with every tutor query, defaulting missing fields."""
    profile_subject = student_profile.subjects[0] if student_profile and student_profile.subjects else None
    return {
        "sessionId": f"eval_session_{int(time.time() * 1000)}",
        "studentId": student_profile.student_id if student_profile else "eval_student",
        "subject": profile_subject or subject or "Mathematics",
        "topic": "Evaluation Test",
        "studentName": student_profile.name if student_profile else "Test Student",
        "grade": str(student_profile.grade) if student_profile else "8",
        "board": student_profile.board if student_profile else "CBSE",
        "country": student_profile.country if student_profile else "India",
    }


def _processing_time(value: Any) -> float:
    """Reported tutor processing time; anything non-numeric counts as 0."""
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric tutor responseTime: {value!r}")
        return 0.0


class TutorClient:
    """Sends one question per call to ``POST {tutor}{tutor_path}``.

    Any non-2xx status, timeout or transport failure raises
    :class:`TutorQueryError`. There are no retries.
    """

    def __init__(self, config: EvaluationConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.base_url = config.tutor_api_endpoint.rstrip("/")
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=config.timeout_seconds,
        )

    async def query(
        self,
        question: str,
        student_profile: Optional[StudentProfile] = None,
        subject: Optional[str] = None,
    ) -> TutorResponse:
        payload = {
            "sessionContext": build_session_context(student_profile, subject),
            "message": question,
            "conversationHistory": [],
        }

        try:
            response = await self.client.post(self.config.tutor_path, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Tutor returned HTTP {status}")
            raise TutorQueryError(e.response.reason_phrase or "request failed", status_code=status) from e
        except httpx.TimeoutException as e:
            logger.error(f"Tutor timed out after {self.config.timeout_seconds}s")
            raise TutorQueryError(f"timed out after {self.config.timeout_seconds}s") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error querying tutor: {e}")
            raise TutorQueryError(str(e) or e.__class__.__name__) from e

        if not isinstance(data, dict):
            data = {}

        model = data.get("model")
        return TutorResponse(
            response=str(data.get("content") or data.get("response") or NO_RESPONSE),
            success=True,
            metadata=TutorResponseMetadata(
                timestamp=datetime.now(timezone.utc).isoformat(),
                processing_time=_processing_time(data.get("responseTime")),
                model=str(model) if model is not None else None,
            ),
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
