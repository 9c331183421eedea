"""Data models for the storage layer."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

DEFAULT_RETENTION_DAYS = 90


def utcnow() -> datetime:
    """Naive UTC timestamp, matching DuckDB ``TIMESTAMP`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def expiry(retention_days: int = DEFAULT_RETENTION_DAYS, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(days=retention_days)


@dataclass
class SuiteRunRecord:
    """One persisted suite summary."""
    id: str
    subject: str
    grade: int
    total_tests: int
    passed_tests: int
    failed_tests: int
    average_score: float
    letter_grade: str
    summary: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime = field(default_factory=expiry)

    @classmethod
    def from_summary(cls, summary: Any, retention_days: int = DEFAULT_RETENTION_DAYS) -> "SuiteRunRecord":
        """Build a record from an ``EvaluationSummary``."""
        now = utcnow()
        return cls(
            id=new_id(),
            subject=str(summary.metadata.get("subject", "unknown")),
            grade=int(summary.metadata.get("grade", 0)),
            total_tests=summary.total_tests,
            passed_tests=summary.passed_tests,
            failed_tests=summary.failed_tests,
            average_score=summary.average_score,
            letter_grade=summary.grade,
            summary=summary.to_dict(),
            created_at=now,
            expires_at=expiry(retention_days, now),
        )


@dataclass
class EvaluationRecord:
    """A single gateway evaluation result."""
    id: str
    evaluation_type: str
    status: str
    student_id: Optional[str] = None
    session_id: Optional[str] = None
    interaction_id: Optional[str] = None
    score: Optional[float] = None
    letter_grade: Optional[str] = None
    result: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime = field(default_factory=expiry)


@dataclass
class MetricRecord:
    """A daily metric data point (``daily_<evaluation type>``)."""
    id: str
    metric_type: str
    count: int
    average_score: float
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime = field(default_factory=expiry)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metricType": self.metric_type,
            "timestamp": self.created_at.isoformat(),
            "count": self.count,
            "averageScore": self.average_score,
        }


@dataclass
class Interaction:
    """A stored historical tutor exchange, read by batch evaluation."""
    interaction_id: str
    session_id: str
    type: str
    student_id: Optional[str] = None
    subject: Optional[str] = None
    user_message: str = ""
    ai_response: str = ""
    created_at: datetime = field(default_factory=utcnow)
