"""Storage layer for tutor evaluation results."""

from .database import Database
from .models import EvaluationRecord, Interaction, MetricRecord, SuiteRunRecord
from .repository import EvaluationRepository
from .reports import ReportWriter

__all__ = [
    "Database",
    "EvaluationRecord",
    "Interaction",
    "MetricRecord",
    "SuiteRunRecord",
    "EvaluationRepository",
    "ReportWriter",
]
