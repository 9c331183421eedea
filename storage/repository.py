"""Repository for write-once evaluation records."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

import duckdb

from core.errors import PersistenceError
from .database import Database
from .models import EvaluationRecord, Interaction, MetricRecord, SuiteRunRecord, utcnow

logger = logging.getLogger(__name__)

DateLike = Union[str, datetime]


def _decode(row: Optional[Dict[str, Any]], *columns: str) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    for column in columns:
        value = row.get(column)
        if isinstance(value, str):
            row[column] = json.loads(value)
    return row


class EvaluationRepository:
    """Inserts and reads evaluation data. Rows are never updated in place;
    reads skip rows whose ``expires_at`` has passed."""

    def __init__(self, db: Database):
        self.db = db

    def _insert(self, query: str, params: list) -> None:
        try:
            self.db.execute(query, params)
        except duckdb.Error as e:
            raise PersistenceError(f"Failed to write record: {e}") from e

    # ── Suite Runs ────────────────────────────────────────────────────

    def save_suite_run(self, record: SuiteRunRecord) -> str:
        self._insert(
            """INSERT INTO suite_runs (
                id, subject, grade, total_tests, passed_tests, failed_tests,
                average_score, letter_grade, summary, created_at, expires_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?)""",
            [
                record.id, record.subject, record.grade,
                record.total_tests, record.passed_tests, record.failed_tests,
                record.average_score, record.letter_grade,
                json.dumps(record.summary), record.created_at, record.expires_at,
            ],
        )
        logger.debug(f"Saved suite run {record.id}")
        return record.id

    def get_suite_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.fetchone(
            "SELECT * FROM suite_runs WHERE id = ? AND (expires_at IS NULL OR expires_at > ?)",
            [run_id, utcnow()],
        )
        return _decode(row, "summary")

    def list_suite_runs(self, subject: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        query = """SELECT id, subject, grade, total_tests, passed_tests, failed_tests,
                          average_score, letter_grade, created_at
                   FROM suite_runs WHERE (expires_at IS NULL OR expires_at > ?)"""
        params: list = [utcnow()]
        if subject:
            query += " AND subject = ?"
            params.append(subject)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        return self.db.fetchall(query, params)

    # ── Gateway Evaluations ───────────────────────────────────────────

    def save_evaluation(self, record: EvaluationRecord) -> str:
        self._insert(
            """INSERT INTO evaluation_results (
                id, evaluation_type, student_id, session_id, interaction_id,
                status, score, letter_grade, result, error, created_at, expires_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)""",
            [
                record.id, record.evaluation_type, record.student_id,
                record.session_id, record.interaction_id,
                record.status, record.score, record.letter_grade,
                json.dumps(record.result), record.error,
                record.created_at, record.expires_at,
            ],
        )
        return record.id

    def get_result(self, evaluation_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.fetchone(
            "SELECT * FROM evaluation_results WHERE id = ? AND (expires_at IS NULL OR expires_at > ?)",
            [evaluation_id, utcnow()],
        )
        return _decode(row, "result")

    def list_results(
        self,
        evaluation_type: Optional[str] = None,
        student_id: Optional[str] = None,
        session_id: Optional[str] = None,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        query = "SELECT * FROM evaluation_results WHERE (expires_at IS NULL OR expires_at > ?)"
        params: list = [utcnow()]
        if evaluation_type:
            query += " AND evaluation_type = ?"
            params.append(evaluation_type)
        if student_id:
            query += " AND student_id = ?"
            params.append(student_id)
        if session_id:
            query += " AND session_id = ?"
            params.append(session_id)
        if start_date:
            query += " AND created_at >= CAST(? AS TIMESTAMP)"
            params.append(str(start_date))
        if end_date:
            query += " AND created_at <= CAST(? AS TIMESTAMP)"
            params.append(str(end_date))
        query += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        return [_decode(row, "result") for row in self.db.fetchall(query, params)]

    # ── Metrics ───────────────────────────────────────────────────────

    def save_metric(self, record: MetricRecord) -> str:
        self._insert(
            """INSERT INTO metric_records (id, metric_type, count, average_score, created_at, expires_at)
               VALUES (?,?,?,?,?,?)""",
            [record.id, record.metric_type, record.count, record.average_score,
             record.created_at, record.expires_at],
        )
        return record.id

    def list_metrics(
        self,
        metric_type: Optional[str] = None,
        since: Optional[DateLike] = None,
        limit: int = 1000,
    ) -> List[Dict[str, Any]]:
        query = """SELECT metric_type, count, average_score, created_at FROM metric_records
                   WHERE (expires_at IS NULL OR expires_at > ?)"""
        params: list = [utcnow()]
        if metric_type:
            query += " AND metric_type = ?"
            params.append(metric_type)
        if since:
            query += " AND created_at >= CAST(? AS TIMESTAMP)"
            params.append(str(since))
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        return self.db.fetchall(query, params)

    def list_metric_types(self) -> List[str]:
        rows = self.db.fetchall(
            """SELECT DISTINCT metric_type FROM metric_records
               WHERE (expires_at IS NULL OR expires_at > ?) ORDER BY metric_type""",
            [utcnow()],
        )
        return [row["metric_type"] for row in rows]

    # ── Interactions ──────────────────────────────────────────────────

    def save_interaction(self, interaction: Interaction) -> str:
        self._insert(
            """INSERT INTO interactions (
                interaction_id, session_id, student_id, type, subject,
                user_message, ai_response, created_at
            ) VALUES (?,?,?,?,?,?,?,?)""",
            [
                interaction.interaction_id, interaction.session_id, interaction.student_id,
                interaction.type, interaction.subject, interaction.user_message,
                interaction.ai_response, interaction.created_at,
            ],
        )
        return interaction.interaction_id

    def list_interactions(self, session_ids: Iterable[str]) -> List[Dict[str, Any]]:
        session_ids = list(session_ids)
        if not session_ids:
            return []
        placeholders = ",".join("?" for _ in session_ids)
        return self.db.fetchall(
            f"SELECT * FROM interactions WHERE session_id IN ({placeholders}) ORDER BY created_at",
            session_ids,
        )
