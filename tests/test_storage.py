"""Tests for the storage layer."""

import json
from datetime import datetime, timedelta

import pytest

from core.errors import PersistenceError
from evals.aggregation import summarize
from evals.models import FullSuiteReport, JudgeEvaluation, TestResult, TestScenario, TutorResponse
from storage.database import Database
from storage.models import EvaluationRecord, Interaction, MetricRecord, SuiteRunRecord, new_id, utcnow
from storage.reports import ReportWriter
from storage.repository import EvaluationRepository


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    db_path = str(tmp_path / "nested" / "test.duckdb")
    database = Database(db_path)
    yield database
    database.close()


@pytest.fixture
def repo(db):
    return EvaluationRepository(db)


@pytest.fixture
def summary():
    result = TestResult(
        scenario=TestScenario(subject="science", grade=8, question="What is photosynthesis?"),
        tutor_response=TutorResponse(response="Plants make food from light."),
        judge_evaluation=JudgeEvaluation(overall_score=78, criteria_scores={"accuracy": 80}),
        timestamp="2026-01-01T00:00:00+00:00",
        processing_time_ms=12,
    )
    return summarize([result], metadata={"subject": "science", "grade": 8})


def evaluation(evaluation_type="accuracy", **overrides):
    fields = dict(
        id=new_id(),
        evaluation_type=evaluation_type,
        status="completed",
        student_id="student-1",
        session_id="session-1",
        score=82.0,
        letter_grade="B+",
        result={"overall_score": 82.0},
    )
    fields.update(overrides)
    return EvaluationRecord(**fields)


class TestDatabase:
    def test_schema_creation(self, db):
        tables = db.fetchall("SHOW TABLES")
        table_names = {t["name"] for t in tables}
        assert {"suite_runs", "evaluation_results", "metric_records", "interactions"} <= table_names

    def test_creates_parent_directory(self, tmp_path, db):
        db.conn
        assert (tmp_path / "nested").is_dir()

    def test_unusable_path_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        database = Database(str(blocker / "sub" / "test.duckdb"))

        with pytest.raises(PersistenceError, match="Could not open database"):
            database.conn

        with pytest.raises(PersistenceError):
            EvaluationRepository(database).save_evaluation(evaluation())
        database.close()


class TestSuiteRuns:
    def test_save_and_get(self, repo, summary):
        record = SuiteRunRecord.from_summary(summary, retention_days=30)
        run_id = repo.save_suite_run(record)

        stored = repo.get_suite_run(run_id)

        assert stored["subject"] == "science"
        assert stored["grade"] == 8
        assert stored["average_score"] == pytest.approx(78.0)
        assert stored["letter_grade"] == "B"
        assert stored["summary"]["totalTests"] == 1
        assert (record.expires_at - record.created_at).days == 30

    def test_list_by_subject(self, repo, summary):
        repo.save_suite_run(SuiteRunRecord.from_summary(summary))
        assert len(repo.list_suite_runs(subject="science")) == 1
        assert repo.list_suite_runs(subject="mathematics") == []

    def test_duplicate_id_raises(self, repo, summary):
        record = SuiteRunRecord.from_summary(summary)
        repo.save_suite_run(record)
        with pytest.raises(PersistenceError):
            repo.save_suite_run(record)


class TestEvaluations:
    def test_round_trip(self, repo):
        record = evaluation()
        repo.save_evaluation(record)

        stored = repo.get_result(record.id)

        assert stored["evaluation_type"] == "accuracy"
        assert stored["result"] == {"overall_score": 82.0}
        assert stored["error"] is None

    def test_missing(self, repo):
        assert repo.get_result("nope") is None

    def test_expired_rows_are_hidden(self, repo):
        past = utcnow() - timedelta(days=1)
        record = evaluation(created_at=past - timedelta(days=90), expires_at=past)
        repo.save_evaluation(record)

        assert repo.get_result(record.id) is None
        assert repo.list_results() == []

    def test_filters(self, repo):
        repo.save_evaluation(evaluation("accuracy", created_at=datetime(2026, 1, 1)))
        repo.save_evaluation(evaluation("engagement", created_at=datetime(2026, 6, 1), student_id="student-2"))
        repo.save_evaluation(evaluation("accuracy", created_at=datetime(2026, 7, 1), session_id="session-9"))

        assert len(repo.list_results()) == 3
        assert len(repo.list_results(evaluation_type="accuracy")) == 2
        assert len(repo.list_results(student_id="student-2")) == 1
        assert len(repo.list_results(session_id="session-9")) == 1
        assert len(repo.list_results(start_date="2026-05-01")) == 2
        assert len(repo.list_results(end_date="2026-05-01")) == 1
        newest_first = repo.list_results(limit=2)
        assert [r["created_at"] for r in newest_first] == [datetime(2026, 7, 1), datetime(2026, 6, 1)]
        assert len(repo.list_results(limit=2, offset=2)) == 1


class TestMetricsAndInteractions:
    def test_metrics(self, repo):
        repo.save_metric(MetricRecord(id=new_id(), metric_type="daily_accuracy", count=1, average_score=80))
        repo.save_metric(MetricRecord(id=new_id(), metric_type="daily_clarity", count=1, average_score=60))

        assert len(repo.list_metrics()) == 2
        rows = repo.list_metrics(metric_type="daily_clarity")
        assert rows[0]["average_score"] == pytest.approx(60.0)

    def test_metric_since(self, repo):
        old = datetime(2026, 1, 1)
        repo.save_metric(MetricRecord(id=new_id(), metric_type="daily_accuracy", count=1,
                                      average_score=80, created_at=old))
        assert repo.list_metrics(since="2026-02-01") == []

    def test_metric_types(self, repo):
        for metric_type in ["daily_clarity", "daily_accuracy", "daily_clarity"]:
            repo.save_metric(MetricRecord(id=new_id(), metric_type=metric_type, count=1, average_score=70))
        assert repo.list_metric_types() == ["daily_accuracy", "daily_clarity"]

    def test_interactions(self, repo):
        for index, session in enumerate(["s1", "s1", "s2", "s3"]):
            repo.save_interaction(Interaction(
                interaction_id=f"i{index}",
                session_id=session,
                type="chat_interaction",
                user_message="What is a prime number?",
                ai_response="A number with exactly two factors.",
            ))

        rows = repo.list_interactions(["s1", "s3"])

        assert sorted(r["interaction_id"] for r in rows) == ["i0", "i1", "i3"]
        assert repo.list_interactions([]) == []


class TestReportWriter:
    def test_default_filename(self, tmp_path, summary):
        writer = ReportWriter(str(tmp_path / "results"))

        path = writer.save(summary)

        assert path.parent == tmp_path / "results"
        assert path.name.startswith("evaluation_") and path.suffix == ".json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["totalTests"] == 1
        assert data["metadata"]["subject"] == "science"

    def test_bare_and_explicit_names(self, tmp_path):
        writer = ReportWriter(str(tmp_path / "results"))
        assert writer.resolve_path("science.json") == tmp_path / "results" / "science.json"
        explicit = tmp_path / "elsewhere" / "out.json"
        assert writer.resolve_path(str(explicit)) == explicit

    def test_full_suite_report(self, tmp_path, summary):
        report = FullSuiteReport(timestamp="2026-01-01T00:00:00+00:00", results=[summary])
        path = ReportWriter(str(tmp_path)).save(report, prefix="comprehensive_report")

        assert path.name.startswith("comprehensive_report_")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["successful"] == 1

    def test_unicode_preserved(self, tmp_path):
        path = ReportWriter(str(tmp_path)).save({"feedback": "très bien"}, "u.json")
        assert "très bien" in path.read_text(encoding="utf-8")

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        with pytest.raises(PersistenceError):
            ReportWriter(str(tmp_path)).save({"a": 1}, str(blocker / "out.json"))
