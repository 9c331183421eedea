"""Tests for the tutoreval CLI."""

import json

import pytest

from cli.main import build_parser, main
from core.config import ENV_OVERRIDES
from evals.aggregation import summarize
from evals.models import FullSuiteReport, JudgeEvaluation, TestResult, TestScenario, TutorResponse
from evals.suite import SuiteRunner


@pytest.fixture
def workspace(monkeypatch, tmp_path):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def configured(workspace, monkeypatch):
    monkeypatch.setenv("BACKEND_API_ENDPOINT", "http://judge.test/api")
    monkeypatch.setenv("AI_TUTOR_ENDPOINT", "http://tutor.test")
    monkeypatch.setenv("TUTOREVAL_RESULTS_DIR", str(workspace / "results"))
    monkeypatch.setenv("TUTOREVAL_DB_PATH", str(workspace / "cli.duckdb"))
    return workspace


def canned_summary(subject="mathematics", grade=8):
    result = TestResult(
        scenario=TestScenario(subject=subject, grade=grade, question="Solve: 2x + 5 = 13 and explain each step"),
        tutor_response=TutorResponse(response="x = 4"),
        judge_evaluation=JudgeEvaluation(overall_score=84, criteria_scores={"accuracy": 90}),
        timestamp="2026-01-01T00:00:00+00:00",
        processing_time_ms=5,
    )
    return summarize([result], metadata={"subject": subject, "grade": grade})


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.subject == "mathematics"
        assert args.grade == 8
        assert args.tests == 3
        assert args.full_suite is False
        assert args.no_db is False
        assert args.serve is False
        assert args.port == 8000

    def test_short_flags(self):
        args = build_parser().parse_args(["-s", "science", "-g", "10", "-t", "5", "-o", "out.json", "-v"])
        assert (args.subject, args.grade, args.tests, args.output, args.verbose) == (
            "science", 10, 5, "out.json", True,
        )

    def test_help(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--help"])
        assert excinfo.value.code == 0
        assert "--full-suite" in capsys.readouterr().out


class TestMain:
    def test_missing_endpoints_exit_code_2(self, workspace, capsys):
        assert main([]) == 2
        assert "Missing required configuration" in capsys.readouterr().err

    def test_single_suite(self, configured, monkeypatch, capsys):
        async def fake_run_suite(self, options, progress=None):
            assert (options.subject, options.grade, options.number_of_tests) == ("science", 10, 2)
            return canned_summary("science", 10)

        monkeypatch.setattr(SuiteRunner, "run_suite", fake_run_suite)

        assert main(["-s", "science", "-g", "10", "-t", "2", "-o", "science.json"]) == 0

        out = capsys.readouterr().out
        assert "Average Score: 84.0% (grade B+)" in out
        report = json.loads((configured / "results" / "science.json").read_text())
        assert report["metadata"]["subject"] == "science"
        assert (configured / "cli.duckdb").exists()

    def test_full_suite_no_db(self, configured, monkeypatch, capsys):
        async def fake_run_full_suite(self, matrix=None, student_profile=None, progress=None):
            return FullSuiteReport(
                timestamp="2026-01-01T00:00:00+00:00",
                results=[canned_summary("mathematics", 8), canned_summary("science", 8)],
            )

        monkeypatch.setattr(SuiteRunner, "run_full_suite", fake_run_full_suite)

        assert main(["--full-suite", "--no-db"]) == 0

        assert "COMPREHENSIVE EVALUATION REPORT" in capsys.readouterr().out
        reports = list((configured / "results").glob("comprehensive_report_*.json"))
        assert len(reports) == 1
        assert not (configured / "cli.duckdb").exists()

    def test_save_failures_only_warn(self, configured, monkeypatch, capsys):
        blocker = configured / "blocker"
        blocker.write_text("file, not a directory")
        monkeypatch.setenv("TUTOREVAL_RESULTS_DIR", str(blocker / "results"))
        monkeypatch.setenv("TUTOREVAL_DB_PATH", str(blocker / "db" / "cli.duckdb"))

        async def fake_run_suite(self, options, progress=None):
            return canned_summary()

        monkeypatch.setattr(SuiteRunner, "run_suite", fake_run_suite)

        assert main(["-t", "1"]) == 0

        out = capsys.readouterr().out
        assert "Average Score: 84.0%" in out
        assert "Warning: Could not save results file" in out
        assert "Warning: Could not store in database" in out

    def test_bad_config_section_exit_code_2(self, configured, capsys):
        (configured / "tutoreval.yaml").write_text("evaluation: not-a-mapping\n")

        assert main(["--no-db"]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_unreadable_profile_only_warns(self, configured, monkeypatch):
        seen = {}

        async def fake_run_suite(self, options, progress=None):
            seen["profile"] = options.student_profile
            return canned_summary()

        monkeypatch.setattr(SuiteRunner, "run_suite", fake_run_suite)

        assert main(["-p", "missing-profile.json", "--no-db"]) == 0
        assert seen["profile"] is None
