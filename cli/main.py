"""tutoreval - run AI tutor evaluation suites from the command line."""

import argparse
import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import EvaluationConfig, load_config  # noqa: E402
from core.errors import ConfigError, PersistenceError  # noqa: E402

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


# ── Output ────────────────────────────────────────────────────────────

def print_summary(summary, verbose: bool = False) -> None:
    print(f"\n{'=' * 50}")
    print("EVALUATION RESULTS")
    print("=" * 50)
    print(f"Average Score: {summary.average_score:.1f}% (grade {summary.grade})")
    print(f"Tests Completed: {summary.total_tests}")
    print(f"Passed Tests: {summary.passed_tests}")
    print(f"Failed Tests: {summary.failed_tests}")
    print(f"Success Rate: {summary.success_rate:.1f}%")

    print("\nCriteria Scores:")
    for criterion, score in summary.criteria_averages.items():
        print(f"  {criterion.replace('_', ' '):<22} {score:>5.1f}%")

    if summary.critical_issues:
        print("\nCritical Issues:")
        for issue in summary.critical_issues:
            print(f"  ! {issue}")

    if summary.recommendations:
        print("\nRecommendations:")
        for recommendation in summary.recommendations:
            print(f"  - {recommendation}")

    if verbose and summary.results:
        print("\nDETAILED TEST RESULTS")
        print("-" * 50)
        for index, result in enumerate(summary.results, 1):
            evaluation = result.judge_evaluation
            print(f"\nTest {index}: {result.scenario.question}")
            print(f"  Score: {evaluation.overall_score:.1f}% ({result.grade})")
            print(f"  Duration: {result.processing_time_ms}ms")
            if result.error:
                print(f"  Error: {result.error}")
            if evaluation.detailed_feedback:
                print(f"  Feedback: {evaluation.detailed_feedback[:100]}")


def print_full_report(report) -> None:
    summary = report.summary()
    print(f"\n{'=' * 60}")
    print("COMPREHENSIVE EVALUATION REPORT")
    print("=" * 60)
    print(f"Total Test Suites: {summary['totalSuites']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed: {summary['failed']}")
    if summary["successful"]:
        print(f"Average Score: {summary['averageScore']:.1f}%")
        print("\nSubject Performance:")
        for subject, score in summary["subjectAverages"].items():
            print(f"  {subject:<15} {score:>5.1f}%")
    for failure in report.failed:
        print(f"  x {failure.subject} grade {failure.grade}: {failure.error}")


# ── Persistence ───────────────────────────────────────────────────────

def save_outputs(config: EvaluationConfig, report, output: Optional[str], prefix: str, no_db: bool) -> None:
    """Write the JSON artifact and the DuckDB record; failures only warn."""
    from storage.reports import ReportWriter

    try:
        path = ReportWriter(config.results_dir).save(report, output, prefix=prefix)
        print(f"\nResults saved to {path}")
    except PersistenceError as e:
        logger.error(str(e))
        print(f"Warning: Could not save results file: {e}")

    if no_db:
        return

    from storage.database import Database
    from storage.models import SuiteRunRecord
    from storage.repository import EvaluationRepository

    summaries = getattr(report, "successful", None)
    summaries = summaries if summaries is not None else [report]
    db = Database(config.db_path)
    try:
        repo = EvaluationRepository(db)
        for summary in summaries:
            run_id = repo.save_suite_run(SuiteRunRecord.from_summary(summary, config.retention_days))
            print(f"Stored in database (run_id: {run_id[:8]}...)")
    except PersistenceError as e:
        logger.error(str(e))
        print(f"Warning: Could not store in database: {e}")
    finally:
        db.close()


# ── Commands ──────────────────────────────────────────────────────────

def load_profile(path: Optional[str]):
    if not path:
        return None
    from evals.models import StudentProfile

    try:
        profile = StudentProfile.load(path)
        print(f"Loaded student profile: {profile.name}")
        return profile
    except (OSError, ValueError) as e:
        logger.warning(f"Could not load student profile: {e}")
        return None


async def run_evaluation(args, config: EvaluationConfig):
    from evals.suite import SuiteOptions, SuiteRunner

    runner = SuiteRunner(config)
    profile = load_profile(args.student_profile)
    try:
        if args.full_suite:
            return await runner.run_full_suite(student_profile=profile)
        options = SuiteOptions(
            subject=args.subject,
            grade=args.grade,
            number_of_tests=args.tests,
            student_profile=profile,
        )
        return await runner.run_suite(options)
    finally:
        await runner.aclose()


def cmd_serve(args) -> None:
    """Launch the evaluation gateway."""
    print(f"Starting gateway on http://{args.host}:{args.port}")
    subprocess.run([
        sys.executable, "-m", "uvicorn",
        "gateway.app:app",
        "--host", args.host,
        "--port", str(args.port),
    ], cwd=str(PROJECT_ROOT))


def cmd_evaluate(args) -> None:
    config = load_config(args.config).require_endpoints()

    if args.full_suite:
        print("Running Full Evaluation Suite")
    else:
        print(f"Subject: {args.subject}")
        print(f"Grade: {args.grade}")
        print(f"Tests: {args.tests}")

    report = asyncio.run(run_evaluation(args, config))

    if args.full_suite:
        print_full_report(report)
        save_outputs(config, report, args.output, "comprehensive_report", args.no_db)
    else:
        print_summary(report, verbose=args.verbose)
        save_outputs(config, report, args.output, "evaluation", args.no_db)


# ── Argument parser ───────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutoreval",
        description="Evaluate an AI tutor with an independent judge model",
        epilog=(
            "examples:\n"
            "  tutoreval --subject mathematics --grade 8 --tests 5\n"
            "  tutoreval --full-suite\n"
            "  tutoreval --subject science --grade 10 --output results/science-eval.json"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-s", "--subject", default="mathematics", help="Subject to evaluate")
    parser.add_argument("-g", "--grade", type=int, default=8, help="Grade level")
    parser.add_argument("-t", "--tests", type=int, default=3, help="Number of test scenarios")
    parser.add_argument("-f", "--full-suite", action="store_true", help="Run the full subject x grade matrix")
    parser.add_argument("-p", "--student-profile", help="Path to a student profile JSON file")
    parser.add_argument("-o", "--output", help="Output file path")
    parser.add_argument("-c", "--config", help="Path to tutoreval.yaml")
    parser.add_argument("--no-db", action="store_true", help="Skip database storage")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed results and debug logging")
    parser.add_argument("--serve", action="store_true", help="Launch the HTTP evaluation gateway")
    parser.add_argument("--host", default="127.0.0.1", help="Gateway host address")
    parser.add_argument("--port", type=int, default=8000, help="Gateway port number")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.serve:
            cmd_serve(args)
        else:
            cmd_evaluate(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    except Exception as e:
        if args.verbose:
            logger.exception(f"Evaluation failed: {e}")
        else:
            logger.error(f"Evaluation failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
