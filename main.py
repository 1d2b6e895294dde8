"""
Turtle Autograder: swap-tested problem-set grading with optional LLM feedback

Usage:
  main.py [--config=PATH]
  main.py (-h | --help)

Options:
  --config=PATH  Path to YAML configuration file [default: grader_config.yml].
  -h --help      Show this screen.
"""

from docopt import docopt
import sys
import webbrowser
from pathlib import Path

from autograde.art_collector import ArtifactCollector
from autograde.config_loader import GraderConfig, load_config
from autograde.llm_grader import LLMGrader
from autograde.models import GradingReport
from autograde.orchestrator import GradingOrchestrator
from autograde.report import ReportEmitter
from autograde.test_runner import IsolatedTestRunner


def print_summary(report: GradingReport) -> None:
    """
    Print the run summary to console.

    Args:
        report: Finished grading report.
    """
    summary = report.summary
    total = summary.total_students

    print("\n" + "=" * 60)
    print("GRADING COMPLETE")
    print("=" * 60)
    print(f"Total Students: {total}")
    print(f"Passed Instructor Tests: {summary.passed_implementation_tests}/{total}")
    print(f"Passed Own Tests: {summary.passed_student_tests}/{total}")
    print(f"Successful Art Generation: {summary.art_generation_success}/{total}")

    if summary.flagged_runs:
        print(f"\nFlagged runs (no tests executed or timed out): {summary.flagged_runs}")
        for record in report.records:
            for label, outcome in (("instructor tests", record.implementation_tests),
                                   ("student tests", record.student_tests)):
                if outcome.warning:
                    print(f"  - {record.submission_id} ({label}): {outcome.warning}")


def run_grading_pipeline(config: GraderConfig) -> GradingReport:
    """
    Run the complete grading pipeline.

    Args:
        config: Loaded grader configuration.

    Returns:
        The grading report for all submissions.
    """
    layout = config.assignment_layout()
    print(f"Grading {config.language} assignment from {config.instructor_dir}")

    runner = IsolatedTestRunner(
        instructor_dir=config.instructor_dir,
        layout=layout,
        timeout_seconds=config.timeout_seconds,
        verbose=config.verbose,
    )
    collector = ArtifactCollector(
        instructor_dir=config.instructor_dir,
        layout=layout,
        timeout_seconds=config.timeout_seconds,
        verbose=config.verbose,
    )

    llm_grader: LLMGrader | None = None
    if not config.skip_llm:
        print("Initializing LLM grader...")
        try:
            llm_grader = LLMGrader(problem_description=config.problem_description)
        except ValueError as e:
            print(f"Warning: {e}")
            print("LLM grading will be skipped.")

    orchestrator = GradingOrchestrator(
        instructor_dir=config.instructor_dir,
        layout=layout,
        runner=runner,
        collector=collector,
        llm_grader=llm_grader,
        functions_to_check=config.functions_to_check,
        max_workers=config.max_workers,
    )
    report = orchestrator.run(config.submissions_dir)

    print("\nSaving grading report...")
    emitter = ReportEmitter(output_dir=config.output_dir)
    output_files = emitter.save_all(report)
    print(f"  Report JSON: {output_files['report_json']}")
    print(f"  Summary CSV: {output_files['summary_csv']}")
    print(f"  Art gallery: {output_files['gallery_html']}")

    print_summary(report)

    if config.open_gallery:
        print("\nOpening student art gallery visualization...")
        webbrowser.open(output_files["gallery_html"].resolve().as_uri())

    return report


def main() -> int:
    """
    Main CLI entrypoint.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    arguments = docopt(__doc__)
    config_path = Path(arguments["--config"])

    if not config_path.exists():
        print(f"Error: Configuration file not found at {config_path}")
        return 1

    try:
        config = load_config(config_path)
        print(f"Loaded configuration from {config_path}")
    except Exception as e:
        print(f"Error loading config: {e}")
        return 1

    if not config.submissions_dir.exists():
        print(f"Error: Submissions directory not found: {config.submissions_dir}")
        return 1

    if not config.instructor_dir.exists():
        print(f"Error: Instructor directory not found: {config.instructor_dir}")
        return 1

    try:
        run_grading_pipeline(config)
        return 0
    except KeyboardInterrupt:
        print("\nGrading interrupted by user.")
        return 1
    except Exception as e:
        print(f"\nError: {e}")
        if config.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
