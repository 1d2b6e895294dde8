"""
Grading orchestrator.

Runs the three grading steps (instructor tests, student tests, personal art)
for every discovered submission, plus optional LLM grading, and assembles the
run's GradingReport.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, TypeVar

from .art_collector import ArtifactCollector
from .discovery import find_submissions
from .errors import describe_error
from .llm_grader import build_grading_context
from .models import (
    ArtifactResult,
    AssignmentLayout,
    Direction,
    GradingRecord,
    GradingReport,
    ManualGradingResult,
    Submission,
    TestOutcome,
)
from .test_runner import IsolatedTestRunner

T = TypeVar("T")


class GradingOrchestrator:
    """
    Grades every submission under a submissions root.

    A failure in one step of one submission is recorded on that
    submission's record and never stops the run.
    """

    def __init__(
        self,
        instructor_dir: Path,
        layout: AssignmentLayout,
        runner: IsolatedTestRunner,
        collector: ArtifactCollector,
        llm_grader=None,
        functions_to_check: list[str] | None = None,
        max_workers: int = 1,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            instructor_dir: Directory holding the instructor's source units.
            layout: Assignment layout.
            runner: Runner used for both test directions.
            collector: Personal art collector.
            llm_grader: Optional object with `grade(GradingContext) -> ManualGradingResult`.
            functions_to_check: Function names extracted for LLM grading.
            max_workers: Submissions graded in parallel. Steps of one submission
                always run in order.
        """
        self.instructor_dir = instructor_dir
        self.layout = layout
        self.runner = runner
        self.collector = collector
        self.llm_grader = llm_grader
        self.functions_to_check = functions_to_check or []
        self.max_workers = max(1, max_workers)

    def run(self, submissions_root: Path) -> GradingReport:
        """
        Grade all submissions.

        Args:
            submissions_root: Directory containing one folder per student.

        Returns:
            GradingReport with one record per discovered submission, in
            discovery order.
        """
        timestamp = datetime.now().isoformat()

        print(f"Scanning {submissions_root} for submissions...")
        submissions = find_submissions(submissions_root, self.layout)
        print(f"Found {len(submissions)} submissions: {', '.join(s.submission_id for s in submissions)}")

        total = len(submissions)
        if self.max_workers > 1 and total > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                records = list(
                    pool.map(
                        lambda item: self.grade_submission(item[1], item[0], total),
                        enumerate(submissions, 1),
                    )
                )
        else:
            records = [self.grade_submission(s, i, total) for i, s in enumerate(submissions, 1)]

        return GradingReport(timestamp=timestamp, records=records)

    def grade_submission(self, submission: Submission, index: int = 1, total: int = 1) -> GradingRecord:
        """
        Run every grading step for one submission.

        Args:
            submission: The submission to grade.
            index: Position in the run, for progress output.
            total: Number of submissions in the run.

        Returns:
            The finished GradingRecord.
        """
        student_id = submission.submission_id
        submission_path = Path(submission.submission_path)
        print(f"\n[{index}/{total}] Processing {student_id}...")

        if not submission.has_implementation:
            print(f"  Warning: {self.layout.student_implementation} not found for '{student_id}'.")
        if not submission.has_tests:
            print(f"  Warning: {self.layout.student_tests} not found for '{student_id}'.")

        print(f"  Running instructor tests against {student_id}'s implementation...")
        implementation_tests = self._guard(
            "instructor tests",
            lambda: self.runner.run_tests(submission_path, Direction.IMPLEMENTATION_CHECK),
            TestOutcome.failure,
        )
        print(f"  Instructor tests: {self._status(implementation_tests)}")

        print(f"  Running {student_id}'s tests against the reference implementation...")
        student_tests = self._guard(
            "student tests",
            lambda: self.runner.run_tests(submission_path, Direction.STUDENT_TEST_CHECK),
            TestOutcome.failure,
        )
        print(f"  Student tests: {self._status(student_tests)}")

        print(f"  Collecting personal art from {student_id}...")
        personal_art = self._guard(
            "personal art",
            lambda: self.collector.collect_art(submission_path),
            lambda error: ArtifactResult(segments=[], error=error),
        )
        if personal_art.usable:
            print(f"  Personal art: {len(personal_art.segments)} segments")
        else:
            print("  Personal art: FAILED")

        manual_grading = None
        if self.llm_grader is not None:
            print("  Grading with LLM...")
            manual_grading = self._guard(
                "LLM grading",
                lambda: self.llm_grader.grade(
                    build_grading_context(
                        submission_path,
                        self.instructor_dir,
                        self.layout,
                        self.functions_to_check,
                        student_test_outcome=student_tests,
                        implementation_outcome=implementation_tests,
                    )
                ),
                ManualGradingResult.placeholder,
            )

        return GradingRecord(
            submission_id=student_id,
            implementation_tests=implementation_tests,
            student_tests=student_tests,
            personal_art=personal_art,
            manual_grading=manual_grading,
        )

    def _guard(self, step: str, action: Callable[[], T], fallback: Callable[[str], T]) -> T:
        """Run a step, turning an escaped exception into the step's degraded result."""
        try:
            return action()
        except Exception as e:
            print(f"  Error: {step} step crashed: {e}")
            return fallback(describe_error(e))

    @staticmethod
    def _status(outcome: TestOutcome) -> str:
        if outcome.errors:
            return "ERROR"
        if outcome.warning and not outcome.details:
            return "NO TESTS"
        passed = outcome.passed_count
        return f"{'PASSED' if outcome.overall else 'FAILED'} ({passed}/{len(outcome.details)})"
