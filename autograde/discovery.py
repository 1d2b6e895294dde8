"""
Submission discovery.
"""

from pathlib import Path

from .config import IGNORED_SUBMISSION_DIRS
from .models import AssignmentLayout, Submission


def find_submissions(submissions_dir: Path, layout: AssignmentLayout) -> list[Submission]:
    """
    Find all student submission directories.

    Every non-hidden subdirectory is a submission, even if it lacks the
    expected files; the missing files are reported when it is graded.

    Args:
        submissions_dir: Path to directory containing student folders.
        layout: Assignment layout, used to check for the expected files.

    Returns:
        List of Submission objects sorted by identifier.
    """
    if not submissions_dir.is_dir():
        print(f"Error: Submissions directory not found: {submissions_dir}")
        return []

    submissions: list[Submission] = []

    for item in sorted(submissions_dir.iterdir()):
        if not item.is_dir():
            continue

        # Skip hidden directories and tool/temporary directories
        if item.name.startswith(".") or item.name in IGNORED_SUBMISSION_DIRS:
            continue

        submissions.append(
            Submission(
                submission_id=item.name,
                submission_path=str(item.resolve()),
                has_implementation=(item / layout.student_implementation).is_file(),
                has_tests=(item / layout.student_tests).is_file(),
            )
        )

    return submissions
