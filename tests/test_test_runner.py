import sys

from conftest import MISSING_DOUBLE_LOOP_SOURCE, NO_TESTS_SOURCE, REFERENCE_SOURCE, write

from autograde.frameworks import TestFramework
from autograde.models import Direction
from autograde.test_runner import NO_TESTS_WARNING, IsolatedTestRunner

DOUBLE_LOOP_TEST = "test_turtlesoup.test_double_loop_draws_two_triangles"
SQUARE_TEST = "test_turtlesoup.test_draw_square_draws_four_sides"

PRIMITIVE_IMPORTING_SOURCE = "from src.turtle import SimpleTurtle\n\n\n" + REFERENCE_SOURCE


def make_runner(instructor_dir, layout, work_dir):
    return IsolatedTestRunner(instructor_dir, layout, timeout_seconds=60, work_dir=work_dir)


def test_select_sources_pairs_files_by_direction(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("alice")
    runner = make_runner(instructor_dir, layout, work_dir)

    impl_sources = runner.select_sources(student, Direction.IMPLEMENTATION_CHECK)
    test_sources = runner.select_sources(student, Direction.STUDENT_TEST_CHECK)

    assert impl_sources == [
        (instructor_dir / "src" / "turtle.py", "turtle.py"),
        (student / "src" / "turtlesoup.py", "turtlesoup.py"),
        (instructor_dir / "test" / "test_turtlesoup.py", "test_turtlesoup.py"),
    ]
    assert test_sources == [
        (instructor_dir / "src" / "turtle.py", "turtle.py"),
        (instructor_dir / "src" / "turtlesoup.py", "turtlesoup.py"),
        (student / "test" / "test_turtlesoup.py", "test_turtlesoup.py"),
    ]


def test_correct_implementation_passes_instructor_tests(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("alice")

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.IMPLEMENTATION_CHECK)

    assert outcome.errors is None
    assert outcome.overall is True
    assert outcome.details == {SQUARE_TEST: True, DOUBLE_LOOP_TEST: True}
    assert list(work_dir.iterdir()) == []


def test_missing_function_fails_its_test_case(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("bob", implementation=MISSING_DOUBLE_LOOP_SOURCE)

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.IMPLEMENTATION_CHECK)

    assert outcome.overall is False
    assert outcome.details[DOUBLE_LOOP_TEST] is False
    assert outcome.details[SQUARE_TEST] is True


def test_student_tests_run_against_reference(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("carol", implementation=MISSING_DOUBLE_LOOP_SOURCE)

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.STUDENT_TEST_CHECK)

    assert outcome.overall is True
    assert outcome.details == {"test_turtlesoup.test_draw_square_returns_home": True}


def test_zero_student_tests_is_flagged_not_passed(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("dave", tests=NO_TESTS_SOURCE)

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.STUDENT_TEST_CHECK)

    assert outcome.overall is False
    assert outcome.details == {}
    assert outcome.warning == NO_TESTS_WARNING
    assert outcome.errors is None


def test_missing_file_is_recorded_and_sandbox_removed(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("erin", tests=None)

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.STUDENT_TEST_CHECK)

    assert outcome.overall is False
    assert outcome.details == {}
    assert outcome.errors.startswith("MissingFile:")
    assert list(work_dir.iterdir()) == []


def test_syntax_error_in_student_code_fails_collection(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("frank", implementation="def draw_square(:\n")

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.IMPLEMENTATION_CHECK)

    assert outcome.overall is False
    assert outcome.details
    assert not any(outcome.details.values())
    assert outcome.errors.startswith("SubprocessFailure:")
    assert "SyntaxError" in outcome.errors
    assert list(work_dir.iterdir()) == []


def test_implementation_importing_primitive_from_package(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("gina", implementation=PRIMITIVE_IMPORTING_SOURCE)

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.IMPLEMENTATION_CHECK)

    assert outcome.errors is None
    assert outcome.details == {SQUARE_TEST: True, DOUBLE_LOOP_TEST: True}


def test_reference_importing_primitive_from_package(instructor_dir, layout, work_dir, make_submission):
    write(instructor_dir / "src" / "turtlesoup.py", PRIMITIVE_IMPORTING_SOURCE)
    student = make_submission("hank")

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.STUDENT_TEST_CHECK)

    assert outcome.overall is True
    assert outcome.details == {"test_turtlesoup.test_draw_square_returns_home": True}


def test_student_tests_importing_module_from_package(instructor_dir, layout, work_dir, make_submission):
    tests = (
        "from src import turtlesoup\n"
        "from src.turtle import SimpleTurtle\n\n\n"
        "def test_square_has_four_sides():\n"
        "    turtle = SimpleTurtle()\n"
        "    turtlesoup.draw_square(turtle, 5)\n"
        "    assert len(turtle.get_path()) == 4\n"
    )
    student = make_submission("iris", tests=tests)

    outcome = make_runner(instructor_dir, layout, work_dir).run_tests(student, Direction.STUDENT_TEST_CHECK)

    assert outcome.overall is True
    assert outcome.details == {"test_turtlesoup.test_square_has_four_sides": True}


class SlowFramework(TestFramework):
    """Reports a result even though its process is killed."""

    name = "slow"

    def command(self, tests_name):
        return [sys.executable, "-c", "import time; time.sleep(10)"]

    def parse_results(self, sandbox_path, result):
        return {"slow.case": True}


def test_timed_out_run_with_results_is_not_passed(instructor_dir, layout, work_dir, make_submission):
    student = make_submission("jack")
    runner = IsolatedTestRunner(instructor_dir, layout, framework=SlowFramework(), timeout_seconds=1,
                                work_dir=work_dir)

    outcome = runner.run_tests(student, Direction.IMPLEMENTATION_CHECK)

    assert outcome.overall is False
    assert outcome.details == {"slow.case": True}
    assert "timed out after 1s" in outcome.warning
    assert outcome.errors is None
    assert list(work_dir.iterdir()) == []
