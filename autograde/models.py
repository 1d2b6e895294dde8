"""
Pydantic models for the Turtle Autograder.

Defines the submission, test outcome, artifact and report types shared by
the pipeline, plus the structured output schema used for LLM grading.
"""

from enum import Enum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .config import PYTHON, TYPESCRIPT


class Direction(str, Enum):
    """Which side supplies the tests and which side supplies the implementation."""

    IMPLEMENTATION_CHECK = "implementation_check"
    STUDENT_TEST_CHECK = "student_test_check"


class AssignmentLayout(BaseModel):
    """
    Where an assignment's source units live and what they are called in a sandbox.

    Attributes:
        language: Assignment language ("python" or "typescript").
        instructor_primitive: Drawing-primitive module, relative to the instructor dir.
        instructor_implementation: Reference implementation, relative to the instructor dir.
        instructor_tests: Official test module, relative to the instructor dir.
        student_implementation: Implementation module, relative to a submission dir.
        student_tests: Test module, relative to a submission dir.
        primitive_name: Flat file name of the primitive module inside a sandbox.
        implementation_name: Flat file name of the implementation inside a sandbox.
        tests_name: Flat file name of the test module inside a sandbox.
        primitive_class: Class exported by the primitive module.
        art_function: Personal-art entry point exported by the implementation.
        path_method: Primitive method returning the recorded path segments.
    """

    language: str = Field(default=PYTHON, description="Assignment language")
    instructor_primitive: str = Field(..., description="Instructor primitive module path")
    instructor_implementation: str = Field(..., description="Instructor reference implementation path")
    instructor_tests: str = Field(..., description="Instructor test module path")
    student_implementation: str = Field(..., description="Student implementation path")
    student_tests: str = Field(..., description="Student test module path")
    primitive_name: str = Field(..., description="Sandbox name of the primitive module")
    implementation_name: str = Field(..., description="Sandbox name of the implementation")
    tests_name: str = Field(..., description="Sandbox name of the test module")
    primitive_class: str = Field(default="SimpleTurtle", description="Primitive class name")
    art_function: str = Field(..., description="Personal-art entry point")
    path_method: str = Field(..., description="Accessor for recorded path segments")

    @classmethod
    def for_language(cls, language: str, **overrides) -> "AssignmentLayout":
        """
        Build the default layout for a language, with optional overrides.

        Args:
            language: "python" or "typescript".
            **overrides: Field values replacing the defaults.

        Returns:
            AssignmentLayout for the language.

        Raises:
            ValueError: If the language is not supported.
        """
        if language == PYTHON:
            defaults = {
                "instructor_primitive": "src/turtle.py",
                "instructor_implementation": "src/turtlesoup.py",
                "instructor_tests": "test/test_turtlesoup.py",
                "student_implementation": "src/turtlesoup.py",
                "student_tests": "test/test_turtlesoup.py",
                "primitive_name": "turtle.py",
                "implementation_name": "turtlesoup.py",
                "tests_name": "test_turtlesoup.py",
                "art_function": "draw_personal_art",
                "path_method": "get_path",
            }
        elif language == TYPESCRIPT:
            defaults = {
                "instructor_primitive": "src/turtle.ts",
                "instructor_implementation": "src/turtlesoup.ts",
                "instructor_tests": "test/turtlesoupTest.ts",
                "student_implementation": "src/turtlesoup.ts",
                "student_tests": "test/turtlesoupTest.ts",
                "primitive_name": "turtle.ts",
                "implementation_name": "turtlesoup.ts",
                "tests_name": "turtlesoupTest.ts",
                "art_function": "drawPersonalArt",
                "path_method": "getPath",
            }
        else:
            raise ValueError(f"Unsupported assignment language: {language!r}")

        defaults.update({k: v for k, v in overrides.items() if v is not None})
        return cls(language=language, **defaults)

    def module_mapping(self) -> dict[str, str]:
        """
        Map the module names used in the original tree to sandbox module names.

        Returns:
            {original module name: sandbox module name} for the primitive
            and the implementation modules.
        """
        mapping = {
            PurePosixPath(self.instructor_primitive).stem: PurePosixPath(self.primitive_name).stem,
            PurePosixPath(self.instructor_implementation).stem: PurePosixPath(self.implementation_name).stem,
            PurePosixPath(self.student_implementation).stem: PurePosixPath(self.implementation_name).stem,
        }
        return mapping


class Submission(BaseModel):
    """
    A student's submission directory.

    Attributes:
        submission_id: Student identifier (folder name, usually an email handle).
        submission_path: Absolute path to the submission directory.
        has_implementation: Whether the implementation module exists.
        has_tests: Whether the test module exists.
    """

    model_config = ConfigDict(frozen=True)

    submission_id: str = Field(..., description="Student identifier")
    submission_path: str = Field(..., description="Path to submission directory")
    has_implementation: bool = Field(..., description="Whether the implementation module exists")
    has_tests: bool = Field(..., description="Whether the test module exists")


class TestOutcome(BaseModel):
    """
    Result of one sandboxed test run.

    Attributes:
        overall: True only if at least one test ran and every test passed.
        details: Fully qualified test name -> passed.
        errors: Diagnostic text when the run itself failed.
        warning: Set when the run completed but looks suspicious (no tests).
    """

    __test__ = False
    model_config = ConfigDict(frozen=True)

    overall: bool = Field(..., description="Whether all tests passed")
    details: dict[str, bool] = Field(default_factory=dict, description="Per-test pass/fail")
    errors: str | None = Field(default=None, description="Diagnostic text if the run failed")
    warning: str | None = Field(default=None, description="Warning about a suspicious run")

    @property
    def passed_count(self) -> int:
        return sum(1 for passed in self.details.values() if passed)

    @classmethod
    def failure(cls, errors: str) -> "TestOutcome":
        return cls(overall=False, details={}, errors=errors)


class Point(BaseModel):
    x: float
    y: float


class Segment(BaseModel):
    """A single line drawn by the turtle."""

    start: Point
    end: Point
    color: str = Field(default="black", description="Stroke color")


class ArtifactResult(BaseModel):
    """
    Personal art collected from a submission.

    Attributes:
        segments: Ordered path segments drawn by the student's art function.
        error: Diagnostic text; when set the artifact is unusable.
    """

    model_config = ConfigDict(frozen=True)

    segments: list[Segment] = Field(default_factory=list, description="Recorded path segments")
    error: str | None = Field(default=None, description="Diagnostic text if collection failed")

    @property
    def usable(self) -> bool:
        return self.error is None


class ManualGradingResult(BaseModel):
    """
    Narrative grading returned by the LLM collaborator.

    This model is used as the structured output schema for OpenAI's API.

    Attributes:
        function_score: Score for the main function under review.
        overall_score: Score for the whole assignment.
        feedback: Personal feedback addressed to the student.
        strengths: Key strengths found in the code.
        weaknesses: Areas for improvement.
    """

    function_score: float = Field(..., ge=0, description="Score for the main function")
    overall_score: float = Field(..., ge=0, description="Overall assignment score")
    feedback: str = Field(..., description="Conversational feedback for the student")
    strengths: list[str] = Field(default_factory=list, description="Strengths in the code")
    weaknesses: list[str] = Field(default_factory=list, description="Areas for improvement")
    error: str | None = Field(default=None, description="Set when this is a fallback result")

    @classmethod
    def placeholder(cls, diagnostic: str) -> "ManualGradingResult":
        """Zero-scored record used when the LLM collaborator fails."""
        return cls(
            function_score=0,
            overall_score=0,
            feedback=f"Error during grading: {diagnostic}",
            strengths=[],
            weaknesses=["Could not complete grading"],
            error=diagnostic,
        )


class GradingRecord(BaseModel):
    """
    Complete grading result for one submission.

    Attributes:
        submission_id: Student identifier.
        implementation_tests: Instructor tests run against the student implementation.
        student_tests: Student tests run against the instructor implementation.
        personal_art: Collected personal art.
        manual_grading: LLM feedback, when LLM grading ran.
    """

    model_config = ConfigDict(frozen=True)

    submission_id: str = Field(..., description="Student identifier")
    implementation_tests: TestOutcome = Field(..., description="Instructor tests vs student implementation")
    student_tests: TestOutcome = Field(..., description="Student tests vs instructor implementation")
    personal_art: ArtifactResult = Field(..., description="Personal art artifact")
    manual_grading: ManualGradingResult | None = Field(default=None, description="LLM grading result")


class GradingSummary(BaseModel):
    total_students: int = 0
    passed_implementation_tests: int = 0
    passed_student_tests: int = 0
    art_generation_success: int = 0
    flagged_runs: int = 0


class GradingReport(BaseModel):
    """
    Report for a whole grading run.

    The summary is always recomputed from the records.
    """

    timestamp: str = Field(..., description="ISO timestamp of the run")
    records: list[GradingRecord] = Field(default_factory=list, description="Per-submission records")

    @computed_field
    @property
    def summary(self) -> GradingSummary:
        return GradingSummary(
            total_students=len(self.records),
            passed_implementation_tests=sum(1 for r in self.records if r.implementation_tests.overall),
            passed_student_tests=sum(1 for r in self.records if r.student_tests.overall),
            art_generation_success=sum(1 for r in self.records if r.personal_art.usable),
            flagged_runs=sum(
                1
                for r in self.records
                if r.student_tests.warning is not None or r.implementation_tests.warning is not None
            ),
        )


class GradingContext(BaseModel):
    """
    Everything the LLM grader sees about one submission.

    Attributes:
        submission_id: Student identifier.
        student_name: Display name derived from the identifier.
        language: Assignment language, used for code fences.
        functions: Function name -> extracted student implementation.
        instructor_tests: Function name -> extracted instructor tests.
        student_tests: Function name -> extracted student tests.
        student_test_outcome: Result of the student's tests against the reference implementation.
        implementation_outcome: Result of the instructor's tests against the student's code.
        student_source: Full student implementation source.
    """

    submission_id: str
    student_name: str
    language: str = PYTHON
    functions: dict[str, str] = Field(default_factory=dict)
    instructor_tests: dict[str, str] = Field(default_factory=dict)
    student_tests: dict[str, str] = Field(default_factory=dict)
    student_test_outcome: TestOutcome | None = None
    implementation_outcome: TestOutcome | None = None
    student_source: str = ""
