"""
LLM-based narrative grading using OpenAI.

Reviews the extracted student functions and tests together with the
automatic test results, and writes lecturer-style feedback with structured
scores.
"""

import netrc
import os
from pathlib import Path

from openai import OpenAI

from .config import (
    FUNCTION_SCORE_MAX,
    MAX_SOURCE_CHARS,
    MAX_TOKENS,
    OPENAI_MODEL,
    OVERALL_SCORE_MAX,
    PYTHON,
)
from .errors import ExternalServiceError, describe_error
from .extractor import extract_function, extract_python_function, extract_python_tests, extract_test_block
from .models import AssignmentLayout, GradingContext, ManualGradingResult, TestOutcome


def format_student_name(submission_id: str) -> str:
    """Turn "jane.doe@school.edu" into "Jane Doe"."""
    handle = submission_id.split("@")[0].replace(".", " ").replace("_", " ")
    return " ".join(word[:1].upper() + word[1:] for word in handle.split())


def _read_or_empty(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (FileNotFoundError, UnicodeDecodeError):
        return ""


def build_grading_context(
    submission_dir: Path,
    instructor_dir: Path,
    layout: AssignmentLayout,
    functions_to_check: list[str],
    student_test_outcome: TestOutcome | None = None,
    implementation_outcome: TestOutcome | None = None,
) -> GradingContext:
    """
    Extract the source fragments the LLM grader needs.

    Missing files simply produce empty fragments.

    Args:
        submission_dir: The student's submission directory.
        instructor_dir: Directory holding the instructor's source units.
        layout: Assignment layout.
        functions_to_check: Function names to extract and review.
        student_test_outcome: Student tests vs instructor implementation.
        implementation_outcome: Instructor tests vs student implementation.

    Returns:
        GradingContext for the submission.
    """
    student_code = _read_or_empty(submission_dir / layout.student_implementation)
    student_test_code = _read_or_empty(submission_dir / layout.student_tests)
    instructor_test_code = _read_or_empty(instructor_dir / layout.instructor_tests)

    if layout.language == PYTHON:
        function_extractor, test_extractor = extract_python_function, extract_python_tests
    else:
        function_extractor, test_extractor = extract_function, extract_test_block

    return GradingContext(
        submission_id=submission_dir.name,
        student_name=format_student_name(submission_dir.name),
        language=layout.language,
        functions={name: function_extractor(student_code, name) for name in functions_to_check},
        instructor_tests={name: test_extractor(instructor_test_code, name) for name in functions_to_check},
        student_tests={name: test_extractor(student_test_code, name) for name in functions_to_check},
        student_test_outcome=student_test_outcome,
        implementation_outcome=implementation_outcome,
        student_source=student_code,
    )


class LLMGrader:
    """
    Narrative grader using OpenAI with structured output.

    Any failure while grading produces a zero-scored placeholder result
    instead of an exception.
    """

    def __init__(
        self,
        model: str = OPENAI_MODEL,
        api_key: str | None = None,
        problem_description: str = "",
        client: OpenAI | None = None,
    ) -> None:
        """
        Initialize the LLM grader.

        Args:
            model: OpenAI model to use.
            api_key: OpenAI API key. Falls back to .netrc, then OPENAI_API_KEY.
            problem_description: Assignment description included in every prompt.
            client: Preconfigured OpenAI client, used instead of building one.

        Raises:
            ValueError: If no client is given and no API key can be found.
        """
        self.model = model
        self.problem_description = problem_description

        if client is not None:
            self.client = client
            return

        # Priority: 1. Argument, 2. .netrc (machine OPENAI), 3. Environment variable
        if api_key is None:
            try:
                secrets = netrc.netrc()
                auth = secrets.authenticators("OPENAI")
                if auth:
                    api_key = auth[0]
            except (FileNotFoundError, netrc.NetrcParseError):
                pass

        api_key = api_key or os.environ.get("OPENAI_API_KEY")

        if not api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable, "
                "add machine OPENAI to your .netrc file, or pass api_key parameter."
            )

        self.client = OpenAI(api_key=api_key)

    def grade(self, context: GradingContext) -> ManualGradingResult:
        """
        Grade a submission from its extracted context.

        Args:
            context: Extracted fragments and automatic test results.

        Returns:
            ManualGradingResult, or a zero-scored placeholder on failure.
        """
        try:
            return self._request(self.build_prompt(context))
        except Exception as e:
            print(f"  LLM grading failed for {context.submission_id}: {e}")
            return ManualGradingResult.placeholder(describe_error(e))

    def _request(self, prompt: str) -> ManualGradingResult:
        try:
            completion = self.client.chat.completions.parse(
                model=self.model,
                messages=[
                    {"role": "system", "content": self._get_system_prompt()},
                    {"role": "user", "content": prompt},
                ],
                response_format=ManualGradingResult,
                max_completion_tokens=MAX_TOKENS,
            )
        except Exception as e:
            raise ExternalServiceError(f"OpenAI request failed: {e}") from e

        result = completion.choices[0].message.parsed
        if result is None:
            raise ExternalServiceError("OpenAI returned no parsable grading result")

        return result.model_copy(
            update={
                "function_score": min(result.function_score, FUNCTION_SCORE_MAX),
                "overall_score": min(result.overall_score, OVERALL_SCORE_MAX),
                "error": None,
            }
        )

    def _get_system_prompt(self) -> str:
        return f"""You are a friendly and supportive computer science lecturer who personally knows each student.

Write feedback in a conversational, encouraging tone while being honest about areas for improvement.

GRADING CRITERIA:
1. Correctness: does the implementation do what the problem asks?
2. Code quality: is the code well structured, readable and maintainable?
3. Testing: do the student's own tests cover the important cases?

Score the main function out of {FUNCTION_SCORE_MAX} points and the whole assignment out of {OVERALL_SCORE_MAX} points.
Use a simple greeting like "Hi [Name]". Do not repeat the strengths and weaknesses in the feedback text."""

    def build_prompt(self, context: GradingContext) -> str:
        """
        Build the grading prompt for one submission.

        Args:
            context: Extracted fragments and automatic test results.

        Returns:
            Complete prompt string.
        """
        fence = "python" if context.language == PYTHON else "typescript"

        function_sections = []
        for name, code in context.functions.items():
            body = f"```{fence}\n{code}\n```" if code.strip() else "Not implemented or could not be extracted."
            tests = context.instructor_tests.get(name) or "No tests found"
            function_sections.append(
                f"### {name}\n{body}\n\nINSTRUCTOR TESTS FOR {name}:\n```{fence}\n{tests}\n```"
            )

        student_tests = [
            f"### Student tests for {name}\n```{fence}\n{code}\n```"
            for name, code in context.student_tests.items()
            if code.strip()
        ]

        return f"""
# GRADING TASK for {context.student_name}

## Problem Description
{self.problem_description or "See the instructor tests below."}

## Student's Functions
{chr(10).join(function_sections) if function_sections else "No functions selected for review."}

## Student's Own Tests
{chr(10).join(student_tests) if student_tests else "STUDENT DID NOT IMPLEMENT ANY TESTS FOR THESE FUNCTIONS"}

## Automatic Grading Results
### Instructor tests against the student's implementation:
{self._format_outcome(context.implementation_outcome)}

### Student tests against the reference implementation:
{self._format_outcome(context.student_test_outcome)}

## Full Student Implementation
```{fence}
{context.student_source[:MAX_SOURCE_CHARS] if context.student_source else "NO IMPLEMENTATION SUBMITTED"}
```

## Instructions
Check whether the automatic results are fair. If a function looks implemented but its tests failed,
say so clearly in the feedback. Consider the student's own tests in your evaluation.
"""

    def _format_outcome(self, outcome: TestOutcome | None) -> str:
        if outcome is None:
            return "Not available."

        lines = [f"- Overall: {'Passed' if outcome.overall else 'Failed'}"]
        for test_name, passed in outcome.details.items():
            lines.append(f"  * {test_name}: {'Passed' if passed else 'Failed'}")
        if outcome.warning:
            lines.append(f"- Warning: {outcome.warning}")
        if outcome.errors:
            lines.append(f"- Errors: {outcome.errors[:1000]}")
        return "\n".join(lines)
