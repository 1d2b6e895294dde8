"""
Error taxonomy for the grading pipeline.

Every sandboxed step raises these internally and converts them into the
`errors` / `error` text of its own result value. None of them is allowed to
reach the orchestrator.
"""


class GradingError(Exception):
    """Base class for failures inside a single grading step."""

    kind: str = "GradingError"

    def describe(self) -> str:
        """Return the diagnostic text stored on a result value."""
        return f"{self.kind}: {self}"


class MissingFileError(GradingError):
    """A required source unit or output file does not exist."""

    kind = "MissingFile"


class SubprocessFailure(GradingError):
    """A child process crashed, timed out, or exited non-zero without usable output."""

    kind = "SubprocessFailure"

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output

    def describe(self) -> str:
        text = f"{self.kind}: {self}"
        if self.output:
            text += f"\n{self.output[-2000:]}"
        return text


class MalformedOutputError(GradingError):
    """Structured test or artifact output could not be parsed."""

    kind = "MalformedOutput"


class ExternalServiceError(GradingError):
    """The LLM grading service was unavailable or returned garbage."""

    kind = "ExternalServiceFailure"


def describe_error(exc: Exception) -> str:
    """
    Format any exception as diagnostic text.

    Args:
        exc: The exception caught at a step boundary.

    Returns:
        "<Kind>: <message>" text.
    """
    if isinstance(exc, GradingError):
        return exc.describe()
    return f"{type(exc).__name__}: {exc}"
