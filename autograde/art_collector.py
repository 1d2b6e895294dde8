"""
Personal art collection.

Runs a student's personal-art entry point against a fresh instance of the
instructor's drawing primitive in a separate process, and reads back the
path segments it drew.
"""

import json
import sys
from pathlib import Path
from string import Template

from pydantic import ValidationError

from .config import (
    ART_DRIVER_BASENAME,
    ART_OUTPUT_FILENAME,
    EXECUTION_TIMEOUT_SECONDS,
    PYTHON,
    TS_NODE_COMMAND,
    TYPESCRIPT,
)
from .errors import MalformedOutputError, MissingFileError, SubprocessFailure, describe_error
from .import_rewriter import ImportRewriter
from .models import ArtifactResult, AssignmentLayout, Segment
from .sandbox import Sandbox

PYTHON_DRIVER = Template('''\
import json
import sys
import traceback

from $primitive_module import $primitive_class
import $implementation_module as submission


def _point(value):
    if isinstance(value, dict):
        return {"x": value["x"], "y": value["y"]}
    if isinstance(value, (tuple, list)):
        return {"x": value[0], "y": value[1]}
    return {"x": value.x, "y": value.y}


def _segment(value):
    if isinstance(value, dict):
        start, end, color = value["start"], value["end"], value.get("color", "black")
    elif isinstance(value, (tuple, list)):
        start, end = value[0], value[1]
        color = value[2] if len(value) > 2 else "black"
    else:
        start, end, color = value.start, value.end, getattr(value, "color", "black")
    return {"start": _point(start), "end": _point(end), "color": str(color)}


def main():
    turtle = $primitive_class()
    try:
        submission.$art_function(turtle)
        segments = [_segment(s) for s in turtle.$path_method()]
    except Exception:
        print("Error generating art:", file=sys.stderr)
        traceback.print_exc()
        return 1

    with open("$output_file", "w", encoding="utf-8") as f:
        json.dump(segments, f)
    print("Art generation successful")
    return 0


if __name__ == "__main__":
    sys.exit(main())
''')

TYPESCRIPT_DRIVER = Template('''\
import { $primitive_class } from "./$primitive_module";
import { $art_function } from "./$implementation_module";
import * as fs from "fs";

(function () {
  try {
    const turtle = new $primitive_class();
    $art_function(turtle);
    fs.writeFileSync("$output_file", JSON.stringify(turtle.$path_method()));
    console.log("Art generation successful");
  } catch (error) {
    console.error("Error generating art:", error);
    process.exit(1);
  }
})();
''')


def render_driver(layout: AssignmentLayout) -> tuple[str, str]:
    """
    Generate the driver program for a layout.

    Args:
        layout: Assignment layout naming the primitive, entry point and accessor.

    Returns:
        (driver file name, driver source).
    """
    if layout.language == PYTHON:
        template, suffix = PYTHON_DRIVER, ".py"
    elif layout.language == TYPESCRIPT:
        template, suffix = TYPESCRIPT_DRIVER, ".ts"
    else:
        raise ValueError(f"Unsupported assignment language: {layout.language!r}")

    source = template.substitute(
        primitive_module=Path(layout.primitive_name).stem,
        primitive_class=layout.primitive_class,
        implementation_module=Path(layout.implementation_name).stem,
        art_function=layout.art_function,
        path_method=layout.path_method,
        output_file=ART_OUTPUT_FILENAME,
    )
    return ART_DRIVER_BASENAME + suffix, source


def load_segments(path: Path) -> list[Segment]:
    """
    Read the segment file written by a driver.

    Raises:
        MissingFileError: If the driver did not write the file.
        MalformedOutputError: If the file is not a JSON list of segments.
    """
    if not path.exists():
        raise MissingFileError(f"Art driver did not write {path.name}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Could not parse {path.name}: {e}") from e

    if not isinstance(data, list):
        raise MalformedOutputError(f"{path.name} must contain a list of segments")

    try:
        return [Segment.model_validate(item) for item in data]
    except ValidationError as e:
        raise MalformedOutputError(f"Invalid segment in {path.name}: {e}") from e


class ArtifactCollector:
    """
    Collects personal art from student implementations.

    Each call runs in its own sandbox and its own process, so a submission
    always starts from a fresh drawing-primitive instance.
    """

    def __init__(
        self,
        instructor_dir: Path,
        layout: AssignmentLayout,
        timeout_seconds: int = EXECUTION_TIMEOUT_SECONDS,
        work_dir: Path | None = None,
        python_executable: str | None = None,
        verbose: bool = False,
    ) -> None:
        """
        Initialize the collector.

        Args:
            instructor_dir: Directory holding the instructor's primitive module.
            layout: Assignment layout.
            timeout_seconds: Maximum run time of the driver process.
            work_dir: Parent directory for sandboxes. Defaults to the system temp dir.
            python_executable: Interpreter for Python drivers. Defaults to the current one.
            verbose: Print driver commands.
        """
        self.instructor_dir = instructor_dir
        self.layout = layout
        self.timeout_seconds = timeout_seconds
        self.work_dir = work_dir
        self.python_executable = python_executable or sys.executable
        self.verbose = verbose
        self.rewriter = ImportRewriter(layout.module_mapping(), layout.language)

    def driver_command(self, driver_name: str) -> list[str]:
        if self.layout.language == PYTHON:
            return [self.python_executable, driver_name]
        return [*TS_NODE_COMMAND, driver_name]

    def collect_art(self, submission_dir: Path) -> ArtifactResult:
        """
        Run the student's personal-art function and collect its path.

        Never raises: failures come back as an empty result with `error` set.

        Args:
            submission_dir: The student's submission directory.

        Returns:
            ArtifactResult with the drawn segments, or an error.
        """
        submission_id = submission_dir.name
        try:
            with Sandbox(submission_id, "art", base_dir=self.work_dir) as sandbox:
                return self._collect_in_sandbox(sandbox, submission_dir)
        except Exception as e:
            print(f"  Error collecting personal art for {submission_id}: {e}")
            return ArtifactResult(segments=[], error=describe_error(e))

    def _collect_in_sandbox(self, sandbox: Sandbox, submission_dir: Path) -> ArtifactResult:
        layout = self.layout
        for source, name in [
            (self.instructor_dir / layout.instructor_primitive, layout.primitive_name),
            (submission_dir / layout.student_implementation, layout.implementation_name),
        ]:
            self.rewriter.rewrite_file(sandbox.copy_in(source, name))

        driver_name, driver_source = render_driver(layout)
        sandbox.write_text(driver_name, driver_source)

        command = self.driver_command(driver_name)
        if self.verbose:
            print(f"  Executing: {' '.join(command)}")

        result = sandbox.run(command, timeout_seconds=self.timeout_seconds)
        if result.timed_out:
            raise SubprocessFailure(
                f"Art driver timed out after {self.timeout_seconds}s", output=result.output
            )
        if result.exit_code != 0:
            raise SubprocessFailure(
                f"Art driver exited with code {result.exit_code}",
                exit_code=result.exit_code,
                output=result.stderr or result.stdout,
            )

        segments = load_segments(sandbox.path / ART_OUTPUT_FILENAME)
        return ArtifactResult(segments=segments)
