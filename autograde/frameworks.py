"""
Test framework adapters.

Each adapter knows how to invoke its framework on a single test module inside
a sandbox and how to turn the framework's structured output into a mapping
of fully qualified test name -> passed.
"""

import json
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

from .config import (
    MOCHA_COMMAND,
    MOCHA_REPORTER_ARGS,
    PYTEST_ARGS,
    PYTHON,
    TEST_REPORT_FILENAME,
    TYPESCRIPT,
)
from .errors import GradingError, MalformedOutputError, SubprocessFailure
from .sandbox import ProcessResult


class TestFramework:
    """Interface shared by the framework adapters."""

    __test__ = False
    name: str = "framework"

    def command(self, tests_name: str) -> list[str]:
        raise NotImplementedError

    def parse_results(self, sandbox_path: Path, result: ProcessResult) -> dict[str, bool]:
        raise NotImplementedError

    def collection_failure(self, sandbox_path: Path, result: ProcessResult) -> GradingError | None:
        """Return the error that kept the test module from loading, if any."""
        return None

    def _no_output(self, result: ProcessResult) -> SubprocessFailure:
        if result.timed_out:
            return SubprocessFailure(f"{self.name} timed out", output=result.output)
        return SubprocessFailure(
            f"{self.name} exited with code {result.exit_code} without structured output",
            exit_code=result.exit_code,
            output=result.output,
        )


class PytestFramework(TestFramework):
    """Runs pytest with `--junitxml` and parses the JUnit XML report."""

    name = "pytest"

    def __init__(self, python_executable: str | None = None) -> None:
        """
        Args:
            python_executable: Interpreter used to run pytest. Defaults to the current one.
        """
        self.python_executable = python_executable or sys.executable

    def command(self, tests_name: str) -> list[str]:
        return [self.python_executable, *PYTEST_ARGS, tests_name]

    def parse_results(self, sandbox_path: Path, result: ProcessResult) -> dict[str, bool]:
        xml_path = sandbox_path / TEST_REPORT_FILENAME
        if not xml_path.exists():
            raise self._no_output(result)
        return parse_junit_xml(xml_path)

    def collection_failure(self, sandbox_path: Path, result: ProcessResult) -> GradingError | None:
        xml_path = sandbox_path / TEST_REPORT_FILENAME
        if not xml_path.exists():
            return None
        messages = junit_collection_errors(xml_path)
        if not messages:
            return None
        return SubprocessFailure(
            f"{self.name} could not collect the test module",
            exit_code=result.exit_code,
            output="\n".join(messages),
        )


def _junit_root(xml_path: Path) -> ET.Element:
    try:
        return ET.parse(xml_path).getroot()
    except ET.ParseError as e:
        raise MalformedOutputError(f"Could not parse {xml_path.name}: {e}") from e


def junit_collection_errors(xml_path: Path) -> list[str]:
    """
    Collect the diagnostics of module-level collection errors.

    pytest reports a module that fails to import as a testcase with an empty
    classname holding an `<error message="collection failure">` element whose
    text is the traceback.

    Args:
        xml_path: Path to the JUnit XML report.

    Returns:
        One diagnostic per failed module, empty when collection succeeded.
    """
    messages = []
    for testcase in _junit_root(xml_path).iter("testcase"):
        if testcase.get("classname"):
            continue
        error = testcase.find("error")
        if error is None:
            continue
        text = (error.text or "").strip()
        messages.append(text or error.get("message", "collection failure"))
    return messages


def parse_junit_xml(xml_path: Path) -> dict[str, bool]:
    """
    Parse pytest JUnit XML output.

    Skipped tests are left out. Collection errors show up as a failing
    entry named after the test module.

    Args:
        xml_path: Path to the JUnit XML report.

    Returns:
        Fully qualified test name -> passed.

    Raises:
        MalformedOutputError: If the report is not valid XML.
    """
    details: dict[str, bool] = {}
    for testcase in _junit_root(xml_path).iter("testcase"):
        name = testcase.get("name", "unknown")
        classname = testcase.get("classname", "")
        full_name = f"{classname}.{name}" if classname else name

        if testcase.find("skipped") is not None:
            continue

        failed = testcase.find("failure") is not None or testcase.find("error") is not None
        # A test can fail in setup and again in teardown; any failure sticks
        details[full_name] = details.get(full_name, True) and not failed

    return details


class MochaFramework(TestFramework):
    """Runs mocha through ts-node with the JSON reporter."""

    name = "mocha"

    def command(self, tests_name: str) -> list[str]:
        return [*MOCHA_COMMAND, tests_name, *MOCHA_REPORTER_ARGS]

    def parse_results(self, sandbox_path: Path, result: ProcessResult) -> dict[str, bool]:
        if not result.stdout.strip():
            raise self._no_output(result)
        return parse_mocha_json(result.stdout)


def parse_mocha_json(stdout: str) -> dict[str, bool]:
    """
    Parse the output of mocha's JSON reporter.

    `console.log` output from the tests may precede the JSON document, so
    parsing starts at the reporter's opening brace.

    Args:
        stdout: Captured standard output of mocha.

    Returns:
        Test `fullTitle` -> passed.

    Raises:
        MalformedOutputError: If no JSON report can be decoded.
    """
    start = stdout.find('{\n  "stats"')
    if start == -1:
        start = stdout.find("{")
    if start == -1:
        raise MalformedOutputError("mocha output does not contain a JSON report")

    try:
        report = json.loads(stdout[start:])
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Could not parse mocha JSON report: {e}") from e

    if not isinstance(report, dict) or "passes" not in report or "failures" not in report:
        raise MalformedOutputError("mocha JSON report is missing passes/failures")

    details: dict[str, bool] = {}
    for test in report["passes"]:
        details[test.get("fullTitle", test.get("title", "unknown"))] = True
    for test in report["failures"]:
        details[test.get("fullTitle", test.get("title", "unknown"))] = False
    return details


def framework_for(language: str) -> TestFramework:
    """Return the default framework adapter for an assignment language."""
    if language == PYTHON:
        return PytestFramework()
    if language == TYPESCRIPT:
        return MochaFramework()
    raise ValueError(f"Unsupported assignment language: {language!r}")
