import json

import pytest

from autograde.config import TEST_REPORT_FILENAME
from autograde.errors import MalformedOutputError, SubprocessFailure
from autograde.frameworks import (
    MochaFramework,
    PytestFramework,
    framework_for,
    junit_collection_errors,
    parse_junit_xml,
    parse_mocha_json,
)
from autograde.sandbox import ProcessResult

JUNIT_XML = """<?xml version="1.0" encoding="utf-8"?>
<testsuites>
  <testsuite name="pytest" errors="1" failures="1" skipped="1" tests="5">
    <testcase classname="test_turtlesoup" name="test_draw_square" time="0.001"/>
    <testcase classname="test_turtlesoup" name="test_double_loop" time="0.001">
      <failure message="AttributeError">AttributeError: no double_loop</failure>
    </testcase>
    <testcase classname="test_turtlesoup.TestArt" name="test_fixture" time="0.001">
      <error message="fixture failed">boom</error>
    </testcase>
    <testcase classname="test_turtlesoup" name="test_later" time="0.0">
      <skipped message="todo"/>
    </testcase>
    <testcase classname="" name="test_module" time="0.0"/>
  </testsuite>
</testsuites>
"""


def test_parse_junit_xml(tmp_path):
    xml_path = tmp_path / TEST_REPORT_FILENAME
    xml_path.write_text(JUNIT_XML, encoding="utf-8")

    details = parse_junit_xml(xml_path)

    assert details == {
        "test_turtlesoup.test_draw_square": True,
        "test_turtlesoup.test_double_loop": False,
        "test_turtlesoup.TestArt.test_fixture": False,
        "test_module": True,
    }


def test_parse_junit_xml_malformed(tmp_path):
    xml_path = tmp_path / TEST_REPORT_FILENAME
    xml_path.write_text("<testsuites><testcase", encoding="utf-8")

    with pytest.raises(MalformedOutputError):
        parse_junit_xml(xml_path)


COLLECTION_ERROR_XML = """<?xml version="1.0" encoding="utf-8"?>
<testsuites>
  <testsuite name="pytest" errors="1" failures="0" skipped="0" tests="1">
    <testcase classname="" name="test_turtlesoup" time="0.000">
      <error message="collection failure">ImportError while importing test module 'test_turtlesoup.py'.
E   ModuleNotFoundError: No module named 'src'</error>
    </testcase>
  </testsuite>
</testsuites>
"""


def test_collection_error_keeps_its_diagnostic(tmp_path):
    xml_path = tmp_path / TEST_REPORT_FILENAME
    xml_path.write_text(COLLECTION_ERROR_XML, encoding="utf-8")
    result = ProcessResult(command=["pytest"], exit_code=2)
    framework = PytestFramework()

    assert framework.parse_results(tmp_path, result) == {"test_turtlesoup": False}
    failure = framework.collection_failure(tmp_path, result)

    assert isinstance(failure, SubprocessFailure)
    assert failure.exit_code == 2
    assert "ModuleNotFoundError: No module named 'src'" in failure.describe()


def test_no_collection_failure_for_ordinary_results(tmp_path):
    xml_path = tmp_path / TEST_REPORT_FILENAME
    xml_path.write_text(JUNIT_XML, encoding="utf-8")

    assert junit_collection_errors(xml_path) == []
    assert PytestFramework().collection_failure(tmp_path, ProcessResult(command=["pytest"], exit_code=1)) is None
    assert MochaFramework().collection_failure(tmp_path, ProcessResult(command=["npx"], exit_code=1)) is None


def test_pytest_without_report_is_subprocess_failure(tmp_path):
    result = ProcessResult(command=["pytest"], exit_code=4, stderr="usage error")

    with pytest.raises(SubprocessFailure) as info:
        PytestFramework().parse_results(tmp_path, result)

    assert info.value.exit_code == 4
    assert "usage error" in info.value.describe()


def test_pytest_timeout_without_report(tmp_path):
    result = ProcessResult(command=["pytest"], exit_code=-1, timed_out=True)

    with pytest.raises(SubprocessFailure, match="timed out"):
        PytestFramework().parse_results(tmp_path, result)


def test_pytest_command_targets_single_file():
    command = PytestFramework(python_executable="python3").command("test_turtlesoup.py")

    assert command[:3] == ["python3", "-m", "pytest"]
    assert command[-1] == "test_turtlesoup.py"
    assert f"--junitxml={TEST_REPORT_FILENAME}" in command


MOCHA_REPORT = {
    "stats": {"tests": 3, "passes": 2, "failures": 1},
    "passes": [
        {"title": "draws four sides", "fullTitle": "drawSquare() draws four sides"},
        {"title": "is zero", "fullTitle": "chordLength() is zero"},
    ],
    "failures": [
        {"title": "two triangles", "fullTitle": "doubleLoop() two triangles", "err": {}},
    ],
}


def test_parse_mocha_json_with_leading_console_output():
    stdout = "debug: drawing\n" + json.dumps(MOCHA_REPORT, indent=2)

    details = parse_mocha_json(stdout)

    assert details == {
        "drawSquare() draws four sides": True,
        "chordLength() is zero": True,
        "doubleLoop() two triangles": False,
    }


def test_parse_mocha_json_malformed():
    with pytest.raises(MalformedOutputError):
        parse_mocha_json("TSError: Unable to compile TypeScript")
    with pytest.raises(MalformedOutputError):
        parse_mocha_json('{"stats": {}}')


def test_mocha_failures_with_report_still_parse(tmp_path):
    result = ProcessResult(command=["npx"], exit_code=1, stdout=json.dumps(MOCHA_REPORT))

    details = MochaFramework().parse_results(tmp_path, result)

    assert details["doubleLoop() two triangles"] is False


def test_mocha_empty_output_is_subprocess_failure(tmp_path):
    result = ProcessResult(command=["npx"], exit_code=1, stderr="Cannot find module")

    with pytest.raises(SubprocessFailure):
        MochaFramework().parse_results(tmp_path, result)


def test_mocha_command():
    command = MochaFramework().command("turtlesoupTest.ts")
    assert command == ["npx", "mocha", "-r", "ts-node/register", "turtlesoupTest.ts", "--reporter", "json"]


def test_framework_for_language():
    assert isinstance(framework_for("python"), PytestFramework)
    assert isinstance(framework_for("typescript"), MochaFramework)
    with pytest.raises(ValueError):
        framework_for("java")
