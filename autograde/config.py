"""
Configuration constants for the Turtle Autograder.
"""

from pathlib import Path


# Execution configuration
EXECUTION_TIMEOUT_SECONDS: int = 120
SANDBOX_PREFIX: str = "autograde-"

# Supported assignment languages
PYTHON: str = "python"
TYPESCRIPT: str = "typescript"
SUPPORTED_LANGUAGES: list[str] = [PYTHON, TYPESCRIPT]

# File patterns
TEST_REPORT_FILENAME: str = "test_report.xml"
ART_DRIVER_BASENAME: str = "art_driver"
ART_OUTPUT_FILENAME: str = "path.json"
GRADING_REPORT_FILENAME: str = "grading_report.json"
GRADING_CSV_FILENAME: str = "grading_summary.csv"
GALLERY_FILENAME: str = "student_art_gallery.html"

# Directories inside a submissions root that are never submissions
IGNORED_SUBMISSION_DIRS: list[str] = ["__pycache__", "node_modules", "tmp_test", "tmp_art"]

# Pytest configuration (the test file is appended at run time)
PYTEST_ARGS: list[str] = [
    "-m",
    "pytest",
    f"--junitxml={TEST_REPORT_FILENAME}",
    "-p",
    "no:cacheprovider",
    "-q",
    "--tb=short",
]

# Mocha configuration (the test file is inserted at run time)
MOCHA_COMMAND: list[str] = ["npx", "mocha", "-r", "ts-node/register"]
MOCHA_REPORTER_ARGS: list[str] = ["--reporter", "json"]
TS_NODE_COMMAND: list[str] = ["npx", "ts-node"]

# OpenAI configuration
# gpt-4o-mini is the most cost-effective for grading tasks
OPENAI_MODEL: str = "gpt-4o-mini"
MAX_TOKENS: int = 4096
MAX_SOURCE_CHARS: int = 12000

# Default assignment scoring used in the LLM prompt
FUNCTION_SCORE_MAX: int = 10
OVERALL_SCORE_MAX: int = 40

# Default paths (can be overridden via config file)
DEFAULT_OUTPUT_DIR: Path = Path("grading_output")

# Art gallery layout
GALLERY_CANVAS_SIZE: int = 400
GALLERY_COLUMNS: int = 5
GALLERY_LINE_WIDTH: int = 2
