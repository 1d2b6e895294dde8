"""
Configuration loader for the Turtle Autograder.

Handles parsing and validation of YAML configuration files.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .config import DEFAULT_OUTPUT_DIR, EXECUTION_TIMEOUT_SECONDS, PYTHON, SUPPORTED_LANGUAGES
from .models import AssignmentLayout


class LayoutOverrides(BaseModel):
    """
    Optional overrides of the language's default assignment layout.
    """
    instructor_primitive: Optional[str] = None
    instructor_implementation: Optional[str] = None
    instructor_tests: Optional[str] = None
    student_implementation: Optional[str] = None
    student_tests: Optional[str] = None
    primitive_name: Optional[str] = None
    implementation_name: Optional[str] = None
    tests_name: Optional[str] = None
    primitive_class: Optional[str] = None
    art_function: Optional[str] = None
    path_method: Optional[str] = None


class GraderConfig(BaseModel):
    """
    Configuration model for the grader.
    """
    submissions_dir: Path = Field(..., description="Path to directory containing student submissions")
    instructor_dir: Path = Field(..., description="Path to the instructor's primitive, solution and tests")
    output_dir: Path = Field(DEFAULT_OUTPUT_DIR, description="Path to save the report and gallery")
    language: str = Field(PYTHON, description="Assignment language: python or typescript")
    layout: LayoutOverrides = Field(default_factory=LayoutOverrides, description="Layout overrides")
    functions_to_check: list[str] = Field(default_factory=list, description="Functions reviewed by the LLM")
    problem_description: str = Field("", description="Assignment description for the LLM prompt")

    # Flags can also be configured
    skip_llm: bool = Field(False, description="Skip LLM grading")
    timeout_seconds: int = Field(EXECUTION_TIMEOUT_SECONDS, gt=0, description="Timeout per child process")
    max_workers: int = Field(1, ge=1, description="Submissions graded in parallel")
    open_gallery: bool = Field(False, description="Open the art gallery in a browser when done")
    verbose: bool = Field(False, description="Enable verbose output")

    @field_validator("language")
    @classmethod
    def _check_language(cls, value: str) -> str:
        value = value.lower()
        if value not in SUPPORTED_LANGUAGES:
            raise ValueError(f"language must be one of {SUPPORTED_LANGUAGES}, got {value!r}")
        return value

    def assignment_layout(self) -> AssignmentLayout:
        return AssignmentLayout.for_language(self.language, **self.layout.model_dump())


def load_config(config_path: Path) -> GraderConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        GraderConfig object with loaded values.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValueError: If the file is empty.
        ValidationError: If config data is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        raise ValueError(f"Configuration file is empty: {config_path}")

    # Resolve relative paths relative to the config file location
    config_dir = config_path.parent
    for path_field in ["submissions_dir", "instructor_dir", "output_dir"]:
        if path_field in config_data and config_data[path_field]:
            path = Path(config_data[path_field])
            if not path.is_absolute():
                config_data[path_field] = config_dir / path

    return GraderConfig(**config_data)
