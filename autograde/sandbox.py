"""
Ephemeral sandbox directories and scoped child-process execution.

A sandbox is a fresh temporary directory owned by exactly one pipeline step.
It is removed when the `with` block exits, whether the step succeeded or
raised.
"""

import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .config import EXECUTION_TIMEOUT_SECONDS, SANDBOX_PREFIX
from .errors import MissingFileError


@dataclass
class ProcessResult:
    """Captured result of a child process run inside a sandbox."""

    command: list[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class Sandbox:
    """
    Temporary directory scoped to a single grading step.

    Usage:
        with Sandbox("alice", "impl", base_dir=work_dir) as sandbox:
            sandbox.copy_in(source, "turtlesoup.py")
            result = sandbox.run([...])
    """

    def __init__(self, owner: str, step: str, base_dir: Path | None = None) -> None:
        """
        Args:
            owner: Submission identifier, used in the directory name.
            step: Pipeline step name, used in the directory name.
            base_dir: Parent directory for the sandbox. Defaults to the system temp dir.
        """
        self.owner = owner
        self.step = step
        self.base_dir = base_dir
        self.path: Path | None = None

    def __enter__(self) -> "Sandbox":
        if self.base_dir is not None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        safe_owner = "".join(c if c.isalnum() or c in "-_." else "_" for c in self.owner)
        self.path = Path(
            tempfile.mkdtemp(
                prefix=f"{SANDBOX_PREFIX}{safe_owner}-{self.step}-",
                dir=str(self.base_dir) if self.base_dir is not None else None,
            )
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        """Remove the sandbox directory. Safe to call more than once."""
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)
        self.path = None

    def _require_path(self) -> Path:
        if self.path is None:
            raise RuntimeError("Sandbox is not active")
        return self.path

    def copy_in(self, source: Path, name: str) -> Path:
        """
        Copy a source unit into the sandbox under a flat name.

        Args:
            source: File to copy.
            name: File name inside the sandbox.

        Returns:
            Path of the copy.

        Raises:
            MissingFileError: If the source file does not exist.
        """
        if not source.is_file():
            raise MissingFileError(f"Required file not found: {source}")
        destination = self._require_path() / name
        shutil.copyfile(source, destination)
        return destination

    def write_text(self, name: str, content: str) -> Path:
        destination = self._require_path() / name
        destination.write_text(content, encoding="utf-8")
        return destination

    def run(
        self,
        command: list[str],
        timeout_seconds: int = EXECUTION_TIMEOUT_SECONDS,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        """Run a command with the sandbox as working directory."""
        return run_process(command, cwd=self._require_path(), timeout_seconds=timeout_seconds, env=env)


def sandbox_env(sandbox_path: Path) -> dict[str, str]:
    """
    Environment for child processes: the sandbox first on PYTHONPATH.

    Pytest options inherited from a surrounding test session are dropped.
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(p for p in [str(sandbox_path), env.get("PYTHONPATH", "")] if p)
    env["PYTHONDONTWRITEBYTECODE"] = "1"
    env.pop("PYTEST_ADDOPTS", None)
    return env


def run_process(
    command: list[str],
    cwd: Path,
    timeout_seconds: int = EXECUTION_TIMEOUT_SECONDS,
    env: dict[str, str] | None = None,
) -> ProcessResult:
    """
    Run a child process and wait for it, capturing output uniformly.

    A timeout does not raise; it is reported through `timed_out` with
    whatever output was produced before the process was killed.

    Args:
        command: Command and arguments.
        cwd: Working directory.
        timeout_seconds: Maximum run time.
        env: Environment, defaults to `sandbox_env(cwd)`.

    Returns:
        ProcessResult with exit code, stdout and stderr.

    Raises:
        FileNotFoundError: If the executable does not exist.
    """
    try:
        process = subprocess.run(
            command,
            cwd=str(cwd),
            env=env if env is not None else sandbox_env(cwd),
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired as e:
        return ProcessResult(
            command=command,
            exit_code=-1,
            stdout=_decode(e.stdout),
            stderr=_decode(e.stderr),
            timed_out=True,
        )

    return ProcessResult(
        command=command,
        exit_code=process.returncode,
        stdout=process.stdout or "",
        stderr=process.stderr or "",
    )


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
