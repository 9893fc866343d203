"""Run the project's test command as a subprocess."""
from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from tdd_agent.adapters.base import RunResult

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)


class CommandCodeRunner:
    def __init__(
        self,
        command: Sequence[str] = ("pytest", "-q"),
        cwd: str | Path | None = None,
        timeout: float = 60.0,
    ):
        if not command:
            raise ValueError("Test command must not be empty")
        self.command = list(command)
        self.cwd = cwd
        self.timeout = timeout

    def run_tests(self) -> RunResult:
        logger.info("Executing test command: %s", " ".join(self.command))
        try:
            proc = subprocess.run(
                self.command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error("Test execution timed out after %ss", self.timeout)
            return RunResult(False, "", f"Test execution timeout ({self.timeout:g}s exceeded)")
        except OSError as e:
            logger.error("Could not start test command: %s", e)
            return RunResult(False, "", str(e))

        output = proc.stdout + proc.stderr
        logger.info("Test command exited with %s", proc.returncode)
        if proc.returncode != 0:
            return RunResult(False, output, f"Tests failed (exit code {proc.returncode})")
        return RunResult(True, output)
