"""Collaborator contracts consumed by the TDD orchestrator."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class RunResult:
    success: bool
    output: str
    error: str | None = None


class LlmAdapter(Protocol):
    def generate(self, prompt: str) -> str:
        """Return generated code for *prompt*; raise on provider/process failure."""
        ...


class CodeRunner(Protocol):
    def run_tests(self) -> RunResult: ...


class CodeInserter(Protocol):
    def insert_test(self, code: str) -> bool: ...

    def insert_implementation(self, code: str) -> bool: ...


def verify_tests_fail(runner: CodeRunner) -> bool:
    """True when one test run fails (the red half of the cycle)."""
    return not runner.run_tests().success


def verify_tests_pass(runner: CodeRunner) -> bool:
    return runner.run_tests().success
