"""Interactive collaborators: the user confirms insertions and test outcomes."""
from __future__ import annotations

from typing import TYPE_CHECKING

from tdd_agent.adapters.base import RunResult

if TYPE_CHECKING:
    from collections.abc import Callable

RULE = "─" * 39


def _confirmed(answer: str | None) -> bool:
    return (answer or "").strip().lower() == "y"


class ConsoleCodeInserter:
    """Shows generated code and asks before it is considered inserted."""

    def __init__(self, ask: Callable[[str], str] = input, say: Callable[[str], None] = print):
        self._ask = ask
        self._say = say

    def insert_test(self, code: str) -> bool:
        return self._confirm("Generated test code:", code, "Insert this test? (y/n): ")

    def insert_implementation(self, code: str) -> bool:
        return self._confirm("Generated implementation:", code, "Insert this implementation? (y/n): ")

    def _confirm(self, title: str, code: str, question: str) -> bool:
        self._say(title)
        self._say(RULE)
        self._say(code)
        self._say(RULE)
        return _confirmed(self._ask(question))


class ConsoleCodeRunner:
    """The user runs the tests and reports whether they passed."""

    def __init__(self, ask: Callable[[str], str] = input, say: Callable[[str], None] = print):
        self._ask = ask
        self._say = say

    def run_tests(self) -> RunResult:
        self._say("Running tests...")
        passed = _confirmed(self._ask("Did tests pass? (y/n): "))
        return RunResult(
            success=passed,
            output="Tests executed",
            error=None if passed else "Some tests failed",
        )
