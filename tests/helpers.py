"""Workflow builders and collaborator fakes shared by the test modules."""
from __future__ import annotations

from typing import TYPE_CHECKING

from tdd_agent.adapters.base import RunResult
from tdd_agent.engine import state_machine as sm
from tdd_agent.types import Scenario, Step, StepType, WorkflowState

if TYPE_CHECKING:
    from collections.abc import Iterable


RESET_SCENARIO = Scenario(
    name="Password reset",
    steps=(
        Step(StepType.GIVEN, "a registered user"),
        Step(StepType.WHEN, "they request a reset"),
        Step(StepType.THEN, "they receive an email"),
    ),
)

LOGIN_SCENARIO = Scenario(
    name="Login",
    steps=(
        Step(StepType.GIVEN, "a user with a password"),
        Step(StepType.WHEN, "they sign in"),
    ),
)


def walk(state: WorkflowState, *events: sm.WorkflowEvent) -> WorkflowState:
    """Apply events in order, failing the test on the first rejection."""
    for event in events:
        result = sm.reduce(state, event)
        assert isinstance(result, sm.Success), f"{event!r} rejected: {result.reason}"
        state = result.state
    return state


def implementation_state(*scenarios: Scenario) -> WorkflowState:
    """Drive a fresh state through requirements/research/planning."""
    return walk(
        WorkflowState.initial(),
        sm.FeatureSubmitted("Password reset by email"),
        sm.ScenariosGenerated(scenarios or (RESET_SCENARIO,)),
        sm.ScenariosApproved(),
        sm.ResearchCompleted("Reviewed the mailer API"),
        sm.PlanProposed("Reset service + mailer port"),
        sm.PlanApproved(),
    )


# ─── Collaborator fakes ───

class FakeLlm:
    """Returns queued replies in order and records every prompt."""

    def __init__(self, replies: Iterable[str | Exception] = ()):
        self.replies = list(replies)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeRunner:
    """Reports queued pass/fail outcomes, one per run."""

    def __init__(self, outcomes: Iterable[bool | Exception] = ()):
        self.outcomes = list(outcomes)
        self.runs = 0

    def run_tests(self) -> RunResult:
        self.runs += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return RunResult(outcome, "ok" if outcome else "1 failed", None if outcome else "Some tests failed")


class FakeInserter:
    def __init__(self, accept_test: bool = True, accept_impl: bool = True):
        self.accept_test = accept_test
        self.accept_impl = accept_impl
        self.tests: list[str] = []
        self.impls: list[str] = []

    def insert_test(self, code: str) -> bool:
        self.tests.append(code)
        return self.accept_test

    def insert_implementation(self, code: str) -> bool:
        self.impls.append(code)
        return self.accept_impl
