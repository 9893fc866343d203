"""Single-owner holder of the workflow state for one session."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tdd_agent.engine.orchestrator import StepResult
from tdd_agent.engine.state_machine import (
    ImplementationGenerated,
    Rejected,
    StepCompleted,
    Success,
    TestGenerated,
    TransitionResult,
    WorkflowEvent,
    reduce,
)
from tdd_agent.types import WorkflowPhase, WorkflowState

if TYPE_CHECKING:
    from tdd_agent.engine.orchestrator import TddOrchestrator

logger = logging.getLogger(__name__)


class WorkflowSession:
    def __init__(self, state: WorkflowState | None = None):
        self.state = state or WorkflowState.initial()

    def dispatch(self, event: WorkflowEvent) -> TransitionResult:
        result = reduce(self.state, event)
        if isinstance(result, Success):
            self.state = result.state
        else:
            logger.info("%s rejected: %s", type(event).__name__, result.reason)
        return result

    def run_current_step(self, orchestrator: TddOrchestrator) -> StepResult:
        """Run one red/green cycle for the current step and record it.

        The state only changes when the cycle succeeds and all three
        bookkeeping transitions are accepted.
        """
        if self.state.phase is not WorkflowPhase.IMPLEMENTATION:
            return StepResult(error="Implementation has not started")
        step = self.state.implementation.current_step()
        if step is None:
            return StepResult(error="No current implementation step")

        result = orchestrator.execute_step(step.describe())
        if not result.success:
            return result

        state = self.state
        for event in (
            TestGenerated(result.test_code or ""),
            ImplementationGenerated(result.impl_code or ""),
            StepCompleted(),
        ):
            outcome = reduce(state, event)
            if isinstance(outcome, Rejected):
                return StepResult(result.test_code, result.impl_code, False, outcome.reason.value)
            state = outcome.state
        self.state = state
        return result
