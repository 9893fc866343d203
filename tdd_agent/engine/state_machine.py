"""Phase/step workflow reducer — pure ``(state, event) -> result``.

Phases only move forward:

    REQUIREMENTS → RESEARCH → PLANNING → IMPLEMENTATION

Inside IMPLEMENTATION each queued step walks

    READY_FOR_TEST → TEST_GENERATED → IMPLEMENTATION_GENERATED → (next step)

Guards are checked top to bottom; the first failing guard decides the
rejection reason.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING, assert_never

from tdd_agent.types import (
    ImplementationStepStatus,
    Scenario,
    Step,
    WorkflowPhase,
    WorkflowState,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

# ─── Events ───

@dataclass(frozen=True)
class FeatureSubmitted:
    description: str
    additional_requirements: str | None = None


@dataclass(frozen=True)
class ScenariosGenerated:
    scenarios: tuple[Scenario, ...]


@dataclass(frozen=True)
class ScenariosApproved:
    pass


@dataclass(frozen=True)
class ResearchCompleted:
    summary: str


@dataclass(frozen=True)
class PlanProposed:
    plan: str


@dataclass(frozen=True)
class PlanApproved:
    pass


@dataclass(frozen=True)
class TestGenerated:
    code: str


@dataclass(frozen=True)
class ImplementationGenerated:
    code: str


@dataclass(frozen=True)
class StepCompleted:
    pass


WorkflowEvent = (
    FeatureSubmitted
    | ScenariosGenerated
    | ScenariosApproved
    | ResearchCompleted
    | PlanProposed
    | PlanApproved
    | TestGenerated
    | ImplementationGenerated
    | StepCompleted
)

# ─── Results ───

class RejectionReason(StrEnum):
    FEATURE_SUBMISSION_REQUIRES_REQUIREMENTS_PHASE = "Feature submission only allowed in requirements phase"
    REQUIREMENTS_LOCKED = "Requirements are locked"
    SCENARIO_GENERATION_REQUIRES_REQUIREMENTS_PHASE = "Scenario generation only allowed in requirements phase"
    SCENARIO_APPROVAL_REQUIRES_REQUIREMENTS_PHASE = "Scenario approval only allowed in requirements phase"
    CANNOT_APPROVE_WITHOUT_SCENARIOS = "Cannot approve without scenarios"
    RESEARCH_COMPLETION_REQUIRES_RESEARCH_PHASE = "Research completion only allowed in research phase"
    PLAN_PROPOSAL_REQUIRES_PLANNING_PHASE = "Plan proposals only allowed in planning phase"
    PLAN_APPROVAL_REQUIRES_PLANNING_PHASE = "Plan approval only allowed in planning phase"
    CANNOT_APPROVE_EMPTY_PLAN = "Cannot approve an empty plan"
    CANNOT_START_IMPLEMENTATION_WITHOUT_SCENARIOS = "Cannot start implementation without scenarios"
    TEST_GENERATION_REQUIRES_IMPLEMENTATION_PHASE = "Test generation only allowed in implementation phase"
    NO_CURRENT_IMPLEMENTATION_STEP_AVAILABLE = "No current implementation step available"
    CANNOT_GENERATE_TEST_FOR_CURRENT_STATE = "Cannot generate test for current step in the current state"
    GENERATED_TEST_CODE_CANNOT_BE_EMPTY = "Generated test code cannot be empty"
    IMPLEMENTATION_GENERATION_REQUIRES_IMPLEMENTATION_PHASE = (
        "Implementation generation only allowed in implementation phase"
    )
    GENERATE_TEST_BEFORE_IMPLEMENTATION = "Generate a test before generating implementation"
    GENERATED_IMPLEMENTATION_CODE_CANNOT_BE_EMPTY = "Generated implementation code cannot be empty"
    STEP_COMPLETION_REQUIRES_IMPLEMENTATION_PHASE = "Step completion only allowed in implementation phase"
    NO_CURRENT_IMPLEMENTATION_STEP_TO_COMPLETE = "No current implementation step to complete"
    COMPLETE_TEST_AND_IMPLEMENTATION_BEFORE_STEP = (
        "Complete test and implementation generation before finishing the step"
    )


@dataclass(frozen=True)
class Success:
    state: WorkflowState

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason

    def __bool__(self) -> bool:
        return False


TransitionResult = Success | Rejected

# ─── Reducer ───

def reduce(state: WorkflowState, event: WorkflowEvent) -> TransitionResult:
    match event:
        case FeatureSubmitted():
            return _feature_submitted(state, event)
        case ScenariosGenerated():
            return _scenarios_generated(state, event)
        case ScenariosApproved():
            return _scenarios_approved(state)
        case ResearchCompleted():
            return _research_completed(state, event)
        case PlanProposed():
            return _plan_proposed(state, event)
        case PlanApproved():
            return _plan_approved(state)
        case TestGenerated():
            return _test_generated(state, event)
        case ImplementationGenerated():
            return _implementation_generated(state, event)
        case StepCompleted():
            return _step_completed(state)
        case _:
            assert_never(event)


def _feature_submitted(state: WorkflowState, event: FeatureSubmitted) -> TransitionResult:
    if state.phase is not WorkflowPhase.REQUIREMENTS:
        return Rejected(RejectionReason.FEATURE_SUBMISSION_REQUIRES_REQUIREMENTS_PHASE)
    if state.requirements.approved:
        return Rejected(RejectionReason.REQUIREMENTS_LOCKED)
    additional = (event.additional_requirements or "").strip() or None
    requirements = replace(
        state.requirements,
        feature_description=event.description.strip(),
        additional_requirements=additional,
    )
    return Success(replace(state, requirements=requirements))


def _scenarios_generated(state: WorkflowState, event: ScenariosGenerated) -> TransitionResult:
    if state.phase is not WorkflowPhase.REQUIREMENTS:
        return Rejected(RejectionReason.SCENARIO_GENERATION_REQUIRES_REQUIREMENTS_PHASE)
    if state.requirements.approved:
        return Rejected(RejectionReason.REQUIREMENTS_LOCKED)
    requirements = replace(state.requirements, scenarios=tuple(event.scenarios), approved=False)
    return Success(replace(state, requirements=requirements))


def _scenarios_approved(state: WorkflowState) -> TransitionResult:
    if state.phase is not WorkflowPhase.REQUIREMENTS:
        return Rejected(RejectionReason.SCENARIO_APPROVAL_REQUIRES_REQUIREMENTS_PHASE)
    if not state.requirements.scenarios:
        return Rejected(RejectionReason.CANNOT_APPROVE_WITHOUT_SCENARIOS)
    return Success(replace(
        state,
        phase=WorkflowPhase.RESEARCH,
        requirements=replace(state.requirements, approved=True),
    ))


def _research_completed(state: WorkflowState, event: ResearchCompleted) -> TransitionResult:
    if state.phase is not WorkflowPhase.RESEARCH:
        return Rejected(RejectionReason.RESEARCH_COMPLETION_REQUIRES_RESEARCH_PHASE)
    return Success(replace(
        state,
        phase=WorkflowPhase.PLANNING,
        research=replace(state.research, summary=event.summary.strip()),
    ))


def _plan_proposed(state: WorkflowState, event: PlanProposed) -> TransitionResult:
    if state.phase is not WorkflowPhase.PLANNING:
        return Rejected(RejectionReason.PLAN_PROPOSAL_REQUIRES_PLANNING_PHASE)
    return Success(replace(state, planning=replace(state.planning, plan=event.plan.strip())))


def _plan_approved(state: WorkflowState) -> TransitionResult:
    if state.phase is not WorkflowPhase.PLANNING:
        return Rejected(RejectionReason.PLAN_APPROVAL_REQUIRES_PLANNING_PHASE)
    if not (state.planning.plan or "").strip():
        return Rejected(RejectionReason.CANNOT_APPROVE_EMPTY_PLAN)
    if not state.requirements.scenarios:
        return Rejected(RejectionReason.CANNOT_START_IMPLEMENTATION_WITHOUT_SCENARIOS)
    implementation = replace(
        state.implementation,
        steps=flatten_steps(state.requirements.scenarios),
        current_step_index=0,
        step_status=ImplementationStepStatus.READY_FOR_TEST,
        generated_test_code=None,
        generated_implementation_code=None,
    )
    return Success(replace(
        state,
        phase=WorkflowPhase.IMPLEMENTATION,
        planning=replace(state.planning, approved=True),
        implementation=implementation,
    ))


def _test_generated(state: WorkflowState, event: TestGenerated) -> TransitionResult:
    if state.phase is not WorkflowPhase.IMPLEMENTATION:
        return Rejected(RejectionReason.TEST_GENERATION_REQUIRES_IMPLEMENTATION_PHASE)
    if state.implementation.current_step() is None:
        return Rejected(RejectionReason.NO_CURRENT_IMPLEMENTATION_STEP_AVAILABLE)
    if state.implementation.step_status is not ImplementationStepStatus.READY_FOR_TEST:
        return Rejected(RejectionReason.CANNOT_GENERATE_TEST_FOR_CURRENT_STATE)
    code = event.code.strip()
    if not code:
        return Rejected(RejectionReason.GENERATED_TEST_CODE_CANNOT_BE_EMPTY)
    implementation = replace(
        state.implementation,
        step_status=ImplementationStepStatus.TEST_GENERATED,
        generated_test_code=code,
        generated_implementation_code=None,
    )
    return Success(replace(state, implementation=implementation))


def _implementation_generated(state: WorkflowState, event: ImplementationGenerated) -> TransitionResult:
    if state.phase is not WorkflowPhase.IMPLEMENTATION:
        return Rejected(RejectionReason.IMPLEMENTATION_GENERATION_REQUIRES_IMPLEMENTATION_PHASE)
    if state.implementation.current_step() is None:
        return Rejected(RejectionReason.NO_CURRENT_IMPLEMENTATION_STEP_AVAILABLE)
    if state.implementation.step_status is not ImplementationStepStatus.TEST_GENERATED:
        return Rejected(RejectionReason.GENERATE_TEST_BEFORE_IMPLEMENTATION)
    code = event.code.strip()
    if not code:
        return Rejected(RejectionReason.GENERATED_IMPLEMENTATION_CODE_CANNOT_BE_EMPTY)
    implementation = replace(
        state.implementation,
        step_status=ImplementationStepStatus.IMPLEMENTATION_GENERATED,
        generated_implementation_code=code,
    )
    return Success(replace(state, implementation=implementation))


def _step_completed(state: WorkflowState) -> TransitionResult:
    if state.phase is not WorkflowPhase.IMPLEMENTATION:
        return Rejected(RejectionReason.STEP_COMPLETION_REQUIRES_IMPLEMENTATION_PHASE)
    if state.implementation.current_step() is None:
        return Rejected(RejectionReason.NO_CURRENT_IMPLEMENTATION_STEP_TO_COMPLETE)
    if state.implementation.step_status is not ImplementationStepStatus.IMPLEMENTATION_GENERATED:
        return Rejected(RejectionReason.COMPLETE_TEST_AND_IMPLEMENTATION_BEFORE_STEP)
    implementation = replace(
        state.implementation,
        current_step_index=state.implementation.current_step_index + 1,
        step_status=ImplementationStepStatus.READY_FOR_TEST,
        generated_test_code=None,
        generated_implementation_code=None,
    )
    return Success(replace(state, implementation=implementation))


def flatten_steps(scenarios: Iterable[Scenario]) -> tuple[Step, ...]:
    """All scenario steps in scenario order, each scenario's own order kept."""
    return tuple(step for scenario in scenarios for step in scenario.steps)
