"""Workflow reducer: phase gates, step sub-states, and rejection reasons.

Events are referenced through the module (``sm.TestGenerated``) so pytest
does not try to collect them as test classes.
"""
from __future__ import annotations

import pytest

from tdd_agent.engine import state_machine as sm
from tdd_agent.engine.state_machine import Rejected, RejectionReason, Success, reduce
from tdd_agent.types import (
    ImplementationStepStatus,
    RequirementsData,
    Scenario,
    Step,
    StepType,
    WorkflowPhase,
    WorkflowState,
    state_to_dict,
)

from helpers import LOGIN_SCENARIO, RESET_SCENARIO, implementation_state, walk


def _rejected(state, event) -> RejectionReason:
    result = reduce(state, event)
    assert isinstance(result, Rejected), f"{event!r} unexpectedly accepted"
    assert not result
    return result.reason


def _research_state() -> WorkflowState:
    return walk(
        WorkflowState.initial(),
        sm.FeatureSubmitted("Password reset"),
        sm.ScenariosGenerated((RESET_SCENARIO,)),
        sm.ScenariosApproved(),
    )


def _planning_state() -> WorkflowState:
    return walk(_research_state(), sm.ResearchCompleted("notes"))


# ─── Requirements ───

def test_initial_state():
    state = WorkflowState.initial()
    assert state.phase is WorkflowPhase.REQUIREMENTS
    assert state.requirements.feature_description == ""
    assert state.requirements.scenarios == ()
    assert state.requirements.approved is False
    assert state.implementation.step_status is ImplementationStepStatus.READY_FOR_TEST
    assert state.implementation.remaining_steps() == 0


def test_feature_submission_trims_text():
    result = reduce(WorkflowState.initial(), sm.FeatureSubmitted("  Password reset  ", "  via email "))
    assert isinstance(result, Success)
    assert result
    assert result.state.requirements.feature_description == "Password reset"
    assert result.state.requirements.additional_requirements == "via email"
    assert result.state.phase is WorkflowPhase.REQUIREMENTS


@pytest.mark.parametrize("additional", [None, "", "   "])
def test_blank_additional_requirements_become_none(additional):
    state = walk(WorkflowState.initial(), sm.FeatureSubmitted("Reset", additional))
    assert state.requirements.additional_requirements is None


def test_resubmission_replaces_description():
    state = walk(
        WorkflowState.initial(),
        sm.FeatureSubmitted("First", "extra"),
        sm.FeatureSubmitted("Second"),
    )
    assert state.requirements.feature_description == "Second"
    assert state.requirements.additional_requirements is None


def test_scenarios_generated_replaces_list():
    state = walk(
        WorkflowState.initial(),
        sm.ScenariosGenerated((RESET_SCENARIO,)),
        sm.ScenariosGenerated((LOGIN_SCENARIO,)),
    )
    assert state.requirements.scenarios == (LOGIN_SCENARIO,)
    assert state.requirements.approved is False


def test_approve_without_scenarios_rejected():
    state = walk(WorkflowState.initial(), sm.FeatureSubmitted("Reset"))
    assert _rejected(state, sm.ScenariosApproved()) is RejectionReason.CANNOT_APPROVE_WITHOUT_SCENARIOS


def test_approve_scenarios_moves_to_research_and_locks():
    state = _research_state()
    assert state.phase is WorkflowPhase.RESEARCH
    assert state.requirements.approved is True


def test_requirements_events_rejected_after_approval():
    state = _research_state()
    assert _rejected(state, sm.FeatureSubmitted("x")) is (
        RejectionReason.FEATURE_SUBMISSION_REQUIRES_REQUIREMENTS_PHASE
    )
    assert _rejected(state, sm.ScenariosGenerated((LOGIN_SCENARIO,))) is (
        RejectionReason.SCENARIO_GENERATION_REQUIRES_REQUIREMENTS_PHASE
    )
    assert _rejected(state, sm.ScenariosApproved()) is (
        RejectionReason.SCENARIO_APPROVAL_REQUIRES_REQUIREMENTS_PHASE
    )


def test_locked_requirements_checked_after_phase():
    # Not reachable through the reducer: approval always leaves REQUIREMENTS
    state = WorkflowState(requirements=RequirementsData(approved=True))
    assert _rejected(state, sm.FeatureSubmitted("x")) is RejectionReason.REQUIREMENTS_LOCKED
    assert _rejected(state, sm.ScenariosGenerated(())) is RejectionReason.REQUIREMENTS_LOCKED


# ─── Research and planning ───

def test_research_completion_requires_research_phase():
    assert _rejected(WorkflowState.initial(), sm.ResearchCompleted("x")) is (
        RejectionReason.RESEARCH_COMPLETION_REQUIRES_RESEARCH_PHASE
    )


def test_research_completion_moves_to_planning():
    state = walk(_research_state(), sm.ResearchCompleted("  mailer docs  "))
    assert state.phase is WorkflowPhase.PLANNING
    assert state.research.summary == "mailer docs"


def test_plan_events_require_planning_phase():
    state = _research_state()
    assert _rejected(state, sm.PlanProposed("plan")) is RejectionReason.PLAN_PROPOSAL_REQUIRES_PLANNING_PHASE
    assert _rejected(state, sm.PlanApproved()) is RejectionReason.PLAN_APPROVAL_REQUIRES_PLANNING_PHASE


def test_plan_proposal_can_be_revised():
    state = walk(_planning_state(), sm.PlanProposed("first"), sm.PlanProposed("  second "))
    assert state.phase is WorkflowPhase.PLANNING
    assert state.planning.plan == "second"
    assert state.planning.approved is False


def test_approve_without_plan_rejected():
    assert _rejected(_planning_state(), sm.PlanApproved()) is RejectionReason.CANNOT_APPROVE_EMPTY_PLAN


def test_approve_whitespace_plan_rejected():
    state = walk(_planning_state(), sm.PlanProposed("   "))
    assert state.planning.plan == ""
    assert _rejected(state, sm.PlanApproved()) is RejectionReason.CANNOT_APPROVE_EMPTY_PLAN


def test_approve_plan_without_scenarios_rejected():
    # Only reachable from a hand-built state
    state = WorkflowState(phase=WorkflowPhase.PLANNING)
    state = walk(state, sm.PlanProposed("plan"))
    assert _rejected(state, sm.PlanApproved()) is RejectionReason.CANNOT_START_IMPLEMENTATION_WITHOUT_SCENARIOS


def test_plan_approval_flattens_steps_in_order():
    state = implementation_state(RESET_SCENARIO, LOGIN_SCENARIO)
    assert state.phase is WorkflowPhase.IMPLEMENTATION
    assert state.planning.approved is True
    assert state.implementation.steps == RESET_SCENARIO.steps + LOGIN_SCENARIO.steps
    assert state.implementation.current_step_index == 0
    assert state.implementation.step_status is ImplementationStepStatus.READY_FOR_TEST
    assert state.implementation.remaining_steps() == 5


# ─── Implementation ───

def test_implementation_events_rejected_before_implementation():
    state = _planning_state()
    assert _rejected(state, sm.TestGenerated("code")) is RejectionReason.TEST_GENERATION_REQUIRES_IMPLEMENTATION_PHASE
    assert _rejected(state, sm.ImplementationGenerated("code")) is (
        RejectionReason.IMPLEMENTATION_GENERATION_REQUIRES_IMPLEMENTATION_PHASE
    )
    assert _rejected(state, sm.StepCompleted()) is RejectionReason.STEP_COMPLETION_REQUIRES_IMPLEMENTATION_PHASE


def test_test_generated_stores_trimmed_code():
    state = walk(implementation_state(), sm.TestGenerated("  def test_x(): pass  "))
    assert state.implementation.step_status is ImplementationStepStatus.TEST_GENERATED
    assert state.implementation.generated_test_code == "def test_x(): pass"
    assert state.implementation.generated_implementation_code is None


def test_empty_test_code_rejected():
    assert _rejected(implementation_state(), sm.TestGenerated("   ")) is (
        RejectionReason.GENERATED_TEST_CODE_CANNOT_BE_EMPTY
    )


def test_second_test_for_same_step_rejected():
    state = walk(implementation_state(), sm.TestGenerated("t"))
    assert _rejected(state, sm.TestGenerated("t2")) is RejectionReason.CANNOT_GENERATE_TEST_FOR_CURRENT_STATE


def test_implementation_before_test_rejected():
    assert _rejected(implementation_state(), sm.ImplementationGenerated("impl")) is (
        RejectionReason.GENERATE_TEST_BEFORE_IMPLEMENTATION
    )


def test_empty_implementation_code_rejected():
    state = walk(implementation_state(), sm.TestGenerated("t"))
    assert _rejected(state, sm.ImplementationGenerated("\n")) is (
        RejectionReason.GENERATED_IMPLEMENTATION_CODE_CANNOT_BE_EMPTY
    )


def test_complete_step_before_implementation_rejected():
    state = walk(implementation_state(), sm.TestGenerated("t"))
    assert _rejected(state, sm.StepCompleted()) is RejectionReason.COMPLETE_TEST_AND_IMPLEMENTATION_BEFORE_STEP


def test_step_completion_advances_and_clears_code():
    state = walk(
        implementation_state(),
        sm.TestGenerated("t"),
        sm.ImplementationGenerated("  impl "),
    )
    assert state.implementation.generated_implementation_code == "impl"
    assert state.implementation.step_status is ImplementationStepStatus.IMPLEMENTATION_GENERATED

    state = walk(state, sm.StepCompleted())
    assert state.implementation.current_step_index == 1
    assert state.implementation.step_status is ImplementationStepStatus.READY_FOR_TEST
    assert state.implementation.generated_test_code is None
    assert state.implementation.generated_implementation_code is None
    assert state.implementation.current_step() == RESET_SCENARIO.steps[1]


def test_all_steps_completed_leaves_no_current_step():
    state = implementation_state()
    for _ in RESET_SCENARIO.steps:
        state = walk(state, sm.TestGenerated("t"), sm.ImplementationGenerated("i"), sm.StepCompleted())

    assert state.phase is WorkflowPhase.IMPLEMENTATION
    assert state.implementation.current_step() is None
    assert state.implementation.remaining_steps() == 0
    assert _rejected(state, sm.StepCompleted()) is RejectionReason.NO_CURRENT_IMPLEMENTATION_STEP_TO_COMPLETE
    assert _rejected(state, sm.TestGenerated("t")) is RejectionReason.NO_CURRENT_IMPLEMENTATION_STEP_AVAILABLE
    assert _rejected(state, sm.ImplementationGenerated("i")) is (
        RejectionReason.NO_CURRENT_IMPLEMENTATION_STEP_AVAILABLE
    )


def test_rejection_leaves_input_state_untouched():
    state = implementation_state()
    before = state_to_dict(state)
    reduce(state, sm.ImplementationGenerated("impl"))
    reduce(state, sm.StepCompleted())
    assert state_to_dict(state) == before


def test_phase_never_moves_backward():
    order = list(WorkflowPhase)
    state = WorkflowState.initial()
    events = [
        sm.FeatureSubmitted("Reset"),
        sm.ScenariosApproved(),  # rejected: no scenarios yet
        sm.ScenariosGenerated((RESET_SCENARIO,)),
        sm.ScenariosApproved(),
        sm.FeatureSubmitted("again"),
        sm.ResearchCompleted("r"),
        sm.ScenariosApproved(),
        sm.PlanProposed("p"),
        sm.PlanApproved(),
        sm.ResearchCompleted("late"),
        sm.TestGenerated("t"),
    ]
    for event in events:
        result = reduce(state, event)
        if result:
            assert order.index(result.state.phase) >= order.index(state.phase)
            state = result.state
    assert state.phase is WorkflowPhase.IMPLEMENTATION


def test_reason_messages():
    assert RejectionReason.CANNOT_APPROVE_WITHOUT_SCENARIOS.value == "Cannot approve without scenarios"
    assert RejectionReason.NO_CURRENT_IMPLEMENTATION_STEP_TO_COMPLETE.value == (
        "No current implementation step to complete"
    )
    assert str(RejectionReason.REQUIREMENTS_LOCKED) == "Requirements are locked"


def test_step_describe():
    assert Step(StepType.GIVEN, "a registered user").describe() == "GIVEN: a registered user"


def test_state_to_dict_includes_remaining_steps():
    data = state_to_dict(implementation_state())
    assert data["phase"] == "IMPLEMENTATION"
    assert data["implementation"]["remaining_steps"] == 3
    assert data["requirements"]["scenarios"][0]["name"] == "Password reset"


def test_flatten_steps_keeps_scenario_order():
    empty = Scenario(name="Empty")
    assert sm.flatten_steps([LOGIN_SCENARIO, empty, RESET_SCENARIO]) == LOGIN_SCENARIO.steps + RESET_SCENARIO.steps
