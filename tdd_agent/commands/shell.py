"""Interactive workflow shell — one typed command per state machine event."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tdd_agent.engine.state_machine import (
    FeatureSubmitted,
    ImplementationGenerated,
    PlanApproved,
    PlanProposed,
    ResearchCompleted,
    ScenariosApproved,
    ScenariosGenerated,
    StepCompleted,
    Success,
    TestGenerated,
    TransitionResult,
    WorkflowEvent,
)
from tdd_agent.parsing.scenarios import format_scenarios
from tdd_agent.session import WorkflowSession
from tdd_agent.types import ImplementationStepStatus, Scenario, Step, StepType, WorkflowPhase

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from tdd_agent.engine.orchestrator import TddOrchestrator

logger = logging.getLogger(__name__)

COMMAND_SUBMIT = "submit"
COMMAND_GENERATE_SCENARIOS = "generate-scenarios"
COMMAND_APPROVE_SCENARIOS = "approve-scenarios"
COMMAND_COMPLETE_RESEARCH = "complete-research"
COMMAND_PROPOSE_PLAN = "propose-plan"
COMMAND_APPROVE_PLAN = "approve-plan"
COMMAND_GENERATE_TEST = "generate-test"
COMMAND_GENERATE_IMPL = "generate-impl"
COMMAND_COMPLETE_STEP = "complete-step"
COMMAND_RUN_STEP = "run-step"
COMMAND_STATUS = "status"
COMMAND_HELP = "help"
COMMAND_EXIT = "exit"
COMMAND_QUIT = "quit"

MESSAGE_UNKNOWN_COMMAND_PREFIX = "Unknown command"
MESSAGE_STEP_STATUS_PREFIX = "Step status:"
MESSAGE_PHASE_PREFIX = "Phase:"
MESSAGE_ACTION_SUCCEEDED_TOKEN = "succeeded"
MESSAGE_ACTION_REJECTED_TOKEN = "rejected"

DEFAULT_SCENARIOS = (
    Scenario(
        name="Manual workflow sample",
        steps=(
            Step(StepType.GIVEN, "the workspace is ready"),
            Step(StepType.WHEN, "an action is requested"),
            Step(StepType.THEN, "the feature validates"),
        ),
    ),
)

HELP_TEXT = f"""\
Commands:
  {COMMAND_SUBMIT} <description> | <optional additional>  Submit requirements
  {COMMAND_GENERATE_SCENARIOS}                              Generate scenarios (LLM or canned)
  {COMMAND_APPROVE_SCENARIOS}                               Move to research phase
  {COMMAND_COMPLETE_RESEARCH} <summary>                     Finish research
  {COMMAND_PROPOSE_PLAN} <plan>                             Record planning
  {COMMAND_APPROVE_PLAN}                                    Start implementation
  {COMMAND_GENERATE_TEST} [code]                            Record test code for current step (generated when omitted)
  {COMMAND_GENERATE_IMPL} [code]                            Record implementation code (generated when omitted)
  {COMMAND_COMPLETE_STEP}                                   Mark current implementation step done
  {COMMAND_RUN_STEP}                                        Run the full red/green cycle for the current step
  {COMMAND_STATUS}                                          Dump current state
  {COMMAND_HELP}                                            Show this help text
  {COMMAND_EXIT}                                            Quit"""


@dataclass(frozen=True)
class CommandResult:
    message: str
    exit: bool = False


class CommandShell:
    def __init__(
        self,
        session: WorkflowSession | None = None,
        orchestrator: TddOrchestrator | None = None,
        canned_scenarios: Sequence[Scenario] = DEFAULT_SCENARIOS,
    ):
        self.session = session or WorkflowSession()
        self.orchestrator = orchestrator
        self.canned_scenarios = tuple(canned_scenarios)
        self.last_error: str | None = None

    def handle(self, line: str) -> CommandResult:
        trimmed = line.strip()
        if not trimmed:
            return CommandResult(f"Enter a command (type '{COMMAND_HELP}' to list commands).")
        command, _, args = trimmed.partition(" ")
        command = command.lower()
        args = args.strip()

        match command:
            case "submit":
                return self._submit(args)
            case "generate-scenarios":
                return self._generate_scenarios()
            case "approve-scenarios":
                return self._transition("Approve scenarios", ScenariosApproved())
            case "complete-research":
                if not args:
                    return CommandResult(f"Usage: {COMMAND_COMPLETE_RESEARCH} <summary>")
                return self._transition("Complete research", ResearchCompleted(args))
            case "propose-plan":
                if not args:
                    return CommandResult(f"Usage: {COMMAND_PROPOSE_PLAN} <plan>")
                return self._transition("Propose plan", PlanProposed(args))
            case "approve-plan":
                return self._transition("Approve plan", PlanApproved())
            case "generate-test":
                if args:
                    return self._transition("Generate test", TestGenerated(args))
                if self.orchestrator is None:
                    return CommandResult(f"Usage: {COMMAND_GENERATE_TEST} <code>")
                return self._generate_test()
            case "generate-impl":
                if args:
                    return self._transition("Generate implementation", ImplementationGenerated(args))
                if self.orchestrator is None:
                    return CommandResult(f"Usage: {COMMAND_GENERATE_IMPL} <code>")
                return self._generate_impl()
            case "complete-step":
                return self._transition("Complete step", StepCompleted())
            case "run-step":
                return self._run_step()
            case "status":
                return CommandResult(self.describe_state())
            case "help":
                return CommandResult(HELP_TEXT)
            case "exit" | "quit":
                return CommandResult("Bye.", exit=True)
            case _:
                return CommandResult(
                    f"{MESSAGE_UNKNOWN_COMMAND_PREFIX} '{command}'. Type '{COMMAND_HELP}' to list commands."
                )

    # ─── Command handlers ───

    def _submit(self, args: str) -> CommandResult:
        if not args:
            return CommandResult(
                f"Usage: {COMMAND_SUBMIT} <feature description> | <optional additional requirements>"
            )
        description, _, additional = (part.strip() for part in args.partition("|"))
        if not description:
            return CommandResult("Feature description cannot be empty.")
        return self._transition("Submit feature", FeatureSubmitted(description, additional or None))

    def _generate_scenarios(self) -> CommandResult:
        if self.orchestrator is None:
            if not self.canned_scenarios:
                return CommandResult("No canned scenarios configured.")
            return self._record_scenarios(self.canned_scenarios)

        requirements = self.session.state.requirements
        if not requirements.feature_description:
            return CommandResult(f"Submit a feature first: {COMMAND_SUBMIT} <description>")
        try:
            scenarios = self.orchestrator.generate_scenarios(
                requirements.feature_description, requirements.additional_requirements
            )
        except Exception as e:
            logger.warning("Scenario generation failed: %s", e)
            return CommandResult(f"Generate scenarios failed: {e}")
        return self._record_scenarios(tuple(scenarios))

    def _record_scenarios(self, scenarios: tuple[Scenario, ...]) -> CommandResult:
        result = self.session.dispatch(ScenariosGenerated(scenarios))
        rendered = self.format_transition("Generate scenarios", result)
        if isinstance(result, Success) and scenarios:
            return CommandResult(f"{rendered.message}\n\n{format_scenarios(scenarios)}")
        return rendered

    def _generate_test(self) -> CommandResult:
        state = self.session.state
        step = state.implementation.current_step()
        if (
            state.phase is not WorkflowPhase.IMPLEMENTATION
            or step is None
            or state.implementation.step_status is not ImplementationStepStatus.READY_FOR_TEST
        ):
            # no generation needed to learn the rejection reason
            return self._transition("Generate test", TestGenerated(""))
        try:
            code = self.orchestrator.generate_test_code(step.describe(), self.generation_context())
        except Exception as e:
            logger.warning("Test generation failed: %s", e)
            return CommandResult(f"Generate test failed: {e}")
        return self._transition_with_code("Generate test", TestGenerated(code), code)

    def _generate_impl(self) -> CommandResult:
        state = self.session.state
        test_code = state.implementation.generated_test_code
        if (
            state.phase is not WorkflowPhase.IMPLEMENTATION
            or state.implementation.current_step() is None
            or state.implementation.step_status is not ImplementationStepStatus.TEST_GENERATED
            or not test_code
        ):
            return self._transition("Generate implementation", ImplementationGenerated(""))
        try:
            code = self.orchestrator.generate_implementation_code(test_code, self.last_error)
        except Exception as e:
            logger.warning("Implementation generation failed: %s", e)
            return CommandResult(f"Generate implementation failed: {e}")
        result = self._transition_with_code("Generate implementation", ImplementationGenerated(code), code)
        if self.session.state.implementation.step_status is ImplementationStepStatus.IMPLEMENTATION_GENERATED:
            self.last_error = None
        return result

    def _transition_with_code(self, action: str, event: WorkflowEvent, code: str) -> CommandResult:
        result = self.session.dispatch(event)
        rendered = self.format_transition(action, result)
        if isinstance(result, Success):
            return CommandResult(f"{rendered.message}\n\n{code.strip()}")
        return rendered

    def generation_context(self) -> str:
        """Feature and plan text handed to test generation."""
        state = self.session.state
        lines = [f"Feature: {state.requirements.feature_description}"]
        if state.requirements.additional_requirements:
            lines.append(f"Additional requirements: {state.requirements.additional_requirements}")
        if state.planning.plan:
            lines.append(f"Plan: {state.planning.plan}")
        return "\n".join(lines)

    def _run_step(self) -> CommandResult:
        if self.orchestrator is None:
            return CommandResult("No code generator configured. Start the shell with --llm.")
        result = self.session.run_current_step(self.orchestrator)
        if not result.success:
            # fed back into the next generate-impl as the error to fix
            self.last_error = result.error
            return CommandResult(f"Run step failed: {result.error or 'TDD cycle failed'}")
        self.last_error = None
        return CommandResult(f"Run step {MESSAGE_ACTION_SUCCEEDED_TOKEN}\n{self.describe_short_state()}")

    def _transition(self, action: str, event: WorkflowEvent) -> CommandResult:
        return self.format_transition(action, self.session.dispatch(event))

    # ─── Rendering ───

    def format_transition(self, action: str, result: TransitionResult) -> CommandResult:
        if isinstance(result, Success):
            return CommandResult(f"{action} {MESSAGE_ACTION_SUCCEEDED_TOKEN}\n{self.describe_short_state()}")
        return CommandResult(f"{action} {MESSAGE_ACTION_REJECTED_TOKEN}: {result.reason.value}")

    def describe_short_state(self) -> str:
        state = self.session.state
        feature = state.requirements.feature_description or "<unset>"
        return (
            f"{MESSAGE_PHASE_PREFIX} {state.phase.value} | "
            f"{MESSAGE_STEP_STATUS_PREFIX} {state.implementation.step_status.value} | "
            f"Feature: {feature} | Remaining steps: {state.implementation.remaining_steps()}"
        )

    def describe_state(self) -> str:
        state = self.session.state
        requirements = state.requirements
        scenarios = ", ".join(s.name for s in requirements.scenarios) or "none"
        step = state.implementation.current_step()
        step_description = f"{step.type.value} {step.text}" if step else "<none>"
        return "\n".join([
            f"{MESSAGE_PHASE_PREFIX} {state.phase.value}",
            f"Feature: {requirements.feature_description or '<unset>'}",
            f"Additional: {requirements.additional_requirements or '<none>'}",
            f"Scenarios: {scenarios}",
            f"{MESSAGE_STEP_STATUS_PREFIX} {state.implementation.step_status.value}",
            f"Current step: {step_description}",
            f"Remaining implementation steps: {state.implementation.remaining_steps()}",
        ])


def run_shell(
    shell: CommandShell,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    write("TDD workflow shell")
    write(f"Type '{COMMAND_HELP}' to list commands, '{COMMAND_EXIT}' to quit.")
    while True:
        try:
            line = read("> ")
        except EOFError:
            break
        if not line.strip():
            continue
        result = shell.handle(line)
        write(result.message)
        if result.exit:
            break
    write("Goodbye.")
