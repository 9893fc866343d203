from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

# ─── Scenario vocabulary (BDD) ───

class StepType(StrEnum):
    GIVEN = "GIVEN"
    WHEN = "WHEN"
    THEN = "THEN"
    AND = "AND"


@dataclass(frozen=True)
class Step:
    type: StepType
    text: str

    def describe(self) -> str:
        """Prompt form of the step, e.g. ``"GIVEN: a registered user"``."""
        return f"{self.type.value}: {self.text}"


@dataclass(frozen=True)
class Scenario:
    name: str
    steps: tuple[Step, ...] = ()

# ─── Workflow phases ───

class WorkflowPhase(StrEnum):
    REQUIREMENTS = "REQUIREMENTS"
    RESEARCH = "RESEARCH"
    PLANNING = "PLANNING"
    IMPLEMENTATION = "IMPLEMENTATION"


class ImplementationStepStatus(StrEnum):
    READY_FOR_TEST = "READY_FOR_TEST"
    TEST_GENERATED = "TEST_GENERATED"
    IMPLEMENTATION_GENERATED = "IMPLEMENTATION_GENERATED"


@dataclass(frozen=True)
class RequirementsData:
    feature_description: str = ""
    additional_requirements: str | None = None
    scenarios: tuple[Scenario, ...] = ()
    approved: bool = False  # frozen for the rest of the session once True


@dataclass(frozen=True)
class ResearchData:
    summary: str | None = None


@dataclass(frozen=True)
class PlanningData:
    plan: str | None = None
    approved: bool = False


@dataclass(frozen=True)
class ImplementationData:
    steps: tuple[Step, ...] = ()
    current_step_index: int = 0
    step_status: ImplementationStepStatus = ImplementationStepStatus.READY_FOR_TEST
    generated_test_code: str | None = None
    generated_implementation_code: str | None = None

    def current_step(self) -> Step | None:
        if 0 <= self.current_step_index < len(self.steps):
            return self.steps[self.current_step_index]
        return None

    def remaining_steps(self) -> int:
        return len(self.steps) - self.current_step_index

# ─── Workflow aggregate ───

@dataclass(frozen=True)
class WorkflowState:
    phase: WorkflowPhase = WorkflowPhase.REQUIREMENTS
    requirements: RequirementsData = field(default_factory=RequirementsData)
    research: ResearchData = field(default_factory=ResearchData)
    planning: PlanningData = field(default_factory=PlanningData)
    implementation: ImplementationData = field(default_factory=ImplementationData)

    @classmethod
    def initial(cls) -> WorkflowState:
        return cls()


def state_to_dict(state: WorkflowState) -> dict[str, Any]:
    data = asdict(state)
    data["implementation"]["remaining_steps"] = state.implementation.remaining_steps()
    return data
