from tdd_agent.engine.orchestrator import StepResult, TddOrchestrator
from tdd_agent.engine.state_machine import Rejected, RejectionReason, Success, reduce

__all__ = ["Rejected", "RejectionReason", "StepResult", "Success", "TddOrchestrator", "reduce"]
