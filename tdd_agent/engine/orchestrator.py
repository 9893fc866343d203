"""One red/green TDD micro-cycle over injected collaborators.

    generate test → insert → run (must FAIL) → generate impl → insert → run (must PASS)

``execute_step`` is a single linear pass: no retries, and it never raises.
Callers that want another attempt call it again with whatever context they
have accumulated.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tdd_agent.adapters.base import verify_tests_fail, verify_tests_pass
from tdd_agent.engine.prompts import build_impl_prompt, build_scenarios_prompt, build_test_prompt
from tdd_agent.parsing.scenarios import parse_scenarios

if TYPE_CHECKING:
    from tdd_agent.adapters.base import CodeInserter, CodeRunner, LlmAdapter
    from tdd_agent.types import Scenario

logger = logging.getLogger(__name__)

ERROR_INSERT_TEST = "insert test failed"
ERROR_TEST_PASSED_BEFORE_IMPL = "test should have failed but passed"
ERROR_INSERT_IMPL = "insert implementation failed"
ERROR_TESTS_FAILED_AFTER_IMPL = "tests failed after implementation"


@dataclass(frozen=True)
class StepResult:
    test_code: str | None = None
    impl_code: str | None = None
    success: bool = False
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success


class TddOrchestrator:
    def __init__(self, llm: LlmAdapter, runner: CodeRunner, inserter: CodeInserter):
        self.llm = llm
        self.runner = runner
        self.inserter = inserter

    def execute_step(self, step_description: str) -> StepResult:
        test_code: str | None = None
        impl_code: str | None = None
        try:
            logger.info("Generating test for step: %s", step_description)
            test_code = self.generate_test_code(step_description)

            if not self.inserter.insert_test(test_code):
                return StepResult(test_code, None, False, ERROR_INSERT_TEST)

            logger.info("Running tests (should fail)")
            if not verify_tests_fail(self.runner):
                return StepResult(test_code, None, False, ERROR_TEST_PASSED_BEFORE_IMPL)

            logger.info("Generating implementation")
            impl_code = self.generate_implementation_code(test_code)

            if not self.inserter.insert_implementation(impl_code):
                return StepResult(test_code, impl_code, False, ERROR_INSERT_IMPL)

            logger.info("Running tests (should pass)")
            if not verify_tests_pass(self.runner):
                return StepResult(test_code, impl_code, False, ERROR_TESTS_FAILED_AFTER_IMPL)
        except Exception as e:
            logger.warning("TDD cycle aborted: %s", e)
            return StepResult(test_code, impl_code, False, str(e) or type(e).__name__)

        logger.info("TDD cycle complete for step: %s", step_description)
        return StepResult(test_code, impl_code, True, None)

    def generate_scenarios(self, feature: str, additional: str | None = None) -> list[Scenario]:
        raw = self.llm.generate(build_scenarios_prompt(feature, additional))
        return parse_scenarios(raw)

    def generate_test_code(self, step: str, context: str | None = None) -> str:
        return self.llm.generate(build_test_prompt(step, context))

    def generate_implementation_code(self, test: str, error: str | None = None) -> str:
        return self.llm.generate(build_impl_prompt(test, error))
