"""Prompt builders for scenario, test and implementation generation."""
from __future__ import annotations

import textwrap

SCENARIO_SCHEMA_EXAMPLE = """\
[
  {
    "name": "Password reset",
    "steps": [
      {"type": "GIVEN", "text": "a registered user"},
      {"type": "WHEN", "text": "they request a password reset"},
      {"type": "THEN", "text": "they receive a reset email"}
    ]
  }
]"""


def build_scenarios_prompt(feature: str, additional: str | None = None) -> str:
    extra = f"\nAdditional requirements:\n{additional.strip()}\n" if additional and additional.strip() else ""
    return (
        "Write BDD scenarios for this feature.\n\n"
        f"Feature:\n{feature.strip()}\n"
        f"{extra}\n"
        "Return ONLY a JSON array, no prose and no code fences, in exactly this shape:\n"
        f"{SCENARIO_SCHEMA_EXAMPLE}\n\n"
        'Step "type" must be one of GIVEN, WHEN, THEN, AND.\n'
        "Keep each scenario small: one behavior per scenario, 3-5 steps."
    )


def build_test_prompt(step: str, context: str | None = None) -> str:
    context_block = f"Context:\n{context.strip()}\n\n" if context and context.strip() else ""
    return (
        "Generate a single pytest test function for this BDD step:\n\n"
        f"Step: {step.strip()}\n\n"
        f"{context_block}"
        "Return ONLY the test function. No imports, no class wrapper, no comments.\n"
        "Use plain assert statements and pytest.raises for expected errors.\n"
        "Keep the test minimal and focused on the step.\n\n"
        "Example format (adapt to the step):\n"
        + textwrap.dedent("""\
            def test_registered_user_can_request_reset():
                user = make_user(email="a@example.com")
                result = request_reset(user.email)
                assert result.sent is True
        """)
    )


def build_impl_prompt(test: str, error: str | None = None) -> str:
    error_block = f"Error:\n{error.strip()}\n\n" if error and error.strip() else ""
    return (
        "Make this test pass with MINIMAL code.\n\n"
        f"Test:\n{test.strip()}\n\n"
        f"{error_block}"
        "Return ONLY the function or method code. No class wrapper, no imports.\n"
        "Write the simplest code that passes. No over-engineering or extra features."
    )
