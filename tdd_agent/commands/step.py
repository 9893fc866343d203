"""tdd-agent step "<bdd step>" — run one red/green cycle outside a session."""
from __future__ import annotations

import sys

from tdd_agent.config import build_orchestrator, load_config


def cmd_step(step: str, cwd: str):
    try:
        orchestrator = build_orchestrator(load_config(cwd))
    except ValueError as e:
        print(f"✗ Config error: {e}", file=sys.stderr)
        sys.exit(1)

    result = orchestrator.execute_step(step)
    if result.test_code:
        print("Test:")
        print(result.test_code)
        print()
    if result.impl_code:
        print("Implementation:")
        print(result.impl_code)
        print()

    if not result.success:
        print(f"✗ TDD cycle failed: {result.error}", file=sys.stderr)
        sys.exit(1)
    print("✓ Tests passed")
