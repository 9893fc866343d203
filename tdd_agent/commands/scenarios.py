"""tdd-agent scenarios "<feature>" [| extra] — print generated scenarios as JSON."""
from __future__ import annotations

import json
import sys
from dataclasses import asdict

from tdd_agent.config import build_orchestrator, load_config
from tdd_agent.errors import GenerationError


def cmd_scenarios(request: str, cwd: str):
    feature, _, additional = (part.strip() for part in request.partition("|"))
    if not feature:
        print("Feature description cannot be empty.", file=sys.stderr)
        sys.exit(1)

    try:
        orchestrator = build_orchestrator(load_config(cwd))
        scenarios = orchestrator.generate_scenarios(feature, additional or None)
    except (GenerationError, ValueError) as e:
        print(f"✗ Scenario generation failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps([asdict(s) for s in scenarios], ensure_ascii=False, indent=2))
