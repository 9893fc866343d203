"""Pull a scenario list out of freeform generated text.

The text between the first ``[`` and the last ``]`` is read as a JSON array
of ``{"name": ..., "steps": [{"type": ..., "text": ...}]}`` objects. Prose
around the array is tolerated; unrelated brackets inside that prose are not.
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from tdd_agent.errors import ScenarioParseError
from tdd_agent.types import Scenario, Step, StepType

if TYPE_CHECKING:
    from collections.abc import Iterable


def parse_scenarios(raw: str) -> list[Scenario]:
    payload = _load_array(extract_json_array(raw))
    return [_to_scenario(item, i) for i, item in enumerate(payload)]


def extract_json_array(raw: str) -> str:
    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise ValueError("Expected a JSON array of scenarios")
    return raw[start:end + 1]


def format_scenarios(scenarios: Iterable[Scenario]) -> str:
    blocks = []
    for scenario in scenarios:
        lines = [f"Scenario: {scenario.name}"]
        lines.extend(f"  {step.type.value} {step.text}" for step in scenario.steps)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _load_array(text: str) -> list[Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ScenarioParseError(f"Scenario JSON is malformed: {e}") from e
    if not isinstance(payload, list):
        raise ScenarioParseError("Expected a JSON array of scenarios")
    return payload


def _to_scenario(item: Any, index: int) -> Scenario:
    if not isinstance(item, dict):
        raise ScenarioParseError(f"Scenario #{index + 1} is not an object")
    name = item.get("name")
    raw_steps = item.get("steps")
    if not isinstance(name, str):
        raise ScenarioParseError(f'Scenario #{index + 1} is missing "name"')
    if not isinstance(raw_steps, list):
        raise ScenarioParseError(f'Scenario "{name}" is missing "steps"')
    return Scenario(name=name, steps=tuple(_to_step(s, name) for s in raw_steps))


def _to_step(item: Any, scenario_name: str) -> Step:
    if not isinstance(item, dict):
        raise ScenarioParseError(f'Scenario "{scenario_name}" has a step that is not an object')
    step_type = item.get("type")
    text = item.get("text")
    if not isinstance(step_type, str) or not isinstance(text, str):
        raise ScenarioParseError(f'Scenario "{scenario_name}" has a step without "type" and "text"')
    try:
        return Step(type=StepType(step_type.strip().upper()), text=text)
    except ValueError as e:
        raise ScenarioParseError(
            f'Unknown step type "{step_type}" in scenario "{scenario_name}"'
        ) from e
