"""Load ``.tdd/config.yaml`` and wire the orchestrator from it.

Example::

    model: anthropic/claude-sonnet-4
    timeout_seconds: 300
    runner: command
    test_command: ["pytest", "-q"]
    inserter: file
    test_file: tests/test_feature.py
    implementation_file: src/feature.py
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from tdd_agent.adapters.command_runner import CommandCodeRunner
from tdd_agent.adapters.console import ConsoleCodeInserter, ConsoleCodeRunner
from tdd_agent.adapters.file_inserter import FileCodeInserter
from tdd_agent.adapters.opencode import DEFAULT_EXECUTABLE, DEFAULT_TIMEOUT_SECONDS, OpenCodeAdapter
from tdd_agent.engine.orchestrator import TddOrchestrator

CONFIG_DIR = ".tdd"
CONFIG_FILE = "config.yaml"

RUNNERS = ("command", "console")
INSERTERS = ("file", "console")


@dataclass
class TddConfig:
    model: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    executable: str = DEFAULT_EXECUTABLE
    runner: str = "command"  # command | console
    test_command: list[str] = field(default_factory=lambda: ["pytest", "-q"])
    test_timeout_seconds: float = 60.0
    inserter: str = "file"  # file | console
    test_file: str | None = None
    implementation_file: str | None = None
    root: Path = field(default_factory=Path.cwd)


def _get_float_env(name: str) -> float | None:
    try:
        return float(os.environ[name])
    except (KeyError, ValueError):
        return None


def load_config(cwd: str | Path | None = None) -> TddConfig:
    root = Path(cwd) if cwd else Path.cwd()
    path = root / CONFIG_DIR / CONFIG_FILE
    raw: Any = {}
    if path.exists():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ValueError(f"Cannot read {path}: {e}") from e
    config = _from_mapping(raw, root)

    if model := os.environ.get("TDD_AGENT_MODEL", "").strip():
        config.model = model
    if (timeout := _get_float_env("TDD_AGENT_TIMEOUT_SECONDS")) is not None:
        config.timeout_seconds = timeout
    return config


def _from_mapping(raw: Any, root: Path) -> TddConfig:
    if not isinstance(raw, dict):
        raise ValueError("Invalid config: expected a mapping")
    known = {f.name for f in fields(TddConfig)} - {"root"}
    unknown = sorted(str(key) for key in raw if key not in known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    for key in ("model", "test_file", "implementation_file"):
        if raw.get(key) is not None and not isinstance(raw[key], str):
            raise ValueError(f"{key} must be a string")
    for key in ("executable", "runner", "inserter"):
        if key in raw and not (isinstance(raw[key], str) and raw[key].strip()):
            raise ValueError(f"{key} must be a non-empty string")
    for key in ("timeout_seconds", "test_timeout_seconds"):
        value = raw.get(key, 1)
        if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
            raise ValueError(f"{key} must be a positive number")

    config = TddConfig(root=root, **raw)
    config.test_command = _command_list(config.test_command)
    if config.runner not in RUNNERS:
        raise ValueError(f"Invalid runner: {config.runner}. Available: {', '.join(RUNNERS)}")
    if config.inserter not in INSERTERS:
        raise ValueError(f"Invalid inserter: {config.inserter}. Available: {', '.join(INSERTERS)}")
    return config


def _command_list(value: Any) -> list[str]:
    """``test_command`` may be a string (split on whitespace) or a list of strings."""
    if isinstance(value, str):
        value = value.split()
    if not isinstance(value, list) or not all(isinstance(part, str) for part in value):
        raise ValueError("test_command must be a string or a list of strings")
    if not value:
        raise ValueError("test_command must not be empty")
    return value


def build_orchestrator(config: TddConfig) -> TddOrchestrator:
    llm = OpenCodeAdapter(
        model=config.model,
        timeout=float(config.timeout_seconds),
        executable=config.executable,
    )
    if config.runner == "console":
        runner = ConsoleCodeRunner()
    else:
        runner = CommandCodeRunner(config.test_command, cwd=config.root, timeout=float(config.test_timeout_seconds))
    if config.inserter == "console":
        inserter = ConsoleCodeInserter()
    else:
        inserter = FileCodeInserter(
            config.root / config.test_file if config.test_file else None,
            config.root / config.implementation_file if config.implementation_file else None,
        )
    return TddOrchestrator(llm, runner, inserter)
