"""Shared fixtures for tdd-agent tests."""
from __future__ import annotations

import json
import stat
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from helpers import FakeInserter, FakeLlm, FakeRunner
from tdd_agent.engine.orchestrator import TddOrchestrator

if TYPE_CHECKING:
    from collections.abc import Iterable


@pytest.fixture
def orchestrator_factory():
    """Build a TddOrchestrator over fakes: (llm replies, runner outcomes)."""

    def _make(replies=(), outcomes=(), **inserter_kwargs) -> TddOrchestrator:
        return TddOrchestrator(FakeLlm(replies), FakeRunner(outcomes), FakeInserter(**inserter_kwargs))

    return _make


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("TDD_AGENT_MODEL", "TDD_AGENT_TIMEOUT_SECONDS", "TDD_AGENT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


# ─── Fake generation executable ───

FAKE_TOOL_PY = """\
import json
import subprocess
import sys
import time

cfg = json.loads({cfg!r})
with open(cfg["argv_file"], "w", encoding="utf-8") as fh:
    json.dump(sys.argv[1:], fh)
prompt = sys.stdin.read() if cfg["read_stdin_first"] else ""
for line in cfg["lines"]:
    print(line.replace("@PROMPT@", json.dumps(prompt)[1:-1]))
sys.stdout.flush()
if not cfg["read_stdin_first"]:
    sys.stdin.read()
sys.stderr.write(cfg["stderr"])
sys.stderr.flush()
if cfg["linger"]:
    subprocess.Popen([sys.executable, "-c", f"import time; time.sleep({{cfg['linger']}})"])
time.sleep(cfg["sleep"])
sys.exit(cfg["exit_code"])
"""


class FakeTool:
    def __init__(self, executable: Path, argv_file: Path):
        self.executable = str(executable)
        self.argv_file = argv_file

    @property
    def argv(self) -> list[str]:
        return json.loads(self.argv_file.read_text(encoding="utf-8"))


@pytest.fixture
def fake_tool(tmp_path: Path):
    """Factory writing an executable that mimics ``opencode run --format json``.

    ``@PROMPT@`` inside an output line is replaced with the prompt read from
    stdin (JSON-escaped), so a line can echo the prompt back.
    """
    if sys.platform == "win32":
        pytest.skip("fake generation tool is a POSIX shell script")
    counter = 0

    def _make(
        lines: Iterable[str] = (),
        *,
        exit_code: int = 0,
        stderr: str = "",
        sleep: float = 0,
        read_stdin_first: bool = True,
        exec_wrapper: bool = True,
        linger: float = 0,
    ) -> FakeTool:
        nonlocal counter
        counter += 1
        argv_file = tmp_path / f"argv-{counter}.json"
        cfg = json.dumps({
            "lines": list(lines),
            "exit_code": exit_code,
            "stderr": stderr,
            "sleep": sleep,
            "read_stdin_first": read_stdin_first,
            "linger": linger,
            "argv_file": str(argv_file),
        })
        script = tmp_path / f"fake_tool_{counter}.py"
        script.write_text(FAKE_TOOL_PY.format(cfg=cfg), encoding="utf-8")
        wrapper = tmp_path / f"fake-opencode-{counter}"
        # without exec the script runs as a grandchild of the spawned process
        launch = "exec " if exec_wrapper else ""
        wrapper.write_text(f'#!/bin/sh\n{launch}"{sys.executable}" "{script}" "$@"\n', encoding="utf-8")
        wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeTool(wrapper, argv_file)

    return _make
