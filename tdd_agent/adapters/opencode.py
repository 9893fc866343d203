"""Generation client for the ``opencode`` CLI.

Each call spawns ``opencode run --format json [--model M]``, feeds the prompt
on stdin and reads newline-delimited JSON events from stdout:

    {"type": "step_start", ...}
    {"type": "text", "part": {"text": "<generated code>"}}
    ...

The last ``text`` event carries the finished artifact, so it wins over
earlier ones.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import signal
import subprocess
import threading
from typing import IO, Any

from tdd_agent.errors import (
    GenerationError,
    GenerationExitError,
    GenerationParseError,
    GenerationTimeout,
)

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "opencode"
DEFAULT_TIMEOUT_SECONDS = 300.0
# Grace period for reader threads after the process is gone
_JOIN_TIMEOUT_SECONDS = 5.0


def resolve_executable(name: str = DEFAULT_EXECUTABLE) -> str:
    """Find *name* on PATH (``.cmd`` on Windows), else return it unchanged.

    Not cached: PATH may change between calls.
    """
    exe_name = name
    if os.name == "nt" and not os.path.splitext(name)[1]:
        exe_name = f"{name}.cmd"
    return shutil.which(exe_name) or exe_name


def parse_stream(output: str) -> str:
    """Extract the generated code from an NDJSON event stream."""
    code: str | None = None
    for line_no, line in enumerate(output.splitlines(), 1):
        if not line.strip():
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError as e:
            raise GenerationParseError(
                f"Failed to parse generation output (line {line_no}): {e}"
            ) from e
        if not isinstance(event, dict) or event.get("type") != "text":
            continue
        part = event.get("part")
        text = part.get("text") if isinstance(part, dict) else None
        if isinstance(text, str):
            code = text
    if code is None:
        raise GenerationParseError("Failed to parse generation output: no text event in stream")
    return code


class OpenCodeAdapter:
    """``LlmAdapter`` backed by an ``opencode`` subprocess per prompt."""

    def __init__(
        self,
        model: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        executable: str = DEFAULT_EXECUTABLE,
    ):
        self.model = model
        self.timeout = timeout
        self.executable = executable

    def build_command(self) -> list[str]:
        cmd = [resolve_executable(self.executable), "run", "--format", "json"]
        if self.model:
            cmd.extend(["--model", self.model])
        return cmd

    def generate(self, prompt: str) -> str:
        stdout, stderr, exit_code = self._run(prompt)
        if exit_code != 0:
            raise GenerationExitError(exit_code, _combine(stdout, stderr))
        return parse_stream(stdout)

    def _run(self, prompt: str) -> tuple[str, str, int]:
        cmd = self.build_command()
        logger.info("Running generation command: %s (timeout %ss)", " ".join(cmd), self.timeout)
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                **_own_group_kwargs(),
            )
        except OSError as e:
            raise GenerationError(f"Failed to start {cmd[0]}: {e}") from e

        out_chunks: list[str] = []
        err_chunks: list[str] = []
        # Drain both pipes while feeding stdin so neither side can fill a buffer and stall
        pipes = [
            (proc.stdout, threading.Thread(target=_drain, args=(proc.stdout, out_chunks), daemon=True)),
            (proc.stderr, threading.Thread(target=_drain, args=(proc.stderr, err_chunks), daemon=True)),
            (proc.stdin, threading.Thread(target=_feed, args=(proc.stdin, prompt), daemon=True)),
        ]
        for _, worker in pipes:
            worker.start()

        try:
            exit_code = proc.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Generation timed out after %ss; killing process tree of pid %s", self.timeout, proc.pid)
            kill_tree(proc)
            proc.wait()
            raise GenerationTimeout(self.timeout) from None
        finally:
            _release(proc, pipes)

        stdout, stderr = "".join(out_chunks), "".join(err_chunks)
        logger.debug("Generation exited with %s (%d bytes of output)", exit_code, len(stdout))
        return stdout, stderr, exit_code


def _own_group_kwargs() -> dict[str, Any]:
    """Start the tool as the root of its own process group so kill_tree reaches its children."""
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def kill_tree(proc: subprocess.Popen) -> None:
    """Kill *proc* and every process it spawned."""
    if os.name == "nt":
        try:
            subprocess.run(
                ["taskkill", "/T", "/F", "/PID", str(proc.pid)],
                capture_output=True,
                check=False,
            )
        except OSError as e:
            logger.warning("taskkill failed for pid %s: %s", proc.pid, e)
    else:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            # group already gone
            pass
    if proc.poll() is None:
        proc.kill()


def _release(proc: subprocess.Popen, pipes: list[tuple[IO[str] | None, threading.Thread]]) -> None:
    for _, worker in pipes:
        worker.join(_JOIN_TIMEOUT_SECONDS)
    if any(worker.is_alive() for _, worker in pipes):
        # the tool exited but something it spawned still holds a pipe open
        logger.warning("Generation left child processes behind; killing process tree of pid %s", proc.pid)
        kill_tree(proc)
        for _, worker in pipes:
            worker.join(_JOIN_TIMEOUT_SECONDS)
    for stream, worker in pipes:
        # closing a stream while its worker is still blocked on it would block too
        if stream and not stream.closed and not worker.is_alive():
            try:
                stream.close()
            except BrokenPipeError:
                # unflushed prompt text for a tool that already exited
                pass


def _drain(stream: IO[str], sink: list[str]) -> None:
    try:
        for chunk in iter(lambda: stream.read(8192), ""):
            sink.append(chunk)
    except (OSError, ValueError):
        # stream closed underneath us after a kill
        pass


def _feed(stream: IO[str], prompt: str) -> None:
    try:
        stream.write(prompt)
        stream.close()
    except (BrokenPipeError, OSError, ValueError) as e:
        logger.debug("Generation process stopped reading its input: %s", e)


def _combine(stdout: str, stderr: str) -> str:
    parts = [p.strip() for p in (stdout, stderr) if p.strip()]
    return "\n".join(parts)
