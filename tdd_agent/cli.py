"""Thin CLI router — dispatches to commands and the MCP server."""
from __future__ import annotations

import logging
import os
import sys

USAGE = """\
tdd-agent — test-driven code generation loop

Usage:
  tdd-agent shell [--llm]              Interactive workflow shell (--llm: generate with opencode)
  tdd-agent step "<bdd step>"          Run one red/green cycle for a single step
  tdd-agent scenarios "<feature>"      Generate BDD scenarios ("<feature> | <extra>" adds requirements)
  tdd-agent mcp-server                 Serve the workflow as MCP tools over stdio
  tdd-agent help                       Show this text

Options:
  --verbose                            Debug logging on stderr

Configuration is read from .tdd/config.yaml in the current directory.
"""


def _configure_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else os.environ.get("TDD_AGENT_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="[tdd-agent] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main():
    args = sys.argv[1:]
    verbose = "--verbose" in args
    args = [a for a in args if a != "--verbose"]
    _configure_logging(verbose)

    cwd = os.getcwd()
    command = args[0] if args else None

    if command == "shell":
        from tdd_agent.commands.shell import CommandShell, run_shell
        orchestrator = None
        if "--llm" in args[1:]:
            from tdd_agent.config import build_orchestrator, load_config
            try:
                orchestrator = build_orchestrator(load_config(cwd))
            except ValueError as e:
                print(f"✗ Config error: {e}", file=sys.stderr)
                sys.exit(1)
        run_shell(CommandShell(orchestrator=orchestrator))

    elif command == "step":
        if len(args) < 2:
            print('Usage: tdd-agent step "<bdd step>"', file=sys.stderr)
            sys.exit(1)
        from tdd_agent.commands.step import cmd_step
        cmd_step(" ".join(args[1:]), cwd)

    elif command == "scenarios":
        if len(args) < 2:
            print('Usage: tdd-agent scenarios "<feature>"', file=sys.stderr)
            sys.exit(1)
        from tdd_agent.commands.scenarios import cmd_scenarios
        cmd_scenarios(" ".join(args[1:]), cwd)

    elif command == "mcp-server":
        from tdd_agent.integrations.mcp_server import run_server
        run_server()

    elif command in ("help", "--help", "-h", None):
        print(USAGE)

    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        print(USAGE)
        sys.exit(1)
