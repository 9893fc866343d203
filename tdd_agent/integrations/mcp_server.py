"""MCP Server — exposes the workflow session as tdd_* tools."""
from __future__ import annotations

import json
import os
import sys

from mcp.server.fastmcp import FastMCP

from tdd_agent.commands.shell import CommandShell
from tdd_agent.config import build_orchestrator, load_config
from tdd_agent.parsing.scenarios import format_scenarios
from tdd_agent.types import state_to_dict


def build_server(shell: CommandShell) -> FastMCP:
    mcp = FastMCP("tdd-agent")

    @mcp.tool()
    def tdd_get_status() -> str:
        """Get the workflow phase, scenarios, and current implementation step."""
        st = state_to_dict(shell.session.state)
        st["summary"] = shell.describe_short_state()
        st["scenarios_text"] = format_scenarios(shell.session.state.requirements.scenarios)
        return json.dumps(st, ensure_ascii=False, indent=2)

    @mcp.tool()
    def tdd_command(command: str) -> str:
        """Run one workflow command, e.g. "submit Password reset | via email" or "approve-plan"."""
        try:
            return shell.handle(command).message
        except Exception as e:
            return f"Command failed: {e}"

    @mcp.tool()
    def tdd_run_step() -> str:
        """Run the full red/green TDD cycle for the current implementation step."""
        if shell.orchestrator is None:
            return json.dumps({"success": False, "error": "No code generator configured"})
        result = shell.session.run_current_step(shell.orchestrator)
        return json.dumps({
            "success": result.success,
            "error": result.error,
            "test_code": result.test_code,
            "impl_code": result.impl_code,
            "reminder": shell.describe_short_state(),
        }, ensure_ascii=False, indent=2)

    return mcp


def run_server():
    try:
        orchestrator = build_orchestrator(load_config(os.getcwd()))
    except ValueError as e:
        print(f"✗ Config error: {e}", file=sys.stderr)
        sys.exit(1)
    build_server(CommandShell(orchestrator=orchestrator)).run(transport="stdio")
