from tdd_agent.adapters.base import CodeInserter, CodeRunner, LlmAdapter, RunResult
from tdd_agent.adapters.opencode import OpenCodeAdapter, parse_stream, resolve_executable

__all__ = [
    "CodeInserter",
    "CodeRunner",
    "LlmAdapter",
    "OpenCodeAdapter",
    "RunResult",
    "parse_stream",
    "resolve_executable",
]
