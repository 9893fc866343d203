"""Failure types raised by the generation client and scenario extraction.

State machine guard failures are not exceptions: they come back as
``Rejected`` values from ``reduce``.
"""
from __future__ import annotations


class GenerationError(RuntimeError):
    """The external code-generation tool could not produce code."""


class GenerationTimeout(GenerationError):
    def __init__(self, timeout: float):
        super().__init__(f"Code generation exceeded {timeout:g}s timeout")
        self.timeout = timeout


class GenerationExitError(GenerationError):
    def __init__(self, exit_code: int, output: str):
        super().__init__(f"Code generation failed with exit code {exit_code}: {output.strip()}")
        self.exit_code = exit_code
        self.output = output


class GenerationParseError(GenerationError):
    """The generation event stream was malformed or carried no text."""


class ScenarioParseError(ValueError):
    """Generated text did not hold a usable scenario list."""
