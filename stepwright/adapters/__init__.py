"""Adapters — process runners the engine executes commands through.

Public re-exports for convenient access.
"""

from stepwright.adapters.base import DEFAULT_TIMEOUT_MS, OutputChunk, ProcessRunner
from stepwright.adapters.mock import MockProcessRunner
from stepwright.adapters.shell.process import ShellProcessRunner

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "MockProcessRunner",
    "OutputChunk",
    "ProcessRunner",
    "ShellProcessRunner",
]
