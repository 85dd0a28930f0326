"""
Process runner base — the contract between the engine and processes.

The orchestrator and pre-check runner only talk to processes through
this interface.  Runners NEVER raise: spawn errors, non-zero exits and
timeouts all come back as an ``ExecutionResult``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Literal

from pydantic import BaseModel

from stepwright.core.models.results import ExecutionResult

DEFAULT_TIMEOUT_MS = 30_000


class OutputChunk(BaseModel):
    """One piece of process output, forwarded as it arrives."""

    type: Literal["stdout", "stderr"]
    data: str
    command: str = ""        # command description, for display


OutputSink = Callable[[OutputChunk], None]


class ProcessRunner(ABC):
    """Abstract base class for everything that executes commands.

    To create a new runner:
        1. Subclass ProcessRunner
        2. Implement ``name`` and ``run``
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def run(
        self,
        command: str,
        *,
        timeout_ms: int | None = None,
        sink: OutputSink | None = None,
        label: str = "",
        sensitive: bool = False,
    ) -> ExecutionResult:
        """Execute *command* and return its result.

        Args:
            command: Final shell text (already resolved and classified).
            timeout_ms: Kill the process after this many milliseconds
                (default ``DEFAULT_TIMEOUT_MS``).
            sink: Receives each stdout/stderr chunk as it arrives.
            label: Human description carried on every chunk.
            sensitive: Keep the command text out of logs and report it
                as ``[REDACTED]`` in the returned result.

        MUST never raise.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
