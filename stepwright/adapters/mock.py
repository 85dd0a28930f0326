"""
Mock runner — scripted test double for process execution.

Returns success for everything by default.  Responses can be
scripted per command substring; every call is recorded so tests
can assert what was (or was not) executed.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass

from stepwright.adapters.base import OutputChunk, OutputSink, ProcessRunner
from stepwright.core.models.results import REDACTED, TIMEOUT_ERROR, ExecutionResult


@dataclass
class RunCall:
    command: str
    timeout_ms: int | None
    label: str
    sensitive: bool


class MockProcessRunner(ProcessRunner):
    """Universal mock runner for testing.

    Simulated commands (``echo 'Would run: …'``) produce their echo
    text as output, like a real shell would.
    """

    def __init__(self, default_output: str = "", default_exit_code: int = 0):
        self._default_output = default_output
        self._default_exit_code = default_exit_code
        self._responses: list[tuple[str, ExecutionResult]] = []
        self._calls: list[RunCall] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def calls(self) -> list[RunCall]:
        """Every command this mock has been asked to run."""
        return self._calls

    @property
    def commands(self) -> list[str]:
        return [c.command for c in self._calls]

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def respond(
        self,
        match: str,
        output: str = "",
        exit_code: int = 0,
        error: str | None = None,
    ) -> None:
        """Script the result for commands containing *match*."""
        self._responses.append((
            match,
            ExecutionResult(
                success=exit_code == 0 and error is None,
                output=output,
                exit_code=exit_code,
                error=error if error is not None else (
                    None if exit_code == 0 else f"Command exited with code {exit_code}"
                ),
            ),
        ))

    def fail(self, match: str, exit_code: int = 1, output: str = "") -> None:
        self.respond(match, output=output, exit_code=exit_code)

    def time_out(self, match: str) -> None:
        self._responses.append((
            match,
            ExecutionResult(success=False, output="", error=TIMEOUT_ERROR),
        ))

    def run(
        self,
        command: str,
        *,
        timeout_ms: int | None = None,
        sink: OutputSink | None = None,
        label: str = "",
        sensitive: bool = False,
    ) -> ExecutionResult:
        self._calls.append(RunCall(command, timeout_ms, label, sensitive))

        result = self._lookup(command)
        if sink is not None:
            for line in result.output.splitlines(keepends=True):
                sink(OutputChunk(type="stdout", data=line, command=label))
        return result.model_copy(
            update={"command": REDACTED if sensitive else command}
        )

    def _lookup(self, command: str) -> ExecutionResult:
        for match, result in self._responses:
            if match in command:
                return result
        if command.startswith("echo "):
            try:
                text = " ".join(shlex.split(command)[1:])
            except ValueError:
                text = command[len("echo "):]
            return ExecutionResult(success=True, output=text + "\n", exit_code=0)
        code = self._default_exit_code
        return ExecutionResult(
            success=code == 0,
            output=self._default_output,
            exit_code=code,
            error=None if code == 0 else f"Command exited with code {code}",
        )

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._calls.clear()
        self._responses.clear()
