"""
Result models — the uniform return shapes of execution.

Runners never raise.  Every spawned command comes back as an
``ExecutionResult``; every diagnostic check as a ``PreCheckResult``
which the pre-check runner classifies into a ``CheckOutcome``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from stepwright.core.errors import CommandFailure, CommandTimeout

REDACTED = "[REDACTED]"
TIMEOUT_ERROR = "Timeout exceeded"


class ExecutionResult(BaseModel):
    """Outcome of one executed command."""

    success: bool
    output: str = ""
    exit_code: int | None = None
    error: str | None = None
    command: str = ""               # "[REDACTED]" when the command is sensitive
    duration_ms: int = 0

    @property
    def timed_out(self) -> bool:
        return self.error == TIMEOUT_ERROR

    def redacted(self) -> ExecutionResult:
        """Copy with the command text hidden."""
        return self.model_copy(update={"command": REDACTED})

    def raise_for_status(self) -> None:
        """Escalate a failed result into the error taxonomy."""
        if self.success:
            return
        message = self.error or f"Command exited with code {self.exit_code}"
        if self.timed_out:
            raise CommandTimeout(message, command=self.command, exit_code=self.exit_code)
        raise CommandFailure(message, command=self.command, exit_code=self.exit_code)


class PreCheckResult(BaseModel):
    """Raw outcome of one pre-check."""

    success: bool
    output: str = ""
    warning: str | None = None
    error: str | None = None


CheckStatus = Literal["success", "warning", "error"]


class CheckOutcome(BaseModel):
    """Classified pre-check result, as shown to the operator."""

    name: str
    status: CheckStatus
    message: str = ""
    output: str = ""

    @property
    def passed(self) -> bool:
        return self.status in ("success", "warning")
