"""
Error taxonomy — every failure mode the installer distinguishes.

Only ``ConfigLoadError`` is fatal before a run starts.  The rest are
raised inside the engine and absorbed or escalated by the orchestrator
according to the command's fallbacks (``safe``, ``captureAs`` +
``defaultValue``).  Process runners never raise these; they return
``ExecutionResult`` values that can be escalated with
``ExecutionResult.raise_for_status()``.
"""

from __future__ import annotations


class InstallerError(Exception):
    """Base class for all installer errors."""


class ConfigLoadError(InstallerError):
    """Configuration document is missing, unreadable, or invalid."""


class ConditionEvalError(InstallerError):
    """A condition expression could not be parsed or evaluated."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid condition {expression!r}: {reason}")


class CommandFailure(InstallerError):
    """A command exited non-zero or could not be spawned."""

    def __init__(self, message: str, *, command: str = "", exit_code: int | None = None):
        self.command = command
        self.exit_code = exit_code
        super().__init__(message)


class CommandTimeout(CommandFailure):
    """A command exceeded its allotted time and was killed."""


class PromptValidationError(InstallerError):
    """A value supplied for a prompt failed its validation rules."""


class PreCheckFailure(InstallerError):
    """One or more pre-installation checks failed."""

    def __init__(self, failed: list[str]):
        self.failed = failed
        super().__init__(f"Pre-checks failed: {', '.join(failed)}")
