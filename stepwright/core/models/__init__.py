"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from stepwright.core.models import InstallerConfig, InstallStep, ExecutionResult
"""

from stepwright.core.models.installer import (
    ConfigField,
    DisplayCommand,
    FieldOption,
    InstallCommand,
    InstallerConfig,
    InstallerInfo,
    InstallStep,
    PostInstallCommand,
    PreCheck,
    PromptCommand,
    PromptOption,
    ShellCommand,
)
from stepwright.core.models.results import (
    REDACTED,
    CheckOutcome,
    ExecutionResult,
    PreCheckResult,
)
from stepwright.core.models.run_log import LogLine, RunLog

__all__ = [
    # installer.py
    "ConfigField",
    "DisplayCommand",
    "FieldOption",
    "InstallCommand",
    "InstallStep",
    "InstallerConfig",
    "InstallerInfo",
    "PostInstallCommand",
    "PreCheck",
    "PromptCommand",
    "PromptOption",
    "ShellCommand",
    # results.py
    "CheckOutcome",
    "ExecutionResult",
    "PreCheckResult",
    "REDACTED",
    # run_log.py
    "LogLine",
    "RunLog",
]
