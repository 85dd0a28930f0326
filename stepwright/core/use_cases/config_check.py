"""
Config check use case — validate the installer document and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from stepwright.core.config.loader import find_config_file, load_config
from stepwright.core.engine.conditions import parse_condition
from stepwright.core.engine.templates import placeholders
from stepwright.core.errors import ConditionEvalError, ConfigLoadError
from stepwright.core.models.installer import InstallerConfig, PromptCommand, ShellCommand


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: InstallerConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        cfg = self.config
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "installer": cfg.installer.name if cfg else None,
            "advanced": cfg.is_advanced if cfg else False,
            "pre_check_count": len(cfg.pre_checks) if cfg else 0,
            "field_count": len(cfg.config_fields) if cfg else 0,
            "step_count": len(cfg.install_steps) if cfg else 0,
        }


def _known_names(config: InstallerConfig) -> set[str]:
    """Every variable a run can define: field ids and capture targets."""
    names = {f.id for f in config.config_fields}
    names.update(c.capture_as for c in config.pre_checks if c.capture_as)
    for step in config.install_steps:
        for cmd in step.commands:
            if isinstance(cmd, (ShellCommand, PromptCommand)) and cmd.capture_as:
                names.add(cmd.capture_as)
    return names


def _command_texts(config: InstallerConfig) -> list[tuple[str, str]]:
    texts: list[tuple[str, str]] = []
    for step in config.install_steps:
        for cmd in step.commands:
            if isinstance(cmd, ShellCommand):
                texts.append((step.name, cmd.cmd))
            elif isinstance(cmd, PromptCommand):
                texts.append((step.name, cmd.message))
            else:
                texts.extend((step.name, line) for line in cmd.content)
    texts.extend((post.name, post.command) for post in config.post_install)
    return texts


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the installer document and report issues.

    Args:
        config_path: Optional explicit document path.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.errors.append("No installer configuration found.")
        return result
    result.config_path = config_path

    try:
        config = load_config(config_path)
    except ConfigLoadError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    # Semantic checks
    if not config.install_steps:
        result.warnings.append("No install steps defined. The installer has nothing to do.")

    ids = [f.id for f in config.config_fields]
    dupes = sorted({i for i in ids if ids.count(i) > 1})
    if dupes:
        result.errors.append(f"Duplicate config field ids: {', '.join(dupes)}")

    for step in config.install_steps:
        conditions = [step.condition] + [c.condition for c in step.commands]
        for expr in conditions:
            if not expr or not expr.strip():
                continue
            try:
                parse_condition(expr.strip())
            except ConditionEvalError as e:
                result.errors.append(f"{step.name}: {e}")

    known = _known_names(config)
    for owner, text in _command_texts(config):
        for name in placeholders(text):
            if name not in known:
                result.warnings.append(
                    f"{owner}: '{{{{{name}}}}}' is never defined and will render empty"
                )

    result.valid = not result.errors
    return result
