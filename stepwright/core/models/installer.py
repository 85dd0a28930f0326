"""
Installer configuration models — the declarative plan.

Loaded once per run from the configuration document and never
mutated afterwards (all models are frozen).  Keys are camelCase in
the document and snake_case in Python; both spellings are accepted.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _DocModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class InstallerInfo(_DocModel):
    """Installer identity shown in banners and audit entries."""

    name: str = "Installer"
    version: str = ""
    description: str = ""


class PreCheck(_DocModel):
    """One read-only diagnostic command run before installation."""

    name: str
    command: str
    expected_pattern: str | None = None
    expected_exit_code: int | None = None
    min_required: str | None = None
    type: Literal["diskSpace", "memory", "cpu"] | None = None
    error_message: str = ""
    safe: bool = False
    capture_as: str | None = None


class FieldOption(_DocModel):
    value: str
    label: str = ""


class ConfigField(_DocModel):
    """One user-entry field of the configuration form."""

    id: str
    label: str = ""
    type: Literal["text", "password", "number", "boolean", "select"] = "text"
    required: bool = False
    placeholder: str = ""
    validation: str | None = None   # regex, text fields only
    description: str = ""
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    default: Any = None
    options: list[FieldOption] = Field(default_factory=list)

    @property
    def display_label(self) -> str:
        return self.label or self.id


class PromptOption(_DocModel):
    value: str
    label: str = ""
    selected: bool = False


class ShellCommand(_DocModel):
    """``command`` variant — runs an external process."""

    type: Literal["command"] = "command"
    cmd: str = ""
    description: str = ""
    safe: bool = False
    sensitive: bool = False
    timeout: int | None = None              # milliseconds
    capture_as: str | None = None
    default_value: str | None = None
    condition: str | None = None
    expected_exit_code: int | None = None


class PromptCommand(_DocModel):
    """``prompt`` variant — suspends the run until a value is supplied."""

    type: Literal["prompt"] = "prompt"
    description: str = ""
    prompt_type: Literal["input", "password", "confirm", "select", "multiselect"] = "input"
    message: str = ""
    options: list[PromptOption] = Field(default_factory=list)
    default: Any = None
    validation: str | None = None
    allow_empty: bool = False
    required: bool = False
    capture_as: str | None = None
    condition: str | None = None

    @property
    def option_values(self) -> list[str]:
        return [o.value for o in self.options]


class DisplayCommand(_DocModel):
    """``display`` variant — informational, auto-dismissed."""

    type: Literal["display"] = "display"
    description: str = ""
    title: str | None = None
    content: list[str] = Field(default_factory=list)
    condition: str | None = None


InstallCommand = Annotated[
    Union[ShellCommand, PromptCommand, DisplayCommand],
    Field(discriminator="type"),
]


class InstallStep(_DocModel):
    """An ordered, named group of commands, optionally gated by a condition."""

    name: str
    description: str = ""
    condition: str | None = None
    commands: list[InstallCommand] = Field(default_factory=list)

    @field_validator("commands", mode="before")
    @classmethod
    def _default_command_type(cls, value: Any) -> Any:
        # ``type`` is optional in the document and defaults to "command"
        if not isinstance(value, list):
            return value
        normalised = []
        for item in value:
            if isinstance(item, dict) and "type" not in item:
                item = {**item, "type": "command"}
            normalised.append(item)
        return normalised


class PostInstallCommand(_DocModel):
    """A best-effort command run after all steps complete."""

    name: str
    command: str
    safe: bool = False


class InstallerConfig(_DocModel):
    """Root of the configuration document."""

    installer: InstallerInfo = Field(default_factory=InstallerInfo)
    pre_checks: list[PreCheck] = Field(default_factory=list)
    config_fields: list[ConfigField] = Field(default_factory=list)
    install_steps: list[InstallStep] = Field(default_factory=list)
    post_install: list[PostInstallCommand] = Field(default_factory=list)

    @property
    def is_advanced(self) -> bool:
        """Whether the document uses features beyond the basic form + steps."""
        if self.pre_checks or self.post_install:
            return True
        return any(
            cmd.type != "command"
            for step in self.install_steps
            for cmd in step.commands
        )
