"""
Prompt answers — coercion and validation (pure).

Turns whatever the front end supplied for a ``prompt`` command into
the value that gets captured, or explains why it cannot be accepted.
No I/O.
"""

from __future__ import annotations

import re
from typing import Any

from stepwright.core.errors import PromptValidationError
from stepwright.core.models.installer import PromptCommand

_TRUE_WORDS = {"yes", "y", "true", "1", "on"}

REQUIRED_MESSAGE = "This field is required"


def default_answer(prompt: PromptCommand) -> Any:
    """The value a prompt takes when answered with ``None``."""
    if prompt.prompt_type == "multiselect" and prompt.default is None:
        return [o.value for o in prompt.options if o.selected]
    if prompt.prompt_type == "confirm" and prompt.default is None:
        return False
    return prompt.default


def coerce_answer(prompt: PromptCommand, value: Any) -> Any:
    """Convert a raw answer to the prompt's native type."""
    if value is None:
        value = default_answer(prompt)

    kind = prompt.prompt_type
    if kind == "confirm":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_WORDS
    if kind == "multiselect":
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return [str(v) for v in value]
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _validate(prompt: PromptCommand, value: Any) -> str | None:
    """Return an error message for *value*, or ``None`` if valid."""
    kind = prompt.prompt_type

    if kind == "confirm":
        return None

    if kind == "multiselect":
        if prompt.required and not value:
            return REQUIRED_MESSAGE
        allowed = prompt.option_values
        if allowed:
            unknown = [v for v in value if v not in allowed]
            if unknown:
                return f"Unknown option: {', '.join(unknown)}"
        return None

    if not value:
        if prompt.required and not prompt.allow_empty:
            return REQUIRED_MESSAGE
        return None

    if kind == "select" and prompt.options and value not in prompt.option_values:
        return f"Must be one of: {', '.join(prompt.option_values)}"

    if prompt.validation:
        try:
            if not re.search(prompt.validation, value):
                return "Invalid format"
        except re.error:
            return f"Invalid validation pattern: {prompt.validation}"

    return None


def accept_answer(prompt: PromptCommand, value: Any) -> Any:
    """Coerce and validate *value*.

    Returns:
        The value to capture.

    Raises:
        PromptValidationError: if the value breaks the prompt's rules.
    """
    coerced = coerce_answer(prompt, value)
    error = _validate(prompt, coerced)
    if error:
        raise PromptValidationError(error)
    return coerced
