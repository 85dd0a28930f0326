"""
Config field form — defaults, coercion and validation (pure).

Values validated here seed the Variable Store under each field's
``id``.  No I/O, no subprocess.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from stepwright.core.models.installer import ConfigField

_TRUE_WORDS = {"true", "yes", "y", "1", "on"}
_FALSE_WORDS = {"false", "no", "n", "0", "off", ""}


def field_defaults(fields: list[ConfigField]) -> dict[str, Any]:
    """Initial form values: declared defaults, ``False`` for booleans."""
    defaults: dict[str, Any] = {}
    for f in fields:
        if f.default is not None:
            defaults[f.id] = f.default
        elif f.type == "boolean":
            defaults[f.id] = False
    return defaults


def coerce_field(field: ConfigField, value: Any) -> Any:
    """Convert a raw (usually string) value to the field's native type.

    Values that cannot be converted are returned unchanged so that
    ``validate_field`` can report them.
    """
    if value is None:
        return None
    if field.type == "boolean" and isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        return value
    if field.type == "number" and isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                return value
    return value


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def validate_field(field: ConfigField, value: Any) -> str | None:
    """Validate a single value against its field definition.

    Returns:
        Error message string, or ``None`` if valid.
    """
    label = field.display_label

    if field.required and (_is_empty(value) or (field.type == "boolean" and value is False)):
        return f"{label} is required"
    if _is_empty(value):
        return None

    if field.type == "text" and field.validation:
        if not re.search(field.validation, str(value)):
            return f"Invalid format for {label}"

    elif field.type == "password":
        text = str(value)
        if field.min_length is not None and len(text) < field.min_length:
            return f"Minimum {field.min_length} characters required"
        if field.max_length is not None and len(text) > field.max_length:
            return f"Maximum {field.max_length} characters allowed"

    elif field.type == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f"{label} must be a number"
        if field.min is not None and value < field.min:
            return f"Minimum value is {_fmt(field.min)}"
        if field.max is not None and value > field.max:
            return f"Maximum value is {_fmt(field.max)}"

    elif field.type == "boolean":
        if not isinstance(value, bool):
            return f"{label} must be true or false"

    elif field.type == "select" and field.options:
        allowed = [o.value for o in field.options]
        if value not in allowed:
            return f"{label} must be one of: {', '.join(allowed)}"

    return None


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def validate_user_config(
    fields: list[ConfigField],
    values: Mapping[str, Any],
) -> tuple[dict[str, Any], dict[str, str]]:
    """Apply defaults, coerce, and validate a complete form.

    Returns:
        ``(config, errors)`` — the coerced values (defaults filled in,
        extra keys preserved) and a ``field id → message`` map that is
        empty when the form is valid.
    """
    config: dict[str, Any] = field_defaults(fields)
    config.update(values)
    errors: dict[str, str] = {}
    for f in fields:
        value = coerce_field(f, config.get(f.id))
        if f.id in config or value is not None:
            config[f.id] = value
        error = validate_field(f, value)
        if error:
            errors[f.id] = error
    return config, errors
