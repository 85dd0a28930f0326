"""
Template Resolver — ``{{name}}`` substitution.

Two rendering contexts:

    command   values go into a shell command line
              (None/missing → "", booleans → "true"/"false",
              lists → "a,b")
    display   values go in front of a human
              (None/missing/"" → "<not set>", booleans → "Yes"/"No",
              lists → "a, b")

Unresolved placeholders are substituted, never raised.  Pure: no
side effects, same inputs give the same output.
"""

from __future__ import annotations

import re
from typing import Any, Literal, Mapping

RenderContext = Literal["command", "display"]

NOT_SET = "<not set>"

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_.\-]*)\s*\}\}")


def render_value(value: Any, context: RenderContext = "command") -> str:
    """String form of a single variable value."""
    if context == "display":
        if value is None or value == "" or value == []:
            return NOT_SET
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, (list, tuple)):
            return ", ".join(render_value(v, "command") for v in value)
    else:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (list, tuple)):
            return ",".join(render_value(v, "command") for v in value)

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve(
    template: str,
    variables: Mapping[str, Any],
    context: RenderContext = "command",
) -> str:
    """Replace every ``{{key}}`` in *template* with its rendered value."""
    if "{{" not in template:
        return template

    def _sub(match: re.Match[str]) -> str:
        return render_value(variables.get(match.group(1)), context)

    return PLACEHOLDER_RE.sub(_sub, template)


def placeholders(template: str) -> list[str]:
    """Variable names referenced by *template*, in order of appearance."""
    return PLACEHOLDER_RE.findall(template)


def unresolved(template: str, variables: Mapping[str, Any]) -> list[str]:
    """Referenced names that are absent from *variables*."""
    return [name for name in placeholders(template) if name not in variables]
