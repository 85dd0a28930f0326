"""
Variable Store — name → value mapping for one run.

Seeded from the user's configuration values, then extended by
captured command output and prompt answers.  Later writes overwrite
earlier ones.  Insertion order only matters for human-readable
summaries.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, Mapping

# Keys whose values must never appear in clear text in logs or summaries
SENSITIVE_KEY_PATTERN = re.compile(
    r"password|passphrase|passwd|secret|token|api[_-]?key|private[_-]?key",
    re.IGNORECASE,
)

MASK = "********"


def is_sensitive_key(key: str) -> bool:
    return bool(SENSITIVE_KEY_PATTERN.search(key))


class VariableStore:
    """Mutable variable mapping owned by a single orchestrator run."""

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._values: dict[str, Any] = dict(initial or {})
        self._sensitive: set[str] = set()

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any, *, sensitive: bool = False) -> None:
        self._values[key] = value
        if sensitive:
            self._sensitive.add(key)

    def update(self, values: Mapping[str, Any]) -> None:
        self._values.update(values)

    def is_sensitive(self, key: str) -> bool:
        return key in self._sensitive or is_sensitive_key(key)

    def display_value(self, key: str) -> str:
        """Value as it may appear in the Run Log."""
        if self.is_sensitive(key):
            return MASK
        value = self._values.get(key)
        if isinstance(value, list):
            return ", ".join(str(v) for v in value)
        return str(value)

    def secret_values(self) -> list[str]:
        """Rendered forms of every non-empty sensitive value, longest first."""
        found: set[str] = set()
        for key, value in self._values.items():
            if not self.is_sensitive(key) or value is None or isinstance(value, bool):
                continue
            if isinstance(value, list):
                items = [str(v) for v in value if v is not None and v != ""]
                found.update(items)
                if items:
                    found.add(", ".join(items))
                    found.add(",".join(items))
            else:
                found.add(str(value))
        found.discard("")
        return sorted(found, key=len, reverse=True)

    def redact(self, text: str) -> str:
        """Replace every sensitive value inside *text* with the mask."""
        if not text:
            return text
        for secret in self.secret_values():
            text = text.replace(secret, MASK)
        return text

    def snapshot(self) -> dict[str, Any]:
        """Read-only copy for template resolution and condition evaluation."""
        return dict(self._values)

    def masked(self) -> dict[str, Any]:
        """Copy with sensitive values replaced by a mask."""
        return {
            key: (MASK if self.is_sensitive(key) else value)
            for key, value in self._values.items()
        }

    def public_items(self) -> list[tuple[str, Any]]:
        """Non-sensitive entries in insertion order."""
        return [
            (key, value)
            for key, value in self._values.items()
            if not self.is_sensitive(key)
        ]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)
