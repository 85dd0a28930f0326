"""
Safety Classifier — real execution vs. simulated echo.

A command runs for real only when its ``safe`` flag is set, or when
it is an inherently read-only inspection command.  Everything else
is rewritten to ``echo 'Would run: <command>'`` so dry-run and real
runs go through one execution path.

Classification always happens on the fully resolved command text.

The allow-list only admits a single plain invocation.  Any pipe,
chain, redirect or substitution disqualifies the whole command, so
``df -h / | tail -1`` is simulated even though both halves are
listed.  Pre-checks and commands written that way need an explicit
``safe: true`` to run for real.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Read-only / inspection commands.  Multi-word entries must match
# token-for-token (``ip route`` allows ``ip route show``, not ``ip link``).
INHERENTLY_SAFE: tuple[str, ...] = (
    "uname",
    "hostname",
    "whoami",
    "id",
    "pwd",
    "date",
    "df",
    "free",
    "nproc",
    "ip route",
    "ip addr",
    "ls",
    "echo",
    "cat /etc/os-release",
    "systemctl list-units",
    "which",
    "test",
    "head",
    "tail",
    "wc",
)

# Anything that chains, pipes, redirects or substitutes could smuggle
# a mutating command behind an allow-listed prefix.
_SHELL_METACHARS = (";", "&", "|", ">", "<", "`", "$(", "\n")

SIMULATED_PREFIX = "Would run: "


@dataclass(frozen=True)
class Classification:
    """Result of classifying one command."""

    original: str
    executed: str
    simulated: bool


def _tokens(command: str) -> list[str] | None:
    try:
        return shlex.split(command)
    except ValueError:
        return None


def is_inherently_safe(command: str) -> bool:
    """Whether *command* is a plain invocation of an allow-listed command.

    Any of ``_SHELL_METACHARS`` makes this false, including a pipeline
    made only of listed commands.
    """
    text = command.strip()
    if not text or any(ch in text for ch in _SHELL_METACHARS):
        return False
    tokens = _tokens(text)
    if not tokens:
        return False
    for entry in INHERENTLY_SAFE:
        entry_tokens = entry.split()
        if tokens[: len(entry_tokens)] == entry_tokens:
            return True
    return False


def simulate(command: str) -> str:
    """Shell text that prints what *command* would have done."""
    return "echo " + shlex.quote(SIMULATED_PREFIX + command)


def classify(command: str, safe: bool = False) -> Classification:
    """Decide whether *command* may run for real.

    Args:
        command: Fully resolved command text.
        safe: The command's explicit ``safe`` flag.
    """
    if safe or is_inherently_safe(command):
        return Classification(original=command, executed=command, simulated=False)
    logger.debug("Simulating non-safe command")
    return Classification(original=command, executed=simulate(command), simulated=True)
