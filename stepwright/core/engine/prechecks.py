"""
Pre-check Runner — read-only diagnostics before installation.

Each check goes through the Safety Classifier and the process runner,
then is classified:

    success   exit ok (and pattern matched, and threshold met)
    warning   exit ok, but a ``minRequired`` threshold is not met or
              cannot be verified — advisory only
    error     exit failed, or output did not match ``expectedPattern``

Checks run sequentially and independently.  Whether to proceed is the
caller's decision (``PreCheckReport.passed`` / ``require_passed``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from stepwright.adapters.base import ProcessRunner
from stepwright.core.engine.safety import classify
from stepwright.core.errors import PreCheckFailure
from stepwright.core.models.installer import PreCheck
from stepwright.core.models.results import CheckOutcome, PreCheckResult

logger = logging.getLogger(__name__)

PRECHECK_TIMEOUT_MS = 10_000

_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "M": 1024**2,
    "G": 1024**3,
    "T": 1024**4,
    "P": 1024**5,
}

_QUANTITY_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGTP]?)(?:i?B)?\s*$", re.IGNORECASE)


def parse_quantity(text: str) -> float | None:
    """Parse ``"20G"``, ``"512 MiB"``, ``"8"`` into a number (bytes for sizes)."""
    m = _QUANTITY_RE.match(text or "")
    if not m:
        return None
    return float(m.group(1)) * _UNITS[m.group(2).upper()]


def _threshold_warning(check: PreCheck, output: str) -> str | None:
    """Advisory message when a ``minRequired`` threshold is not satisfied."""
    if not check.min_required or check.type is None:
        return None
    required = parse_quantity(check.min_required)
    available = parse_quantity(output.strip())
    if required is None or available is None:
        return f"Ensure at least {check.min_required} is available"
    if available < required:
        return f"Only {output.strip()} available, {check.min_required} recommended"
    return None


def run_pre_check(check: PreCheck, runner: ProcessRunner) -> PreCheckResult:
    """Execute one check and interpret its output.

    Never raises: every failure is a ``PreCheckResult`` with
    ``success=False``.
    """
    plan = classify(check.command, check.safe)
    result = runner.run(
        plan.executed,
        timeout_ms=PRECHECK_TIMEOUT_MS,
        label=check.name,
    )
    output = result.output

    expected_code = check.expected_exit_code
    if expected_code is not None:
        ok = result.exit_code == expected_code
    else:
        ok = result.success
    if not ok:
        return PreCheckResult(
            success=False,
            output=output,
            error=result.error or f"Exit code {result.exit_code}",
        )

    if check.expected_pattern:
        try:
            matched = re.search(check.expected_pattern, output, re.IGNORECASE)
        except re.error as e:
            return PreCheckResult(
                success=False,
                output=output,
                error=f"Invalid expected pattern {check.expected_pattern!r}: {e}",
            )
        if not matched:
            return PreCheckResult(
                success=False,
                output=output,
                error=f"Output doesn't match expected pattern: {check.expected_pattern}",
            )

    return PreCheckResult(
        success=True,
        output=output,
        warning=_threshold_warning(check, output),
    )


def classify_outcome(check: PreCheck, result: PreCheckResult) -> CheckOutcome:
    if not result.success:
        message = check.error_message or "Check failed"
        if result.error:
            message = f"{message} ({result.error})"
        return CheckOutcome(name=check.name, status="error", message=message, output=result.output)
    if result.warning:
        return CheckOutcome(name=check.name, status="warning", message=result.warning, output=result.output)
    return CheckOutcome(name=check.name, status="success", message="Check passed", output=result.output)


@dataclass
class PreCheckReport:
    """Outcomes of a full pre-check battery."""

    outcomes: list[CheckOutcome] = field(default_factory=list)
    captured: dict[str, str] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        """Proceed only if every check is success or warning."""
        return all(o.passed for o in self.outcomes)

    @property
    def failed(self) -> list[str]:
        return [o.name for o in self.outcomes if not o.passed]

    @property
    def warnings(self) -> list[CheckOutcome]:
        return [o for o in self.outcomes if o.status == "warning"]

    def require_passed(self) -> None:
        """Raise ``PreCheckFailure`` unless every check passed."""
        if not self.passed:
            raise PreCheckFailure(self.failed)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "checks": [o.model_dump(mode="json") for o in self.outcomes],
            "captured": dict(self.captured),
        }


class PreCheckRunner:
    """Runs a battery of pre-checks through a process runner."""

    def __init__(self, runner: ProcessRunner):
        self._runner = runner

    def run(
        self,
        checks: list[PreCheck],
        on_result: Callable[[CheckOutcome], None] | None = None,
    ) -> PreCheckReport:
        report = PreCheckReport()
        for check in checks:
            result = run_pre_check(check, self._runner)
            outcome = classify_outcome(check, result)
            report.outcomes.append(outcome)

            if check.capture_as and result.success:
                report.captured[check.capture_as] = result.output.strip()

            logger.info("Pre-check %s: %s (%s)", check.name, outcome.status, outcome.message)
            if on_result is not None:
                on_result(outcome)
        return report
