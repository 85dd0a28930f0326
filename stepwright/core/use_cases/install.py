"""
Install use case — the orchestration boundary for front ends.

An ``InstallerSession`` is the explicit run context: it holds the
loaded config, the user's validated values and pre-check captures,
and builds a fresh ``Orchestrator`` for every run.  Nothing here is
process-global.

    session = InstallerSession.load(path, runner=ShellProcessRunner())
    errors = session.save_user_config({"hostname": "box"})
    report = session.run_prechecks()
    result = session.run(answer=lambda pending, error: pending.default)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Mapping

from stepwright.adapters.base import ProcessRunner
from stepwright.adapters.shell.process import ShellProcessRunner
from stepwright.core.config.loader import load_config
from stepwright.core.engine.conditions import is_met
from stepwright.core.engine.events import RunEvents
from stepwright.core.engine.fields import field_defaults, validate_user_config
from stepwright.core.engine.orchestrator import (
    DISPLAY_DELAY_S,
    Orchestrator,
    OrchestratorState,
    PendingPrompt,
    RunResult,
)
from stepwright.core.engine.prechecks import PreCheckReport, PreCheckRunner
from stepwright.core.errors import PromptValidationError
from stepwright.core.models.installer import ConfigField, InstallerConfig, InstallStep
from stepwright.core.models.results import CheckOutcome
from stepwright.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)

# (pending prompt, previous rejection message or None) -> answer
AnswerFn = Callable[[PendingPrompt, "str | None"], Any]

MAX_PROMPT_ATTEMPTS = 5


def answer_with_defaults(pending: PendingPrompt, error: str | None) -> Any:
    """Non-interactive answerer: every prompt takes its default."""
    return pending.default


class InstallerSession:
    """One installer document plus the values collected for it."""

    def __init__(
        self,
        config: InstallerConfig,
        runner: ProcessRunner | None = None,
        *,
        config_path: Path | None = None,
        events: RunEvents | None = None,
        audit: AuditWriter | None = None,
        display_delay: float = DISPLAY_DELAY_S,
    ):
        self.config = config
        self.config_path = config_path
        self.runner = runner or ShellProcessRunner()
        self.events = events if events is not None else RunEvents()
        self.audit = audit
        self.display_delay = display_delay

        self._user_config: dict[str, Any] = field_defaults(config.config_fields)
        self._captured: dict[str, Any] = {}

    @classmethod
    def load(cls, path: Path | None = None, **kwargs: Any) -> InstallerSession:
        """Load the document (discovering it if *path* is None).

        Raises:
            ConfigLoadError: if the document is missing or invalid.
        """
        return cls(load_config(path), config_path=path, **kwargs)

    # ── Config fields ───────────────────────────────────────────

    @property
    def config_fields(self) -> list[ConfigField]:
        return list(self.config.config_fields)

    @property
    def user_config(self) -> dict[str, Any]:
        return dict(self._user_config)

    def save_user_config(self, values: Mapping[str, Any]) -> dict[str, str]:
        """Validate and store the user's form values.

        Returns:
            ``field id → message`` for every invalid field.  Values are
            only stored when the map is empty.
        """
        merged = {**self._user_config, **values}
        config, errors = validate_user_config(self.config.config_fields, merged)
        if errors:
            logger.info("User config rejected: %s", ", ".join(sorted(errors)))
            return errors
        self._user_config = config
        logger.debug("User config saved (%d values)", len(config))
        return {}

    def variables(self) -> dict[str, Any]:
        """Seed for the next run: user values, then pre-check captures."""
        return {**self._user_config, **self._captured}

    # ── Pre-checks ──────────────────────────────────────────────

    def run_prechecks(
        self,
        on_result: Callable[[CheckOutcome], None] | None = None,
    ) -> PreCheckReport:
        report = PreCheckRunner(self.runner).run(list(self.config.pre_checks), on_result=on_result)
        self._captured.update(report.captured)
        return report

    # ── Steps ───────────────────────────────────────────────────

    def get_install_steps(self) -> list[InstallStep]:
        """Steps whose condition holds against the current values."""
        variables = self.variables()
        return [s for s in self.config.install_steps if is_met(s.condition, variables)]

    def create_orchestrator(self, run_id: str | None = None) -> Orchestrator:
        return Orchestrator(
            self.config,
            self.variables(),
            self.runner,
            events=self.events,
            display_delay=self.display_delay,
            run_id=run_id,
        )

    # ── Run ─────────────────────────────────────────────────────

    def run(self, answer: AnswerFn = answer_with_defaults, run_id: str | None = None) -> RunResult:
        """Drive a full run, answering prompts through *answer*.

        A prompt that is still rejected after ``MAX_PROMPT_ATTEMPTS``
        answers leaves the run parked in SUSPENDED.
        """
        orchestrator = self.create_orchestrator(run_id)
        start = time.monotonic()
        orchestrator.start()

        while orchestrator.state == OrchestratorState.SUSPENDED:
            pending = orchestrator.pending_prompt
            error: str | None = None
            for _ in range(MAX_PROMPT_ATTEMPTS):
                try:
                    orchestrator.resume(answer(pending, error))
                    break
                except PromptValidationError as exc:
                    error = str(exc)
            else:
                logger.warning("Prompt %r not answered, run left suspended", pending.message)
                break

        result = orchestrator.result()
        if orchestrator.state == OrchestratorState.SUSPENDED:
            result.error = f"Prompt not answered: {orchestrator.pending_prompt.message}"

        duration_ms = int((time.monotonic() - start) * 1000)
        self._write_audit(result, duration_ms)
        return result

    def _write_audit(self, result: RunResult, duration_ms: int) -> None:
        if self.audit is None:
            return
        self.audit.write(AuditEntry(
            run_id=result.run_id,
            installer=self.config.installer.name,
            installer_version=self.config.installer.version,
            status=str(result.state),
            steps_completed=result.steps_completed,
            steps_skipped=result.steps_skipped,
            duration_ms=duration_ms,
            errors=[result.error] if result.error else [],
            variables=result.variables,
            log=result.log,
        ))
