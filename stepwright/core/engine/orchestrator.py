"""
Step Orchestrator — the resumable state machine that drives one run.

States:
    IDLE      → constructed with a config and the user's values.
    RUNNING   → walking steps and commands in order.
    SUSPENDED → a prompt command is waiting for ``resume(value)``.
    COMPLETED → every step done, post-install attempted.
    FAILED    → a non-safe command failed without a fallback.

Transitions:
    IDLE → RUNNING:        start()
    RUNNING → SUSPENDED:   prompt command reached
    SUSPENDED → RUNNING:   resume() with a valid value
    RUNNING → COMPLETED:   all steps walked
    RUNNING → FAILED:      unabsorbed command failure

COMPLETED and FAILED are final.  A fresh run needs a new instance.

The orchestrator is the only writer of its Variable Store and Run Log.
Everything observers need is published on its ``RunEvents`` channel,
in the exact order it happens.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Callable, Mapping

from stepwright.adapters.base import DEFAULT_TIMEOUT_MS, OutputChunk, ProcessRunner
from stepwright.core.engine import events as ev
from stepwright.core.engine.conditions import evaluate_condition, is_met
from stepwright.core.engine.events import RunEvents
from stepwright.core.engine.prompts import accept_answer, default_answer
from stepwright.core.engine.safety import classify
from stepwright.core.engine.templates import render_value, resolve
from stepwright.core.engine.variables import VariableStore
from stepwright.core.errors import CommandFailure, ConditionEvalError, PromptValidationError
from stepwright.core.models.installer import (
    DisplayCommand,
    InstallerConfig,
    InstallStep,
    PostInstallCommand,
    PromptCommand,
    ShellCommand,
)
from stepwright.core.models.results import REDACTED, ExecutionResult
from stepwright.core.models.run_log import RunLog

logger = logging.getLogger(__name__)

DISPLAY_DELAY_S = 3.0


class OrchestratorState(StrEnum):
    """Run lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"


_TERMINAL = (OrchestratorState.COMPLETED, OrchestratorState.FAILED)


def generate_run_id() -> str:
    """Generate a unique run ID: run-YYYYMMDD-HHMMSS-xxxxxx."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"


@dataclass
class PendingPrompt:
    """The prompt a suspended run is waiting on."""

    step_index: int
    command_index: int
    step_name: str
    prompt: PromptCommand
    message: str

    @property
    def default(self) -> Any:
        return default_answer(self.prompt)

    def to_dict(self) -> dict:
        p = self.prompt
        return {
            "step": self.step_name,
            "prompt_type": p.prompt_type,
            "message": self.message,
            "description": p.description,
            "options": [o.model_dump() for o in p.options],
            "default": self.default,
            "required": p.required,
            "allow_empty": p.allow_empty,
            "capture_as": p.capture_as,
        }


@dataclass
class RunResult:
    """Summary of one orchestrator run."""

    run_id: str
    success: bool
    state: OrchestratorState
    error: str | None = None
    log: list[dict] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)
    steps_completed: list[str] = field(default_factory=list)
    steps_skipped: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "run_id": self.run_id,
            "success": self.success,
            "state": str(self.state),
            "steps_completed": self.steps_completed,
            "steps_skipped": self.steps_skipped,
            "variables": self.variables,
            "log": self.log,
        }
        if self.error:
            result["error"] = self.error
        return result


class Orchestrator:
    """Walks an installer config's steps for exactly one run.

    Args:
        config: The loaded, immutable installer configuration.
        initial_variables: User configuration values seeding the store.
        runner: Process runner every command is dispatched to.
        events: Observer channel; a private one is created if omitted.
        display_delay: Seconds a display command stays up before the
            run auto-advances.
        run_id: Identifier for events and audit; generated if omitted.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        config: InstallerConfig,
        initial_variables: Mapping[str, Any] | None,
        runner: ProcessRunner,
        *,
        events: RunEvents | None = None,
        display_delay: float = DISPLAY_DELAY_S,
        run_id: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._config = config
        self._runner = runner
        self._events = events if events is not None else RunEvents()
        self._display_delay = display_delay
        self._sleep = sleep
        self.run_id = run_id or generate_run_id()

        self._variables = VariableStore(initial_variables)
        self._log = RunLog()
        self._state = OrchestratorState.IDLE
        self._step_index = 0
        self._command_index = 0
        self._in_step = False
        self._pending: PendingPrompt | None = None
        self._error: str | None = None
        self._steps_completed: list[str] = []
        self._steps_skipped: list[str] = []

    # ── Properties ──────────────────────────────────────────────

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def events(self) -> RunEvents:
        return self._events

    @property
    def pending_prompt(self) -> PendingPrompt | None:
        return self._pending

    @property
    def variables(self) -> dict[str, Any]:
        """Current variables, sensitive values masked."""
        return self._variables.masked()

    @property
    def log(self) -> RunLog:
        return self._log

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_finished(self) -> bool:
        return self._state in _TERMINAL

    def get_install_steps(self) -> list[InstallStep]:
        """Steps whose condition holds against the current variables."""
        snapshot = self._variables.snapshot()
        return [s for s in self._config.install_steps if is_met(s.condition, snapshot)]

    def result(self) -> RunResult:
        return RunResult(
            run_id=self.run_id,
            success=self._state == OrchestratorState.COMPLETED,
            state=self._state,
            error=self._error,
            log=self._log.to_list(),
            variables=self.variables,
            steps_completed=list(self._steps_completed),
            steps_skipped=list(self._steps_skipped),
        )

    # ── Lifecycle ───────────────────────────────────────────────

    def start(self) -> OrchestratorState:
        """Begin the run; returns when it suspends or finishes."""
        if self._state != OrchestratorState.IDLE:
            raise RuntimeError(f"Cannot start a run in state {self._state}")

        name = self._config.installer.name
        self._state = OrchestratorState.RUNNING
        self._log.append("info", f"Starting installation: {name}")
        self._events.publish(
            ev.RUN_STARTED,
            key=self.run_id,
            data={"installer": name, "steps": len(self._config.install_steps)},
        )
        logger.info("Run %s started (%d steps)", self.run_id, len(self._config.install_steps))
        self._advance()
        return self._state

    def resume(self, value: Any) -> OrchestratorState:
        """Answer the pending prompt and continue the run.

        Raises:
            PromptValidationError: if *value* is rejected.  The run stays
                suspended on the same prompt, which is re-announced.
        """
        if self._state != OrchestratorState.SUSPENDED or self._pending is None:
            raise RuntimeError(f"Cannot resume a run in state {self._state}")

        pending = self._pending
        try:
            answer = accept_answer(pending.prompt, value)
        except PromptValidationError as exc:
            logger.info("Prompt answer rejected: %s", exc)
            self._events.publish(
                ev.PROMPT_INVALID,
                key=pending.step_name,
                data={"error": self._variables.redact(str(exc)), "message": pending.message},
            )
            self._events.publish(ev.PROMPT_REQUESTED, key=pending.step_name, data=pending.to_dict())
            raise

        self._pending = None
        if pending.prompt.capture_as:
            self._capture(
                pending.prompt.capture_as,
                answer,
                sensitive=pending.prompt.prompt_type == "password",
            )
        self._state = OrchestratorState.RUNNING
        self._command_index = pending.command_index + 1
        self._advance()
        return self._state

    # ── Walk ────────────────────────────────────────────────────

    def _advance(self) -> None:
        steps = self._config.install_steps
        while self._state == OrchestratorState.RUNNING:
            if self._step_index >= len(steps):
                self._complete()
                return

            step = steps[self._step_index]
            if not self._in_step:
                if not self._condition_holds(step.condition, step.name):
                    self._skip_step(step)
                    continue
                self._enter_step(step)

            if self._command_index >= len(step.commands):
                self._finish_step(step)
                continue

            command = step.commands[self._command_index]
            if not self._condition_holds(command.condition, step.name):
                self._skip_command(step, command)
            elif isinstance(command, PromptCommand):
                self._request_prompt(step, command)
                return
            elif isinstance(command, DisplayCommand):
                self._show_display(step, command)
            elif not self._execute(step, command):
                return
            self._command_index += 1

    def _condition_holds(self, expression: str | None, step_name: str) -> bool:
        if expression is None or not expression.strip():
            return True
        try:
            return evaluate_condition(expression, self._variables.snapshot())
        except ConditionEvalError as exc:
            logger.warning("%s in step %r, treating as false", exc, step_name)
            self._log.append("error", f"{step_name}: {exc}")
            return False

    def _enter_step(self, step: InstallStep) -> None:
        self._in_step = True
        self._command_index = 0
        self._log.append("step", f"▶ {step.name}")
        self._events.publish(
            ev.STEP_START,
            key=step.name,
            data={"name": step.name, "description": step.description, "index": self._step_index},
        )

    def _finish_step(self, step: InstallStep) -> None:
        self._log.append("success", f"✓ {step.name} completed")
        self._events.publish(ev.STEP_COMPLETE, key=step.name, data={"name": step.name})
        self._steps_completed.append(step.name)
        self._next_step()

    def _skip_step(self, step: InstallStep) -> None:
        self._log.append("info", f"⊘ Skipping: {step.name} (condition not met)")
        self._events.publish(
            ev.STEP_SKIPPED,
            key=step.name,
            data={"name": step.name, "condition": step.condition},
        )
        self._steps_skipped.append(step.name)
        self._next_step()

    def _next_step(self) -> None:
        self._in_step = False
        self._step_index += 1
        self._command_index = 0

    def _skip_command(self, step: InstallStep, command: Any) -> None:
        label = command.description or command.type
        self._log.append("info", f"⊘ Skipping: {label} (condition not met)")
        self._events.publish(
            ev.COMMAND_SKIPPED,
            key=step.name,
            data={"description": label, "condition": command.condition},
        )

    # ── Command variants ────────────────────────────────────────

    def _request_prompt(self, step: InstallStep, prompt: PromptCommand) -> None:
        message = self._variables.redact(
            resolve(prompt.message or prompt.description, self._variables.snapshot(), "display")
        )
        self._pending = PendingPrompt(
            step_index=self._step_index,
            command_index=self._command_index,
            step_name=step.name,
            prompt=prompt,
            message=message,
        )
        self._state = OrchestratorState.SUSPENDED
        self._log.append("info", f"⌨ User input required: {message}")
        self._events.publish(ev.PROMPT_REQUESTED, key=step.name, data=self._pending.to_dict())
        logger.debug("Run %s suspended on prompt in step %r", self.run_id, step.name)

    def _show_display(self, step: InstallStep, display: DisplayCommand) -> None:
        snapshot = self._variables.snapshot()
        redact = self._variables.redact
        title = redact(resolve(display.title or display.description, snapshot, "display"))
        content = [redact(resolve(line, snapshot, "display")) for line in display.content]

        self._log.append("info", f"📊 Displaying: {title}" if title else "📊 Displaying")
        for line in content:
            self._log.append("output", line)
        self._events.publish(ev.DISPLAY_SHOWN, key=step.name, data={"title": title, "content": content})
        if self._display_delay > 0:
            self._sleep(self._display_delay)

    def _execute(self, step: InstallStep, command: ShellCommand) -> bool:
        """Run one ``command`` variant.  Returns False if the run failed."""
        if not command.cmd.strip():
            self._log.append("error", f"No command specified: {command.description or step.name}")
            return True

        redact = self._variables.redact
        resolved = resolve(command.cmd, self._variables.snapshot())
        plan = classify(resolved, command.safe)
        sensitive = command.sensitive
        shown = REDACTED if sensitive else redact(resolved)
        description = redact(command.description) or None
        label = description or shown

        self._log.append("command", f"$ {label}")
        self._events.publish(
            ev.COMMAND_START,
            key=step.name,
            data={"description": description, "command": shown, "simulated": plan.simulated},
        )

        def sink(chunk: OutputChunk) -> None:
            self._events.publish(
                ev.COMMAND_OUTPUT,
                key=step.name,
                data={
                    "type": chunk.type,
                    "data": REDACTED if sensitive else redact(chunk.data),
                    "command": label,
                },
            )

        # A command carrying a secret value is sensitive to the runner as well.
        result = self._runner.run(
            plan.executed,
            timeout_ms=command.timeout or DEFAULT_TIMEOUT_MS,
            sink=sink,
            label=label,
            sensitive=sensitive or redact(plan.executed) != plan.executed,
        )
        result = _apply_expected_exit_code(result, command.expected_exit_code)

        output = result.output.strip()
        if output:
            self._log.append("output", REDACTED if sensitive else redact(output))
        self._events.publish(
            ev.COMMAND_RESULT,
            key=step.name,
            data={
                "description": description,
                "success": result.success,
                "exit_code": result.exit_code,
                "error": redact(result.error or "") or None,
                "command": REDACTED if sensitive else redact(result.command),
                "simulated": plan.simulated,
            },
        )

        if result.success:
            if command.capture_as:
                value = output if output else (command.default_value or "")
                self._capture(command.capture_as, value, sensitive=sensitive)
            return True

        error = redact(result.error or f"Command exited with code {result.exit_code}")
        if command.capture_as and command.default_value is not None:
            self._log.append("info", f"Command failed, using default value for {command.capture_as}")
            self._capture(command.capture_as, command.default_value, sensitive=sensitive)
            return True

        self._log.append("error", f"✗ {label}: {error}")
        if command.safe:
            logger.warning("Safe command failed in step %r: %s", step.name, error)
            return True

        try:
            result.raise_for_status()
        except CommandFailure as exc:
            self._fail(step, exc)
        return False

    def _capture(self, key: str, value: Any, *, sensitive: bool = False) -> None:
        self._variables.set(key, value, sensitive=sensitive)
        shown = self._variables.display_value(key)
        self._log.append("variable", f"📝 Captured {key}: {shown}")
        self._events.publish(ev.VARIABLE_CAPTURED, key=key, data={"name": key, "value": shown})

    # ── Endings ─────────────────────────────────────────────────

    def _fail(self, step: InstallStep, exc: CommandFailure) -> None:
        message = self._variables.redact(str(exc))
        self._error = f"{step.name}: {message}"
        self._log.append("error", f"Step '{step.name}' failed: {message}")
        self._events.publish(ev.STEP_ERROR, key=step.name, data={"step": step.name, "error": message})
        self._state = OrchestratorState.FAILED
        self._events.publish(ev.RUN_FAILED, key=self.run_id, data={"error": self._error})
        logger.error("Run %s failed in step %r: %s", self.run_id, step.name, message)

    def _complete(self) -> None:
        for post in self._config.post_install:
            self._run_post_install(post)

        public = self._variables.public_items()
        if public:
            self._log.append("info", "Final configuration:")
            for key, value in public:
                shown = self._variables.redact(render_value(value, "display"))
                self._log.append("variable", f"  {key}: {shown}")

        self._state = OrchestratorState.COMPLETED
        self._log.append("success", "✓ Installation completed")
        self._events.publish(
            ev.RUN_COMPLETED,
            key=self.run_id,
            data={
                "steps_completed": list(self._steps_completed),
                "steps_skipped": list(self._steps_skipped),
            },
        )
        logger.info(
            "Run %s completed: %d steps, %d skipped",
            self.run_id, len(self._steps_completed), len(self._steps_skipped),
        )

    def _run_post_install(self, post: PostInstallCommand) -> None:
        """Best-effort: failures are logged, never fatal."""
        redact = self._variables.redact
        resolved = resolve(post.command, self._variables.snapshot())
        plan = classify(resolved, post.safe)
        self._log.append("command", f"$ {post.name}")
        result = self._runner.run(
            plan.executed,
            timeout_ms=DEFAULT_TIMEOUT_MS,
            label=post.name,
            sensitive=redact(plan.executed) != plan.executed,
        )

        output = redact(result.output.strip())
        error = redact(result.error or "") or None
        if output:
            self._log.append("output", output)
        if result.success:
            self._log.append("success", f"✓ {post.name}")
        else:
            self._log.append("error", f"⚠ {post.name} failed: {error}")
            logger.warning("Post-install %r failed: %s", post.name, error)
        self._events.publish(
            ev.POSTINSTALL_RESULT,
            key=post.name,
            data={"name": post.name, "success": result.success, "error": error},
        )


def _apply_expected_exit_code(result: ExecutionResult, expected: int | None) -> ExecutionResult:
    """Re-judge *result* against an explicit expected exit code."""
    if expected is None or result.timed_out or result.exit_code is None:
        return result
    ok = result.exit_code == expected
    if ok == result.success:
        return result
    error = None if ok else f"Expected exit code {expected}, got {result.exit_code}"
    return result.model_copy(update={"success": ok, "error": error})
