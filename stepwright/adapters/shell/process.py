"""
Shell process runner — spawn, stream, time out.

The SINGLE PLACE where installer commands are spawned.  Output from
stdout and stderr is forwarded chunk by chunk (line by line) to the
caller's sink while the process runs.  Ordering between the two
streams is best-effort.

Timeouts kill the whole process group (the shell and anything it
started), so a timed-out command never leaks children.
"""

from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import threading
import time
from typing import IO

from stepwright.adapters.base import (
    DEFAULT_TIMEOUT_MS,
    OutputChunk,
    OutputSink,
    ProcessRunner,
)
from stepwright.core.models.results import REDACTED, TIMEOUT_ERROR, ExecutionResult

logger = logging.getLogger(__name__)

# Poll interval while waiting for output; bounds timeout precision
_POLL_S = 0.05

_EOF = object()


def _pump(stream: IO[str], stream_type: str, out: queue.Queue) -> None:
    """Read *stream* line by line into *out*, then post EOF."""
    try:
        for line in iter(stream.readline, ""):
            out.put((stream_type, line))
    except (OSError, ValueError):
        # stream closed underneath us after a kill
        pass
    finally:
        out.put((stream_type, _EOF))


def _kill_group(proc: subprocess.Popen) -> None:
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except (ProcessLookupError, PermissionError):
        pass
    try:
        proc.wait(timeout=5)
    except subprocess.TimeoutExpired:
        logger.error("Process %d did not exit after SIGKILL", proc.pid)


class ShellProcessRunner(ProcessRunner):
    """Run commands through ``/bin/sh`` with streamed output.

    Args:
        shell: Shell executable (default: the platform ``sh``).
        cwd: Working directory for every command.
        env: Extra environment variables merged over ``os.environ``.
    """

    def __init__(
        self,
        shell: str | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ):
        self._shell = shell
        self._cwd = cwd
        self._env = env

    @property
    def name(self) -> str:
        return "shell"

    def run(
        self,
        command: str,
        *,
        timeout_ms: int | None = None,
        sink: OutputSink | None = None,
        label: str = "",
        sensitive: bool = False,
    ) -> ExecutionResult:
        timeout_ms = timeout_ms or DEFAULT_TIMEOUT_MS
        shown = REDACTED if sensitive else command
        if not sensitive:
            logger.debug("Executing: %s (timeout=%dms)", command, timeout_ms)

        env = None
        if self._env:
            env = os.environ.copy()
            env.update(self._env)

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                executable=self._shell,
                cwd=self._cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except OSError as e:
            logger.warning("Failed to spawn command: %s", e)
            return ExecutionResult(
                success=False,
                output=str(e),
                error=str(e),
                exit_code=-1,
                command=shown,
            )

        try:
            return self._collect(proc, start, timeout_ms, sink, label, shown)
        except Exception as e:
            logger.exception("Subprocess error while running: %s", shown)
            _kill_group(proc)
            return ExecutionResult(
                success=False,
                output=str(e),
                error=str(e),
                exit_code=-1,
                command=shown,
            )

    def _collect(
        self,
        proc: subprocess.Popen,
        start: float,
        timeout_ms: int,
        sink: OutputSink | None,
        label: str,
        shown: str,
    ) -> ExecutionResult:
        chunks: queue.Queue = queue.Queue()
        readers = [
            threading.Thread(target=_pump, args=(proc.stdout, "stdout", chunks), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, "stderr", chunks), daemon=True),
        ]
        for reader in readers:
            reader.start()

        deadline = start + timeout_ms / 1000
        output: list[str] = []
        open_streams = 2
        timed_out = False

        # ── Stream until both pipes close or the deadline passes ──
        while open_streams:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                timed_out = True
                break
            try:
                stream_type, data = chunks.get(timeout=min(remaining, _POLL_S))
            except queue.Empty:
                continue
            if data is _EOF:
                open_streams -= 1
                continue
            output.append(data)
            if sink is not None:
                sink(OutputChunk(type=stream_type, data=data, command=label))

        if not timed_out:
            try:
                proc.wait(timeout=max(deadline - time.monotonic(), 0.001))
            except subprocess.TimeoutExpired:
                timed_out = True

        if timed_out:
            _kill_group(proc)
            for reader in readers:
                reader.join(timeout=1)
            logger.warning("Command timed out after %dms: %s", timeout_ms, shown)
            return ExecutionResult(
                success=False,
                output="".join(output),
                error=TIMEOUT_ERROR,
                command=shown,
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        for reader in readers:
            reader.join(timeout=1)
        elapsed_ms = int((time.monotonic() - start) * 1000)
        code = proc.returncode
        return ExecutionResult(
            success=code == 0,
            output="".join(output),
            exit_code=code,
            error=None if code == 0 else f"Command exited with code {code}",
            command=shown,
            duration_ms=elapsed_ms,
        )
