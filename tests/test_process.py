"""
Tests for the process runners — real /bin/sh and the scripted mock.
"""

import os
import time

import pytest

from stepwright.adapters.base import OutputChunk
from stepwright.adapters.mock import MockProcessRunner
from stepwright.adapters.shell.process import ShellProcessRunner
from stepwright.core.errors import CommandFailure, CommandTimeout
from stepwright.core.models.results import REDACTED, TIMEOUT_ERROR, ExecutionResult

pytestmark = pytest.mark.skipif(os.name != "posix", reason="requires a POSIX shell")


class TestShellProcessRunner:
    def test_success(self):
        result = ShellProcessRunner().run("echo hello")
        assert result.success
        assert result.exit_code == 0
        assert result.output == "hello\n"
        assert result.error is None
        assert result.command == "echo hello"

    def test_nonzero_exit(self):
        result = ShellProcessRunner().run("echo oops >&2; exit 3")
        assert not result.success
        assert result.exit_code == 3
        assert "oops" in result.output
        assert result.error == "Command exited with code 3"

    def test_streams_both_pipes_to_sink(self):
        chunks: list[OutputChunk] = []
        result = ShellProcessRunner().run(
            "echo out; echo err >&2", sink=chunks.append, label="Streams",
        )
        assert result.success
        kinds = {(c.type, c.data) for c in chunks}
        assert ("stdout", "out\n") in kinds
        assert ("stderr", "err\n") in kinds
        assert all(c.command == "Streams" for c in chunks)

    def test_output_arrives_before_exit(self):
        arrivals: list[float] = []
        start = time.monotonic()
        ShellProcessRunner().run(
            "echo first; sleep 0.5; echo second",
            sink=lambda c: arrivals.append(time.monotonic() - start),
        )
        assert len(arrivals) == 2
        assert arrivals[0] < 0.4

    def test_timeout_kills_process_group(self, tmp_path):
        marker = tmp_path / "still-running"
        start = time.monotonic()
        result = ShellProcessRunner().run(
            f"sleep 2 && touch {marker}", timeout_ms=500,
        )
        elapsed = time.monotonic() - start
        assert not result.success
        assert result.error == TIMEOUT_ERROR
        assert result.timed_out
        assert elapsed < 2
        # the killed child never gets to run its follow-up
        time.sleep(2)
        assert not marker.exists()

    def test_timeout_keeps_partial_output(self):
        result = ShellProcessRunner().run("echo partial; sleep 5", timeout_ms=500)
        assert result.error == TIMEOUT_ERROR
        assert "partial" in result.output

    def test_spawn_failure_is_a_result(self, tmp_path):
        runner = ShellProcessRunner(cwd=str(tmp_path / "does-not-exist"))
        result = runner.run("echo hi")
        assert not result.success
        assert result.exit_code == -1
        assert result.error

    def test_sensitive_command_is_redacted(self):
        result = ShellProcessRunner().run("echo s3cret", sensitive=True)
        assert result.success
        assert result.command == REDACTED

    def test_extra_env(self):
        result = ShellProcessRunner(env={"STEPWRIGHT_TEST_VAR": "42"}).run(
            "echo $STEPWRIGHT_TEST_VAR"
        )
        assert result.output.strip() == "42"


class TestMockProcessRunner:
    def test_defaults_to_success(self):
        runner = MockProcessRunner()
        result = runner.run("apt-get update")
        assert result.success
        assert runner.commands == ["apt-get update"]

    def test_echo_behaves_like_a_shell(self):
        result = MockProcessRunner().run("echo 'Would run: rm -rf /tmp/x'")
        assert result.output == "Would run: rm -rf /tmp/x\n"

    def test_scripted_failure_and_timeout(self):
        runner = MockProcessRunner()
        runner.fail("false", exit_code=2)
        runner.time_out("sleep")
        assert runner.run("false").exit_code == 2
        assert runner.run("sleep 10").error == TIMEOUT_ERROR

    def test_sink_and_redaction(self):
        runner = MockProcessRunner()
        runner.respond("token", output="abc\ndef\n")
        chunks: list[OutputChunk] = []
        result = runner.run("print token", sink=chunks.append, sensitive=True)
        assert [c.data for c in chunks] == ["abc\n", "def\n"]
        assert result.command == REDACTED
        assert runner.calls[0].sensitive

    def test_reset(self):
        runner = MockProcessRunner()
        runner.fail("x")
        runner.run("x")
        runner.reset()
        assert runner.call_count == 0
        assert runner.run("x").success


class TestRaiseForStatus:
    def test_success_is_silent(self):
        ExecutionResult(success=True, exit_code=0).raise_for_status()

    def test_failure(self):
        result = ExecutionResult(success=False, exit_code=1, error="Command exited with code 1", command="false")
        with pytest.raises(CommandFailure) as exc:
            result.raise_for_status()
        assert exc.value.exit_code == 1
        assert exc.value.command == "false"

    def test_timeout(self):
        with pytest.raises(CommandTimeout):
            ExecutionResult(success=False, error=TIMEOUT_ERROR).raise_for_status()
