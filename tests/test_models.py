"""
Tests for domain models — results, run log, installer document.
"""

from stepwright.core.models import (
    CheckOutcome,
    ExecutionResult,
    InstallerConfig,
    InstallStep,
    RunLog,
)
from stepwright.core.models.results import REDACTED, TIMEOUT_ERROR


class TestExecutionResult:
    def test_redacted_hides_only_the_command(self):
        r = ExecutionResult(success=True, output="x", command="secret-cmd").redacted()
        assert r.command == REDACTED
        assert r.output == "x"

    def test_timed_out(self):
        assert ExecutionResult(success=False, error=TIMEOUT_ERROR).timed_out
        assert not ExecutionResult(success=False, error="boom").timed_out


class TestCheckOutcome:
    def test_passed(self):
        assert CheckOutcome(name="a", status="success").passed
        assert CheckOutcome(name="a", status="warning").passed
        assert not CheckOutcome(name="a", status="error").passed


class TestRunLog:
    def test_append_only(self):
        log = RunLog()
        log.append("step", "▶ one")
        log.append("error", "bad")
        assert len(log) == 2
        assert log.contents() == ["▶ one", "bad"]
        assert [line.content for line in log.of_type("error")] == ["bad"]
        assert isinstance(log.lines, tuple)
        assert log.to_list()[0]["type"] == "step"
        assert log.to_list()[0]["timestamp"]


class TestInstallerDocument:
    def test_empty_document(self):
        config = InstallerConfig.model_validate({})
        assert config.install_steps == []
        assert config.installer.name == "Installer"
        assert not config.is_advanced

    def test_prompt_makes_it_advanced(self):
        config = InstallerConfig.model_validate({"installSteps": [
            {"name": "s", "commands": [{"type": "prompt", "message": "?"}]},
        ]})
        assert config.is_advanced

    def test_snake_case_accepted(self):
        step = InstallStep.model_validate({
            "name": "s",
            "commands": [{"cmd": "x", "capture_as": "v", "default_value": "d"}],
        })
        cmd = step.commands[0]
        assert cmd.capture_as == "v"
        assert cmd.default_value == "d"
        assert cmd.type == "command"

    def test_camel_case_dump(self):
        step = InstallStep.model_validate({"name": "s", "commands": [{"cmd": "x", "captureAs": "v"}]})
        dumped = step.model_dump(by_alias=True)
        assert dumped["commands"][0]["captureAs"] == "v"
