"""
Tests for the install use case — the orchestration boundary.
"""

from stepwright.adapters.mock import MockProcessRunner
from stepwright.core.engine import events as ev
from stepwright.core.engine.orchestrator import OrchestratorState
from stepwright.core.persistence.audit import AuditWriter
from stepwright.core.use_cases.install import InstallerSession, answer_with_defaults


def _session(document, runner=None, **kwargs) -> InstallerSession:
    from stepwright.core.models.installer import InstallerConfig

    return InstallerSession(
        InstallerConfig.model_validate(document),
        runner or MockProcessRunner(),
        display_delay=0,
        **kwargs,
    )


class TestUserConfig:
    def test_defaults_before_save(self, sample_document):
        session = _session(sample_document)
        assert session.user_config == {"enableDocker": False}

    def test_save_rejects_invalid(self, sample_document):
        session = _session(sample_document)
        errors = session.save_user_config({"hostname": ""})
        assert errors == {"hostname": "Hostname is required"}
        assert "hostname" not in session.user_config

    def test_save_valid(self, sample_document):
        session = _session(sample_document)
        assert session.save_user_config({"hostname": "box", "enableDocker": "yes"}) == {}
        assert session.user_config == {"hostname": "box", "enableDocker": True}

    def test_get_install_steps_follows_values(self, sample_document):
        session = _session(sample_document)
        session.save_user_config({"hostname": "box"})
        assert [s.name for s in session.get_install_steps()] == ["Base packages"]
        session.save_user_config({"enableDocker": True})
        assert [s.name for s in session.get_install_steps()] == ["Base packages", "Docker"]


class TestPrechecks:
    def test_captures_seed_the_run(self):
        runner = MockProcessRunner()
        runner.respond("hostname", output="box-01\n")
        session = _session({
            "preChecks": [{"name": "Host", "command": "hostname", "captureAs": "detectedHost"}],
            "installSteps": [{"name": "s", "commands": [{"cmd": "configure {{detectedHost}}", "safe": True}]}],
        }, runner)
        report = session.run_prechecks()
        assert report.passed
        assert session.variables()["detectedHost"] == "box-01"

        result = session.run()
        assert result.success
        assert runner.commands[-1] == "configure box-01"


class TestRun:
    def test_full_run_with_defaults(self, sample_document):
        runner = MockProcessRunner()
        session = _session(sample_document, runner)
        session.save_user_config({"hostname": "box"})
        result = session.run()
        assert result.success
        assert result.state == OrchestratorState.COMPLETED
        assert result.steps_skipped == ["Docker"]
        assert runner.commands == [
            "echo 'Would run: apt-get install -y curl'",
            "echo box",
        ]

    def test_prompts_answered_by_callback(self):
        session = _session({"installSteps": [{"name": "s", "commands": [
            {"type": "prompt", "promptType": "input", "message": "Name", "required": True, "captureAs": "name"},
        ]}]})
        answers = iter(["", "alice"])
        errors = []

        def answer(pending, error):
            errors.append(error)
            return next(answers)

        result = session.run(answer=answer)
        assert result.success
        assert result.variables["name"] == "alice"
        assert errors == [None, "This field is required"]

    def test_unanswerable_prompt_leaves_run_suspended(self):
        session = _session({"installSteps": [{"name": "s", "commands": [
            {"type": "prompt", "message": "Token", "required": True, "captureAs": "x"},
        ]}]})
        result = session.run(answer=answer_with_defaults)
        assert not result.success
        assert result.state == OrchestratorState.SUSPENDED
        assert result.error == "Prompt not answered: Token"

    def test_events_reach_subscribers(self, sample_document):
        session = _session(sample_document)
        session.save_user_config({"hostname": "box"})
        seen = []
        with session.events.subscribe(lambda e: seen.append(e["type"])):
            session.run()
        assert seen[0] == ev.RUN_STARTED
        assert seen[-1] == ev.RUN_COMPLETED
        assert ev.STEP_SKIPPED in seen

    def test_each_run_gets_a_fresh_orchestrator(self, sample_document):
        session = _session(sample_document)
        session.save_user_config({"hostname": "box"})
        first = session.run()
        second = session.run()
        assert first.run_id != second.run_id
        assert second.success

    def test_audit_entry_written(self, sample_document, tmp_path):
        audit = AuditWriter(tmp_path / "audit.ndjson")
        session = _session({**sample_document, "configFields": [
            {"id": "hostname", "required": True},
            {"id": "adminPassword", "type": "password"},
        ]}, audit=audit)
        session.save_user_config({"hostname": "box", "adminPassword": "hunter2"})
        result = session.run()

        entries = audit.read_all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.run_id == result.run_id
        assert entry.installer == "Demo Server"
        assert entry.status == "completed"
        assert entry.variables["adminPassword"] == "********"
        assert "hunter2" not in audit.path.read_text()
