"""
Tests for the configuration loader and config check.
"""

import json
import textwrap
from pathlib import Path

import pytest

from stepwright.core.config.loader import (
    ADVANCED_CONFIG_FILE,
    BASIC_CONFIG_FILE,
    find_config_file,
    load_config,
    load_values_file,
)
from stepwright.core.errors import ConfigLoadError
from stepwright.core.models.installer import DisplayCommand, PromptCommand, ShellCommand
from stepwright.core.use_cases.config_check import check_config


class TestFindConfigFile:
    def test_prefers_advanced(self, tmp_path: Path):
        (tmp_path / BASIC_CONFIG_FILE).write_text("{}")
        (tmp_path / ADVANCED_CONFIG_FILE).write_text("{}")
        assert find_config_file(tmp_path) == (tmp_path / ADVANCED_CONFIG_FILE).resolve()

    def test_falls_back_to_basic(self, tmp_path: Path):
        (tmp_path / BASIC_CONFIG_FILE).write_text("{}")
        assert find_config_file(tmp_path).name == BASIC_CONFIG_FILE

    def test_none_when_absent(self, tmp_path: Path):
        assert find_config_file(tmp_path) is None


class TestLoadConfig:
    def test_load_json(self, write_config, sample_document):
        config = load_config(write_config(sample_document))
        assert config.installer.name == "Demo Server"
        assert len(config.pre_checks) == 1
        assert config.config_fields[0].id == "hostname"
        assert config.install_steps[1].condition == "enableDocker"
        assert config.post_install[0].safe is True
        assert config.is_advanced

    def test_command_type_defaults_to_command(self, write_config):
        config = load_config(write_config({"installSteps": [{"name": "s", "commands": [
            {"cmd": "a"},
            {"type": "prompt", "promptType": "confirm", "message": "ok?"},
            {"type": "display", "content": ["hi"]},
        ]}]}))
        kinds = [type(c) for c in config.install_steps[0].commands]
        assert kinds == [ShellCommand, PromptCommand, DisplayCommand]

    def test_basic_document(self, write_config):
        config = load_config(write_config(
            {"configFields": [], "installSteps": [{"name": "s", "commands": [{"cmd": "a"}]}]},
            name=BASIC_CONFIG_FILE,
        ))
        assert not config.is_advanced
        assert config.pre_checks == []

    def test_load_yaml(self, tmp_path: Path):
        path = tmp_path / "installer.yml"
        path.write_text(textwrap.dedent("""\
            installer:
              name: yaml-demo
            installSteps:
              - name: one
                commands:
                  - cmd: uname -a
                    captureAs: kernel
        """))
        config = load_config(path)
        assert config.installer.name == "yaml-demo"
        assert config.install_steps[0].commands[0].capture_as == "kernel"

    def test_models_are_immutable(self, write_config, sample_document):
        config = load_config(write_config(sample_document))
        with pytest.raises(Exception):
            config.install_steps[0].name = "changed"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigLoadError, match="not found"):
            load_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigLoadError, match="Invalid JSON"):
            load_config(path)

    def test_non_mapping_root(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigLoadError, match="Expected a mapping"):
            load_config(path)

    def test_unknown_command_type(self, write_config):
        path = write_config({"installSteps": [{"name": "s", "commands": [{"type": "reboot"}]}]})
        with pytest.raises(ConfigLoadError, match="Invalid installer configuration"):
            load_config(path)

    def test_discovery_in_cwd(self, tmp_path: Path, monkeypatch):
        (tmp_path / BASIC_CONFIG_FILE).write_text(json.dumps({"installer": {"name": "cwd"}}))
        monkeypatch.chdir(tmp_path)
        assert load_config().installer.name == "cwd"

    def test_nothing_to_discover(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigLoadError, match="--config"):
            load_config()


class TestLoadValuesFile:
    def test_yaml_values(self, tmp_path: Path):
        path = tmp_path / "values.yaml"
        path.write_text("hostname: box\nport: 8080\n")
        assert load_values_file(path) == {"hostname": "box", "port": 8080}

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "values.yml"
        path.write_text("")
        assert load_values_file(path) == {}

    def test_missing(self, tmp_path: Path):
        with pytest.raises(ConfigLoadError):
            load_values_file(tmp_path / "absent.json")


class TestCheckConfig:
    def test_valid(self, write_config, sample_document):
        result = check_config(write_config(sample_document))
        assert result.valid
        assert result.errors == []
        data = result.to_dict()
        assert data["installer"] == "Demo Server"
        assert data["step_count"] == 2

    def test_malformed_condition_is_an_error(self, write_config):
        result = check_config(write_config({"installSteps": [
            {"name": "s", "condition": "a &&", "commands": []},
        ]}))
        assert not result.valid
        assert "Invalid condition" in result.errors[0]

    def test_undefined_placeholder_warns(self, write_config):
        result = check_config(write_config({"installSteps": [
            {"name": "s", "commands": [{"cmd": "echo {{ghost}}"}]},
        ]}))
        assert result.valid
        assert any("{{ghost}}" in w for w in result.warnings)

    def test_duplicate_field_ids(self, write_config):
        result = check_config(write_config({
            "configFields": [{"id": "a"}, {"id": "a"}],
            "installSteps": [{"name": "s", "commands": []}],
        }))
        assert not result.valid

    def test_load_error(self, tmp_path: Path):
        result = check_config(tmp_path / "missing.json")
        assert not result.valid
        assert result.to_dict()["installer"] is None
