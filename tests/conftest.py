"""
Shared test fixtures and configuration.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from stepwright.adapters.mock import MockProcessRunner
from stepwright.core.engine.events import RunEvents
from stepwright.core.engine.orchestrator import Orchestrator
from stepwright.core.models.installer import InstallerConfig


@pytest.fixture
def mock_runner() -> MockProcessRunner:
    return MockProcessRunner()


@pytest.fixture
def run_events() -> RunEvents:
    return RunEvents()


@pytest.fixture
def make_orchestrator(mock_runner: MockProcessRunner, run_events: RunEvents):
    """Build an orchestrator from a plain dict document (no display delay)."""

    def _make(document: dict, variables: dict[str, Any] | None = None) -> Orchestrator:
        config = InstallerConfig.model_validate(document)
        return Orchestrator(
            config,
            variables or {},
            mock_runner,
            events=run_events,
            display_delay=0,
            run_id="run-test",
        )

    return _make


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a document to tmp_path and return its path."""

    def _write(document: dict, name: str = "installer-config-advanced.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_document() -> dict:
    return {
        "installer": {"name": "Demo Server", "version": "1.2.0"},
        "preChecks": [
            {"name": "OS", "command": "uname -s", "errorMessage": "Unsupported OS"},
        ],
        "configFields": [
            {"id": "hostname", "label": "Hostname", "type": "text", "required": True},
            {"id": "enableDocker", "label": "Enable Docker", "type": "boolean"},
        ],
        "installSteps": [
            {
                "name": "Base packages",
                "description": "Install base packages",
                "commands": [
                    {"cmd": "apt-get install -y curl", "description": "Install curl"},
                ],
            },
            {
                "name": "Docker",
                "condition": "enableDocker",
                "commands": [
                    {"cmd": "apt-get install -y docker.io", "description": "Install Docker"},
                ],
            },
        ],
        "postInstall": [
            {"name": "Print hostname", "command": "echo {{hostname}}", "safe": True},
        ],
    }
