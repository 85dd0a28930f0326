"""
Configuration loader — reads the installer document into domain models.

The advanced document (pre-checks, prompts, displays, post-install) is
preferred; the basic one (fields + steps) is the fallback.  JSON by
default, YAML when the file says so.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from stepwright.core.errors import ConfigLoadError
from stepwright.core.models.installer import InstallerConfig

logger = logging.getLogger(__name__)

# Looked up in this order
ADVANCED_CONFIG_FILE = "installer-config-advanced.json"
BASIC_CONFIG_FILE = "installer-config.json"
CONFIG_FILES = (ADVANCED_CONFIG_FILE, BASIC_CONFIG_FILE)

_YAML_SUFFIXES = (".yml", ".yaml")


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate the installer document in *start_dir* (default: cwd).

    Returns:
        Path to the first candidate that exists, or None.
    """
    directory = (start_dir or Path.cwd()).resolve()
    for name in CONFIG_FILES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _read_document(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoadError(f"Cannot read {path}: {e}") from e

    if path.suffix.lower() in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Invalid YAML in {path}: {e}") from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Invalid JSON in {path}: {e}") from e


def load_config(path: Path | None = None) -> InstallerConfig:
    """Load and validate the installer configuration.

    Args:
        path: Explicit document path.  If None, discovered in the cwd.

    Returns:
        Validated, immutable InstallerConfig.

    Raises:
        ConfigLoadError: If the document is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        raise ConfigLoadError(
            f"No {ADVANCED_CONFIG_FILE} or {BASIC_CONFIG_FILE} found. "
            "Specify one with --config."
        )

    if not path.is_file():
        raise ConfigLoadError(f"Config file not found: {path}")

    logger.debug("Loading installer config from %s", path)
    data = _read_document(path)

    if not isinstance(data, dict):
        raise ConfigLoadError(f"Expected a mapping in {path}, got {type(data).__name__}")

    try:
        config = InstallerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid installer configuration in {path}: {e}") from e

    logger.info(
        "Loaded installer '%s': %d pre-checks, %d fields, %d steps",
        config.installer.name,
        len(config.pre_checks),
        len(config.config_fields),
        len(config.install_steps),
    )
    return config


def load_values_file(path: Path) -> dict[str, Any]:
    """Read a JSON/YAML mapping of user configuration values."""
    if not path.is_file():
        raise ConfigLoadError(f"Values file not found: {path}")
    data = _read_document(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return data
