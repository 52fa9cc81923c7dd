"""
Configuration loader — reads codegen.yml into a CodegenConfig.

Reads YAML, validates against the Pydantic schema, and returns the typed
config. The directory holding codegen.yml is the project root; every
relative path in the file is resolved against it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from protobuild.core.models.config import CodegenConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "codegen.yml"
CONFIG_FILE_ALT = "codegen.yaml"


class ConfigError(Exception):
    """Raised when codegen configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for codegen.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the config file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        for name in (CONFIG_FILE, CONFIG_FILE_ALT):
            candidate = current / name
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path | None = None) -> CodegenConfig:
    """Load and validate codegen configuration.

    Args:
        path: Explicit path to codegen.yml. If None, searches upward.

    Returns:
        Validated CodegenConfig.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        raise ConfigError(f"No {CONFIG_FILE} found. Create one, or specify --config.")

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading codegen config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "codegen" key or be flat
    if "codegen" in data and isinstance(data["codegen"], dict):
        data = data["codegen"]

    try:
        config = CodegenConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid codegen configuration in {path}: {e}") from e

    logger.info("Loaded codegen config '%s' with %d schema(s)", config.name, len(config.schemas))
    return config


def project_root(config_path: Path) -> Path:
    """Get the project root directory from a config file path."""
    return config_path.parent.resolve()
