"""Configuration file parsing utilities."""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from rcube_installer.config.schemas import InstallerSettings, PackageManifest

SETTINGS_FILENAME = "rcube-installer.yaml"
MANIFEST_FILENAME = "composer.json"


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_json(path: Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e

    if not isinstance(result, dict):
        raise ConfigError(f"JSON file must contain an object: {path}", path)
    return result


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def load_installer_settings(roundcube_root: Path) -> InstallerSettings:
    """Load installer settings from rcube-installer.yaml.

    Args:
        roundcube_root: Path to the Roundcube root directory

    Returns:
        Parsed InstallerSettings, or defaults if the file doesn't exist

    Raises:
        ConfigError: If the file exists but is invalid
    """
    settings_path = roundcube_root / SETTINGS_FILENAME
    if not settings_path.exists():
        return InstallerSettings()

    data = load_yaml(settings_path)

    try:
        return InstallerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid installer settings: {e}", settings_path) from e


def load_package_manifest(package_path: Path) -> PackageManifest:
    """Load a plugin package manifest from composer.json.

    Args:
        package_path: Path to the plugin package directory

    Returns:
        Parsed PackageManifest

    Raises:
        ConfigError: If the file is missing or invalid
    """
    manifest_path = package_path / MANIFEST_FILENAME
    data = load_json(manifest_path)

    try:
        return PackageManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid package manifest: {e}", manifest_path) from e
