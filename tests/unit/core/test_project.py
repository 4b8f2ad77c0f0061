"""Tests for rcube_installer.core.project module."""

from pathlib import Path

import pytest

from rcube_installer.config.parser import ConfigError
from rcube_installer.core.project import RoundcubeProject


class TestRoundcubeProjectLoad:
    """Tests for RoundcubeProject.load."""

    def test_load(self, roundcube_root: Path):
        """Loads a project with default settings."""
        project = RoundcubeProject.load(roundcube_root)

        assert project.root == roundcube_root.resolve()
        assert project.vendor_dir == roundcube_root.resolve() / "plugins"
        assert project.config_file == roundcube_root.resolve() / "config" / "config.inc.php"

    def test_load_missing_directory(self, temp_dir: Path):
        """Raises FileNotFoundError for a missing directory."""
        with pytest.raises(FileNotFoundError):
            RoundcubeProject.load(temp_dir / "missing")

    def test_load_with_settings(self, roundcube_root: Path):
        """Applies rcube-installer.yaml."""
        (roundcube_root / "rcube-installer.yaml").write_text(
            "vendor_dir: custom-plugins\nconfig_variables: ['$rcmail_config']\n"
        )

        project = RoundcubeProject.load(roundcube_root)

        assert project.vendor_dir.name == "custom-plugins"
        assert project.config_variables == ("$rcmail_config",)

    def test_load_invalid_settings(self, roundcube_root: Path):
        (roundcube_root / "rcube-installer.yaml").write_text("vendor_dir: [a, b]\n")

        with pytest.raises(ConfigError):
            RoundcubeProject.load(roundcube_root)


class TestRoundcubeProject:
    """Tests for RoundcubeProject paths and detection."""

    def test_detect_version(self, project: RoundcubeProject):
        """Reads RCMAIL_VERSION from iniset.php."""
        assert project.detect_version() == "1.6.5"

    def test_detect_version_without_roundcube(self, temp_dir: Path):
        """Returns None when iniset.php is missing."""
        project = RoundcubeProject(temp_dir)

        assert project.detect_version() is None

    def test_plugin_dir(self, project: RoundcubeProject):
        assert project.plugin_dir("archive") == project.vendor_dir / "archive"

    def test_installed_plugins(self, project: RoundcubeProject):
        """Lists plugin directories that contain a composer.json."""
        (project.vendor_dir / "archive").mkdir()
        (project.vendor_dir / "archive" / "composer.json").write_text("{}")
        (project.vendor_dir / "bundled").mkdir()

        assert project.installed_plugins() == ["archive"]

    def test_installed_plugins_without_vendor_dir(self, temp_dir: Path):
        """Returns an empty list when plugins/ does not exist."""
        assert RoundcubeProject(temp_dir).installed_plugins() == []
