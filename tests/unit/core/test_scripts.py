"""Tests for rcube_installer.core.scripts module."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from rcube_installer.core.project import RoundcubeProject
from rcube_installer.core.scripts import ScriptError, ScriptRunner


@pytest.fixture
def runner(project: RoundcubeProject) -> ScriptRunner:
    """ScriptRunner for the temporary Roundcube installation."""
    return ScriptRunner(project)


@pytest.fixture
def plugin_dir(project: RoundcubeProject) -> Path:
    """An installed plugin directory."""
    path = project.plugin_dir("archive")
    path.mkdir()
    return path


def completed(returncode: int = 0, stdout: str = "", stderr: str = ""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestRunScript:
    """Tests for ScriptRunner.run_script."""

    def test_runs_shell_command_in_plugin_dir(self, runner: ScriptRunner, plugin_dir: Path):
        """Shell commands run with the plugin directory as cwd."""
        runner.run_script("touch created.txt", plugin_dir)

        assert (plugin_dir / "created.txt").exists()

    def test_runs_executable_script(self, runner: ScriptRunner, plugin_dir: Path):
        """Executable files are run by absolute path."""
        script = plugin_dir / "bin" / "setup.sh"
        script.parent.mkdir()
        script.write_text("#!/bin/sh\necho done > marker.txt\n")
        script.chmod(0o755)

        runner.run_script("bin/setup.sh", plugin_dir)

        assert (plugin_dir / "marker.txt").read_text().strip() == "done"

    def test_failing_command_raises(self, runner: ScriptRunner, plugin_dir: Path):
        """Non-zero exit status raises ScriptError with the exit code."""
        with pytest.raises(ScriptError) as exc_info:
            runner.run_script("echo broken >&2; exit 3", plugin_dir)

        assert exc_info.value.exit_code == 3
        assert "Error executing script: broken" in str(exc_info.value)

    def test_runs_php_script_in_roundcube_context(
        self, runner: ScriptRunner, project: RoundcubeProject, plugin_dir: Path
    ):
        """PHP scripts are run through the PHP interpreter from the root."""
        (plugin_dir / "bin").mkdir()
        (plugin_dir / "bin" / "setup.php").write_text("<?php\n")

        with patch("rcube_installer.core.scripts.subprocess.run", return_value=completed()) as run:
            runner.run_script("bin/setup.php", plugin_dir)

        cmd = run.call_args.args[0]
        assert cmd[0] == "php"
        assert cmd[1] == "-r"
        assert "iniset.php" in cmd[2]
        assert str((plugin_dir / "bin" / "setup.php").resolve()) in cmd[2]
        assert run.call_args.kwargs["cwd"] == project.root

    def test_missing_php_interpreter(self, runner: ScriptRunner, plugin_dir: Path):
        """Raises ScriptError when php is not installed."""
        (plugin_dir / "setup.php").write_text("<?php\n")

        with patch(
            "rcube_installer.core.scripts.subprocess.run", side_effect=FileNotFoundError("php")
        ):
            with pytest.raises(ScriptError, match="PHP interpreter not found"):
                runner.run_script("setup.php", plugin_dir)

    def test_missing_plugin_dir_runs_from_root(
        self, runner: ScriptRunner, project: RoundcubeProject
    ):
        """Falls back to the Roundcube root when the plugin dir is gone."""
        with patch("rcube_installer.core.scripts.subprocess.run", return_value=completed()) as run:
            runner.run_script("echo bye", project.plugin_dir("removed"))

        assert run.call_args.kwargs["cwd"] == project.root
        assert run.call_args.kwargs["shell"] is True


class TestSchemaHelpers:
    """Tests for the database schema helpers."""

    def test_initialize_database(self, runner: ScriptRunner, project: RoundcubeProject):
        """Runs rcubeinitdb.sh with package and directory."""
        sql_dir = project.root / "plugins" / "archive" / "SQL"

        with patch("rcube_installer.core.scripts.subprocess.run", return_value=completed()) as run:
            assert runner.initialize_database("archive", sql_dir) is True

        assert run.call_args.args[0] == [
            str(project.root / "vendor" / "bin" / "rcubeinitdb.sh"),
            "--package=archive",
            f"--dir={sql_dir}",
        ]

    def test_update_database(self, runner: ScriptRunner, project: RoundcubeProject):
        """Runs updatedb.sh with package and directory."""
        sql_dir = project.root / "plugins" / "archive" / "SQL"

        with patch("rcube_installer.core.scripts.subprocess.run", return_value=completed()) as run:
            assert runner.update_database("archive", sql_dir) is True

        assert run.call_args.args[0][0] == str(project.root / "bin" / "updatedb.sh")

    def test_failure_is_reported(self, runner: ScriptRunner, project: RoundcubeProject):
        """A failing helper returns False instead of raising."""
        with patch(
            "rcube_installer.core.scripts.subprocess.run",
            return_value=completed(returncode=1, stderr="db error"),
        ):
            assert runner.update_database("archive", project.root) is False

    def test_missing_helper(self, runner: ScriptRunner, project: RoundcubeProject):
        """A missing helper script returns False."""
        assert runner.initialize_database("archive", project.root) is False
