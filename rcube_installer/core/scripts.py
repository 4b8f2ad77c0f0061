"""Execution of plugin lifecycle scripts and database schema helpers."""

import logging
import os
import shlex
import subprocess
from pathlib import Path

from rcube_installer.core.project import RoundcubeProject

logger = logging.getLogger("rcube_installer.scripts")


class ScriptError(Exception):
    """Error executing a plugin script."""

    def __init__(self, message: str, exit_code: int | None = None, script: str | None = None):
        self.exit_code = exit_code
        self.script = script
        super().__init__(message)


def _php_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class ScriptRunner:
    """Runs scripts declared in a plugin's ``extra.roundcube`` block.

    A script is either a file relative to the plugin directory or a shell
    command. PHP files are run in the Roundcube context with iniset.php
    loaded first.
    """

    def __init__(self, project: RoundcubeProject):
        self.project = project

    def _run(
        self, cmd: list[str] | str, cwd: Path, shell: bool = False
    ) -> subprocess.CompletedProcess[str]:
        logger.debug("Running %s in %s", cmd, cwd)
        result = subprocess.run(
            cmd,
            cwd=cwd,
            shell=shell,
            capture_output=True,
            text=True,
        )
        if result.stdout.strip():
            logger.info(result.stdout.strip())
        return result

    def run_script(self, script: str, plugin_dir: Path) -> None:
        """Run a post-lifecycle script.

        Args:
            script: Script path relative to the plugin directory, or a shell command
            plugin_dir: Installed plugin directory (used as working directory)

        Raises:
            ScriptError: If the script exits with a non-zero status
        """
        cwd = plugin_dir if plugin_dir.is_dir() else self.project.root
        script_file = (plugin_dir / script).resolve()
        if not script_file.is_file():
            script_file = None

        if script_file is not None and script_file.suffix == ".php":
            logger.info("Running PHP script %s", script_file)
            code = (
                f"chdir({_php_string(str(self.project.root))}); "
                f"require_once {_php_string(str(self.project.iniset_file))}; "
                f"include {_php_string(str(script_file))};"
            )
            try:
                result = self._run([self.project.settings.php_binary, "-r", code], self.project.root)
            except FileNotFoundError as e:
                raise ScriptError(
                    f"PHP interpreter not found: {self.project.settings.php_binary}",
                    script=script,
                ) from e
        else:
            if script_file is not None and os.access(script_file, os.X_OK):
                command = shlex.quote(str(script_file))
            else:
                command = script
            logger.info("Running script: %s", command)
            result = self._run(command, cwd, shell=True)

        if result.returncode != 0:
            raise ScriptError(
                f"Error executing script: {result.stderr.strip()}",
                exit_code=result.returncode,
                script=script,
            )

    def _run_schema_helper(self, helper: str, plugin_name: str, sql_dir: Path) -> bool:
        helper_path = self.project.root / helper
        cmd = [str(helper_path), f"--package={plugin_name}", f"--dir={sql_dir}"]
        try:
            result = self._run(cmd, self.project.root)
        except OSError as e:
            logger.warning("Cannot run %s: %s", helper_path, e)
            return False

        if result.returncode != 0:
            logger.warning(
                "%s exited with status %d: %s",
                helper_path.name,
                result.returncode,
                result.stderr.strip(),
            )
            return False
        return True

    def initialize_database(self, plugin_name: str, sql_dir: Path) -> bool:
        """Initialize the database schema of a newly installed plugin.

        Returns:
            True if the helper ran successfully
        """
        logger.info("Running database initialization script for %s", plugin_name)
        return self._run_schema_helper(self.project.settings.initdb_script, plugin_name, sql_dir)

    def update_database(self, plugin_name: str, sql_dir: Path) -> bool:
        """Update the database schema of an updated plugin.

        Returns:
            True if the helper ran successfully
        """
        logger.info("Updating database schema for %s", plugin_name)
        return self._run_schema_helper(self.project.settings.updatedb_script, plugin_name, sql_dir)
