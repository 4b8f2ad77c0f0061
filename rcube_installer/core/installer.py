"""Plugin installation orchestrator.

This module contains the PluginInstaller which copies plugin packages into
the Roundcube plugins directory and runs the Roundcube-specific steps around
it: version checks, activation in the main config file, plugin config
bootstrapping, database schema setup and post-lifecycle scripts.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rcube_installer.config.parser import ConfigError
from rcube_installer.config.schemas import PLUGIN_PACKAGE_TYPE
from rcube_installer.core.package import Package, resolve_plugin_name, validate_plugin_name
from rcube_installer.core.project import RoundcubeProject
from rcube_installer.core.scripts import ScriptError, ScriptRunner
from rcube_installer.utils.filesystem import (
    copy_directory,
    copy_file,
    is_writable,
    read_config_file,
    read_text_file,
    remove_directory,
    write_config_file,
    write_text_file,
)
from rcube_installer.utils.php_config import ConfigPluginListEditor, MalformedDocumentError
from rcube_installer.utils.version import normalize_version, version_compare

logger = logging.getLogger("rcube_installer.installer")

PLUGIN_CONFIG = "config.inc.php"
PLUGIN_CONFIG_DIST = "config.inc.php.dist"

ConfirmCallback = Callable[[str], bool]


class InstallError(Exception):
    """Error during plugin installation."""

    def __init__(self, message: str, plugin_name: str | None = None):
        self.plugin_name = plugin_name
        super().__init__(message)


class RoundcubeNotFoundError(InstallError):
    """No Roundcube installation was found in the project root."""


class VersionCheckError(InstallError):
    """The package does not support the installed Roundcube version."""


class UnsupportedPackageError(InstallError):
    """The package is not a Roundcube plugin."""


class ActivationError(InstallError):
    """The plugin could not be (de)activated in the Roundcube config."""


@dataclass
class InstallResult:
    """Result of a lifecycle operation on a plugin."""

    plugin_name: str
    version: str | None
    success: bool
    message: str = ""
    activated: bool = False
    warnings: list[str] = field(default_factory=list)


class PluginInstaller:
    """Installs, updates and uninstalls Roundcube plugins.

    The confirm callback is asked whether a freshly installed plugin should
    be activated. Without a callback (non-interactive use) plugins are
    installed but not activated.
    """

    def __init__(self, project: RoundcubeProject, confirm: ConfirmCallback | None = None):
        """Initialize the installer.

        Args:
            project: The Roundcube installation to install plugins into
            confirm: Callback asking the user a yes/no question
        """
        self.project = project
        self.confirm = confirm
        self.scripts = ScriptRunner(project)
        self.editor = ConfigPluginListEditor(project.config_variables)

    def install_path(self, package: Package) -> Path:
        """Get the directory a package is installed into."""
        return self._plugin_dir(package.plugin_name)

    def _plugin_dir(self, plugin_name: str) -> Path:
        """Get a plugin directory, refusing paths outside the plugins directory."""
        plugin_dir = self.project.plugin_dir(plugin_name)
        if plugin_dir.resolve().parent != self.project.vendor_dir.resolve():
            raise InstallError(
                f"Plugin directory {plugin_dir} is outside {self.project.vendor_dir}", plugin_name
            )
        return plugin_dir

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def install(self, source: Path) -> InstallResult:
        """Install a plugin package.

        Args:
            source: Directory containing the plugin package

        Returns:
            InstallResult describing the installation

        Raises:
            InstallError: If the package cannot be installed
        """
        package = self._load_package(source)
        self.check_version(package)

        plugin_name = package.plugin_name
        target = self._plugin_dir(plugin_name)
        if target.exists():
            raise InstallError(
                f"Plugin {plugin_name} is already installed in {target}; use update instead",
                plugin_name,
            )

        logger.info("Installing %s into %s", package.name, target)
        self._copy_package(package, target)
        installed = Package(target, package.manifest)

        result = InstallResult(
            plugin_name=plugin_name,
            version=package.version,
            success=True,
            message=f"Installed {plugin_name}" + (f"@{package.version}" if package.version else ""),
        )
        self._post_install(installed, result)
        return result

    def update(self, source: Path) -> InstallResult:
        """Update an installed plugin from a new package.

        The plugin's local config.inc.php survives the update.

        Args:
            source: Directory containing the new plugin package

        Returns:
            InstallResult describing the update

        Raises:
            InstallError: If the plugin is not installed or the update fails
        """
        package = self._load_package(source)
        self.check_version(package)

        plugin_name = package.plugin_name
        plugin_dir = self._plugin_dir(plugin_name)
        if not plugin_dir.is_dir():
            raise InstallError(f"Plugin {plugin_name} is not installed", plugin_name)
        installed_dir = plugin_dir.resolve()
        if package.path == installed_dir or installed_dir in package.path.parents:
            raise InstallError(
                f"Cannot update {plugin_name} from its own install directory {plugin_dir}",
                plugin_name,
            )

        initial_version = self._installed_version(plugin_dir)

        config_file = plugin_dir / PLUGIN_CONFIG
        try:
            config_backup = read_text_file(config_file) if config_file.is_file() else ""
        except OSError as e:
            logger.warning("Cannot read %s: %s", config_file, e)
            config_backup = ""

        logger.info(
            "Updating %s from %s to %s", package.name, initial_version or "?", package.version or "?"
        )
        self._copy_package(package, plugin_dir)
        updated = Package(plugin_dir, package.manifest)

        result = InstallResult(
            plugin_name=plugin_name,
            version=package.version,
            success=True,
            message=f"Updated {plugin_name}" + (f" to {package.version}" if package.version else ""),
        )

        if config_backup and is_writable(plugin_dir):
            logger.info("Restore plugin config file")
            write_text_file(config_file, config_backup)

        extra = updated.roundcube
        sql_dir = self._resolve_sql_dir(updated)
        if sql_dir is not None and not self.scripts.update_database(plugin_name, sql_dir):
            result.warnings.append(f"Database schema update for {plugin_name} failed")

        if extra.post_update_script:
            self._run_script(extra.post_update_script, updated)

        return result

    def uninstall(self, name: str) -> InstallResult:
        """Uninstall a plugin.

        Args:
            name: Plugin name or vendor-qualified package name

        Returns:
            InstallResult describing the removal

        Raises:
            InstallError: If the plugin is not installed
        """
        try:
            plugin_name = resolve_plugin_name(name)
        except ValueError as e:
            raise InstallError(str(e)) from e
        plugin_dir = self._plugin_dir(plugin_name)
        if not plugin_dir.is_dir():
            raise InstallError(f"Plugin {plugin_name} is not installed", plugin_name)

        package: Package | None = None
        try:
            package = Package.load(plugin_dir)
        except (FileNotFoundError, ConfigError) as e:
            logger.warning("Cannot read package manifest of %s: %s", plugin_name, e)

        logger.info("Removing %s", plugin_dir)
        remove_directory(plugin_dir)

        result = InstallResult(
            plugin_name=plugin_name,
            version=package.version if package else None,
            success=True,
            message=f"Uninstalled {plugin_name}",
        )

        try:
            self.alter_config(plugin_name, activate=False)
        except ActivationError as e:
            result.warnings.append(str(e))

        if package is not None and package.roundcube.post_uninstall_script:
            self._run_script(package.roundcube.post_uninstall_script, package)

        return result

    def _post_install(self, package: Package, result: InstallResult) -> None:
        plugin_name = package.plugin_name
        plugin_dir = package.path
        extra = package.roundcube

        if self.confirm is not None and is_writable(self.project.config_file):
            if self.confirm(f"Do you want to activate the plugin {plugin_name}?"):
                try:
                    self.alter_config(plugin_name, activate=True)
                    result.activated = True
                except ActivationError as e:
                    result.warnings.append(str(e))

        dist_file = plugin_dir / PLUGIN_CONFIG_DIST
        config_file = plugin_dir / PLUGIN_CONFIG
        if dist_file.is_file() and not config_file.is_file() and is_writable(plugin_dir):
            logger.info("Creating plugin config file")
            copy_file(dist_file, config_file)

        sql_dir = self._resolve_sql_dir(package)
        if sql_dir is not None and not self.scripts.initialize_database(plugin_name, sql_dir):
            result.warnings.append(f"Database initialization for {plugin_name} failed")

        if extra.post_install_script:
            self._run_script(extra.post_install_script, package)

    # -------------------------------------------------------------------------
    # Activation
    # -------------------------------------------------------------------------

    def active_plugins(self) -> list[str]:
        """List the plugins activated in the Roundcube config.

        Raises:
            ActivationError: If the config cannot be read or parsed
        """
        config_file = self.project.config_file
        try:
            document = read_config_file(config_file)
            return self.editor.plugins(document)
        except OSError as e:
            raise ActivationError(f"Cannot read {config_file}: {e}") from e
        except MalformedDocumentError as e:
            raise ActivationError(f"Cannot parse plugin list in {config_file}: {e}") from e

    def alter_config(self, plugin_name: str, activate: bool) -> bool:
        """Add a plugin to, or remove it from, the active plugin list.

        Args:
            plugin_name: Normalized plugin name
            activate: True to activate, False to deactivate

        Returns:
            True if the config file was changed, False if it already
            reflected the requested state

        Raises:
            ActivationError: If the plugin name is invalid or the config file
                cannot be read, parsed or written; the file is left untouched
        """
        config_file = self.project.config_file
        action = "activate" if activate else "deactivate"

        try:
            validate_plugin_name(plugin_name)
        except ValueError as e:
            raise ActivationError(f"Cannot {action} plugin: {e}", plugin_name) from e

        if not is_writable(config_file):
            raise ActivationError(
                f"Cannot {action} {plugin_name}: {config_file} is missing or not writable",
                plugin_name,
            )

        try:
            document = read_config_file(config_file)
            edit = self.editor.apply(document, plugin_name, activate)
        except OSError as e:
            raise ActivationError(
                f"Cannot {action} {plugin_name}: {e}", plugin_name
            ) from e
        except MalformedDocumentError as e:
            raise ActivationError(
                f"Cannot {action} {plugin_name}: {config_file} has an unparsable plugin list ({e})",
                plugin_name,
            ) from e

        if not edit.changed:
            logger.debug("Plugin list in %s already up to date", config_file)
            return False

        try:
            write_config_file(config_file, edit.document)
        except OSError as e:
            raise ActivationError(f"Cannot {action} {plugin_name}: {e}", plugin_name) from e

        logger.info("Updated local config at %s", config_file)
        return True

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def check_version(self, package: Package) -> None:
        """Check the package's Roundcube version requirements.

        Args:
            package: Package to check

        Raises:
            RoundcubeNotFoundError: If no Roundcube version can be detected
            VersionCheckError: If the installed version is out of range
        """
        detected = self.project.detect_version()
        if detected is None:
            raise RoundcubeNotFoundError(
                f"Unable to find a Roundcube installation in {self.project.root}", package.name
            )

        try:
            rcube_version = normalize_version(detected)
        except ValueError as e:
            raise RoundcubeNotFoundError(
                f"Unrecognized Roundcube version {detected!r} in {self.project.iniset_file}",
                package.name,
            ) from e

        extra = package.roundcube
        for required, operator in ((extra.min_version, ">="), (extra.max_version, "<=")):
            if not required:
                continue
            try:
                version = normalize_version(required)
            except ValueError as e:
                raise VersionCheckError(
                    f"Invalid Roundcube version requirement {required!r} in {package.name}",
                    package.name,
                ) from e
            if not version_compare(rcube_version, version, operator):
                raise VersionCheckError(
                    f"Version check failed! {package.name} requires Roundcube version "
                    f"{operator} {version}, {rcube_version} was detected.",
                    package.name,
                )

        logger.debug("Roundcube %s satisfies %s", rcube_version, package.name)

    def _load_package(self, source: Path) -> Package:
        try:
            package = Package.load(source)
        except FileNotFoundError as e:
            raise InstallError(str(e)) from e
        except ConfigError as e:
            raise InstallError(str(e)) from e

        try:
            plugin_name = package.plugin_name
        except ValueError as e:
            raise InstallError(str(e), package.name) from e
        logger.debug("Loaded %s (plugin %s) from %s", package.name, plugin_name, package.path)

        if not package.is_plugin:
            raise UnsupportedPackageError(
                f"{package.name} is of type {package.type!r}, expected {PLUGIN_PACKAGE_TYPE!r}",
                package.name,
            )
        return package

    def _copy_package(self, package: Package, target: Path) -> None:
        try:
            copy_directory(package.path, target)
        except OSError as e:
            raise InstallError(
                f"Cannot copy {package.name} to {target}: {e}", package.plugin_name
            ) from e

    def _installed_version(self, plugin_dir: Path) -> str | None:
        try:
            return Package.load(plugin_dir).version
        except (FileNotFoundError, ConfigError):
            return None

    def _resolve_sql_dir(self, package: Package) -> Path | None:
        sql_dir = package.roundcube.sql_dir
        if not sql_dir:
            return None
        path = (package.path / sql_dir).resolve()
        if not path.is_dir():
            logger.debug("SQL directory %s of %s does not exist", path, package.plugin_name)
            return None
        return path

    def _run_script(self, script: str, package: Package) -> None:
        try:
            self.scripts.run_script(script, package.path)
        except ScriptError as e:
            raise InstallError(str(e), package.plugin_name) from e
