"""Project model representing a Roundcube installation."""

from pathlib import Path

from rcube_installer.config.parser import MANIFEST_FILENAME, load_installer_settings
from rcube_installer.config.schemas import InstallerSettings
from rcube_installer.utils.version import detect_roundcube_version


class RoundcubeProject:
    """Represents the Roundcube installation plugins are installed into.

    Paths are resolved from the Roundcube root using the installer settings
    (rcube-installer.yaml, or defaults when the file is absent).
    """

    def __init__(self, root: Path, settings: InstallerSettings | None = None):
        """Initialize a RoundcubeProject.

        Args:
            root: Path to the Roundcube root directory
            settings: Installer settings, or None for defaults
        """
        self._root = root.resolve()
        self._settings = settings or InstallerSettings()

    @classmethod
    def load(cls, path: Path | None = None) -> "RoundcubeProject":
        """Load a Roundcube project from disk.

        Args:
            path: Path to the Roundcube root, or None for the current directory

        Returns:
            Loaded RoundcubeProject instance

        Raises:
            FileNotFoundError: If the directory does not exist
            ConfigError: If rcube-installer.yaml is invalid
        """
        path = Path.cwd() if path is None else path.resolve()
        if not path.is_dir():
            raise FileNotFoundError(f"Directory does not exist: {path}")

        return cls(path, load_installer_settings(path))

    @property
    def root(self) -> Path:
        """Get the Roundcube root directory."""
        return self._root

    @property
    def settings(self) -> InstallerSettings:
        return self._settings

    @property
    def vendor_dir(self) -> Path:
        """Get the directory plugins are installed into."""
        return self._root / self._settings.vendor_dir

    @property
    def config_file(self) -> Path:
        """Get the path to the main Roundcube config file."""
        return self._root / self._settings.config_file

    @property
    def iniset_file(self) -> Path:
        return self._root / self._settings.iniset_file

    @property
    def config_variables(self) -> tuple[str, ...]:
        """Get the config variable names in priority order."""
        return tuple(self._settings.config_variables)

    def plugin_dir(self, plugin_name: str) -> Path:
        """Get the installation directory of a plugin."""
        return self.vendor_dir / plugin_name

    def detect_version(self) -> str | None:
        """Detect the installed Roundcube version.

        Returns:
            Version string from RCMAIL_VERSION, or None if Roundcube
            cannot be found
        """
        try:
            iniset = self.iniset_file.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None
        return detect_roundcube_version(iniset)

    def installed_plugins(self) -> list[str]:
        """List plugin directories that carry a package manifest."""
        if not self.vendor_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.vendor_dir.iterdir()
            if entry.is_dir() and (entry / MANIFEST_FILENAME).exists()
        )

    def __repr__(self) -> str:
        return f"RoundcubeProject(root={self._root!r})"
