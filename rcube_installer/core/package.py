"""Package model representing a Roundcube plugin package."""

from pathlib import Path

from rcube_installer.config.parser import MANIFEST_FILENAME, load_package_manifest
from rcube_installer.config.schemas import PLUGIN_PACKAGE_TYPE, PackageManifest, RoundcubeExtra

_RESERVED_NAMES = (".", "..")


def validate_plugin_name(name: str) -> str:
    """Check that a plugin name names a single directory below plugins/.

    Args:
        name: Plugin name

    Returns:
        The unchanged name

    Raises:
        ValueError: If the name is empty, a relative path component or
            contains a path separator
    """
    if not name or name in _RESERVED_NAMES or "/" in name or "\\" in name:
        raise ValueError(f"Invalid plugin name: {name!r}")
    return name


def normalize_plugin_name(package_name: str) -> str:
    """Get the plugin name Roundcube uses for a package.

    The plugin name is the package part of ``vendor/package-name`` with
    hyphens replaced by underscores (``johndoe/mark-as-junk`` becomes
    ``mark_as_junk``).

    Args:
        package_name: Vendor-qualified package name

    Returns:
        Normalized plugin name

    Raises:
        ValueError: If the name has no valid package part
    """
    parts = package_name.split("/")
    if len(parts) < 2 or not parts[1]:
        raise ValueError(f"Cannot derive a plugin name from {package_name!r}")
    return validate_plugin_name(parts[1].replace("-", "_"))


def resolve_plugin_name(name: str) -> str:
    """Get the plugin name from a plugin name or a vendor/package name.

    Raises:
        ValueError: If no valid plugin name can be derived
    """
    if "/" in name:
        return normalize_plugin_name(name)
    return validate_plugin_name(name)


class Package:
    """Represents a plugin package on disk.

    A package is a directory containing a composer.json manifest, either a
    source to install from or a plugin already installed into Roundcube.
    """

    def __init__(self, path: Path, manifest: PackageManifest):
        """Initialize a Package.

        Args:
            path: Path to the package directory
            manifest: Parsed package manifest
        """
        self._path = path.resolve()
        self._manifest = manifest

    @classmethod
    def load(cls, path: Path) -> "Package":
        """Load a package from disk.

        Args:
            path: Path to the package directory

        Returns:
            Loaded Package instance

        Raises:
            FileNotFoundError: If composer.json is not found
        """
        path = path.resolve()
        if not (path / MANIFEST_FILENAME).exists():
            raise FileNotFoundError(f"No {MANIFEST_FILENAME} found in {path}")

        manifest = load_package_manifest(path)
        return cls(path, manifest)

    @property
    def path(self) -> Path:
        """Get the package directory path."""
        return self._path

    @property
    def manifest(self) -> PackageManifest:
        return self._manifest

    @property
    def name(self) -> str:
        """Get the vendor-qualified package name."""
        return self._manifest.name

    @property
    def plugin_name(self) -> str:
        """Get the normalized Roundcube plugin name."""
        return normalize_plugin_name(self._manifest.name)

    @property
    def version(self) -> str | None:
        return self._manifest.version

    @property
    def type(self) -> str:
        return self._manifest.type

    @property
    def is_plugin(self) -> bool:
        """Check whether the package is a Roundcube plugin."""
        return self._manifest.type == PLUGIN_PACKAGE_TYPE

    @property
    def roundcube(self) -> RoundcubeExtra:
        """Get the Roundcube-specific extra settings."""
        return self._manifest.roundcube

    def __repr__(self) -> str:
        return f"Package(name={self.name!r}, version={self.version!r})"
