"""Pydantic schemas for installer configuration files.

This module defines the data models for:
- composer.json (plugin package manifest)
- rcube-installer.yaml (installer settings, optional)
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Common Types
# =============================================================================

PLUGIN_PACKAGE_TYPE = "roundcube-plugin"


# =============================================================================
# Package Manifest Models
# =============================================================================


class RoundcubeExtra(BaseModel):
    """The ``extra.roundcube`` block of a plugin's composer.json."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    min_version: str | None = Field(default=None, alias="min-version")
    max_version: str | None = Field(default=None, alias="max-version")
    sql_dir: str | None = Field(default=None, alias="sql-dir")
    post_install_script: str | None = Field(default=None, alias="post-install-script")
    post_update_script: str | None = Field(default=None, alias="post-update-script")
    post_uninstall_script: str | None = Field(default=None, alias="post-uninstall-script")

    @field_validator("*", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        """Treat empty strings like missing values."""
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v


class PackageManifest(BaseModel):
    """Plugin package manifest (composer.json)."""

    model_config = ConfigDict(extra="allow")

    name: str
    version: str | None = None
    type: str = "library"
    description: str = ""
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Require a vendor-qualified package name."""
        vendor, _, package = v.partition("/")
        if not vendor or not package:
            raise ValueError(f"Package name must be in 'vendor/name' form, got {v!r}")
        return v

    @property
    def roundcube(self) -> RoundcubeExtra:
        """Get the Roundcube-specific settings."""
        data = self.extra.get("roundcube") or {}
        if not isinstance(data, dict):
            data = {}
        return RoundcubeExtra.model_validate(data)


# =============================================================================
# Installer Settings
# =============================================================================


class InstallerSettings(BaseModel):
    """Installer settings (rcube-installer.yaml).

    All paths are relative to the Roundcube root directory.
    """

    model_config = ConfigDict(extra="forbid")

    vendor_dir: str = "plugins"
    config_file: str = "config/config.inc.php"
    iniset_file: str = "program/include/iniset.php"
    initdb_script: str = "vendor/bin/rcubeinitdb.sh"
    updatedb_script: str = "bin/updatedb.sh"
    php_binary: str = "php"
    config_variables: list[str] = Field(default_factory=lambda: ["$config", "$rcmail_config"])

    @field_validator("config_variables")
    @classmethod
    def validate_config_variables(cls, v: list[str]) -> list[str]:
        """Variable names must be non-empty PHP variables."""
        if not v:
            raise ValueError("At least one config variable is required")
        for name in v:
            if not name.startswith("$") or len(name) < 2:
                raise ValueError(f"Invalid PHP variable name: {name!r}")
        return v
