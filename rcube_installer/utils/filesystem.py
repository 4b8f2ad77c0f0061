"""Filesystem utilities for the Roundcube plugin installer."""

import os
import shutil
import tempfile
from pathlib import Path

from rcube_installer.utils.php_config import ConfigDocument


def is_writable(path: Path) -> bool:
    """Check whether an existing file or directory can be written to."""
    return path.exists() and os.access(path, os.W_OK)


def copy_file(src: Path, dest: Path) -> Path:
    """Copy a file to a destination.

    Args:
        src: Source file path
        dest: Destination path (file or directory)

    Returns:
        Path to the copied file
    """
    if dest.is_dir():
        dest = dest / src.name
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)
    return dest


def copy_directory(src: Path, dest: Path, ignore: tuple[str, ...] = (".git",)) -> Path:
    """Copy a directory recursively, replacing any existing destination.

    Args:
        src: Source directory path
        dest: Destination directory path
        ignore: Glob patterns of entries to skip

    Returns:
        Path to the copied directory
    """
    if dest.exists():
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(src, dest, ignore=shutil.ignore_patterns(*ignore))
    return dest


def remove_directory(path: Path) -> bool:
    """Remove a directory and its contents.

    Args:
        path: Directory path to remove

    Returns:
        True if the directory was removed, False if it didn't exist
    """
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True


def read_text_file(path: Path) -> str:
    """Read a text file.

    Args:
        path: Path to the file

    Returns:
        File contents as a string
    """
    return path.read_text(encoding="utf-8")


def write_text_file(path: Path, content: str) -> None:
    """Write content to a text file atomically.

    The content goes to a temporary file in the same directory which then
    replaces the target, so readers never see a partial file.

    Args:
        path: Path to the file
        content: Content to write
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if path.exists():
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def read_config_file(path: Path) -> ConfigDocument:
    """Read a configuration file.

    Args:
        path: Path to the configuration file

    Returns:
        ConfigDocument with the file contents

    Raises:
        FileNotFoundError: If the file does not exist
        PermissionError: If the file cannot be read
    """
    with open(path, encoding="utf-8", newline="") as f:
        return ConfigDocument(f.read())


def write_config_file(path: Path, document: ConfigDocument) -> None:
    """Write a configuration file, leaving the original intact on failure.

    Args:
        path: Path to the configuration file
        document: Document to write

    Raises:
        PermissionError: If the file or its directory is not writable
    """
    if path.exists() and not os.access(path, os.W_OK):
        raise PermissionError(f"Config file is not writable: {path}")
    write_text_file(path, document.raw_text)
