"""Tests for rcube_installer.utils.filesystem module."""

import os
from pathlib import Path

import pytest

from rcube_installer.utils.filesystem import (
    copy_directory,
    copy_file,
    is_writable,
    read_config_file,
    remove_directory,
    write_config_file,
    write_text_file,
)
from rcube_installer.utils.php_config import ConfigDocument


class TestCopyDirectory:
    """Tests for copy_directory function."""

    def test_copies_tree(self, temp_dir: Path):
        """Copies files recursively."""
        src = temp_dir / "src"
        (src / "sub").mkdir(parents=True)
        (src / "sub" / "file.txt").write_text("content")

        dest = copy_directory(src, temp_dir / "out" / "dest")

        assert (dest / "sub" / "file.txt").read_text() == "content"

    def test_replaces_existing_destination(self, temp_dir: Path):
        """Removes stale files from an existing destination."""
        src = temp_dir / "src"
        src.mkdir()
        (src / "new.txt").write_text("new")
        dest = temp_dir / "dest"
        dest.mkdir()
        (dest / "old.txt").write_text("old")

        copy_directory(src, dest)

        assert (dest / "new.txt").exists()
        assert not (dest / "old.txt").exists()

    def test_skips_git_directory(self, temp_dir: Path):
        """Does not copy .git metadata."""
        src = temp_dir / "src"
        (src / ".git").mkdir(parents=True)
        (src / ".git" / "HEAD").write_text("ref")
        (src / "plugin.php").write_text("<?php")

        dest = copy_directory(src, temp_dir / "dest")

        assert (dest / "plugin.php").exists()
        assert not (dest / ".git").exists()


class TestCopyFile:
    """Tests for copy_file function."""

    def test_copies_to_file(self, temp_dir: Path):
        src = temp_dir / "a.txt"
        src.write_text("a")

        dest = copy_file(src, temp_dir / "b.txt")

        assert dest.read_text() == "a"

    def test_copies_into_directory(self, temp_dir: Path):
        src = temp_dir / "a.txt"
        src.write_text("a")
        target_dir = temp_dir / "dir"
        target_dir.mkdir()

        dest = copy_file(src, target_dir)

        assert dest == target_dir / "a.txt"


class TestRemoveDirectory:
    """Tests for remove_directory function."""

    def test_removes_directory(self, temp_dir: Path):
        """Removes a directory and returns True."""
        path = temp_dir / "dir"
        (path / "sub").mkdir(parents=True)

        assert remove_directory(path) is True
        assert not path.exists()

    def test_missing_directory(self, temp_dir: Path):
        """Returns False when nothing was removed."""
        assert remove_directory(temp_dir / "missing") is False


class TestIsWritable:
    """Tests for is_writable function."""

    def test_existing_file(self, temp_dir: Path):
        path = temp_dir / "file"
        path.write_text("")

        assert is_writable(path) is True

    def test_missing_file(self, temp_dir: Path):
        assert is_writable(temp_dir / "missing") is False


class TestConfigFiles:
    """Tests for reading and writing config documents."""

    def test_read_config_file(self, temp_dir: Path):
        """Reads the raw text without newline translation."""
        path = temp_dir / "config.inc.php"
        path.write_bytes(b"<?php\r\n$config['plugins'] = array();\r\n")

        document = read_config_file(path)

        assert document.raw_text == "<?php\r\n$config['plugins'] = array();\r\n"

    def test_read_missing_file(self, temp_dir: Path):
        """Raises FileNotFoundError for a missing file."""
        with pytest.raises(FileNotFoundError):
            read_config_file(temp_dir / "missing.php")

    def test_write_config_file(self, temp_dir: Path):
        """Writes the document text."""
        path = temp_dir / "config.inc.php"
        path.write_text("old")

        write_config_file(path, ConfigDocument("<?php\n"))

        assert path.read_text() == "<?php\n"

    def test_write_preserves_mode(self, temp_dir: Path):
        """Keeps the permissions of the replaced file."""
        path = temp_dir / "config.inc.php"
        path.write_text("old")
        os.chmod(path, 0o640)

        write_config_file(path, ConfigDocument("new"))

        assert (path.stat().st_mode & 0o777) == 0o640

    def test_write_leaves_no_temp_files(self, temp_dir: Path):
        """Only the target file remains after writing."""
        path = temp_dir / "config.inc.php"

        write_text_file(path, "content")

        assert [p.name for p in temp_dir.iterdir()] == ["config.inc.php"]

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores file permissions")
    def test_write_read_only_file(self, temp_dir: Path):
        """Raises PermissionError and keeps the original content."""
        path = temp_dir / "config.inc.php"
        path.write_text("original")
        os.chmod(path, 0o444)

        with pytest.raises(PermissionError):
            write_config_file(path, ConfigDocument("new"))

        assert path.read_text() == "original"
