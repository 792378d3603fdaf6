"""Unit tests for the application archive builder."""

import os
import shutil
import tempfile
import unittest
import zipfile
from pathlib import Path

from quartermaster.archive import DEFAULT_EXCLUDES, build_archive, is_excluded
from quartermaster.core.exceptions import ArchiveBuildError


def _write(path: Path, data: bytes):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def _entries(zip_path: Path) -> dict:
    with zipfile.ZipFile(zip_path, "r") as zipf:
        return {name: zipf.read(name) for name in zipf.namelist()}


class TestBuildArchive(unittest.TestCase):
    """Test cases for build_archive."""

    def setUp(self):
        """Create an application tree in a temporary directory."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.app_dir = self.temp_dir / "app"
        self.app_dir.mkdir()
        self.zip_path = self.temp_dir / "app.zip"

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_excludes_vcs_and_os_metadata(self):
        """Only main.go survives next to .git and .DS_Store entries."""
        _write(self.app_dir / "main.go", b"x" * 100)
        _write(self.app_dir / ".git" / "HEAD", b"h" * 20)
        _write(self.app_dir / ".DS_Store", b"d" * 10)

        result = build_archive(self.app_dir, self.zip_path)

        entries = _entries(self.zip_path)
        self.assertEqual(list(entries), ["app/main.go"])
        self.assertEqual(len(entries["app/main.go"]), 100)
        self.assertEqual(result.entries, ["app/main.go"])
        self.assertEqual(result.excluded, 2)

    def test_go_pkg_and_bin_are_excluded(self):
        """Build output below go/pkg and go/bin never reaches the archive."""
        _write(self.app_dir / "go" / "pkg" / "lib.a", b"archive")
        _write(self.app_dir / "go" / "bin" / "tool", b"binary")
        _write(self.app_dir / "go" / "src" / "main.go", b"package main")

        build_archive(self.app_dir, self.zip_path)

        self.assertEqual(list(_entries(self.zip_path)), ["app/go/src/main.go"])

    def test_contents_are_byte_identical(self):
        """Every archived file keeps its exact bytes and relative path."""
        files = {
            "run.sh": b"#!/bin/sh\nexec ./server\n",
            "static/index.html": b"<html></html>",
            "static/img/logo.png": bytes(range(256)) * 4,
            "empty.txt": b"",
        }
        for rel, data in files.items():
            _write(self.app_dir / rel, data)

        build_archive(self.app_dir, self.zip_path)

        expected = {f"app/{rel}": data for rel, data in files.items()}
        self.assertEqual(_entries(self.zip_path), expected)

    def test_no_directory_entries(self):
        """Directories, even empty ones, are implicit in entry names."""
        (self.app_dir / "empty_dir").mkdir()
        _write(self.app_dir / "nested" / "deep" / "file.txt", b"data")

        build_archive(self.app_dir, self.zip_path)

        with zipfile.ZipFile(self.zip_path, "r") as zipf:
            names = zipf.namelist()
            self.assertFalse(any(info.is_dir() for info in zipf.infolist()))
        self.assertEqual(names, ["app/nested/deep/file.txt"])

    def test_empty_directory_gives_empty_archive(self):
        """An empty tree produces a valid archive with zero entries."""
        result = build_archive(self.app_dir, self.zip_path)

        self.assertTrue(self.zip_path.exists())
        self.assertEqual(_entries(self.zip_path), {})
        self.assertEqual(result.entries, [])

    def test_rebuild_gives_same_entries(self):
        """Building twice from an unchanged tree yields the same entry set."""
        _write(self.app_dir / "a.txt", b"alpha")
        _write(self.app_dir / "sub" / "b.txt", b"beta")

        build_archive(self.app_dir, self.zip_path)
        first = _entries(self.zip_path)
        os.remove(self.zip_path)
        build_archive(self.app_dir, self.zip_path)

        self.assertEqual(_entries(self.zip_path), first)

    def test_existing_archive_is_truncated(self):
        """A stale archive at the output path is replaced."""
        with zipfile.ZipFile(self.zip_path, "w") as zipf:
            zipf.writestr("stale.txt", b"old")
        _write(self.app_dir / "new.txt", b"new")

        build_archive(self.app_dir, self.zip_path)

        self.assertEqual(list(_entries(self.zip_path)), ["app/new.txt"])

    def test_custom_exclusion_rules(self):
        """Caller-supplied rules replace the defaults."""
        _write(self.app_dir / "keep.py", b"print()")
        _write(self.app_dir / "cache" / "mod.pyc", b"\x00")
        _write(self.app_dir / ".DS_Store", b"d")

        build_archive(self.app_dir, self.zip_path, exclude=["*.pyc"])

        self.assertEqual(sorted(_entries(self.zip_path)), ["app/.DS_Store", "app/keep.py"])

    def test_output_inside_source_is_skipped(self):
        """The archive being written is not archived into itself."""
        _write(self.app_dir / "main.go", b"package main")
        zip_path = self.app_dir / "app.zip"

        build_archive(self.app_dir, zip_path)

        self.assertEqual(list(_entries(zip_path)), ["app/main.go"])

    def test_missing_directory_raises(self):
        """A root that is not a directory is reported as ArchiveBuildError."""
        with self.assertRaises(ArchiveBuildError):
            build_archive(self.temp_dir / "missing", self.zip_path)

    def test_unwritable_output_raises(self):
        """Failing to create the archive is fatal."""
        _write(self.app_dir / "main.go", b"package main")
        with self.assertRaises(ArchiveBuildError):
            build_archive(self.app_dir, self.temp_dir / "no" / "such" / "dir" / "app.zip")

    @unittest.skipIf(not hasattr(os, "symlink"), "symlinks not supported")
    def test_broken_symlink_is_fatal(self):
        """An unreadable entry aborts the whole build."""
        _write(self.app_dir / "main.go", b"package main")
        os.symlink(self.temp_dir / "nowhere", self.app_dir / "dangling")
        with self.assertRaises(ArchiveBuildError):
            build_archive(self.app_dir, self.zip_path)


class TestIsExcluded(unittest.TestCase):
    """Default exclusion rules."""

    def test_matches_legacy_paths(self):
        for path in [
            "app/.DS_Store",
            "app/static/.DS_Store",
            "app/go/src/github.com/x/y/.git/HEAD",
            "app/go/src/lib/.bzr/branch",
            "app/go/src/lib/.hg/store",
            "app/go/pkg/linux_amd64/lib.a",
            "app/go/bin/tool",
        ]:
            self.assertTrue(is_excluded(path, DEFAULT_EXCLUDES), path)

    def test_keeps_ordinary_paths(self):
        for path in [
            "app/main.go",
            "app/.gitignore",
            "app/go/src/main.go",
            "app/static/index.html",
        ]:
            self.assertFalse(is_excluded(path, DEFAULT_EXCLUDES), path)

    def test_no_rules_excludes_nothing(self):
        self.assertFalse(is_excluded("app/.DS_Store", []))


if __name__ == "__main__":
    unittest.main()
