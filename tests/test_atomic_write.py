# tests/test_atomic_write.py
"""Tests for atomic artifact writes."""

from __future__ import annotations

import os
import stat
from unittest.mock import patch

import pytest

from mdrich.core.exceptions import ArtifactWriteError, UnsafePathError
from mdrich.core.io import atomic_write

pytestmark = pytest.mark.tier2


def _leftovers(directory):
    return sorted(p.name for p in directory.iterdir() if p.name.startswith(".tmp_"))


class TestAtomicWrite:
    def test_writes_complete_content(self, tmp_path):
        target = tmp_path / "out.md"

        result = atomic_write(target, b"hello\nworld")

        assert result == target
        assert target.read_bytes() == b"hello\nworld"
        assert _leftovers(tmp_path) == []

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "c.md"

        atomic_write(target, b"nested", root=tmp_path)

        assert target.read_bytes() == b"nested"

    def test_replaces_existing_file(self, tmp_path):
        target = tmp_path / "out.md"
        target.write_bytes(b"old content that is longer")

        atomic_write(target, b"new")

        assert target.read_bytes() == b"new"

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_applies_permissions(self, tmp_path):
        target = tmp_path / "out.md"

        atomic_write(target, b"x", permissions=0o600)

        assert stat.S_IMODE(target.stat().st_mode) == 0o600

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_default_permissions(self, tmp_path):
        target = tmp_path / "out.md"

        atomic_write(target, b"x")

        assert stat.S_IMODE(target.stat().st_mode) == 0o644


class TestAtomicWriteFailures:
    """A failed write leaves the previous content and no temp files."""

    def test_failure_before_rename_keeps_old_content(self, tmp_path):
        target = tmp_path / "out.md"
        target.write_bytes(b"previous")

        with patch("mdrich.core.io.os.replace", side_effect=OSError("disk on fire")):
            with pytest.raises(ArtifactWriteError, match="disk on fire"):
                atomic_write(target, b"replacement")

        assert target.read_bytes() == b"previous"
        assert _leftovers(tmp_path) == []

    def test_failure_during_sync_leaves_no_target(self, tmp_path):
        target = tmp_path / "new.md"

        with patch("mdrich.core.io.os.fsync", side_effect=OSError("io error")):
            with pytest.raises(ArtifactWriteError):
                atomic_write(target, b"data")

        assert not target.exists()
        assert _leftovers(tmp_path) == []

    def test_non_os_error_still_cleans_up(self, tmp_path):
        target = tmp_path / "new.md"

        with patch("mdrich.core.io.os.chmod", side_effect=RuntimeError("interrupted")):
            with pytest.raises(RuntimeError):
                atomic_write(target, b"data")

        assert not target.exists()
        assert _leftovers(tmp_path) == []

    def test_traversal_is_rejected(self, tmp_path):
        with pytest.raises(UnsafePathError):
            atomic_write(tmp_path / ".." / "escape.md", b"x")

        assert not (tmp_path.parent / "escape.md").exists()

    def test_outside_root_is_rejected(self, tmp_path):
        root = tmp_path / "done"
        root.mkdir()

        with pytest.raises(UnsafePathError):
            atomic_write(tmp_path / "elsewhere.md", b"x", root=root)

        assert not (tmp_path / "elsewhere.md").exists()

    def test_directory_creation_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_bytes(b"not a directory")

        with pytest.raises(ArtifactWriteError, match="cannot create directory"):
            atomic_write(blocker / "child.md", b"x")
