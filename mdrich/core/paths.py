# mdrich/core/paths.py
"""
Path confinement checks.

Every directory-confined path (input root, output root, input file, output
file) goes through this module before it is opened, created, or walked.

A path is unsafe when:
- any of its raw segments is ".." (either separator style), or
- it is resolved against a root and lands outside that root.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Union

from mdrich.core.exceptions import UnsafePathError

PathLike = Union[str, Path]

_SEGMENT_SPLIT = re.compile(r"[\\/]+")
_PARENT_SEGMENT = ".."


def has_traversal_segment(path: PathLike) -> bool:
    """True if any segment of the path, as written, is a parent reference."""
    return _PARENT_SEGMENT in _SEGMENT_SPLIT.split(str(path))


def is_within_root(path: PathLike, root: PathLike) -> bool:
    """
    True if path, resolved against root, stays inside root.

    Relative paths are joined onto root; absolute paths are taken as is.
    Symlinks are resolved on both sides so the comparison is like for like.
    """
    root_resolved = Path(root).resolve()
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = root_resolved / candidate
    candidate = candidate.resolve()

    return candidate == root_resolved or root_resolved in candidate.parents


def is_path_safe(path: PathLike, root: Optional[PathLike] = None) -> bool:
    """
    Check a path for traversal sequences and, if a root is given, confinement.

    Args:
        path: Path to check
        root: Optional root the path must stay inside

    Returns:
        True if the path is safe to open, create, or walk
    """
    if has_traversal_segment(path):
        return False
    if root is not None and not is_within_root(path, root):
        return False
    return True


def ensure_safe_path(path: PathLike, root: Optional[PathLike] = None) -> Path:
    """
    Like is_path_safe(), but raises instead of returning False.

    Returns:
        The path as a Path object

    Raises:
        UnsafePathError: If the check fails
    """
    if not is_path_safe(path, root):
        raise UnsafePathError(path, root)
    return Path(path)


def absolute_root(path: PathLike) -> Path:
    """
    Absolute, normalized form of a configured root directory.

    Parent references are collapsed lexically (no symlink resolution), so a
    configured "../done" is checked as the directory it actually names.
    """
    return Path(os.path.abspath(os.fspath(path)))


def normalize_relative(path: PathLike) -> str:
    """
    Canonical key for a path relative to the input root.

    Collapses "." segments and duplicate separators and always uses forward
    slashes, so keys compare equal across platforms.
    """
    raw = str(path).strip().replace("\\", "/")
    normalized = os.path.normpath(raw).replace(os.sep, "/")
    return "" if normalized == "." else normalized


__all__ = [
    "absolute_root",
    "ensure_safe_path",
    "has_traversal_segment",
    "is_path_safe",
    "is_within_root",
    "normalize_relative",
]
