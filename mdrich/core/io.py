# mdrich/core/io.py
"""
Atomic file writes.

The target either keeps its old complete content or receives the new
complete content. Readers never see a partial write.

Sequence:
    mkstemp in the target directory -> write -> fsync -> chmod -> os.replace

The temp file lives next to the target so the rename never crosses a
filesystem boundary.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from mdrich.core.exceptions import ArtifactWriteError
from mdrich.core.paths import ensure_safe_path
from mdrich.logging.logger import get_logger
from mdrich.logging.tags import WRITER

logger = get_logger(__name__)

PathLike = Union[str, Path]

DEFAULT_FILE_MODE = 0o644
TEMP_PREFIX = ".tmp_"
TEMP_SUFFIX = ".tmp"


def atomic_write(
    path: PathLike,
    data: bytes,
    permissions: int = DEFAULT_FILE_MODE,
    root: Optional[PathLike] = None,
) -> Path:
    """
    Write bytes to path atomically.

    Args:
        path: Destination file
        data: Complete new content
        permissions: File mode applied before the rename
        root: Optional directory the destination must stay inside

    Returns:
        The destination path

    Raises:
        UnsafePathError: If the destination fails the path check
        ArtifactWriteError: If any step fails (target left untouched)
    """
    target = ensure_safe_path(path, root)
    directory = target.parent

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArtifactWriteError(target, f"cannot create directory {directory}: {e}") from e

    try:
        fd, temp_name = tempfile.mkstemp(dir=directory, prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX)
    except OSError as e:
        raise ArtifactWriteError(target, f"cannot create temp file: {e}") from e

    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, permissions)
        os.replace(temp_path, target)
    except OSError as e:
        _discard(temp_path)
        raise ArtifactWriteError(target, str(e)) from e
    except BaseException:
        _discard(temp_path)
        raise

    logger.debug(f"{WRITER} Wrote {len(data)} bytes to {target}")
    return target


def _discard(temp_path: Path) -> None:
    try:
        temp_path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"{WRITER} Failed to remove temp file {temp_path}: {e}")


__all__ = ["DEFAULT_FILE_MODE", "atomic_write"]
