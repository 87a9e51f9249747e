# mdrich/ingest/source.py
"""
Local filesystem source for document discovery.

Walks the input root recursively and yields every regular file. Extension
filtering is left to the pipeline so that skipped files are reported.

Flow: FileSystemSource.discover() -> SourceFile -> EnrichmentPipeline
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from mdrich.core.paths import normalize_relative
from mdrich.logging.logger import get_logger
from mdrich.logging.tags import PIPELINE

logger = get_logger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """
    A file discovered under the input root.

    relative_path is the normalized, forward-slash path relative to the
    root. It identifies the document and is the exclusion ledger key.
    """

    relative_path: str
    path: Path
    size: Optional[int] = None

    @property
    def extension(self) -> str:
        """File extension (lowercase, with dot)."""
        return self.path.suffix.lower()

    @property
    def name(self) -> str:
        return self.path.name

    def __repr__(self) -> str:
        return f"SourceFile({self.relative_path!r})"


@dataclass
class FileSystemSource:
    """
    Recursive discovery under a root directory.

    Directory entries are visited in sorted order so runs are reproducible.
    Symlinked directories are not followed.

    Example:
        source = FileSystemSource()
        for file in source.discover("./todo"):
            print(file.relative_path)
    """

    follow_symlinks: bool = False

    def discover(self, root: Path) -> Iterator[SourceFile]:
        """
        Yield every regular file under root.

        The relative path is re-derived from root for each file.

        Raises:
            OSError: If the root itself can't be listed
        """
        root = Path(root)

        def on_error(err: OSError) -> None:
            # A missing root is fatal; an unreadable subdirectory is not
            if Path(err.filename or "") == root:
                raise err
            logger.warning(f"{PIPELINE} Cannot read directory {err.filename}: {err.strerror}")

        for dirpath, dirnames, filenames in os.walk(
            root, onerror=on_error, followlinks=self.follow_symlinks
        ):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if not path.is_file():
                    continue
                yield self._create_source_file(root, path)

    def _create_source_file(self, root: Path, path: Path) -> SourceFile:
        try:
            size: Optional[int] = path.stat().st_size
        except OSError:
            size = None

        relative = normalize_relative(os.path.relpath(path, root))
        return SourceFile(relative_path=relative, path=path, size=size)


__all__ = ["FileSystemSource", "SourceFile"]
