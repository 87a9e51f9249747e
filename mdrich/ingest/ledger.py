# mdrich/ingest/ledger.py
"""
Exclusion ledger - durable record of already-processed documents.

The ledger lives in the configuration store itself, as the
exclusions.excluded_files value. Every operation takes the store handle
explicitly and reads it fresh from disk. There is no cache that could
disagree with the file.

Key responsibilities:
- Normalize relative paths into ledger keys
- Add a key (read-modify-write, atomic rewrite)
- Answer membership queries

Key non-responsibilities:
- NO locking across processes (one pipeline per store)
- NO removal of entries (an operator prunes the list by hand)
"""

from __future__ import annotations

from mdrich.core.config import ConfigError, ConfigStore
from mdrich.core.exceptions import LedgerError, MdrichError
from mdrich.core.paths import normalize_relative
from mdrich.logging.logger import get_logger
from mdrich.logging.tags import LEDGER

logger = get_logger(__name__)


def mark_processed(store: ConfigStore, relative_path: str) -> bool:
    """
    Record a document as processed.

    Idempotent: marking a path that is already present changes nothing.

    Args:
        store: Configuration store holding the ledger
        relative_path: Document path relative to the input root

    Returns:
        True if the path was added, False if it was already present

    Raises:
        LedgerError: If the store can't be read or rewritten
    """
    key = normalize_relative(relative_path)
    if not key:
        raise LedgerError(f"Cannot record an empty path: {relative_path!r}")

    try:
        current = store.read_exclusions()
        if key in current:
            logger.debug(f"{LEDGER} {key} already recorded")
            return False

        store.write_exclusions(current + [key])
    except (ConfigError, MdrichError, OSError) as e:
        raise LedgerError(f"Failed to record {key} in {store.path}: {e}") from e

    logger.debug(f"{LEDGER} Recorded {key}")
    return True


def is_processed(store: ConfigStore, relative_path: str) -> bool:
    """True if the path is in the ledger on disk."""
    try:
        return normalize_relative(relative_path) in store.read_exclusions()
    except ConfigError as e:
        raise LedgerError(f"Failed to read ledger from {store.path}: {e}") from e


__all__ = ["is_processed", "mark_processed"]
