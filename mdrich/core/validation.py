# mdrich/core/validation.py
"""Pre-flight checks on document content, run before any network call."""

from __future__ import annotations

from mdrich.core.exceptions import ContentTooLargeError

# 10 MiB
MAX_FILE_SIZE = 10 * 1024 * 1024


def validate_content(data: bytes, max_size: int = MAX_FILE_SIZE) -> None:
    """
    Reject documents larger than max_size bytes.

    Raises:
        ContentTooLargeError: If len(data) > max_size
    """
    if len(data) > max_size:
        raise ContentTooLargeError(size=len(data), limit=max_size)


__all__ = ["MAX_FILE_SIZE", "validate_content"]
