# mdrich/core/exceptions.py
"""
All exceptions for the enrichment core.

Hierarchy:
    MdrichError
    ├── UnsafePathError - Path escapes its root or contains traversal
    ├── ContentTooLargeError - Document exceeds the size ceiling
    ├── DocumentReadError - Source document could not be read
    ├── ArtifactWriteError - Output artifact could not be written
    ├── LedgerError - Exclusion ledger update failed
    ├── PipelineError - Fatal run-level failure
    └── ProviderError - Generative-text provider failures
        ├── ProviderStatusError - Non-success HTTP status
        ├── ProviderRequestError - Transport failure or timeout
        └── MalformedResponseError - Response missing an expected field

Configuration errors live in mdrich.core.config.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]


class MdrichError(Exception):
    """Base error for the enrichment core."""

    pass


# =============================================================================
# Filesystem Errors
# =============================================================================


class UnsafePathError(MdrichError):
    """Path contains a traversal segment or escapes its root."""

    def __init__(self, path: PathLike, root: Optional[PathLike] = None):
        self.path = str(path)
        self.root = str(root) if root is not None else None
        message = f"Unsafe path: {self.path}"
        if self.root:
            message += f" (root: {self.root})"
        super().__init__(message)


class ContentTooLargeError(MdrichError):
    """Document is larger than the configured ceiling."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"File size {size} bytes exceeds the maximum allowed ({limit} bytes)")


class DocumentReadError(MdrichError):
    """Source document could not be read."""

    def __init__(self, path: PathLike, reason: str = ""):
        self.path = str(path)
        super().__init__(f"Failed to read {self.path}: {reason}" if reason else self.path)


class ArtifactWriteError(MdrichError):
    """Output artifact could not be written atomically."""

    def __init__(self, path: PathLike, reason: str = ""):
        self.path = str(path)
        super().__init__(f"Failed to write {self.path}: {reason}" if reason else self.path)


class LedgerError(MdrichError):
    """Exclusion ledger could not be updated."""

    pass


class PipelineError(MdrichError):
    """Run-level failure that aborts the whole traversal."""

    pass


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(MdrichError):
    """Generative-text provider call failed."""

    pass


class ProviderStatusError(ProviderError):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str = "", provider: str = "unknown"):
        self.status_code = status_code
        self.body = body
        self.provider = provider
        message = f"{provider} API request failed (HTTP {status_code})"
        if body:
            message += f" - {body[:200]}"
        super().__init__(message)


class ProviderRequestError(ProviderError):
    """Request never produced a response (connect error, timeout, ...)."""

    def __init__(self, message: str, provider: str = "unknown"):
        self.provider = provider
        super().__init__(message)


class MalformedResponseError(ProviderError):
    """Response JSON lacks the field holding the generated text."""

    def __init__(self, field: str, provider: str = "unknown"):
        self.field = field
        self.provider = provider
        super().__init__(f"Malformed {provider} response: missing or invalid field '{field}'")


__all__ = [
    "MdrichError",
    "UnsafePathError",
    "ContentTooLargeError",
    "DocumentReadError",
    "ArtifactWriteError",
    "LedgerError",
    "PipelineError",
    "ProviderError",
    "ProviderStatusError",
    "ProviderRequestError",
    "MalformedResponseError",
]
