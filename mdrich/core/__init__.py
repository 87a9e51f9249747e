# mdrich/core/__init__.py
"""
Core building blocks: path confinement, content validation, atomic writes,
rate limiting, HTTP and configuration.
"""

from mdrich.core.exceptions import (
    ArtifactWriteError,
    ContentTooLargeError,
    DocumentReadError,
    LedgerError,
    MalformedResponseError,
    MdrichError,
    PipelineError,
    ProviderError,
    ProviderRequestError,
    ProviderStatusError,
    UnsafePathError,
)
from mdrich.core.io import atomic_write
from mdrich.core.paths import ensure_safe_path, is_path_safe
from mdrich.core.rate_limit import RateLimiter
from mdrich.core.validation import MAX_FILE_SIZE, validate_content

__all__ = [
    "ArtifactWriteError",
    "ContentTooLargeError",
    "DocumentReadError",
    "LedgerError",
    "MalformedResponseError",
    "MdrichError",
    "PipelineError",
    "ProviderError",
    "ProviderRequestError",
    "ProviderStatusError",
    "UnsafePathError",
    "MAX_FILE_SIZE",
    "RateLimiter",
    "atomic_write",
    "ensure_safe_path",
    "is_path_safe",
    "validate_content",
]
