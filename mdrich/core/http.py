# mdrich/core/http.py
"""
HTTP client factory and error mapping for provider calls.

Usage:
    from mdrich.core.http import create_api_client, raise_for_status

    with create_api_client(timeout=60.0) as client:
        response = client.post(url, json=payload, headers=headers)
        raise_for_status(response, provider="openai")

Every client enforces TLS 1.2 or newer and a bounded timeout.
"""

from __future__ import annotations

import ssl
from typing import Any, Dict, Optional

import httpx

from mdrich.core.exceptions import ProviderRequestError, ProviderStatusError
from mdrich.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 60.0
MIN_TLS_VERSION = ssl.TLSVersion.TLSv1_2

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Error bodies are kept for diagnostics, but capped
MAX_ERROR_BODY = 2000


def create_ssl_context(min_version: ssl.TLSVersion = MIN_TLS_VERSION) -> ssl.SSLContext:
    """Default-verified SSL context with a minimum protocol version."""
    context = ssl.create_default_context()
    context.minimum_version = min_version
    return context


def create_api_client(
    timeout: float = DEFAULT_TIMEOUT,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> httpx.Client:
    """
    Create a configured HTTP client.

    Args:
        timeout: Request timeout in seconds
        headers: Additional default headers
        **kwargs: Passed through to httpx.Client (e.g. transport= in tests)

    Returns:
        Configured httpx.Client instance
    """
    final_headers = dict(DEFAULT_HEADERS)
    if headers:
        final_headers.update(headers)

    kwargs.setdefault("verify", create_ssl_context())

    client = httpx.Client(
        headers=final_headers,
        timeout=timeout,
        **kwargs,
    )

    logger.debug(f"Created HTTP client (timeout={timeout}s)")
    return client


def raise_for_status(response: httpx.Response, provider: str = "unknown") -> None:
    """
    Raise ProviderStatusError for any non-2xx response.

    The response body is attached to the error (truncated) so callers can
    report what the provider said.
    """
    if response.is_success:
        return

    try:
        body = response.text[:MAX_ERROR_BODY]
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        body = ""

    raise ProviderStatusError(status_code=response.status_code, body=body, provider=provider)


def handle_request_error(exc: httpx.HTTPError, provider: str = "unknown") -> ProviderRequestError:
    """Convert an httpx transport exception to a ProviderRequestError."""
    if isinstance(exc, httpx.TimeoutException):
        return ProviderRequestError(f"{provider} request timed out: {exc}", provider=provider)

    if isinstance(exc, httpx.ConnectError):
        return ProviderRequestError(f"Failed to connect to {provider}: {exc}", provider=provider)

    return ProviderRequestError(f"{provider} request failed: {exc}", provider=provider)


__all__ = [
    "DEFAULT_TIMEOUT",
    "MIN_TLS_VERSION",
    "create_api_client",
    "create_ssl_context",
    "handle_request_error",
    "raise_for_status",
]
