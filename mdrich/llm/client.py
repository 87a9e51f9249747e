# mdrich/llm/client.py
"""
EnrichmentClient - sends one document to the configured provider.

Steps per call:
    1. Wait for a rate-limiter token (blocking point)
    2. Build the provider-specific body and headers via the adapter
    3. POST with a bounded timeout over TLS >= 1.2
    4. Map non-2xx to ProviderStatusError, transport failures to
       ProviderRequestError
    5. Decode JSON with the adapter's typed shape (MalformedResponseError
       names the missing field)
    6. Return the trimmed text

No retries happen here; retry policy belongs to the caller.
"""

from __future__ import annotations

from typing import Optional

import httpx

from mdrich.core.config import EnricherConfig
from mdrich.core.exceptions import MalformedResponseError
from mdrich.core.http import create_api_client, handle_request_error, raise_for_status
from mdrich.core.rate_limit import RateLimiter
from mdrich.llm.credentials import resolve_api_key
from mdrich.llm.providers import ProviderAdapter, select_adapter
from mdrich.logging.logger import get_logger
from mdrich.logging.tags import CHAT

logger = get_logger(__name__)

BODY_FIELD = "<body>"


def build_prompt(template: str, document: str) -> str:
    """Prompt template followed by a blank line and the document."""
    return f"{template}\n\n{document}"


class EnrichmentClient:
    """
    Provider client for document enrichment.

    The adapter and credential are resolved once, at construction. The
    client is safe to share across threads: httpx.Client is thread-safe
    and the limiter is the only shared mutable state.

    Usage:
        with RateLimiter(10) as limiter, EnrichmentClient(config, limiter) as client:
            text = client.enrich("# Notes")
    """

    def __init__(
        self,
        config: EnricherConfig,
        rate_limiter: RateLimiter,
        http_client: Optional[httpx.Client] = None,
        adapter: Optional[ProviderAdapter] = None,
    ) -> None:
        self.config = config
        self.rate_limiter = rate_limiter

        model = config.model
        self.adapter: ProviderAdapter = adapter or select_adapter(model.api_url)
        self.url = self.adapter.endpoint(model.api_url)

        api_key = resolve_api_key(
            provider=self.adapter.name,
            api_key=model.api_key,
            api_key_env=model.api_key_env,
        )
        if not api_key:
            logger.warning(
                f"{CHAT} No API key configured for provider '{self.adapter.name}', "
                f"sending requests without authentication"
            )
        self._headers = self.adapter.build_headers(api_key)

        self._owns_client = http_client is None
        self._client = http_client or create_api_client(timeout=config.processing.request_timeout)

        logger.debug(f"{CHAT} Using {self.adapter.name} adapter for {self.url}")

    @property
    def provider(self) -> str:
        return self.adapter.name

    def enrich(self, document_text: str) -> str:
        """
        Generate enriched text for one document.

        Returns:
            Generated text, stripped of surrounding whitespace

        Raises:
            ProviderStatusError: Non-success HTTP status
            ProviderRequestError: Connection failure or timeout
            MalformedResponseError: Response lacks the expected field
        """
        self.rate_limiter.acquire()

        model = self.config.model
        payload = self.adapter.build_request(
            model=model.name,
            prompt=build_prompt(self.config.prompt.text, document_text),
            temperature=model.temperature,
            max_tokens=model.max_tokens,
        )

        try:
            response = self._client.post(self.url, json=payload, headers=self._headers)
        except httpx.HTTPError as exc:
            raise handle_request_error(exc, provider=self.provider) from exc

        raise_for_status(response, provider=self.provider)

        # Only status and size: bodies can be large and may echo the document
        logger.info(
            f"{CHAT} Received API response: status {response.status_code}, "
            f"size {len(response.content)} bytes"
        )

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(field=BODY_FIELD, provider=self.provider) from exc

        return self.adapter.parse_response(data).strip()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "EnrichmentClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["EnrichmentClient", "build_prompt"]
