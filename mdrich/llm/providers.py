# mdrich/llm/providers.py
"""
Provider adapters: request building and response parsing per API family.

An adapter is chosen once, when the client is built, by matching the
configured API URL (case-insensitively) against known provider signatures.
URLs matching none of them use the generic adapter.

    openrouter -> OpenRouterAdapter   (checked before "openai")
    openai     -> OpenAIAdapter
    anthropic  -> AnthropicAdapter
    otherwise  -> GenericAdapter

Each adapter pairs the request shape with the matching response shape, so
a request is never parsed with another provider's shape.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional, Protocol, Tuple, Type
from urllib.parse import urlsplit

from mdrich.llm.schema import (
    ChatCompletionResponse,
    CompletionResponse,
    MessagesResponse,
    ProviderResponse,
    decode_response,
)


class ProviderAdapter(Protocol):
    """Capability for talking to one provider family."""

    name: str

    def endpoint(self, api_url: str) -> str:
        """URL the request is POSTed to."""
        ...

    def build_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        """Auth and provider-specific headers (Content-Type is set by the client)."""
        ...

    def build_request(
        self, model: str, prompt: str, temperature: float, max_tokens: int
    ) -> Dict[str, Any]:
        """JSON request body."""
        ...

    def parse_response(self, data: Any) -> str:
        """Generated text from decoded JSON. Raises MalformedResponseError."""
        ...


# =============================================================================
# OpenAI-compatible format
# =============================================================================


class OpenAIAdapter:
    """
    OpenAI Chat Completions format.

    Request:
    {
        "model": "...",
        "messages": [{"role": "user", "content": "..."}],
        "temperature": 0.7,
        "max_tokens": 1000
    }

    Response text: choices[0].message.content
    """

    name: ClassVar[str] = "openai"
    response_shape: ClassVar[Type[ProviderResponse]] = ChatCompletionResponse

    def endpoint(self, api_url: str) -> str:
        return api_url

    def build_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        if not api_key:
            return {}
        return {"Authorization": f"Bearer {api_key}"}

    def build_request(
        self, model: str, prompt: str, temperature: float, max_tokens: int
    ) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def parse_response(self, data: Any) -> str:
        return decode_response(self.response_shape, data, provider=self.name).generated_text


class OpenRouterAdapter(OpenAIAdapter):
    """
    OpenRouter: OpenAI format plus attribution headers.
    """

    name: ClassVar[str] = "openrouter"

    REFERER = "https://github.com/"
    TITLE = "Markdown Enricher"

    def build_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        headers = super().build_headers(api_key)
        if headers:
            headers["HTTP-Referer"] = self.REFERER
            headers["X-Title"] = self.TITLE
        return headers


# =============================================================================
# Anthropic format
# =============================================================================


class AnthropicAdapter:
    """
    Anthropic Messages API format.

    Same request body as OpenAI, different auth headers and response shape.
    Response text: content[0].text

    A bare host URL (https://api.anthropic.com) is completed with the
    Messages API path.
    """

    name: ClassVar[str] = "anthropic"
    response_shape: ClassVar[Type[ProviderResponse]] = MessagesResponse

    API_VERSION = "2023-06-01"
    MESSAGES_PATH = "/v1/messages"

    def endpoint(self, api_url: str) -> str:
        if urlsplit(api_url).path.strip("/") == "":
            return api_url.rstrip("/") + self.MESSAGES_PATH
        return api_url

    def build_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        if not api_key:
            return {}
        return {
            "x-api-key": api_key,
            "anthropic-version": self.API_VERSION,
        }

    def build_request(
        self, model: str, prompt: str, temperature: float, max_tokens: int
    ) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def parse_response(self, data: Any) -> str:
        return decode_response(self.response_shape, data, provider=self.name).generated_text


# =============================================================================
# Generic completion format
# =============================================================================


class GenericAdapter:
    """
    Plain completion endpoint.

    Request: {"model", "prompt", "temperature", "max_tokens"}
    Response text: text
    """

    name: ClassVar[str] = "generic"
    response_shape: ClassVar[Type[ProviderResponse]] = CompletionResponse

    def endpoint(self, api_url: str) -> str:
        return api_url

    def build_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        if not api_key:
            return {}
        return {"Authorization": f"Bearer {api_key}"}

    def build_request(
        self, model: str, prompt: str, temperature: float, max_tokens: int
    ) -> Dict[str, Any]:
        return {
            "model": model,
            "prompt": prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def parse_response(self, data: Any) -> str:
        return decode_response(self.response_shape, data, provider=self.name).generated_text


# =============================================================================
# Adapter Registry
# =============================================================================


ADAPTER_REGISTRY: Dict[str, Type[ProviderAdapter]] = {
    "openai": OpenAIAdapter,
    "openrouter": OpenRouterAdapter,
    "anthropic": AnthropicAdapter,
    "generic": GenericAdapter,
}

# Match order matters: "openrouter" must win over "openai"
URL_SIGNATURES: Tuple[Tuple[str, str], ...] = (
    ("openrouter", "openrouter"),
    ("openai", "openai"),
    ("anthropic", "anthropic"),
)


def detect_provider(api_url: str) -> str:
    """Provider name for an API URL; "generic" if nothing matches."""
    lowered = api_url.lower()
    for signature, provider in URL_SIGNATURES:
        if signature in lowered:
            return provider
    return "generic"


def get_adapter(name: str) -> ProviderAdapter:
    """
    Get an adapter by provider name.

    Raises:
        ValueError: If the name is not registered
    """
    if name not in ADAPTER_REGISTRY:
        available = sorted(ADAPTER_REGISTRY.keys())
        raise ValueError(f"Unknown provider adapter: {name!r}. Available: {available}")

    return ADAPTER_REGISTRY[name]()


def select_adapter(api_url: str) -> ProviderAdapter:
    """Adapter matching the API URL."""
    return get_adapter(detect_provider(api_url))


__all__ = [
    "ADAPTER_REGISTRY",
    "AnthropicAdapter",
    "GenericAdapter",
    "OpenAIAdapter",
    "OpenRouterAdapter",
    "ProviderAdapter",
    "detect_provider",
    "get_adapter",
    "select_adapter",
]
