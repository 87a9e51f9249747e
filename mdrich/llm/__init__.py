# mdrich/llm/__init__.py
"""
Provider access: adapters per API family, typed response shapes,
credential resolution, and the rate-limited EnrichmentClient.
"""

from mdrich.llm.client import EnrichmentClient
from mdrich.llm.credentials import resolve_api_key
from mdrich.llm.providers import ProviderAdapter, detect_provider, get_adapter, select_adapter

__all__ = [
    "EnrichmentClient",
    "ProviderAdapter",
    "detect_provider",
    "get_adapter",
    "resolve_api_key",
    "select_adapter",
]
