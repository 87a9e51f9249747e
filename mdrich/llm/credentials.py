# mdrich/llm/credentials.py
"""
Credential resolution for generative-text providers.

Rules:
- The client must NOT read environment variables directly.
- Resolution order:
  1. Env var named by model.api_key_env (indirection)
  2. Literal model.api_key
  3. Provider-specific env var
  4. Generic fallback env var
- A missing key is not an error: local and generic endpoints often need
  none. The caller decides whether to warn.
"""

from __future__ import annotations

import os
from typing import Dict, List, Mapping, Optional

from mdrich.logging.logger import get_logger
from mdrich.logging.tags import CHAT

logger = get_logger(__name__)


# Universal fallback (lowest priority)
GENERIC_API_KEY_ENV = "MDRICH_API_KEY"

# Provider-specific env vars
PROVIDER_ENV_MAP: Dict[str, List[str]] = {
    "openai": ["OPENAI_API_KEY"],
    "openrouter": ["OPENROUTER_API_KEY"],
    "anthropic": ["ANTHROPIC_API_KEY"],
    "generic": [],
}


def resolve_api_key(
    *,
    provider: str,
    api_key: Optional[str] = None,
    api_key_env: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Resolve the API key for a provider.

    Parameters
    ----------
    provider:
        Provider name (e.g. "openai", "anthropic").
    api_key:
        Literal key from the configuration, if any.
    api_key_env:
        Name of an environment variable holding the key, if any.
    environ:
        Environment mapping (defaults to os.environ).

    Returns
    -------
    str or None
        Resolved key, or None if nothing is configured.
    """
    env = os.environ if environ is None else environ

    # 1. Explicit env var indirection
    if api_key_env:
        value = env.get(api_key_env)
        if value:
            logger.debug(f"{CHAT} Using API key from env '{api_key_env}' for provider '{provider}'")
            return value
        logger.debug(f"{CHAT} Env '{api_key_env}' is not set, trying other sources")

    # 2. Literal config value
    if api_key:
        logger.debug(f"{CHAT} Using API key from config for provider '{provider}'")
        return api_key

    # 3. Provider-specific env vars
    for env_name in PROVIDER_ENV_MAP.get(provider, []):
        value = env.get(env_name)
        if value:
            logger.debug(f"{CHAT} Using API key from env '{env_name}' for provider '{provider}'")
            return value

    # 4. Generic fallback
    fallback = env.get(GENERIC_API_KEY_ENV)
    if fallback:
        logger.debug(f"{CHAT} Using API key from env '{GENERIC_API_KEY_ENV}' for provider '{provider}'")
        return fallback

    return None


__all__ = ["GENERIC_API_KEY_ENV", "PROVIDER_ENV_MAP", "resolve_api_key"]
