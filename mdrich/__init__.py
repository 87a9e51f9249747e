"""
mdrich - resumable, rate-limited Markdown enrichment.

Walks a directory of Markdown notes, sends each one to a generative-text
provider, and writes the response followed by the fenced original to an
output directory. Processed notes are recorded in the configuration's
exclusion list, so re-running never reprocesses them.

Architecture:
    mdrich/
    ├── core/      # paths, validation, atomic io, rate limiting, http, config
    ├── llm/       # provider adapters, typed responses, credentials, client
    ├── ingest/    # discovery, exclusion ledger, pipeline
    ├── logging/   # logger setup and subsystem tags
    └── cli.py     # typer entry point

Quick Start:
    >>> from mdrich import ConfigStore, EnrichmentClient, EnrichmentPipeline
    >>> from mdrich import RateLimiter, load_config
    >>> store = ConfigStore("mdrich.yaml")
    >>> config = load_config(store)
    >>> with RateLimiter(config.processing.requests_per_minute) as limiter:
    ...     with EnrichmentClient(config, limiter) as client:
    ...         report = EnrichmentPipeline(config, store, client).run()
"""

__version__ = "0.1.0"

from mdrich.core.config import ConfigStore, EnricherConfig, load_config
from mdrich.core.rate_limit import RateLimiter
from mdrich.ingest.pipeline import DocumentState, EnrichmentPipeline, RunReport
from mdrich.llm.client import EnrichmentClient

__all__ = [
    "__version__",
    "ConfigStore",
    "DocumentState",
    "EnricherConfig",
    "EnrichmentClient",
    "EnrichmentPipeline",
    "RateLimiter",
    "RunReport",
    "load_config",
]
