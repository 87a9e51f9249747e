# mdrich/ingest/__init__.py
"""
Document discovery, the exclusion ledger, and the enrichment pipeline.

Flow: FileSystemSource.discover() -> EnrichmentPipeline.process() -> mark_processed()
"""

from mdrich.ingest.ledger import is_processed, mark_processed
from mdrich.ingest.pipeline import (
    DocumentOutcome,
    DocumentState,
    EnrichmentPipeline,
    RunReport,
    SkipReason,
    merge_document,
)
from mdrich.ingest.source import FileSystemSource, SourceFile

__all__ = [
    "DocumentOutcome",
    "DocumentState",
    "EnrichmentPipeline",
    "FileSystemSource",
    "RunReport",
    "SkipReason",
    "SourceFile",
    "is_processed",
    "mark_processed",
    "merge_document",
]
