# mdrich/ingest/pipeline.py
"""
EnrichmentPipeline - walks the input tree and enriches each document.

Per-document state machine:

    DISCOVERED -> VALIDATED -> ENRICHED -> WRITTEN -> RECORDED
         |             |           |          |
         v             v           v          v
      SKIPPED       FAILED      FAILED     (stays WRITTEN if the
                                            ledger update fails)

- SKIPPED: wrong extension, already in the exclusion ledger, or inside the
  output root
- FAILED: unsafe path, too large, unreadable, provider error, write error

A failed document is logged and the walk continues. Only root-level
problems (missing input root, unsafe root) abort the run, and they do so
before any document is touched.

Output artifact (bytes):

    <enriched text>\\n\\n```old\\n<original with ``` escaped>\\n```
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Protocol

from mdrich.core.config import ConfigStore, EnricherConfig
from mdrich.core.exceptions import (
    ContentTooLargeError,
    DocumentReadError,
    LedgerError,
    MdrichError,
    PipelineError,
    UnsafePathError,
)
from mdrich.core.io import DEFAULT_FILE_MODE, atomic_write
from mdrich.core.paths import ensure_safe_path, has_traversal_segment, is_within_root
from mdrich.core.validation import validate_content
from mdrich.ingest.ledger import mark_processed
from mdrich.ingest.source import FileSystemSource, SourceFile
from mdrich.logging.logger import get_logger
from mdrich.logging.tags import LEDGER, PIPELINE, VALIDATION

logger = get_logger(__name__)

FENCE = b"```"
ESCAPED_FENCE = b"\\`\\`\\`"
FENCE_OPEN = b"```old\n"


class Enricher(Protocol):
    """Anything that turns document text into enriched text."""

    def enrich(self, document_text: str) -> str: ...


class DocumentState(str, Enum):
    DISCOVERED = "discovered"
    VALIDATED = "validated"
    ENRICHED = "enriched"
    WRITTEN = "written"
    RECORDED = "recorded"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    EXTENSION = "extension"
    EXCLUDED = "excluded"
    OUTPUT_DIR = "output_dir"


@dataclass
class DocumentOutcome:
    """What happened to one discovered document."""

    relative_path: str
    state: DocumentState = DocumentState.DISCOVERED
    error: Optional[MdrichError] = None
    skip_reason: Optional[SkipReason] = None
    output_path: Optional[Path] = None
    ledger_warning: bool = False

    @property
    def succeeded(self) -> bool:
        """Artifact is on disk (whether or not the ledger recorded it)."""
        return self.state in (DocumentState.WRITTEN, DocumentState.RECORDED)

    @property
    def error_kind(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None


@dataclass
class RunReport:
    """Outcomes of one pipeline run, in discovery order."""

    outcomes: List[DocumentOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.state == DocumentState.SKIPPED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.state == DocumentState.FAILED)

    @property
    def failures(self) -> List[DocumentOutcome]:
        return [o for o in self.outcomes if o.state == DocumentState.FAILED]

    def get(self, relative_path: str) -> Optional[DocumentOutcome]:
        for outcome in self.outcomes:
            if outcome.relative_path == relative_path:
                return outcome
        return None


def merge_document(enriched_text: str, original: bytes) -> bytes:
    """
    Enriched text followed by the original inside an ```old fence.

    Every ``` in the original is escaped so the fence can't be closed early.
    """
    escaped = original.replace(FENCE, ESCAPED_FENCE)
    return enriched_text.encode("utf-8") + b"\n\n" + FENCE_OPEN + escaped + b"\n" + FENCE


class EnrichmentPipeline:
    """
    Orchestrates discovery, validation, enrichment, writing and recording.

    Args:
        config: Validated configuration
        store: Store the configuration came from (holds the ledger)
        client: Enricher used for every document (usually EnrichmentClient)
        source: File discovery (default: FileSystemSource)
        ledger_retries: Extra attempts for a failed ledger update

    With processing.max_workers > 1, documents are processed on a thread
    pool. Ledger updates are serialized by a lock in either mode.
    """

    def __init__(
        self,
        config: EnricherConfig,
        store: ConfigStore,
        client: Enricher,
        source: Optional[FileSystemSource] = None,
        ledger_retries: int = 1,
    ) -> None:
        self.config = config
        self.store = store
        self.client = client
        self.source = source or FileSystemSource()
        self.ledger_retries = ledger_retries
        self._ledger_lock = threading.Lock()

    # =========================================================================
    # Run
    # =========================================================================

    def run(self) -> RunReport:
        """
        Process every document under the input root.

        Returns:
            RunReport with one outcome per discovered file

        Raises:
            UnsafePathError: If a configured root fails the path check
            PipelineError: If the input root can't be walked or the output
                root can't be created
        """
        input_root, output_root = self._prepare_roots()
        excluded = self.config.excluded_paths

        logger.info(f"{PIPELINE} Scanning {input_root}")

        try:
            files = list(self.source.discover(input_root))
        except OSError as e:
            raise PipelineError(f"Failed to walk input directory {input_root}: {e}") from e

        outcomes = self._process_all(files, input_root, output_root, excluded)
        report = RunReport(outcomes=outcomes)

        logger.info(
            f"{PIPELINE} Processed files: {report.processed} "
            f"(skipped {report.skipped}, failed {report.failed})"
        )
        return report

    def _prepare_roots(self) -> tuple[Path, Path]:
        input_root = ensure_safe_path(self.config.input_root)
        output_root = ensure_safe_path(self.config.output_root)

        if not input_root.exists():
            raise PipelineError(f"Input directory not found: {input_root}")
        if not input_root.is_dir():
            raise PipelineError(f"Input path is not a directory: {input_root}")

        try:
            output_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PipelineError(f"Failed to create output directory {output_root}: {e}") from e

        return input_root, output_root

    def _process_all(
        self,
        files: Iterable[SourceFile],
        input_root: Path,
        output_root: Path,
        excluded: FrozenSet[str],
    ) -> List[DocumentOutcome]:
        workers = self.config.processing.max_workers
        if workers <= 1:
            return [self.process(f, input_root, output_root, excluded) for f in files]

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="enrich") as executor:
            futures = [
                executor.submit(self.process, f, input_root, output_root, excluded)
                for f in files
            ]
            return [future.result() for future in futures]

    # =========================================================================
    # Single Document
    # =========================================================================

    def process(
        self,
        file: SourceFile,
        input_root: Path,
        output_root: Path,
        excluded: FrozenSet[str],
    ) -> DocumentOutcome:
        """Run one document through the state machine. Never raises MdrichError."""
        outcome = DocumentOutcome(relative_path=file.relative_path)
        rel = file.relative_path

        skip = self._skip_reason(file, input_root, output_root, excluded)
        if skip is not None:
            outcome.state = DocumentState.SKIPPED
            outcome.skip_reason = skip
            if skip == SkipReason.EXCLUDED:
                logger.info(f"{PIPELINE} Skipping excluded file: {rel}")
            return outcome

        logger.info(f"{PIPELINE} Processing {rel}")
        output_path = output_root / rel

        try:
            data = self._read_validated(file, input_root, output_path, output_root)
            outcome.state = DocumentState.VALIDATED

            enriched = self.client.enrich(data.decode("utf-8", errors="replace"))
            outcome.state = DocumentState.ENRICHED

            atomic_write(
                output_path,
                merge_document(enriched, data),
                permissions=DEFAULT_FILE_MODE,
                root=output_root,
            )
            outcome.state = DocumentState.WRITTEN
            outcome.output_path = output_path
        except MdrichError as e:
            outcome.state = DocumentState.FAILED
            outcome.error = e
            logger.error(f"{PIPELINE} Failed to process {rel} [{type(e).__name__}]: {e}")
            return outcome

        if self._record(rel):
            outcome.state = DocumentState.RECORDED
        else:
            outcome.ledger_warning = True

        logger.info(f"{PIPELINE} Saved enriched content to {output_path}")
        return outcome

    def _skip_reason(
        self,
        file: SourceFile,
        input_root: Path,
        output_root: Path,
        excluded: FrozenSet[str],
    ) -> Optional[SkipReason]:
        if file.extension != self.config.processing.extension:
            return SkipReason.EXTENSION
        if file.relative_path in excluded:
            return SkipReason.EXCLUDED
        # Output root nested in the input root: never feed artifacts back in
        if (
            output_root != input_root
            and is_within_root(output_root, input_root)
            and is_within_root(file.path, output_root)
        ):
            return SkipReason.OUTPUT_DIR
        return None

    def _read_validated(
        self,
        file: SourceFile,
        input_root: Path,
        output_path: Path,
        output_root: Path,
    ) -> bytes:
        if has_traversal_segment(file.relative_path):
            raise UnsafePathError(file.relative_path, input_root)
        ensure_safe_path(file.path, input_root)
        ensure_safe_path(output_path, output_root)

        max_size = self.config.processing.max_file_size
        if file.size is not None and file.size > max_size:
            raise ContentTooLargeError(size=file.size, limit=max_size)

        try:
            data = file.path.read_bytes()
        except OSError as e:
            raise DocumentReadError(file.path, str(e)) from e

        validate_content(data, max_size=max_size)
        logger.debug(f"{VALIDATION} {file.relative_path}: {len(data)} bytes OK")
        return data

    def _record(self, relative_path: str) -> bool:
        """
        Add the document to the ledger, retrying on failure.

        The artifact is already on disk, so a ledger failure only risks a
        redundant reprocessing later: it is logged, never raised.
        """
        attempts = 1 + max(0, self.ledger_retries)
        for attempt in range(1, attempts + 1):
            try:
                with self._ledger_lock:
                    mark_processed(self.store, relative_path)
                return True
            except LedgerError as e:
                if attempt < attempts:
                    logger.warning(
                        f"{LEDGER} Failed to add {relative_path} to exclusions, retrying: {e}"
                    )
                else:
                    logger.warning(
                        f"{LEDGER} Giving up on recording {relative_path} in exclusions: {e}"
                    )
        return False


__all__ = [
    "DocumentOutcome",
    "DocumentState",
    "EnrichmentPipeline",
    "Enricher",
    "RunReport",
    "SkipReason",
    "merge_document",
]
