# tests/test_pipeline.py
"""
End-to-end tests for EnrichmentPipeline.

Real filesystem (tmp_path), real ConfigStore, real EnrichmentClient and
RateLimiter; only the provider's HTTP endpoint is mocked.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from mdrich.core.config import ConfigStore, load_config
from mdrich.core.exceptions import (
    ContentTooLargeError,
    LedgerError,
    MalformedResponseError,
    PipelineError,
    ProviderStatusError,
    UnsafePathError,
)
from mdrich.ingest.pipeline import (
    DocumentState,
    EnrichmentPipeline,
    SkipReason,
    merge_document,
)
from mdrich.ingest.source import FileSystemSource
from mdrich.llm.client import EnrichmentClient
from tests.conftest import chat_completion, request_prompt

pytestmark = pytest.mark.tier2

ENRICHED = "Обогащенный контент"


def ok(text=ENRICHED):
    return lambda request: httpx.Response(200, json=chat_completion(text))


def write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def run_pipeline(limiter, mock_provider):
    """Load the store, wire a client on a mock transport, run once."""

    def _run(store, responder=None):
        config = load_config(store)
        handler, http = mock_provider(responder or ok())
        client = EnrichmentClient(config, limiter, http_client=http)
        report = EnrichmentPipeline(config, store, client).run()
        return report, handler

    return _run


class StubEnricher:
    """Enricher that never touches the network."""

    def __init__(self, text="enriched"):
        self.text = text
        self.calls = []
        self._lock = threading.Lock()

    def enrich(self, document_text):
        with self._lock:
            self.calls.append(document_text)
        return self.text


class TestMergeDocument:
    pytestmark = pytest.mark.tier1

    def test_layout(self):
        assert merge_document("new", b"old") == b"new\n\n```old\nold\n```"

    def test_fences_in_original_are_escaped(self):
        original = b"text\n```python\nprint(1)\n```\n"

        merged = merge_document("E", original)

        assert merged == b"E\n\n```old\ntext\n\\`\\`\\`python\nprint(1)\n\\`\\`\\`\n\n```"
        # Only the opening and closing fences remain unescaped
        assert merged.count(b"```") == 2

    def test_original_bytes_kept_verbatim(self):
        original = "Привет\r\n\tмир".encode("utf-8")
        merged = merge_document("x", original)
        assert merged.endswith(b"```old\n" + original + b"\n```")


class TestHappyPath:
    def test_enriches_and_records(self, make_store, input_dir, output_dir, run_pipeline):
        write(input_dir, "test.md", "# Test Content")
        store = make_store()

        report, handler = run_pipeline(store)

        output = output_dir / "test.md"
        assert output.read_text(encoding="utf-8") == (
            "Обогащенный контент\n\n```old\n# Test Content\n```"
        )
        assert store.read_exclusions() == ["test.md"]
        assert report.get("test.md").state == DocumentState.RECORDED
        assert report.processed == 1
        assert len(handler.requests) == 1
        assert handler.prompts[0] == "Enrich this note:\n\n# Test Content"

    def test_config_given_relative_to_parent_directory(
        self, make_store, input_dir, output_dir, tmp_path, monkeypatch, run_pipeline
    ):
        """A store opened as ../mdrich.yaml still records, so reruns skip."""
        write(input_dir, "a.md", "x")
        make_store()
        work = tmp_path / "work"
        work.mkdir()
        monkeypatch.chdir(work)
        store = ConfigStore(Path("..") / "mdrich.yaml")

        report, _ = run_pipeline(store)
        rerun, handler = run_pipeline(store)

        assert report.get("a.md").state == DocumentState.RECORDED
        assert report.get("a.md").ledger_warning is False
        assert store.read_exclusions() == ["a.md"]
        assert rerun.get("a.md").skip_reason == SkipReason.EXCLUDED
        assert handler.requests == []

    def test_second_run_does_not_reprocess(self, make_store, input_dir, output_dir, run_pipeline):
        write(input_dir, "test.md", "# Test Content")
        store = make_store()
        run_pipeline(store)
        first_output = (output_dir / "test.md").read_bytes()

        report, handler = run_pipeline(store, ok("different"))

        assert handler.requests == []
        assert report.get("test.md").skip_reason == SkipReason.EXCLUDED
        assert (output_dir / "test.md").read_bytes() == first_output
        assert store.read_exclusions() == ["test.md"]

    def test_nested_directories_mirrored(self, make_store, input_dir, output_dir, run_pipeline):
        write(input_dir, "a/b/deep.md", "deep")
        store = make_store()

        run_pipeline(store)

        assert (output_dir / "a" / "b" / "deep.md").is_file()
        assert store.read_exclusions() == ["a/b/deep.md"]

    def test_same_name_in_different_directories(
        self, make_store, input_dir, output_dir, run_pipeline
    ):
        write(input_dir, "one/note.md", "first")
        write(input_dir, "two/note.md", "second")
        store = make_store("one/note.md")

        report, handler = run_pipeline(store)

        assert not (output_dir / "one" / "note.md").exists()
        assert (output_dir / "two" / "note.md").read_text(encoding="utf-8").endswith(
            "```old\nsecond\n```"
        )
        assert report.get("one/note.md").state == DocumentState.SKIPPED
        assert report.get("two/note.md").state == DocumentState.RECORDED
        assert store.read_exclusions() == ["one/note.md", "two/note.md"]
        assert len(handler.requests) == 1

    def test_non_utf8_original_kept_byte_exact(
        self, make_store, input_dir, output_dir, run_pipeline
    ):
        original = b"caf\xe9 latin-1"
        (input_dir / "legacy.md").write_bytes(original)
        store = make_store()

        run_pipeline(store)

        assert (output_dir / "legacy.md").read_bytes().endswith(b"```old\n" + original + b"\n```")


class TestSkips:
    def test_excluded_file_untouched(self, make_store, input_dir, output_dir, run_pipeline):
        write(input_dir, "skip.md", "private")
        write(input_dir, "keep.md", "public")
        store = make_store("skip.md")

        report, handler = run_pipeline(store)

        assert not (output_dir / "skip.md").exists()
        assert (output_dir / "keep.md").exists()
        assert handler.prompts == ["Enrich this note:\n\npublic"]
        assert report.get("skip.md").skip_reason == SkipReason.EXCLUDED

    def test_other_extensions_ignored(self, make_store, input_dir, output_dir, run_pipeline):
        write(input_dir, "image.png", "binary-ish")
        write(input_dir, "notes.txt", "text")
        write(input_dir, "UPPER.MD", "upper")
        store = make_store()

        report, handler = run_pipeline(store)

        assert report.get("image.png").skip_reason == SkipReason.EXTENSION
        assert report.get("notes.txt").skip_reason == SkipReason.EXTENSION
        assert report.get("UPPER.MD").state == DocumentState.RECORDED
        assert len(handler.requests) == 1
        assert not (output_dir / "notes.txt").exists()

    def test_output_root_inside_input_root(self, make_store, input_dir, run_pipeline):
        nested_output = input_dir / "done"
        write(input_dir, "a.md", "source")
        write(nested_output, "old.md", "previous artifact")
        store = make_store(output_path=nested_output)

        report, handler = run_pipeline(store)

        assert report.get("done/old.md").skip_reason == SkipReason.OUTPUT_DIR
        assert report.get("a.md").state == DocumentState.RECORDED
        assert len(handler.requests) == 1

    def test_custom_extension(self, make_store, input_dir, run_pipeline):
        write(input_dir, "a.markdown", "x")
        write(input_dir, "b.md", "y")
        store = make_store(processing={"extension": "markdown"})

        report, _ = run_pipeline(store)

        assert report.get("a.markdown").state == DocumentState.RECORDED
        assert report.get("b.md").skip_reason == SkipReason.EXTENSION


class TestDocumentFailures:
    """A failing document is reported; the walk continues."""

    def test_provider_500_does_not_stop_walk(
        self, make_store, input_dir, output_dir, run_pipeline
    ):
        write(input_dir, "bad.md", "bad content")
        write(input_dir, "good.md", "good content")
        store = make_store()

        def responder(request):
            if "bad content" in request_prompt(request):
                return httpx.Response(500, text="internal error")
            return httpx.Response(200, json=chat_completion("fine"))

        report, _ = run_pipeline(store, responder)

        bad = report.get("bad.md")
        assert bad.state == DocumentState.FAILED
        assert isinstance(bad.error, ProviderStatusError)
        assert bad.error.status_code == 500
        assert bad.error_kind == "ProviderStatusError"
        assert not (output_dir / "bad.md").exists()
        assert (output_dir / "good.md").exists()
        assert store.read_exclusions() == ["good.md"]
        assert report.processed == 1
        assert report.failed == 1

    def test_unsafe_document_does_not_stop_walk(
        self, make_store, input_dir, output_dir, tmp_path, run_pipeline
    ):
        """A file escaping the input root via symlink fails alone."""
        secret = write(tmp_path, "outside/secret.md", "not yours")
        write(input_dir, "ok.md", "fine")
        try:
            os.symlink(secret, input_dir / "link.md")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")
        store = make_store()

        report, handler = run_pipeline(store)

        link = report.get("link.md")
        assert link.state == DocumentState.FAILED
        assert isinstance(link.error, UnsafePathError)
        assert report.get("ok.md").state == DocumentState.RECORDED
        assert handler.prompts == ["Enrich this note:\n\nfine"]
        assert not (output_dir / "link.md").exists()
        assert store.read_exclusions() == ["ok.md"]

    def test_failed_document_retried_next_run(
        self, make_store, input_dir, output_dir, run_pipeline
    ):
        write(input_dir, "flaky.md", "content")
        store = make_store()
        run_pipeline(store, lambda r: httpx.Response(502, text="gateway"))

        report, _ = run_pipeline(store)

        assert report.get("flaky.md").state == DocumentState.RECORDED
        assert (output_dir / "flaky.md").exists()

    def test_malformed_response(self, make_store, input_dir, output_dir, run_pipeline):
        write(input_dir, "a.md", "x")
        store = make_store()

        report, _ = run_pipeline(store, lambda r: httpx.Response(200, json={"choices": []}))

        outcome = report.get("a.md")
        assert isinstance(outcome.error, MalformedResponseError)
        assert outcome.error.field == "choices"
        assert not (output_dir / "a.md").exists()
        assert store.read_exclusions() == []

    def test_too_large_never_reaches_provider(
        self, make_store, input_dir, output_dir, run_pipeline
    ):
        write(input_dir, "big.md", "x" * 200)
        write(input_dir, "small.md", "x" * 10)
        store = make_store(processing={"max_file_size": 100})

        report, handler = run_pipeline(store)

        big = report.get("big.md")
        assert isinstance(big.error, ContentTooLargeError)
        assert big.error.size == 200
        assert handler.prompts == ["Enrich this note:\n\n" + "x" * 10]
        assert not (output_dir / "big.md").exists()

    def test_write_failure_leaves_no_artifact(
        self, make_store, input_dir, output_dir, run_pipeline
    ):
        write(input_dir, "a.md", "x")
        store = make_store()

        with patch("mdrich.core.io.os.replace", side_effect=OSError("no space")):
            report, _ = run_pipeline(store)

        assert report.get("a.md").state == DocumentState.FAILED
        assert report.get("a.md").error_kind == "ArtifactWriteError"
        assert not (output_dir / "a.md").exists()
        assert store.read_exclusions() == []


class TestLedgerFailures:
    def test_retried_once_then_succeeds(self, make_store, input_dir):
        write(input_dir, "a.md", "x")
        store = make_store()
        config = load_config(store)

        from mdrich.ingest import ledger

        real = ledger.mark_processed
        attempts = []

        def flaky(store_, rel):
            attempts.append(rel)
            if len(attempts) == 1:
                raise LedgerError("locked")
            return real(store_, rel)

        with patch("mdrich.ingest.pipeline.mark_processed", side_effect=flaky):
            report = EnrichmentPipeline(config, store, StubEnricher()).run()

        assert attempts == ["a.md", "a.md"]
        assert report.get("a.md").state == DocumentState.RECORDED
        assert store.read_exclusions() == ["a.md"]

    def test_persistent_failure_keeps_artifact(self, make_store, input_dir, output_dir):
        write(input_dir, "a.md", "x")
        store = make_store()
        config = load_config(store)

        with patch(
            "mdrich.ingest.pipeline.mark_processed", side_effect=LedgerError("read-only")
        ) as mock_mark:
            report = EnrichmentPipeline(config, store, StubEnricher()).run()

        outcome = report.get("a.md")
        assert mock_mark.call_count == 2
        assert outcome.state == DocumentState.WRITTEN
        assert outcome.ledger_warning is True
        assert outcome.succeeded is True
        assert (output_dir / "a.md").exists()
        assert report.processed == 1


class TestRunFailures:
    def test_missing_input_root_aborts(self, make_store, tmp_path):
        store = make_store(input_path=tmp_path / "nope")
        config = load_config(store)
        enricher = StubEnricher()

        with pytest.raises(PipelineError, match="not found"):
            EnrichmentPipeline(config, store, enricher).run()

        assert enricher.calls == []

    def test_input_root_is_file(self, make_store, tmp_path):
        not_a_dir = tmp_path / "file.md"
        not_a_dir.write_text("x", encoding="utf-8")
        store = make_store(input_path=not_a_dir)
        config = load_config(store)

        with pytest.raises(PipelineError, match="not a directory"):
            EnrichmentPipeline(config, store, StubEnricher()).run()

    def test_walk_failure_aborts(self, make_store, input_dir):
        store = make_store()
        config = load_config(store)

        class BrokenSource(FileSystemSource):
            def discover(self, root):
                raise PermissionError("denied")

        with pytest.raises(PipelineError, match="denied"):
            EnrichmentPipeline(config, store, StubEnricher(), source=BrokenSource()).run()

    def test_empty_input_root(self, make_store, input_dir):
        store = make_store()
        config = load_config(store)

        report = EnrichmentPipeline(config, store, StubEnricher()).run()

        assert report.outcomes == []
        assert report.processed == 0


class TestConcurrentProcessing:
    def test_worker_pool_processes_everything(self, make_store, input_dir, output_dir):
        names = [f"note{i:02d}.md" for i in range(12)]
        for name in names:
            write(input_dir, name, name)
        store = make_store(processing={"max_workers": 4})
        config = load_config(store)
        enricher = StubEnricher()

        report = EnrichmentPipeline(config, store, enricher).run()

        assert [o.relative_path for o in report.outcomes] == names
        assert all(o.state == DocumentState.RECORDED for o in report.outcomes)
        assert sorted(store.read_exclusions()) == names
        assert len(enricher.calls) == 12
        for name in names:
            assert (output_dir / name).exists()


class TestDiscovery:
    pytestmark = pytest.mark.tier2

    def test_sorted_relative_paths(self, input_dir):
        write(input_dir, "b.md", "")
        write(input_dir, "a/z.md", "")
        write(input_dir, "a/c.md", "")

        found = [f.relative_path for f in FileSystemSource().discover(input_dir)]

        assert found == ["b.md", "a/c.md", "a/z.md"]

    def test_size_and_extension(self, input_dir):
        write(input_dir, "Note.MD", "12345")

        (file,) = list(FileSystemSource().discover(input_dir))

        assert file.size == 5
        assert file.extension == ".md"
        assert file.name == "Note.MD"

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(OSError):
            list(FileSystemSource().discover(tmp_path / "missing"))
