# mdrich/cli.py
"""
mdrich CLI.

Usage:
    mdrich                       # uses ./mdrich.yaml
    mdrich --config notes.yaml   # explicit config
    mdrich -c notes.yaml -v      # debug logging

Exit codes:
    0  run completed (individual documents may still have failed)
    1  configuration could not be loaded, or the run aborted
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from mdrich import __version__
from mdrich.core.config import DEFAULT_CONFIG_PATH, ConfigError, ConfigStore, load_config
from mdrich.core.exceptions import PipelineError, UnsafePathError
from mdrich.core.rate_limit import RateLimiter
from mdrich.ingest.pipeline import EnrichmentPipeline, RunReport
from mdrich.llm.client import EnrichmentClient
from mdrich.logging.logger import configure_logging, get_logger
from mdrich.logging.tags import CLI

logger = get_logger(__name__)

app = typer.Typer(
    name="mdrich",
    help="Enrich Markdown notes with a generative-text model, resumably.",
    add_completion=False,
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"mdrich version {__version__}")
        raise typer.Exit()


def _print_report(report: RunReport) -> None:
    table = Table(title="Enrichment run", show_header=True, header_style="bold")
    table.add_column("Processed", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="dim")
    table.add_column("Failed", justify="right", style="red")
    table.add_row(str(report.processed), str(report.skipped), str(report.failed))
    console.print(table)

    for outcome in report.failures:
        console.print(f"[red]✗[/red] {outcome.relative_path} [dim]({outcome.error_kind})[/dim]")
    for outcome in report.outcomes:
        if outcome.ledger_warning:
            console.print(
                f"[yellow]![/yellow] {outcome.relative_path} written but not recorded in exclusions"
            )


@app.command()
def run(
    config: Path = typer.Option(
        Path(DEFAULT_CONFIG_PATH), "--config", "-c", help="Path to the configuration file."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
) -> None:
    """Enrich every Markdown document under the configured input directory."""
    configure_logging("DEBUG" if verbose else "INFO")
    logger.info(f"{CLI} Starting with configuration from: {config}")

    store = ConfigStore(config)
    try:
        settings = load_config(store)
    except (ConfigError, UnsafePathError) as e:
        logger.error(f"{CLI} Failed to load configuration: {e}")
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)

    try:
        configure_logging(
            "DEBUG" if verbose else settings.logging.level,
            log_file=settings.logging.file,
        )
    except OSError as e:
        logger.error(f"{CLI} Failed to open log file {settings.logging.file}: {e}")
        console.print(f"[red]Configuration error:[/red] cannot open log file: {e}")
        raise typer.Exit(code=1)

    try:
        with RateLimiter(settings.processing.requests_per_minute) as limiter:
            with EnrichmentClient(settings, limiter) as client:
                pipeline = EnrichmentPipeline(settings, store, client)
                report = pipeline.run()
    except (PipelineError, UnsafePathError) as e:
        logger.error(f"{CLI} Directory processing failed: {e}")
        console.print(f"[red]Run aborted:[/red] {e}")
        raise typer.Exit(code=1)

    _print_report(report)
    logger.info(f"{CLI} Processing complete")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
