"""Command-line interface for cognitive-layer.

Enriches an HTML file with page and section summaries or repaired control
labels, and reports whether the generation backend is usable.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from . import __version__
from .accessibility.announcer import Announcer
from .accessibility.sections import SectionDetector
from .backends.claude import ClaudeCapability
from .capability import GenerationCapability, ProgressEvent
from .commands import Command, CommandDispatcher
from .config import LOG_LEVELS, Settings, load_settings
from .document import Document
from .enrichment.pipeline import EnrichmentPipeline
from .errors import CognitiveLayerError
from .results import RunResult

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="cognitive-layer",
    help="Add AI-generated summaries and accessible labels to HTML documents.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="YAML settings file")
]
LogLevelOption = Annotated[
    str | None, typer.Option("--log-level", help=f"One of {', '.join(LOG_LEVELS)}")
]
OutputOption = Annotated[
    Path | None, typer.Option("--output", "-o", help="Output file path (default: overwrite input)")
]
UrlOption = Annotated[
    str | None, typer.Option("--url", help="Address of the page, used to resolve relative links")
]
FileArgument = Annotated[Path, typer.Argument(help="Path to the HTML file")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cognitive-layer version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Add AI-generated summaries and accessible labels to HTML documents."""
    load_dotenv()


def _load_settings(config: Path | None, log_level: str | None) -> Settings:
    try:
        settings = load_settings(config)
    except (CognitiveLayerError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    level = (log_level or settings.log_level).upper()
    if level not in LOG_LEVELS:
        typer.echo(f"Error: --log-level must be one of {', '.join(LOG_LEVELS)}", err=True)
        raise typer.Exit(1)
    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(name)s: %(message)s")
    return settings


def build_capability(settings: Settings) -> GenerationCapability:
    """Create the generation capability used by CLI commands."""
    return ClaudeCapability(settings.claude)


def _echo_announcement(text: str) -> None:
    if text:
        typer.echo(f"[announcement] {text}")


def _echo_progress(event: ProgressEvent) -> None:
    logger.debug("Progress %s: %d%%", event.phase, event.percent)


async def _enrich(document: Document, command: Command, settings: Settings) -> RunResult:
    announcer = Announcer(document, settings.announcer, on_change=_echo_announcement)
    pipeline = EnrichmentPipeline(
        document,
        build_capability(settings),
        announcer,
        config=settings.pipeline,
        detector=SectionDetector(settings.segmentation),
        on_progress=_echo_progress,
    )
    response = CommandDispatcher(pipeline).dispatch({"action": command.value})
    if response.task is None:
        raise CognitiveLayerError(f"Command was not started: {response.status}")
    try:
        return await response.task
    finally:
        await announcer.close()


def _run(
    command: Command,
    file: Path,
    output: Path | None,
    config: Path | None,
    url: str | None,
    log_level: str | None,
) -> None:
    settings = _load_settings(config, log_level)

    try:
        document = Document(file, url=url)
        result = asyncio.run(_enrich(document, command, settings))
        output_path = document.save(output or file)
    except CognitiveLayerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(result.summary)
    if result.aborted:
        raise typer.Exit(1)
    typer.echo(f"Saved to {output_path}")


@app.command()
def overview(
    file: FileArgument,
    output: OutputOption = None,
    config: ConfigOption = None,
    url: UrlOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Summarize the whole page and insert the summary at the top."""
    _run(Command.GENERATE_OVERVIEW, file, output, config, url, log_level)


@app.command()
def sections(
    file: FileArgument,
    output: OutputOption = None,
    config: ConfigOption = None,
    url: UrlOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Insert a short summary note after every section heading."""
    _run(Command.GENERATE_SECTION_SUMMARIES, file, output, config, url, log_level)


@app.command("fix-labels")
def fix_labels(
    file: FileArgument,
    output: OutputOption = None,
    config: ConfigOption = None,
    url: UrlOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Generate descriptive aria-labels for ambiguous links and buttons."""
    _run(Command.FIX_AMBIGUOUS_LABELS, file, output, config, url, log_level)


@app.command()
def status(
    config: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Check whether the generation backend can be used."""
    settings = _load_settings(config, log_level)

    async def check() -> bool:
        document = Document.from_string("<html><body></body></html>")
        announcer = Announcer(document, settings.announcer)
        pipeline = EnrichmentPipeline(document, build_capability(settings), announcer)
        report = await CommandDispatcher(pipeline).check_capabilities()
        typer.echo(report.message)
        return report.ready

    if not asyncio.run(check()):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
