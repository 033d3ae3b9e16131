"""
Firmo Coverage CLI - classify sources and report on recorded traces.

Provides commands for inspecting line classification, replaying coverage
traces into a session, and scaffolding configuration.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from firmo_coverage.analysis import analyze_source, read_source
from firmo_coverage.config import ConfigLoader
from firmo_coverage.coverage import CoverageSession, CoverageSummary
from firmo_coverage.errors import CoverageError
from firmo_coverage.models import LineKind
from firmo_coverage.reporting import describe_formatters, get_formatter
from firmo_coverage.trace import load_trace, replay_trace

app = typer.Typer(
    name="firmo-coverage",
    help="Line, block and assertion coverage for Lua code",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

KIND_STYLES = {
    LineKind.EXECUTABLE: "green",
    LineKind.BLOCK_START: "cyan",
    LineKind.BLOCK_END: "blue",
    LineKind.NON_EXECUTABLE: "dim",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        from firmo_coverage import __version__

        console.print(f"[bold blue]Firmo Coverage[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Firmo Coverage - line, block and assertion coverage for Lua."""
    pass


@app.command()
def classify(
    path: str = typer.Argument(..., help="Path to a Lua source file"),
    format_: str = typer.Option("console", "--format", "-f", help="Output format: console, json"),
) -> None:
    """
    Show how each line of a file is classified.

    Also lists the blocks, functions and conditions found in the file.
    """
    target_path = Path(path)

    if not target_path.is_file():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    source = analyze_source(path, read_source(target_path))

    if format_ == "json":
        payload = {
            "path": source.path,
            "lines": [
                {"line": number, "kind": kind.value, "source": text}
                for number, (kind, text) in enumerate(zip(source.kinds, source.lines), start=1)
            ],
            "blocks": [str(block.key) for block in source.blocks],
            "functions": [
                {"id": fn.function_id, "start": fn.start_line, "end": fn.end_line}
                for fn in source.functions
            ],
            "conditions": [
                {"line": c.line, "index": c.index, "expression": c.expression}
                for c in source.conditions
            ],
        }
        typer.echo(json.dumps(payload, indent=2))
        return
    if format_ != "console":
        console.print(f"[red]Error:[/red] Unknown format: {format_}")
        raise typer.Exit(1)

    table = Table(title=escape(source.path))
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Kind")
    table.add_column("Source", overflow="fold")
    for number, (kind, text) in enumerate(zip(source.kinds, source.lines), start=1):
        style = KIND_STYLES[kind]
        table.add_row(str(number), f"[{style}]{kind.value}[/{style}]", Text(text))
    console.print(table)

    executable = len(source.executable_lines)
    console.print(
        f"\n[bold]{executable}[/bold] executable of {source.line_count} lines, "
        f"{len(source.blocks)} blocks, {len(source.functions)} functions, "
        f"{len(source.conditions)} conditions"
    )


@app.command()
def report(
    trace: str = typer.Argument(..., help="Recorded trace file (YAML or JSON)"),
    config: str = typer.Option(None, "--config", "-c", help="Configuration YAML file"),
    format_: str = typer.Option(None, "--format", "-f", help="Report format (see --list-formats)"),
    output: str = typer.Option(None, "--output", "-o", help="Write the report to this file"),
    fail_under: float = typer.Option(
        None, "--fail-under", min=0.0, max=100.0, help="Exit 1 if coverage is below this percent"
    ),
    list_formats: bool = typer.Option(False, "--list-formats", help="List report formats and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Verbose output"),
) -> None:
    """
    Replay a recorded trace and render a coverage report.

    Configuration comes from --config, else .firmo-coverage.yml in the
    current directory, else defaults.
    """
    _configure_logging(verbose)

    if list_formats:
        for name, description in describe_formatters().items():
            console.print(f"[cyan]{name:<10}[/cyan] {description}")
        return

    try:
        settings = ConfigLoader.from_yaml(config) if config else ConfigLoader.discover(Path.cwd())
        if fail_under is not None:
            settings = settings.model_copy(update={"threshold": fail_under})
        formatter = get_formatter(format_ or settings.report_format)

        recorded = load_trace(trace)
        with CoverageSession(settings) as session:
            tracked = replay_trace(session, recorded)
        summary = session.summary()
        rendered = formatter.render(summary)
    except (CoverageError, FileNotFoundError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    target = output or settings.report_path
    if target:
        output_path = Path(target)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(rendered, encoding="utf-8")
        console.print(f"[green]✓[/green] Report written to {output_path}")
        _display_summary(summary, tracked)
    else:
        typer.echo(rendered, nl=False)

    if summary.coverage_percent < settings.threshold:
        console.print(
            f"[red]✗ Coverage {summary.coverage_percent:.2f}% is below "
            f"the {settings.threshold:.2f}% threshold[/red]"
        )
        raise typer.Exit(1)


@app.command()
def init(
    path: str = typer.Argument(ConfigLoader.DEFAULT_FILENAME, help="Where to write the config"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a sample configuration file."""
    target = Path(path)
    if target.exists() and not force:
        console.print(f"[red]Error:[/red] {path} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(ConfigLoader.generate_sample_config(), encoding="utf-8")
    console.print(f"[green]✓[/green] Sample configuration written to {path}")


def _display_summary(summary: CoverageSummary, tracked: int) -> None:
    """Short rich summary shown when the report went to a file."""
    anomalies = summary.anomalies
    body = (
        f"[bold]Files:[/bold] {tracked}\n"
        f"[bold]Executed:[/bold] {summary.executed_lines}/{summary.executable_lines} "
        f"({summary.execution_percent:.2f}%)\n"
        f"[bold]Covered:[/bold] {summary.covered_lines}/{summary.executable_lines} "
        f"({summary.coverage_percent:.2f}%)"
    )
    if anomalies.total:
        body += f"\n[yellow]Anomalies:[/yellow] {anomalies.total}"
    console.print(Panel(body, title="📊 Coverage", border_style="magenta"))