"""
DocDrift CLI

Command-line interface for the documentation drift engine.
Provides commands for snapshotting a project, detecting and ranking drift
against the previous snapshot, and explaining drift for a single file.

Commands:
    docdrift snapshot [path]        Build and store a snapshot of the project
    docdrift detect [path]          Detect drift against the latest snapshot
    docdrift explain <file> [path]  Show drift details for one source file
    docdrift history [path]         List stored snapshots

Exit codes:
    0  Success
    1  A result reached the --fail-on tier
    2  Configuration or root access error

Usage:
    $ docdrift snapshot ./my-project
    $ docdrift detect ./my-project --prioritize --fail-on high
    $ docdrift explain src/api.py ./my-project
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from docdrift import __version__
from docdrift.config import DriftConfig, load_config
from docdrift.drift import DriftDetector
from docdrift.errors import ConfigError, RootAccessError, SnapshotCorruptionError
from docdrift.logging import configure_logging
from docdrift.models import (
    BuildResult,
    DriftDetectionResult,
    ExtractionFailure,
    PriorityScore,
    Recommendation,
    Severity,
)
from docdrift.storage import FileSnapshotStore, result_to_dict, to_plain

app = typer.Typer(
    name="docdrift",
    help="DocDrift: detect and prioritise documentation drift",
    add_completion=False,
)
console = Console()

ERROR_EXIT_CODE = 2
FAILURE_PREVIEW = 5

SEVERITY_COLORS = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.NONE: "dim",
}

RECOMMENDATION_COLORS = {
    Recommendation.CRITICAL: "bold red",
    Recommendation.HIGH: "red",
    Recommendation.MEDIUM: "yellow",
    Recommendation.LOW: "green",
}


def _resolve_project(path: Optional[Path]) -> Path:
    return (path or Path.cwd()).expanduser().resolve()


def _load_config(path: Path) -> DriftConfig:
    try:
        return load_config(path)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/bold red] {e}")
        raise typer.Exit(ERROR_EXIT_CODE)


@app.command()
def snapshot(
    path: Optional[Path] = typer.Argument(
        None,
        help="Path to the project (default: current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    docs: Optional[Path] = typer.Option(
        None,
        "--docs",
        "-d",
        help="Documentation directory (default: docs_dir from .docdrift.yml)",
    ),
) -> None:
    """
    Build a snapshot of the project and store it.

    This command:
    1. Extracts a structural fingerprint of every source file
    2. Extracts the section model of every documentation file
    3. Stores the snapshot for the next `detect` run
    """
    project = _resolve_project(path)
    config = _load_config(project)
    detector = DriftDetector(config)

    console.print(f"\n[bold blue]📂 Snapshotting:[/bold blue] {project}\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Extracting files...", total=None)
        try:
            build = detector.create_snapshot(project, docs)
        except RootAccessError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(ERROR_EXIT_CODE)
        progress.update(task, description="Done!")

    _print_build_summary(build)
    _print_failures(build.failures)


@app.command()
def detect(
    path: Optional[Path] = typer.Argument(
        None,
        help="Path to the project (default: current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    docs: Optional[Path] = typer.Option(
        None,
        "--docs",
        "-d",
        help="Documentation directory (default: docs_dir from .docdrift.yml)",
    ),
    prioritize: bool = typer.Option(
        False,
        "--prioritize",
        "-p",
        help="Score results and order them by urgency",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print results as JSON",
    ),
    fail_on: Optional[Recommendation] = typer.Option(
        None,
        "--fail-on",
        case_sensitive=False,
        help="Exit with code 1 when any result reaches this tier (implies --prioritize)",
    ),
) -> None:
    """
    Detect documentation drift since the latest stored snapshot.

    The first run only stores a baseline snapshot.
    """
    project = _resolve_project(path)
    config = _load_config(project)
    detector = DriftDetector(config)
    prioritize = prioritize or fail_on is not None

    try:
        run = detector.run(project, docs, prioritize=prioritize)
    except RootAccessError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(ERROR_EXIT_CODE)

    scores = {item.result.path: item.score for item in run.scored}

    if as_json:
        payload = {
            "previous": run.previous_timestamp,
            "current": run.current_timestamp,
            "results": [result_to_dict(r, scores.get(r.path)) for r in run.results],
            "failures": [to_plain(f) for f in run.failures],
        }
        typer.echo(json.dumps(payload, indent=2))
    elif run.previous_timestamp is None:
        console.print(
            "[green]✓ Baseline snapshot stored.[/green] "
            "Run [bold]docdrift detect[/bold] again after changing code."
        )
        _print_failures(run.failures)
    else:
        _print_results(run.results, scores)
        _print_failures(run.failures)

    if fail_on is not None and any(
        score.recommendation.rank >= fail_on.rank for score in scores.values()
    ):
        raise typer.Exit(1)


@app.command()
def explain(
    file: str = typer.Argument(
        ...,
        help="Source file to explain (project-relative, e.g. src/api.py)",
    ),
    path: Optional[Path] = typer.Argument(
        None,
        help="Path to the project (default: current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
) -> None:
    """
    Show drift records, suggestions and the priority breakdown for one file.

    Compares the latest two stored snapshots.
    """
    project = _resolve_project(path)
    config = _load_config(project)
    store = FileSnapshotStore(config.snapshot_path(project))

    entries = [entry for entry in store.history() if entry.error is None]
    if len(entries) < 2:
        console.print(
            f"[yellow]Need two snapshots to explain drift.[/yellow] "
            f"Run [bold]docdrift snapshot {project}[/bold] before and after a change."
        )
        raise typer.Exit(1)

    try:
        newer = store.load(entries[0].path)
        older = store.load(entries[1].path)
    except SnapshotCorruptionError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(ERROR_EXIT_CODE)

    target = _relative_key(file, project)
    detector = DriftDetector(config, store=store)
    run = detector.detect_drift(older, newer)
    detector.prioritize(run, newer)

    match = next((item for item in run.scored if item.result.path == target), None)
    if match is None:
        known = target in newer.files or target in older.files
        if known:
            console.print(f"[green]✓ No structural changes in {target}.[/green]")
            raise typer.Exit(0)
        console.print(f"[red]File '{target}' is not in the latest snapshots.[/red]")
        raise typer.Exit(1)

    _print_explanation(match.result, match.score)


@app.command()
def history(
    path: Optional[Path] = typer.Argument(
        None,
        help="Path to the project (default: current directory)",
    ),
    limit: int = typer.Option(
        10,
        "--limit",
        "-n",
        help="Number of snapshots to show",
    ),
) -> None:
    """
    List stored snapshots, newest first.
    """
    project = _resolve_project(path)
    config = _load_config(project)
    store = FileSnapshotStore(config.snapshot_path(project))
    entries = store.history(limit)

    if not entries:
        console.print("[yellow]No snapshots stored.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Snapshot History", box=box.ROUNDED)
    table.add_column("Timestamp", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Docs", justify="right")
    table.add_column("Snapshot", style="dim")

    for entry in entries:
        if entry.error:
            table.add_row("[red]corrupt[/red]", "-", "-", entry.path.name)
            continue
        table.add_row(entry.timestamp, str(entry.file_count), str(entry.doc_count), entry.path.name)

    console.print(table)


# Helper functions for output formatting

def _relative_key(file: str, project: Path) -> str:
    candidate = Path(file).expanduser()
    if candidate.is_absolute():
        try:
            return candidate.resolve().relative_to(project).as_posix()
        except ValueError:
            return candidate.as_posix()
    return candidate.as_posix()


def _print_build_summary(build: BuildResult) -> None:
    """Print a summary panel after building a snapshot."""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Label", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Source files", str(build.file_count))
    table.add_row("Documentation files", str(build.doc_count))
    table.add_row("Failures", str(len(build.failures)))
    table.add_row("Build time", f"{build.build_time_seconds:.2f}s")
    table.add_row("Stored at", build.stored_at or "-")

    panel = Panel(table, title="[bold green]✓ Snapshot Complete[/bold green]", border_style="green")
    console.print(panel)


def _print_failures(failures: list[ExtractionFailure]) -> None:
    if not failures:
        return
    console.print(f"\n[yellow]⚠️  {len(failures)} file(s) could not be fully processed:[/yellow]")
    for failure in failures[:FAILURE_PREVIEW]:
        console.print(f"   • {escape(failure.path)} [dim]({failure.stage})[/dim]: {escape(failure.message)}")
    if len(failures) > FAILURE_PREVIEW:
        console.print(f"   ... and {len(failures) - FAILURE_PREVIEW} more")


def _print_results(results: list[DriftDetectionResult], scores: dict[str, PriorityScore]) -> None:
    """Print the drift results table."""
    if not results:
        console.print("[green]✓ No structural changes since the last snapshot.[/green]")
        return

    table = Table(title="Documentation Drift", box=box.ROUNDED)
    table.add_column("File", style="cyan")
    table.add_column("Severity")
    table.add_column("Drifts", justify="right")
    table.add_column("Breaking", justify="right")
    table.add_column("Docs", justify="right")
    if scores:
        table.add_column("Score", justify="right")
        table.add_column("Tier")

    for result in results:
        color = SEVERITY_COLORS[result.severity]
        row = [
            result.path,
            f"[{color}]{result.severity.value}[/{color}]",
            str(len(result.drifts)),
            str(result.impact.breaking_changes),
            str(len(result.impact.affected_doc_files)),
        ]
        score = scores.get(result.path)
        if score is not None:
            tier_color = RECOMMENDATION_COLORS[score.recommendation]
            row += [
                f"{score.overall:.1f}",
                f"[{tier_color}]{score.recommendation.value}[/{tier_color}]",
            ]
        table.add_row(*row)

    console.print(table)

    drifting = sum(1 for r in results if r.has_drift)
    console.print(
        f"\n[dim]{drifting} of {len(results)} changed file(s) have documentation drift. "
        f"Use [bold]docdrift explain <file>[/bold] for details.[/dim]"
    )


def _print_explanation(result: DriftDetectionResult, score: PriorityScore) -> None:
    """Print detailed drift information for one file."""
    color = SEVERITY_COLORS[result.severity]
    tier_color = RECOMMENDATION_COLORS[score.recommendation]

    console.print(f"\n[bold]File:[/bold] {result.path}")
    console.print(f"[bold]Severity:[/bold] [{color}]{result.severity.value.upper()}[/{color}]")
    console.print(
        f"[bold]Priority:[/bold] {score.overall:.1f} "
        f"[{tier_color}]({score.recommendation.value})[/{tier_color}]"
    )
    console.print(f"   {score.suggested_action}")

    console.print("\n[bold]Changes:[/bold]")
    for change in result.changes:
        console.print(f"   • \\[{change.impact.value}] {escape(change.description)}")

    if result.drifts:
        console.print("\n[bold]Drift:[/bold]")
        for record in result.drifts:
            docs = ", ".join(record.affected_docs) or "no documentation"
            console.print(f"   • {record.type.value}: {escape(record.description)} [dim]({docs})[/dim]")

    console.print("\n[bold]Priority factors:[/bold]")
    factors = Table(box=box.SIMPLE, show_header=False)
    factors.add_column("Factor", style="dim")
    factors.add_column("Score", justify="right")
    for name, value in score.factors.as_dict().items():
        factors.add_row(name.replace("_", " "), f"{value:.2f}")
    console.print(factors)

    if result.suggestions:
        console.print("[bold]Suggestions:[/bold]")
        for suggestion in result.suggestions:
            auto = " [green]auto-applicable[/green]" if suggestion.auto_applicable else ""
            console.print(
                f"   • {suggestion.doc_file} › {suggestion.section or '(preamble)'} "
                f"[dim]confidence {suggestion.confidence:.2f}[/dim]{auto}"
            )
            console.print(f"     {escape(suggestion.reasoning)}")
        first = result.suggestions[0]
        console.print(Panel(escape(first.suggested_content[:400]), title="Suggested content", border_style="dim"))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also write log records to this file",
    ),
) -> None:
    """
    DocDrift: detect and prioritise documentation drift.
    """
    if version:
        console.print(f"[bold]DocDrift[/bold] version {__version__}")
        raise typer.Exit()
    configure_logging(verbose=verbose, log_file=log_file)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
