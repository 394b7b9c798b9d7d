"""CLI entry point for the timetable engine."""

import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config.loader import DirectorySource
from .config.settings import GenerationConfig
from .config.source import Scope
from .engine import GenerationOutcome, TimetableGenerator
from .exceptions import ConfigurationError, InfeasibleInputError, PersistenceFailure
from .exporters import get_exporter
from .persistence import InMemoryWriter, JsonDirectoryWriter
from .utils import day_name

app = typer.Typer(
    name="timetable-engine",
    help="Generate weekly school timetables",
    add_completion=False,
)
console = Console()


class OutputFormat(str, Enum):
    """Output format options."""

    json = "json"
    csv = "csv"
    excel = "excel"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _print_issues(error: InfeasibleInputError) -> None:
    console.print(f"\n[bold red]Infeasible input ({len(error.issues)} issue(s)):[/bold red]")
    for issue in error.issues:
        console.print(f"  [red]• {escape(issue.constraint)}: {escape(issue.message)}[/red]")


@app.command()
def generate(
    data_dir: Annotated[
        Path,
        typer.Argument(help="Directory with <school>/<term>/ input files", exists=True),
    ],
    school: Annotated[str, typer.Option("--school", help="School id")],
    term: Annotated[str, typer.Option("--term", help="Term id")],
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output directory for versions and exports"),
    ] = None,
    format: Annotated[
        OutputFormat,
        typer.Option("-f", "--format", help="Export format"),
    ] = OutputFormat.json,
    max_iterations: Annotated[
        Optional[int],
        typer.Option("--max-iterations", help="Search iteration budget", min=1),
    ] = None,
    time_limit: Annotated[
        Optional[float],
        typer.Option("--time-limit", help="Search time limit in seconds"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Generate a timetable for one school and term."""
    _setup_logging(verbose)

    overrides = {}
    if max_iterations is not None:
        overrides["max_iterations"] = max_iterations
    if time_limit is not None:
        overrides["time_limit_seconds"] = time_limit

    output_dir = output or Path("output")
    scope = Scope(school, term)
    try:
        config = GenerationConfig().merged(overrides, source="command line")
        generator = TimetableGenerator(
            DirectorySource(data_dir), JsonDirectoryWriter(output_dir / "versions"), config
        )
        with console.status("[bold green]Generating timetable..."):
            outcome = generator.run(scope)
    except InfeasibleInputError as e:
        _print_issues(e)
        raise typer.Exit(1)
    except (ConfigurationError, PersistenceFailure) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _show_summary(outcome)
    if verbose:
        _show_workload(outcome)

    if outcome.version is not None:
        exporter = get_exporter(format.value)
        if format == OutputFormat.csv:
            output_path = output_dir / outcome.version.version_id
        else:
            suffix = "xlsx" if format == OutputFormat.excel else "json"
            output_path = output_dir / f"{outcome.version.version_id}.{suffix}"

        with console.status(f"[bold green]Exporting to {format.value}..."):
            exporter.export(outcome.version, outcome.report, outcome.config, output_path)

        console.print(f"\n[bold green]✓[/bold green] Exported to: {output_path}")

    if not outcome.report.is_complete:
        raise typer.Exit(2)


@app.command()
def check(
    data_dir: Annotated[
        Path,
        typer.Argument(help="Directory with <school>/<term>/ input files", exists=True),
    ],
    school: Annotated[str, typer.Option("--school", help="School id")],
    term: Annotated[str, typer.Option("--term", help="Term id")],
) -> None:
    """Validate input data without running the search."""
    _setup_logging(False)
    scope = Scope(school, term)
    generator = TimetableGenerator(DirectorySource(data_dir), InMemoryWriter())

    try:
        with console.status("[bold green]Checking input..."):
            problem = generator.check(scope)
    except InfeasibleInputError as e:
        _print_issues(e)
        raise typer.Exit(1)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    constraints = problem.constraints
    console.print(f"\n[bold]Check Results for:[/bold] {scope}")
    console.print("[bold green]✓ Input is feasible[/bold green]")
    console.print(f"  Teachers: {len(constraints.teachers)}")
    console.print(f"  Classes: {len(constraints.classes)}")
    console.print(f"  Rooms: {len(constraints.rooms)}")
    console.print(f"  Variables: {len(problem.variables)}")
    console.print(f"  Pinned: {len(problem.pinned)}")


def _show_summary(outcome: GenerationOutcome) -> None:
    report = outcome.report
    color = "green" if report.is_complete else "yellow"

    console.print("\n[bold]Generation Results[/bold]")
    console.print(f"  Status: [{color}]{report.status.value}[/{color}]")
    console.print(f"  Version: {report.version_id or '-'}")
    console.print(f"  Score: {report.score:.1f}")
    console.print(f"  Iterations: {report.iteration_count}")
    console.print(f"  Backtracks: {report.backtrack_count}")
    console.print(f"  Elapsed: {report.elapsed_ms:.0f} ms")

    table = Table(title="Score Breakdown")
    table.add_column("Goal", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Score", justify="right", style="green")
    for goal, value in report.score_breakdown.components.items():
        weight = report.score_breakdown.weights.get(goal, 0.0)
        table.add_row(goal, f"{weight:.2f}", f"{value:.1f}")
    console.print(table)

    if report.unresolved_variables:
        console.print(
            f"\n[bold yellow]Unresolved ({len(report.unresolved_variables)}):[/bold yellow]"
        )
        for variable_id in report.unresolved_variables:
            console.print(f"  [yellow]• {variable_id}[/yellow]")

    if report.conflicts:
        console.print(f"\n[bold red]Conflicts ({len(report.conflicts)}):[/bold red]")
        for conflict in report.conflicts:
            console.print(f"  [red]• {escape(conflict.description)}[/red]")


def _show_workload(outcome: GenerationOutcome) -> None:
    report = outcome.report
    config = outcome.config

    table = Table(title="Teacher Workload")
    table.add_column("Teacher", style="cyan")
    table.add_column("Periods", justify="right", style="green")
    table.add_column("Max / Week", justify="right")
    table.add_column("By Day")
    for workload in report.teacher_workload:
        by_day = ", ".join(
            f"{day_name(day, config)[:3]} {count}"
            for day, count in sorted(workload.periods_by_day.items())
        )
        table.add_row(
            workload.teacher_name,
            str(workload.total_periods),
            str(workload.max_periods_per_week or "-"),
            by_day,
        )
    console.print(table)

    table = Table(title="Room Utilization")
    table.add_column("Room", style="cyan")
    table.add_column("Used", justify="right", style="green")
    table.add_column("Open", justify="right")
    table.add_column("Share", justify="right")
    for room in report.room_utilization:
        table.add_row(
            room.room_name,
            str(room.used_periods),
            str(room.available_periods),
            f"{room.utilization:.0%}",
        )
    console.print(table)


if __name__ == "__main__":
    app()
