#!/usr/bin/env python3
"""Gapforge CLI - gap detection and roadmap generation for a project directory.

Usage:
    # Analyze the current directory with the built-in heuristic suggestions
    python main.py --directory .

    # Choose formats, team sizes and an LLM suggestion provider
    python main.py -d ./myproject -f markdown -f csv -t 1 -t 4 --provider anthropic

    # Regenerate against a previous roadmap and track progress
    python main.py -d . --previous roadmap/roadmap.json --progress
"""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from config import settings
from contracts import AnalysisRequest, ExportFormat, GapforgeError, RoadmapGenerationError
from logging_config import setup_logging
from orchestrator import RoadmapEngine
from providers import list_providers as get_available_providers


console = Console()

PROVIDER_CHOICES = ["heuristic", "anthropic", "openai", "deepseek", "litellm"]


@click.command()
@click.option(
    "--directory", "-d",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Project directory to analyze (default: current directory)"
)
@click.option(
    "--format", "-f", "formats",
    multiple=True,
    type=click.Choice([f.value for f in ExportFormat]),
    help=f"Export format, repeatable (default: {', '.join(settings.export_formats)})"
)
@click.option(
    "--confidence-threshold", "-c",
    type=click.IntRange(0, 100),
    default=None,
    help=f"Gaps below this confidence are excluded (default: {settings.confidence_threshold})"
)
@click.option(
    "--team-size", "-t", "team_sizes",
    multiple=True,
    type=click.IntRange(min=1),
    help="Team size for timeline estimates, repeatable (default: 1, 2, 3)"
)
@click.option(
    "--output", "-o", "output_dir",
    default=None,
    help=f"Output directory (default: {settings.output_dir})"
)
@click.option(
    "--provider", "-p",
    type=click.Choice(PROVIDER_CHOICES),
    default=None,
    help=f"Suggestion provider (default: {settings.suggestion_provider})"
)
@click.option(
    "--model",
    default=None,
    help="Model name for LLM suggestion providers (e.g., claude-sonnet-4-20250514, gpt-4o-mini)"
)
@click.option(
    "--previous",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Previous roadmap.json; its completed and wont-do items are not planned again"
)
@click.option(
    "--reinstate",
    multiple=True,
    help="Item id from the previous roadmap to plan again, repeatable"
)
@click.option(
    "--progress", "track_progress",
    is_flag=True,
    help="Update the progress sidecar and write PROGRESS.md"
)
@click.option(
    "--list-providers",
    is_flag=True,
    help="List LLM providers and whether an API key is configured, then exit"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Verbose output"
)
def main(
    directory: str,
    formats: Tuple[str, ...],
    confidence_threshold: Optional[int],
    team_sizes: Tuple[int, ...],
    output_dir: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    previous: Optional[str],
    reinstate: Tuple[str, ...],
    track_progress: bool,
    list_providers: bool,
    verbose: bool,
):
    """Gapforge: find implementation gaps and plan a prioritized roadmap.

    Compares specs and documentation against the code, brainstorms and
    scores new features, and exports a phased, time-estimated roadmap.
    """
    setup_logging("DEBUG" if verbose else settings.log_level)

    if list_providers:
        console.print("[bold]Available LLM Providers:[/bold]\n")
        for name, available in get_available_providers().items():
            status = "[green]✓ Ready[/green]" if available else "[red]✗ No API key[/red]"
            console.print(f"  {name:12} {status}")
        console.print("\n[dim]Set API keys via environment variables:[/dim]")
        console.print("  ANTHROPIC_API_KEY, OPENAI_API_KEY, DEEPSEEK_API_KEY")
        return

    console.print(Panel.fit(
        "[bold blue]Gapforge[/bold blue]\n"
        "[dim]Gap Detection & Roadmap Generation[/dim]",
        border_style="blue"
    ))

    output_path = settings.get_output_path(output_dir)
    request = AnalysisRequest(
        directory=str(Path(directory).resolve()),
        formats=[ExportFormat(f) for f in (formats or settings.export_formats)],
        confidence_threshold=confidence_threshold,
        team_sizes=list(team_sizes) or None,
        output_dir=str(output_path),
        previous_roadmap=str(Path(previous).resolve()) if previous else None,
        reinstate=list(reinstate),
    )

    console.print(f"\n[dim]Project:[/dim] {request.directory}")
    console.print(f"[dim]Suggestions:[/dim] {provider or settings.suggestion_provider}"
                  + (f" ({model})" if model else ""))

    engine = RoadmapEngine(provider=provider, model=model)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Analyzing...", total=None)
        try:
            result = engine.run(request)
        except RoadmapGenerationError as e:
            progress.stop()
            console.print(f"[red]Error:[/red] {escape(e.message)}")
            console.print(f"[red]Offending items:[/red] {', '.join(e.item_ids) or 'unknown'}")
            sys.exit(1)
        except GapforgeError as e:
            progress.stop()
            console.print(f"[red]Error:[/red] {escape(e.message)}")
            sys.exit(1)
        progress.update(task, completed=True)

    roadmap = result.roadmap
    console.print("\n" + "=" * 60)
    console.print(f"[green]Run ID:[/green] {result.run_id}")
    console.print(f"[green]Duration:[/green] {result.duration_seconds:.1f}s")
    if result.partial:
        console.print("[yellow]Partial result:[/yellow] soft deadline reached")
    console.print(f"[green]Spec gaps:[/green] {len(result.spec_gaps)}"
                  f" ({sum(1 for g in result.spec_gaps if g.excluded)} below confidence threshold)")
    console.print(f"[green]Documentation claims checked:[/green] {len(result.feature_gaps)}")
    console.print(f"[green]Features scored:[/green] {len(result.features)}")
    if result.completeness:
        console.print(f"[green]Completion:[/green] {result.completeness.overall:.0f}%"
                      f"  [green]Production readiness:[/green] {result.completeness.production_readiness:.0f}%")

    table = Table(title=f"{roadmap.metadata.project_name} Roadmap")
    table.add_column("Phase")
    table.add_column("Items", justify="right")
    table.add_column("Effort")
    table.add_column("Weeks")
    for phase in roadmap.phases:
        table.add_row(phase.name, str(len(phase.items)), phase.total_effort.display,
                      f"{phase.start_week}-{phase.end_week}")
    console.print(table)

    for size, estimate in sorted(roadmap.timeline.by_team_size.items()):
        console.print(f"  Team of {size}: {estimate.weeks} weeks (done {estimate.completion_date.isoformat()})")

    console.print("\n[bold]Artifacts produced:[/bold]")
    for export in result.exports:
        if export.success:
            console.print(f"  - {export.output_path}")
        else:
            console.print(f"  [red]✗ {export.format.value}:[/red] {escape(export.error or '')}")

    if track_progress:
        try:
            tracked, report_path = engine.track_progress(roadmap, output_path)
        except GapforgeError as e:
            console.print(f"[yellow]Progress not updated:[/yellow] {escape(e.message)}")
        else:
            velocity = (f"{tracked.velocity.items_per_week:.1f} items/week"
                        if tracked.velocity.is_known else "insufficient data")
            console.print(f"\n[bold]Progress:[/bold] {tracked.percent_complete:g}% complete, velocity {velocity}")
            console.print(f"  - {report_path}")

    if result.warnings:
        console.print(f"\n[yellow]Warnings ({len(result.warnings)}):[/yellow]")
        for warning in result.warnings:
            console.print(f"  - {escape(str(warning))}")

    console.print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
