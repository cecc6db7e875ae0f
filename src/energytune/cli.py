#!/usr/bin/env python3
"""
EnergyTune developer CLI.

Runs the analytics engine over a JSON array of journal entries.

Usage:
    energytune insights entries.json --period 30
    energytune sources entries.json
    energytune patterns entries.json --mode deep
    energytune readiness entries.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .exceptions import EnergyTuneError
from .models import AnalysisMode, DailyEntry, PatternResult, SourcePhrase
from .patterns import explain_algorithm
from .services import AnalyticsEngine
from .analysis import coerce_entries
from .utils import configure_logging

console = Console()


def get_confidence_color(confidence: float) -> str:
    """Get rich color for an insight confidence."""
    if confidence >= 0.8:
        return "green"
    if confidence >= 0.5:
        return "yellow"
    return "red"


def load_entries(path: str) -> List[DailyEntry]:
    """Read and validate a JSON array of entries."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"No such file: {path}")
    with open(file_path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Entries file must contain a JSON array")
    return coerce_entries(data)


def cmd_insights(args, engine: AnalyticsEngine):
    """Show statistical insights for the period."""
    entries = load_entries(args.file)
    period = args.period or len(entries)
    result = engine.get_trends_and_insights(entries, period)

    console.print()
    console.print(Panel(f"[bold]EnergyTune - Insights ({period} days)[/bold]"))

    if not result.insights:
        console.print("No entries with energy or stress levels yet.")
        return

    for insight in result.insights.values():
        color = get_confidence_color(insight.confidence)
        body = f"[italic]{insight.subtitle}[/italic]\n\n{insight.description}"
        if insight.data:
            body += "\n\n" + "\n".join(
                f"[cyan]{datum.label}:[/cyan] {datum.value}" for datum in insight.data
            )
        if insight.action_items:
            body += "\n\n" + "\n".join(f"  - {item}" for item in insight.action_items)
        console.print(Panel(
            body,
            title=f"{insight.title} [{color}]({insight.confidence:.0%})[/{color}]",
            box=box.ROUNDED,
        ))

    console.print(f"[dim]{len(result.trend_data)} days with data[/dim]")


def _sources_table(title: str, sources: List[SourcePhrase]) -> Table:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Source", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Per day", justify="right")
    table.add_column("Last seen")
    for source in sources:
        last_seen = source.examples[-1].date if source.examples else ""
        table.add_row(source.text, str(source.count), f"{source.frequency:.2f}", last_seen)
    return table


def cmd_sources(args, engine: AnalyticsEngine):
    """Show the most frequent energy and stress sources."""
    entries = load_entries(args.file)
    sources = engine.get_trends_and_insights(entries, len(entries)).data_sources

    console.print()
    console.print(_sources_table("Energy sources", sources.energy_sources))
    console.print(_sources_table("Stress sources", sources.stress_sources))


def _patterns_table(result: PatternResult) -> Table:
    table = Table(
        title=f"{result.type.value.capitalize()} patterns ({result.total_mentions} mentions)",
        box=box.ROUNDED,
    )
    table.add_column("Pattern")
    table.add_column("Share", justify="right")
    table.add_column("Mentions", justify="right")
    table.add_column("Avg level", justify="right")
    table.add_column("Sub-patterns")

    for pattern in result.main_patterns:
        subs = ", ".join(f"{s.label} ({s.count})" for s in pattern.sub_patterns)
        table.add_row(
            f"{pattern.emoji} {pattern.label}",
            f"{pattern.percentage}%",
            str(pattern.total_count),
            f"{pattern.avg_impact:.1f}",
            subs,
        )
    return table


async def _run_patterns(engine: AnalyticsEngine, entries: List[DailyEntry], mode: AnalysisMode) -> bool:
    run = engine.run_deep_analysis if mode == AnalysisMode.DEEP else engine.run_fast_analysis

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TextColumn("[dim]{task.fields[eta]}[/dim]"),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Starting...", total=100, eta="")

        async def follow():
            async for event in engine.progress_events():
                progress.update(
                    task_id,
                    completed=event.percentage,
                    description=event.stage or "Working...",
                    eta=f"~{event.estimated_time_remaining}s left" if event.estimated_time_remaining else "",
                )

        follower = asyncio.create_task(follow())
        await asyncio.sleep(0)
        try:
            completed = await run(entries)
        finally:
            follower.cancel()

        if completed:
            progress.update(task_id, completed=100, description="Complete!")
    return completed


def cmd_patterns(args, engine: AnalyticsEngine):
    """Discover recurring themes in energy and stress sources."""
    entries = load_entries(args.file)
    mode = AnalysisMode(args.mode)

    console.print()
    console.print(Panel(explain_algorithm(mode), title=f"{mode.value.capitalize()} analysis"))

    try:
        completed = asyncio.run(_run_patterns(engine, entries, mode))
    except KeyboardInterrupt:
        engine.abort_analysis()
        console.print("[yellow]Analysis aborted.[/yellow]")
        sys.exit(130)

    if not completed:
        console.print(f"[red]Analysis did not complete: {engine.error or 'aborted'}[/red]")
        sys.exit(1)

    for result in (engine.current_stress_patterns, engine.current_energy_patterns):
        if result.error:
            console.print(f"[red]{result.type.value}: {result.error}[/red]")
        elif not result.has_patterns:
            console.print(f"No {result.type.value} patterns found yet.")
        else:
            console.print(_patterns_table(result))
            console.print(f"[dim]Method: {result.discovery_method}[/dim]")

    console.print(f"[dim]Completed in {engine.average_calculation_time:.0f}ms[/dim]")


def cmd_readiness(args, engine: AnalyticsEngine):
    """Show how close the journal is to reliable patterns."""
    entries = load_entries(args.file)
    readiness = engine.pattern_readiness(entries)

    color = "green" if readiness.has_enough_data else "yellow"
    status_text = f"""
[cyan]Days with sources:[/cyan]  {readiness.days_with_sources} of {readiness.total_days}
[cyan]Progress:[/cyan]           [{color}]{readiness.progress_percentage:.0f}%[/{color}]
[cyan]Days remaining:[/cyan]     {readiness.days_remaining}
"""
    console.print()
    console.print(Panel(status_text, title="Pattern Readiness", box=box.ROUNDED))
    if readiness.has_enough_data:
        console.print("[green]Enough data for pattern discovery.[/green]")
    else:
        console.print("[yellow]Keep logging what gives you energy and what stresses you.[/yellow]")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="EnergyTune - energy and stress journal analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  energytune insights entries.json --period 30
  energytune sources entries.json
  energytune patterns entries.json --mode deep
  energytune readiness entries.json
        """,
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    insights_p = subparsers.add_parser("insights", help="Show statistical insights")
    insights_p.add_argument("file", help="JSON array of entries")
    insights_p.add_argument(
        "--period", "-p", type=int, default=None,
        help="Days in the period (default: number of entries)",
    )

    sources_p = subparsers.add_parser("sources", help="Show top energy and stress sources")
    sources_p.add_argument("file", help="JSON array of entries")

    patterns_p = subparsers.add_parser("patterns", help="Discover source patterns")
    patterns_p.add_argument("file", help="JSON array of entries")
    patterns_p.add_argument(
        "--mode", "-m", choices=[m.value for m in AnalysisMode], default="fast",
        help="fast (phrase grouping) or deep (TF-IDF clustering)",
    )

    readiness_p = subparsers.add_parser("readiness", help="Show pattern discovery readiness")
    readiness_p.add_argument("file", help="JSON array of entries")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    commands = {
        "insights": cmd_insights,
        "sources": cmd_sources,
        "patterns": cmd_patterns,
        "readiness": cmd_readiness,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return

    engine = AnalyticsEngine()
    try:
        command(args, engine)
    except (OSError, ValueError, EnergyTuneError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
