"""
Info command implementation for the actionreplay CLI.

This module implements the 'info' command which summarizes a recording: metadata,
viewport, action statistics, timing and navigation flow.
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from actionreplay.replication.errors import RecordingValidationError
from actionreplay.schemas.analysis import RecordingAnalysis
from actionreplay.utils.recording_analyzer import RecordingAnalyzer
from actionreplay.utils.recording_loader import RecordingLoader

console = Console()


def render_analysis(analysis: RecordingAnalysis) -> None:
    metadata = analysis.metadata
    console.print(f"📄 [bold]{metadata.test_name}[/bold] ({metadata.recording_id})")
    console.print(f"   URL: {metadata.start_url}")
    console.print(f"   Recorded: {metadata.recorded_at} → {metadata.completed_at}")
    console.print(f"   Schema version: {metadata.schema_version}")
    if analysis.viewport:
        viewport = analysis.viewport
        console.print(
            f"   Viewport: {viewport.width}x{viewport.height} ({viewport.category.value})"
        )

    table = Table(title=f"Actions ({analysis.statistics.total})")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for action_type, count in analysis.statistics.by_type.items():
        share = analysis.statistics.percentages.get(action_type, 0)
        table.add_row(action_type, str(count), f"{share:.1f}%")
    console.print(table)

    timing = analysis.timing
    console.print(
        f"⏱️ Duration {timing.recording_duration / 1000:.1f}s, action span "
        f"{timing.action_span / 1000:.1f}s, gaps min {timing.gaps.min:.0f}ms / "
        f"median {timing.gaps.median:.0f}ms / max {timing.gaps.max:.0f}ms"
    )
    navigation = analysis.navigation
    console.print(
        f"🧭 {navigation.unique_pages} page(s), {navigation.transitions} transition(s), "
        f"flow {navigation.flow_type.value}"
    )


def info(
    recording_file: Path = typer.Argument(..., help="Recording JSON to analyze"),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
) -> None:
    """Summarize a recording file."""
    try:
        recording = RecordingLoader().load_file(recording_file)
    except RecordingValidationError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    analysis = RecordingAnalyzer().analyze(recording, str(recording_file))

    if as_json:
        typer.echo(json.dumps(analysis.to_json_dict(), indent=2))
        return

    render_analysis(analysis)
