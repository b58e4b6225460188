"""
Normalize command implementation for the actionreplay CLI.

This module implements the 'normalize' command which writes the normalized form of
a recording: id ordering, zero-based timestamps and repaired input sequences.
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from actionreplay.normalization import RecordingNormalizer
from actionreplay.replication.errors import RecordingValidationError
from actionreplay.utils.recording_loader import RecordingLoader

console = Console(stderr=True)


def normalize(
    recording_file: Path = typer.Argument(..., help="Recording JSON to normalize"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write here instead of standard output"
    ),
) -> None:
    """Normalize a recording and print or save the result."""
    try:
        recording = RecordingLoader().load_file(recording_file)
    except RecordingValidationError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    result = RecordingNormalizer().normalize_with_report(recording)
    content = json.dumps(result.recording.to_json_dict(), indent=2)

    if output is None:
        typer.echo(content)
    else:
        output.write_text(content + "\n", encoding="utf-8")
        console.print(f"💾 Normalized recording written to {output}")

    report = result.report
    console.print(
        f"   reordered={report.reordered} rebased={report.rebased_timestamps} "
        f"relocations={len(report.relocations)} "
        f"unrepaired inversions={len(report.unrepaired_inversions)}"
    )
