"""
Validate command implementation for the actionreplay CLI.

This module implements the 'validate' command which checks that a recording file
parses and reports ordering anomalies normalization would have to deal with.
"""

from pathlib import Path

import typer
from rich.console import Console

from actionreplay.normalization import RecordingNormalizer
from actionreplay.replication.errors import RecordingValidationError
from actionreplay.utils.recording_loader import RecordingLoader

console = Console()


def validate(
    recording_file: Path = typer.Argument(..., help="Recording JSON to validate"),
) -> None:
    """Validate a recording file.

    Exits with 1 if the file is not a structurally valid recording. Timestamp
    inversions that normalization cannot repair are reported as warnings.
    """
    try:
        recording = RecordingLoader().load_file(recording_file)
    except RecordingValidationError as e:
        console.print(f"❌ {e}")
        for detail in e.details:
            console.print(f"   - {detail}")
        raise typer.Exit(1)

    report = RecordingNormalizer().normalize_with_report(recording).report

    console.print(f"✅ {recording_file} is a valid recording")
    console.print(f"   Test name: {recording.test_name}")
    console.print(f"   Actions: {len(recording.actions)}")

    if report.reordered:
        console.print("   ↕️ Actions are not stored in id order")
    if report.rebased_timestamps:
        console.print("   🕒 Timestamps are absolute epoch values")
    for relocation in report.relocations:
        console.print(
            f"   🔀 {relocation.action_id} belongs before {relocation.before_action_id}"
        )
    for inversion in report.unrepaired_inversions:
        console.print(
            f"   ⚠️ {inversion.action_id} is {inversion.delta_ms:.0f}ms earlier than "
            f"{inversion.previous_action_id}"
        )
