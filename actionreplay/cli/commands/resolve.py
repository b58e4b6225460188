"""
Resolve command implementation for the actionreplay CLI.

This module implements the 'resolve' command which runs the selector resolver for
a recording's actions against a saved HTML page, without a browser.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from actionreplay.browser.html_snapshot import HtmlSnapshotPage, describe_element
from actionreplay.replication.errors import RecordingValidationError
from actionreplay.resolution import (
    ResolutionFailure,
    ResolutionSkip,
    ResolvedElement,
    ResolverPolicy,
    SelectorResolver,
)
from actionreplay.schemas.recording import BaseAction
from actionreplay.utils.recording_loader import RecordingLoader

console = Console()


async def resolve_actions(
    actions: List[BaseAction], page: HtmlSnapshotPage, resolver: SelectorResolver
) -> Table:
    table = Table(title="Selector resolution")
    table.add_column("Action")
    table.add_column("Type")
    table.add_column("Outcome")
    table.add_column("Detail")

    for action in actions:
        outcome = await resolver.resolve(action, page)
        if isinstance(outcome, ResolvedElement):
            if outcome.handle is None:
                table.add_row(action.id, action.type, "[dim]untargeted[/dim]", "")
                continue
            status = "[green]found[/green]"
            if outcome.low_confidence:
                status = "[yellow]low confidence[/yellow]"
            detail = f"{outcome.selector_used} → {describe_element(outcome.handle)}"
            if outcome.match_count > 1:
                detail += f" ({outcome.match_index + 1} of {outcome.match_count})"
            table.add_row(action.id, action.type, status, detail)
        elif isinstance(outcome, ResolutionSkip):
            table.add_row(action.id, action.type, "[blue]skip[/blue]", outcome.reason)
        elif isinstance(outcome, ResolutionFailure):
            table.add_row(
                action.id,
                action.type,
                f"[red]{outcome.reason.value}[/red]",
                ", ".join(outcome.attempted_strategies),
            )

    return table


def resolve(
    recording_file: Path = typer.Argument(..., help="Recording JSON"),
    html_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved HTML page"),
    action_id: Optional[str] = typer.Option(None, "--action-id", "-a", help="Only this action"),
    strict: bool = typer.Option(
        False, "--strict", help="Fail ambiguous matches instead of taking the first"
    ),
) -> None:
    """Check which element each recorded action resolves to in a saved HTML page."""
    try:
        recording = RecordingLoader().load_file(recording_file)
    except RecordingValidationError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    actions = list(recording.actions)
    if action_id is not None:
        actions = [action for action in actions if action.id == action_id]
        if not actions:
            console.print(f"❌ No action with id {action_id}")
            raise typer.Exit(1)

    page = HtmlSnapshotPage.from_file(html_file)
    resolver = SelectorResolver(ResolverPolicy(relaxed=not strict, retry_delays=()))
    console.print(asyncio.run(resolve_actions(actions, page, resolver)))
