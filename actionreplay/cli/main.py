"""
Main CLI entry point for actionreplay.

This module provides the command-line interface for replaying, validating and
inspecting browser recordings.
"""

import typer

from actionreplay.cli.commands import info, normalize, resolve, run, validate

app = typer.Typer(
    name="actionreplay",
    help="Replay recorded browser sessions with resilient element resolution",
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(name="run", help="Replay a recording in a real browser")(run.run)
app.command(name="validate", help="Check that a recording file is valid")(validate.validate)
app.command(name="info", help="Summarize a recording")(info.info)
app.command(name="normalize", help="Write the normalized form of a recording")(
    normalize.normalize
)
app.command(name="resolve", help="Resolve selectors against a saved HTML page")(resolve.resolve)


@app.callback()
def main() -> None:
    """actionreplay - deterministic replay of recorded browser sessions.

    This CLI provides commands for running recordings in a browser, validating
    and normalizing recording files, and diagnosing selectors offline.
    """
    pass


if __name__ == "__main__":
    app()
