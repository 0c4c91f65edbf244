"""``lsp-indicator replay``: run recorded traffic through the indicator."""

from __future__ import annotations

import logging
from typing import TextIO

import click
from rich.console import Console
from rich.table import Table

from lsp_indicator.cli.logging import configure_cli_logging
from lsp_indicator.cli.rich_output import should_use_rich
from lsp_indicator.errors import IndicatorError

logger = logging.getLogger(__name__)


def _parse_view(value: str | None) -> int | str | None:
    """View ids in replay files are usually ints; accept either."""
    if value is None:
        return None
    return int(value) if value.lstrip("-").isdigit() else value


@click.command()
@click.argument("path", type=click.File("r", encoding="utf-8"))
@click.option(
    "--interval-ms",
    type=click.IntRange(min=0),
    default=None,
    help="Minimum spacing of updates (default: configured interval-ms, 500).",
)
@click.option("--view", default=None, help="Only show frames of this view id.")
@click.option(
    "--named/--plain", default=False, help="Show worker names next to icons."
)
@click.option(
    "--ascii",
    "ascii_icons",
    is_flag=True,
    help="Use ASCII icons instead of Nerd Font glyphs.",
)
@click.option(
    "--debug-log",
    is_flag=True,
    help="Record raw $/progress params and print them after the frames.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log progress to the console.")
def replay(
    path: TextIO,
    interval_ms: int | None,
    view: str | None,
    named: bool,
    ascii_icons: bool,
    debug_log: bool,
    verbose: bool,
) -> None:
    """Replay recorded LSP traffic from a JSON-lines PATH ('-' for stdin).

    Prints the status-line strings captured each time the rate-limited
    update fires.
    """
    from lsp_indicator.replay import replay as run_replay

    log_file = configure_cli_logging("replay", verbose=verbose)
    logger.debug("Logging to %s", log_file)

    try:
        result = run_replay(
            path,
            interval_ms=interval_ms,
            view=_parse_view(view),
            named=named,
            ascii_icons=ascii_icons,
            debug_log=debug_log,
        )
    except IndicatorError as e:
        raise click.ClickException(str(e)) from e

    if should_use_rich():
        console = Console()
        table = Table(
            title=(
                f"{result.records} records, {result.fires} updates "
                f"over {result.duration_ms:.0f} ms"
            ),
            show_header=True,
            padding=(0, 1),
        )
        table.add_column("t (ms)", justify="right", style="cyan", no_wrap=True)
        table.add_column("view", justify="right")
        table.add_column("progress")
        table.add_column("state")
        table.add_column("diagnostics", style="dim")
        for frame in result.frames:
            table.add_row(
                f"{frame.t:.0f}",
                str(frame.view),
                frame.progress,
                frame.state,
                frame.diagnostics,
            )
        console.print(table)
    else:
        for frame in result.frames:
            click.echo(
                f"{frame.t:.0f}\t{frame.view}\t{frame.progress}\t"
                f"{frame.state}\t{frame.diagnostics}"
            )
        click.echo(
            f"# {result.records} records, {result.fires} updates "
            f"over {result.duration_ms:.0f} ms"
        )

    if debug_log and result.event_log:
        click.echo()
        click.echo(result.event_log)
