"""``lsp-indicator themes``: preview the built-in icon themes."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from lsp_indicator.aggregate import format_worker
from lsp_indicator.cli.rich_output import should_use_rich
from lsp_indicator.models import (
    ASCII_SEVERITY_ICONS,
    ASCII_THEME,
    DEFAULT_SEVERITY_ICONS,
    PROGRESS_THEME,
    STATE_THEME,
    AggregateState,
    Severity,
)

THEMES = {
    "progress": (PROGRESS_THEME, DEFAULT_SEVERITY_ICONS),
    "state": (STATE_THEME, DEFAULT_SEVERITY_ICONS),
    "ascii": (ASCII_THEME, ASCII_SEVERITY_ICONS),
}

_SAMPLES = [
    ("idle", AggregateState()),
    ("busy", AggregateState(busy=True)),
    ("0%", AggregateState(busy=True, percentage=0)),
    ("50%", AggregateState(busy=True, percentage=50)),
    ("100%", AggregateState(busy=True, percentage=100)),
]


@click.command()
def themes() -> None:
    """Show how each built-in theme renders common states."""
    rows = []
    for name, (theme, icons) in THEMES.items():
        cells = [format_worker(state, theme) for _, state in _SAMPLES]
        diagnostics = " ".join(icons[severity] for severity in Severity)
        rows.append([name, *cells, diagnostics])

    if should_use_rich():
        table = Table(show_header=True, padding=(0, 1))
        table.add_column("theme", style="cyan", no_wrap=True)
        for label, _ in _SAMPLES:
            table.add_column(label, justify="center")
        table.add_column("diagnostics")
        for row in rows:
            table.add_row(*row)
        Console().print(table)
    else:
        for row in rows:
            click.echo("\t".join(row))
