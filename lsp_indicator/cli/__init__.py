"""CLI interface for lsp-indicator.

Modular CLI structure with one module per command.
"""

import logging

import click
from dotenv import load_dotenv

from lsp_indicator import __version__

# Load LSP_INDICATOR_* overrides from a .env file
load_dotenv()

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show the lsp-indicator version and exit.",
)
@click.pass_context
def main(ctx: click.Context, version: bool) -> None:
    """lsp-indicator - language server progress and diagnostics indicator.

    \b
      lsp-indicator replay session.jsonl   Replay recorded LSP traffic
      lsp-indicator themes                 Show the built-in icon themes
    """
    if version:
        click.echo(__version__)
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def register_commands() -> None:
    """Register all commands with the main CLI."""
    from lsp_indicator.cli.replay import replay
    from lsp_indicator.cli.themes import themes

    main.add_command(replay)
    main.add_command(themes)


# Register commands at import time
register_commands()

__all__ = ["main"]
