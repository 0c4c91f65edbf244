"""CLI logging configuration with file output.

Provides ``configure_cli_logging`` which sets up both console and file
logging for CLI commands. Log files live under
``~/.local/share/lsp-indicator/logs/<command>.log``.

Usage from any CLI command::

    from lsp_indicator.cli.logging import configure_cli_logging

    configure_cli_logging("replay", verbose=verbose)

Raw ``$/progress`` payloads recorded with ``--debug-log`` are written by
the ``lsp_indicator.events`` logger at DEBUG level, so they always reach
the file::

    tail -f ~/.local/share/lsp-indicator/logs/replay.log
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from lsp_indicator.cli.rich_output import should_use_rich

# Standard log directory follows XDG convention
LOG_DIR = Path.home() / ".local" / "share" / "lsp-indicator" / "logs"

_CONSOLE_HANDLER_NAME = "lsp-indicator-console"


def get_log_dir() -> Path:
    """Return the CLI log directory, creating it if needed."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR


def get_log_file(command: str) -> Path:
    """Return the log file path for a given CLI command."""
    return get_log_dir() / f"{command}.log"


def configure_cli_logging(
    command: str,
    *,
    verbose: bool = False,
    console_level: int | None = None,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 3,
    log_dir: Path | None = None,
) -> Path:
    """Configure logging for a CLI command with file output.

    Sets up:
    - File handler: DEBUG-level rotating log at ``<log_dir>/<command>.log``
    - Console handler on stderr: WARNING (INFO if verbose), via Rich when
      the terminal supports it

    Args:
        command: CLI command name (e.g., "replay")
        verbose: If True, set console to INFO level
        console_level: Override console level (takes precedence over verbose)
        file_level: File log level (default: DEBUG)
        max_bytes: Max size per log file before rotation
        backup_count: Number of rotated backups to keep
        log_dir: Directory for the log file (default: LOG_DIR)

    Returns:
        Path to the log file
    """
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{command}.log"
    else:
        log_file = get_log_file(command)

    package_logger = logging.getLogger("lsp_indicator")

    # Remove handlers from previous calls to avoid duplicates
    for handler in package_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler) or (
            handler.get_name() == _CONSOLE_HANDLER_NAME
        ):
            package_logger.removeHandler(handler)
            handler.close()

    # File handler: captures everything for diagnosis
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    package_logger.addHandler(file_handler)

    if console_level is None:
        console_level = logging.INFO if verbose else logging.WARNING
    console_handler: logging.Handler
    if should_use_rich(sys.stderr):
        console_handler = RichHandler(
            console=Console(stderr=True), show_path=False, markup=False
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter("%(levelname)s %(name)s: %(message)s")
        )
    console_handler.set_name(_CONSOLE_HANDLER_NAME)
    console_handler.setLevel(console_level)
    package_logger.addHandler(console_handler)

    # NOTSET (0) means "inherit from parent" which defaults to WARNING,
    # so set the level explicitly when it would filter the file handler.
    min_level = min(file_level, console_level)
    if package_logger.level == logging.NOTSET or package_logger.level > min_level:
        package_logger.setLevel(min_level)

    return log_file
