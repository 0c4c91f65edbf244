"""Project settings loaded from pyproject.toml [tool.lsp-indicator] section.

Recognized keys:
  interval-ms     - minimum spacing of on_update calls, also the
                    diagnostics cache lifetime (default 500)
  debug-log       - record every raw progress event (default false)
  event-log-size  - maximum number of recorded events (default 1000)

All settings support environment variable overrides (LSP_INDICATOR_* prefix).
"""

import importlib.resources
import os
import tomllib
from functools import cache
from pathlib import Path

DEFAULT_INTERVAL_MS = 500
DEFAULT_EVENT_LOG_SIZE = 1000


@cache
def _load_pyproject_settings() -> dict:
    """Load settings from pyproject.toml [tool.lsp-indicator] section.

    Returns:
        Dictionary of settings from pyproject.toml, empty dict if not found.
    """
    try:
        # Try package resources first (installed package)
        files = importlib.resources.files("lsp_indicator")
        pyproject_path = files.joinpath("..", "pyproject.toml")

        if not pyproject_path.is_file():  # type: ignore[union-attr]
            # Walk up to find pyproject.toml (for development)
            current = Path(__file__).resolve().parent
            while current != current.parent:
                candidate = current / "pyproject.toml"
                if candidate.exists():
                    pyproject_path = candidate
                    break
                current = current.parent
            else:
                return {}

        content = pyproject_path.read_text()  # type: ignore[union-attr]
        data = tomllib.loads(content)
        return data.get("tool", {}).get("lsp-indicator", {})
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _parse_bool(value: str | bool) -> bool:
    """Parse a boolean value from string or bool."""
    if isinstance(value, bool):
        return value
    return value.lower() in ("true", "1", "yes")


def get_interval_ms() -> int:
    """Get the rate-limit interval in milliseconds.

    Priority: LSP_INDICATOR_INTERVAL_MS env → interval-ms → 500.
    """
    if env := os.getenv("LSP_INDICATOR_INTERVAL_MS"):
        return int(env)
    val = _load_pyproject_settings().get("interval-ms")
    return int(val) if val is not None else DEFAULT_INTERVAL_MS


def get_debug_log() -> bool:
    """Get whether raw progress events are recorded.

    Priority: LSP_INDICATOR_DEBUG_LOG env → debug-log → False.
    """
    if env := os.getenv("LSP_INDICATOR_DEBUG_LOG"):
        return _parse_bool(env)
    val = _load_pyproject_settings().get("debug-log")
    if val is not None:
        return _parse_bool(val)
    return False


def get_event_log_size() -> int:
    """Get the maximum number of recorded raw events.

    Priority: LSP_INDICATOR_EVENT_LOG_SIZE env → event-log-size → 1000.
    """
    if env := os.getenv("LSP_INDICATOR_EVENT_LOG_SIZE"):
        return int(env)
    val = _load_pyproject_settings().get("event-log-size")
    return int(val) if val is not None else DEFAULT_EVENT_LOG_SIZE
