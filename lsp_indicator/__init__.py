"""lsp-indicator: aggregated language server progress and diagnostics.

Collects ``$/progress`` notifications from any number of language server
clients, rate-limits a single "something changed" callback, and renders
compact status-line strings per editor view.
"""

from importlib.metadata import PackageNotFoundError, version

from lsp_indicator.aggregate import representative_icon, representative_state
from lsp_indicator.clock import (
    AsyncioScheduler,
    SystemClock,
    ThreadingScheduler,
    VirtualClock,
)
from lsp_indicator.diagnostics import DiagnosticsCache
from lsp_indicator.errors import IndicatorError, ReplayError
from lsp_indicator.indicator import IndicatorConfig, LspIndicator
from lsp_indicator.models import (
    ASCII_THEME,
    PROGRESS_THEME,
    STATE_THEME,
    AggregateState,
    ProgressEvent,
    ProgressKind,
    Severity,
    Theme,
    TokenState,
    Worker,
)
from lsp_indicator.notifier import DebouncedNotifier, NotifierState
from lsp_indicator.store import ProgressStore

try:
    __version__ = version("lsp-indicator")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    "ASCII_THEME",
    "PROGRESS_THEME",
    "STATE_THEME",
    "AggregateState",
    "AsyncioScheduler",
    "DebouncedNotifier",
    "DiagnosticsCache",
    "IndicatorConfig",
    "IndicatorError",
    "LspIndicator",
    "NotifierState",
    "ProgressEvent",
    "ProgressKind",
    "ProgressStore",
    "ReplayError",
    "Severity",
    "SystemClock",
    "Theme",
    "ThreadingScheduler",
    "TokenState",
    "VirtualClock",
    "Worker",
    "__version__",
    "representative_icon",
    "representative_state",
]
