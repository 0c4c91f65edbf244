"""Time-windowed diagnostics summary cache.

Status lines query diagnostics on every redraw; counting them each time
is wasteful. The summary of a view is recomputed at most once per
``interval_ms`` and served from cache in between, even if the underlying
diagnostics changed (a stale answer for up to one interval is expected).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from lsp_indicator.models import DEFAULT_SEVERITY_ICONS, Severity
from lsp_indicator.settings import DEFAULT_INTERVAL_MS

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping

    from lsp_indicator.clock import Clock

logger = logging.getLogger(__name__)

__all__ = ["DiagnosticsCache", "DiagnosticsSource", "format_diagnostics"]

SEPARATOR = "  "


class DiagnosticsSource(Protocol):
    """Host capability: number of diagnostics of a severity in a view."""

    def count(self, view_id: Hashable, severity: Severity) -> int: ...


def format_diagnostics(
    counts: Mapping[Severity, int],
    icons: Mapping[Severity, str] = DEFAULT_SEVERITY_ICONS,
    separator: str = SEPARATOR,
) -> str:
    """Render nonzero counts most severe first: ``"<icon> 5  <icon> 3"``."""
    return separator.join(
        f"{icons.get(severity, severity.name[0])} {counts[severity]}"
        for severity in Severity
        if counts.get(severity, 0) > 0
    )


@dataclass(frozen=True)
class _Entry:
    summary: str
    computed_at: float


class DiagnosticsCache:
    """Per-view memoization of the diagnostics summary.

    Args:
        clock: Monotonic millisecond clock
        source: Diagnostics counting capability
        interval_ms: Lifetime of a cached summary
        icons: Icon per severity
        separator: Joins the per-severity entries
    """

    def __init__(
        self,
        clock: Clock,
        source: DiagnosticsSource,
        interval_ms: float = DEFAULT_INTERVAL_MS,
        icons: Mapping[Severity, str] = DEFAULT_SEVERITY_ICONS,
        separator: str = SEPARATOR,
    ) -> None:
        self.clock = clock
        self.source = source
        self.interval_ms = interval_ms
        self.icons = dict(icons)
        self.separator = separator
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, view_id: Hashable) -> str:
        """Cached summary for a view, recomputed once the interval elapsed."""
        now = self.clock.now()
        with self._lock:
            entry = self._entries.get(view_id)
            if entry is not None and now - entry.computed_at < self.interval_ms:
                return entry.summary
            summary = self.compute(view_id)
            self._prune_expired(now)
            self._entries[view_id] = _Entry(summary, now)
            return summary

    def _prune_expired(self, now: float) -> None:
        # An expired entry is recomputed on its next get() anyway.
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.computed_at >= self.interval_ms
        ]
        for key in expired:
            del self._entries[key]

    def compute(self, view_id: Hashable) -> str:
        """Uncached summary straight from the source."""
        counts = {
            severity: self.source.count(view_id, severity) or 0
            for severity in Severity
        }
        return format_diagnostics(counts, self.icons, self.separator)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def invalidate(self, view_id: Hashable | None = None) -> None:
        """Forget one view's summary, or every view's when ``view_id`` is None."""
        with self._lock:
            if view_id is None:
                self._entries.clear()
            else:
                self._entries.pop(view_id, None)
