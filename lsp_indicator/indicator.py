"""
LspIndicator: progress and diagnostics indicator for language server clients.

Owns one ProgressStore, one DebouncedNotifier and one DiagnosticsCache.
The host feeds it ``$/progress`` notifications and "diagnostics changed"
signals, and asks it for status-line strings per view.

Usage:
    indicator = LspIndicator(workers=host, diagnostics=host)
    indicator.setup(on_update=redraw_statusline, interval_ms=500)

    # from the host's $/progress handler
    indicator.handle_lsp_progress(params, worker_id=client.id)

    # from the status line
    indicator.named_progress(view_id)   # e.g. "<icon> rust <icon> lua"
    indicator.query_diagnostics(view_id)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

from lsp_indicator import settings
from lsp_indicator.aggregate import format_view, representative_state
from lsp_indicator.clock import SystemClock, ThreadingScheduler
from lsp_indicator.diagnostics import DiagnosticsCache
from lsp_indicator.event_log import EventLog
from lsp_indicator.models import (
    DEFAULT_SEVERITY_ICONS,
    PROGRESS_THEME,
    STATE_THEME,
    ProgressEvent,
    ProgressKind,
    ProgressParams,
)
from lsp_indicator.notifier import DebouncedNotifier
from lsp_indicator.store import ProgressStore

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Mapping, Sequence

    from lsp_indicator.clock import Clock, Scheduler
    from lsp_indicator.diagnostics import DiagnosticsSource
    from lsp_indicator.models import (
        AggregateState,
        Severity,
        Theme,
        Token,
        TokenState,
        Worker,
        WorkerId,
    )

logger = logging.getLogger(__name__)

__all__ = ["IndicatorConfig", "LspIndicator", "WorkerSource"]


class WorkerSource(Protocol):
    """Host capability: workers attached to a view."""

    def active_workers(self, view_id: Hashable) -> Sequence[Worker]: ...


@dataclass(frozen=True)
class IndicatorConfig:
    """Settings accepted by :meth:`LspIndicator.setup`.

    None means "use the configured default" (see :mod:`lsp_indicator.settings`).
    """

    on_update: Callable[[], None] | None = None
    interval_ms: int | None = None
    debug_log: bool | None = None

    def resolved(self) -> IndicatorConfig:
        return IndicatorConfig(
            on_update=self.on_update,
            interval_ms=(
                settings.get_interval_ms()
                if self.interval_ms is None
                else self.interval_ms
            ),
            debug_log=(
                settings.get_debug_log() if self.debug_log is None else self.debug_log
            ),
        )


class LspIndicator:
    """Aggregated progress and cached diagnostics for a set of views.

    Args:
        workers: Lists the workers attached to a view
        diagnostics: Counts diagnostics per view and severity
        clock: Monotonic millisecond clock (default: SystemClock)
        scheduler: Deferred callbacks (default: ThreadingScheduler). A
            VirtualClock can serve as both clock and scheduler.
        severity_icons: Icons for the diagnostics summary
    """

    def __init__(
        self,
        workers: WorkerSource,
        diagnostics: DiagnosticsSource,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        severity_icons: Mapping[Severity, str] = DEFAULT_SEVERITY_ICONS,
    ) -> None:
        self.workers = workers
        self.clock = clock or SystemClock()
        self.store = ProgressStore()
        self._config = IndicatorConfig().resolved()
        assert self._config.interval_ms is not None  # guaranteed by resolved()
        self.notifier = DebouncedNotifier(
            self.clock,
            scheduler or ThreadingScheduler(),
            interval_ms=self._config.interval_ms,
        )
        self.diagnostics = DiagnosticsCache(
            self.clock,
            diagnostics,
            interval_ms=self._config.interval_ms,
            icons=severity_icons,
        )
        self._event_log = EventLog(settings.get_event_log_size())

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> IndicatorConfig:
        return self._config

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def setup(
        self,
        config: IndicatorConfig | None = None,
        *,
        on_update: Callable[[], None] | None = None,
        interval_ms: int | None = None,
        debug_log: bool | None = None,
    ) -> IndicatorConfig:
        """Install settings. Safe to call repeatedly.

        Either pass an :class:`IndicatorConfig` or keyword arguments. Unset
        values fall back to the configured defaults, not to the previous
        call. A pending update is re-scheduled under the new interval.

        Returns:
            The resolved configuration now in effect.

        Raises:
            ValueError: If ``interval_ms`` is negative.
        """
        if config is None:
            config = IndicatorConfig(
                on_update=on_update, interval_ms=interval_ms, debug_log=debug_log
            )
        config = config.resolved()
        assert config.interval_ms is not None  # guaranteed by resolved()

        self.notifier.configure(config.on_update, config.interval_ms)
        self.diagnostics.interval_ms = config.interval_ms
        self._config = config
        logger.debug(
            "Indicator configured: interval=%dms callback=%s debug_log=%s",
            config.interval_ms,
            config.on_update is not None,
            config.debug_log,
        )
        return config

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle_progress(
        self,
        worker_id: WorkerId,
        token: Token,
        kind: ProgressKind | str,
        percentage: int | None = None,
    ) -> TokenState | None:
        """Apply an already-decoded progress event and signal a change."""
        event = ProgressEvent(ProgressKind(kind), percentage)
        if self._config.debug_log:
            self._event_log.append(
                self.clock.now(),
                worker_id,
                {"token": token, "kind": event.kind.value, "percentage": percentage},
            )
        return self._apply(worker_id, token, event)

    def handle_lsp_progress(
        self,
        params: Mapping[str, Any] | ProgressParams,
        worker_id: WorkerId,
        context: Mapping[str, Any] | None = None,
    ) -> TokenState | None:
        """Apply the params of a ``$/progress`` notification.

        Params that are not a work-done progress payload are logged and
        ignored; they never raise.
        """
        if self._config.debug_log:
            raw = params.model_dump() if isinstance(params, ProgressParams) else params
            self._event_log.append(
                self.clock.now(), worker_id, raw, dict(context or {})
            )
        if isinstance(params, ProgressParams):
            parsed = params
        else:
            try:
                parsed = ProgressParams.model_validate(params)
            except ValidationError as e:
                logger.warning(
                    "Ignoring malformed $/progress from %s: %s",
                    worker_id,
                    e.errors(include_url=False),
                )
                return None
        return self._apply(worker_id, parsed.token, parsed.to_event())

    def _apply(
        self, worker_id: WorkerId, token: Token, event: ProgressEvent
    ) -> TokenState | None:
        state = self.store.apply(worker_id, token, event)
        self.notifier.signal()
        return state

    def diagnostics_changed(self) -> None:
        """Host signal: some view's diagnostics changed."""
        self.notifier.signal()

    def detach_worker(self, worker_id: WorkerId) -> int:
        """Forget a worker's tokens (exited or restarted server).

        Returns:
            Number of tokens dropped.
        """
        dropped = self.store.clear_worker(worker_id)
        if dropped:
            logger.info("Dropped %d live token(s) of detached worker %s", dropped, worker_id)
        self.notifier.signal()
        return dropped

    def forget_view(self, view_id: Hashable) -> None:
        """Drop the cached diagnostics summary of a closed view."""
        self.diagnostics.invalidate(view_id)

    def close(self) -> None:
        """Cancel a pending update."""
        self.notifier.cancel()

    def __enter__(self) -> LspIndicator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def worker_state(self, worker_id: WorkerId) -> AggregateState:
        return representative_state(self.store.tokens(worker_id))

    def query_progress(self, view_id: Hashable, theme: Theme = PROGRESS_THEME) -> str:
        """Icons of every worker of a view, percentage ramp when known."""
        return format_view(self.workers.active_workers(view_id), self.store, theme)

    def query_state(self, view_id: Hashable, theme: Theme = STATE_THEME) -> str:
        """Busy/idle icons of every worker of a view."""
        return format_view(self.workers.active_workers(view_id), self.store, theme)

    def progress(self, view_id: Hashable) -> str:
        return self.query_progress(view_id, PROGRESS_THEME.unnamed())

    def named_progress(self, view_id: Hashable) -> str:
        return self.query_progress(view_id, PROGRESS_THEME.named())

    def state(self, view_id: Hashable) -> str:
        return self.query_state(view_id, STATE_THEME.unnamed())

    def named_state(self, view_id: Hashable) -> str:
        return self.query_state(view_id, STATE_THEME.named())

    def query_diagnostics(self, view_id: Hashable) -> str:
        """Diagnostics summary, cached for ``interval_ms``."""
        return self.diagnostics.get(view_id)
