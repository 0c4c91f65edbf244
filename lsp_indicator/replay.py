"""
Replay recorded language-server traffic through an LspIndicator.

Input is JSON lines, one record per line, with non-decreasing ``t``
(milliseconds)::

    {"t": 0, "type": "progress", "view": 1,
     "worker": {"id": 1, "name": "rust"},
     "params": {"token": "idx", "value": {"kind": "begin", "percentage": 0}}}
    {"t": 120, "type": "diagnostics", "view": 1, "counts": {"error": 2}}
    {"t": 900, "type": "detach", "worker": {"id": 1}}

Time runs on a VirtualClock, so the output is deterministic: one frame is
captured per view every time the rate-limited ``on_update`` fires.
Blank lines and lines starting with ``#`` are skipped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from lsp_indicator.clock import VirtualClock
from lsp_indicator.errors import ReplayError
from lsp_indicator.indicator import LspIndicator
from lsp_indicator.models import (
    ASCII_SEVERITY_ICONS,
    ASCII_THEME,
    DEFAULT_SEVERITY_ICONS,
    PROGRESS_THEME,
    STATE_THEME,
    Severity,
    Theme,
    Worker,
)

logger = logging.getLogger(__name__)

__all__ = ["ReplayFrame", "ReplayHost", "ReplayResult", "parse_records", "replay"]


# =============================================================================
# Records
# =============================================================================


class WorkerRef(BaseModel):
    id: int | str
    name: str = ""


class ProgressRecord(BaseModel):
    type: Literal["progress"]
    t: float = Field(ge=0)
    view: int | str = 0
    worker: WorkerRef
    params: dict[str, Any]


class DiagnosticsRecord(BaseModel):
    type: Literal["diagnostics"]
    t: float = Field(ge=0)
    view: int | str = 0
    counts: dict[Severity, int] = Field(default_factory=dict)

    @field_validator("counts", mode="before")
    @classmethod
    def parse_severities(cls, v: Any) -> Any:
        """Accept severity names ("error", "warn") as well as numbers."""
        if not isinstance(v, dict):
            return v
        return {Severity.parse(key): count for key, count in v.items()}


class DetachRecord(BaseModel):
    type: Literal["detach"]
    t: float = Field(ge=0)
    worker: WorkerRef


Record = Annotated[
    ProgressRecord | DiagnosticsRecord | DetachRecord, Field(discriminator="type")
]
_RECORD_ADAPTER = TypeAdapter(Record)


def parse_records(lines: Iterable[str]) -> list[Record]:
    """Parse and validate JSON-lines records.

    Raises:
        ReplayError: On invalid JSON, an invalid record, or time going
            backwards. The error carries the 1-based line number.
    """
    records: list[Record] = []
    last_t = 0.0
    for line_number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        try:
            record = _RECORD_ADAPTER.validate_python(json.loads(text))
        except json.JSONDecodeError as e:
            raise ReplayError(f"invalid JSON: {e.msg}", line_number) from e
        except ValidationError as e:
            raise ReplayError(
                f"invalid record: {e.error_count()} error(s), "
                f"first: {e.errors(include_url=False)[0]['msg']}",
                line_number,
            ) from e
        if record.t < last_t:
            raise ReplayError(
                f"time goes backwards ({record.t} < {last_t})", line_number
            )
        last_t = record.t
        records.append(record)
    return records


# =============================================================================
# Host
# =============================================================================


class ReplayHost:
    """In-memory host: which workers are attached to which view, and counts.

    Workers attach to a view on their first progress record and detach
    on a detach record.
    """

    def __init__(self) -> None:
        self.views: dict[Hashable, dict[Hashable, Worker]] = {}
        self.counts: dict[Hashable, dict[Severity, int]] = {}

    def attach(self, view_id: Hashable, worker: Worker) -> None:
        self.views.setdefault(view_id, {})[worker.id] = worker

    def detach(self, worker_id: Hashable) -> None:
        for workers in self.views.values():
            workers.pop(worker_id, None)

    def set_counts(self, view_id: Hashable, counts: dict[Severity, int]) -> None:
        self.counts[view_id] = dict(counts)

    def active_workers(self, view_id: Hashable) -> list[Worker]:
        return list(self.views.get(view_id, {}).values())

    def count(self, view_id: Hashable, severity: Severity) -> int:
        return self.counts.get(view_id, {}).get(severity, 0)

    def view_ids(self) -> list[Hashable]:
        return list(dict.fromkeys([*self.views, *self.counts]))


# =============================================================================
# Replay
# =============================================================================


@dataclass(frozen=True)
class ReplayFrame:
    """Status-line strings of one view at one ``on_update`` fire."""

    t: float
    view: Hashable
    progress: str
    state: str
    diagnostics: str


@dataclass
class ReplayResult:
    frames: list[ReplayFrame] = field(default_factory=list)
    records: int = 0
    fires: int = 0
    duration_ms: float = 0.0
    event_log: str = ""


def replay(
    lines: Iterable[str],
    *,
    interval_ms: int | None = None,
    view: Hashable | None = None,
    named: bool = False,
    ascii_icons: bool = False,
    debug_log: bool = False,
) -> ReplayResult:
    """Drive an indicator from recorded traffic on a virtual clock.

    Args:
        lines: JSON-lines records
        interval_ms: Rate-limit interval (default from settings)
        view: Only capture frames for this view id
        named: Prefix each icon with the worker name
        ascii_icons: Use plain ASCII icons instead of Nerd Font glyphs
        debug_log: Record raw progress params into the event log

    Returns:
        Captured frames and counters.
    """
    records = parse_records(lines)
    clock = VirtualClock()
    host = ReplayHost()
    indicator = LspIndicator(
        workers=host,
        diagnostics=host,
        clock=clock,
        scheduler=clock,
        severity_icons=ASCII_SEVERITY_ICONS if ascii_icons else DEFAULT_SEVERITY_ICONS,
    )
    progress_theme, state_theme = _themes(named, ascii_icons)
    result = ReplayResult(records=len(records))

    def capture() -> None:
        views = [view] if view is not None else host.view_ids()
        for view_id in views:
            result.frames.append(
                ReplayFrame(
                    t=clock.now(),
                    view=view_id,
                    progress=indicator.query_progress(view_id, progress_theme),
                    state=indicator.query_state(view_id, state_theme),
                    diagnostics=indicator.query_diagnostics(view_id),
                )
            )

    config = indicator.setup(
        on_update=capture, interval_ms=interval_ms, debug_log=debug_log
    )
    assert config.interval_ms is not None

    for record in records:
        clock.advance_to(record.t)
        match record:
            case ProgressRecord():
                host.attach(record.view, Worker(record.worker.id, record.worker.name))
                indicator.handle_lsp_progress(
                    record.params,
                    worker_id=record.worker.id,
                    context={"view": record.view, "t": record.t},
                )
            case DiagnosticsRecord():
                host.set_counts(record.view, record.counts)
                indicator.diagnostics_changed()
            case DetachRecord():
                host.detach(record.worker.id)
                indicator.detach_worker(record.worker.id)

    # Flush the trailing update of the last burst.
    clock.advance(config.interval_ms)
    indicator.close()

    result.fires = indicator.notifier.fire_count
    result.duration_ms = clock.now()
    if debug_log:
        result.event_log = indicator.event_log.render()
    logger.info(
        "Replayed %d records over %.0f ms: %d updates",
        result.records,
        result.duration_ms,
        result.fires,
    )
    return result


def _themes(named: bool, ascii_icons: bool) -> tuple[Theme, Theme]:
    if ascii_icons:
        progress = ASCII_THEME
        state = Theme(
            busy_icon=ASCII_THEME.busy_icon,
            idle_icon=ASCII_THEME.idle_icon,
            progress_ramp=ASCII_THEME.busy_icon,
        )
    else:
        progress, state = PROGRESS_THEME, STATE_THEME
    if named:
        return progress.named(), state.named()
    return progress, state
