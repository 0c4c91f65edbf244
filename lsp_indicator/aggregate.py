"""Reduce live tokens to one representative state and render it.

Per worker, parallel progress streams collapse to the least advanced one:
busy if any token is busy, percentage is the minimum of the tokens that
report one. A view renders each attached worker with a theme, ordered
by worker name.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from lsp_indicator.models import IDLE, AggregateState

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from lsp_indicator.models import Theme, Token, TokenState, Worker
    from lsp_indicator.store import ProgressStore

__all__ = [
    "format_view",
    "format_worker",
    "representative_icon",
    "representative_state",
]


def representative_state(
    tokens: Mapping[Token, TokenState] | None,
) -> AggregateState:
    """Fold a worker's tokens into one state.

    A busy token without a percentage forces busy but does not bound the
    percentage.
    """
    if not tokens:
        return IDLE
    busy = False
    percentage: int | None = None
    for state in tokens.values():
        busy = busy or state.busy
        if state.percentage is not None:
            percentage = (
                state.percentage
                if percentage is None
                else min(percentage, state.percentage)
            )
    return AggregateState(busy=busy, percentage=percentage)


def representative_icon(percentage: float, ramp: Sequence[str]) -> str:
    """Pick the ramp icon for a percentage: 0 -> first, 100 -> last."""
    n = len(ramp)
    if n == 0:
        return ""
    index = math.floor(0.5 + percentage / 100 * (n - 1))
    return ramp[min(max(index, 0), n - 1)]


def format_worker(state: AggregateState, theme: Theme) -> str:
    """Icon for one worker's representative state."""
    if not state.busy:
        return theme.idle_icon
    if state.percentage is None:
        return theme.busy_icon
    return representative_icon(state.percentage, theme.progress_ramp)


def format_view(
    workers: Iterable[Worker], store: ProgressStore, theme: Theme
) -> str:
    """Render every worker of a view, sorted by name.

    ``sorted`` is stable, so workers sharing a name keep the host's order.
    """
    parts = []
    for worker in sorted(workers, key=lambda w: w.name):
        icon = format_worker(representative_state(store.tokens(worker.id)), theme)
        parts.append(f"{icon} {worker.name}" if theme.show_name else icon)
    return (" " if theme.show_name else "").join(parts)
