"""Append-only record of raw progress notifications, for debugging servers.

Enabled with ``debug_log=True``. Each notification is kept in memory
(bounded, oldest dropped) and echoed at DEBUG level to the
``lsp_indicator.events`` logger, pretty-printed with Rich.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from rich.pretty import pretty_repr

from lsp_indicator.settings import DEFAULT_EVENT_LOG_SIZE

logger = logging.getLogger("lsp_indicator.events")

__all__ = ["EventLog", "LoggedEvent"]


@dataclass(frozen=True)
class LoggedEvent:
    """One raw notification plus the context it arrived with."""

    timestamp: float
    worker_id: Any
    params: Any
    context: dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        return "\n".join(
            [
                f"t={self.timestamp:.0f}ms worker={self.worker_id!r}",
                pretty_repr(self.params),
                pretty_repr(self.context),
            ]
        )


class EventLog:
    """Bounded in-memory log of :class:`LoggedEvent` records."""

    def __init__(self, max_entries: int = DEFAULT_EVENT_LOG_SIZE) -> None:
        self._entries: deque[LoggedEvent] = deque(maxlen=max_entries)

    def append(
        self,
        timestamp: float,
        worker_id: Any,
        params: Any,
        context: dict[str, Any] | None = None,
    ) -> LoggedEvent:
        entry = LoggedEvent(timestamp, worker_id, params, dict(context or {}))
        self._entries.append(entry)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("progress event\n%s", entry.render())
        return entry

    @property
    def entries(self) -> list[LoggedEvent]:
        return list(self._entries)

    def render(self) -> str:
        """All entries as text blocks separated by blank lines."""
        return "\n\n".join(entry.render() for entry in self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
