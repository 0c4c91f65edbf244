"""Progress store: worker id -> token -> TokenState.

Pure data. Entries are created by begin/report events and removed by
end (or unknown) events; nothing expires on its own. Empty per-worker
mappings are pruned so "no tokens" and "unknown worker" look the same.
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING

from lsp_indicator.models import ProgressKind, TokenState

if TYPE_CHECKING:
    from collections.abc import Mapping

    from lsp_indicator.models import ProgressEvent, Token, WorkerId

logger = logging.getLogger(__name__)

__all__ = ["ProgressStore"]

_EMPTY: Mapping = MappingProxyType({})


class ProgressStore:
    """Two-level mapping of live progress streams, guarded by a lock."""

    def __init__(self) -> None:
        self._progress: dict[WorkerId, dict[Token, TokenState]] = {}
        self._lock = threading.Lock()

    def apply(
        self, worker_id: WorkerId, token: Token, event: ProgressEvent
    ) -> TokenState | None:
        """Apply one progress event.

        begin/report replace the token's state (the new percentage wins,
        even when absent). end and anything unexpected drop the token.

        Returns:
            The token's new state, or None if it is no longer tracked.
        """
        with self._lock:
            match event.kind:
                case ProgressKind.begin | ProgressKind.report:
                    state = TokenState(busy=True, percentage=event.percentage)
                    self._progress.setdefault(worker_id, {})[token] = state
                    return state
                case ProgressKind.end:
                    self._remove(worker_id, token)
                    return None
                case ProgressKind.other:
                    logger.debug(
                        "Unexpected progress kind for %s/%s, dropping token",
                        worker_id,
                        token,
                    )
                    self._remove(worker_id, token)
                    return None

    def _remove(self, worker_id: WorkerId, token: Token) -> None:
        tokens = self._progress.get(worker_id)
        if tokens is None:
            return
        tokens.pop(token, None)
        if not tokens:
            del self._progress[worker_id]

    def tokens(self, worker_id: WorkerId) -> Mapping[Token, TokenState]:
        """Snapshot of a worker's live tokens (empty when unknown)."""
        with self._lock:
            tokens = self._progress.get(worker_id)
            if not tokens:
                return _EMPTY
            return MappingProxyType(dict(tokens))

    def workers(self) -> list[WorkerId]:
        """Workers with at least one live token."""
        with self._lock:
            return list(self._progress)

    def clear_worker(self, worker_id: WorkerId) -> int:
        """Forget every token of a worker. Returns the number dropped."""
        with self._lock:
            tokens = self._progress.pop(worker_id, None)
        return len(tokens) if tokens else 0

    def clear(self) -> None:
        with self._lock:
            self._progress.clear()

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        worker_id, token = key
        with self._lock:
            return token in self._progress.get(worker_id, _EMPTY)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(tokens) for tokens in self._progress.values())
