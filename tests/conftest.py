"""Shared fixtures: a virtual clock and an in-memory host."""

from __future__ import annotations

from collections.abc import Hashable

import pytest

from lsp_indicator import settings
from lsp_indicator.clock import VirtualClock
from lsp_indicator.indicator import LspIndicator
from lsp_indicator.models import Severity, Worker


class FakeHost:
    """Worker listing and diagnostics counts keyed by view id."""

    def __init__(self) -> None:
        self.workers: dict[Hashable, list[Worker]] = {}
        self.counts: dict[Hashable, dict[Severity, int]] = {}
        self.count_calls = 0

    def active_workers(self, view_id: Hashable) -> list[Worker]:
        return list(self.workers.get(view_id, []))

    def count(self, view_id: Hashable, severity: Severity) -> int:
        self.count_calls += 1
        return self.counts.get(view_id, {}).get(severity, 0)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Keep LSP_INDICATOR_* env vars from leaking into tests."""
    for name in (
        "LSP_INDICATOR_INTERVAL_MS",
        "LSP_INDICATOR_DEBUG_LOG",
        "LSP_INDICATOR_EVENT_LOG_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    settings._load_pyproject_settings.cache_clear()
    yield
    settings._load_pyproject_settings.cache_clear()


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def indicator(host, clock) -> LspIndicator:
    return LspIndicator(workers=host, diagnostics=host, clock=clock, scheduler=clock)
