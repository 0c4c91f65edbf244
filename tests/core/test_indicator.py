"""Tests for indicator.py - the LspIndicator context object."""

import logging

import pytest

from lsp_indicator.indicator import IndicatorConfig, LspIndicator
from lsp_indicator.models import (
    ASCII_SEVERITY_ICONS,
    PROGRESS_THEME,
    STATE_THEME,
    AggregateState,
    ProgressKind,
    ProgressParams,
    Severity,
    Theme,
    Worker,
)

THEME = Theme(busy_icon="B", idle_icon="I", progress_ramp="0123456789")


def begin(token, percentage=None):
    value = {"kind": "begin", "title": "Indexing"}
    if percentage is not None:
        value["percentage"] = percentage
    return {"token": token, "value": value}


def report(token, percentage=None):
    value = {"kind": "report"}
    if percentage is not None:
        value["percentage"] = percentage
    return {"token": token, "value": value}


def end(token):
    return {"token": token, "value": {"kind": "end"}}


@pytest.fixture
def updates(indicator, clock) -> list[float]:
    calls: list[float] = []
    indicator.setup(on_update=lambda: calls.append(clock.now()), interval_ms=500)
    return calls


class TestSetup:
    def test_defaults(self, indicator):
        config = indicator.setup()
        assert config.interval_ms == 500
        assert config.debug_log is False
        assert config.on_update is None

    def test_defaults_from_env(self, indicator, monkeypatch):
        monkeypatch.setenv("LSP_INDICATOR_INTERVAL_MS", "250")
        monkeypatch.setenv("LSP_INDICATOR_DEBUG_LOG", "yes")
        config = indicator.setup()
        assert config.interval_ms == 250
        assert config.debug_log is True
        assert indicator.diagnostics.interval_ms == 250

    def test_accepts_config_object(self, indicator):
        config = indicator.setup(IndicatorConfig(interval_ms=100, debug_log=True))
        assert indicator.config == config
        assert indicator.notifier.interval_ms == 100

    def test_negative_interval_rejected(self, indicator):
        with pytest.raises(ValueError):
            indicator.setup(interval_ms=-5)

    def test_without_callback_nothing_is_scheduled(self, indicator, clock):
        indicator.setup()
        indicator.handle_lsp_progress(begin("t"), worker_id=1)
        indicator.handle_lsp_progress(report("t", 10), worker_id=1)
        assert clock.pending == 0
        assert indicator.notifier.fire_count == 0

    def test_repeated_setup_keeps_single_pending_fire(self, indicator, clock):
        calls = []
        indicator.setup(on_update=lambda: calls.append(clock.now()), interval_ms=500)
        indicator.handle_lsp_progress(begin("t"), worker_id=1)
        clock.advance(100)
        indicator.handle_lsp_progress(report("t", 5), worker_id=1)
        indicator.setup(on_update=lambda: calls.append(clock.now()), interval_ms=300)
        indicator.setup(on_update=lambda: calls.append(clock.now()), interval_ms=300)
        assert clock.pending == 1
        clock.advance(1000)
        assert calls == [0.0, 300.0]


class TestProgressHandling:
    def test_every_event_signals_once(self, indicator, updates, clock):
        indicator.handle_lsp_progress(begin("t", 0), worker_id=1)
        assert updates == [0.0]
        indicator.handle_lsp_progress(report("t", 50), worker_id=1)
        assert clock.pending == 1

    def test_token_lifecycle(self, indicator, updates):
        indicator.handle_lsp_progress(begin("t", 0), worker_id=1)
        assert indicator.worker_state(1) == AggregateState(busy=True, percentage=0)
        indicator.handle_lsp_progress(report("t", 40), worker_id=1)
        assert indicator.worker_state(1) == AggregateState(busy=True, percentage=40)
        indicator.handle_lsp_progress(end("t"), worker_id=1)
        assert indicator.worker_state(1) == AggregateState()

    def test_unknown_kind_ends_stream(self, indicator):
        indicator.handle_lsp_progress(begin("t"), worker_id=1)
        indicator.handle_lsp_progress(
            {"token": "t", "value": {"kind": "suspended"}}, worker_id=1
        )
        assert (1, "t") not in indicator.store

    def test_malformed_params_ignored(self, indicator, updates, caplog):
        with caplog.at_level(logging.WARNING, logger="lsp_indicator.indicator"):
            result = indicator.handle_lsp_progress({"value": [1, 2]}, worker_id=1)
        assert result is None
        assert len(indicator.store) == 0
        assert updates == []
        assert "Ignoring malformed $/progress" in caplog.text

    @pytest.mark.parametrize("percentage", [[50], {"v": 1}])
    def test_non_numeric_percentage_ignored(
        self, indicator, updates, caplog, percentage
    ):
        params = {"token": "t", "value": {"kind": "report", "percentage": percentage}}
        with caplog.at_level(logging.WARNING, logger="lsp_indicator.indicator"):
            assert indicator.handle_lsp_progress(params, worker_id=1) is None
        assert len(indicator.store) == 0
        assert updates == []
        assert "Ignoring malformed $/progress" in caplog.text

    def test_huge_percentage_clamped(self, indicator):
        state = indicator.handle_lsp_progress(report("t", 10**400), worker_id=1)
        assert state is not None
        assert state.percentage == 100

    def test_accepts_parsed_params(self, indicator):
        params = ProgressParams.model_validate(begin(3, 20))
        state = indicator.handle_lsp_progress(params, worker_id="srv")
        assert state is not None
        assert state.percentage == 20

    def test_handle_progress_decoded(self, indicator):
        indicator.handle_progress(1, "a", "begin", 10)
        indicator.handle_progress(1, "b", ProgressKind.report, 60)
        assert indicator.worker_state(1) == AggregateState(busy=True, percentage=10)
        indicator.handle_progress(1, "a", "bogus")
        assert indicator.worker_state(1) == AggregateState(busy=True, percentage=60)

    def test_diagnostics_changed_signals(self, indicator, updates):
        indicator.diagnostics_changed()
        assert updates == [0.0]

    def test_burst_produces_leading_and_trailing_update(
        self, indicator, updates, clock
    ):
        for pct in range(0, 100, 10):
            indicator.handle_lsp_progress(report("t", pct), worker_id=1)
            clock.advance(5)
        clock.advance(1000)
        assert updates == [0.0, 500.0]


class TestDetachAndClose:
    def test_detach_worker_clears_tokens(self, indicator, updates):
        indicator.handle_lsp_progress(begin("a"), worker_id=1)
        indicator.handle_lsp_progress(begin("b"), worker_id=1)
        assert indicator.detach_worker(1) == 2
        assert indicator.worker_state(1) == AggregateState()

    def test_detach_unknown_worker(self, indicator):
        assert indicator.detach_worker(99) == 0

    def test_close_cancels_pending(self, indicator, updates, clock):
        indicator.diagnostics_changed()
        indicator.diagnostics_changed()
        indicator.close()
        clock.advance(1000)
        assert updates == [0.0]

    def test_context_manager_closes(self, host, clock):
        calls = []
        with LspIndicator(host, host, clock=clock, scheduler=clock) as indicator:
            indicator.setup(on_update=lambda: calls.append(1), interval_ms=500)
            indicator.diagnostics_changed()
            indicator.diagnostics_changed()
            assert clock.pending == 1
        assert clock.pending == 0


class TestQueries:
    @pytest.fixture
    def view(self, indicator, host):
        host.workers[10] = [Worker(1, "rust"), Worker(2, "lua")]
        indicator.handle_lsp_progress(begin("idx", 50), worker_id=1)
        return 10

    def test_query_progress(self, indicator, view):
        assert indicator.query_progress(view, THEME) == "I5"
        assert indicator.query_progress(view, THEME.named()) == "I lua 5 rust"

    def test_query_state_default_theme(self, indicator, view):
        busy, idle = STATE_THEME.busy_icon, STATE_THEME.idle_icon
        assert indicator.state(view) == f"{idle}{busy}"
        assert indicator.named_state(view) == f"{idle} lua {busy} rust"

    def test_progress_default_theme(self, indicator, view):
        ramp = PROGRESS_THEME.progress_ramp
        idle = PROGRESS_THEME.idle_icon
        # 0.5 + 50/100 * 13 = 7.0
        assert indicator.progress(view) == f"{idle}{ramp[7]}"
        assert indicator.named_progress(view) == f"{idle} lua {ramp[7]} rust"

    def test_unknown_view(self, indicator):
        assert indicator.query_progress("missing") == ""
        assert indicator.query_diagnostics("missing") == ""

    def test_worker_without_events_is_idle(self, indicator, host):
        host.workers[1] = [Worker(5, "ts")]
        assert indicator.query_state(1, THEME) == "I"

    def test_query_diagnostics_cached(self, host, clock):
        indicator = LspIndicator(
            host, host, clock=clock, scheduler=clock, severity_icons=ASCII_SEVERITY_ICONS
        )
        indicator.setup(interval_ms=500)
        host.counts[1] = {Severity.ERROR: 1}
        assert indicator.query_diagnostics(1) == "E 1"
        host.counts[1] = {Severity.ERROR: 2, Severity.HINT: 1}
        indicator.diagnostics_changed()
        assert indicator.query_diagnostics(1) == "E 1"
        clock.advance(500)
        assert indicator.query_diagnostics(1) == "E 2  H 1"


class TestDebugLog:
    def test_disabled_by_default(self, indicator):
        indicator.setup()
        indicator.handle_lsp_progress(begin("t"), worker_id=1)
        assert len(indicator.event_log) == 0

    def test_records_raw_params_and_context(self, indicator, clock):
        indicator.setup(debug_log=True)
        clock.advance(42)
        indicator.handle_lsp_progress(begin("t"), worker_id=1, context={"method": "$/progress"})
        (entry,) = indicator.event_log.entries
        assert entry.timestamp == 42.0
        assert entry.worker_id == 1
        assert entry.params == begin("t")
        assert entry.context == {"method": "$/progress"}

    def test_records_malformed_params(self, indicator):
        indicator.setup(debug_log=True)
        indicator.handle_lsp_progress({"bad": True}, worker_id=1)
        assert len(indicator.event_log) == 1

    def test_records_decoded_events(self, indicator):
        indicator.setup(debug_log=True)
        indicator.handle_progress(1, "t", "report", 5)
        (entry,) = indicator.event_log.entries
        assert entry.params == {"token": "t", "kind": "report", "percentage": 5}

    def test_log_does_not_change_state(self, indicator):
        indicator.setup(debug_log=True)
        indicator.handle_lsp_progress(begin("t", 10), worker_id=1)
        assert indicator.worker_state(1) == AggregateState(busy=True, percentage=10)


class TestDefaultsBeforeSetup:
    def test_env_interval_applies_without_setup(self, host, clock, monkeypatch):
        monkeypatch.setenv("LSP_INDICATOR_INTERVAL_MS", "200")
        indicator = LspIndicator(host, host, clock=clock, scheduler=clock)
        assert indicator.config.interval_ms == 200
        assert indicator.notifier.interval_ms == 200
        assert indicator.diagnostics.interval_ms == 200

    def test_env_debug_log_applies_without_setup(self, host, clock, monkeypatch):
        monkeypatch.setenv("LSP_INDICATOR_DEBUG_LOG", "true")
        indicator = LspIndicator(host, host, clock=clock, scheduler=clock)
        indicator.handle_lsp_progress(begin("t"), worker_id=1)
        assert len(indicator.event_log) == 1

    def test_diagnostics_cached_for_configured_interval(
        self, host, clock, monkeypatch
    ):
        monkeypatch.setenv("LSP_INDICATOR_INTERVAL_MS", "100")
        indicator = LspIndicator(
            host, host, clock=clock, scheduler=clock, severity_icons=ASCII_SEVERITY_ICONS
        )
        host.counts[1] = {Severity.ERROR: 1}
        assert indicator.query_diagnostics(1) == "E 1"
        host.counts[1] = {Severity.ERROR: 4}
        clock.advance(100)
        assert indicator.query_diagnostics(1) == "E 4"


class TestForgetView:
    def test_forget_view_drops_cached_summary(self, indicator, host):
        host.counts[1] = {Severity.WARNING: 1}
        indicator.query_diagnostics(1)
        indicator.query_diagnostics(2)
        indicator.forget_view(1)
        assert len(indicator.diagnostics) == 1
        host.counts[1] = {Severity.WARNING: 3}
        assert indicator.query_diagnostics(1) == "\uea6c 3"

    def test_forget_unknown_view(self, indicator):
        indicator.forget_view("never-queried")
        assert len(indicator.diagnostics) == 0
