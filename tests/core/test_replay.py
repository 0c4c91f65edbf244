"""Tests for replay.py - deterministic replay of recorded traffic."""

import json

import pytest

from lsp_indicator.errors import ReplayError
from lsp_indicator.models import Severity
from lsp_indicator.replay import (
    DetachRecord,
    DiagnosticsRecord,
    ProgressRecord,
    parse_records,
    replay,
)


def progress(t, kind, percentage=None, *, token="idx", view=1, worker=1, name="rust"):
    value = {"kind": kind}
    if percentage is not None:
        value["percentage"] = percentage
    return json.dumps(
        {
            "t": t,
            "type": "progress",
            "view": view,
            "worker": {"id": worker, "name": name},
            "params": {"token": token, "value": value},
        }
    )


def diagnostics(t, counts, view=1):
    return json.dumps({"t": t, "type": "diagnostics", "view": view, "counts": counts})


def detach(t, worker=1):
    return json.dumps({"t": t, "type": "detach", "worker": {"id": worker}})


class TestParseRecords:
    def test_record_types(self):
        records = parse_records(
            [progress(0, "begin"), diagnostics(10, {"error": 1}), detach(20)]
        )
        assert [type(r) for r in records] == [
            ProgressRecord,
            DiagnosticsRecord,
            DetachRecord,
        ]

    def test_skips_blank_and_comment_lines(self):
        records = parse_records(
            ["", "# recorded from rust-analyzer", progress(0, "begin"), "   "]
        )
        assert len(records) == 1

    def test_severity_keys(self):
        (record,) = parse_records([diagnostics(0, {"warn": 2, "1": 3, "hint": 1})])
        assert record.counts == {
            Severity.WARNING: 2,
            Severity.ERROR: 3,
            Severity.HINT: 1,
        }

    def test_invalid_json_reports_line(self):
        with pytest.raises(ReplayError) as excinfo:
            parse_records([progress(0, "begin"), "{not json"])
        assert excinfo.value.line_number == 2
        assert str(excinfo.value).startswith("line 2: invalid JSON")

    def test_unknown_type(self):
        with pytest.raises(ReplayError, match="invalid record"):
            parse_records([json.dumps({"t": 0, "type": "hover"})])

    def test_unknown_severity(self):
        with pytest.raises(ReplayError, match="line 1"):
            parse_records([diagnostics(0, {"fatal": 1})])

    def test_negative_time(self):
        with pytest.raises(ReplayError):
            parse_records([progress(-1, "begin")])

    def test_time_going_backwards(self):
        with pytest.raises(ReplayError, match="backwards") as excinfo:
            parse_records([progress(100, "begin"), progress(50, "end")])
        assert excinfo.value.line_number == 2


class TestReplay:
    def test_frames_follow_rate_limit(self):
        result = replay(
            [
                progress(0, "begin", 0),
                progress(100, "report", 50),
                progress(600, "end"),
            ],
            interval_ms=500,
            ascii_icons=True,
        )
        assert [(f.t, f.progress, f.state) for f in result.frames] == [
            (0.0, "0", "*"),
            (500.0, "5", "*"),
            (1000.0, ".", "."),
        ]
        assert result.fires == 3
        assert result.records == 3
        assert result.duration_ms == 1100.0

    def test_default_interval(self):
        result = replay([progress(0, "begin"), progress(10, "end")], ascii_icons=True)
        assert [f.t for f in result.frames] == [0.0, 500.0]

    def test_named(self):
        result = replay(
            [
                progress(0, "begin", 100),
                progress(0, "begin", worker=2, name="lua", token="t"),
            ],
            interval_ms=500,
            named=True,
            ascii_icons=True,
        )
        assert result.frames[0].progress == "9 rust"
        assert result.frames[-1].progress == "* lua 9 rust"

    def test_diagnostics(self):
        result = replay([diagnostics(0, {"error": 2, "hint": 1})], ascii_icons=True)
        (frame,) = result.frames
        assert frame.view == 1
        assert frame.progress == ""
        assert frame.diagnostics == "E 2  H 1"

    def test_detach_clears_worker(self):
        result = replay(
            [progress(0, "begin"), detach(1000)], interval_ms=500, ascii_icons=True
        )
        assert result.frames[0].state == "*"
        assert result.frames[-1].t == 1000.0
        assert result.frames[-1].state == ""

    def test_malformed_percentage_dropped(self):
        result = replay(
            [progress(0, "begin", [50]), progress(0, "begin", worker=2, name="lua")],
            interval_ms=500,
            named=True,
            ascii_icons=True,
        )
        assert result.frames[-1].progress == "* lua . rust"

    def test_view_filter(self):
        result = replay(
            [progress(0, "begin", view=1), progress(0, "begin", view=2, worker=2)],
            interval_ms=500,
            view=2,
            ascii_icons=True,
        )
        assert result.frames
        assert {f.view for f in result.frames} == {2}

    def test_nerd_font_icons_by_default(self):
        result = replay([progress(0, "begin")], interval_ms=500)
        assert result.frames[0].state == "\uf138"

    def test_debug_log(self):
        result = replay([progress(0, "begin")], interval_ms=500, debug_log=True)
        assert "worker=1" in result.event_log
        assert "'view': 1" in result.event_log

    def test_event_log_empty_without_debug_log(self):
        result = replay([progress(0, "begin")], interval_ms=500)
        assert result.event_log == ""
