"""Tests for service telemetry spans."""

from __future__ import annotations

from cartcalc.services.result import ServiceResult
from cartcalc.services.telemetry import Span, enable_telemetry, trace_span, traced


@traced
def _operation() -> ServiceResult:
    with trace_span("inner") as span:
        if span is not None:
            span.annotate("lines", 3)
    return ServiceResult(ok=True, op="totals")


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="s").duration_ms == 0.0

    def test_to_dict_nests_children(self) -> None:
        parent = Span(name="parent")
        parent.children.append(Span(name="child"))
        assert parent.to_dict()["children"][0]["name"] == "child"


class TestTraced:
    def test_disabled_leaves_meta_empty(self) -> None:
        assert _operation().meta is None

    def test_trace_span_outside_traced_yields_none(self) -> None:
        enable_telemetry()
        with trace_span("orphan") as span:
            assert span is None

    def test_enabled_injects_span_tree(self) -> None:
        enable_telemetry()
        result = _operation()
        assert result.meta is not None
        telemetry = result.meta["telemetry"]
        assert telemetry["name"].endswith("_operation")
        assert telemetry["children"][0]["name"] == "inner"
        assert telemetry["children"][0]["annotations"] == {"lines": 3}
