import pytest

from vega_viz_engine import SignalGraph, SignalGraphError, convert_widget_display_to_spec_with_errors
from vega_viz_engine.display_spec import TIMESERIES_CHART_TYPE
from vega_viz_engine.signal_graph import combine_internal_external


def _spec(*timeseries):
    display = {"@type": TIMESERIES_CHART_TYPE, "timeseries": list(timeseries)}
    return convert_widget_display_to_spec_with_errors(display, "raw").spec


def _mark(spec, name):
    for m in spec.get("marks", []):
        if m.get("name") == name:
            return m
        found = _mark(m, name)
        if found:
            return found
    return None


@pytest.fixture
def two_series():
    return _spec({"value": "latency"}, {"value": "errors"})


def test_combine_prefers_internal():
    assert combine_internal_external([1, 2], [3, 4]) == [1, 2]
    assert combine_internal_external(None, [3, 4]) == [3, 4]
    assert combine_internal_external(None, None) is None


def test_initial_values(two_series):
    g = SignalGraph(two_series, container_size=(640, 480))
    assert g.get("width") == 640
    assert g.get("height") == 480
    assert g.get("selected_series") == []
    assert g.get("legend_hovered_series") is None
    assert g.get("hover_value") is None
    assert g.order.index("internal_ts_domain_value") < g.order.index("ts_domain_value")
    assert g.order.index("internal_hover_value") < g.order.index("hover_value")


def test_width_falls_back_when_container_unsized(two_series):
    g = SignalGraph(two_series, container_size=(float("inf"), None))
    assert g.get("width") == 200
    assert g.get("height") == 200
    g.resize(300, 150)
    assert (g.get("width"), g.get("height")) == (300, 150)


def test_internal_hover_drives_hover_value(two_series):
    g = SignalGraph(two_series)
    fired = g.dispatch("mouseover", markname="hover_voronoi_layer", datum={"datum": {"time_": 5, "latency": 1}})
    assert fired == ["internal_hover_value", "hover_value"]
    assert g.get("hover_value") == {"time_": 5}

    g.dispatch("mouseout")
    assert g.get("internal_hover_value") is None
    assert g.get("hover_value") is None


def test_hover_is_shared_between_charts(two_series):
    a = SignalGraph(two_series)
    b = SignalGraph(two_series)
    a.on_change("hover_value", lambda name, value: b.set("external_hover_value", value))

    a.dispatch("mouseover", markname="hover_voronoi_layer", datum={"datum": {"time_": 5}})
    assert b.get("hover_value") == {"time_": 5}

    # b's own pointer wins over the external value.
    b.dispatch("mouseover", markname="hover_voronoi_layer", datum={"datum": {"time_": 9}})
    assert b.get("hover_value") == {"time_": 9}
    b.dispatch("mouseout")
    assert b.get("hover_value") == {"time_": 5}


def test_internal_signals_cannot_be_written(two_series):
    g = SignalGraph(two_series)
    with pytest.raises(SignalGraphError):
        g.set("internal_hover_value", {"time_": 1})
    with pytest.raises(SignalGraphError):
        g.set("no_such_signal", 1)


def test_time_domain_sync(two_series):
    a = SignalGraph(two_series)
    b = SignalGraph(two_series)
    a.on_change("ts_domain_value", lambda name, value: b.set("external_ts_domain_value", value))

    a.update_scale_domain("_x_signal", [0, 100])
    assert a.get("ts_domain_value") == [0, 100]
    assert b.get("ts_domain_value") == [0, 100]

    b.update_scale_domain("_x_signal", [5, 10])
    assert b.get("ts_domain_value") == [5, 10]
    assert a.get("ts_domain_value") == [0, 100]

    # Domain changes on the displayed scale do not feed back.
    assert a.update_scale_domain("x", [1, 2]) == []


def test_reverse_hover_reports_series(two_series):
    g = SignalGraph(two_series)
    g.dispatch("mouseover", markname="hover_line_mark_layer_1", datum={"errors": 3, "time_": 1})
    assert g.get("reverse_hovered_series") == "errors"
    g.dispatch("mouseout", markname="hover_line_mark_layer_1")
    assert g.get("reverse_hovered_series") is None


def test_reverse_hover_with_subseries():
    g = SignalGraph(_spec({"value": "latency", "series": "service"}))
    g.dispatch("mouseover", markname="hover_line_mark_layer_0", datum={"service": "api", "latency": 2})
    assert g.get("reverse_hovered_series") == "api"


def test_reverse_select_notifies_on_every_click(two_series):
    g = SignalGraph(two_series)
    seen = []
    g.on_change("reverse_selected_series", lambda name, value: seen.append(value))
    for _ in range(2):
        g.dispatch("click", markname="hover_line_mark_layer_0", datum={"latency": 1})
    assert seen == ["latency", "latency"]
    assert [c for c in g.changes if c[0] == "reverse_selected_series"] == [("reverse_selected_series", "latency")] * 2


def test_reverse_unselect_only_on_right_button(two_series):
    g = SignalGraph(two_series)
    g.dispatch("mousedown", markname="hover_line_mark_layer_0", datum={"latency": 1}, which=1)
    assert g.get("reverse_unselect_signal") is None
    g.dispatch("mousedown", markname="hover_line_mark_layer_0", datum={"latency": 1}, which=3)
    assert g.get("reverse_unselect_signal") is True
    fired = g.dispatch("mousedown", markname="hover_line_mark_layer_0", datum={"latency": 1}, which=3)
    assert fired == ["reverse_unselect_signal"]


def test_legend_emphasis(two_series):
    g = SignalGraph(two_series)
    latency = _mark(two_series, "timeseries_line_0")["encode"]["update"]
    errors = _mark(two_series, "timeseries_line_1")["encode"]["update"]

    assert g.resolve_encoding(errors["opacity"]) == 1.0
    assert g.resolve_encoding(errors["strokeWidth"]) == 1.0

    g.set("selected_series", ["latency"])
    assert g.resolve_encoding(latency["opacity"]) == 1.0
    assert g.resolve_encoding(errors["opacity"]) == 0.2

    g.set("legend_hovered_series", "errors")
    assert g.resolve_encoding(errors["opacity"]) == 1.0
    assert g.resolve_encoding(errors["strokeWidth"]) == 3.0
    assert g.resolve_encoding(latency["strokeWidth"]) == 1.0


def test_legend_emphasis_with_subseries():
    spec = _spec({"value": "latency", "series": "service"})
    g = SignalGraph(spec)
    opacity = _mark(spec, "timeseries_line_0")["encode"]["update"]["opacity"]
    g.set("selected_series", ["api"])
    assert g.resolve_encoding(opacity, {"service": "api"}) == 1.0
    assert g.resolve_encoding(opacity, {"service": "db"}) == 0.2


def test_hover_rule_opacity(two_series):
    g = SignalGraph(two_series)
    opacity = _mark(two_series, "hover_rule_layer")["encode"]["update"]["opacity"]
    g.dispatch("mouseover", markname="hover_voronoi_layer", datum={"datum": {"time_": 5}})
    assert g.resolve_encoding(opacity, {"time_": 5}) == 0.75
    assert g.resolve_encoding(opacity, {"time_": 6}) == 0


def test_cycles_are_rejected():
    spec = {"signals": [
        {"name": "a", "on": [{"events": {"signal": "b"}, "update": "b"}]},
        {"name": "b", "on": [{"events": {"signal": "a"}, "update": "a"}]},
    ]}
    with pytest.raises(SignalGraphError):
        SignalGraph(spec)


def test_unknown_dependency_is_rejected():
    spec = {"signals": [{"name": "a", "on": [{"events": {"signal": "ghost"}, "update": "ghost"}]}]}
    with pytest.raises(SignalGraphError):
        SignalGraph(spec)
