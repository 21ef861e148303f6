import json

import pytest

from vega_viz_engine import (
    Compiler, EngineConfig, SpecParseError, SpecValidationError, Theme, TimeseriesDisplay,
    UnsupportedKindError, compile_payload, convert_widget_display_to_spec_with_errors,
    convert_widget_display_to_vega_spec,
)
from vega_viz_engine.display_spec import BAR_CHART_TYPE, TIMESERIES_CHART_TYPE


def test_timeseries_multi():
    display = {"@type": TIMESERIES_CHART_TYPE, "timeseries": [{"value": "latency"}, {"value": "errors"}]}
    res = Compiler().compile(display, "raw")
    assert res.error is None
    assert len([m for m in res.spec["marks"] if m["name"].startswith("timeseries_line_")]) == 2


def test_bar_stacked():
    display = {"@type": BAR_CHART_TYPE, "bar": {"value": "count", "label": "service", "stackBy": "region"}}
    res = Compiler().compile(display, "raw")
    assert res.error is None
    assert len(res.spec["legends"]) == 1


def test_compile_is_deterministic():
    display = {
        "@type": TIMESERIES_CHART_TYPE,
        "title": "bytes",
        "timeseries": [{"value": "bytes", "series": "pod", "stackBySeries": True, "mode": "MODE_AREA"}],
    }
    first = convert_widget_display_to_vega_spec(display, "raw")
    second = convert_widget_display_to_vega_spec(display, "raw")
    assert first.spec == second.spec
    assert json.dumps(first.spec, sort_keys=True) == json.dumps(second.spec, sort_keys=True)


def test_display_inputs_are_equivalent():
    d = {"@type": TIMESERIES_CHART_TYPE, "timeseries": [{"value": "v"}]}
    from_dict = convert_widget_display_to_spec_with_errors(d, "raw").spec
    from_text = convert_widget_display_to_spec_with_errors(json.dumps(d), "raw").spec
    from_model = convert_widget_display_to_spec_with_errors(TimeseriesDisplay.model_validate(d), "raw").spec
    assert from_dict == from_text == from_model


def test_unknown_kind_names_the_kind():
    res = convert_widget_display_to_vega_spec({"@type": "pixielabs.ai/pl.vispb.HistogramChart"}, "raw")
    assert isinstance(res.error, UnsupportedKindError)
    assert res.error.kind == "pixielabs.ai/pl.vispb.HistogramChart"
    assert "HistogramChart" in str(res.error)
    assert res.spec == {}
    assert res.has_legend is False
    assert res.legend_column_name == ""


def test_bad_input_errors():
    with pytest.raises(SpecParseError):
        convert_widget_display_to_spec_with_errors("{not json", "raw")
    with pytest.raises(SpecParseError):
        convert_widget_display_to_spec_with_errors("[1, 2]", "raw")
    with pytest.raises(UnsupportedKindError):
        convert_widget_display_to_spec_with_errors({"timeseries": []}, "raw")
    with pytest.raises(SpecValidationError):
        convert_widget_display_to_spec_with_errors({"@type": TIMESERIES_CHART_TYPE, "timeseries": "nope"}, "raw")


def test_themed_output():
    theme = Theme(background="#000000", category_colors=["#111111", "#222222"])
    display = {"@type": BAR_CHART_TYPE, "bar": {"value": "count", "label": "service"}}
    spec = convert_widget_display_to_vega_spec(display, "raw", theme=theme).spec
    assert spec["background"] == "#000000"
    assert spec["padding"] == 16
    assert spec["config"]["range"]["category"] == ["#111111", "#222222"]

    bare = convert_widget_display_to_spec_with_errors(display, "raw").spec
    assert "config" not in bare and "background" not in bare


def test_compile_payload():
    display = {"@type": TIMESERIES_CHART_TYPE, "timeseries": [{"value": "v", "series": "s"}]}
    payload = compile_payload(display, "raw", config=EngineConfig(time_field="ts"))
    assert set(payload) == {"spec", "hasLegend", "legendColumnName"}
    assert payload["hasLegend"] is True
    assert payload["legendColumnName"] == "s"
    assert payload["spec"]["scales"][0]["domain"] == {"data": "transformedData", "field": "ts"}
    json.dumps(payload)

    with pytest.raises(UnsupportedKindError):
        compile_payload({"@type": "nope"}, "raw")
