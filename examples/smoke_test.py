from vega_viz_engine import Compiler, SignalGraph, write_spec
from vega_viz_engine.display_spec import BAR_CHART_TYPE, TIMESERIES_CHART_TYPE

compiler = Compiler()

# Example 1: two plain timeseries sharing one legend
latency = {
    "@type": TIMESERIES_CHART_TYPE,
    "title": "Latency vs Errors",
    "timeseries": [
        {"value": "latency_p50", "mode": "MODE_LINE"},
        {"value": "errors", "mode": "MODE_POINT"},
    ],
    "xAxis": {"label": "time"},
    "yAxis": {"label": "ms"},
}
res = compiler.compile(latency, "output")
write_spec(res.spec, "example_timeseries.vg.json")
print("Wrote example_timeseries.vg.json", "legend:", res.has_legend)

# Example 2: stacked area per pod
stacked = {
    "@type": TIMESERIES_CHART_TYPE,
    "timeseries": [{"value": "bytes", "series": "pod", "stackBySeries": True, "mode": "MODE_AREA"}],
}
res2 = compiler.compile(stacked, "output")
write_spec(res2.spec, "example_stacked_area.vg.json")
print("Wrote example_stacked_area.vg.json", "legend column:", res2.legend_column_name)

# Example 3: grouped, stacked bars
bars = {
    "@type": BAR_CHART_TYPE,
    "bar": {"value": "count", "label": "endpoint", "stackBy": "status", "groupBy": "service"},
}
res3 = compiler.compile(bars, "output")
write_spec(res3.spec, "example_grouped_bars.vg.json")
print("Wrote example_grouped_bars.vg.json")

# Example 4: hover on one chart shows up on a sibling
a, b = SignalGraph(res.spec), SignalGraph(res.spec)
a.on_change("hover_value", lambda name, value: b.set("external_hover_value", value))
a.dispatch("mouseover", markname="hover_voronoi_layer", datum={"datum": {"time_": 1700000000000}})
print("sibling hover_value:", b.get("hover_value"))
