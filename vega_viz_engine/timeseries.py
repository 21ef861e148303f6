from __future__ import annotations
from typing import Any, Dict, List, Optional
import copy
import logging

from .common import (
    COLOR_SCALE,
    PX_BETWEEN_X_TICKS,
    PX_BETWEEN_Y_TICKS,
    TRANSFORMED_DATA,
    add_labels_to_axes,
    check_source_name,
    datum_field,
    js_string,
)
from .config import EngineConfig
from .display_spec import Mode, Timeseries, TimeseriesDisplay
from .errors import MissingRequiredFieldError, UnsupportedCombinationError
from .signals import (
    HOVER_SIGNAL,
    LEGEND_HOVER_SIGNAL,
    LEGEND_SELECT_SIGNAL,
    ReverseSignals,
    add_hover_select_signals,
    add_timeseries_domain_signals,
    add_width_height_signals,
    extend_reverse_signals_with_hit_box,
)
from .spec_builder import VegaSpecBuilder, VegaSpecWithProps
from .transforms import (
    legend_data_transform,
    stack_by_series_transform,
    time_format_transform,
    trim_first_and_last_timestep_transform,
)

logger = logging.getLogger(__name__)

Mark = Dict[str, Any]

HOVER_PIVOT_TRANSFORM = "hover_pivot_data"
DUP_X_SCALE = "_x_signal"

HOVER_VORONOI = "hover_voronoi_layer"
HOVER_RULE = "hover_rule_layer"
HOVER_BULB = "hover_bulb_layer"
HOVER_LINE_TIME = "hover_time_mark"
HOVER_LINE_TEXT_BOX = "hover_line_text_box_mark"
LINE_HIT_BOX_MARK_NAME = "hover_line_mark_layer"

HOVER_LINE_COLOR = "#4dffd4"
HOVER_TIME_COLOR = "#121212"
HOVER_LINE_OPACITY = 0.75
HOVER_LINE_DASH = [6, 6]
HOVER_LINE_WIDTH = 2
HOVER_BULB_OFFSET = 10
HOVER_LINE_TEXT_OFFSET = 6
HOVER_LINE_TEXT_PADDING = 3
AXIS_HEIGHT = 25

LINE_WIDTH = 1.0
HIGHLIGHTED_LINE_WIDTH = 3.0
SELECTED_LINE_OPACITY = 1.0
UNSELECTED_LINE_OPACITY = 0.2
# Stroke width of the invisible clickable copy of each line.
LINE_HOVER_HIT_BOX_WIDTH = 7.0

X_AXIS_LABEL_SEPARATION = 100  # px
X_AXIS_LABEL_FONT = "Roboto"
X_AXIS_LABEL_FONT_SIZE = 10

# Z ordering
PLOT_GROUP_Z_LAYER = 100
VORONOI_Z_LAYER = 99

_MARK_TYPES = {
    Mode.point: "symbol",
    Mode.area: "area",
}


def get_mark_type(mode: Optional[Mode]) -> str:
    return _MARK_TYPES.get(mode, "line")


def interactivity_selector(ts: Timeseries) -> str:
    """Expression identifying a series to the legend.

    Without a discriminator the value field name is the selector, so two descriptors
    with the same value field are indistinguishable to the legend.
    """
    if ts.series:
        return datum_field(ts.series)
    return js_string(ts.value)


# ---------- Validation ----------

def reserved_data_names(display: TimeseriesDisplay) -> List[str]:
    names = [TRANSFORMED_DATA, HOVER_PIVOT_TRANSFORM]
    names += [f"faceted_data_{i}" for i, ts in enumerate(display.timeseries or []) if ts.series]
    return names


def validate_timeseries_display(display: TimeseriesDisplay, source: str, config: EngineConfig) -> None:
    if not display.timeseries:
        raise MissingRequiredFieldError("timeseries", "TimeseriesChart must have one timeseries entry")
    count = len(display.timeseries)
    if count > config.max_series:
        raise UnsupportedCombinationError(f"timeseries count {count} exceeds limit {config.max_series}")
    for i, ts in enumerate(display.timeseries):
        if not ts.value:
            raise MissingRequiredFieldError(
                "value", f"TimeseriesChart timeseries[{i}] must have an entry for property value")
        if ts.series and count > 1:
            raise UnsupportedCombinationError(
                "Subseries are not supported for multiple timeseries within a TimeseriesChart")
        if ts.stack_by_series and not ts.series:
            raise UnsupportedCombinationError("Stack by series is not supported when series is not specified.")
        if get_mark_type(ts.mode) == "area" and not ts.stack_by_series:
            raise UnsupportedCombinationError("Area charts not supported unless stacked by series.")
    check_source_name(source, reserved_data_names(display))


# ---------- Converter ----------

def convert_to_timeseries_chart(
    display: TimeseriesDisplay, source: str, config: EngineConfig
) -> VegaSpecWithProps:
    validate_timeseries_display(display, source, config)
    time_field = config.time_field

    b = VegaSpecBuilder()
    b.set_autosize()
    b.set_style("cell")

    # Data sources.
    base = b.add_data({"name": source})
    pre_transforms = time_format_transform(time_field)
    if config.trim_time_boundaries:
        pre_transforms += trim_first_and_last_timestep_transform(time_field)
    transformed = b.add_data({"name": TRANSFORMED_DATA, "source": base["name"], "transform": pre_transforms})
    legend_data = b.add_data({
        "name": HOVER_PIVOT_TRANSFORM,
        "source": transformed["name"],
        "transform": legend_data_transform(
            [ts.value for ts in display.timeseries],
            [ts.series for ts in display.timeseries],
            time_field,
        ),
    })
    b.check_references(include_signals=False)

    # Signals.
    add_width_height_signals(b, fallback=config.default_container_size)
    reverse = add_hover_select_signals(b, voronoi_mark=HOVER_VORONOI, time_field=time_field)
    ts_domain = add_timeseries_domain_signals(b, DUP_X_SCALE)

    # Scales and axes.
    x_scale = b.add_scale({
        "name": "x",
        "type": "time",
        "domain": {"data": transformed["name"], "field": time_field},
        "range": [0, {"signal": "width"}],
        "domainRaw": {"signal": ts_domain["name"]},
    })
    # Same domain computed from data; the internal domain signal listens to this copy
    # so that writing ts_domain_value back into "x" cannot loop.
    dup_x_scale = copy.deepcopy(x_scale)
    del dup_x_scale["domainRaw"]
    dup_x_scale["name"] = DUP_X_SCALE
    b.add_scale(dup_x_scale)
    y_scale = b.add_scale({
        "name": "y",
        "type": "linear",
        "domain": {"data": transformed["name"], "fields": _unique([ts.value for ts in display.timeseries])},
        "range": [{"signal": "height"}, 0],
        "zero": False,
        "nice": True,
    })
    # Domain is filled in per series below.
    color_scale = b.add_scale({"name": COLOR_SCALE, "type": "ordinal", "range": "category"})
    _add_timeseries_axes(b, x_scale, y_scale, display, time_field)
    b.check_references(include_signals=False)

    # Marks.
    legend_column_name = ""
    for i, ts in enumerate(display.timeseries):
        series_name = _add_series_marks(b, i, ts, transformed, y_scale, color_scale, reverse, time_field)
        if series_name:
            legend_column_name = series_name

    add_hover_marks(b, legend_data["name"], time_field)

    if display.title:
        b.set_title(display.title)

    logger.debug("timeseries chart over %r: %d series", source, len(display.timeseries))
    # Timeseries always have a legend.
    return VegaSpecWithProps(spec=b.build(), has_legend=True, legend_column_name=legend_column_name)


def _add_series_marks(
    b: VegaSpecBuilder,
    i: int,
    ts: Timeseries,
    transformed: Dict[str, Any],
    y_scale: Dict[str, Any],
    color_scale: Dict[str, Any],
    reverse: ReverseSignals,
    time_field: str,
) -> Optional[str]:
    group: Optional[Mark] = None
    data_name = transformed["name"]
    if ts.series:
        data_name = f"faceted_data_{i}"
        group = b.add_mark({
            "name": f"timeseries_group_{i}",
            "type": "group",
            "from": {"facet": {"name": data_name, "data": transformed["name"], "groupby": [ts.series]}},
            "encode": {
                "update": {
                    "width": {"field": {"group": "width"}},
                    "height": {"field": {"group": "height"}},
                },
            },
            "zindex": PLOT_GROUP_Z_LAYER,
        })
        color_scale["domain"] = {"data": transformed["name"], "field": ts.series, "sort": True}
    else:
        color_scale.setdefault("domain", []).append(ts.value)

    stacked_start = f"{ts.value}_stacked_start"
    stacked_end = f"{ts.value}_stacked_end"
    if ts.stack_by_series:
        VegaSpecBuilder.extend_transforms(
            transformed,
            stack_by_series_transform(time_field, ts.value, ts.series, stacked_start, stacked_end))
        y_scale["domain"]["fields"] = [stacked_start, stacked_end]

    mark_type = get_mark_type(ts.mode)
    y_field = stacked_end if ts.stack_by_series else ts.value
    update: Dict[str, Any] = {
        "x": {"scale": "x", "field": time_field},
        "y": {"scale": y_scale["name"], "field": y_field},
    }
    if mark_type == "area":
        update["y2"] = {"scale": y_scale["name"], "field": stacked_start}
    line_mark = b.add_mark({
        "name": f"timeseries_line_{i}",
        "type": mark_type,
        "style": mark_type,
        "from": {"data": data_name},
        "sort": {"field": datum_field(time_field)},
        "encode": {"update": update},
        "zindex": PLOT_GROUP_Z_LAYER,
    }, parent=group)

    if ts.series:
        color = {"stroke": {"scale": color_scale["name"], "field": ts.series}}
        if mark_type == "area":
            color["fill"] = {"scale": color_scale["name"], "field": ts.series}
    else:
        color = {"stroke": {"scale": color_scale["name"], "value": ts.value}}
    VegaSpecBuilder.extend_encoding(line_mark, "update", color)

    selector = interactivity_selector(ts)
    add_legend_interactivity_encodings(line_mark, selector)
    hit_box = add_interactivity_hit_box(b, line_mark, f"{LINE_HIT_BOX_MARK_NAME}_{i}", parent=group)
    extend_reverse_signals_with_hit_box(reverse, hit_box["name"], selector)
    return ts.series


def add_legend_interactivity_encodings(mark: Mark, selector: str) -> None:
    hovered = f"{LEGEND_HOVER_SIGNAL} && ({selector} === {LEGEND_HOVER_SIGNAL})"
    VegaSpecBuilder.extend_encoding(mark, "update", {
        "opacity": [
            {"value": SELECTED_LINE_OPACITY, "test": hovered},
            {
                "value": UNSELECTED_LINE_OPACITY,
                "test": (f"{LEGEND_SELECT_SIGNAL}.length !== 0"
                         f" && indexof({LEGEND_SELECT_SIGNAL}, {selector}) === -1"),
            },
            {"value": SELECTED_LINE_OPACITY},
        ],
        "strokeWidth": [
            {"value": HIGHLIGHTED_LINE_WIDTH, "test": hovered},
            {"value": LINE_WIDTH},
        ],
    })


def add_interactivity_hit_box(
    b: VegaSpecBuilder, line_mark: Mark, name: str, parent: Optional[Mark] = None
) -> Mark:
    hit_box = copy.deepcopy(line_mark)
    hit_box["name"] = name
    hit_box["encode"]["update"].update({
        "opacity": [{"value": 0}],
        "strokeWidth": [{"value": LINE_HOVER_HIT_BOX_WIDTH}],
    })
    hit_box["zindex"] = line_mark["zindex"] + 1
    return b.add_mark(hit_box, parent=parent)


def _add_timeseries_axes(b, x_scale, y_scale, display, time_field) -> None:
    x_axis = b.add_axis({
        "scale": x_scale["name"],
        "orient": "bottom",
        "grid": False,
        "labelFlush": True,
        "tickCount": {"signal": f"ceil(width/{PX_BETWEEN_X_TICKS})"},
        "labelOverlap": True,
        "encode": {
            "labels": {
                "update": {
                    "text": {
                        "signal": (
                            f"pxTimeFormat(datum, ceil(width), ceil(width/{PX_BETWEEN_X_TICKS}),"
                            f' {X_AXIS_LABEL_SEPARATION}, "{X_AXIS_LABEL_FONT}", {X_AXIS_LABEL_FONT_SIZE})'
                        ),
                    },
                },
            },
        },
        "zindex": 0,
    })
    y_axis = b.add_axis({
        "scale": y_scale["name"],
        "orient": "left",
        "gridScale": x_scale["name"],
        "grid": True,
        "tickCount": {"signal": f"ceil(height/{PX_BETWEEN_Y_TICKS})"},
        "labelOverlap": True,
        "zindex": 0,
    })
    add_labels_to_axes(x_axis, y_axis, display)


# ---------- Hover overlay ----------

def add_hover_marks(b: VegaSpecBuilder, data_name: str, time_field: str) -> None:
    """Vertical hover rule, time label and the voronoi layer that resolves the nearest point."""
    hover_opacity = [
        {
            "test": f"{HOVER_SIGNAL} && datum && ({datum_field(time_field, HOVER_SIGNAL)} === {datum_field(time_field)})",
            "value": HOVER_LINE_OPACITY,
        },
        {"value": 0},
    ]

    b.add_mark({
        "name": HOVER_RULE,
        "type": "rule",
        "style": ["rule"],
        "interactive": True,
        "from": {"data": data_name},
        "encode": {
            "enter": {
                "stroke": {"value": HOVER_LINE_COLOR},
                "strokeDash": {"value": HOVER_LINE_DASH},
                "strokeWidth": {"value": HOVER_LINE_WIDTH},
            },
            "update": {
                "opacity": hover_opacity,
                "x": {"scale": "x", "field": time_field},
                "y": {"value": 0},
                "y2": {"signal": f"height + {HOVER_LINE_TEXT_OFFSET}"},
            },
        },
    })
    b.add_mark({
        "name": HOVER_BULB,
        "type": "symbol",
        "interactive": True,
        "from": {"data": data_name},
        "encode": {
            "enter": {
                "fill": {"value": HOVER_LINE_COLOR},
                "stroke": {"value": HOVER_LINE_COLOR},
                "size": {"value": 45},
                "shape": {"value": "circle"},
                "strokeOpacity": {"value": 0},
                "strokeWidth": {"value": 2},
            },
            "update": {
                "fillOpacity": {"value": 0},
                "x": {"scale": "x", "field": time_field},
                "y": {"signal": f"height + {HOVER_BULB_OFFSET}"},
            },
        },
    })
    hover_time = b.add_mark({
        "name": HOVER_LINE_TIME,
        "type": "text",
        "from": {"data": data_name},
        "encode": {
            "enter": {
                "fill": {"value": HOVER_TIME_COLOR},
                "align": {"value": "center"},
                "baseline": {"value": "top"},
                "font": {"value": "Roboto"},
                "fontSize": {"value": 10},
            },
            "update": {
                "opacity": copy.deepcopy(hover_opacity),
                "text": {"signal": f'datum && timeFormat({datum_field(time_field)}, "%I:%M:%S")'},
                "x": {"scale": "x", "field": time_field},
                "y": {"signal": f"height + {HOVER_LINE_TEXT_OFFSET} + {HOVER_LINE_TEXT_PADDING}"},
            },
        },
    })
    pad = HOVER_LINE_TEXT_PADDING
    text_box = b.add_mark({
        "name": HOVER_LINE_TEXT_BOX,
        "type": "rect",
        "from": {"data": HOVER_LINE_TIME},
        "encode": {
            "update": {
                "x": {"signal": f"datum.x - ((datum.bounds.x2 - datum.bounds.x1) / 2) - {pad}"},
                "y": {"signal": f"datum.y - {pad}"},
                "width": {"signal": f"datum.bounds.x2 - datum.bounds.x1 + 2 * {pad}"},
                "height": {"signal": f"datum.bounds.y2 - datum.bounds.y1 + 2 * {pad}"},
                "fill": {"value": HOVER_LINE_COLOR},
                "opacity": {"signal": "datum.opacity > 0 ? 1.0 : 0.0"},
            },
        },
        "zindex": 0,
    })
    # Time text sits above its box.
    hover_time["zindex"] = text_box["zindex"] + 1

    b.add_mark({
        "name": HOVER_VORONOI,
        "type": "path",
        "interactive": True,
        "from": {"data": HOVER_RULE},
        "encode": {
            "update": {
                "fill": {"value": "transparent"},
                "strokeWidth": {"value": 0.35},
                "stroke": {"value": "transparent"},
                "isVoronoi": {"value": True},
            },
        },
        "transform": [{
            "type": "voronoi",
            "x": {"expr": "datum.datum.x || 0"},
            "y": {"expr": "datum.datum.y || 0"},
            "size": [{"signal": "width"}, {"signal": f"height + {AXIS_HEIGHT}"}],
        }],
        "zindex": VORONOI_Z_LAYER,
    })


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))
