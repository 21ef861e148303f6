from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import logging

from .common import (
    COLOR_SCALE,
    PX_BETWEEN_Y_TICKS,
    TRANSFORMED_DATA,
    add_labels_to_axes,
    check_source_name,
    datum_field,
)
from .config import EngineConfig
from .display_spec import BarDisplay
from .errors import MissingRequiredFieldError
from .signals import add_width_height_signals
from .spec_builder import VegaSpecBuilder, VegaSpecWithProps
from .transforms import bar_stack_transform, distinct_values_transform

logger = logging.getLogger(__name__)

Mark = Dict[str, Any]

COLUMN_DOMAIN_DATA = "column-domain"
FACETED_DATA = "facetedData"
# TODO: derive grid padding from Theme.spacing in hydrate_spec_with_theme.
GRID_PADDING = 20


def reserved_data_names(display: BarDisplay) -> List[str]:
    names = [TRANSFORMED_DATA]
    if display.bar.group_by:
        names += [COLUMN_DOMAIN_DATA, FACETED_DATA]
    return names


def validate_bar_display(display: BarDisplay, source: str) -> None:
    if not display.bar:
        raise MissingRequiredFieldError("bar", "BarChart must have an entry for property bar")
    if not display.bar.value:
        raise MissingRequiredFieldError("value", "BarChart property bar must have an entry for property value")
    if not display.bar.label:
        raise MissingRequiredFieldError("label", "BarChart property bar must have an entry for property label")
    check_source_name(source, reserved_data_names(display))


def convert_to_bar_chart(display: BarDisplay, source: str, config: EngineConfig) -> VegaSpecWithProps:
    validate_bar_display(display, source)
    bar = display.bar
    grouped = bool(bar.group_by)

    b = VegaSpecBuilder()
    if not grouped:
        b.set_autosize()
        b.set_style("cell")

    # Data and transforms.
    base = b.add_data({"name": source})
    transformed = b.add_data({"name": TRANSFORMED_DATA, "source": base["name"], "transform": []})
    value_field = bar.value
    value_start_field = ""
    value_end_field = value_field
    if bar.stack_by:
        value_field = f"sum_{bar.value}"
        value_start_field = f"{value_field}_start"
        value_end_field = f"{value_field}_end"
        VegaSpecBuilder.extend_transforms(transformed, bar_stack_transform(
            bar.value, bar.label, bar.stack_by, bar.group_by, value_field, value_start_field, value_end_field))
    column_domain = None
    if grouped:
        column_domain = b.add_data({
            "name": COLUMN_DOMAIN_DATA,
            "source": transformed["name"],
            "transform": distinct_values_transform(bar.group_by),
        })
    b.check_references(include_signals=False)

    # Signals.
    width_name = "child_width" if grouped else "width"
    height_name = "child_height" if grouped else "height"
    add_width_height_signals(b, width_name, height_name, fallback=config.default_container_size)

    # Scales.
    x_scale = b.add_scale({
        "name": "x",
        "type": "band",
        "domain": {"data": transformed["name"], "field": bar.label, "sort": True},
        "range": [0, {"signal": width_name}],
    })
    y_scale = b.add_scale({
        "name": "y",
        "type": "linear",
        "domain": {
            "data": transformed["name"],
            "fields": [value_start_field, value_end_field] if value_start_field else [value_field],
        },
        "range": [{"signal": height_name}, 0],
        "nice": True,
        "zero": True,
    })
    color_scale = b.add_scale({
        "name": COLOR_SCALE,
        "type": "ordinal",
        "range": "category",
        "domain": (
            {"data": transformed["name"], "field": bar.stack_by, "sort": True}
            if bar.stack_by else [value_field]
        ),
    })
    b.check_references(include_signals=False)

    # Marks.
    group: Optional[Mark] = None
    data_name = transformed["name"]
    group_for_x_axis: Optional[Mark] = None
    group_for_y_axis: Optional[Mark] = None
    if grouped:
        # Vega grid layout: one bar panel per group, shared axes in header/footer cells.
        group_for_x_axis, group_for_y_axis = add_grid_layout_marks_for_grouped_bars(
            b, bar.group_by, bar.label, column_domain["name"], width_name, height_name)
        b.set_layout(grid_layout(column_domain["name"]))
        data_name = FACETED_DATA
        group = b.add_mark({
            "name": "barGroup",
            "type": "group",
            "style": "cell",
            "from": {"facet": {"name": data_name, "data": transformed["name"], "groupby": [bar.group_by]}},
            "sort": {"field": [datum_field(bar.group_by)], "order": ["ascending"]},
            "encode": {
                "update": {
                    "width": {"signal": width_name},
                    "height": {"signal": height_name},
                },
            },
        })

    fill = {"scale": color_scale["name"]}
    fill.update({"field": bar.stack_by} if bar.stack_by else {"value": value_field})
    b.add_mark({
        "name": "barMark",
        "type": "rect",
        "style": "bar",
        "from": {"data": data_name},
        "encode": {
            "update": {
                "fill": fill,
                "x": {"scale": x_scale["name"], "field": bar.label},
                "y": {"scale": y_scale["name"], "field": value_end_field},
                "y2": (
                    {"scale": y_scale["name"], "field": value_start_field}
                    if value_start_field else {"scale": y_scale["name"], "value": 0}
                ),
                "width": {"scale": x_scale["name"], "band": 1},
            },
        },
    }, parent=group)

    x_axis = b.add_axis({
        "scale": x_scale["name"],
        "orient": "bottom",
        "grid": False,
        "labelAlign": "right",
        "labelAngle": 270,
        "labelBaseline": "middle",
        "labelOverlap": True,
    }, parent=group_for_x_axis)
    y_axis = b.add_axis({
        "scale": y_scale["name"],
        "orient": "left",
        "gridScale": x_scale["name"],
        "grid": True,
        "labelOverlap": True,
        "tickCount": {"signal": f"ceil({height_name}/{PX_BETWEEN_Y_TICKS})"},
    }, parent=group_for_y_axis)
    add_labels_to_axes(x_axis, y_axis, display)

    if bar.stack_by:
        b.add_legend({
            "fill": color_scale["name"],
            "symbolType": "square",
            "title": bar.stack_by,
            "encode": {"symbols": {"update": {"stroke": {"value": None}}}},
        })

    if display.title:
        b.set_title(display.title)

    logger.debug("bar chart over %r: stack_by=%r group_by=%r", source, bar.stack_by, bar.group_by)
    return VegaSpecWithProps(spec=b.build(), has_legend=False, legend_column_name="")


def grid_layout(column_domain_name: str) -> Dict[str, Any]:
    return {
        "padding": GRID_PADDING,
        "titleAnchor": {"column": "end"},
        "offset": {"columnTitle": 10},
        "columns": {"signal": f'length(data("{column_domain_name}"))'},
        "bounds": "full",
        "align": "all",
    }


def add_grid_layout_marks_for_grouped_bars(
    b: VegaSpecBuilder,
    group_by: str,
    label_field: str,
    column_domain_name: str,
    width_name: str,
    height_name: str,
) -> Tuple[Mark, Mark]:
    """Add the column-title, row-header and column-footer cells.

    Returns (group for the x axis, group for the y axis).
    """
    b.add_mark({
        "name": "column-title",
        "type": "group",
        "role": "column-title",
        "title": {
            "text": f"{group_by}, {label_field}",
            "orient": "bottom",
            "offset": 10,
            "style": "grouped-bar-x-title",
        },
    })
    group_for_y_axis = b.add_mark({
        "name": "row-header",
        "type": "group",
        "role": "row-header",
        "encode": {"update": {"height": {"signal": height_name}}},
    })
    group_for_x_axis = b.add_mark({
        "name": "column-footer",
        "type": "group",
        "role": "column-footer",
        "from": {"data": column_domain_name},
        "sort": {"field": datum_field(group_by), "order": "ascending"},
        "title": {
            "text": {"signal": datum_field(group_by, "parent")},
            "frame": "group",
            "orient": "bottom",
            "offset": 10,
            "style": "grouped-bar-x-subtitle",
        },
        "encode": {"update": {"width": {"signal": width_name}}},
    })
    return group_for_x_axis, group_for_y_axis
