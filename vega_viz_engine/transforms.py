"""Vega data transforms used by the chart converters."""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence

from .common import datum_field
from .errors import UnsupportedCombinationError

Transform = Dict[str, Any]

MIN_TIME_FIELD = "min_time"
MAX_TIME_FIELD = "max_time"
MEAN_VALUE_FIELD = "meanOfValueField"


def time_format_transform(time_field: str) -> List[Transform]:
    return [{
        "type": "formula",
        "expr": f"toDate({datum_field(time_field)})",
        "as": time_field,
    }]


def trim_first_and_last_timestep_transform(time_field: str) -> List[Transform]:
    """Drop rows sitting exactly on the min or max timestamp.

    Windowed aggregation upstream leaves partial windows at both edges of a time range.
    This is applied to every timeseries, including ones that were never windowed; those
    lose one sample at each edge.
    """
    time = datum_field(time_field)
    return [
        {
            "type": "joinaggregate",
            "as": [MIN_TIME_FIELD, MAX_TIME_FIELD],
            "ops": ["min", "max"],
            "fields": [time_field, time_field],
        },
        {
            "type": "filter",
            "expr": (
                f"{time} > datum.{MIN_TIME_FIELD}"
                f" && {time} < datum.{MAX_TIME_FIELD}"
            ),
        },
    ]


def legend_data_transform(
    value_fields: Sequence[str],
    series_fields: Sequence[Optional[str]],
    time_field: str,
) -> List[Transform]:
    """Shape the legend/hover data: one row per timestamp, one column per drawn series."""
    subdivided = [s for s in series_fields if s]
    if not subdivided:
        return [{
            "type": "project",
            "fields": [*value_fields, time_field],
        }]
    if len(series_fields) == 1:
        return [{
            "type": "pivot",
            "field": subdivided[0],
            "value": value_fields[0],
            "groupby": [time_field],
        }]
    raise UnsupportedCombinationError("Multiple timeseries with subseries are not supported.")


def stack_by_series_transform(
    time_field: str,
    value_field: str,
    series_field: str,
    stacked_start_field: str,
    stacked_end_field: str,
) -> List[Transform]:
    # Stack order follows each series' mean value so the heavier series sit on top.
    return [
        {
            "type": "joinaggregate",
            "groupby": [series_field],
            "ops": ["mean"],
            "fields": [value_field],
            "as": [MEAN_VALUE_FIELD],
        },
        {
            "type": "stack",
            "groupby": [time_field],
            "sort": {"field": MEAN_VALUE_FIELD, "order": "ascending"},
            "field": value_field,
            "as": [stacked_start_field, stacked_end_field],
        },
    ]


def bar_stack_transform(
    value_field: str,
    label_field: str,
    stack_field: str,
    group_field: Optional[str],
    summed_field: str,
    start_field: str,
    end_field: str,
) -> List[Transform]:
    # Bar stacks are ordered by the stack field's own value, not by a statistic.
    extra_groupby = [group_field] if group_field else []
    return [
        {
            "type": "aggregate",
            "groupby": [label_field, stack_field, *extra_groupby],
            "ops": ["sum"],
            "fields": [value_field],
            "as": [summed_field],
        },
        {
            "type": "stack",
            "groupby": [label_field, *extra_groupby],
            "field": summed_field,
            "sort": {"field": [stack_field], "order": ["descending"]},
            "as": [start_field, end_field],
            "offset": "zero",
        },
    ]


def distinct_values_transform(field: str) -> List[Transform]:
    return [{"type": "aggregate", "groupby": [field]}]
