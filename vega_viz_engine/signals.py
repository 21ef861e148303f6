"""Reactive signal wiring shared by chart instances.

Peers never hold references to each other. Each instance exposes:
  * internal_* signals, driven by its own pointer events (write-only from outside),
  * external_* signals, plain cells an orchestrator writes from a sibling chart,
  * combined signals that prefer the internal value and fall back to the external one,
  * reverse_* signals, which report legend hover/select/unselect from the plot itself.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .common import datum_field, js_string
from .spec_builder import VegaSpecBuilder

Signal = Dict[str, Any]

HOVER_SIGNAL = "hover_value"
EXTERNAL_HOVER_SIGNAL = "external_hover_value"
INTERNAL_HOVER_SIGNAL = "internal_hover_value"
LEGEND_SELECT_SIGNAL = "selected_series"
LEGEND_HOVER_SIGNAL = "legend_hovered_series"
REVERSE_HOVER_SIGNAL = "reverse_hovered_series"
REVERSE_SELECT_SIGNAL = "reverse_selected_series"
REVERSE_UNSELECT_SIGNAL = "reverse_unselect_signal"
TS_DOMAIN_SIGNAL = "ts_domain_value"
EXTERNAL_TS_DOMAIN_SIGNAL = "external_ts_domain_value"
INTERNAL_TS_DOMAIN_SIGNAL = "internal_ts_domain_value"

RIGHT_MOUSE_DOWN_CODE = 3


@dataclass
class ReverseSignals:
    hover: Signal
    select: Signal
    unselect: Signal


def add_width_height_signals(
    builder: VegaSpecBuilder,
    width_name: str = "width",
    height_name: str = "height",
    *,
    fallback: int = 200,
) -> Tuple[Signal, Signal]:
    signals = []
    for name, axis in ((width_name, 0), (height_name, 1)):
        update = f"isFinite(containerSize()[{axis}]) ? containerSize()[{axis}] : {fallback}"
        signals.append(builder.add_signal({
            "name": name,
            "init": update,
            "on": [{"events": "window:resize", "update": update}],
        }))
    return signals[0], signals[1]


def add_hover_select_signals(builder: VegaSpecBuilder, *, voronoi_mark: str, time_field: str) -> ReverseSignals:
    builder.add_signal({
        "name": INTERNAL_HOVER_SIGNAL,
        "on": [
            {
                "events": [{"source": "scope", "type": "mouseover", "markname": voronoi_mark}],
                "update": (
                    "datum && datum.datum"
                    f" && {{{js_string(time_field)}: {datum_field(time_field, 'datum.datum')}}}"
                ),
            },
            {
                "events": [{"source": "view", "type": "mouseout", "filter": 'event.type === "mouseout"'}],
                "update": "null",
            },
        ],
    })
    builder.add_signal({"name": EXTERNAL_HOVER_SIGNAL, "value": None})
    builder.add_signal({
        "name": HOVER_SIGNAL,
        "on": [{
            "events": [{"signal": INTERNAL_HOVER_SIGNAL}, {"signal": EXTERNAL_HOVER_SIGNAL}],
            "update": f"{INTERNAL_HOVER_SIGNAL} || {EXTERNAL_HOVER_SIGNAL}",
        }],
    })

    builder.add_signal({"name": LEGEND_SELECT_SIGNAL, "value": []})
    builder.add_signal({"name": LEGEND_HOVER_SIGNAL, "value": None})
    # Populated per series once the hit-box marks exist.
    return ReverseSignals(
        hover=builder.add_signal({"name": REVERSE_HOVER_SIGNAL}),
        select=builder.add_signal({"name": REVERSE_SELECT_SIGNAL}),
        unselect=builder.add_signal({"name": REVERSE_UNSELECT_SIGNAL}),
    )


def add_timeseries_domain_signals(builder: VegaSpecBuilder, scale_name: str) -> Signal:
    builder.add_signal({
        "name": INTERNAL_TS_DOMAIN_SIGNAL,
        "on": [{"events": {"scale": scale_name}, "update": f"domain('{scale_name}')"}],
    })
    builder.add_signal({"name": EXTERNAL_TS_DOMAIN_SIGNAL, "value": None})
    return builder.add_signal({
        "name": TS_DOMAIN_SIGNAL,
        "on": [{
            "events": [{"signal": INTERNAL_TS_DOMAIN_SIGNAL}, {"signal": EXTERNAL_TS_DOMAIN_SIGNAL}],
            "update": f"combineInternalExternal({INTERNAL_TS_DOMAIN_SIGNAL}, {EXTERNAL_TS_DOMAIN_SIGNAL})",
        }],
    })


def extend_reverse_signals_with_hit_box(
    reverse: ReverseSignals,
    hit_box_mark_name: str,
    interactivity_selector: str,
) -> None:
    VegaSpecBuilder.extend_signal_handlers(reverse.hover, [
        {
            "events": {"source": "view", "type": "mouseover", "markname": hit_box_mark_name},
            "update": f"datum && {interactivity_selector}",
        },
        {
            "events": {"source": "view", "type": "mouseout", "markname": hit_box_mark_name},
            "update": "null",
        },
    ])
    # force: repeated clicks on the same series must still notify listeners.
    VegaSpecBuilder.extend_signal_handlers(reverse.select, [{
        "events": {"source": "view", "type": "click", "markname": hit_box_mark_name},
        "update": f"datum && {interactivity_selector}",
        "force": True,
    }])
    VegaSpecBuilder.extend_signal_handlers(reverse.unselect, [{
        "events": {
            "source": "view",
            "type": "mousedown",
            "markname": hit_box_mark_name,
            "consume": True,
            "filter": f"event.which === {RIGHT_MOUSE_DOWN_CODE}",
        },
        "update": "true",
        "force": True,
    }])
