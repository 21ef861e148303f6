from __future__ import annotations
from typing import Any, Callable, Dict, Optional, Union
import logging

from .bar import convert_to_bar_chart
from .config import DEFAULT_CONFIG, EngineConfig
from .display_spec import (
    BAR_CHART_TYPE,
    TIMESERIES_CHART_TYPE,
    VEGA_CHART_TYPE,
    ChartDisplay,
    parse_chart_display,
)
from .errors import UnsupportedKindError, VizEngineError
from .io_utils import spec_to_json_dict
from .spec_builder import VegaSpecWithProps
from .theme import DEFAULT_THEME, Theme, hydrate_spec_with_theme
from .timeseries import convert_to_timeseries_chart
from .vega_chart import convert_to_vega_chart

logger = logging.getLogger(__name__)

Converter = Callable[[Any, str, EngineConfig], VegaSpecWithProps]
DisplayInput = Union[str, Dict[str, Any], ChartDisplay]


# ---------- Registry & dispatch ----------

_CHART_REGISTRY: Dict[str, Converter] = {}

def register_chart(kind: str):
    def deco(fn: Converter):
        _CHART_REGISTRY[kind] = fn
        return fn
    return deco

register_chart(TIMESERIES_CHART_TYPE)(convert_to_timeseries_chart)
register_chart(BAR_CHART_TYPE)(convert_to_bar_chart)
register_chart(VEGA_CHART_TYPE)(convert_to_vega_chart)


def convert_widget_display_to_spec_with_errors(
    display: DisplayInput, source: str, config: Optional[EngineConfig] = None
) -> VegaSpecWithProps:
    """Compile without theme hydration. Raises VizEngineError subclasses on bad input."""
    model = parse_chart_display(display)
    converter = _CHART_REGISTRY.get(model.type)
    if converter is None:
        raise UnsupportedKindError(model.type)
    logger.debug("compiling %s over source %r", model.type, source)
    return converter(model, source, config or DEFAULT_CONFIG)


def convert_widget_display_to_vega_spec(
    display: DisplayInput,
    source: str,
    theme: Optional[Theme] = None,
    config: Optional[EngineConfig] = None,
) -> VegaSpecWithProps:
    """
    Compile a widget display into a themed Vega spec.

    Never raises for bad input: the failure is returned in `error` next to an empty spec.
    """
    try:
        result = convert_widget_display_to_spec_with_errors(display, source, config)
        result.spec = hydrate_spec_with_theme(result.spec, theme or DEFAULT_THEME)
        return result
    except VizEngineError as e:
        logger.warning("chart compilation failed (%s): %s", type(e).__name__, e)
        return VegaSpecWithProps(spec={}, has_legend=False, legend_column_name="", error=e)


class Compiler:
    """Director holding the theme and config for repeated compilations. Keeps no per-call state."""
    def __init__(self, theme: Optional[Theme] = None, config: Optional[EngineConfig] = None):
        self.theme = theme or DEFAULT_THEME
        self.config = config or DEFAULT_CONFIG

    def compile(self, display: DisplayInput, source: str) -> VegaSpecWithProps:
        return convert_widget_display_to_vega_spec(display, source, self.theme, self.config)


def compile_payload(
    display: DisplayInput,
    source: str,
    theme: Optional[Theme] = None,
    config: Optional[EngineConfig] = None,
) -> Dict[str, Any]:
    """Return a JSON-safe payload {spec, hasLegend, legendColumnName}; raise on failure."""
    result = convert_widget_display_to_vega_spec(display, source, theme, config)
    if result.error is not None:
        raise result.error
    payload = {
        "spec": spec_to_json_dict(result.spec),
        "hasLegend": result.has_legend,
        "legendColumnName": result.legend_column_name,
    }
    return payload


__all__ = [
    "Compiler",
    "compile_payload",
    "convert_widget_display_to_spec_with_errors",
    "convert_widget_display_to_vega_spec",
    "register_chart",
]
