from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union
import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import SpecParseError, SpecValidationError, UnsupportedKindError


DISPLAY_TYPE_KEY = "@type"

TIMESERIES_CHART_TYPE = "pixielabs.ai/pl.vispb.TimeseriesChart"
BAR_CHART_TYPE = "pixielabs.ai/pl.vispb.BarChart"
VEGA_CHART_TYPE = "pixielabs.ai/pl.vispb.VegaChart"


# ---------- Enums ----------

class Mode(str, Enum):
    unknown = "MODE_UNKNOWN"
    line = "MODE_LINE"
    point = "MODE_POINT"
    area = "MODE_AREA"


_MODE_ALIASES = {
    "line": Mode.line,
    "point": Mode.point,
    "area": Mode.area,
}


# ---------- Nested leaf models ----------

class AxisLabel(BaseModel):
    label: Optional[str] = None


class _Display(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field(alias=DISPLAY_TYPE_KEY)


class LabeledDisplay(_Display):
    title: Optional[str] = None
    x_axis: Optional[AxisLabel] = Field(None, alias="xAxis")
    y_axis: Optional[AxisLabel] = Field(None, alias="yAxis")


# ---------- Timeseries ----------

class Timeseries(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    value: Optional[str] = None
    mode: Mode = Mode.unknown
    series: Optional[str] = None
    stack_by_series: bool = Field(False, alias="stackBySeries")

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v):
        if v is None:
            return Mode.unknown
        if isinstance(v, Mode):
            return v
        s = str(v)
        if s in _MODE_ALIASES:
            return _MODE_ALIASES[s]
        try:
            return Mode(s)
        except ValueError:
            # Anything unrecognised is drawn as a line.
            return Mode.unknown

    @field_validator("series")
    @classmethod
    def _empty_series_is_none(cls, v):
        return v or None


class TimeseriesDisplay(LabeledDisplay):
    type: str = Field(TIMESERIES_CHART_TYPE, alias=DISPLAY_TYPE_KEY)
    timeseries: Optional[List[Timeseries]] = None


# ---------- Bar ----------

class Bar(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    value: Optional[str] = None
    label: Optional[str] = None
    stack_by: Optional[str] = Field(None, alias="stackBy")
    group_by: Optional[str] = Field(None, alias="groupBy")


class BarDisplay(LabeledDisplay):
    type: str = Field(BAR_CHART_TYPE, alias=DISPLAY_TYPE_KEY)
    bar: Optional[Bar] = None


# ---------- Raw Vega ----------

class VegaDisplay(_Display):
    type: str = Field(VEGA_CHART_TYPE, alias=DISPLAY_TYPE_KEY)
    spec: str


ChartDisplay = Union[TimeseriesDisplay, BarDisplay, VegaDisplay]

DISPLAY_MODELS: Dict[str, Type[_Display]] = {
    TIMESERIES_CHART_TYPE: TimeseriesDisplay,
    BAR_CHART_TYPE: BarDisplay,
    VEGA_CHART_TYPE: VegaDisplay,
}


def parse_chart_display(display: Union[str, Dict[str, Any], ChartDisplay]) -> ChartDisplay:
    """
    Parse a widget display (JSON text, dict, or model) into the model for its `@type`.
    """
    if isinstance(display, _Display):
        return display
    if isinstance(display, str):
        try:
            display = json.loads(display)
        except json.JSONDecodeError as e:
            raise SpecParseError(f"display is not valid JSON: {e}") from e
    if not isinstance(display, dict):
        raise SpecParseError(f"display must be a JSON object, got {type(display).__name__}")

    kind = display.get(DISPLAY_TYPE_KEY)
    model = DISPLAY_MODELS.get(kind)
    if model is None:
        raise UnsupportedKindError(kind)
    try:
        return model.model_validate(display)
    except ValidationError as ve:
        raise SpecValidationError(ve.json()) from ve
