"""Names and helpers shared by the chart converters."""

from __future__ import annotations
from typing import Any, Dict, Iterable
import json

from .display_spec import LabeledDisplay
from .errors import ReservedNameError

COLOR_SCALE = "color"
TRANSFORMED_DATA = "transformedData"

PX_BETWEEN_X_TICKS = 20
PX_BETWEEN_Y_TICKS = 40


def js_string(value: str) -> str:
    """Quote a string as an expression literal."""
    return json.dumps(value, ensure_ascii=False)


def datum_field(name: str, obj: str = "datum") -> str:
    # Bracket access works for any column name; dot access only for identifiers.
    return f"{obj}[{js_string(name)}]"


def check_source_name(source: str, reserved: Iterable[str]) -> None:
    if source in set(reserved):
        raise ReservedNameError(source)


def add_labels_to_axes(x_axis: Dict[str, Any], y_axis: Dict[str, Any], display: LabeledDisplay) -> None:
    if display.x_axis and display.x_axis.label:
        x_axis["title"] = display.x_axis.label
    if display.y_axis and display.y_axis.label:
        y_axis["title"] = display.y_axis.label
