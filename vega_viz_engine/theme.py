from __future__ import annotations
from typing import Any, Dict, List
import copy
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


_HEX = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def _check_colors(colors: List[str]) -> List[str]:
    for c in colors:
        if not _HEX.match(c):
            raise ValueError(f"Invalid color: {c}")
    return colors


class Theme(BaseModel):
    """The slice of the UI theme the chart specs need."""

    background: str = "#161616"
    foreground: str = "#e2e2e2"
    foreground_grey: str = "#353738"
    mark_color: str = "#39A8F5"
    group_fill: str = "#f0f0f0"
    font_family: str = "Roboto"
    spacing_unit: float = Field(8, gt=0)

    category_colors: List[str] = ["#21a1e7", "#2ca02c", "#98df8a", "#aec7e8", "#ff7f0e", "#ffbb78"]
    diverging_colors: List[str] = ["#cc0020", "#e77866", "#f6e7e1", "#d6e8ed", "#91bfd9", "#1d78b5"]
    heatmap_colors: List[str] = ["#d6e8ed", "#cee0e5", "#91bfd9", "#549cc6", "#1d78b5"]

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("category_colors", "diverging_colors", "heatmap_colors")
    @classmethod
    def _validate_ranges(cls, v):
        if not v:
            raise ValueError("color range cannot be empty")
        return _check_colors(v)

    @field_validator("background", "foreground", "foreground_grey", "mark_color", "group_fill")
    @classmethod
    def _validate_color(cls, v):
        return _check_colors([v])[0]

    def spacing(self, factor: float) -> float:
        return self.spacing_unit * factor


DEFAULT_THEME = Theme()


def hydrate_spec_with_theme(spec: Dict[str, Any], theme: Theme = DEFAULT_THEME) -> Dict[str, Any]:
    """Return a copy of `spec` with theme background, padding and config merged in.

    Keys already present in `spec["config"]` survive unless the theme sets them.
    """
    fg = theme.foreground
    grey = theme.foreground_grey
    font = theme.font_family
    mark = theme.mark_color

    out = copy.deepcopy(spec)
    out["background"] = theme.background
    out["padding"] = theme.spacing(2)
    out["config"] = {
        **out.get("config", {}),
        "legend": {
            "labelColor": fg,
            "labelFont": font,
            "labelFontSize": 10,
            "padding": theme.spacing(1),
            "symbolSize": 100,
            "titleColor": fg,
            "titleFontSize": 12,
        },
        "style": {
            "bar": {"fill": mark, "stroke": None},
            "cell": {"stroke": "transparent"},
            "arc": {"fill": mark},
            "area": {"fill": mark},
            "line": {"stroke": mark, "strokeWidth": 1},
            "symbol": {"shape": "circle"},
            "rect": {"fill": mark},
            "group-title": {"fontSize": 0},
            "grouped-bar-x-title": {"fill": fg, "fontSize": 12},
            "grouped-bar-x-subtitle": {"fill": fg, "fontSize": 10},
        },
        "axis": {
            "labelColor": fg,
            "labelFont": font,
            "labelFontSize": 10,
            "labelPadding": theme.spacing(0.5),
            "tickColor": grey,
            "tickSize": 10,
            "tickWidth": 1,
            "titleColor": fg,
            "titleFont": font,
            "titleFontSize": 12,
            "titlePadding": theme.spacing(3),
        },
        "axisY": {"grid": True, "domain": False, "gridColor": grey, "gridWidth": 0.5},
        "axisX": {
            "grid": False,
            "domain": True,
            "domainColor": grey,
            "tickOpacity": 0,
            "tickSize": theme.spacing(0.5),
        },
        "axisBand": {"grid": False},
        "group": {"fill": theme.group_fill},
        "path": {"stroke": mark, "strokeWidth": 0.5},
        "range": {
            "category": list(theme.category_colors),
            "diverging": list(theme.diverging_colors),
            "heatmap": list(theme.heatmap_colors),
        },
        "shape": {"stroke": mark},
    }
    return out
