from __future__ import annotations
from typing import Any, Dict, Optional
import json
import logging
import re

import vl_convert as vlc

from .config import EngineConfig
from .display_spec import VegaDisplay
from .errors import LoweringError, SpecParseError
from .spec_builder import VEGA_SCHEMA, VEGA_V5, VegaSpecWithProps

logger = logging.getLogger(__name__)

VEGA_LITE_V4 = "https://vega.github.io/schema/vega-lite/v4.json"

_VEGA_LITE_SCHEMA = re.compile(r"/schema/vega-lite/v(\d+)(?:\.(\d+))?")
# vl-convert version keys for schema majors that pin a specific release.
_VL_VERSIONS = {"4": "v4_17"}


def vega_lite_version(schema: Optional[str]) -> Optional[str]:
    """Return the vl-convert version key for a Vega-Lite schema URL, "" for library default.

    None means the schema is not Vega-Lite.
    """
    m = _VEGA_LITE_SCHEMA.search(schema or "")
    if not m:
        return None
    return _VL_VERSIONS.get(m.group(1), "")


def lower_vega_lite(spec: Dict[str, Any], vl_version: Optional[str] = None) -> Dict[str, Any]:
    """Compile a Vega-Lite spec to Vega via vl-convert."""
    try:
        if vl_version:
            return vlc.vegalite_to_vega(spec, vl_version=vl_version)
        return vlc.vegalite_to_vega(spec)
    except Exception as e:
        raise LoweringError(f"Vega-Lite lowering failed: {e}") from e


def convert_to_vega_chart(display: VegaDisplay, source: str, config: EngineConfig) -> VegaSpecWithProps:
    # source is unused: a pre-authored spec names its own data.
    try:
        spec = json.loads(display.spec)
    except json.JSONDecodeError as e:
        raise SpecParseError(f"VegaChart spec is not valid JSON: {e}") from e
    if not isinstance(spec, dict):
        raise SpecParseError("VegaChart spec must be a JSON object")

    spec.setdefault(VEGA_SCHEMA, VEGA_V5)
    vl_version = vega_lite_version(spec[VEGA_SCHEMA])
    if vl_version is not None:
        logger.debug("lowering Vega-Lite spec (%s)", spec[VEGA_SCHEMA])
        spec = lower_vega_lite(spec, vl_version)
    return VegaSpecWithProps(spec=spec, has_legend=False, legend_column_name="")
