from .compiler import (
    Compiler,
    compile_payload,
    convert_widget_display_to_spec_with_errors,
    convert_widget_display_to_vega_spec,
    register_chart,
)
from .config import EngineConfig
from .display_spec import (
    Bar, BarDisplay, Mode, Timeseries, TimeseriesDisplay, VegaDisplay, parse_chart_display,
)
from .errors import (
    CompileError, LoweringError, MissingRequiredFieldError, ReservedNameError, SpecIntegrityError, SpecParseError,
    SpecValidationError, UnsupportedCombinationError, UnsupportedKindError, VizEngineError,
)
from .signal_graph import SignalGraph, SignalGraphError
from .spec_builder import VegaSpecBuilder, VegaSpecWithProps
from .theme import Theme, hydrate_spec_with_theme
from .io_utils import dumps_spec, spec_to_json_dict, write_spec
