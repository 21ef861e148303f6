from __future__ import annotations
from typing import List, Optional
import argparse
import logging
import sys

from .compiler import convert_widget_display_to_spec_with_errors, convert_widget_display_to_vega_spec
from .errors import VizEngineError
from .io_utils import dumps_spec, load_display_file, write_spec

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Compile a widget display JSON file into a Vega spec")
    ap.add_argument("display", help="path to a display JSON file (must carry an @type)")
    ap.add_argument("--source", default="data", help="name of the raw data source the runtime provides")
    ap.add_argument("--out", default=None, help="write the spec here instead of stdout")
    ap.add_argument("--no-theme", action="store_true", help="skip theme hydration")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        display = load_display_file(args.display)
    except (OSError, ValueError) as e:
        print(f"[ERR] cannot read {args.display}: {e}", file=sys.stderr)
        return 1
    if args.no_theme:
        try:
            result = convert_widget_display_to_spec_with_errors(display, args.source)
        except VizEngineError as e:
            print(f"[ERR] {e}", file=sys.stderr)
            return 1
    else:
        result = convert_widget_display_to_vega_spec(display, args.source)
        if result.error is not None:
            print(f"[ERR] {result.error}", file=sys.stderr)
            return 1

    if args.out:
        write_spec(result.spec, args.out)
        logger.info("wrote %s", args.out)
    else:
        print(dumps_spec(result.spec, pretty=True))
    if result.has_legend:
        print(f"[ok] legend column: {result.legend_column_name or '(series names)'}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
