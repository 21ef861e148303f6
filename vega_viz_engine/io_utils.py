from __future__ import annotations
from typing import Any, Dict
import json


def spec_to_json_dict(spec: Dict[str, Any]) -> Dict[str, Any]:
    # ensure a clean JSON-serializable dict (tuples become lists, keys become strings)
    return json.loads(json.dumps(spec, allow_nan=False))


def dumps_spec(spec: Dict[str, Any], *, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(spec, indent=2, ensure_ascii=False)
    return json.dumps(spec, ensure_ascii=False, separators=(",", ":"))


def write_spec(spec: Dict[str, Any], path: str, *, pretty: bool = True) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps_spec(spec, pretty=pretty))
        f.write("\n")


def load_display_file(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
