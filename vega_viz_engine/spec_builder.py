from __future__ import annotations
from typing import Any, Dict, Iterable, Optional, Set
from dataclasses import dataclass
import copy
import re

from .errors import SpecIntegrityError


VEGA_V5 = "https://vega.github.io/schema/vega/v5.json"
VEGA_SCHEMA = "$schema"

# Signals the Vega runtime defines on every view.
_BUILTIN_SIGNALS = {"width", "height", "padding", "autosize", "background"}
_IDENT = re.compile(r"^[A-Za-z_$][\w$]*$")


class VegaSpecBuilder:
    """Append-only builder for a Vega spec. Entries link to each other by name only."""

    def __init__(self) -> None:
        self.spec: Dict[str, Any] = {VEGA_SCHEMA: VEGA_V5}
        self._data: Set[str] = set()
        self._scales: Set[str] = set()
        self._signals: Set[str] = set()
        self._marks: Set[str] = set()

    # ---------- Top-level blocks ----------

    def set_autosize(self) -> None:
        self.spec["autosize"] = {"type": "fit", "contains": "padding"}

    def set_style(self, style: str) -> None:
        self.spec["style"] = style

    def set_title(self, title: str) -> None:
        self.spec["title"] = {"text": title}

    def set_layout(self, layout: Dict[str, Any]) -> None:
        self.spec["layout"] = layout

    # ---------- Named entries ----------

    def add_data(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        self._register(self._data, entry["name"], "data source")
        return _append(self.spec, "data", entry)

    def add_signal(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        self._register(self._signals, entry["name"], "signal")
        return _append(self.spec, "signals", entry)

    def add_scale(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        self._register(self._scales, entry["name"], "scale")
        return _append(self.spec, "scales", entry)

    def add_mark(self, entry: Dict[str, Any], parent: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if entry.get("name"):
            self._register(self._marks, entry["name"], "mark")
        facet = (entry.get("from") or {}).get("facet")
        if facet:
            self._register(self._data, facet["name"], "facet")
        return _append(self.spec if parent is None else parent, "marks", entry)

    def add_axis(self, entry: Dict[str, Any], parent: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return _append(self.spec if parent is None else parent, "axes", entry)

    def add_legend(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        return _append(self.spec, "legends", entry)

    # ---------- In-place extension ----------

    @staticmethod
    def extend_transforms(data: Dict[str, Any], transforms: Iterable[Dict[str, Any]]) -> None:
        data.setdefault("transform", []).extend(transforms)

    @staticmethod
    def extend_encoding(mark: Dict[str, Any], entry_name: str, entry: Dict[str, Any]) -> None:
        encode = mark.setdefault("encode", {})
        encode[entry_name] = {**encode.get(entry_name, {}), **entry}

    @staticmethod
    def extend_signal_handlers(signal: Dict[str, Any], handlers: Iterable[Dict[str, Any]]) -> None:
        signal.setdefault("on", []).extend(handlers)

    # ---------- Integrity ----------

    def check_references(self, *, include_signals: bool = True) -> None:
        """Raise SpecIntegrityError on the first name that resolves to nothing.

        Signal handlers may name marks that are added by a later stage, so callers
        checkpointing mid-build pass include_signals=False.
        """
        for data in self.spec.get("data", []):
            if "source" in data:
                self._expect(self._data, data["source"], f"data {data['name']!r} source")
        for scale in self.spec.get("scales", []):
            self._check_scale(scale)
        for legend in self.spec.get("legends", []):
            for key in ("fill", "stroke"):
                if key in legend:
                    self._expect(self._scales, legend[key], f"legend {key}")
        self._check_marks(self.spec)
        if include_signals:
            for signal in self.spec.get("signals", []):
                self._check_signal(signal)

    def build(self) -> Dict[str, Any]:
        self.check_references()
        return copy.deepcopy(self.spec)

    # ---------- Helpers ----------

    def _register(self, names: Set[str], name: str, what: str) -> None:
        if name in names:
            raise SpecIntegrityError(f"duplicate {what} name: {name!r}")
        names.add(name)

    def _expect(self, names: Set[str], name: Any, where: str) -> None:
        if name not in names:
            raise SpecIntegrityError(f"{where} references unknown name {name!r}")

    def _expect_signal_ref(self, ref: Any, where: str) -> None:
        if isinstance(ref, dict) and _IDENT.match(str(ref.get("signal", ""))):
            name = ref["signal"]
            if name not in _BUILTIN_SIGNALS:
                self._expect(self._signals, name, where)

    def _check_scale(self, scale: Dict[str, Any]) -> None:
        where = f"scale {scale['name']!r}"
        domain = scale.get("domain")
        if isinstance(domain, dict) and "data" in domain:
            self._expect(self._data, domain["data"], f"{where} domain")
        if "domainRaw" in scale:
            self._expect_signal_ref(scale["domainRaw"], f"{where} domainRaw")
        for item in scale.get("range", []) if isinstance(scale.get("range"), list) else []:
            self._expect_signal_ref(item, f"{where} range")

    def _check_marks(self, container: Dict[str, Any]) -> None:
        for axis in container.get("axes", []):
            self._expect(self._scales, axis["scale"], "axis")
            if "gridScale" in axis:
                self._expect(self._scales, axis["gridScale"], "axis gridScale")
        for mark in container.get("marks", []):
            where = f"mark {mark.get('name', mark.get('type'))!r}"
            source = mark.get("from") or {}
            if "data" in source:
                self._expect(self._data | self._marks, source["data"], f"{where} from")
            if "facet" in source:
                self._expect(self._data, source["facet"]["data"], f"{where} facet")
            for entry in (mark.get("encode") or {}).values():
                for channel in entry.values():
                    for rule in channel if isinstance(channel, list) else [channel]:
                        if isinstance(rule, dict) and "scale" in rule:
                            self._expect(self._scales, rule["scale"], f"{where} encoding")
            self._check_marks(mark)

    def _check_signal(self, signal: Dict[str, Any]) -> None:
        where = f"signal {signal['name']!r}"
        for handler in signal.get("on", []):
            events = handler["events"]
            for event in events if isinstance(events, list) else [events]:
                if not isinstance(event, dict):
                    continue
                if "markname" in event:
                    self._expect(self._marks, event["markname"], f"{where} event")
                if "signal" in event:
                    self._expect(self._signals, event["signal"], f"{where} event")
                if "scale" in event:
                    self._expect(self._scales, event["scale"], f"{where} event")


@dataclass
class VegaSpecWithProps:
    spec: Dict[str, Any]
    has_legend: bool = False
    legend_column_name: str = ""
    error: Optional[Exception] = None


def _append(container: Dict[str, Any], key: str, entry: Dict[str, Any]) -> Dict[str, Any]:
    container.setdefault(key, []).append(entry)
    return entry
