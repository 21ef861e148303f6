"""In-process model of the reactive signal graph of a compiled spec.

The rendering runtime is what actually runs these signals. This model exists so the
wiring can be exercised without it: dispatch pointer events at named marks, write
external cells, change a scale domain, and read back the signal values.
"""

from __future__ import annotations
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import copy
import logging
import math

from .errors import VizEngineError
from .expression import Expression, strict_equals, truthy, to_number

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


class SignalGraphError(VizEngineError): ...


def combine_internal_external(internal: Any, external: Any) -> Any:
    """Internal value wins whenever present; the external one is only a fallback."""
    return internal if internal is not None else external


def _indexof(seq: Any, value: Any) -> int:
    if isinstance(seq, str):
        return seq.find(str(value))
    for i, item in enumerate(seq or []):
        if strict_equals(item, value):
            return i
    return -1


def _is_finite(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


@dataclass
class _Handler:
    selectors: List[Any]
    update: Expression
    force: bool = False


class SignalGraph:
    def __init__(
        self,
        spec: Dict[str, Any],
        *,
        container_size: Tuple[float, float] = (200, 200),
        functions: Optional[Dict[str, Callable[..., Any]]] = None,
    ):
        self.container_size = container_size
        self.values: Dict[str, Any] = {}
        self.changes: List[Tuple[str, Any]] = []
        self._scale_domains: Dict[str, Any] = {}
        self._handlers: Dict[str, List[_Handler]] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._functions: Dict[str, Callable[..., Any]] = {
            "isFinite": _is_finite,
            "containerSize": lambda: list(self.container_size),
            "ceil": lambda v: math.ceil(to_number(v)),
            "length": len,
            "indexof": _indexof,
            "domain": lambda name: self._scale_domains.get(name),
            "combineInternalExternal": combine_internal_external,
            "toDate": lambda v: v,
        }
        self._functions.update(functions or {})

        signals = spec.get("signals", [])
        deps: Dict[str, set] = {}
        for sig in signals:
            name = sig["name"]
            self._handlers[name] = [
                _Handler(
                    selectors=h["events"] if isinstance(h["events"], list) else [h["events"]],
                    update=Expression(h["update"], self._functions),
                    force=bool(h.get("force", False)),
                )
                for h in sig.get("on", [])
            ]
            deps[name] = {
                sel["signal"]
                for h in self._handlers[name] for sel in h.selectors
                if isinstance(sel, dict) and "signal" in sel
            }
            unknown = deps[name] - {s["name"] for s in signals}
            if unknown:
                raise SignalGraphError(f"signal {name!r} listens to unknown signals {sorted(unknown)}")
        try:
            self._order: List[str] = list(TopologicalSorter(deps).static_order())
        except CycleError as e:
            raise SignalGraphError(f"signal dependency cycle: {e.args[1]}") from e

        for sig in signals:
            if "value" in sig:
                self.values[sig["name"]] = copy.deepcopy(sig["value"])
            elif "init" in sig:
                self.values[sig["name"]] = Expression(sig["init"], self._functions)(self._scope())
            else:
                self.values[sig["name"]] = None

    # ---------- Reading ----------

    @property
    def order(self) -> List[str]:
        return list(self._order)

    def get(self, name: str) -> Any:
        if name not in self.values:
            raise SignalGraphError(f"unknown signal {name!r}")
        return self.values[name]

    def on_change(self, name: str, listener: Listener) -> None:
        self.get(name)
        self._listeners.setdefault(name, []).append(listener)

    def resolve_encoding(self, rules: Any, datum: Any = None) -> Any:
        """Evaluate a production rule list ([{test, value}, ..., {value}]) for one datum."""
        scope = self._scope(datum=datum)
        for rule in rules if isinstance(rules, list) else [rules]:
            if "test" in rule and not truthy(Expression(rule["test"], self._functions)(scope)):
                continue
            if "signal" in rule:
                return Expression(rule["signal"], self._functions)(scope)
            return rule.get("value")
        return None

    # ---------- Writing ----------

    def set(self, name: str, value: Any) -> List[str]:
        """Write an input cell (one with no handlers) and propagate."""
        self.get(name)
        if self._handlers[name]:
            raise SignalGraphError(f"signal {name!r} is driven by its own handlers and cannot be written")
        fired: List[str] = []
        self._assign(name, value, False, fired)
        return self._finish(fired)

    def dispatch(
        self,
        event_type: str,
        *,
        markname: Optional[str] = None,
        datum: Any = None,
        which: Optional[int] = None,
        source: str = "view",
    ) -> List[str]:
        """Fire a DOM-style event and return the names of the signals that notified."""
        event = {"type": event_type, "markname": markname, "which": which, "source": source}
        fired: List[str] = []
        for name in self._order:
            for handler in self._handlers[name]:
                if any(self._matches(sel, event) for sel in handler.selectors):
                    value = handler.update(self._scope(datum=datum, event=event))
                    self._assign(name, value, handler.force, fired)
        return self._finish(fired)

    def resize(self, width: float, height: float) -> List[str]:
        self.container_size = (width, height)
        return self.dispatch("resize", source="window")

    def update_scale_domain(self, scale: str, domain: Sequence[Any]) -> List[str]:
        self._scale_domains[scale] = list(domain)
        fired: List[str] = []
        for name in self._order:
            for handler in self._handlers[name]:
                if any(isinstance(sel, dict) and sel.get("scale") == scale for sel in handler.selectors):
                    self._assign(name, handler.update(self._scope()), handler.force, fired)
        return self._finish(fired)

    # ---------- Internals ----------

    def _scope(self, datum: Any = None, event: Any = None) -> Dict[str, Any]:
        return {**self.values, "datum": datum, "event": event}

    def _matches(self, sel: Any, event: Dict[str, Any]) -> bool:
        if isinstance(sel, str):
            source, _, kind = sel.rpartition(":")
            return kind == event["type"] and (source or "view") == event["source"]
        if "signal" in sel or "scale" in sel:
            return False
        if sel.get("type") != event["type"]:
            return False
        if (sel.get("source") == "window") != (event["source"] == "window"):
            return False
        if "markname" in sel and sel["markname"] != event["markname"]:
            return False
        if "filter" in sel:
            filters = sel["filter"] if isinstance(sel["filter"], list) else [sel["filter"]]
            scope = {"event": event}
            return all(truthy(Expression(f, self._functions)(scope)) for f in filters)
        return True

    def _assign(self, name: str, value: Any, force: bool, fired: List[str]) -> None:
        old = self.values.get(name)
        unchanged = old is value or (type(old) is type(value) and old == value)
        if unchanged and not force:
            return
        self.values[name] = value
        fired.append(name)

    def _finish(self, fired: List[str]) -> List[str]:
        changed = set(fired)
        for name in self._order:
            for handler in self._handlers[name]:
                triggers = {sel["signal"] for sel in handler.selectors if isinstance(sel, dict) and "signal" in sel}
                if triggers & changed:
                    before = len(fired)
                    self._assign(name, handler.update(self._scope()), handler.force, fired)
                    if len(fired) > before:
                        changed.add(name)
        for name in fired:
            value = self.values[name]
            self.changes.append((name, value))
            logger.debug("signal %s -> %r", name, value)
            for listener in self._listeners.get(name, []):
                listener(name, value)
        return fired
