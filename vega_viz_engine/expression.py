"""Evaluator for the subset of the Vega expression language this package emits.

Supported: number/string/boolean/null literals, identifiers, member access (`a.b`,
`a["b"]`), array and object literals, unary `! - +`, `* / %`, `+ -`, comparisons,
`== != === !==`, `&&` / `||` with JavaScript truthiness, `?:` and calls to named
functions supplied by the caller.

Parsing is done by a lark LALR grammar; the parse tree is compiled into nested
closures that take a scope mapping.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import math
import re

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import LarkError, VisitError

from .errors import VizEngineError


class ExpressionError(VizEngineError): ...


Scope = Mapping[str, Any]
Node = Callable[[Scope], Any]

_GRAMMAR = r"""
    ?start: ternary

    ?ternary: or_expr
            | or_expr "?" ternary ":" ternary       -> cond

    ?or_expr: and_expr
            | or_expr "||" and_expr                 -> or_

    ?and_expr: equality
             | and_expr "&&" equality               -> and_

    ?equality: comparison
             | equality EQ_OP comparison            -> binop

    ?comparison: sum
               | comparison CMP_OP sum              -> binop

    ?sum: product
        | sum (PLUS | MINUS) product                -> binop

    ?product: unary
            | product MUL_OP unary                  -> binop

    ?unary: postfix
          | "!" unary                               -> not_
          | MINUS unary                             -> neg
          | PLUS unary                              -> pos

    ?postfix: atom
            | postfix "." NAME                      -> attr
            | postfix "[" ternary "]"               -> index
            | NAME "(" ")"                          -> call
            | NAME "(" arglist ")"                  -> call

    ?atom: NUMBER                                   -> number
         | STRING                                   -> string
         | NAME                                     -> var
         | "(" ternary ")"
         | "[" "]"                                  -> array
         | "[" arglist "]"                          -> array
         | "{" "}"                                  -> object
         | "{" pair ("," pair)* "}"                 -> object

    arglist: ternary ("," ternary)*
    pair: key ":" ternary
    ?key: NAME | STRING | NUMBER

    EQ_OP: "===" | "!==" | "==" | "!="
    CMP_OP: "<=" | ">=" | "<" | ">"
    MUL_OP: "*" | "/" | "%"
    PLUS: "+"
    MINUS: "-"
    NAME: /[A-Za-z_$][\w$]*/
    NUMBER: /(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?/
    STRING: /"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'/

    %import common.WS
    %ignore WS
"""

_PARSER = Lark(_GRAMMAR, parser="lalr")

_KEYWORDS = {"true": True, "false": False, "null": None, "undefined": None, "NaN": math.nan}
_ESCAPE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


def truthy(v: Any) -> bool:
    if v is None or v is False:
        return False
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return v != 0 and not math.isnan(v)
    if isinstance(v, str):
        return v != ""
    # Arrays and objects are truthy even when empty.
    return True


def strict_equals(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, (list, dict)) or isinstance(b, (list, dict)):
        return a is b
    return type(a) is type(b) and a == b


def to_number(v: Any) -> float:
    if v is None:
        return 0
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, (int, float)):
        return v
    try:
        return float(v)
    except (TypeError, ValueError):
        return math.nan


def _member(obj: Any, key: Any) -> Any:
    if obj is None:
        raise ExpressionError(f"cannot read property {key!r} of null")
    if isinstance(obj, dict):
        return obj.get(key if isinstance(key, str) else _key_str(key))
    if isinstance(obj, (list, str)):
        if key == "length":
            return len(obj)
        if isinstance(key, (int, float)) and not isinstance(key, bool) and float(key).is_integer():
            i = int(key)
            return obj[i] if 0 <= i < len(obj) else None
        return None
    return getattr(obj, str(key), None)


def _key_str(key: Any) -> str:
    if isinstance(key, float) and key.is_integer():
        return str(int(key))
    return str(key)


def _add(a: Any, b: Any) -> Any:
    if isinstance(a, str) or isinstance(b, str):
        return _js_str(a) + _js_str(b)
    return to_number(a) + to_number(b)


def _js_str(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def _compare(op: str, a: Any, b: Any) -> bool:
    if not (isinstance(a, str) and isinstance(b, str)):
        a, b = to_number(a), to_number(b)
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    return a >= b


def _divide(a: Any, b: Any) -> float:
    a, b = to_number(a), to_number(b)
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a)
    return a / b


_BINARY: Dict[str, Callable[[Any, Any], Any]] = {
    "===": strict_equals,
    "==": strict_equals,
    "!==": lambda a, b: not strict_equals(a, b),
    "!=": lambda a, b: not strict_equals(a, b),
    "<": lambda a, b: _compare("<", a, b),
    ">": lambda a, b: _compare(">", a, b),
    "<=": lambda a, b: _compare("<=", a, b),
    ">=": lambda a, b: _compare(">=", a, b),
    "+": _add,
    "-": lambda a, b: to_number(a) - to_number(b),
    "*": lambda a, b: to_number(a) * to_number(b),
    "/": _divide,
    "%": lambda a, b: math.fmod(to_number(a), to_number(b)),
}


def _number(text: str) -> Any:
    return float(text) if any(c in text for c in ".eE") else int(text)


def _unquote(text: str) -> str:
    return _ESCAPE.sub(lambda e: _ESCAPES.get(e.group(1), e.group(1)), text[1:-1])


def _literal(value: Any) -> Node:
    return lambda s: value


def _lookup(name: str) -> Node:
    def node(s: Scope) -> Any:
        if name not in s:
            raise ExpressionError(f"unknown name {name!r}")
        return s[name]
    return node


@v_args(inline=True)
class _Compile(Transformer):
    """Turn a parse tree into a closure over the scope."""

    def __init__(self, functions: Mapping[str, Callable[..., Any]]):
        super().__init__()
        self.functions = functions

    # ---------- literals and names ----------

    def number(self, tok: Token) -> Node:
        return _literal(_number(tok))

    def string(self, tok: Token) -> Node:
        return _literal(_unquote(tok))

    def var(self, tok: Token) -> Node:
        if tok in _KEYWORDS:
            return _literal(_KEYWORDS[tok])
        return _lookup(str(tok))

    def arglist(self, *items: Node) -> List[Node]:
        return list(items)

    def array(self, items: Optional[List[Node]] = None) -> Node:
        items = items or []
        return lambda s: [item(s) for item in items]

    def pair(self, key: Token, value: Node) -> Tuple[str, Node]:
        if key.type == "STRING":
            return _unquote(key), value
        if key.type == "NUMBER":
            return _key_str(_number(key)), value
        return str(key), value

    def object(self, *pairs: Tuple[str, Node]) -> Node:
        return lambda s: {k: v(s) for k, v in pairs}

    # ---------- access and calls ----------

    def attr(self, obj: Node, name: Token) -> Node:
        prop = str(name)
        return lambda s: _member(obj(s), prop)

    def index(self, obj: Node, key: Node) -> Node:
        return lambda s: _member(obj(s), key(s))

    def call(self, name: Token, args: Optional[List[Node]] = None) -> Node:
        fn = self.functions.get(str(name))
        if fn is None:
            raise ExpressionError(f"unknown function {str(name)!r}")
        args = args or []
        return lambda s: fn(*[a(s) for a in args])

    # ---------- operators ----------

    def not_(self, operand: Node) -> Node:
        return lambda s: not truthy(operand(s))

    def neg(self, _op: Token, operand: Node) -> Node:
        return lambda s: -to_number(operand(s))

    def pos(self, _op: Token, operand: Node) -> Node:
        return lambda s: to_number(operand(s))

    def binop(self, left: Node, op: Token, right: Node) -> Node:
        fn = _BINARY[str(op)]
        return lambda s: fn(left(s), right(s))

    def and_(self, left: Node, right: Node) -> Node:
        def node(s: Scope) -> Any:
            v = left(s)
            return right(s) if truthy(v) else v
        return node

    def or_(self, left: Node, right: Node) -> Node:
        def node(s: Scope) -> Any:
            v = left(s)
            return v if truthy(v) else right(s)
        return node

    def cond(self, test: Node, then: Node, other: Node) -> Node:
        return lambda s: then(s) if truthy(test(s)) else other(s)


def compile_expression(source: str, functions: Optional[Mapping[str, Callable[..., Any]]] = None) -> Node:
    try:
        tree = _PARSER.parse(source)
    except LarkError as e:
        raise ExpressionError(f"cannot parse {source!r}: {e}") from e
    try:
        return _Compile(functions or {}).transform(tree)
    except VisitError as e:
        raise ExpressionError(f"{e.orig_exc} in {source!r}") from e.orig_exc


class Expression:
    """A compiled expression. Call it with a scope mapping names to values."""

    def __init__(self, source: str, functions: Optional[Mapping[str, Callable[..., Any]]] = None):
        self.source = source
        self._node = compile_expression(source, functions)

    def __call__(self, scope: Scope) -> Any:
        return self._node(scope)

    def __repr__(self) -> str:
        return f"Expression({self.source!r})"
