"""Restricted expression language for custom column edits.

Expressions use Python expression syntax with a single free variable,
``value`` (the cell text). Source is parsed with :mod:`ast`, checked against
an explicit allow-list and then interpreted node by node; nothing is ever
handed to ``eval``.

Allowed:
- literals (text, numbers, booleans, ``None``, tuples, lists)
- ``+ - * / // %``, unary ``- + not``, ``and`` / ``or``, comparisons,
  ``a if cond else b``, indexing and slicing
- the functions in :data:`FUNCTIONS`
- the text methods in :data:`STRING_METHODS`, called on text only

Examples::

    value.upper()
    re_sub(r"\\d", "", value)
    value[:3] + "-" + value[3:]
    "yes" if value else "no"
"""

from __future__ import annotations

import ast
import operator
import re
from functools import lru_cache
from typing import Any, Callable, Dict, List

from sheetcore.errors import InvalidExpression


VARIABLE = "value"
MAX_STRING_LENGTH = 100_000
# Roughly MAX_STRING_LENGTH decimal digits.
MAX_INT_BITS = MAX_STRING_LENGTH * 4


def _too_long() -> InvalidExpression:
    return InvalidExpression(f"result is longer than {MAX_STRING_LENGTH} items")


@lru_cache(maxsize=128)
def _regex(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def re_sub(pattern: str, repl: str, text: str) -> str:
    # Replacements are expanded one match at a time so the running size can
    # be checked before the joined result exists.
    size = len(text)

    def expand(match: re.Match) -> str:
        nonlocal size
        out = match.expand(repl)
        size += len(out) - (match.end() - match.start())
        if size > MAX_STRING_LENGTH:
            raise _too_long()
        return out

    return _regex(pattern).sub(expand, text)


def re_search(pattern: str, text: str) -> str:
    match = _regex(pattern).search(text)
    return match.group(0) if match else ""


def re_findall(pattern: str, text: str) -> List[Any]:
    return _regex(pattern).findall(text)


def to_text(obj: Any = "") -> str:
    # The text form of a list can dwarf the list itself (shared references).
    if isinstance(obj, (list, tuple)):
        raise InvalidExpression("str() takes text or a number, not a list")
    return str(obj)


FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "len": len,
    "str": to_text,
    "int": int,
    "float": float,
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "re_sub": re_sub,
    "re_search": re_search,
    "re_findall": re_findall,
}

STRING_METHODS = frozenset(
    {
        "upper",
        "lower",
        "title",
        "capitalize",
        "swapcase",
        "strip",
        "lstrip",
        "rstrip",
        "replace",
        "split",
        "rsplit",
        "join",
        "startswith",
        "endswith",
        "find",
        "count",
        "zfill",
        "center",
        "ljust",
        "rjust",
        "removeprefix",
        "removesuffix",
        "isdigit",
        "isalpha",
        "isalnum",
        "isspace",
    }
)

_PADDING_METHODS = frozenset({"zfill", "center", "ljust", "rjust"})

_BIN_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

_COMPARE_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

_STRUCTURAL_NODES = (
    ast.BinOp,
    ast.UnaryOp,
    ast.BoolOp,
    ast.Compare,
    ast.IfExp,
    ast.Subscript,
    ast.Slice,
    ast.Tuple,
    ast.List,
    ast.Load,
    ast.And,
    ast.Or,
)

_ALLOWED_NODES = _STRUCTURAL_NODES + tuple(_BIN_OPS) + tuple(_UNARY_OPS) + tuple(_COMPARE_OPS)

_CONSTANT_TYPES = (str, int, float, bool, type(None))

# Exceptions an allowed construct can raise on bad input.
_RUNTIME_ERRORS = (
    TypeError,
    ValueError,
    ZeroDivisionError,
    IndexError,
    KeyError,
    OverflowError,
    re.error,
    RecursionError,
    MemoryError,
)


def _check(node: ast.AST, *, callee: bool = False) -> None:
    if isinstance(node, ast.Name):
        if node.id == VARIABLE and not callee:
            return
        if node.id in FUNCTIONS and callee:
            return
        raise InvalidExpression(f"name {node.id!r} is not available")

    if isinstance(node, ast.Attribute):
        if not callee or node.attr not in STRING_METHODS:
            raise InvalidExpression(f"attribute {node.attr!r} is not available")
        _check(node.value)
        return

    if isinstance(node, ast.Call):
        _check(node.func, callee=True)
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                raise InvalidExpression("argument unpacking is not allowed")
            _check(arg)
        for kw in node.keywords:
            if kw.arg is None:
                raise InvalidExpression("argument unpacking is not allowed")
            _check(kw.value)
        return

    if isinstance(node, ast.Constant):
        if not isinstance(node.value, _CONSTANT_TYPES):
            raise InvalidExpression(f"literal {node.value!r} is not allowed")
        return

    if not isinstance(node, _ALLOWED_NODES):
        raise InvalidExpression(f"{type(node).__name__} is not allowed")
    for child in ast.iter_child_nodes(node):
        _check(child)


def _checked_size(result: Any) -> Any:
    if isinstance(result, (str, list, tuple)) and len(result) > MAX_STRING_LENGTH:
        raise _too_long()
    return result


class _Evaluator(ast.NodeVisitor):
    def __init__(self, value: str):
        self.value = value

    def generic_visit(self, node: ast.AST) -> Any:
        raise InvalidExpression(f"{type(node).__name__} is not allowed")

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        return self.value

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(e) for e in node.elts)

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(e) for e in node.elts]

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Mod) and isinstance(left, str):
            raise InvalidExpression("% formatting of text is not allowed")
        if isinstance(node.op, ast.Mult):
            for seq, times in ((left, right), (right, left)):
                if isinstance(seq, (str, list, tuple)) and isinstance(times, int) and len(seq) * times > MAX_STRING_LENGTH:
                    raise _too_long()
            if isinstance(left, int) and isinstance(right, int) and left.bit_length() + right.bit_length() > MAX_INT_BITS:
                raise InvalidExpression(f"integer result is larger than {MAX_INT_BITS} bits")
        return _checked_size(_BIN_OPS[type(node.op)](left, right))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return _UNARY_OPS[type(node.op)](self.visit(node.operand))

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        result: Any = None
        for operand in node.values:
            result = self.visit(operand)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if not _COMPARE_OPS[type(op)](left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_Slice(self, node: ast.Slice) -> Any:
        lower = self.visit(node.lower) if node.lower is not None else None
        upper = self.visit(node.upper) if node.upper is not None else None
        step = self.visit(node.step) if node.step is not None else None
        return slice(lower, upper, step)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        target = self.visit(node.value)
        if not isinstance(target, (str, list, tuple)):
            raise InvalidExpression("only text and lists can be indexed")
        return target[self.visit(node.slice)]

    def visit_Call(self, node: ast.Call) -> Any:
        args = [self.visit(a) for a in node.args]
        kwargs = {kw.arg: self.visit(kw.value) for kw in node.keywords}
        if isinstance(node.func, ast.Name):
            return _checked_size(FUNCTIONS[node.func.id](*args, **kwargs))

        attr = node.func.attr
        receiver = self.visit(node.func.value)
        if not isinstance(receiver, str):
            raise InvalidExpression(f"{attr}() can only be called on text")
        if _projected_size(receiver, attr, args, kwargs) > MAX_STRING_LENGTH:
            raise _too_long()
        return _checked_size(getattr(receiver, attr)(*args, **kwargs))


def _projected_size(text: str, attr: str, args: List[Any], kwargs: Dict[str, Any]) -> int:
    """Upper bound on the length of ``text.<attr>(...)``, computed without building it.

    Arguments of the wrong type count as zero; the call itself then raises.
    """
    if attr in _PADDING_METHODS:
        width = args[0] if args else kwargs.get("width")
        return width if isinstance(width, int) else 0

    if attr == "replace":
        if len(args) < 2 or not isinstance(args[0], str) or not isinstance(args[1], str):
            return 0
        old, new = args[0], args[1]
        limit = args[2] if len(args) > 2 else kwargs.get("count", -1)
        hits = text.count(old) if old else len(text) + 1
        if isinstance(limit, int) and 0 <= limit < hits:
            hits = limit
        return len(text) + hits * (len(new) - len(old))

    if attr == "join":
        parts = args[0] if args else kwargs.get("iterable")
        if not isinstance(parts, (str, list, tuple)):
            return 0
        total = sum(len(p) for p in parts if isinstance(p, str))
        return total + len(text) * max(len(parts) - 1, 0)

    return 0


class Expression:
    """A validated expression, ready to evaluate against cell values."""

    def __init__(self, source: str, tree: ast.Expression):
        self.source = source
        self._tree = tree

    def evaluate(self, value: str) -> Any:
        try:
            return _Evaluator(value).visit(self._tree.body)
        except InvalidExpression:
            raise
        except _RUNTIME_ERRORS as exc:
            raise InvalidExpression(f"{type(exc).__name__}: {exc}", source=self.source) from exc

    def __repr__(self) -> str:
        return f"Expression({self.source!r})"


@lru_cache(maxsize=64)
def compile_expression(source: str, *, max_length: int = 500) -> Expression:
    text = (source or "").strip()
    if not text:
        raise InvalidExpression("expression is empty", source=source)
    if len(text) > max_length:
        raise InvalidExpression(f"expression is longer than {max_length} characters", source=source)
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise InvalidExpression(f"syntax error: {exc.msg}", source=source) from exc
    except (ValueError, RecursionError, MemoryError) as exc:
        raise InvalidExpression(str(exc) or type(exc).__name__, source=source) from exc
    try:
        _check(tree.body)
    except InvalidExpression as exc:
        exc.source = source
        raise
    return Expression(text, tree)
