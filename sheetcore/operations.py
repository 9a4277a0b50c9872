from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import ClassVar, Dict, List, Mapping, Union

from sheetcore.errors import UnknownOperation


@dataclass(frozen=True)
class RemoveSpaces:
    kind: ClassVar[str] = "remove_spaces"


@dataclass(frozen=True)
class RemoveSpecial:
    kind: ClassVar[str] = "remove_special"


@dataclass(frozen=True)
class SplitByChar:
    kind: ClassVar[str] = "split_by"
    delimiter: str = ""


@dataclass(frozen=True)
class CustomExpression:
    kind: ClassVar[str] = "custom_expression"
    source: str = ""


Operation = Union[RemoveSpaces, RemoveSpecial, SplitByChar, CustomExpression]

OPERATION_TYPES = {op.kind: op for op in (RemoveSpaces, RemoveSpecial, SplitByChar, CustomExpression)}

OPERATION_LIST: List[Dict[str, str]] = [
    {"kind": RemoveSpaces.kind, "label": "Remove Spaces", "example": '"A B C" → "ABC"'},
    {
        "kind": RemoveSpecial.kind,
        "label": "Remove Special Characters",
        "example": '"A!B@C# 123$%^" → "ABC 123" (keeps letters, numbers, spaces)',
    },
    {
        "kind": SplitByChar.kind,
        "label": "Split by Character",
        "example": 'Split by "@": "user@example.com" → "user" (original), "example.com" (new col)',
    },
    {
        "kind": CustomExpression.kind,
        "label": "Custom Expression",
        "example": 'e.g. value.upper() or re_sub(r"\\d", "", value)',
    },
]


def operation_example(kind: str) -> str:
    return next((o["example"] for o in OPERATION_LIST if o["kind"] == kind), "")


def parse_operation(raw: Mapping[str, object]) -> Operation:
    """Turn a UI / wire dict like ``{"kind": "split_by", "delimiter": "@"}`` into a descriptor."""
    kind = str(raw.get("kind") or "").strip()
    if kind not in OPERATION_TYPES:
        raise UnknownOperation(f"Unknown operation: {kind!r}")

    if kind == SplitByChar.kind:
        delimiter = raw.get("delimiter")
        return SplitByChar(delimiter="" if delimiter is None else str(delimiter))
    if kind == CustomExpression.kind:
        source = raw.get("source")
        return CustomExpression(source="" if source is None else str(source))
    return OPERATION_TYPES[kind]()


def operation_to_dict(op: Operation) -> Dict[str, str]:
    return {"kind": op.kind, **asdict(op)}
