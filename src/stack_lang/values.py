"""Runtime value model, structural comparison and display.

Values use Python-native immutable representations:

- Bool: ``bool``
- Number: ``float``
- String: ``str``
- Procedure: :class:`stack_lang.ast.Procedure`
- List: ``tuple`` of values
"""

from __future__ import annotations

import numbers
from collections.abc import Iterable
from enum import Enum

from .ast import Bool, Builtin, Definition, Number, Operator, Procedure, Sequence, String, Word
from .lexer import render_number, render_string


class ValueKind(str, Enum):
    BOOL = "Bool"
    NUMBER = "Number"
    STRING = "String"
    PROCEDURE = "Procedure"
    LIST = "List"


_KIND_RANK = {
    ValueKind.BOOL: 0,
    ValueKind.NUMBER: 1,
    ValueKind.STRING: 2,
    ValueKind.PROCEDURE: 3,
    ValueKind.LIST: 4,
}

_NODE_RANK = {
    Bool: 0,
    Number: 1,
    String: 2,
    Procedure: 3,
    Sequence: 4,
    Operator: 5,
    Definition: 6,
    Word: 7,
}

_BUILTIN_RANK = {builtin: index for index, builtin in enumerate(Builtin)}


def kind_of(value: object) -> ValueKind:
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, float):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Procedure):
        return ValueKind.PROCEDURE
    if isinstance(value, tuple):
        return ValueKind.LIST
    raise TypeError(f"unsupported runtime type {type(value).__name__}")


def validate_value(value: object, *, where: str = "value") -> None:
    if isinstance(value, tuple):
        for idx, item in enumerate(value):
            validate_value(item, where=f"{where}[{idx}]")
        return
    try:
        kind_of(value)
    except TypeError:
        raise TypeError(f"{where} has unsupported runtime type {type(value).__name__}") from None


def to_value(obj: object) -> object:
    """Convert host data (ints, lists) into the runtime representation."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, numbers.Real):
        return float(obj)
    if isinstance(obj, (list, tuple)):
        return tuple(to_value(item) for item in obj)
    validate_value(obj)
    return obj


def value_of_expression(expr) -> object:
    if isinstance(expr, (Number, String, Bool)):
        return expr.value
    if isinstance(expr, Procedure):
        return expr
    if isinstance(expr, Sequence):
        return tuple(value_of_expression(item) for item in expr.items)
    raise TypeError(f"{type(expr).__name__} is not an expression")


def _sign(delta) -> int:
    return (delta > 0) - (delta < 0)


def _compare_plain(left, right) -> int:
    return (left > right) - (left < right)


def _compare_floats(left: float, right: float) -> int | None:
    if left < right:
        return -1
    if left > right:
        return 1
    if left == right:
        return 0
    return None


def _compare_sequences(left: Iterable, right: Iterable, compare_item) -> int | None:
    left = tuple(left)
    right = tuple(right)
    for a, b in zip(left, right):
        order = compare_item(a, b)
        if order != 0:
            return order
    return _sign(len(left) - len(right))


def _compare_nodes(left, right) -> int | None:
    rank_delta = _NODE_RANK[type(left)] - _NODE_RANK[type(right)]
    if rank_delta:
        return _sign(rank_delta)
    if isinstance(left, Number):
        return _compare_floats(left.value, right.value)
    if isinstance(left, (String, Bool)):
        return _compare_plain(left.value, right.value)
    if isinstance(left, Word):
        return _compare_plain(left.name, right.name)
    if isinstance(left, Procedure):
        return _compare_sequences(left.statements, right.statements, _compare_nodes)
    if isinstance(left, Sequence):
        return _compare_sequences(left.items, right.items, _compare_nodes)
    if isinstance(left, Operator):
        return _sign(_BUILTIN_RANK[left.builtin] - _BUILTIN_RANK[right.builtin])
    # Definition
    order = _compare_plain(left.name, right.name)
    return order if order != 0 else _compare_nodes(left.body, right.body)


def compare(left: object, right: object) -> int | None:
    """Structural ordering: -1, 0 or 1, or None when unordered (NaN involved)."""
    left_kind = kind_of(left)
    right_kind = kind_of(right)
    if left_kind is not right_kind:
        return _sign(_KIND_RANK[left_kind] - _KIND_RANK[right_kind])
    if left_kind is ValueKind.NUMBER:
        return _compare_floats(left, right)
    if left_kind in (ValueKind.BOOL, ValueKind.STRING):
        return _compare_plain(left, right)
    if left_kind is ValueKind.PROCEDURE:
        return _compare_sequences(left.statements, right.statements, _compare_nodes)
    return _compare_sequences(left, right, compare)


def equal(left: object, right: object) -> bool:
    return compare(left, right) == 0


def format_value(value: object) -> str:
    kind = kind_of(value)
    if kind is ValueKind.BOOL:
        return "true" if value else "false"
    if kind is ValueKind.NUMBER:
        return render_number(value)
    if kind is ValueKind.STRING:
        return render_string(value)
    if kind is ValueKind.PROCEDURE:
        return str(value)
    if not value:
        return "[]"
    return "[ " + " ".join(format_value(item) for item in value) + " ]"


def format_stack(stack: Iterable[object]) -> str:
    return " ".join(format_value(value) for value in stack)
