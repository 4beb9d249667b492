"""AST nodes for the stack language."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .lexer import render_number, render_string


class Builtin(str, Enum):
    """Primitive operations, valued by their surface token."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    EQ = "="
    NOT = "!"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    DUP = "dup"
    DUP2 = "2dup"
    SWAP = "swap"
    DROP = "drop"
    DROP2 = "2drop"
    DROP3 = "3drop"
    OVER = "over"
    DUPD = "dupd"
    ROTL = "rotl"
    ROTR = "rotr"
    KEEP = "keep"
    EVAL = "eval"
    IF = "if"
    NTH = "nth"
    PRINTLN = "println"
    DEF = "def"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Number:
    value: float

    def __str__(self) -> str:
        return render_number(self.value)


@dataclass(frozen=True)
class String:
    value: str

    def __str__(self) -> str:
        return render_string(self.value)


@dataclass(frozen=True)
class Bool:
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Procedure:
    """A quotation. Also the runtime value of a pushed block."""

    statements: tuple["Statement", ...] = ()

    def __str__(self) -> str:
        if not self.statements:
            return "{}"
        return "{ " + " ".join(str(stmt) for stmt in self.statements) + " }"


@dataclass(frozen=True)
class Sequence:
    """A list literal; items are expressions only."""

    items: tuple["Expression", ...] = ()

    def __str__(self) -> str:
        if not self.items:
            return "[]"
        return "[ " + " ".join(str(item) for item in self.items) + " ]"


@dataclass(frozen=True)
class Operator:
    builtin: Builtin

    def __str__(self) -> str:
        return self.builtin.value


@dataclass(frozen=True)
class Word:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Definition:
    name: str
    body: Procedure

    def __str__(self) -> str:
        return f"def {self.name} {self.body}"


@dataclass(frozen=True)
class Program:
    statements: tuple["Statement", ...]

    def __str__(self) -> str:
        return " ".join(str(stmt) for stmt in self.statements)


Expression = Union[Number, String, Bool, Procedure, Sequence]
Statement = Union[Number, String, Bool, Procedure, Sequence, Operator, Word, Definition]
