"""Structured error types for parser/runtime separation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .parser import ParseError
from .values import format_value
from .lexer import render_number


class StackLangError(Exception):
    """Base class for structured stack-lang errors."""


@dataclass(frozen=True)
class StackParseError(StackLangError):
    """Wraps parser failures with explicit parse-stage typing."""

    message: str
    start: int
    end: int
    expected: tuple[str, ...] = ()
    found: str | None = None
    context: tuple[str, ...] = ()
    incomplete: bool = False

    @classmethod
    def from_parse_error(cls, err: ParseError) -> "StackParseError":
        return cls(
            message=err.message,
            start=err.start,
            end=err.end,
            expected=err.expected,
            found=err.found,
            context=err.context,
            incomplete=err.incomplete,
        )

    def __str__(self) -> str:
        return str(
            ParseError(
                self.message,
                self.start,
                self.end,
                expected=self.expected,
                found=self.found,
                context=self.context,
            )
        )


class RuntimeErrorKind(str, Enum):
    ARITY = "arity"
    TYPE_MISMATCH = "type-mismatch"
    UNRESOLVED_IDENTIFIER = "unresolved-identifier"
    INDEX_OUT_OF_RANGE = "index-out-of-range"
    MALFORMED_DEFINITION_TARGET = "malformed-definition-target"


class StackRuntimeError(StackLangError):
    """Failure while executing a successfully parsed program."""

    kind: RuntimeErrorKind


class ArityError(StackRuntimeError):
    """The stack holds fewer values than the operation consumes."""

    kind = RuntimeErrorKind.ARITY

    def __init__(self, operation: str, expected: int, actual: int) -> None:
        super().__init__(operation, expected, actual)
        self.operation = operation
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        return f"Operation `{self.operation}` expected {self.expected} argument(s), got {self.actual}"


class OperandTypeError(StackRuntimeError):
    """An operand does not support the requested operation."""

    kind = RuntimeErrorKind.TYPE_MISMATCH

    def __init__(self, operation: str, expected: str, operands: tuple[object, ...]) -> None:
        super().__init__(operation, expected, operands)
        self.operation = operation
        self.expected = expected
        self.operands = operands

    def __str__(self) -> str:
        found = " ".join(format_value(value) for value in self.operands)
        return f"Operation `{self.operation}` expected {self.expected}, got {found}"


class UnresolvedIdentifierError(StackRuntimeError):
    kind = RuntimeErrorKind.UNRESOLVED_IDENTIFIER

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f'Couldn\'t resolve identifier "{self.name}"'


class IndexOutOfRangeError(StackRuntimeError):
    kind = RuntimeErrorKind.INDEX_OUT_OF_RANGE

    def __init__(self, index: float, length: int) -> None:
        super().__init__(index, length)
        self.index = index
        self.length = length

    def __str__(self) -> str:
        return f"Index {render_number(self.index)} out of bounds for list of length {self.length}"


class DefinitionTargetError(StackRuntimeError):
    """The name operand of ``def`` is not an identifier."""

    kind = RuntimeErrorKind.MALFORMED_DEFINITION_TARGET

    def __init__(self, target: object) -> None:
        super().__init__(target)
        self.target = target

    def __str__(self) -> str:
        return f"Operation `def` expected an identifier name, got {format_value(self.target)}"
