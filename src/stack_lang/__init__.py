"""stack-lang public API."""

import logging

from .ast import Builtin, Program
from .errors import (
    ArityError,
    DefinitionTargetError,
    IndexOutOfRangeError,
    OperandTypeError,
    RuntimeErrorKind,
    StackLangError,
    StackParseError,
    StackRuntimeError,
    UnresolvedIdentifierError,
)
from .evaluator import Engine, PendingQueue, evaluate, run
from .parser import ParseError, format_parse_error, parse, parse_statement
from .values import ValueKind, compare, equal, format_stack, format_value

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "parse",
    "parse_statement",
    "format_parse_error",
    "ParseError",
    "run",
    "evaluate",
    "Engine",
    "PendingQueue",
    "Program",
    "Builtin",
    "ValueKind",
    "compare",
    "equal",
    "format_value",
    "format_stack",
    "StackLangError",
    "StackParseError",
    "StackRuntimeError",
    "RuntimeErrorKind",
    "ArityError",
    "OperandTypeError",
    "UnresolvedIdentifierError",
    "IndexOutOfRangeError",
    "DefinitionTargetError",
]
