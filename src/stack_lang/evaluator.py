"""Evaluation engine: an explicit value stack drained from a pending-statement queue.

Control flow never recurses on the host stack. ``eval``, ``if``, ``keep`` and
word references splice statements onto the front of the pending queue, and
the drain loop runs them before anything that was already queued.
"""

from __future__ import annotations

import logging
import math
import operator
import os
import sys
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Final, TextIO

from .ast import Builtin, Definition, Operator, Procedure, Program, Word
from .errors import (
    ArityError,
    DefinitionTargetError,
    IndexOutOfRangeError,
    OperandTypeError,
    StackParseError,
    UnresolvedIdentifierError,
)
from .lexer import is_identifier
from .parser import ParseError, parse
from .values import ValueKind, compare, equal, format_stack, format_value, kind_of, to_value, value_of_expression

logger = logging.getLogger(__name__)

_PROGRAM_CACHE_MAX: Final[int] = max(1, int(os.environ.get("STACK_LANG_PROGRAM_CACHE_MAX", "256")))

TraceSink = Callable[[object, tuple[object, ...]], None]


@lru_cache(maxsize=_PROGRAM_CACHE_MAX)
def _parse_program_cached(source: str) -> Program:
    return parse(source)


def _divide(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


_ARITHMETIC: Final[dict[Builtin, Callable[[float, float], float]]] = {
    Builtin.ADD: operator.add,
    Builtin.SUB: operator.sub,
    Builtin.MUL: operator.mul,
    Builtin.DIV: _divide,
}

_ORDERINGS: Final[dict[Builtin, Callable[[int], bool]]] = {
    Builtin.LT: lambda order: order < 0,
    Builtin.LE: lambda order: order <= 0,
    Builtin.GT: lambda order: order > 0,
    Builtin.GE: lambda order: order >= 0,
}

ARITY: Final[dict[Builtin, int]] = {
    Builtin.ADD: 2,
    Builtin.SUB: 2,
    Builtin.MUL: 2,
    Builtin.DIV: 2,
    Builtin.EQ: 2,
    Builtin.NOT: 1,
    Builtin.LT: 2,
    Builtin.LE: 2,
    Builtin.GT: 2,
    Builtin.GE: 2,
    Builtin.DUP: 1,
    Builtin.DUP2: 2,
    Builtin.SWAP: 2,
    Builtin.DROP: 1,
    Builtin.DROP2: 2,
    Builtin.DROP3: 3,
    Builtin.OVER: 2,
    Builtin.DUPD: 2,
    Builtin.ROTL: 3,
    Builtin.ROTR: 3,
    Builtin.KEEP: 2,
    Builtin.EVAL: 1,
    Builtin.IF: 3,
    Builtin.NTH: 2,
    Builtin.PRINTLN: 1,
    Builtin.DEF: 2,
}


@dataclass(frozen=True)
class Restore:
    """Pushes a value saved by ``keep`` once its quotation has run."""

    value: object

    def __str__(self) -> str:
        return format_value(self.value)


class _Frame:
    __slots__ = ("statements", "cursor")

    def __init__(self, statements: tuple) -> None:
        self.statements = statements
        self.cursor = 0


class PendingQueue:
    """Double-ended statement queue built from spliced chunks.

    Each chunk is kept as one frame over its own tuple, so splicing a
    procedure body to the front (or appending a program to the back) costs
    O(1) regardless of its length. The right end of ``_frames`` is the front
    of the queue. Exhausted frames are dropped as soon as their last
    statement is taken, which keeps tail-recursive words from piling up
    frames.
    """

    def __init__(self, statements: Iterable = ()) -> None:
        self._frames: deque[_Frame] = deque()
        self.extend(statements)

    def extend(self, statements: Iterable) -> None:
        chunk = tuple(statements)
        if chunk:
            self._frames.appendleft(_Frame(chunk))

    def splice(self, statements: Iterable) -> None:
        chunk = tuple(statements)
        if chunk:
            self._frames.append(_Frame(chunk))

    def popleft(self):
        if not self._frames:
            raise IndexError("pop from an empty pending queue")
        frame = self._frames[-1]
        stmt = frame.statements[frame.cursor]
        frame.cursor += 1
        if frame.cursor == len(frame.statements):
            self._frames.pop()
        return stmt

    def clear(self) -> None:
        self._frames.clear()

    def __bool__(self) -> bool:
        return bool(self._frames)

    def __len__(self) -> int:
        return sum(len(frame.statements) - frame.cursor for frame in self._frames)

    def __iter__(self) -> Iterator:
        for frame in reversed(self._frames):
            yield from frame.statements[frame.cursor :]


def _definition_name(target: object) -> str | None:
    if isinstance(target, str) and is_identifier(target):
        return target
    if isinstance(target, Procedure) and len(target.statements) == 1 and isinstance(target.statements[0], Word):
        return target.statements[0].name
    return None


class Engine:
    """Owns one session's value stack, pending queue and definitions.

    State persists across :meth:`run` calls. Independent engines share
    nothing.
    """

    def __init__(
        self,
        *,
        stack: Iterable[object] = (),
        definitions: Mapping[str, object] | None = None,
        trace: TraceSink | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.stack: list[object] = [to_value(value) for value in stack]
        self.pending = PendingQueue()
        self.definitions: dict[str, object] = {}
        self.trace = trace
        self.stdout = stdout
        for name, value in (definitions or {}).items():
            self.define(name, value)

    def define(self, name: str, value: object) -> None:
        if not is_identifier(name):
            raise ValueError(f"{name!r} is not a valid identifier")
        self.definitions[name] = to_value(value)

    def run(self, program: Program) -> object | None:
        """Queue ``program`` behind pending work and drain; return the top of stack."""
        self.pending.extend(program.statements)
        self._drain()
        return self.stack[-1] if self.stack else None

    def clear_pending(self) -> None:
        self.pending.clear()

    def _drain(self) -> None:
        debug = logger.isEnabledFor(logging.DEBUG)
        while self.pending:
            statement = self.pending.popleft()
            self._execute(statement)
            if debug:
                logger.debug("executed %s; stack: %s", statement, format_stack(self.stack))
            if self.trace is not None:
                self.trace(statement, tuple(self.stack))

    def _execute(self, statement) -> None:
        if isinstance(statement, Operator):
            builtin = statement.builtin
            self._expect_args(ARITY[builtin], builtin)
            _HANDLERS[builtin](self, builtin)
        elif isinstance(statement, Word):
            self._word(statement.name)
        elif isinstance(statement, Definition):
            self.definitions[statement.name] = statement.body
            logger.debug("defined %s", statement.name)
        elif isinstance(statement, Restore):
            self.stack.append(statement.value)
        else:
            self.stack.append(value_of_expression(statement))

    def _expect_args(self, count: int, builtin: Builtin) -> None:
        depth = len(self.stack)
        if depth < count:
            raise ArityError(builtin.value, count, depth)

    def _drop(self, count: int) -> None:
        del self.stack[-count:]

    def _word(self, name: str) -> None:
        try:
            bound = self.definitions[name]
        except KeyError:
            raise UnresolvedIdentifierError(name) from None
        if isinstance(bound, Procedure):
            self.pending.splice(bound.statements)
        else:
            self.stack.append(bound)

    def _arithmetic(self, builtin: Builtin) -> None:
        left, right = self.stack[-2:]
        if kind_of(left) is not ValueKind.NUMBER or kind_of(right) is not ValueKind.NUMBER:
            raise OperandTypeError(builtin.value, "two Numbers", (left, right))
        self._drop(2)
        self.stack.append(_ARITHMETIC[builtin](left, right))

    def _equal(self, builtin: Builtin) -> None:
        left, right = self.stack[-2:]
        self._drop(2)
        self.stack.append(equal(left, right))

    def _ordering(self, builtin: Builtin) -> None:
        left, right = self.stack[-2:]
        self._drop(2)
        order = compare(left, right)
        self.stack.append(order is not None and _ORDERINGS[builtin](order))

    def _not(self, builtin: Builtin) -> None:
        value = self.stack[-1]
        if not isinstance(value, bool):
            raise OperandTypeError(builtin.value, "a Bool", (value,))
        self.stack[-1] = not value

    def _dup(self, builtin: Builtin) -> None:
        self.stack.append(self.stack[-1])

    def _dup2(self, builtin: Builtin) -> None:
        self.stack.extend(self.stack[-2:])

    def _swap(self, builtin: Builtin) -> None:
        self.stack[-2], self.stack[-1] = self.stack[-1], self.stack[-2]

    def _discard(self, builtin: Builtin) -> None:
        self._drop(ARITY[builtin])

    def _over(self, builtin: Builtin) -> None:
        self.stack.append(self.stack[-2])

    def _dupd(self, builtin: Builtin) -> None:
        self.stack.insert(len(self.stack) - 1, self.stack[-2])

    def _rotl(self, builtin: Builtin) -> None:
        a, b, c = self.stack[-3:]
        self.stack[-3:] = [b, c, a]

    def _rotr(self, builtin: Builtin) -> None:
        a, b, c = self.stack[-3:]
        self.stack[-3:] = [c, a, b]

    def _keep(self, builtin: Builtin) -> None:
        saved, quotation = self.stack[-2:]
        if not isinstance(quotation, Procedure):
            raise OperandTypeError(builtin.value, "a Procedure", (quotation,))
        self.stack.pop()
        self.pending.splice((Restore(saved),))
        self.pending.splice(quotation.statements)

    def _eval(self, builtin: Builtin) -> None:
        quotation = self.stack[-1]
        if not isinstance(quotation, Procedure):
            raise OperandTypeError(builtin.value, "a Procedure", (quotation,))
        self.stack.pop()
        self.pending.splice(quotation.statements)

    def _if(self, builtin: Builtin) -> None:
        cond, then, otherwise = self.stack[-3:]
        branch = then if cond is True else otherwise
        if not isinstance(branch, Procedure):
            raise OperandTypeError(builtin.value, "a Procedure branch", (branch,))
        self._drop(3)
        self.pending.splice(branch.statements)

    def _nth(self, builtin: Builtin) -> None:
        index, items = self.stack[-2:]
        if not isinstance(items, tuple) or kind_of(index) is not ValueKind.NUMBER or not index.is_integer():
            raise OperandTypeError(builtin.value, "an integral index and a List", (index, items))
        if index < 0 or index >= len(items):
            raise IndexOutOfRangeError(index, len(items))
        self._drop(2)
        self.stack.append(items[int(index)])

    def _println(self, builtin: Builtin) -> None:
        value = self.stack.pop()
        text = value if isinstance(value, str) else format_value(value)
        print(text, file=self.stdout if self.stdout is not None else sys.stdout)

    def _def(self, builtin: Builtin) -> None:
        target, value = self.stack[-2:]
        name = _definition_name(target)
        if name is None:
            raise DefinitionTargetError(target)
        self._drop(2)
        self.definitions[name] = value
        logger.debug("defined %s", name)


_HANDLERS: Final[dict[Builtin, Callable[[Engine, Builtin], None]]] = {
    Builtin.ADD: Engine._arithmetic,
    Builtin.SUB: Engine._arithmetic,
    Builtin.MUL: Engine._arithmetic,
    Builtin.DIV: Engine._arithmetic,
    Builtin.EQ: Engine._equal,
    Builtin.NOT: Engine._not,
    Builtin.LT: Engine._ordering,
    Builtin.LE: Engine._ordering,
    Builtin.GT: Engine._ordering,
    Builtin.GE: Engine._ordering,
    Builtin.DUP: Engine._dup,
    Builtin.DUP2: Engine._dup2,
    Builtin.SWAP: Engine._swap,
    Builtin.DROP: Engine._discard,
    Builtin.DROP2: Engine._discard,
    Builtin.DROP3: Engine._discard,
    Builtin.OVER: Engine._over,
    Builtin.DUPD: Engine._dupd,
    Builtin.ROTL: Engine._rotl,
    Builtin.ROTR: Engine._rotr,
    Builtin.KEEP: Engine._keep,
    Builtin.EVAL: Engine._eval,
    Builtin.IF: Engine._if,
    Builtin.NTH: Engine._nth,
    Builtin.PRINTLN: Engine._println,
    Builtin.DEF: Engine._def,
}


def run(engine: Engine, program: Program) -> object | None:
    return engine.run(program)


def evaluate(source: str, engine: Engine | None = None) -> object | None:
    """Parse and run ``source``, on a fresh engine unless one is given."""
    try:
        program = _parse_program_cached(source)
    except ParseError as exc:
        raise StackParseError.from_parse_error(exc) from exc
    return run(Engine() if engine is None else engine, program)
