"""Parser for the stack language.

Grammar, in trial order at each statement position::

    program    := line (NEWLINE line)*
    line       := statement* comment?
    statement  := definition | builtin | identifier | expression
    definition := "def" SPACE identifier procedure
    expression := literal | procedure | list
    procedure  := "{" statement* "}"
    list       := "[" expression* "]"

Every rule pushes its name on a context stack, so failures report a layered
"while parsing" trace from the innermost rule outwards.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import NoReturn

from .ast import Bool, Builtin, Definition, Expression, Number, Operator, Procedure, Program, Sequence, Statement, String, Word
from .lexer import LexError, Token, iter_tokens

_EXPRESSION_STARTS = frozenset({"NUMBER", "STRING", "BOOL", "LBRACE", "LBRACK"})
_STATEMENT_EXPECTED = ("Definition", "Builtin", "Identifier", "Expression")
_EXPRESSION_EXPECTED = ("Literal", "Procedure", "List")


class ParseError(SyntaxError):
    def __init__(
        self,
        message: str,
        start: int,
        end: int,
        expected: tuple[str, ...] = (),
        found: str | None = None,
        context: tuple[str, ...] = (),
        incomplete: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.end = end
        self.expected = expected
        self.found = found
        self.context = context
        self.incomplete = incomplete

    def __str__(self) -> str:
        expected_text = ""
        if self.expected:
            expected_text = f"; expected {', '.join(self.expected)}"
        found_text = ""
        if self.found is not None:
            found_text = f"; found {self.found}"
        trace_text = "".join(f" while parsing {rule}" for rule in self.context)
        return f"{self.message} at span [{self.start}, {self.end}){expected_text}{found_text}{trace_text}"


def line_and_column(source: str, offset: int) -> tuple[int, int]:
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def format_parse_error(source: str, err: ParseError) -> str:
    """Render ``err`` with the offending source line and a caret under it."""
    line, column = line_and_column(source, err.start)
    line_start = err.start - (column - 1)
    line_end = source.find("\n", line_start)
    if line_end == -1:
        line_end = len(source)
    text = source[line_start:line_end].rstrip("\r")
    return f"{line}:{column}: {err}\n{text}\n{' ' * (column - 1)}^"


@dataclass
class _Parser:
    source: str
    _tokens: Iterator[Token] = field(init=False)
    _lookahead: list[Token] = field(default_factory=list)
    _rules: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._tokens = iter_tokens(self.source)

    def parse_program(self) -> Program:
        with self._rule("Program"):
            statements: list[Statement] = []
            while True:
                tok = self._peek()
                if tok.kind == "NEWLINE":
                    self._advance()
                    continue
                if tok.kind == "EOF":
                    break
                statements.append(self._parse_statement())
        return Program(statements=tuple(statements))

    def parse_statement_only(self) -> Statement:
        with self._rule("Program"):
            self._skip_newlines()
            stmt = self._parse_statement()
            self._skip_newlines()
            self._expect("EOF")
        return stmt

    @contextmanager
    def _rule(self, name: str):
        self._rules.append(name)
        try:
            yield
        finally:
            self._rules.pop()

    def _context(self) -> tuple[str, ...]:
        return tuple(reversed(self._rules))

    def _peek(self) -> Token:
        if not self._lookahead:
            try:
                self._lookahead.append(next(self._tokens))
            except LexError as exc:
                raise ParseError(
                    exc.message,
                    exc.start,
                    exc.end,
                    expected=exc.expected,
                    found=exc.found,
                    context=(exc.rule, *self._context()),
                    incomplete=exc.incomplete,
                ) from exc
        return self._lookahead[0]

    def _advance(self) -> Token:
        tok = self._peek()
        if tok.kind != "EOF":
            self._lookahead.pop()
        return tok

    def _expect(self, kind: str, *, expected: tuple[str, ...] | None = None) -> Token:
        tok = self._peek()
        if tok.kind != kind:
            self._error(tok, expected=expected or (kind,))
        return self._advance()

    def _skip_newlines(self) -> None:
        while self._peek().kind == "NEWLINE":
            self._advance()

    def _error(self, tok: Token, *, message: str | None = None, expected: tuple[str, ...] = ()) -> NoReturn:
        if message is not None:
            detail = message
        elif tok.kind == "EOF":
            detail = "Unexpected end of input"
        else:
            detail = "Unexpected token"
        if tok.kind in {"EOF", "NEWLINE"}:
            found = tok.kind
        else:
            found = f"{tok.kind}({tok.text})"
        raise ParseError(
            detail,
            tok.pos,
            tok.end,
            expected=tuple(dict.fromkeys(expected)),
            found=found,
            context=self._context(),
            # Only open constructs ever ask for more tokens at end of input.
            incomplete=tok.kind == "EOF",
        )

    def _commits_definition(self, tok: Token) -> bool:
        if tok.end >= len(self.source) or self.source[tok.end] not in " \t":
            return False
        rest = self.source[tok.end :].lstrip(" \t")
        return bool(rest) and rest[0] not in "\r\n#}]"

    def _parse_statement(self) -> Statement:
        with self._rule("Statement"):
            tok = self._peek()
            if tok.kind == "BUILTIN":
                if tok.text == Builtin.DEF.value and self._commits_definition(tok):
                    return self._parse_definition()
                self._advance()
                return Operator(Builtin(tok.text))
            if tok.kind == "NAME":
                self._advance()
                return Word(tok.text)
            if tok.kind not in _EXPRESSION_STARTS:
                self._error(tok, expected=_STATEMENT_EXPECTED)
            return self._parse_expression()

    def _parse_definition(self) -> Definition:
        with self._rule("Definition"):
            self._advance()
            with self._rule("Identifier"):
                name = self._expect("NAME", expected=("Identifier",)).text
            if self._peek().kind != "LBRACE":
                self._error(self._peek(), expected=("Procedure",))
            body = self._parse_procedure()
        return Definition(name=name, body=body)

    def _parse_expression(self) -> Expression:
        with self._rule("Expression"):
            tok = self._peek()
            if tok.kind == "NUMBER":
                self._advance()
                return Number(float(tok.text))
            if tok.kind == "STRING":
                self._advance()
                return String(tok.text)
            if tok.kind == "BOOL":
                self._advance()
                return Bool(tok.text == "true")
            if tok.kind == "LBRACE":
                return self._parse_procedure()
            if tok.kind == "LBRACK":
                return self._parse_list()
            self._error(tok, expected=_EXPRESSION_EXPECTED)

    def _parse_procedure(self) -> Procedure:
        with self._rule("Procedure"):
            self._expect("LBRACE")
            statements: list[Statement] = []
            while True:
                tok = self._peek()
                if tok.kind == "NEWLINE":
                    self._advance()
                    continue
                if tok.kind == "RBRACE":
                    self._advance()
                    break
                if tok.kind == "EOF":
                    self._error(tok, message="Unterminated procedure", expected=("}",))
                statements.append(self._parse_statement())
        return Procedure(statements=tuple(statements))

    def _parse_list(self) -> Sequence:
        with self._rule("List"):
            self._expect("LBRACK")
            items: list[Expression] = []
            while True:
                tok = self._peek()
                if tok.kind == "NEWLINE":
                    self._advance()
                    continue
                if tok.kind == "RBRACK":
                    self._advance()
                    break
                if tok.kind == "EOF":
                    self._error(tok, message="Unterminated list", expected=("]",))
                items.append(self._parse_expression())
        return Sequence(items=tuple(items))


def parse(source: str) -> Program:
    """Parse a complete program; all input must be consumed."""
    return _Parser(source).parse_program()


def parse_statement(source: str) -> Statement:
    """Parse source holding exactly one statement."""
    return _Parser(source).parse_statement_only()
