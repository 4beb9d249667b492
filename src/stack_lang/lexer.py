"""Tokenization for the stack language.

Tokens are space-separated: after a literal, a name, a builtin or a closing
delimiter the next character must be whitespace, a comment, a closing
delimiter or the end of input. Builtins are matched against an explicitly
ordered table, so a spelling that is a prefix of another one is only tried
after the longer one.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import Final


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int


class LexError(SyntaxError):
    """Scanning failure with the span and the rule that was being scanned."""

    def __init__(
        self,
        message: str,
        start: int,
        end: int,
        *,
        rule: str,
        expected: tuple[str, ...] = (),
        found: str | None = None,
        incomplete: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.end = end
        self.rule = rule
        self.expected = expected
        self.found = found
        self.incomplete = incomplete


# Longest spelling first wherever one builtin is a prefix of another.
BUILTIN_TOKENS: Final[tuple[str, ...]] = (
    "<=",
    "<",
    ">=",
    ">",
    "+",
    "-",
    "*",
    "/",
    "=",
    "!",
    "2dup",
    "2drop",
    "3drop",
    "dupd",
    "dup",
    "drop",
    "swap",
    "over",
    "rotl",
    "rotr",
    "keep",
    "eval",
    "if",
    "nth",
    "println",
    "def",
)

BOOL_LITERALS: Final[frozenset[str]] = frozenset({"true", "false"})
RESERVED_WORDS: Final[frozenset[str]] = frozenset(BUILTIN_TOKENS) | BOOL_LITERALS

_HORIZONTAL_SPACE = frozenset(" \t\f\v")
_LINE_BREAKS = frozenset("\n\r")
_OPENERS = {"{": "LBRACE", "[": "LBRACK"}
_CLOSERS = {"}": "RBRACE", "]": "RBRACK"}

_NUMBER_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}
_RENDER_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalpha())


def _is_ident_continue(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def _scan_while(source: str, start: int, predicate) -> tuple[str, int]:
    i = start
    while i < len(source) and predicate(source[i]):
        i += 1
    return source[start:i], i


def _at_boundary(source: str, i: int) -> bool:
    if i >= len(source):
        return True
    ch = source[i]
    return ch in _HORIZONTAL_SPACE or ch in _LINE_BREAKS or ch == "#" or ch in _CLOSERS


def _describe_char(source: str, i: int) -> str:
    return "EOF" if i >= len(source) else repr(source[i])


def _expect_boundary(source: str, i: int, rule: str) -> None:
    if not _at_boundary(source, i):
        raise LexError(
            "Missing whitespace between statements",
            i,
            i + 1,
            rule=rule,
            expected=("whitespace",),
            found=_describe_char(source, i),
        )


def _scan_identifier(source: str, start: int) -> int | None:
    if not _is_ident_start(source[start]):
        return None
    _, i = _scan_while(source, start + 1, _is_ident_continue)
    if i < len(source) and source[i] == "?":
        i += 1
    return i


def _match_builtin(source: str, start: int) -> str | None:
    for spelling in BUILTIN_TOKENS:
        if source.startswith(spelling, start) and _at_boundary(source, start + len(spelling)):
            return spelling
    return None


def is_identifier(text: str) -> bool:
    """True when ``text`` is a complete, non-reserved identifier."""
    if not text or text in RESERVED_WORDS:
        return False
    return _scan_identifier(text, 0) == len(text)


def _parse_escape(source: str, start: int, literal_start: int) -> tuple[str, int]:
    if start >= len(source):
        raise LexError(
            "Unterminated string literal",
            literal_start,
            len(source),
            rule="String",
            expected=('"',),
            found="EOF",
            incomplete=True,
        )

    esc = source[start]
    if esc in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[esc], start + 1

    if esc == "u":
        close = source.find("}", start)
        if start + 1 >= len(source) or source[start + 1] != "{" or close == -1:
            raise LexError(f"Invalid \\u escape at index {start - 1}", start - 1, start + 1, rule="String")
        digits = source[start + 2 : close]
        if not digits or len(digits) > 6 or not all(ch in "0123456789abcdefABCDEF" for ch in digits):
            raise LexError(f"Invalid \\u escape at index {start - 1}", start - 1, close + 1, rule="String")
        code = int(digits, 16)
        if 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
            raise LexError(f"Invalid \\u escape at index {start - 1}", start - 1, close + 1, rule="String")
        return chr(code), close + 1

    raise LexError(f"Unknown escape sequence \\{esc} at index {start - 1}", start - 1, start + 1, rule="String")


def _scan_string(source: str, start: int) -> tuple[str, int]:
    assert source[start] == '"'
    i = start + 1
    out: list[str] = []
    while i < len(source):
        ch = source[i]
        if ch == '"':
            return "".join(out), i + 1
        if ch == "\\":
            escaped, i = _parse_escape(source, i + 1, start)
            out.append(escaped)
            continue
        out.append(ch)
        i += 1
    raise LexError(
        "Unterminated string literal",
        start,
        len(source),
        rule="String",
        expected=('"',),
        found="EOF",
        incomplete=True,
    )


def render_string(text: str) -> str:
    """Quote ``text`` so that scanning the result yields ``text`` again."""
    out: list[str] = []
    for ch in text:
        if ch in _RENDER_ESCAPES:
            out.append(_RENDER_ESCAPES[ch])
        elif not ch.isprintable():
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def render_number(value: float) -> str:
    """Shortest decimal form without exponent; integral values drop the fraction.

    ``inf``, ``-inf`` and ``NaN`` are display-only: they are not number
    literals, so only finite values read back as the same Number.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def iter_tokens(source: str) -> Iterator[Token]:
    i = 0
    n = len(source)

    while i < n:
        ch = source[i]

        if ch in _HORIZONTAL_SPACE:
            i += 1
            continue

        if ch == "#":
            while i < n and source[i] not in _LINE_BREAKS:
                i += 1
            continue

        if ch in _LINE_BREAKS:
            start = i
            while i < n and (source[i] in _LINE_BREAKS or source[i] in _HORIZONTAL_SPACE):
                i += 1
            yield Token("NEWLINE", "\n", start, i)
            continue

        if ch in _OPENERS:
            yield Token(_OPENERS[ch], ch, i, i + 1)
            i += 1
            continue

        if ch in _CLOSERS:
            _expect_boundary(source, i + 1, "Statement")
            yield Token(_CLOSERS[ch], ch, i, i + 1)
            i += 1
            continue

        if ch == '"':
            value, end = _scan_string(source, i)
            _expect_boundary(source, end, "String")
            yield Token("STRING", value, i, end)
            i = end
            continue

        spelling = _match_builtin(source, i)
        if spelling is not None:
            end = i + len(spelling)
            yield Token("BUILTIN", spelling, i, end)
            i = end
            continue

        end = _scan_identifier(source, i)
        if end is not None:
            _expect_boundary(source, end, "Identifier")
            text = source[i:end]
            yield Token("BOOL" if text in BOOL_LITERALS else "NAME", text, i, end)
            i = end
            continue

        m = _NUMBER_RE.match(source, i)
        if m is not None:
            end = m.end()
            _expect_boundary(source, end, "Number")
            yield Token("NUMBER", m.group(0), i, end)
            i = end
            continue

        raise LexError(
            f"Unexpected character {ch!r} at index {i}",
            i,
            i + 1,
            rule="Statement",
            found=repr(ch),
        )

    yield Token("EOF", "", n, n)


def tokenize(source: str) -> list[Token]:
    return list(iter_tokens(source))
