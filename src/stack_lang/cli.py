"""Run a stack-lang program from a file or standard input, or start an interactive session."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

from . import __version__
from .errors import StackRuntimeError
from .evaluator import Engine, run
from .parser import ParseError, format_parse_error, parse
from .values import format_stack, format_value

EXIT_OK = 0
EXIT_RUNTIME_ERROR = 1
EXIT_PARSE_ERROR = 2

PROMPT = ">>> "
CONTINUATION_PROMPT = "... "

logger = logging.getLogger(__name__)


def print_trace(statement, stack: tuple[object, ...]) -> None:
    print(f"DEBUG: Executing {statement}")
    print(f"DEBUG: Stack: {format_stack(stack)}")


def run_source(source: str, engine: Engine) -> int:
    try:
        program = parse(source)
    except ParseError as exc:
        print(f"Parser error: {format_parse_error(source, exc)}", file=sys.stderr)
        return EXIT_PARSE_ERROR

    try:
        run(engine, program)
    except StackRuntimeError as exc:
        print(f"Interpreter error: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    return EXIT_OK


def run_repl(engine: Engine, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout

    print(f"stack-lang v{__version__}", file=stdout)
    buffer = ""
    prompt = PROMPT
    while True:
        stdout.write(prompt)
        stdout.flush()
        line = stdin.readline()
        if not line:
            stdout.write("\n")
            return EXIT_OK

        buffer += line
        logger.debug("input: %r", buffer)
        try:
            program = parse(buffer)
        except ParseError as exc:
            if exc.incomplete:
                prompt = CONTINUATION_PROMPT
                continue
            print(f"Parser error: {format_parse_error(buffer, exc)}", file=sys.stderr)
            buffer = ""
            prompt = PROMPT
            continue

        buffer = ""
        prompt = PROMPT
        try:
            result = run(engine, program)
        except StackRuntimeError as exc:
            print(exc, file=sys.stderr)
            engine.clear_pending()
            continue
        if result is not None:
            print(format_value(result), file=stdout)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="stack-lang", description=__doc__)
    parser.add_argument("file", nargs="?", help="file to read, or - for standard input")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="print every executed statement and the resulting stack",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="logging threshold for diagnostics on stderr",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    engine = Engine(trace=print_trace if args.verbose else None)

    if args.file is not None and args.file != "-":
        try:
            source = Path(args.file).read_text(encoding="utf-8")
        except OSError as exc:
            print(f"Couldn't read {args.file}: {exc}", file=sys.stderr)
            return EXIT_PARSE_ERROR
        return run_source(source, engine)

    if args.file is None and sys.stdin.isatty():
        try:
            import readline  # noqa: F401
        except ImportError:
            pass

        return run_repl(engine)
    return run_source(sys.stdin.read(), engine)
