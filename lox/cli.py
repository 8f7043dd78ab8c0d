"""Lox CLI — run .lox files or an interactive prompt."""

from __future__ import annotations

import logging
import sys

from .emit import print_expr
from .errors import Reporter
from .parse import Parser
from .session import (
    EXIT_NO_INPUT,
    EXIT_OK,
    EXIT_STATIC_ERROR,
    EXIT_USAGE,
    Session,
)
from .tokens import tokenize


USAGE: str = """\
lox [OPTIONS] [SCRIPT]

Run a Lox program, or start an interactive prompt when no SCRIPT is given.

Options:
  --single COMPONENT  Run one component only: scanner, parser or evaluator
  --debug             Log pipeline stages to stderr
  --help              Show this help message
"""

COMPONENTS: set[str] = {"scanner", "parser", "evaluator"}

PROMPT: str = "> "


def run_scanner(source: str) -> int:
    reporter = Reporter(sys.stderr)
    for tok in tokenize(source, reporter):
        print(tok)
    return EXIT_STATIC_ERROR if reporter.had_error else EXIT_OK


def run_parser(source: str) -> int:
    reporter = Reporter(sys.stderr)
    expr = Parser(tokenize(source, reporter), reporter).parse_expression()
    if reporter.had_error or expr is None:
        return EXIT_STATIC_ERROR
    print(print_expr(expr))
    return EXIT_OK


def run_prompt(session: Session) -> int:
    """Read-eval-print loop; globals persist, errors never end the loop."""
    while True:
        sys.stdout.write(PROMPT)
        sys.stdout.flush()
        try:
            line = sys.stdin.readline()
        except KeyboardInterrupt:
            sys.stdout.write("\n")
            return EXIT_OK
        if line == "":
            return EXIT_OK
        session.run(line)


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    component: str = ""
    debug = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return EXIT_OK
        elif arg == "--debug":
            debug = True
            i += 1
        elif arg == "--single":
            if i + 1 >= len(args) or args[i + 1] not in COMPONENTS:
                print(
                    "lox: options for --single are 'scanner', 'parser' or 'evaluator'",
                    file=sys.stderr,
                )
                return EXIT_USAGE
            component = args[i + 1]
            i += 2
        elif arg.startswith("-"):
            print("lox: unknown flag '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("lox: unexpected argument '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE

    if debug:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        pkg_logger = logging.getLogger("lox")
        pkg_logger.addHandler(handler)
        pkg_logger.setLevel(logging.DEBUG)

    session = Session(sys.stdout, sys.stderr)
    if filepath == "":
        if component != "":
            print("lox: --single needs a SCRIPT", file=sys.stderr)
            return EXIT_USAGE
        return run_prompt(session)

    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("lox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EXIT_NO_INPUT
    except OSError as e:
        print("lox: " + filepath + ": " + str(e), file=sys.stderr)
        return EXIT_NO_INPUT
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("lox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EXIT_NO_INPUT

    if component == "scanner":
        return run_scanner(source)
    if component == "parser":
        return run_parser(source)
    if component == "evaluator":
        return session.run_expression(source)
    return session.run(source)


if __name__ == "__main__":
    sys.exit(main())
