"""Lox session — one tokenize/parse/resolve/execute cycle per input.

A `Session` keeps its interpreter between runs, so globals declared by one
input stay visible to the next (the interactive prompt depends on this).
"""

from __future__ import annotations

from dataclasses import dataclass
import io
import logging
import sys
from typing import TextIO

from .errors import Reporter
from .parse import Parser
from .resolve import resolve
from .runtime import Interpreter
from .tokens import tokenize

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_STATIC_ERROR = 65
EXIT_NO_INPUT = 66
EXIT_RUNTIME_ERROR = 70


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    stderr: str


class Session:
    def __init__(self, stdout: TextIO | None = None, stderr: TextIO | None = None):
        self.stdout: TextIO = stdout if stdout is not None else sys.stdout
        self.stderr: TextIO = stderr if stderr is not None else sys.stderr
        self.reporter: Reporter = Reporter(self.stderr)
        self.interpreter: Interpreter = Interpreter(self.reporter, out=self.stdout)

    def _status(self) -> int:
        if self.reporter.had_error:
            return EXIT_STATIC_ERROR
        if self.reporter.had_runtime_error:
            return EXIT_RUNTIME_ERROR
        return EXIT_OK

    def run(self, source: str) -> int:
        """Run a program. Returns 0, 65 (static error) or 70 (runtime error)."""
        self.reporter.reset()
        tokens = tokenize(source, self.reporter)
        logger.debug("scanned %d tokens", len(tokens))
        stmts = Parser(tokens, self.reporter).parse()
        logger.debug("parsed %d statements", len(stmts))
        if self.reporter.had_error:
            return self._status()
        known = self.interpreter.globals.values.keys()
        locals_ = resolve(stmts, self.reporter, known)
        if self.reporter.had_error:
            return self._status()
        self.interpreter.resolve(locals_)
        self.interpreter.interpret(stmts)
        return self._status()

    def run_expression(self, source: str) -> int:
        """Evaluate a single expression and print its value."""
        self.reporter.reset()
        tokens = tokenize(source, self.reporter)
        expr = Parser(tokens, self.reporter).parse_expression()
        if self.reporter.had_error or expr is None:
            return EXIT_STATIC_ERROR
        self.interpreter.interpret_expression(expr)
        return self._status()


def run(source: str) -> RunResult:
    """Run a program in a fresh session, capturing its output."""
    out = io.StringIO()
    err = io.StringIO()
    session = Session(out, err)
    code = session.run(source)
    return RunResult(code, out.getvalue(), err.getvalue())
