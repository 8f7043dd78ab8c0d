"""Lox diagnostics — error base class and the shared reporter sink."""

from __future__ import annotations

import sys
from typing import TextIO


class LoxError(Exception):
    """A diagnostic with a source line and a location context.

    `where` is the location suffix printed after "Error": empty for lexical
    errors, " at 'lexeme'" or " at end" for errors anchored on a token.
    """

    def __init__(self, msg: str, line: int, where: str = ""):
        self.msg: str = msg
        self.line: int = line
        self.where: str = where
        super().__init__(msg + " at line " + str(line))

    def report_text(self) -> str:
        return "[line " + str(self.line) + "] Error" + self.where + ": " + self.msg


class Reporter:
    """Collects diagnostics and echoes them to a text stream.

    Lexical, syntax and resolution errors accumulate; a runtime error is
    recorded separately since it halts the run that raised it.
    """

    def __init__(self, stream: TextIO | None = None, *, echo: bool = True):
        self.stream: TextIO | None = stream
        self.echo: bool = echo
        self.errors: list[LoxError] = []
        self.runtime_errors: list[LoxError] = []

    @property
    def had_error(self) -> bool:
        return len(self.errors) > 0

    @property
    def had_runtime_error(self) -> bool:
        return len(self.runtime_errors) > 0

    def error(self, err: LoxError) -> None:
        self.errors.append(err)
        self._write(err.report_text())

    def runtime_error(self, err: LoxError) -> None:
        self.runtime_errors.append(err)
        self._write(err.report_text())

    def reset(self) -> None:
        self.errors = []
        self.runtime_errors = []

    def _write(self, text: str) -> None:
        if not self.echo:
            return
        stream = self.stream if self.stream is not None else sys.stderr
        stream.write(text + "\n")
