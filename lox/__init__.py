"""Lox tree-walking interpreter — public API."""

from __future__ import annotations

import logging

from .ast import Expr, Stmt
from .emit import print_expr, print_program
from .errors import LoxError as LoxError, Reporter as Reporter
from .parse import ParseError as ParseError, Parser
from .resolve import ResolveError as ResolveError, resolve as resolve
from .runtime import Interpreter as Interpreter, LoxRuntimeError as LoxRuntimeError
from .session import RunResult as RunResult, Session as Session, run as run
from .tokens import Token as Token, TokenizeError as TokenizeError, tokenize

logging.getLogger(__name__).addHandler(logging.NullHandler())


def parse(source: str) -> list[Stmt]:
    """Parse Lox source into statements. Raises the first syntax error."""
    reporter = Reporter(echo=False)
    stmts = Parser(tokenize(source, reporter), reporter).parse()
    if reporter.had_error:
        raise reporter.errors[0]
    return stmts


def parse_expression(source: str) -> Expr:
    """Parse a single Lox expression. Raises the first syntax error."""
    reporter = Reporter(echo=False)
    expr = Parser(tokenize(source, reporter), reporter).parse_expression()
    if reporter.had_error or expr is None:
        raise reporter.errors[0]
    return expr


def emit(stmts: list[Stmt]) -> str:
    """Render parsed statements as prefix trees, one per line."""
    return print_program(stmts)
