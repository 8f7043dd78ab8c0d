"""Lox AST — parse-time node definitions.

Nodes compare and hash by identity (`eq=False`): the resolver keys its
distance table by node, so two textually identical references stay distinct.
"""

from __future__ import annotations

from dataclasses import dataclass

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(eq=False)
class Expr:
    """Base for all expressions."""


@dataclass(eq=False)
class Literal(Expr):
    """nil, true, false, number, or string."""

    value: object


@dataclass(eq=False)
class Grouping(Expr):
    """( expression )."""

    expression: Expr


@dataclass(eq=False)
class Unary(Expr):
    """! right | - right."""

    operator: Token
    right: Expr


@dataclass(eq=False)
class Binary(Expr):
    """Arithmetic, comparison and equality operators."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Logical(Expr):
    """Short-circuit `and` / `or`."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Variable(Expr):
    name: Token


@dataclass(eq=False)
class Assign(Expr):
    name: Token
    value: Expr


@dataclass(eq=False)
class Call(Expr):
    """callee(arguments); paren is the closing ')' for error lines."""

    callee: Expr
    paren: Token
    arguments: list[Expr]


@dataclass(eq=False)
class Get(Expr):
    """object.name"""

    object: Expr
    name: Token


@dataclass(eq=False)
class Set(Expr):
    """object.name = value"""

    object: Expr
    name: Token
    value: Expr


@dataclass(eq=False)
class This(Expr):
    keyword: Token


@dataclass(eq=False)
class Super(Expr):
    """super.method"""

    keyword: Token
    method: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(eq=False)
class Stmt:
    """Base for all statements."""


@dataclass(eq=False)
class ExprStmt(Stmt):
    expression: Expr


@dataclass(eq=False)
class PrintStmt(Stmt):
    expression: Expr


@dataclass(eq=False)
class VarStmt(Stmt):
    """var name ( = initializer )? ;"""

    name: Token
    initializer: Expr | None


@dataclass(eq=False)
class BlockStmt(Stmt):
    statements: list[Stmt]


@dataclass(eq=False)
class IfStmt(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass(eq=False)
class WhileStmt(Stmt):
    condition: Expr
    body: Stmt


@dataclass(eq=False)
class FunctionStmt(Stmt):
    """fun name(params) { body }, also used for methods."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass(eq=False)
class ClassStmt(Stmt):
    """class Name < Superclass { methods }."""

    name: Token
    superclass: Variable | None
    methods: list[FunctionStmt]


@dataclass(eq=False)
class ReturnStmt(Stmt):
    keyword: Token
    value: Expr | None
