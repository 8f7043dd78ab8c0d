"""Lox tree printer — renders parsed nodes as parenthesized prefix text.

Total over the node types in `lox/ast.py`: a new node type needs a case here.
"""

from __future__ import annotations

from .ast import (
    Assign,
    Binary,
    BlockStmt,
    Call,
    ClassStmt,
    Expr,
    ExprStmt,
    FunctionStmt,
    Get,
    Grouping,
    IfStmt,
    Literal,
    Logical,
    PrintStmt,
    ReturnStmt,
    Set,
    Stmt,
    Super,
    This,
    Unary,
    VarStmt,
    Variable,
    WhileStmt,
)
from .runtime import stringify


def print_expr(expr: Expr) -> str:
    """Render one expression, e.g. `(* (- 123) (group 45.67))`."""
    return _Printer().render_expr(expr)


def print_program(stmts: list[Stmt]) -> str:
    """Render statements one per line, e.g. `(var a 1)`."""
    printer = _Printer()
    return "\n".join(printer.render_stmt(stmt) for stmt in stmts)


class _Printer:
    # ── Statements ──────────────────────────────────────────

    def render_stmt(self, stmt: Stmt) -> str:
        if isinstance(stmt, ExprStmt):
            return self._paren("expr", [self.render_expr(stmt.expression)])
        if isinstance(stmt, PrintStmt):
            return self._paren("print", [self.render_expr(stmt.expression)])
        if isinstance(stmt, VarStmt):
            parts = [stmt.name.lexeme]
            if stmt.initializer is not None:
                parts.append(self.render_expr(stmt.initializer))
            return self._paren("var", parts)
        if isinstance(stmt, BlockStmt):
            return self._paren("block", [self.render_stmt(s) for s in stmt.statements])
        if isinstance(stmt, IfStmt):
            parts = [self.render_expr(stmt.condition), self.render_stmt(stmt.then_branch)]
            if stmt.else_branch is not None:
                parts.append(self.render_stmt(stmt.else_branch))
            return self._paren("if", parts)
        if isinstance(stmt, WhileStmt):
            return self._paren("while", [self.render_expr(stmt.condition), self.render_stmt(stmt.body)])
        if isinstance(stmt, FunctionStmt):
            return self._render_function(stmt)
        if isinstance(stmt, ClassStmt):
            parts = [stmt.name.lexeme]
            if stmt.superclass is not None:
                parts.append("<")
                parts.append(stmt.superclass.name.lexeme)
            for method in stmt.methods:
                parts.append(self._render_function(method))
            return self._paren("class", parts)
        if isinstance(stmt, ReturnStmt):
            if stmt.value is None:
                return "(return)"
            return self._paren("return", [self.render_expr(stmt.value)])
        raise TypeError("unhandled statement type: " + type(stmt).__name__)

    def _render_function(self, fn: FunctionStmt) -> str:
        params = "(" + " ".join(p.lexeme for p in fn.params) + ")"
        parts = [fn.name.lexeme, params]
        for stmt in fn.body:
            parts.append(self.render_stmt(stmt))
        return self._paren("fun", parts)

    # ── Expressions ─────────────────────────────────────────

    def render_expr(self, expr: Expr) -> str:
        if isinstance(expr, Literal):
            return stringify(expr.value)
        if isinstance(expr, Grouping):
            return self._paren("group", [self.render_expr(expr.expression)])
        if isinstance(expr, Unary):
            return self._paren(expr.operator.lexeme, [self.render_expr(expr.right)])
        if isinstance(expr, (Binary, Logical)):
            return self._paren(
                expr.operator.lexeme,
                [self.render_expr(expr.left), self.render_expr(expr.right)],
            )
        if isinstance(expr, Variable):
            return expr.name.lexeme
        if isinstance(expr, Assign):
            return self._paren("=", [expr.name.lexeme, self.render_expr(expr.value)])
        if isinstance(expr, Call):
            parts = [self.render_expr(expr.callee)]
            for arg in expr.arguments:
                parts.append(self.render_expr(arg))
            return self._paren("call", parts)
        if isinstance(expr, Get):
            return self._paren(".", [self.render_expr(expr.object), expr.name.lexeme])
        if isinstance(expr, Set):
            return self._paren(
                "=",
                [self._paren(".", [self.render_expr(expr.object), expr.name.lexeme]), self.render_expr(expr.value)],
            )
        if isinstance(expr, This):
            return "this"
        if isinstance(expr, Super):
            return self._paren("super", [expr.method.lexeme])
        raise TypeError("unhandled expression type: " + type(expr).__name__)

    def _paren(self, name: str, parts: list[str]) -> str:
        if len(parts) == 0:
            return "(" + name + ")"
        return "(" + name + " " + " ".join(parts) + ")"
