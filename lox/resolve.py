"""Lox resolver — binds every local variable use to a static scope distance.

Runs once over the parsed statements before execution. It evaluates nothing:
it fills the distance table the interpreter reads on every variable access,
and reports the errors that are visible without running the program.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Iterable

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
from .errors import LoxError, Reporter
from .parse import error_where
from .tokens import Token

logger = logging.getLogger(__name__)


# ============================================================
# RESOLUTION CONTEXT
# ============================================================

FN_NONE: str = "none"
FN_FUNCTION: str = "function"
FN_METHOD: str = "method"
FN_INITIALIZER: str = "initializer"

CLASS_NONE: str = "none"
CLASS_CLASS: str = "class"
CLASS_SUBCLASS: str = "subclass"


@dataclass(frozen=True)
class Context:
    """Kinds of the innermost enclosing function and class.

    Passed down each recursive call; a nested region gets a derived copy, so
    leaving it restores the enclosing kinds without any bookkeeping.
    """

    function: str = FN_NONE
    klass: str = CLASS_NONE


class ResolveError(LoxError):
    """Static error found before execution."""

    def __init__(self, msg: str, tok: Token):
        super().__init__(msg, tok.line, error_where(tok))
        self.token: Token = tok


# ============================================================
# RESOLVER
# ============================================================


class Resolver:
    def __init__(self, reporter: Reporter | None = None, known_globals: Iterable[str] = ()):
        self.reporter: Reporter = reporter if reporter is not None else Reporter(echo=False)
        # name -> initialized, innermost scope last
        self.scopes: list[dict[str, bool]] = []
        self.globals: dict[str, bool] = {name: True for name in known_globals}
        self.locals: dict[Expr, int] = {}
        # Line of the last name seen, for errors not anchored on a token.
        self.line: int = 1

    def error(self, tok: Token, msg: str) -> None:
        self.reporter.error(ResolveError(msg, tok))

    def resolve_program(self, stmts: list[Stmt]) -> None:
        """Resolve top-level statements; a tree too deep to walk is reported."""
        for stmt in stmts:
            try:
                self.resolve_stmt(stmt, Context())
            except RecursionError:
                self.scopes = []
                self.reporter.error(LoxError("Program nests too deeply.", self.line))

    # ── Scope management ──────────────────────────────────────

    def begin_scope(self) -> None:
        self.scopes.append({})

    def end_scope(self) -> None:
        self.scopes.pop()

    def declare(self, name: Token) -> None:
        self.line = name.line
        if len(self.scopes) == 0:
            # Globals may be redefined; a redefinition is never half-declared.
            if name.lexeme not in self.globals:
                self.globals[name.lexeme] = False
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            self.error(name, "Already a variable with this name in this scope.")
        scope[name.lexeme] = False

    def define(self, name: Token) -> None:
        if len(self.scopes) == 0:
            self.globals[name.lexeme] = True
            return
        self.scopes[-1][name.lexeme] = True

    def resolve_local(self, expr: Expr, name: Token) -> None:
        """Record the hop count to the nearest initialized declaration.

        A declaration still being initialized is skipped, so an initializer
        sees the outer binding it shadows. No entry means global.
        """
        self.line = name.line
        skipped = False
        i = len(self.scopes) - 1
        while i >= 0:
            scope = self.scopes[i]
            if name.lexeme in scope:
                if scope[name.lexeme]:
                    self.locals[expr] = len(self.scopes) - 1 - i
                    return
                skipped = True
            i -= 1
        initialized = self.globals.get(name.lexeme)
        if initialized is False or (skipped and initialized is None):
            self.error(name, "Can't read local variable in its own initializer.")

    # ── Statements ────────────────────────────────────────────

    def resolve_stmts(self, stmts: list[Stmt], ctx: Context) -> None:
        for stmt in stmts:
            self.resolve_stmt(stmt, ctx)

    def resolve_stmt(self, stmt: Stmt, ctx: Context) -> None:
        match stmt:
            case BlockStmt(statements=statements):
                self.begin_scope()
                self.resolve_stmts(statements, ctx)
                self.end_scope()
            case VarStmt(name=name, initializer=initializer):
                self.declare(name)
                if initializer is not None:
                    self.resolve_expr(initializer, ctx)
                self.define(name)
            case FunctionStmt(name=name):
                # Defined before the body so the function can recurse.
                self.declare(name)
                self.define(name)
                self.resolve_function(stmt, FN_FUNCTION, ctx)
            case ClassStmt():
                self.resolve_class(stmt, ctx)
            case ExprStmt(expression=expression):
                self.resolve_expr(expression, ctx)
            case PrintStmt(expression=expression):
                self.resolve_expr(expression, ctx)
            case IfStmt(condition=condition, then_branch=then_branch, else_branch=else_branch):
                self.resolve_expr(condition, ctx)
                self.resolve_stmt(then_branch, ctx)
                if else_branch is not None:
                    self.resolve_stmt(else_branch, ctx)
            case WhileStmt(condition=condition, body=body):
                self.resolve_expr(condition, ctx)
                self.resolve_stmt(body, ctx)
            case ReturnStmt(keyword=keyword, value=value):
                if ctx.function == FN_NONE:
                    self.error(keyword, "Can't return from top-level code.")
                if value is not None:
                    if ctx.function == FN_INITIALIZER:
                        self.error(keyword, "Can't return a value from an initializer.")
                    self.resolve_expr(value, ctx)
            case _:
                raise TypeError("unhandled statement type: " + type(stmt).__name__)

    def resolve_function(self, fn: FunctionStmt, kind: str, ctx: Context) -> None:
        inner = replace(ctx, function=kind)
        self.begin_scope()
        for param in fn.params:
            self.declare(param)
            self.define(param)
        self.resolve_stmts(fn.body, inner)
        self.end_scope()

    def resolve_class(self, stmt: ClassStmt, ctx: Context) -> None:
        self.declare(stmt.name)
        self.define(stmt.name)
        inner = replace(ctx, klass=CLASS_CLASS)
        superclass = stmt.superclass
        if superclass is not None:
            if superclass.name.lexeme == stmt.name.lexeme:
                self.error(superclass.name, "A class can't inherit from itself.")
            inner = replace(ctx, klass=CLASS_SUBCLASS)
            self.resolve_expr(superclass, ctx)
            self.begin_scope()
            self.scopes[-1]["super"] = True

        self.begin_scope()
        self.scopes[-1]["this"] = True
        for method in stmt.methods:
            kind = FN_METHOD
            if method.name.lexeme == "init":
                kind = FN_INITIALIZER
            self.resolve_function(method, kind, inner)
        self.end_scope()

        if superclass is not None:
            self.end_scope()

    # ── Expressions ───────────────────────────────────────────

    def resolve_expr(self, expr: Expr, ctx: Context) -> None:
        match expr:
            case Variable(name=name):
                self.resolve_local(expr, name)
            case Assign(name=name, value=value):
                self.resolve_expr(value, ctx)
                self.resolve_local(expr, name)
            case Binary(left=left, right=right) | Logical(left=left, right=right):
                self.resolve_expr(left, ctx)
                self.resolve_expr(right, ctx)
            case Unary(right=right):
                self.resolve_expr(right, ctx)
            case Grouping(expression=inner):
                self.resolve_expr(inner, ctx)
            case Literal():
                pass
            case Call(callee=callee, arguments=arguments):
                self.resolve_expr(callee, ctx)
                for arg in arguments:
                    self.resolve_expr(arg, ctx)
            case Get(object=obj):
                self.resolve_expr(obj, ctx)
            case Set(object=obj, value=value):
                self.resolve_expr(value, ctx)
                self.resolve_expr(obj, ctx)
            case This(keyword=keyword):
                if ctx.klass == CLASS_NONE:
                    self.error(keyword, "Can't use 'this' outside of a class.")
                    return
                self.resolve_local(expr, keyword)
            case Super(keyword=keyword):
                if ctx.klass == CLASS_NONE:
                    self.error(keyword, "Can't use 'super' outside of a class.")
                elif ctx.klass != CLASS_SUBCLASS:
                    self.error(keyword, "Can't use 'super' in a class with no superclass.")
                else:
                    self.resolve_local(expr, keyword)
            case _:
                raise TypeError("unhandled expression type: " + type(expr).__name__)


# ============================================================
# PUBLIC API
# ============================================================


def resolve(
    stmts: list[Stmt],
    reporter: Reporter | None = None,
    known_globals: Iterable[str] = (),
) -> dict[Expr, int]:
    """Resolve parsed statements. Returns the distance table (node -> hops)."""
    resolver = Resolver(reporter, known_globals)
    resolver.resolve_program(stmts)
    logger.debug("resolved %d local references", len(resolver.locals))
    return resolver.locals
