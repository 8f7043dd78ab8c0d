"""Lox parser — recursive descent, one method per grammar production."""

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
from .errors import LoxError, Reporter
from .tokens import (
    TK_EOF,
    TK_FLOAT,
    TK_IDENT,
    TK_INT,
    TK_STRING,
    Token,
)

MAX_ARGS = 255

# Tokens that start a declaration or statement; recovery stops before them.
SYNC_KEYWORDS: set[str] = {
    "class",
    "fun",
    "var",
    "for",
    "if",
    "while",
    "print",
    "return",
}

EQUALITY_OPS: set[str] = {"==", "!="}
COMPARE_OPS: set[str] = {">", ">=", "<", "<="}
TERM_OPS: set[str] = {"+", "-"}
FACTOR_OPS: set[str] = {"*", "/", "%"}


def error_where(tok: Token) -> str:
    if tok.type == TK_EOF:
        return " at end"
    return " at '" + tok.lexeme + "'"


class ParseError(LoxError):
    """Syntax error anchored on a token."""

    def __init__(self, msg: str, tok: Token):
        super().__init__(msg, tok.line, error_where(tok))
        self.token: Token = tok


class Parser:
    """Recursive descent parser for Lox."""

    def __init__(self, tokens: list[Token], reporter: Reporter | None = None):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.reporter: Reporter = reporter if reporter is not None else Reporter(echo=False)

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.current()
        return tok.type != TK_STRING and tok.lexeme == value

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def at_end(self) -> bool:
        return self.at_type(TK_EOF)

    def match(self, *values: str) -> bool:
        for value in values:
            if self.at(value):
                self.advance()
                return True
        return False

    def expect(self, value: str, msg: str) -> Token:
        if self.at(value):
            return self.advance()
        raise self.error(self.current(), msg)

    def expect_ident(self, msg: str) -> Token:
        if self.at_type(TK_IDENT):
            return self.advance()
        raise self.error(self.current(), msg)

    def error(self, tok: Token, msg: str) -> ParseError:
        """Report a syntax error and return it for the caller to raise."""
        err = ParseError(msg, tok)
        self.reporter.error(err)
        return err

    def synchronize(self) -> None:
        """Discard tokens until a probable statement boundary."""
        self.advance()
        while not self.at_end():
            if self.previous().lexeme == ";":
                return
            tok = self.current()
            if tok.type in SYNC_KEYWORDS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse(self) -> list[Stmt]:
        """program = declaration* EOF"""
        stmts: list[Stmt] = []
        while not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                stmts.append(stmt)
        return stmts

    def parse_expression(self) -> Expr | None:
        """Parse a single expression spanning the whole input."""
        try:
            expr = self.parse_expr()
            if not self.at_end():
                raise self.error(self.current(), "Expect end of expression.")
            return expr
        except ParseError:
            return None
        except RecursionError:
            self.error(self.current(), "Expression nests too deeply.")
            return None

    def parse_declaration(self) -> Stmt | None:
        try:
            if self.match("class"):
                return self.parse_class_decl()
            if self.match("fun"):
                return self.parse_function("function")
            if self.match("var"):
                return self.parse_var_decl()
            return self.parse_stmt()
        except ParseError:
            self.synchronize()
            return None
        except RecursionError:
            self.error(self.current(), "Expression nests too deeply.")
            self.synchronize()
            return None

    def parse_class_decl(self) -> ClassStmt:
        """classDecl = 'class' IDENT ( '<' IDENT )? '{' function* '}'"""
        name = self.expect_ident("Expect class name.")
        superclass: Variable | None = None
        if self.match("<"):
            superclass = Variable(self.expect_ident("Expect superclass name."))
        self.expect("{", "Expect '{' before class body.")
        methods: list[FunctionStmt] = []
        while not self.at("}") and not self.at_end():
            methods.append(self.parse_function("method"))
        self.expect("}", "Expect '}' after class body.")
        return ClassStmt(name, superclass, methods)

    def parse_function(self, kind: str) -> FunctionStmt:
        """function = IDENT '(' params? ')' block"""
        name = self.expect_ident("Expect " + kind + " name.")
        self.expect("(", "Expect '(' after " + kind + " name.")
        params: list[Token] = []
        if not self.at(")"):
            params.append(self.expect_ident("Expect parameter name."))
            while self.match(","):
                if len(params) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 parameters.")
                params.append(self.expect_ident("Expect parameter name."))
        self.expect(")", "Expect ')' after parameters.")
        self.expect("{", "Expect '{' before " + kind + " body.")
        body = self.parse_block()
        return FunctionStmt(name, params, body)

    def parse_var_decl(self) -> VarStmt:
        """varDecl = 'var' IDENT ( '=' expression )? ';'"""
        name = self.expect_ident("Expect variable name.")
        initializer: Expr | None = None
        if self.match("="):
            initializer = self.parse_expr()
        self.expect(";", "Expect ';' after variable declaration.")
        return VarStmt(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        if self.match("for"):
            return self.parse_for_stmt()
        if self.match("if"):
            return self.parse_if_stmt()
        if self.match("print"):
            return self.parse_print_stmt()
        if self.match("return"):
            return self.parse_return_stmt()
        if self.match("while"):
            return self.parse_while_stmt()
        if self.match("{"):
            return BlockStmt(self.parse_block())
        return self.parse_expr_stmt()

    def parse_for_stmt(self) -> Stmt:
        """Desugar `for (init; cond; incr) body` into a block and a while loop."""
        self.expect("(", "Expect '(' after 'for'.")
        initializer: Stmt | None
        if self.match(";"):
            initializer = None
        elif self.match("var"):
            initializer = self.parse_var_decl()
        else:
            initializer = self.parse_expr_stmt()

        condition: Expr | None = None
        if not self.at(";"):
            condition = self.parse_expr()
        self.expect(";", "Expect ';' after loop condition.")

        increment: Expr | None = None
        if not self.at(")"):
            increment = self.parse_expr()
        self.expect(")", "Expect ')' after for clauses.")

        body = self.parse_stmt()
        if increment is not None:
            body = BlockStmt([body, ExprStmt(increment)])
        if condition is None:
            condition = Literal(True)
        body = WhileStmt(condition, body)
        if initializer is not None:
            body = BlockStmt([initializer, body])
        return body

    def parse_if_stmt(self) -> IfStmt:
        self.expect("(", "Expect '(' after 'if'.")
        condition = self.parse_expr()
        self.expect(")", "Expect ')' after if condition.")
        then_branch = self.parse_stmt()
        else_branch: Stmt | None = None
        if self.match("else"):
            else_branch = self.parse_stmt()
        return IfStmt(condition, then_branch, else_branch)

    def parse_print_stmt(self) -> PrintStmt:
        value = self.parse_expr()
        self.expect(";", "Expect ';' after value.")
        return PrintStmt(value)

    def parse_return_stmt(self) -> ReturnStmt:
        keyword = self.previous()
        value: Expr | None = None
        if not self.at(";"):
            value = self.parse_expr()
        self.expect(";", "Expect ';' after return value.")
        return ReturnStmt(keyword, value)

    def parse_while_stmt(self) -> WhileStmt:
        self.expect("(", "Expect '(' after 'while'.")
        condition = self.parse_expr()
        self.expect(")", "Expect ')' after condition.")
        body = self.parse_stmt()
        return WhileStmt(condition, body)

    def parse_block(self) -> list[Stmt]:
        """block = '{' declaration* '}'; the '{' is already consumed."""
        stmts: list[Stmt] = []
        while not self.at("}") and not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                stmts.append(stmt)
        self.expect("}", "Expect '}' after block.")
        return stmts

    def parse_expr_stmt(self) -> ExprStmt:
        expr = self.parse_expr()
        self.expect(";", "Expect ';' after expression.")
        return ExprStmt(expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_assignment()

    def parse_assignment(self) -> Expr:
        """Assignment = ( Call '.' )? IDENT '=' Assignment | Or"""
        expr = self.parse_or()
        if self.match("="):
            equals = self.previous()
            value = self.parse_assignment()
            if isinstance(expr, Variable):
                return Assign(expr.name, value)
            if isinstance(expr, Get):
                return Set(expr.object, expr.name, value)
            # Reported, but the parser is not confused: no unwinding.
            self.error(equals, "Invalid assignment target.")
        return expr

    def parse_or(self) -> Expr:
        """Or = And ( 'or' And )*"""
        left = self.parse_and()
        while self.match("or"):
            operator = self.previous()
            right = self.parse_and()
            left = Logical(left, operator, right)
        return left

    def parse_and(self) -> Expr:
        """And = Equality ( 'and' Equality )*"""
        left = self.parse_equality()
        while self.match("and"):
            operator = self.previous()
            right = self.parse_equality()
            left = Logical(left, operator, right)
        return left

    def parse_equality(self) -> Expr:
        """Equality = Compare ( ( '==' | '!=' ) Compare )*"""
        return self._parse_binary(self.parse_compare, EQUALITY_OPS)

    def parse_compare(self) -> Expr:
        """Compare = Term ( ( '>' | '>=' | '<' | '<=' ) Term )*"""
        return self._parse_binary(self.parse_term, COMPARE_OPS)

    def parse_term(self) -> Expr:
        """Term = Factor ( ( '+' | '-' ) Factor )*"""
        return self._parse_binary(self.parse_factor, TERM_OPS)

    def parse_factor(self) -> Expr:
        """Factor = Unary ( ( '*' | '/' | '%' ) Unary )*"""
        return self._parse_binary(self.parse_unary, FACTOR_OPS)

    def _parse_binary(self, operand, ops: set[str]) -> Expr:
        left = operand()
        while self.match(*sorted(ops)):
            operator = self.previous()
            right = operand()
            left = Binary(left, operator, right)
        return left

    def parse_unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Call"""
        if self.match("!", "-"):
            operator = self.previous()
            right = self.parse_unary()
            return Unary(operator, right)
        return self.parse_call()

    def parse_call(self) -> Expr:
        """Call = Primary ( '(' args? ')' | '.' IDENT )*"""
        expr = self.parse_primary()
        while True:
            if self.match("("):
                expr = self.finish_call(expr)
            elif self.match("."):
                name = self.expect_ident("Expect property name after '.'.")
                expr = Get(expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> Call:
        args: list[Expr] = []
        if not self.at(")"):
            args.append(self.parse_expr())
            while self.match(","):
                if len(args) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 arguments.")
                args.append(self.parse_expr())
        paren = self.expect(")", "Expect ')' after arguments.")
        return Call(callee, paren, args)

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        tok = self.current()

        if tok.type == TK_INT or tok.type == TK_FLOAT:
            self.advance()
            # Both literal kinds share one numeric domain at runtime; converting
            # the lexeme saturates to inf where float(int) would overflow.
            return Literal(float(tok.lexeme))
        if tok.type == TK_STRING:
            self.advance()
            return Literal(tok.literal)

        if self.match("false"):
            return Literal(False)
        if self.match("true"):
            return Literal(True)
        if self.match("nil"):
            return Literal(None)

        if self.match("this"):
            return This(self.previous())
        if self.match("super"):
            keyword = self.previous()
            self.expect(".", "Expect '.' after 'super'.")
            method = self.expect_ident("Expect superclass method name.")
            return Super(keyword, method)

        if tok.type == TK_IDENT:
            self.advance()
            return Variable(tok)

        if self.match("("):
            expr = self.parse_expr()
            self.expect(")", "Expect ')' after expression.")
            return Grouping(expr)

        raise self.error(tok, "Expect expression.")
