"""Lox runtime — the object model and the tree-walking evaluator.

Runtime values map onto Python values: nil is None, booleans are bool, every
number is a float, strings are str. Functions, classes, instances and arrays
are the classes defined here.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import sys
import time
from typing import Callable, TextIO

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
from .tokens import Token

logger = logging.getLogger(__name__)


# ============================================================
# Diagnostics
# ============================================================


class LoxRuntimeError(LoxError):
    """Runtime fault (bad operand, undefined name, bad call, ...)."""

    def __init__(self, tok: Token, msg: str):
        super().__init__(msg, tok.line, " at '" + tok.lexeme + "'")
        self.token: Token = tok

    def report_text(self) -> str:
        return "[line " + str(self.line) + "] Runtime error: " + self.msg


# ============================================================
# Control flow
# ============================================================


@dataclass
class Returned:
    """Result of a statement that executed `return`; None means completed."""

    value: object


# ============================================================
# Environments
# ============================================================


class Environment:
    """One scope frame: name -> value, plus the enclosing frame."""

    def __init__(self, enclosing: Environment | None = None):
        self.values: dict[str, object] = {}
        self.enclosing: Environment | None = enclosing

    def define(self, name: str, value: object) -> None:
        # Redefinition is allowed; the last write wins.
        self.values[name] = value

    def get(self, name: Token) -> object:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise LoxRuntimeError(name, "Undefined variable '" + name.lexeme + "'.")

    def assign(self, name: Token, value: object) -> None:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise LoxRuntimeError(name, "Undefined variable '" + name.lexeme + "'.")

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            assert env.enclosing is not None, "resolved distance exceeds frame depth"
            env = env.enclosing
        return env

    def get_at(self, distance: int, name: str) -> object:
        return self.ancestor(distance).values[name]

    def assign_at(self, distance: int, name: Token, value: object) -> None:
        self.ancestor(distance).values[name.lexeme] = value


# ============================================================
# Values
# ============================================================


class LoxCallable:
    """Anything a call expression can invoke."""

    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        raise NotImplementedError


class LoxFunction(LoxCallable):
    def __init__(self, declaration: FunctionStmt, closure: Environment, is_initializer: bool = False):
        self.declaration: FunctionStmt = declaration
        self.closure: Environment = closure
        self.is_initializer: bool = is_initializer

    def bind(self, instance: LoxInstance) -> LoxFunction:
        """Return a copy whose closure has one more frame fixing `this`."""
        env = Environment(self.closure)
        env.define("this", instance)
        return LoxFunction(self.declaration, env, self.is_initializer)

    def arity(self) -> int:
        return len(self.declaration.params)

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        env = Environment(self.closure)
        for param, arg in zip(self.declaration.params, arguments):
            env.define(param.lexeme, arg)
        result = interpreter.execute_block(self.declaration.body, env)
        if self.is_initializer:
            return self.closure.get_at(0, "this")
        if result is None:
            return None
        return result.value

    def __str__(self) -> str:
        return "<fn " + self.declaration.name.lexeme + ">"


class NativeFunction(LoxCallable):
    def __init__(self, name: str, arity: int, fn: Callable[[Interpreter, list[object]], object]):
        self.name: str = name
        self._arity: int = arity
        self.fn = fn

    def arity(self) -> int:
        return self._arity

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        return self.fn(interpreter, arguments)

    def __str__(self) -> str:
        return "<native fn>"


class LoxClass(LoxCallable):
    def __init__(self, name: str, superclass: LoxClass | None, methods: dict[str, LoxFunction]):
        self.name: str = name
        self.superclass: LoxClass | None = superclass
        self.methods: dict[str, LoxFunction] = methods

    def find_method(self, name: str) -> LoxFunction | None:
        klass: LoxClass | None = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def arity(self) -> int:
        initializer = self.find_method("init")
        if initializer is None:
            return 0
        return initializer.arity()

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        instance = LoxInstance(self)
        initializer = self.find_method("init")
        if initializer is not None:
            initializer.bind(instance).call(interpreter, arguments)
        return instance

    def __str__(self) -> str:
        return self.name


class LoxInstance:
    def __init__(self, klass: LoxClass | None):
        self.klass: LoxClass | None = klass
        self.fields: dict[str, object] = {}

    def get(self, name: Token) -> object:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        if self.klass is not None:
            method = self.klass.find_method(name.lexeme)
            if method is not None:
                return method.bind(self)
        raise LoxRuntimeError(name, "Undefined property '" + name.lexeme + "'.")

    def set(self, name: Token, value: object) -> None:
        self.fields[name.lexeme] = value

    def __str__(self) -> str:
        klass_name = self.klass.name if self.klass is not None else "anonymous"
        return klass_name + " instance"


class LoxArray(LoxInstance):
    """Fixed-length array exposing only `get`, `set` and `length`.

    A non-numeric, fractional or out-of-range index never raises: `get`
    yields nil and `set` yields nil without storing.
    """

    def __init__(self, elements: list[object]):
        super().__init__(None)
        self.elements: list[object] = elements
        self._get = NativeFunction("get", 1, lambda interp, args: self.get_element(args[0]))
        self._set = NativeFunction("set", 2, lambda interp, args: self.set_element(args[0], args[1]))

    def _index(self, index: object) -> int | None:
        if not isinstance(index, float) or not index.is_integer():
            return None
        i = int(index)
        if i < 0 or i >= len(self.elements):
            return None
        return i

    def get_element(self, index: object) -> object:
        i = self._index(index)
        if i is None:
            return None
        return self.elements[i]

    def set_element(self, index: object, value: object) -> object:
        i = self._index(index)
        if i is None:
            return None
        self.elements[i] = value
        return value

    def get(self, name: Token) -> object:
        if name.lexeme == "get":
            return self._get
        if name.lexeme == "set":
            return self._set
        if name.lexeme == "length":
            return float(len(self.elements))
        raise LoxRuntimeError(name, "Undefined property '" + name.lexeme + "'.")

    def set(self, name: Token, value: object) -> None:
        raise LoxRuntimeError(name, "Can't add properties to arrays.")

    def __str__(self) -> str:
        return "[" + ", ".join(stringify(e) for e in self.elements) + "]"


# ============================================================
# Value helpers
# ============================================================


def is_truthy(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def is_equal(a: object, b: object) -> bool:
    if a is None or b is None:
        return a is None and b is None
    # bool is an int subclass in Python; keep it apart from numbers.
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, float) and isinstance(b, float):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def stringify(value: object) -> str:
    if value is None:
        return "nil"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        text = repr(value)
        if text.endswith(".0"):
            text = text[:-2]
        return text
    return str(value)


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    def __init__(self, reporter: Reporter | None = None, *, out: TextIO | None = None):
        self.reporter: Reporter = reporter if reporter is not None else Reporter()
        self.out: TextIO = out if out is not None else sys.stdout
        self.globals: Environment = Environment()
        self.environment: Environment = self.globals
        self.locals: dict[Expr, int] = {}
        for name, (arity, fn) in _NATIVES.items():
            self.globals.define(name, NativeFunction(name, arity, fn))

    def resolve(self, locals_: dict[Expr, int]) -> None:
        """Merge a resolver's distance table for the next run."""
        self.locals.update(locals_)

    # ---- Running -----------------------------------------------------------

    def interpret(self, stmts: list[Stmt]) -> None:
        logger.debug("executing %d statements", len(stmts))
        try:
            for stmt in stmts:
                self.execute(stmt)
        except LoxRuntimeError as e:
            self.reporter.runtime_error(e)

    def interpret_expression(self, expr: Expr) -> None:
        try:
            value = self.evaluate(expr)
        except LoxRuntimeError as e:
            self.reporter.runtime_error(e)
            return
        self.out.write(stringify(value) + "\n")

    # ---- Statements --------------------------------------------------------

    def execute(self, stmt: Stmt) -> Returned | None:
        match stmt:
            case ExprStmt(expression=expression):
                self.evaluate(expression)
            case PrintStmt(expression=expression):
                value = self.evaluate(expression)
                self.out.write(stringify(value) + "\n")
            case VarStmt(name=name, initializer=initializer):
                value = None
                if initializer is not None:
                    value = self.evaluate(initializer)
                self.environment.define(name.lexeme, value)
            case BlockStmt(statements=statements):
                return self.execute_block(statements, Environment(self.environment))
            case IfStmt(condition=condition, then_branch=then_branch, else_branch=else_branch):
                if is_truthy(self.evaluate(condition)):
                    return self.execute(then_branch)
                if else_branch is not None:
                    return self.execute(else_branch)
            case WhileStmt(condition=condition, body=body):
                while is_truthy(self.evaluate(condition)):
                    result = self.execute(body)
                    if result is not None:
                        return result
            case FunctionStmt(name=name):
                self.environment.define(name.lexeme, LoxFunction(stmt, self.environment))
            case ClassStmt():
                self.execute_class(stmt)
            case ReturnStmt(value=value_expr):
                value = None
                if value_expr is not None:
                    value = self.evaluate(value_expr)
                return Returned(value)
            case _:
                raise TypeError("unhandled statement type: " + type(stmt).__name__)
        return None

    def execute_block(self, stmts: list[Stmt], env: Environment) -> Returned | None:
        previous = self.environment
        self.environment = env
        try:
            for stmt in stmts:
                result = self.execute(stmt)
                if result is not None:
                    return result
            return None
        finally:
            self.environment = previous

    def execute_class(self, stmt: ClassStmt) -> None:
        superclass: LoxClass | None = None
        if stmt.superclass is not None:
            value = self.evaluate(stmt.superclass)
            if not isinstance(value, LoxClass):
                raise LoxRuntimeError(stmt.superclass.name, "Superclass must be a class.")
            superclass = value

        # Bound to nil first so methods can refer to the class by name.
        self.environment.define(stmt.name.lexeme, None)

        if superclass is not None:
            self.environment = Environment(self.environment)
            self.environment.define("super", superclass)

        methods: dict[str, LoxFunction] = {}
        for method in stmt.methods:
            is_init = method.name.lexeme == "init"
            methods[method.name.lexeme] = LoxFunction(method, self.environment, is_init)
        klass = LoxClass(stmt.name.lexeme, superclass, methods)

        if superclass is not None:
            assert self.environment.enclosing is not None
            self.environment = self.environment.enclosing

        self.environment.assign(stmt.name, klass)

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr) -> object:
        match expr:
            case Literal(value=value):
                return value
            case Grouping(expression=inner):
                return self.evaluate(inner)
            case Unary(operator=operator, right=right_expr):
                right = self.evaluate(right_expr)
                if operator.lexeme == "-":
                    if not isinstance(right, float):
                        raise LoxRuntimeError(operator, "Operand must be a number.")
                    return -right
                return not is_truthy(right)
            case Binary(left=left_expr, operator=operator, right=right_expr):
                left = self.evaluate(left_expr)
                right = self.evaluate(right_expr)
                return self._eval_binary(operator, left, right)
            case Logical(left=left_expr, operator=operator, right=right_expr):
                left = self.evaluate(left_expr)
                if operator.lexeme == "or":
                    if is_truthy(left):
                        return left
                elif not is_truthy(left):
                    return left
                return self.evaluate(right_expr)
            case Variable(name=name):
                return self.look_up_variable(name, expr)
            case Assign(name=name, value=value_expr):
                value = self.evaluate(value_expr)
                distance = self.locals.get(expr)
                if distance is not None:
                    self.environment.assign_at(distance, name, value)
                else:
                    self.globals.assign(name, value)
                return value
            case Call():
                return self._eval_call(expr)
            case Get(object=obj_expr, name=name):
                obj = self.evaluate(obj_expr)
                if isinstance(obj, LoxInstance):
                    return obj.get(name)
                raise LoxRuntimeError(name, "Only instances have properties.")
            case Set(object=obj_expr, name=name, value=value_expr):
                obj = self.evaluate(obj_expr)
                if not isinstance(obj, LoxInstance):
                    raise LoxRuntimeError(name, "Only instances have fields.")
                value = self.evaluate(value_expr)
                obj.set(name, value)
                return value
            case This(keyword=keyword):
                return self.look_up_variable(keyword, expr)
            case Super(method=method_name):
                return self._eval_super(expr, method_name)
            case _:
                raise TypeError("unhandled expression type: " + type(expr).__name__)

    def look_up_variable(self, name: Token, expr: Expr) -> object:
        distance = self.locals.get(expr)
        if distance is not None:
            return self.environment.get_at(distance, name.lexeme)
        return self.globals.get(name)

    def _eval_binary(self, operator: Token, left: object, right: object) -> object:
        op = operator.lexeme
        if op == "==":
            return is_equal(left, right)
        if op == "!=":
            return not is_equal(left, right)
        if op == "+":
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            if isinstance(left, str) and isinstance(right, float):
                return left + stringify(right)
            if isinstance(left, float) and isinstance(right, str):
                return stringify(left) + right
            if isinstance(left, float) and isinstance(right, float):
                return left + right
            raise LoxRuntimeError(operator, "Operands of '+' must be two numbers or two strings.")
        if not isinstance(left, float) or not isinstance(right, float):
            raise LoxRuntimeError(operator, "Operands of '" + op + "' must be numbers.")
        match op:
            case "-":
                return left - right
            case "*":
                return left * right
            case "/":
                if right == 0:
                    raise LoxRuntimeError(operator, "Divide by zero.")
                return left / right
            case "%":
                if right == 0:
                    raise LoxRuntimeError(operator, "Modulo by zero.")
                return math.fmod(left, right)
            case ">":
                return left > right
            case ">=":
                return left >= right
            case "<":
                return left < right
            case "<=":
                return left <= right
        raise LoxRuntimeError(operator, "Unknown operator '" + op + "'.")

    def _eval_call(self, expr: Call) -> object:
        callee = self.evaluate(expr.callee)
        arguments = [self.evaluate(arg) for arg in expr.arguments]
        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError(expr.paren, "Can only call functions and classes.")
        if len(arguments) != callee.arity():
            raise LoxRuntimeError(
                expr.paren,
                "Expected " + str(callee.arity()) + " arguments but got " + str(len(arguments)) + ".",
            )
        try:
            return callee.call(self, arguments)
        except RecursionError:
            raise LoxRuntimeError(expr.paren, "Stack overflow.") from None

    def _eval_super(self, expr: Super, method_name: Token) -> object:
        distance = self.locals[expr]
        superclass = self.environment.get_at(distance, "super")
        # `this` always sits one frame inside the `super` frame.
        instance = self.environment.get_at(distance - 1, "this")
        assert isinstance(superclass, LoxClass) and isinstance(instance, LoxInstance)
        method = superclass.find_method(method_name.lexeme)
        if method is None:
            raise LoxRuntimeError(method_name, "Undefined property '" + method_name.lexeme + "'.")
        return method.bind(instance)


# ============================================================
# Natives
# ============================================================


def _native_clock(interp: Interpreter, args: list[object]) -> object:
    return time.time()


def _native_sleep(interp: Interpreter, args: list[object]) -> object:
    ms = args[0]
    if not isinstance(ms, float) or ms < 0:
        return False
    time.sleep(ms / 1000.0)
    return True


def _native_clear(interp: Interpreter, args: list[object]) -> object:
    interp.out.write("\033[2J\033[H")
    return True


def _native_array(interp: Interpreter, args: list[object]) -> object:
    arg = args[0]
    if isinstance(arg, float) and arg >= 0 and arg.is_integer():
        return LoxArray([None] * int(arg))
    return LoxArray([arg])


_NATIVES: dict[str, tuple[int, Callable[[Interpreter, list[object]], object]]] = {
    "clock": (0, _native_clock),
    "sleep": (1, _native_sleep),
    "clear": (0, _native_clear),
    "Array": (1, _native_array),
}
