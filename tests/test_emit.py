"""Tree printer tests."""

from lox import emit, parse, parse_expression, print_expr
from lox.ast import Binary, Grouping, Literal, Unary
from lox.tokens import TK_OP, Token


def test_hand_built_tree():
    tree = Binary(
        Unary(Token(TK_OP, "-", None, 1), Literal(123.0)),
        Token(TK_OP, "*", None, 1),
        Grouping(Literal(45.67)),
    )
    assert print_expr(tree) == "(* (- 123) (group 45.67))"


def test_literals():
    assert print_expr(parse_expression('nil')) == "nil"
    assert print_expr(parse_expression('"hi"')) == "hi"
    assert print_expr(parse_expression("true")) == "true"


def test_expression_forms():
    assert print_expr(parse_expression("a.b = c(1, 2)")) == "(= (. a b) (call c 1 2))"
    assert print_expr(parse_expression("!x and y")) == "(and (! x) y)"


def test_statements_one_per_line():
    source = "var a = 1;\nfun add(a, b) { return a + b; }\nprint add(a, 2);"
    assert emit(parse(source)) == "\n".join(
        [
            "(var a 1)",
            "(fun add (a b) (return (+ a b)))",
            "(print (call add a 2))",
        ]
    )


def test_control_flow_and_classes():
    source = "if (x) print 1; else { return; } while (y) y = false; class B < A { m() { return super.m; } }"
    stmts = parse(source)
    assert emit(stmts[:1]) == "(if x (print 1) (block (return)))"
    assert emit(stmts[1:]) == "\n".join(
        [
            "(while y (expr (= y false)))",
            "(class B < A (fun m () (return (super m))))",
        ]
    )


def test_uninitialized_var_and_this():
    assert emit(parse("var a; class C { m() { print this; } }")) == "\n".join(
        ["(var a)", "(class C (fun m () (print this)))"]
    )
