"""Parser tests."""

import pytest

from lox import ParseError, Reporter, parse, parse_expression, print_expr, print_program, tokenize
from lox.ast import Assign, BlockStmt, ClassStmt, Literal, Set, VarStmt, WhileStmt
from lox.parse import Parser


def program(source: str) -> str:
    return print_program(parse(source))


def expr(source: str) -> str:
    return print_expr(parse_expression(source))


def test_precedence():
    assert expr("1 + 2 * 3") == "(+ 1 (* 2 3))"
    assert expr("-1 - -2") == "(- (- 1) (- 2))"
    assert expr("1 < 2 == true") == "(== (< 1 2) true)"
    assert expr("a or b and c") == "(or a (and b c))"


def test_left_associative_binary():
    assert expr("1 - 2 - 3") == "(- (- 1 2) 3)"


def test_assignment_is_right_associative():
    assert expr("a = b = 1") == "(= a (= b 1))"


def test_numbers_become_floats():
    stmts = parse("var a = 3;")
    init = stmts[0].initializer
    assert isinstance(init, Literal)
    assert init.value == 3.0
    assert isinstance(init.value, float)


def test_property_assignment_becomes_set():
    stmts = parse("a.b.c = 1;")
    target = stmts[0].expression
    assert isinstance(target, Set)
    assert target.name.lexeme == "c"


def test_call_chains():
    assert expr("f(1)(2).g") == "(. (call (call f 1) 2) g)"


def test_for_desugars_to_while():
    stmts = parse("for (var i = 0; i < 3; i = i + 1) print i;")
    outer = stmts[0]
    assert isinstance(outer, BlockStmt)
    assert isinstance(outer.statements[0], VarStmt)
    loop = outer.statements[1]
    assert isinstance(loop, WhileStmt)
    assert isinstance(loop.body, BlockStmt)
    assert program("for (var i = 0; i < 3; i = i + 1) print i;") == (
        "(block (var i 0) (while (< i 3) (block (print i) (expr (= i (+ i 1))))))"
    )


def test_for_without_condition_loops_on_true():
    assert program("for (;;) print 1;") == "(while true (print 1))"


def test_class_declaration():
    stmts = parse("class B < A { init(x) { this.x = x; } go() { return super.go(); } }")
    klass = stmts[0]
    assert isinstance(klass, ClassStmt)
    assert klass.superclass is not None
    assert klass.superclass.name.lexeme == "A"
    assert [m.name.lexeme for m in klass.methods] == ["init", "go"]


def test_function_rendering():
    assert program("fun add(a, b) { return a + b; }") == "(fun add (a b) (return (+ a b)))"


def test_syntax_error_raises_first_error():
    with pytest.raises(ParseError) as exc:
        parse("print ;")
    assert exc.value.report_text() == "[line 1] Error at ';': Expect expression."


def test_error_at_end():
    with pytest.raises(ParseError) as exc:
        parse("var a = 1")
    assert exc.value.where == " at end"


def test_recovery_collects_every_error():
    reporter = Reporter(echo=False)
    stmts = Parser(tokenize("var = 1; print 2; fun (", reporter), reporter).parse()
    assert [e.msg for e in reporter.errors] == [
        "Expect variable name.",
        "Expect function name.",
    ]
    assert len(stmts) == 1


def test_invalid_assignment_target_does_not_unwind():
    reporter = Reporter(echo=False)
    stmts = Parser(tokenize("1 = 2; print 3;", reporter), reporter).parse()
    assert [e.msg for e in reporter.errors] == ["Invalid assignment target."]
    assert len(stmts) == 2


def test_too_many_arguments():
    args = ", ".join(["1"] * 256)
    reporter = Reporter(echo=False)
    Parser(tokenize("f(" + args + ");", reporter), reporter).parse()
    assert [e.msg for e in reporter.errors] == ["Can't have more than 255 arguments."]


def test_too_many_parameters():
    params = ", ".join("p" + str(i) for i in range(256))
    reporter = Reporter(echo=False)
    Parser(tokenize("fun f(" + params + ") {}", reporter), reporter).parse()
    assert [e.msg for e in reporter.errors] == ["Can't have more than 255 parameters."]


def test_parse_expression_requires_end_of_input():
    with pytest.raises(ParseError) as exc:
        parse_expression("1 2")
    assert exc.value.msg == "Expect end of expression."


def test_assign_node():
    stmts = parse("x = 1;")
    assert isinstance(stmts[0].expression, Assign)


def test_dangling_else_binds_to_nearest_if():
    assert program('if (true) if (false) print "x"; else print "y";') == "(if true (if false (print x) (print y)))"
