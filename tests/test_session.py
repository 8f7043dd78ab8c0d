"""Session and public run() tests."""

import io

from lox import Session, run


def make_session() -> tuple[Session, io.StringIO, io.StringIO]:
    out = io.StringIO()
    err = io.StringIO()
    return Session(out, err), out, err


def test_run_result_success():
    result = run("print 1 + 1;")
    assert result.exit_code == 0
    assert result.stdout == "2\n"
    assert result.stderr == ""


def test_static_error_exit_code_and_no_execution():
    result = run('print "x"; print ;')
    assert result.exit_code == 65
    assert result.stdout == ""
    assert result.stderr == "[line 1] Error at ';': Expect expression.\n"


def test_resolution_error_exit_code():
    result = run("return 1;")
    assert result.exit_code == 65


def test_runtime_error_exit_code():
    result = run("print -nil;")
    assert result.exit_code == 70
    assert result.stderr == "[line 1] Runtime error: Operand must be a number.\n"


def test_globals_persist_across_runs():
    session, out, _ = make_session()
    assert session.run("var greeting = \"hi\";") == 0
    assert session.run("print greeting;") == 0
    assert out.getvalue() == "hi\n"


def test_error_flags_reset_each_run():
    session, out, err = make_session()
    assert session.run("print ;") == 65
    assert session.run("print nil - 1;") == 70
    assert session.run("print 3;") == 0
    assert out.getvalue() == "3\n"
    assert len(err.getvalue().splitlines()) == 2


def test_prompt_line_can_shadow_a_global_in_a_block():
    session, out, _ = make_session()
    session.run("var a = 1;")
    session.run("{ var a = a + 1; print a; }")
    assert out.getvalue() == "2\n"


def test_closures_defined_in_earlier_runs_still_resolve():
    session, out, _ = make_session()
    session.run("fun make() { var n = 0; fun inc() { n = n + 1; return n; } return inc; }")
    session.run("var counter = make();")
    session.run("counter();")
    session.run("print counter();")
    assert out.getvalue() == "2\n"


def test_run_expression_prints_value():
    session, out, _ = make_session()
    assert session.run_expression("1 + 2 * 3") == 0
    assert out.getvalue() == "7\n"


def test_run_expression_errors():
    session, _, err = make_session()
    assert session.run_expression("1 +") == 65
    assert session.run_expression("1 / 0") == 70
    assert "Divide by zero." in err.getvalue()


def test_long_integer_literals_print_as_infinity():
    for digits in (400, 5000):
        result = run("print " + "9" * digits + ";")
        assert result.exit_code == 0
        assert result.stdout == "Infinity\n"


def test_deeply_nested_expression_is_a_syntax_error():
    result = run("print " + "(" * 3000 + "1" + ")" * 3000 + '; print "after";')
    assert result.exit_code == 65
    assert result.stdout == ""
    assert "Expression nests too deeply." in result.stderr


def test_deeply_nested_single_expression():
    session, _, err = make_session()
    assert session.run_expression("(" * 3000 + "1" + ")" * 3000) == 65
    assert "Expression nests too deeply." in err.getvalue()
