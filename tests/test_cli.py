"""Command-line tests."""

import io
import logging
from pathlib import Path

import pytest

from lox.cli import main


@pytest.fixture
def script(tmp_path: Path):
    def write(source: str) -> str:
        path = tmp_path / "script.lox"
        path.write_text(source)
        return str(path)

    return write


def test_help(capsys):
    assert main(["--help"]) == 0
    assert capsys.readouterr().out.startswith("lox [OPTIONS] [SCRIPT]")


def test_runs_file(script, capsys):
    assert main([script('print "hello";')]) == 0
    assert capsys.readouterr().out == "hello\n"


def test_static_error_exit(script, capsys):
    assert main([script("print ;")]) == 65
    assert capsys.readouterr().err == "[line 1] Error at ';': Expect expression.\n"


def test_runtime_error_exit(script, capsys):
    assert main([script("print nil + 1;")]) == 70
    assert "Runtime error" in capsys.readouterr().err


def test_missing_file(tmp_path: Path, capsys):
    assert main([str(tmp_path / "nope.lox")]) == 66
    assert "No such file or directory" in capsys.readouterr().err


def test_usage_errors(script, capsys):
    path = script("print 1;")
    assert main([path, "extra"]) == 64
    assert main(["--bogus"]) == 64
    assert main([path, "--single", "linker"]) == 64
    assert main([path, "--single"]) == 64
    assert main(["--single", "scanner"]) == 64


def test_single_scanner(script, capsys):
    assert main([script("var a = 1;"), "--single", "scanner"]) == 0
    assert capsys.readouterr().out.splitlines() == [
        "var var null",
        "IDENT a null",
        "OP = null",
        "INT 1 1",
        "OP ; null",
        "EOF  null",
    ]


def test_single_parser(script, capsys):
    assert main(["--single", "parser", script("-123 * (45.67)")]) == 0
    assert capsys.readouterr().out == "(* (- 123) (group 45.67))\n"


def test_single_evaluator(script, capsys):
    assert main([script('"a" + 1'), "--single", "evaluator"]) == 0
    assert capsys.readouterr().out == "a1\n"


def test_prompt_keeps_globals_and_survives_errors(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("var a = 2;\nprint a +;\nprint a * 3;\n"))
    assert main([]) == 0
    captured = capsys.readouterr()
    assert captured.out == "> > > 6\n> "
    assert captured.err == "[line 1] Error at ';': Expect expression.\n"


def test_debug_flag_logs_pipeline(script, capsys):
    pkg_logger = logging.getLogger("lox")
    before = list(pkg_logger.handlers)
    try:
        assert main(["--debug", script("print 1;")]) == 0
    finally:
        for handler in list(pkg_logger.handlers):
            if handler not in before:
                pkg_logger.removeHandler(handler)
        pkg_logger.setLevel(logging.NOTSET)
    captured = capsys.readouterr()
    assert captured.out == "1\n"
    assert "lox.session: scanned 4 tokens" in captured.err
