"""Data-driven runner for Lox programs in tests/programs/*.tests.

Each case's expected block is the program's stdout followed by its stderr.
"""

from pathlib import Path

import pytest

from lox import run

PROGRAMS_DIR = Path(__file__).parent / "programs"


def parse_tests_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_programs() -> list[tuple[str, str, str]]:
    """Glob *.tests, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(PROGRAMS_DIR.glob("*.tests")):
        for name, source, expected in parse_tests_file(test_file):
            results.append((f"{test_file.stem}/{name}", source, expected))
    return results


def pytest_generate_tests(metafunc):
    """Parametrize over every program case."""
    if "program_source" in metafunc.fixturenames:
        params = [
            pytest.param(source, expected, id=test_id)
            for test_id, source, expected in discover_programs()
        ]
        metafunc.parametrize("program_source,program_expected", params)


def test_program(program_source: str, program_expected: str):
    result = run(program_source)
    actual = (result.stdout + result.stderr).strip()
    assert actual == program_expected
