"""Lox tokenizer — lexes source into a flat token list."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import LoxError, Reporter


# Token type constants
TK_INT = "INT"
TK_FLOAT = "FLOAT"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

# Keyword tokens use the keyword itself as their type.
KEYWORDS: set[str] = {
    "and",
    "class",
    "else",
    "false",
    "for",
    "fun",
    "if",
    "nil",
    "or",
    "print",
    "return",
    "super",
    "this",
    "true",
    "var",
    "while",
}

# Two-character operators, matched before their one-character prefixes
MULTI_OPS: list[str] = [
    "!=",
    "==",
    "<=",
    ">=",
]

SINGLE_OPS: set[str] = {
    "(",
    ")",
    "{",
    "}",
    ",",
    ".",
    "-",
    "+",
    ";",
    "*",
    "/",
    "%",
    "!",
    "=",
    "<",
    ">",
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "\\": "\\",
}


class TokenizeError(LoxError):
    """Error during tokenization."""


@dataclass(frozen=True)
class Token:
    """A token with type, lexeme, literal payload, and line."""

    type: str
    lexeme: str
    literal: object
    line: int

    def __str__(self) -> str:
        literal = "null" if self.literal is None else str(self.literal)
        return self.type + " " + self.lexeme + " " + literal


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_octal(c: str) -> bool:
    return c >= "0" and c <= "7"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def _process_escapes(raw: str, line: int) -> str:
    """Resolve escape sequences in string contents. Raises TokenizeError."""
    out: list[str] = []
    i = 0
    length = len(raw)
    while i < length:
        c = raw[i]
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= length:
            raise TokenizeError("Unterminated escape sequence.", line)
        nxt = raw[i + 1]
        if nxt in ESCAPE_MAP:
            out.append(ESCAPE_MAP[nxt])
            i += 2
            continue
        if _is_octal(nxt):
            j = i + 1
            val = 0
            while j < length and j < i + 4 and _is_octal(raw[j]):
                val = val * 8 + (ord(raw[j]) - ord("0"))
                j += 1
            if val > 255:
                raise TokenizeError("Octal escape sequence out of range.", line)
            out.append(chr(val))
            i = j
            continue
        # Unknown escape: drop the backslash, keep the character.
        out.append(nxt)
        i += 2
    return "".join(out)


def tokenize(source: str, reporter: Reporter | None = None) -> list[Token]:
    """Tokenize Lox source into a flat list ending with TK_EOF.

    Never raises: problems go to `reporter` and scanning continues.
    """
    if reporter is None:
        reporter = Reporter(echo=False)
    tokens: list[Token] = []
    pos = 0
    line = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        start_pos = pos
        start_line = line

        # Number: int or float
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
            is_float = False
            if pos + 1 < length and source[pos] == "." and _is_digit(source[pos + 1]):
                is_float = True
                pos += 1
                while pos < length and _is_digit(source[pos]):
                    pos += 1
            raw = source[start_pos:pos]
            if is_float:
                tokens.append(Token(TK_FLOAT, raw, float(raw), start_line))
                continue
            try:
                number: int | float = int(raw)
            except ValueError:
                # Past the interpreter's int digit limit; float() saturates to inf.
                number = float(raw)
            tokens.append(Token(TK_INT, raw, number, start_line))
            continue

        # String literal: "..." (may span lines)
        if c == '"':
            pos += 1
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    line += 1
                pos += 1
            if pos >= length:
                reporter.error(TokenizeError("Unterminated string.", line))
                continue
            pos += 1  # skip closing "
            raw = source[start_pos:pos]
            try:
                value = _process_escapes(raw[1:-1], line)
            except TokenizeError as e:
                reporter.error(e)
                continue
            tokens.append(Token(TK_STRING, raw, value, start_line))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
            word = source[start_pos:pos]
            if word in KEYWORDS:
                tokens.append(Token(word, word, None, start_line))
            else:
                tokens.append(Token(TK_IDENT, word, None, start_line))
            continue

        # Two-character operators
        matched = False
        for op in MULTI_OPS:
            if source[pos : pos + 2] == op:
                tokens.append(Token(TK_OP, op, None, start_line))
                pos += 2
                matched = True
                break
        if matched:
            continue

        # Single-character operators
        if c in SINGLE_OPS:
            tokens.append(Token(TK_OP, c, None, start_line))
            pos += 1
            continue

        reporter.error(TokenizeError("Unexpected character.", line))
        pos += 1

    tokens.append(Token(TK_EOF, "", None, line))
    return tokens
