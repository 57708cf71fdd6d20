"""Tokenizer for the directive call-expression grammar.

Tokens are produced lazily so that prose after the closing parenthesis of a
directive (``# TODO(...) don't forget``) is never tokenized.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass

from tickler.exceptions import DirectiveSyntaxError


class TokenKind(str, enum.Enum):
    IDENT = "identifier"
    STRING = "string"
    INTEGER = "integer"
    LPAREN = "'('"
    RPAREN = "')'"
    COMMA = "','"
    COLON = "':'"
    OTHER = "symbol"
    EOF = "end of input"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str | int | None
    start: int
    end: int


_PUNCTUATION = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
}

_DIGITS = frozenset("0123456789")

_ESCAPES = {"\\": "\\", "'": "'", '"': '"', "n": "\n", "t": "\t"}


def _is_ident_start(char: str) -> bool:
    return char.isalpha() or char == "_"


def _is_ident_char(char: str) -> bool:
    return char.isalnum() or char in "_?!"


def tokenize(text: str) -> Iterator[Token]:
    """Yield tokens from ``text``, ending with a single EOF token.

    Raises:
        DirectiveSyntaxError: On an unterminated string literal.
    """
    pos = 0
    length = len(text)
    while pos < length:
        char = text[pos]

        if char.isspace():
            pos += 1
            continue

        if char in _PUNCTUATION:
            yield Token(_PUNCTUATION[char], char, pos, pos + 1)
            pos += 1
            continue

        if char in ("'", '"'):
            value, end = _read_string(text, pos)
            yield Token(TokenKind.STRING, value, pos, end)
            pos = end
            continue

        if char in _DIGITS:
            end = pos
            while end < length and (text[end] in _DIGITS or text[end] == "_"):
                end += 1
            yield Token(TokenKind.INTEGER, int(text[pos:end].replace("_", "")), pos, end)
            pos = end
            continue

        if _is_ident_start(char):
            end = pos + 1
            while end < length and _is_ident_char(text[end]):
                end += 1
            yield Token(TokenKind.IDENT, text[pos:end], pos, end)
            pos = end
            continue

        yield Token(TokenKind.OTHER, char, pos, pos + 1)
        pos += 1

    yield Token(TokenKind.EOF, None, length, length)


def _read_string(text: str, start: int) -> tuple[str, int]:
    quote = text[start]
    chars: list[str] = []
    pos = start + 1
    while pos < len(text):
        char = text[pos]
        if char == "\\" and pos + 1 < len(text):
            nxt = text[pos + 1]
            if nxt in _ESCAPES:
                chars.append(_ESCAPES[nxt])
            else:
                chars.append(char + nxt)
            pos += 2
            continue
        if char == quote:
            return "".join(chars), pos + 1
        chars.append(char)
        pos += 1
    raise DirectiveSyntaxError("unterminated string literal", start)
