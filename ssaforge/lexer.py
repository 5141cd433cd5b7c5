"""Tokenizer for the small expression language."""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, TextIO, Union

_SPACES = " \t\n\v\f\r"
_DIGITS = "0123456789"

_KEYWORDS = {
    "if": "IF",
    "then": "THEN",
    "else": "ELSE",
    "for": "FOR",
    "in": "IN",
}


class TokenType(Enum):
    """Kinds of tokens the lexer produces."""

    EOF = -1
    IF = -2
    THEN = -3
    ELSE = -4
    FOR = -5
    IN = -6
    IDENTIFIER = -7
    NUMBER = -8
    OPERATION = -9
    ASSIGN = -10
    SINGLE_SYMBOL = -11


@dataclass(frozen=True)
class Token:
    """A token with an optional payload.

    The payload is the identifier text, the integer value of a number, or the
    character of an operator, assignment or single symbol.
    """

    type: TokenType
    value: Optional[Union[int, str]] = None


def _is_space(char: str) -> bool:
    return bool(char) and char in _SPACES


def _is_digit(char: str) -> bool:
    return bool(char) and char in _DIGITS


def _is_alpha(char: str) -> bool:
    return bool(char) and char.isascii() and char.isalpha()


def _is_alnum(char: str) -> bool:
    return _is_alpha(char) or _is_digit(char)


class Lexer:
    """Reads characters from a text stream and groups them into tokens."""

    def __init__(self, stream: Union[TextIO, str]) -> None:
        if isinstance(stream, str):
            stream = io.StringIO(stream)
        self._stream = stream
        self._last = " "
        self.current: Optional[Token] = None

    def _read(self) -> str:
        return self._stream.read(1)

    def _scan(self) -> Token:
        while _is_space(self._last):
            self._last = self._read()

        if _is_alpha(self._last):
            chars = [self._last]
            self._last = self._read()
            while _is_alnum(self._last):
                chars.append(self._last)
                self._last = self._read()
            word = "".join(chars)
            keyword = _KEYWORDS.get(word)
            if keyword is not None:
                return Token(TokenType[keyword])
            return Token(TokenType.IDENTIFIER, word)

        if _is_digit(self._last):
            digits = []
            while _is_digit(self._last):
                digits.append(self._last)
                self._last = self._read()
            return Token(TokenType.NUMBER, int("".join(digits)))

        if self._last in ("+", "-"):
            op = self._last
            self._last = self._read()
            return Token(TokenType.OPERATION, op)

        if self._last == "=":
            self._last = self._read()
            return Token(TokenType.ASSIGN, "=")

        if not self._last:
            self._last = self._read()
            return Token(TokenType.EOF)

        symbol = self._last
        self._last = self._read()
        return Token(TokenType.SINGLE_SYMBOL, symbol)

    def next_token(self) -> Token:
        """Read the next token and remember it as the current one."""
        self.current = self._scan()
        return self.current

    def tokens(self) -> list[Token]:
        """Read every remaining token, ending with the EOF token."""
        result = list(self)
        result.append(self.current if self.current is not None else Token(TokenType.EOF))
        return result

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens up to, but not including, the EOF token."""
        while True:
            token = self.next_token()
            if token.type is TokenType.EOF:
                return
            yield token